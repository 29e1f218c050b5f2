"""Custom exceptions for docx-tree."""

from dataclasses import dataclass
from typing import Optional


class DocxTreeError(Exception):
    """Base exception for docx-tree errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ParseError(DocxTreeError):
    """Exception raised when a package cannot be read into a tree.

    Covers malformed zip containers, malformed XML, a missing main document
    part and heading levels outside 1-9. No partial tree is produced.
    """

    pass


class StructuralError(DocxTreeError):
    """Exception raised when a tree cannot be written back to a package.

    Raised for tables without a grid or with inconsistent spans, and for
    references (media, hyperlinks, content-control data stores) that the
    package cannot resolve.
    """

    def __init__(self, message: str, details: Optional[str] = None, node_id: Optional[str] = None):
        super().__init__(message, details)
        self.node_id = node_id


@dataclass(frozen=True)
class FidelityGap:
    """Non-fatal record of a property the formatting model does not cover.

    The element carrying the property keeps its verbatim markup, so the
    writer can still re-emit it.
    """

    element: str
    property: str

    def __str__(self) -> str:
        return f"{self.element}/{self.property}"
