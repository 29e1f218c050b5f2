"""
Runs: formatted text fragments inside a paragraph.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from .content_control import ContentControlProperties
from .formatting import RunFormatting


@dataclass(eq=False)
class HyperlinkData:
    """
    A w:hyperlink wrapper. Shared by every run inside the same wrapper.

    External links carry a relationship id resolved through the package's
    hyperlink table; internal links carry a bookmark anchor.
    """

    rel_id: Optional[str] = None
    anchor: Optional[str] = None
    tooltip: Optional[str] = None
    url: Optional[str] = None
    raw_attributes: dict = field(default_factory=dict, repr=False, metadata={"fingerprint": False})

    @property
    def is_internal(self) -> bool:
        return self.rel_id is None and self.anchor is not None


class DocumentPropertyType(Enum):
    CORE = "core"
    EXTENDED = "extended"
    CUSTOM = "custom"


@dataclass
class DocumentPropertyField:
    """A DOCPROPERTY field whose result is shown by the run it is attached to."""

    name: str
    property_type: DocumentPropertyType
    value: Optional[str] = None
    field_code: Optional[str] = None


@dataclass
class FormattedRun:
    """
    One positioned item of paragraph content.

    Ordinary runs carry text (or a tab/break) and formatting. Inline items the
    model does not cover (bookmarks, field characters, footnote references,
    symbols, math, revision marks) carry ``raw_markup`` and are re-emitted
    as-is at their position; their ``text`` is only the visible text they
    contribute to the paragraph.
    """

    text: str = ""
    formatting: RunFormatting = field(default_factory=RunFormatting)
    is_tab: bool = False
    is_break: bool = False
    break_type: Optional[str] = None
    is_carriage_return: bool = False
    drawing_id: Optional[str] = None
    hyperlink: Optional[HyperlinkData] = None
    document_property: Optional[DocumentPropertyField] = None
    content_controls: List[ContentControlProperties] = field(default_factory=list)
    raw_markup: Optional[str] = None
    raw_properties: Optional[str] = field(default=None, repr=False, metadata={"fingerprint": False})

    @property
    def is_raw(self) -> bool:
        return self.raw_markup is not None

    @property
    def content_control(self) -> Optional[ContentControlProperties]:
        """Innermost enclosing content control."""
        return self.content_controls[-1] if self.content_controls else None

    @property
    def plain_text(self) -> str:
        """Text contribution to the paragraph's plain-text projection."""
        if self.is_tab:
            return "\t"
        if self.is_break or self.is_carriage_return:
            return "\n"
        return self.text

    def copy_with_text(self, text: str) -> "FormattedRun":
        """A plain text run carrying this run's formatting and wrappers."""
        return FormattedRun(
            text=text,
            formatting=replace(self.formatting),
            hyperlink=self.hyperlink,
            content_controls=list(self.content_controls),
            raw_properties=self.raw_properties,
        )
