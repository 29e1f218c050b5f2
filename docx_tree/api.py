"""
High-level API for docx-tree.

Example:
    >>> from docx_tree import parse, write_to_file
    >>>
    >>> root = parse("report.docx")
    >>> for child in root.children:
    ...     print(child.type.value, child.text)
    >>>
    >>> root.fidelity_store.set_core_property("Title", "Quarterly report")
    >>> write_to_file(root, "report-out.docx")
"""

import logging
from pathlib import Path
from typing import Optional, Union

from .export.docx_writer import DocumentTreeWriter
from .models.node import DocumentRoot
from .options import ParseOptions, WriteOptions
from .package.fidelity_store import PackageFidelityStore
from .parser.document_parser import DocumentParser
from .parser.package_reader import Source

logger = logging.getLogger(__name__)

__all__ = ["parse", "write", "write_to_file", "new_document"]


def parse(source: Source, options: Optional[ParseOptions] = None) -> DocumentRoot:
    """
    Parse a DOCX package into a document tree.

    Args:
        source: Package bytes, a binary stream, or a path
        options: Parse options

    Returns:
        Root of the tree

    Raises:
        ParseError: If the package cannot be read
    """
    return DocumentParser(options).parse(source)


def write(root: DocumentRoot, options: Optional[WriteOptions] = None) -> bytes:
    """
    Serialise a document tree into DOCX bytes.

    Raises:
        StructuralError: If the tree cannot be written
    """
    return DocumentTreeWriter(options).write(root)


def write_to_file(root: DocumentRoot, path: Union[str, Path], options: Optional[WriteOptions] = None) -> Path:
    return DocumentTreeWriter(options).write_to_file(root, path)


def new_document(name: str = "Document") -> DocumentRoot:
    """Create an empty tree backed by an empty fidelity store."""
    store = PackageFidelityStore()
    logger.debug(f"Created empty document {name!r}")
    return DocumentRoot(store, text=name, id_manager=store.id_manager)
