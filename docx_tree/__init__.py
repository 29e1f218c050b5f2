"""
docx-tree - DOCX documents as editable heading trees.

Parses a Word package into a tree organised by heading hierarchy (headings
own the blocks that follow them, tables own their cells' content) and writes
edited trees back, keeping every part the tree does not model byte for byte.

Main Components:
- api: parse / write / write_to_file entry points
- models: DocumentNode, runs, tables, images, content controls
- parser: package reading, formatting and tree building
- package: the fidelity store of document-wide parts
- export: the tree writer and zip packaging
- metadata: core, extended and custom document properties
"""

from .api import new_document, parse, write, write_to_file
from .exceptions import DocxTreeError, FidelityGap, ParseError, StructuralError
from .export.docx_writer import DocumentTreeWriter
from .models import (
    ContentControlProperties,
    ContentControlType,
    ContentType,
    DocumentNode,
    DocumentRoot,
    FormattedRun,
    ImageData,
    TableCell,
    TableData,
)
from .options import ParseOptions, WriteOptions
from .package.fidelity_store import PackageFidelityStore
from .parser.document_parser import DocumentParser

__version__ = "1.0.0"

__all__ = [
    "parse",
    "write",
    "write_to_file",
    "new_document",
    "DocumentParser",
    "DocumentTreeWriter",
    "ParseOptions",
    "WriteOptions",
    "DocxTreeError",
    "ParseError",
    "StructuralError",
    "FidelityGap",
    "ContentControlProperties",
    "ContentControlType",
    "ContentType",
    "DocumentNode",
    "DocumentRoot",
    "FormattedRun",
    "ImageData",
    "TableCell",
    "TableData",
    "PackageFidelityStore",
]
