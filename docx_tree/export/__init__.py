"""Serialisation of document trees back into DOCX packages."""

from .docx_writer import DocumentTreeWriter, write_document
from .package_writer import PackageWriter, generate_content_types_xml, generate_relationships_xml

__all__ = [
    "DocumentTreeWriter",
    "write_document",
    "PackageWriter",
    "generate_content_types_xml",
    "generate_relationships_xml",
]
