"""Package reading and extraction of document content."""

from .package_reader import PackageReader, read_parts
from .relationships import ContentTypeMap, Relationship
from .styles import StyleCatalog

__all__ = ["PackageReader", "read_parts", "ContentTypeMap", "Relationship", "StyleCatalog"]
