"""
Package reader for DOCX files.

Loads every part of the zip container into memory up front, parses
[Content_Types].xml and every relationship part, and locates the main
document part through the package relationships.
"""

import io
import logging
import zipfile
import zlib
from collections import OrderedDict
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Union

from .relationships import (
    CONTENT_TYPES_PART,
    PACKAGE_SOURCE,
    RT_OFFICE_DOCUMENT,
    ContentTypeMap,
    Relationship,
    parse_relationships,
    resolve_target,
    source_part_name,
)
from ..exceptions import ParseError
from ..utils.xml import parse_xml

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, str, Path, BinaryIO]


class PackageReader:
    """
    Reads and exposes DOCX package contents.

    Attributes:
        parts: Part name -> raw bytes, in zip order
        content_types: Parsed [Content_Types].xml
        relationships: Source part name ("" for the package) -> relationships
    """

    def __init__(self, data: bytes, name: Optional[str] = None):
        """
        Initialize package reader.

        Args:
            data: Raw bytes of the zip container
            name: Display name (file name) of the package

        Raises:
            ParseError: If the container or its mandatory parts are unreadable
        """
        self.name = name
        self.parts: "OrderedDict[str, bytes]" = OrderedDict()
        self.content_types = ContentTypeMap()
        self.relationships: Dict[str, List[Relationship]] = {}

        self._read_zip(data)
        self._parse_content_types()
        self._parse_relationships()
        logger.info(f"Opened DOCX package {name or '<bytes>'} with {len(self.parts)} parts")

    @classmethod
    def from_bytes(cls, data: bytes, name: Optional[str] = None) -> "PackageReader":
        return cls(bytes(data), name=name)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "PackageReader":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"DOCX file not found: {path}")
        return cls(path.read_bytes(), name=path.name)

    @classmethod
    def from_stream(cls, stream: BinaryIO, name: Optional[str] = None) -> "PackageReader":
        name = name or getattr(stream, "name", None)
        if name is not None:
            name = Path(str(name)).name
        return cls(stream.read(), name=name)

    @classmethod
    def open(cls, source: Source) -> "PackageReader":
        """Open bytes, a path, or a binary stream."""
        if isinstance(source, (bytes, bytearray)):
            return cls.from_bytes(source)
        if isinstance(source, (str, Path)):
            return cls.from_path(source)
        if hasattr(source, "read"):
            return cls.from_stream(source)
        raise TypeError(f"Cannot read a package from {type(source).__name__}")

    def _read_zip(self, data: bytes) -> None:
        try:
            with zipfile.ZipFile(io.BytesIO(data), "r") as zip_file:
                for info in zip_file.infolist():
                    if info.is_dir():
                        continue
                    self.parts[info.filename] = zip_file.read(info.filename)
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            raise ParseError("Not a valid DOCX zip container", str(e))
        except (OSError, EOFError, RuntimeError, zlib.error) as e:
            raise ParseError("Failed to read DOCX zip container", str(e))

    def _parse_content_types(self) -> None:
        data = self.parts.get(CONTENT_TYPES_PART)
        if data is None:
            raise ParseError("Package has no [Content_Types].xml part")
        self.content_types = ContentTypeMap.from_xml(data)
        logger.debug(
            f"Parsed {len(self.content_types.defaults)} default and "
            f"{len(self.content_types.overrides)} override content types"
        )

    def _parse_relationships(self) -> None:
        for part_name in self.parts:
            source = source_part_name(part_name)
            if source is None:
                continue
            self.relationships[source] = parse_relationships(self.parts[part_name], part_name)
        logger.debug(f"Parsed {len(self.relationships)} relationship parts")

    @property
    def part_order(self) -> List[str]:
        return list(self.parts.keys())

    @property
    def main_document_part(self) -> str:
        """
        Name of the main document part.

        Raises:
            ParseError: If no officeDocument relationship points at an existing part
        """
        for relationship in self.get_relationships(PACKAGE_SOURCE):
            if relationship.rel_type == RT_OFFICE_DOCUMENT and not relationship.is_external:
                part_name = resolve_target(PACKAGE_SOURCE, relationship.target)
                if part_name in self.parts:
                    return part_name
        raise ParseError("Package has no main document part")

    def has_part(self, part_name: str) -> bool:
        return part_name in self.parts

    def get_xml(self, part_name: str):
        """
        Parse an XML part.

        Raises:
            KeyError: If the part does not exist
            ParseError: If the part is malformed
        """
        if part_name not in self.parts:
            raise KeyError(f"Part not found: {part_name}")
        return parse_xml(self.parts[part_name], part_name)

    def get_relationships(self, source: str) -> List[Relationship]:
        return list(self.relationships.get(source, []))

    def get_relationship(self, source: str, rel_id: str) -> Optional[Relationship]:
        for relationship in self.relationships.get(source, []):
            if relationship.rel_id == rel_id:
                return relationship
        return None

    def resolve_part(self, source: str, relationship: Relationship) -> Optional[str]:
        """Part name a relationship points at, or None if external or missing."""
        if relationship.is_external:
            return None
        part_name = resolve_target(source, relationship.target)
        return part_name if part_name in self.parts else None


def read_parts(source: Source) -> PackageReader:
    """Read a package from bytes, a path, or a binary stream."""
    return PackageReader.open(source)
