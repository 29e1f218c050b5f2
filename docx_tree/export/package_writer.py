"""
Package writer for DOCX files.

Serialises relationship lists and content-type maps and zips a complete
part set. [Content_Types].xml is always written first.
"""

import io
import logging
import zipfile
from typing import Dict, Iterable, List

from lxml import etree

from ..parser.relationships import CONTENT_TYPES_PART, ContentTypeMap, Relationship
from ..utils.xml import NAMESPACES, qn

logger = logging.getLogger(__name__)


def generate_relationships_xml(relationships: Iterable[Relationship]) -> bytes:
    """
    Serialise a relationship part.

    Args:
        relationships: Relationships in the order to write them

    Returns:
        XML bytes of the .rels part
    """
    root = etree.Element(qn("pr:Relationships"), nsmap={None: NAMESPACES["pr"]})
    for relationship in relationships:
        element = etree.SubElement(root, qn("pr:Relationship"))
        element.set("Id", relationship.rel_id)
        element.set("Type", relationship.rel_type)
        element.set("Target", relationship.target)
        if relationship.target_mode:
            element.set("TargetMode", relationship.target_mode)
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", standalone=True)


def generate_content_types_xml(content_types: ContentTypeMap) -> bytes:
    """Serialise [Content_Types].xml from a content-type map."""
    root = etree.Element(qn("ct:Types"), nsmap={None: NAMESPACES["ct"]})
    for extension, content_type in content_types.defaults.items():
        element = etree.SubElement(root, qn("ct:Default"))
        element.set("Extension", extension)
        element.set("ContentType", content_type)
    for part_name, content_type in content_types.overrides.items():
        element = etree.SubElement(root, qn("ct:Override"))
        element.set("PartName", f"/{part_name}")
        element.set("ContentType", content_type)
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", standalone=True)


class PackageWriter:
    """Zips a part set into a DOCX container."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED):
        self.compression = compression

    def write(self, parts: Dict[str, bytes], order: List[str] = None) -> bytes:
        """
        Build the zip container.

        Args:
            parts: Part name -> bytes
            order: Preferred part order (missing names are skipped, parts not
                listed follow in insertion order)

        Returns:
            Bytes of the zip container
        """
        names: List[str] = []
        if CONTENT_TYPES_PART in parts:
            names.append(CONTENT_TYPES_PART)
        for name in order or []:
            if name in parts and name not in names:
                names.append(name)
        for name in parts:
            if name not in names:
                names.append(name)

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", self.compression) as zip_file:
            for name in names:
                zip_file.writestr(name, parts[name])
        logger.info(f"Wrote DOCX package with {len(names)} parts")
        return buffer.getvalue()
