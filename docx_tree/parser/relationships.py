"""
Relationship and content-type parts of an OPC package.

Relationships are kept in document order with their ids, types, targets and
target modes exactly as written, so unchanged relationship parts can be
regenerated identically.
"""

import logging
import posixpath
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..utils.xml import parse_xml, qn

logger = logging.getLogger(__name__)

RT_BASE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
RT_OFFICE_DOCUMENT = f"{RT_BASE}/officeDocument"
RT_STYLES = f"{RT_BASE}/styles"
RT_THEME = f"{RT_BASE}/theme"
RT_FONT_TABLE = f"{RT_BASE}/fontTable"
RT_NUMBERING = f"{RT_BASE}/numbering"
RT_SETTINGS = f"{RT_BASE}/settings"
RT_WEB_SETTINGS = f"{RT_BASE}/webSettings"
RT_FOOTNOTES = f"{RT_BASE}/footnotes"
RT_ENDNOTES = f"{RT_BASE}/endnotes"
RT_HEADER = f"{RT_BASE}/header"
RT_FOOTER = f"{RT_BASE}/footer"
RT_IMAGE = f"{RT_BASE}/image"
RT_HYPERLINK = f"{RT_BASE}/hyperlink"
RT_CUSTOM_XML = f"{RT_BASE}/customXml"
RT_CUSTOM_XML_PROPS = f"{RT_BASE}/customXmlProps"
RT_GLOSSARY = f"{RT_BASE}/glossaryDocument"
RT_EXTENDED_PROPERTIES = f"{RT_BASE}/extended-properties"
RT_CUSTOM_PROPERTIES = f"{RT_BASE}/custom-properties"
RT_CORE_PROPERTIES = "http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties"

PACKAGE_SOURCE = ""
CONTENT_TYPES_PART = "[Content_Types].xml"


@dataclass(frozen=True)
class Relationship:
    rel_id: str
    rel_type: str
    target: str
    target_mode: Optional[str] = None

    @property
    def is_external(self) -> bool:
        return self.target_mode == "External"


def relationships_part_name(part_name: str) -> str:
    """
    Name of the relationship part for a source part.

    Args:
        part_name: Source part ("word/document.xml"), or "" for the package

    Returns:
        Relationship part name ("word/_rels/document.xml.rels")
    """
    if not part_name:
        return "_rels/.rels"
    directory, file_name = posixpath.split(part_name)
    if directory:
        return f"{directory}/_rels/{file_name}.rels"
    return f"_rels/{file_name}.rels"


def source_part_name(rels_part_name: str) -> Optional[str]:
    """Inverse of ``relationships_part_name``; None if not a .rels name."""
    if not rels_part_name.endswith(".rels"):
        return None
    directory, file_name = posixpath.split(rels_part_name)
    if posixpath.basename(directory) != "_rels":
        return None
    owner_dir = posixpath.dirname(directory)
    source_name = file_name[: -len(".rels")]
    if not source_name:
        return PACKAGE_SOURCE
    return posixpath.join(owner_dir, source_name) if owner_dir else source_name


def resolve_target(source_part: str, target: str) -> str:
    """Resolve an internal relationship target to a package part name."""
    if target.startswith("/"):
        return posixpath.normpath(target.lstrip("/"))
    base = posixpath.dirname(source_part) if source_part else ""
    return posixpath.normpath(posixpath.join(base, target))


def relative_target(source_part: str, part_name: str) -> str:
    """Target text for a relationship from source_part to part_name."""
    base = posixpath.dirname(source_part) if source_part else ""
    if not base:
        return part_name
    return posixpath.relpath(part_name, base)


def parse_relationships(data: bytes, part_name: str = "") -> List[Relationship]:
    """
    Parse a relationship part.

    Args:
        data: Raw bytes of the .rels part
        part_name: Name used in error messages

    Returns:
        Relationships in document order
    """
    root = parse_xml(data, part_name)
    relationships = []
    for element in root.iter(qn("pr:Relationship")):
        rel_id = element.get("Id", "")
        target = element.get("Target", "")
        if not rel_id:
            logger.warning(f"Skipping relationship without Id in {part_name}")
            continue
        relationships.append(
            Relationship(
                rel_id=rel_id,
                rel_type=element.get("Type", ""),
                target=target,
                target_mode=element.get("TargetMode"),
            )
        )
    return relationships


class ContentTypeMap:
    """
    Parsed [Content_Types].xml: Default entries by extension and Override
    entries by part name (without the leading slash), both in file order.
    """

    def __init__(self):
        self.defaults: "OrderedDict[str, str]" = OrderedDict()
        self.overrides: "OrderedDict[str, str]" = OrderedDict()

    @classmethod
    def from_xml(cls, data: bytes) -> "ContentTypeMap":
        content_types = cls()
        root = parse_xml(data, CONTENT_TYPES_PART)
        for element in root:
            if not isinstance(element.tag, str):
                continue
            if element.tag == qn("ct:Default"):
                extension = element.get("Extension", "")
                if extension:
                    content_types.defaults[extension] = element.get("ContentType", "")
            elif element.tag == qn("ct:Override"):
                part_name = element.get("PartName", "").lstrip("/")
                if part_name:
                    content_types.overrides[part_name] = element.get("ContentType", "")
        return content_types

    def content_type_for(self, part_name: str) -> Optional[str]:
        if part_name in self.overrides:
            return self.overrides[part_name]
        extension = posixpath.splitext(part_name)[1].lstrip(".").lower()
        for known, content_type in self.defaults.items():
            if known.lower() == extension:
                return content_type
        return None

    def has_default(self, extension: str) -> bool:
        return any(known.lower() == extension.lower() for known in self.defaults)

    def copy(self) -> "ContentTypeMap":
        duplicate = ContentTypeMap()
        duplicate.defaults = OrderedDict(self.defaults)
        duplicate.overrides = OrderedDict(self.overrides)
        return duplicate

    def __eq__(self, other) -> bool:
        if not isinstance(other, ContentTypeMap):
            return NotImplemented
        return self.defaults == other.defaults and self.overrides == other.overrides

    def as_dict(self) -> Dict[str, Dict[str, str]]:
        return {"defaults": dict(self.defaults), "overrides": dict(self.overrides)}
