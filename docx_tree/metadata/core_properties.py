"""
Core properties for DOCX documents (docProps/core.xml).

Reads the Dublin Core / OPC metadata into a CoreProperties view and edits
a single element of the part in place.
"""

import logging
from dataclasses import dataclass, fields
from typing import Dict, Optional

from lxml import etree

from ..utils.xml import NAMESPACES, parse_xml, qn, serialize_part

logger = logging.getLogger(__name__)

CORE_PROPERTIES_PART = "docProps/core.xml"
CORE_PROPERTIES_CONTENT_TYPE = "application/vnd.openxmlformats-package.core-properties+xml"

# Property name -> qualified element name
CORE_PROPERTY_ELEMENTS: Dict[str, str] = {
    "title": "dc:title",
    "subject": "dc:subject",
    "creator": "dc:creator",
    "keywords": "cp:keywords",
    "description": "dc:description",
    "last_modified_by": "cp:lastModifiedBy",
    "revision": "cp:revision",
    "created": "dcterms:created",
    "modified": "dcterms:modified",
    "last_printed": "cp:lastPrinted",
    "category": "cp:category",
    "content_status": "cp:contentStatus",
    "language": "dc:language",
    "identifier": "dc:identifier",
    "version": "cp:version",
}

_ALIASES = {
    "author": "creator",
    "comments": "description",
    "status": "content_status",
    "lastmodifiedby": "last_modified_by",
    "contentstatus": "content_status",
    "lastprinted": "last_printed",
}

_W3CDTF = ("created", "modified")


@dataclass
class CoreProperties:
    """Read-only view of docProps/core.xml."""

    title: Optional[str] = None
    subject: Optional[str] = None
    creator: Optional[str] = None
    keywords: Optional[str] = None
    description: Optional[str] = None
    last_modified_by: Optional[str] = None
    revision: Optional[str] = None
    created: Optional[str] = None
    modified: Optional[str] = None
    last_printed: Optional[str] = None
    category: Optional[str] = None
    content_status: Optional[str] = None
    language: Optional[str] = None
    identifier: Optional[str] = None
    version: Optional[str] = None

    @property
    def author(self) -> Optional[str]:
        return self.creator


def normalize_core_name(name: str) -> Optional[str]:
    """
    Map a user-facing property name to its canonical key.

    Accepts "Title", "lastModifiedBy", "last_modified_by", "Author", ...

    Returns:
        Canonical key, or None if the name is not a core property
    """
    key = name.strip()
    snake = "".join(("_" + c.lower()) if c.isupper() else c for c in key).lstrip("_").lower()
    if snake in CORE_PROPERTY_ELEMENTS:
        return snake
    flat = key.replace("_", "").lower()
    if flat in _ALIASES:
        return _ALIASES[flat]
    for canonical in CORE_PROPERTY_ELEMENTS:
        if canonical.replace("_", "") == flat:
            return canonical
    return None


def empty_core_properties() -> bytes:
    root = etree.Element(
        qn("cp:coreProperties"),
        nsmap={
            "cp": NAMESPACES["cp"],
            "dc": NAMESPACES["dc"],
            "dcterms": NAMESPACES["dcterms"],
            "dcmitype": NAMESPACES["dcmitype"],
            "xsi": NAMESPACES["xsi"],
        },
    )
    return serialize_part(root)


def read_core_properties(data: Optional[bytes]) -> CoreProperties:
    properties = CoreProperties()
    if not data:
        return properties
    root = parse_xml(data, CORE_PROPERTIES_PART)
    for field_info in fields(CoreProperties):
        element = root.find(qn(CORE_PROPERTY_ELEMENTS[field_info.name]))
        if element is not None:
            setattr(properties, field_info.name, element.text or "")
    return properties


def get_core_property(data: Optional[bytes], name: str) -> Optional[str]:
    key = normalize_core_name(name)
    if key is None:
        raise KeyError(f"Unknown core property: {name}")
    return getattr(read_core_properties(data), key)


def set_core_property(data: Optional[bytes], name: str, value: Optional[str]) -> bytes:
    """
    Set one core property, leaving every other element untouched.

    Args:
        data: Current part bytes (None to start from an empty part)
        name: Property name
        value: New text; None removes the element

    Returns:
        Updated part bytes
    """
    key = normalize_core_name(name)
    if key is None:
        raise KeyError(f"Unknown core property: {name}")
    root = parse_xml(data or empty_core_properties(), CORE_PROPERTIES_PART)
    tag = qn(CORE_PROPERTY_ELEMENTS[key])
    element = root.find(tag)
    if value is None:
        if element is not None:
            root.remove(element)
        return serialize_part(root)
    if element is None:
        element = etree.SubElement(root, tag)
        if key in _W3CDTF:
            element.set(qn("xsi:type"), "dcterms:W3CDTF")
    element.text = str(value)
    logger.debug(f"Set core property {key}")
    return serialize_part(root)
