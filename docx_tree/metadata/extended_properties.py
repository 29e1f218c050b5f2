"""
Extended (application) properties for DOCX documents (docProps/app.xml).
"""

import logging
from typing import Dict, Optional

from lxml import etree

from ..utils.xml import NAMESPACES, parse_xml, serialize_part

logger = logging.getLogger(__name__)

EXTENDED_PROPERTIES_PART = "docProps/app.xml"
EXTENDED_PROPERTIES_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.extended-properties+xml"

# Canonical key -> element local name
EXTENDED_PROPERTY_ELEMENTS: Dict[str, str] = {
    "template": "Template",
    "application": "Application",
    "app_version": "AppVersion",
    "company": "Company",
    "manager": "Manager",
    "pages": "Pages",
    "words": "Words",
    "characters": "Characters",
    "characters_with_spaces": "CharactersWithSpaces",
    "lines": "Lines",
    "paragraphs": "Paragraphs",
    "total_time": "TotalTime",
    "doc_security": "DocSecurity",
    "hyperlink_base": "HyperlinkBase",
}


def normalize_extended_name(name: str) -> Optional[str]:
    flat = name.replace("_", "").lower()
    for key, local in EXTENDED_PROPERTY_ELEMENTS.items():
        if local.lower() == flat:
            return key
    return None


def _tag(key: str) -> str:
    return f"{{{NAMESPACES['ep']}}}{EXTENDED_PROPERTY_ELEMENTS[key]}"


def empty_extended_properties() -> bytes:
    root = etree.Element(
        f"{{{NAMESPACES['ep']}}}Properties",
        nsmap={None: NAMESPACES["ep"], "vt": NAMESPACES["vt"]},
    )
    return serialize_part(root)


def read_extended_properties(data: Optional[bytes]) -> Dict[str, str]:
    """All simple-valued extended properties keyed by canonical name."""
    values: Dict[str, str] = {}
    if not data:
        return values
    root = parse_xml(data, EXTENDED_PROPERTIES_PART)
    for key in EXTENDED_PROPERTY_ELEMENTS:
        element = root.find(_tag(key))
        if element is not None:
            values[key] = element.text or ""
    return values


def get_extended_property(data: Optional[bytes], name: str) -> Optional[str]:
    key = normalize_extended_name(name)
    if key is None:
        raise KeyError(f"Unknown extended property: {name}")
    return read_extended_properties(data).get(key)


def set_extended_property(data: Optional[bytes], name: str, value) -> bytes:
    """
    Set one extended property, leaving every other element untouched.

    Returns:
        Updated part bytes
    """
    key = normalize_extended_name(name)
    if key is None:
        raise KeyError(f"Unknown extended property: {name}")
    root = parse_xml(data or empty_extended_properties(), EXTENDED_PROPERTIES_PART)
    element = root.find(_tag(key))
    if value is None:
        if element is not None:
            root.remove(element)
        return serialize_part(root)
    if element is None:
        element = etree.SubElement(root, _tag(key))
    element.text = str(value)
    logger.debug(f"Set extended property {key}")
    return serialize_part(root)
