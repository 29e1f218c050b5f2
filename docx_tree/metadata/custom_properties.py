"""
Custom document properties for DOCX documents (docProps/custom.xml).

Each property is an op:property element with a fmtid, a pid (starting at 2)
and a single vt:* value child.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from lxml import etree

from ..utils.xml import NAMESPACES, parse_xml, qn, serialize_part

logger = logging.getLogger(__name__)

CUSTOM_PROPERTIES_PART = "docProps/custom.xml"
CUSTOM_PROPERTIES_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.custom-properties+xml"
CUSTOM_PROPERTY_FMTID = "{D5CDD505-2E9C-101B-9397-08002B2CF9AE}"
FIRST_PID = 2


@dataclass
class CustomProperty:
    name: str
    value: Any
    vt_type: str
    pid: Optional[int] = None


def empty_custom_properties() -> bytes:
    root = etree.Element(
        qn("op:Properties"),
        nsmap={None: NAMESPACES["op"], "vt": NAMESPACES["vt"]},
    )
    return serialize_part(root)


def _convert(vt_type: str, text: str) -> Any:
    if vt_type in ("i1", "i2", "i4", "i8", "int", "ui1", "ui2", "ui4", "ui8", "uint"):
        try:
            return int(text)
        except ValueError:
            return text
    if vt_type in ("r4", "r8", "decimal"):
        try:
            return float(text)
        except ValueError:
            return text
    if vt_type == "bool":
        return text.strip().lower() in ("true", "1")
    return text


def _vt_for(value: Any):
    if isinstance(value, bool):
        return "bool", "true" if value else "false"
    if isinstance(value, int):
        return "i4", str(value)
    if isinstance(value, float):
        return "r8", repr(value)
    if isinstance(value, datetime):
        return "filetime", value.strftime("%Y-%m-%dT%H:%M:%SZ")
    if isinstance(value, date):
        return "filetime", value.strftime("%Y-%m-%dT00:00:00Z")
    return "lpwstr", str(value)


def read_custom_properties(data: Optional[bytes]) -> List[CustomProperty]:
    properties: List[CustomProperty] = []
    if not data:
        return properties
    root = parse_xml(data, CUSTOM_PROPERTIES_PART)
    for element in root.findall(qn("op:property")):
        value_element = next((child for child in element if isinstance(child.tag, str)), None)
        vt_type = etree.QName(value_element).localname if value_element is not None else "lpwstr"
        text = value_element.text or "" if value_element is not None else ""
        pid = element.get("pid")
        properties.append(
            CustomProperty(
                name=element.get("name", ""),
                value=_convert(vt_type, text),
                vt_type=vt_type,
                pid=int(pid) if pid and pid.isdigit() else None,
            )
        )
    return properties


def custom_properties_by_name(data: Optional[bytes]) -> Dict[str, CustomProperty]:
    return {prop.name: prop for prop in read_custom_properties(data)}


def get_custom_property(data: Optional[bytes], name: str) -> Any:
    prop = custom_properties_by_name(data).get(name)
    if prop is None:
        for candidate in read_custom_properties(data):
            if candidate.name.lower() == name.lower():
                return candidate.value
        return None
    return prop.value


def set_custom_property(data: Optional[bytes], name: str, value: Any) -> bytes:
    """
    Create or replace one custom property.

    The value type follows the Python type (bool, int, float, datetime, str).

    Returns:
        Updated part bytes
    """
    if not name:
        raise ValueError("Custom property name must be non-empty")
    root = parse_xml(data or empty_custom_properties(), CUSTOM_PROPERTIES_PART)
    vt_type, text = _vt_for(value)

    element = None
    used_pids = []
    for candidate in root.findall(qn("op:property")):
        pid = candidate.get("pid")
        if pid and pid.isdigit():
            used_pids.append(int(pid))
        if candidate.get("name") == name:
            element = candidate
    if element is None:
        element = etree.SubElement(root, qn("op:property"))
        element.set("fmtid", CUSTOM_PROPERTY_FMTID)
        element.set("pid", str(max(used_pids + [FIRST_PID - 1]) + 1))
        element.set("name", name)
    for child in list(element):
        element.remove(child)
    value_element = etree.SubElement(element, qn(f"vt:{vt_type}"))
    value_element.text = text
    logger.debug(f"Set custom property {name} ({vt_type})")
    return serialize_part(root)


def remove_custom_property(data: Optional[bytes], name: str) -> Optional[bytes]:
    """Remove a custom property; returns None if it did not exist."""
    if not data:
        return None
    root = parse_xml(data, CUSTOM_PROPERTIES_PART)
    for element in root.findall(qn("op:property")):
        if element.get("name") == name:
            root.remove(element)
            return serialize_part(root)
    return None
