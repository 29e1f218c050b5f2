"""
XML helpers shared by the reader, extractors and writer.

All parsing goes through lxml so namespace prefixes, attribute order and
text are kept exactly as they appear in the package.
"""

import logging
from typing import Dict, Optional

from lxml import etree

from ..exceptions import ParseError

logger = logging.getLogger(__name__)

NAMESPACES: Dict[str, str] = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
    "mc": "http://schemas.openxmlformats.org/markup-compatibility/2006",
    "v": "urn:schemas-microsoft-com:vml",
    "wpc": "http://schemas.microsoft.com/office/word/2010/wordprocessingCanvas",
    "w14": "http://schemas.microsoft.com/office/word/2010/wordml",
    "w15": "http://schemas.microsoft.com/office/word/2012/wordml",
    "pr": "http://schemas.openxmlformats.org/package/2006/relationships",
    "ct": "http://schemas.openxmlformats.org/package/2006/content-types",
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
    "dcmitype": "http://purl.org/dc/dcmitype/",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
    "ep": "http://schemas.openxmlformats.org/officeDocument/2006/extended-properties",
    "op": "http://schemas.openxmlformats.org/officeDocument/2006/custom-properties",
    "vt": "http://schemas.openxmlformats.org/officeDocument/2006/docPropsVTypes",
    "ds": "http://schemas.openxmlformats.org/officeDocument/2006/customXml",
}

XML_NS = "http://www.w3.org/XML/1998/namespace"

_OFF_VALUES = ("0", "false", "off", "none")

_parser = etree.XMLParser(
    resolve_entities=False,
    no_network=True,
    remove_blank_text=False,
    huge_tree=True,
)


def qn(tag: str) -> str:
    """Expand a prefixed name ("w:p") to Clark notation."""
    prefix, local = tag.split(":", 1)
    return f"{{{NAMESPACES[prefix]}}}{local}"


def local_name(element) -> str:
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def prefixed_name(element) -> str:
    """Return "prefix:local" for an element, falling back to the local name."""
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{"):
        uri, local = tag[1:].split("}", 1)
        for prefix, known in NAMESPACES.items():
            if known == uri:
                return f"{prefix}:{local}"
        return local
    return tag


def parse_xml(data: bytes, part_name: str = "<fragment>"):
    """
    Parse a complete XML part.

    Args:
        data: Raw bytes of the part
        part_name: Name used in error messages

    Returns:
        Root element

    Raises:
        ParseError: If the XML is malformed
    """
    try:
        return etree.fromstring(data, _parser)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Malformed XML in part {part_name}", str(e))


def to_markup(element) -> str:
    """Serialise an element (with in-scope namespace declarations) as text."""
    return etree.tostring(element, encoding="unicode")


def from_markup(markup: str):
    """Parse markup produced by ``to_markup`` back into a detached element."""
    return etree.fromstring(markup.encode("utf-8"), _parser)


def serialize_part(root) -> bytes:
    """Serialise a complete part with the standard declaration."""
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", standalone=True)


def w_attr(element, name: str = "val") -> Optional[str]:
    """Read a w:-namespaced attribute (w:val by default)."""
    if element is None:
        return None
    return element.get(qn(f"w:{name}"))


def set_w_attr(element, name: str, value) -> None:
    element.set(qn(f"w:{name}"), str(value))


def child_val(parent, tag: str, attr: str = "val") -> Optional[str]:
    if parent is None:
        return None
    child = parent.find(qn(tag))
    return w_attr(child, attr) if child is not None else None


def int_or_none(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        try:
            return int(float(value))
        except ValueError:
            logger.debug(f"Ignoring non-numeric value {value!r}")
            return None


def on_off(element) -> Optional[bool]:
    """Read an on/off property: present without val means on."""
    if element is None:
        return None
    value = w_attr(element)
    if value is None:
        return True
    return value.lower() not in _OFF_VALUES


def make_element(tag: str, **w_attrs):
    """Create a w:-style element with w:-namespaced attributes."""
    prefix = tag.split(":", 1)[0]
    nsmap = {"w": NAMESPACES["w"], "r": NAMESPACES["r"], prefix: NAMESPACES[prefix]}
    element = etree.Element(qn(tag), nsmap=nsmap)
    for name, value in w_attrs.items():
        if value is not None:
            set_w_attr(element, name, value)
    return element


def sub_element(parent, tag: str, **w_attrs):
    element = make_element(tag, **w_attrs)
    parent.append(element)
    return element
