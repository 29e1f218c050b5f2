"""
Classification of document property names used by DOCPROPERTY fields and
data-bound content controls.
"""

import re

from ..models.run import DocumentPropertyType

_CUSTOM_NAME = re.compile("property\\[@name=['\"]([^'\"]+)['\"]\\]")

CORE_PROPERTY_NAMES = frozenset(
    {
        "title", "subject", "creator", "author", "keywords", "description", "comments",
        "lastmodifiedby", "revision", "created", "modified", "category", "contentstatus", "status",
    }
)

EXTENDED_PROPERTY_NAMES = frozenset(
    {
        "template", "application", "appversion", "company", "manager", "pages", "words",
        "characters", "characterswithspaces", "lines", "paragraphs", "totaltime",
    }
)


def property_type_for(name: str) -> DocumentPropertyType:
    flat = name.replace("_", "").lower()
    if flat in CORE_PROPERTY_NAMES:
        return DocumentPropertyType.CORE
    if flat in EXTENDED_PROPERTY_NAMES:
        return DocumentPropertyType.EXTENDED
    return DocumentPropertyType.CUSTOM


def property_name_from_xpath(xpath: str) -> str:
    """
    Property name addressed by a data-binding XPath.

    "/ns1:coreProperties[1]/ns0:title[1]" -> "title"
    """
    match = _CUSTOM_NAME.search(xpath)
    if match:
        return match.group(1)
    last = xpath.rstrip("/").split("/")[-1]
    if ":" in last:
        last = last.split(":", 1)[1]
    if "[" in last:
        last = last.split("[", 1)[0]
    return last


def is_property_xpath(xpath: str) -> bool:
    return any(marker in xpath for marker in ("coreProperties", "extended-properties", "custom-properties"))
