"""
Content control (w:sdt) property extraction.
"""

import logging
from typing import Optional

from ..metadata.property_names import is_property_xpath
from ..models.content_control import (
    ContentControlListItem,
    ContentControlProperties,
    ContentControlType,
    DataBinding,
)
from ..utils.fingerprint import compute_fingerprint
from ..utils.xml import int_or_none, local_name, qn, to_markup, w_attr

logger = logging.getLogger(__name__)

# Type elements of w:sdtPr, checked in this order.
_TYPE_ELEMENTS = (
    ("w:richText", ContentControlType.RICH_TEXT),
    ("w:text", ContentControlType.PLAIN_TEXT),
    ("w:picture", ContentControlType.PICTURE),
    ("w:date", ContentControlType.DATE),
    ("w:dropDownList", ContentControlType.DROP_DOWN_LIST),
    ("w:comboBox", ContentControlType.COMBO_BOX),
    ("w:group", ContentControlType.GROUP),
    ("w:bibliography", ContentControlType.BIBLIOGRAPHY),
    ("w:citation", ContentControlType.CITATION),
    ("w:equation", ContentControlType.EQUATION),
    ("w14:checkbox", ContentControlType.CHECKBOX),
)

_LOCKS = {
    "sdtLocked": (True, False),
    "contentLocked": (False, True),
    "sdtContentLocked": (True, True),
    "unlocked": (False, False),
}


def _w14(element, name: str = "val") -> Optional[str]:
    return element.get(qn(f"w14:{name}")) if element is not None else None


def _find_local(parent, name: str):
    """First child with the given local name, whatever its namespace."""
    for child in parent:
        if local_name(child) == name:
            return child
    return None


def determine_type(sdt_pr) -> ContentControlType:
    """Kind of a content control from the type element of its w:sdtPr."""
    for tag, control_type in _TYPE_ELEMENTS:
        if sdt_pr.find(qn(tag)) is not None:
            return control_type
    binding = sdt_pr.find(qn("w:dataBinding"))
    if binding is not None and is_property_xpath(w_attr(binding, "xpath") or ""):
        return ContentControlType.DOCUMENT_PROPERTY
    if sdt_pr.find(qn("w:docPartList")) is not None:
        return ContentControlType.BUILDING_BLOCK_GALLERY
    if _find_local(sdt_pr, "repeatingSection") is not None:
        return ContentControlType.REPEATING_SECTION
    if _find_local(sdt_pr, "repeatingSectionItem") is not None:
        return ContentControlType.REPEATING_SECTION_ITEM
    return ContentControlType.UNKNOWN


class ContentControlExtractor:
    """Builds ContentControlProperties from w:sdtPr / w:sdtEndPr."""

    def extract(self, sdt_pr, sdt_end_pr=None) -> ContentControlProperties:
        """
        Extract the properties of one content control.

        Args:
            sdt_pr: w:sdtPr element (may be None for a bare w:sdt)
            sdt_end_pr: w:sdtEndPr element or None

        Returns:
            ContentControlProperties carrying the verbatim property markup
        """
        props = ContentControlProperties(type=ContentControlType.UNKNOWN)
        if sdt_end_pr is not None:
            props.raw_end_properties = to_markup(sdt_end_pr)
        if sdt_pr is None:
            return props
        props.raw_properties = to_markup(sdt_pr)

        props.id = int_or_none(w_attr(sdt_pr.find(qn("w:id"))))
        props.tag = w_attr(sdt_pr.find(qn("w:tag")))
        props.alias = w_attr(sdt_pr.find(qn("w:alias")))

        lock = w_attr(sdt_pr.find(qn("w:lock")))
        if lock in _LOCKS:
            props.lock_control, props.lock_contents = _LOCKS[lock]

        placeholder = sdt_pr.find(qn("w:placeholder"))
        if placeholder is not None:
            props.placeholder = w_attr(placeholder.find(qn("w:docPart")))
        props.showing_placeholder = sdt_pr.find(qn("w:showingPlcHdr")) is not None

        binding = sdt_pr.find(qn("w:dataBinding"))
        if binding is not None:
            props.data_binding = DataBinding(
                xpath=w_attr(binding, "xpath") or "",
                store_item_id=w_attr(binding, "storeItemID"),
                prefix_mappings=w_attr(binding, "prefixMappings"),
            )

        appearance = _find_local(sdt_pr, "appearance")
        if appearance is not None:
            props.appearance = appearance.get(qn("w15:val")) or w_attr(appearance)
        color = sdt_pr.find(qn("w15:color"))
        if color is None:
            color = sdt_pr.find(qn("w:color"))
        if color is not None:
            props.color = color.get(qn("w15:val")) or w_attr(color)

        props.type = determine_type(sdt_pr)
        self._extract_type_details(sdt_pr, props)

        props.source_fingerprint = compute_fingerprint(props)
        logger.debug(f"Extracted content control {props.type.value} tag={props.tag!r} id={props.id}")
        return props

    def _extract_type_details(self, sdt_pr, props: ContentControlProperties) -> None:
        control_type = props.type
        if control_type == ContentControlType.DATE:
            date = sdt_pr.find(qn("w:date"))
            props.full_date = w_attr(date, "fullDate")
            props.date_format = w_attr(date.find(qn("w:dateFormat")))
            props.date_locale = w_attr(date.find(qn("w:lid")))
        elif control_type in (ContentControlType.DROP_DOWN_LIST, ContentControlType.COMBO_BOX):
            tag = "w:dropDownList" if control_type == ContentControlType.DROP_DOWN_LIST else "w:comboBox"
            container = sdt_pr.find(qn(tag))
            props.last_value = w_attr(container, "lastValue")
            for item in container.findall(qn("w:listItem")):
                display = w_attr(item, "displayText")
                value = w_attr(item, "value")
                props.list_items.append(
                    ContentControlListItem(
                        display_text=display if display is not None else (value or ""),
                        value=value if value is not None else (display or ""),
                    )
                )
        elif control_type == ContentControlType.CHECKBOX:
            checkbox = sdt_pr.find(qn("w14:checkbox"))
            checked = _w14(checkbox.find(qn("w14:checked")))
            props.checked = checked is not None and checked.lower() in ("1", "true")
            checked_state = checkbox.find(qn("w14:checkedState"))
            unchecked_state = checkbox.find(qn("w14:uncheckedState"))
            props.checked_symbol = _w14(checked_state)
            props.unchecked_symbol = _w14(unchecked_state)
        elif control_type == ContentControlType.BUILDING_BLOCK_GALLERY:
            doc_part_list = sdt_pr.find(qn("w:docPartList"))
            props.gallery = w_attr(doc_part_list.find(qn("w:docPartGallery")))
            props.category = w_attr(doc_part_list.find(qn("w:docPartCategory")))
        else:
            doc_part_obj = sdt_pr.find(qn("w:docPartObj"))
            if doc_part_obj is not None:
                props.gallery = w_attr(doc_part_obj.find(qn("w:docPartGallery")))
                props.category = w_attr(doc_part_obj.find(qn("w:docPartCategory")))
