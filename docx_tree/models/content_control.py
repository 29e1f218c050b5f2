"""
Content control (structured document tag) properties.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class ContentControlType(Enum):
    UNKNOWN = "unknown"
    RICH_TEXT = "richText"
    PLAIN_TEXT = "text"
    PICTURE = "picture"
    DATE = "date"
    DROP_DOWN_LIST = "dropDownList"
    COMBO_BOX = "comboBox"
    CHECKBOX = "checkbox"
    REPEATING_SECTION = "repeatingSection"
    REPEATING_SECTION_ITEM = "repeatingSectionItem"
    BUILDING_BLOCK_GALLERY = "docPartList"
    GROUP = "group"
    BIBLIOGRAPHY = "bibliography"
    CITATION = "citation"
    EQUATION = "equation"
    DOCUMENT_PROPERTY = "documentProperty"


@dataclass
class ContentControlListItem:
    display_text: str
    value: str


@dataclass
class DataBinding:
    xpath: str
    store_item_id: Optional[str] = None
    prefix_mappings: Optional[str] = None


@dataclass(eq=False)
class ContentControlProperties:
    """
    Properties of one w:sdt wrapper.

    One instance is shared by every node (block controls) or run (inline
    controls) the wrapper encloses, so identity marks which siblings were
    wrapped together.
    """

    type: ContentControlType = ContentControlType.RICH_TEXT
    id: Optional[int] = None
    tag: Optional[str] = None
    alias: Optional[str] = None
    placeholder: Optional[str] = None
    showing_placeholder: bool = False
    value: Optional[str] = field(default=None, metadata={"fingerprint": False})
    list_items: List[ContentControlListItem] = field(default_factory=list)
    last_value: Optional[str] = None
    lock_control: bool = False
    lock_contents: bool = False
    data_binding: Optional[DataBinding] = None
    date_format: Optional[str] = None
    date_locale: Optional[str] = None
    full_date: Optional[str] = None
    checked: Optional[bool] = None
    checked_symbol: Optional[str] = None
    unchecked_symbol: Optional[str] = None
    gallery: Optional[str] = None
    category: Optional[str] = None
    appearance: Optional[str] = None
    color: Optional[str] = None
    # Verbatim w:sdtPr / w:sdtEndPr and the state fingerprint at parse time.
    raw_properties: Optional[str] = field(default=None, repr=False, metadata={"fingerprint": False})
    raw_end_properties: Optional[str] = field(default=None, repr=False, metadata={"fingerprint": False})
    source_fingerprint: Optional[str] = field(default=None, repr=False, metadata={"fingerprint": False})

    @property
    def lock_value(self) -> Optional[str]:
        """The w:lock value matching the two lock flags."""
        if self.lock_control and self.lock_contents:
            return "sdtContentLocked"
        if self.lock_control:
            return "sdtLocked"
        if self.lock_contents:
            return "contentLocked"
        return None

    @property
    def is_document_property(self) -> bool:
        return self.type == ContentControlType.DOCUMENT_PROPERTY

    def find_list_item(self, text: str) -> Optional[ContentControlListItem]:
        """Find a list item by display text or value."""
        for item in self.list_items:
            if item.display_text == text:
                return item
        for item in self.list_items:
            if item.value == text:
                return item
        return None
