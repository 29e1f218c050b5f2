"""
Style catalog used for heading detection.

Only what heading resolution needs is read from styles.xml: each paragraph
style's id, name, outline level and basedOn parent.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional

from ..exceptions import ParseError
from ..utils.xml import child_val, int_or_none, parse_xml, qn, w_attr

logger = logging.getLogger(__name__)

MAX_HEADING_LEVEL = 9
BODY_TEXT_OUTLINE_LEVEL = 9

_HEADING_STYLE = re.compile(r"^heading\s*(\d+)$", re.IGNORECASE)


@dataclass
class StyleInfo:
    style_id: str
    name: Optional[str] = None
    outline_level: Optional[int] = None
    based_on: Optional[str] = None


def heading_level_from_style_id(style_id: Optional[str]) -> int:
    """
    Level encoded in a "HeadingN" style id.

    Returns:
        N for "HeadingN", 0 for any other style id

    Raises:
        ParseError: If N is outside 1-9
    """
    if not style_id:
        return 0
    match = _HEADING_STYLE.match(style_id)
    if not match:
        return 0
    level = int(match.group(1))
    if not 1 <= level <= MAX_HEADING_LEVEL:
        raise ParseError(f"Heading level {level} out of range", f"style {style_id}")
    return level


def heading_level_from_outline(outline_level: Optional[int], context: str = "") -> int:
    """
    Level for a w:outlineLvl value (0-based; 9 is body text).

    Raises:
        ParseError: If the value is outside 0-9
    """
    if outline_level is None:
        return 0
    if not 0 <= outline_level <= BODY_TEXT_OUTLINE_LEVEL:
        raise ParseError(f"Heading level {outline_level + 1} out of range", context or "outline level")
    if outline_level == BODY_TEXT_OUTLINE_LEVEL:
        return 0
    return outline_level + 1


class StyleCatalog:
    """Paragraph styles keyed by style id."""

    def __init__(self, styles: Optional[Dict[str, StyleInfo]] = None):
        self.styles: Dict[str, StyleInfo] = styles or {}

    @classmethod
    def from_xml(cls, data: Optional[bytes]) -> "StyleCatalog":
        catalog = cls()
        if not data:
            return catalog
        root = parse_xml(data, "styles")
        for style in root.iter(qn("w:style")):
            style_type = w_attr(style, "type")
            if style_type not in (None, "paragraph"):
                continue
            style_id = w_attr(style, "styleId")
            if not style_id:
                continue
            ppr = style.find(qn("w:pPr"))
            catalog.styles[style_id] = StyleInfo(
                style_id=style_id,
                name=child_val(style, "w:name"),
                outline_level=int_or_none(child_val(ppr, "w:outlineLvl")),
                based_on=child_val(style, "w:basedOn"),
            )
        logger.debug(f"Loaded {len(catalog.styles)} paragraph styles")
        return catalog

    def get(self, style_id: Optional[str]) -> Optional[StyleInfo]:
        if not style_id:
            return None
        return self.styles.get(style_id)

    def heading_level(self, style_id: Optional[str], direct_outline_level: Optional[int] = None) -> int:
        """
        Resolve the heading level of a paragraph.

        Order: "HeadingN" style id, the style's outline level, a basedOn of
        "HeadingN", then the paragraph's own outline level.

        Args:
            style_id: Paragraph style id (w:pStyle)
            direct_outline_level: w:outlineLvl from the paragraph's own pPr

        Returns:
            Heading level 1-9, or 0 for body text

        Raises:
            ParseError: If a resolved level falls outside 1-9
        """
        level = heading_level_from_style_id(style_id)
        if level:
            return level

        style = self.get(style_id)
        if style is not None:
            if style.outline_level is not None:
                level = heading_level_from_outline(style.outline_level, f"style {style.style_id}")
                if level:
                    return level
            elif style.name:
                level = heading_level_from_style_id(style.name)
                if level:
                    return level
            if style.based_on:
                level = heading_level_from_style_id(style.based_on)
                if level:
                    return level

        return heading_level_from_outline(direct_outline_level, "paragraph outline level")
