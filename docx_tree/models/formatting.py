"""
Formatting records.

Every numeric field keeps the unit it has in WordprocessingML: font sizes
in half-points, spacing, indents and widths in twentieths of a point
(twips), border widths in eighths of a point, drawing sizes in EMU. The
``*_points`` / ``*_inches`` properties are derived conveniences only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..utils.units import half_points_to_points, twips_to_points


@dataclass
class BorderFormatting:
    """One edge of a paragraph, table or cell border."""

    style: Optional[str] = None
    size: Optional[int] = None
    space: Optional[int] = None
    color: Optional[str] = None


@dataclass
class Borders:
    top: Optional[BorderFormatting] = None
    left: Optional[BorderFormatting] = None
    bottom: Optional[BorderFormatting] = None
    right: Optional[BorderFormatting] = None
    inside_h: Optional[BorderFormatting] = None
    inside_v: Optional[BorderFormatting] = None
    between: Optional[BorderFormatting] = None

    def is_empty(self) -> bool:
        return all(
            getattr(self, name) is None
            for name in ("top", "left", "bottom", "right", "inside_h", "inside_v", "between")
        )


@dataclass
class RunFormatting:
    """Character formatting of a run (w:rPr)."""

    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None
    underline_style: Optional[str] = None
    strike: Optional[bool] = None
    double_strike: Optional[bool] = None
    small_caps: Optional[bool] = None
    all_caps: Optional[bool] = None
    hidden: Optional[bool] = None
    color: Optional[str] = None
    highlight: Optional[str] = None
    shading_fill: Optional[str] = None
    font_ascii: Optional[str] = None
    font_h_ansi: Optional[str] = None
    font_east_asia: Optional[str] = None
    font_cs: Optional[str] = None
    size: Optional[int] = None
    size_cs: Optional[int] = None
    vertical_align: Optional[str] = None
    style_id: Optional[str] = None

    @property
    def size_points(self) -> Optional[float]:
        return half_points_to_points(self.size)

    @property
    def font_family(self) -> Optional[str]:
        return self.font_ascii or self.font_h_ansi or self.font_east_asia or self.font_cs


@dataclass
class ParagraphFormatting:
    """Paragraph formatting (w:pPr)."""

    style_id: Optional[str] = None
    alignment: Optional[str] = None
    spacing_before: Optional[int] = None
    spacing_after: Optional[int] = None
    line_spacing: Optional[int] = None
    line_rule: Optional[str] = None
    indent_left: Optional[int] = None
    indent_right: Optional[int] = None
    indent_first_line: Optional[int] = None
    indent_hanging: Optional[int] = None
    keep_next: Optional[bool] = None
    keep_lines: Optional[bool] = None
    page_break_before: Optional[bool] = None
    widow_control: Optional[bool] = None
    outline_level: Optional[int] = None
    numbering_id: Optional[str] = None
    numbering_level: Optional[int] = None
    shading_fill: Optional[str] = None
    borders: Optional[Borders] = None

    @property
    def spacing_before_points(self) -> Optional[float]:
        return twips_to_points(self.spacing_before)

    @property
    def spacing_after_points(self) -> Optional[float]:
        return twips_to_points(self.spacing_after)


@dataclass
class TableFormatting:
    """Table-level formatting (w:tblPr and w:tblGrid)."""

    style_id: Optional[str] = None
    width: Optional[int] = None
    width_type: Optional[str] = None
    alignment: Optional[str] = None
    indent: Optional[int] = None
    layout: Optional[str] = None
    borders: Optional[Borders] = None
    cell_margins: Dict[str, int] = field(default_factory=dict)
    grid_column_widths: List[int] = field(default_factory=list)


@dataclass
class TableRowFormatting:
    """Row formatting (w:trPr)."""

    height: Optional[int] = None
    height_rule: Optional[str] = None
    is_header: bool = False
    cant_split: Optional[bool] = None
    grid_before: int = 0
    grid_after: int = 0


@dataclass
class TableCellFormatting:
    """Cell formatting (w:tcPr)."""

    width: Optional[int] = None
    width_type: Optional[str] = None
    shading_fill: Optional[str] = None
    borders: Optional[Borders] = None
    vertical_alignment: Optional[str] = None
    vertical_merge: Optional[str] = None
    text_direction: Optional[str] = None
    no_wrap: Optional[bool] = None


class WrapType(Enum):
    """Text wrapping around a floating drawing."""

    NONE = "none"
    SQUARE = "square"
    TIGHT = "tight"
    THROUGH = "through"
    TOP_AND_BOTTOM = "topAndBottom"


@dataclass
class ImageFormatting:
    """Placement of a drawing (wp:inline or wp:anchor)."""

    is_inline: bool = True
    wrap_type: Optional[WrapType] = None
    wrap_text: Optional[str] = None
    distance_top: Optional[int] = None
    distance_bottom: Optional[int] = None
    distance_left: Optional[int] = None
    distance_right: Optional[int] = None
    horizontal_relative_from: Optional[str] = None
    horizontal_offset: Optional[int] = None
    horizontal_align: Optional[str] = None
    vertical_relative_from: Optional[str] = None
    vertical_offset: Optional[int] = None
    vertical_align: Optional[str] = None
    allow_overlap: Optional[bool] = None
    behind_document: Optional[bool] = None
    layout_in_cell: Optional[bool] = None
    locked: Optional[bool] = None
    relative_height: Optional[int] = None
