"""
Formatting extractor.

Maps property elements (w:rPr, w:pPr, w:tblPr, w:trPr, w:tcPr, drawing
containers) to typed formatting records. Properties outside the model are
reported as FidelityGap records; the caller keeps the verbatim markup so
nothing is lost on write.
"""

import logging
from typing import List, Optional, Tuple

from ..exceptions import FidelityGap
from ..models.formatting import (
    BorderFormatting,
    Borders,
    ImageFormatting,
    ParagraphFormatting,
    RunFormatting,
    TableCellFormatting,
    TableFormatting,
    TableRowFormatting,
    WrapType,
)
from ..utils.xml import NAMESPACES, child_val, int_or_none, local_name, on_off, prefixed_name, qn, w_attr

logger = logging.getLogger(__name__)

_W_PREFIX = "{" + NAMESPACES["w"] + "}"

RUN_PROPERTIES = frozenset(
    {
        "rStyle", "b", "i", "u", "strike", "dstrike", "smallCaps", "caps", "vanish",
        "color", "highlight", "shd", "rFonts", "sz", "szCs", "vertAlign",
    }
)
PARAGRAPH_PROPERTIES = frozenset(
    {
        "pStyle", "jc", "spacing", "ind", "keepNext", "keepLines", "pageBreakBefore",
        "widowControl", "outlineLvl", "numPr", "shd", "pBdr",
    }
)
TABLE_PROPERTIES = frozenset({"tblStyle", "tblW", "jc", "tblInd", "tblLayout", "tblBorders", "tblCellMar"})
ROW_PROPERTIES = frozenset({"trHeight", "tblHeader", "cantSplit", "gridBefore", "gridAfter"})
CELL_PROPERTIES = frozenset(
    {"tcW", "gridSpan", "vMerge", "vAlign", "shd", "tcBorders", "textDirection", "noWrap"}
)

_BORDER_EDGES = (
    ("top", "top"),
    ("left", "left"),
    ("start", "left"),
    ("bottom", "bottom"),
    ("right", "right"),
    ("end", "right"),
    ("insideH", "inside_h"),
    ("insideV", "inside_v"),
    ("between", "between"),
)

_WRAP_TYPES = {
    "wrapNone": WrapType.NONE,
    "wrapSquare": WrapType.SQUARE,
    "wrapTight": WrapType.TIGHT,
    "wrapThrough": WrapType.THROUGH,
    "wrapTopAndBottom": WrapType.TOP_AND_BOTTOM,
}


def _unmodeled(element, modeled, owner: str) -> List[FidelityGap]:
    if element is None:
        return []
    gaps = []
    for child in element:
        if not isinstance(child.tag, str):
            continue
        if child.tag.startswith(_W_PREFIX) and local_name(child) in modeled:
            continue
        gaps.append(FidelityGap(element=owner, property=prefixed_name(child)))
    return gaps


def _on_off_child(parent, tag: str) -> Optional[bool]:
    return on_off(parent.find(qn(tag)))


class FormattingExtractor:
    """Stateless mapping from property elements to formatting records."""

    def extract_run_formatting(self, rpr) -> Tuple[RunFormatting, List[FidelityGap]]:
        """
        Extract character formatting.

        Args:
            rpr: w:rPr element or None

        Returns:
            (RunFormatting, unmodelled properties)
        """
        formatting = RunFormatting()
        if rpr is None:
            return formatting, []

        formatting.style_id = child_val(rpr, "w:rStyle")
        formatting.bold = _on_off_child(rpr, "w:b")
        formatting.italic = _on_off_child(rpr, "w:i")
        formatting.strike = _on_off_child(rpr, "w:strike")
        formatting.double_strike = _on_off_child(rpr, "w:dstrike")
        formatting.small_caps = _on_off_child(rpr, "w:smallCaps")
        formatting.all_caps = _on_off_child(rpr, "w:caps")
        formatting.hidden = _on_off_child(rpr, "w:vanish")

        underline = rpr.find(qn("w:u"))
        if underline is not None:
            style = w_attr(underline) or "single"
            formatting.underline = style != "none"
            formatting.underline_style = style

        formatting.color = child_val(rpr, "w:color")
        formatting.highlight = child_val(rpr, "w:highlight")
        formatting.shading_fill = child_val(rpr, "w:shd", "fill")

        fonts = rpr.find(qn("w:rFonts"))
        if fonts is not None:
            formatting.font_ascii = w_attr(fonts, "ascii")
            formatting.font_h_ansi = w_attr(fonts, "hAnsi")
            formatting.font_east_asia = w_attr(fonts, "eastAsia")
            formatting.font_cs = w_attr(fonts, "cs")

        formatting.size = int_or_none(child_val(rpr, "w:sz"))
        formatting.size_cs = int_or_none(child_val(rpr, "w:szCs"))
        formatting.vertical_align = child_val(rpr, "w:vertAlign")

        return formatting, _unmodeled(rpr, RUN_PROPERTIES, "w:rPr")

    def extract_paragraph_formatting(self, ppr) -> Tuple[ParagraphFormatting, List[FidelityGap]]:
        """
        Extract paragraph formatting.

        Args:
            ppr: w:pPr element or None

        Returns:
            (ParagraphFormatting, unmodelled properties)
        """
        formatting = ParagraphFormatting()
        if ppr is None:
            return formatting, []

        formatting.style_id = child_val(ppr, "w:pStyle")
        formatting.alignment = child_val(ppr, "w:jc")

        spacing = ppr.find(qn("w:spacing"))
        if spacing is not None:
            formatting.spacing_before = int_or_none(w_attr(spacing, "before"))
            formatting.spacing_after = int_or_none(w_attr(spacing, "after"))
            formatting.line_spacing = int_or_none(w_attr(spacing, "line"))
            formatting.line_rule = w_attr(spacing, "lineRule")

        indent = ppr.find(qn("w:ind"))
        if indent is not None:
            formatting.indent_left = int_or_none(w_attr(indent, "left") or w_attr(indent, "start"))
            formatting.indent_right = int_or_none(w_attr(indent, "right") or w_attr(indent, "end"))
            formatting.indent_first_line = int_or_none(w_attr(indent, "firstLine"))
            formatting.indent_hanging = int_or_none(w_attr(indent, "hanging"))

        formatting.keep_next = _on_off_child(ppr, "w:keepNext")
        formatting.keep_lines = _on_off_child(ppr, "w:keepLines")
        formatting.page_break_before = _on_off_child(ppr, "w:pageBreakBefore")
        formatting.widow_control = _on_off_child(ppr, "w:widowControl")
        formatting.outline_level = int_or_none(child_val(ppr, "w:outlineLvl"))

        numbering = ppr.find(qn("w:numPr"))
        if numbering is not None:
            formatting.numbering_id = child_val(numbering, "w:numId")
            formatting.numbering_level = int_or_none(child_val(numbering, "w:ilvl"))

        formatting.shading_fill = child_val(ppr, "w:shd", "fill")
        borders = ppr.find(qn("w:pBdr"))
        if borders is not None:
            formatting.borders = self.extract_borders(borders)

        return formatting, _unmodeled(ppr, PARAGRAPH_PROPERTIES, "w:pPr")

    def extract_border(self, element) -> Optional[BorderFormatting]:
        if element is None:
            return None
        return BorderFormatting(
            style=w_attr(element),
            size=int_or_none(w_attr(element, "sz")),
            space=int_or_none(w_attr(element, "space")),
            color=w_attr(element, "color"),
        )

    def extract_borders(self, element) -> Optional[Borders]:
        """Extract a border group (w:pBdr, w:tblBorders, w:tcBorders)."""
        if element is None:
            return None
        borders = Borders()
        for tag, attribute in _BORDER_EDGES:
            edge = element.find(qn(f"w:{tag}"))
            if edge is not None and getattr(borders, attribute) is None:
                setattr(borders, attribute, self.extract_border(edge))
        return borders

    def extract_table_formatting(self, tbl_pr, tbl_grid=None) -> Tuple[TableFormatting, List[FidelityGap]]:
        """
        Extract table formatting and grid column widths.

        Args:
            tbl_pr: w:tblPr element or None
            tbl_grid: w:tblGrid element or None

        Returns:
            (TableFormatting, unmodelled properties)
        """
        formatting = TableFormatting()
        if tbl_grid is not None:
            formatting.grid_column_widths = [
                int_or_none(w_attr(column, "w")) or 0 for column in tbl_grid.findall(qn("w:gridCol"))
            ]
        if tbl_pr is None:
            return formatting, []

        formatting.style_id = child_val(tbl_pr, "w:tblStyle")
        width = tbl_pr.find(qn("w:tblW"))
        if width is not None:
            formatting.width = int_or_none(w_attr(width, "w"))
            formatting.width_type = w_attr(width, "type")
        formatting.alignment = child_val(tbl_pr, "w:jc")
        formatting.indent = int_or_none(child_val(tbl_pr, "w:tblInd", "w"))
        formatting.layout = child_val(tbl_pr, "w:tblLayout", "type")
        borders = tbl_pr.find(qn("w:tblBorders"))
        if borders is not None:
            formatting.borders = self.extract_borders(borders)
        margins = tbl_pr.find(qn("w:tblCellMar"))
        if margins is not None:
            for margin in margins:
                value = int_or_none(w_attr(margin, "w"))
                if value is not None:
                    formatting.cell_margins[local_name(margin)] = value

        return formatting, _unmodeled(tbl_pr, TABLE_PROPERTIES, "w:tblPr")

    def extract_row_formatting(self, tr_pr) -> Tuple[TableRowFormatting, List[FidelityGap]]:
        formatting = TableRowFormatting()
        if tr_pr is None:
            return formatting, []
        height = tr_pr.find(qn("w:trHeight"))
        if height is not None:
            formatting.height = int_or_none(w_attr(height))
            formatting.height_rule = w_attr(height, "hRule")
        formatting.is_header = bool(_on_off_child(tr_pr, "w:tblHeader"))
        formatting.cant_split = _on_off_child(tr_pr, "w:cantSplit")
        formatting.grid_before = int_or_none(child_val(tr_pr, "w:gridBefore")) or 0
        formatting.grid_after = int_or_none(child_val(tr_pr, "w:gridAfter")) or 0
        return formatting, _unmodeled(tr_pr, ROW_PROPERTIES, "w:trPr")

    def extract_cell_formatting(self, tc_pr) -> Tuple[TableCellFormatting, int, List[FidelityGap]]:
        """
        Extract cell formatting.

        Returns:
            (TableCellFormatting, grid span, unmodelled properties)
        """
        formatting = TableCellFormatting()
        if tc_pr is None:
            return formatting, 1, []
        width = tc_pr.find(qn("w:tcW"))
        if width is not None:
            formatting.width = int_or_none(w_attr(width, "w"))
            formatting.width_type = w_attr(width, "type")
        grid_span = int_or_none(child_val(tc_pr, "w:gridSpan")) or 1
        merge = tc_pr.find(qn("w:vMerge"))
        if merge is not None:
            formatting.vertical_merge = w_attr(merge) or "continue"
        formatting.vertical_alignment = child_val(tc_pr, "w:vAlign")
        formatting.shading_fill = child_val(tc_pr, "w:shd", "fill")
        borders = tc_pr.find(qn("w:tcBorders"))
        if borders is not None:
            formatting.borders = self.extract_borders(borders)
        formatting.text_direction = child_val(tc_pr, "w:textDirection")
        formatting.no_wrap = _on_off_child(tc_pr, "w:noWrap")
        return formatting, grid_span, _unmodeled(tc_pr, CELL_PROPERTIES, "w:tcPr")

    def extract_image_formatting(self, container) -> ImageFormatting:
        """
        Extract placement from a wp:inline or wp:anchor element.

        Distances and offsets stay in EMU.
        """
        formatting = ImageFormatting(is_inline=local_name(container) == "inline")
        formatting.distance_top = int_or_none(container.get("distT"))
        formatting.distance_bottom = int_or_none(container.get("distB"))
        formatting.distance_left = int_or_none(container.get("distL"))
        formatting.distance_right = int_or_none(container.get("distR"))
        if formatting.is_inline:
            return formatting

        formatting.allow_overlap = _flag(container.get("allowOverlap"))
        formatting.behind_document = _flag(container.get("behindDoc"))
        formatting.layout_in_cell = _flag(container.get("layoutInCell"))
        formatting.locked = _flag(container.get("locked"))
        formatting.relative_height = int_or_none(container.get("relativeHeight"))

        horizontal = container.find(qn("wp:positionH"))
        if horizontal is not None:
            formatting.horizontal_relative_from = horizontal.get("relativeFrom")
            offset = horizontal.find(qn("wp:posOffset"))
            align = horizontal.find(qn("wp:align"))
            formatting.horizontal_offset = int_or_none(offset.text) if offset is not None else None
            formatting.horizontal_align = align.text if align is not None else None
        vertical = container.find(qn("wp:positionV"))
        if vertical is not None:
            formatting.vertical_relative_from = vertical.get("relativeFrom")
            offset = vertical.find(qn("wp:posOffset"))
            align = vertical.find(qn("wp:align"))
            formatting.vertical_offset = int_or_none(offset.text) if offset is not None else None
            formatting.vertical_align = align.text if align is not None else None

        for child in container:
            wrap_type = _WRAP_TYPES.get(local_name(child))
            if wrap_type is not None:
                formatting.wrap_type = wrap_type
                formatting.wrap_text = child.get("wrapText")
                break
        return formatting


def _flag(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.lower() in ("1", "true", "on")
