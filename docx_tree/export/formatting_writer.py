"""
Formatting writer.

Writes formatting records back into property elements (w:rPr, w:pPr,
w:tblPr, w:trPr, w:tcPr). When the element was read from a package, the
verbatim element is the starting point and only the properties whose
modelled value changed are rewritten, so unmodelled properties and the
spelling of unchanged ones survive. New children are inserted in schema
order.
"""

import logging
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..models.formatting import (
    BorderFormatting,
    Borders,
    ParagraphFormatting,
    RunFormatting,
    TableCellFormatting,
    TableFormatting,
    TableRowFormatting,
)
from ..parser.formatting_extractor import FormattingExtractor
from ..utils.xml import from_markup, local_name, make_element, qn, set_w_attr, w_attr

logger = logging.getLogger(__name__)

RUN_ORDER = (
    "rStyle", "rFonts", "b", "bCs", "i", "iCs", "caps", "smallCaps", "strike", "dstrike", "outline",
    "shadow", "emboss", "imprint", "noProof", "snapToGrid", "vanish", "webHidden", "color", "spacing",
    "w", "kern", "position", "sz", "szCs", "highlight", "u", "effect", "bdr", "shd", "fitText",
    "vertAlign", "rtl", "cs", "em", "lang", "eastAsianLayout", "specVanish", "oMath", "rPrChange",
)
PARAGRAPH_ORDER = (
    "pStyle", "keepNext", "keepLines", "pageBreakBefore", "framePr", "widowControl", "numPr",
    "suppressLineNumbers", "pBdr", "shd", "tabs", "suppressAutoHyphens", "kinsoku", "wordWrap",
    "overflowPunct", "topLinePunct", "autoSpaceDE", "autoSpaceDN", "bidi", "adjustRightInd",
    "snapToGrid", "spacing", "ind", "contextualSpacing", "mirrorIndents", "suppressOverlap", "jc",
    "textDirection", "textAlignment", "textboxTightWrap", "outlineLvl", "divId", "cnfStyle", "rPr",
    "sectPr", "pPrChange",
)
TABLE_ORDER = (
    "tblStyle", "tblpPr", "tblOverlap", "bidiVisual", "tblStyleRowBandSize", "tblStyleColBandSize",
    "tblW", "jc", "tblCellSpacing", "tblInd", "tblBorders", "shd", "tblLayout", "tblCellMar",
    "tblLook", "tblCaption", "tblDescription", "tblPrChange",
)
ROW_ORDER = (
    "cnfStyle", "divId", "gridBefore", "gridAfter", "wBefore", "wAfter", "cantSplit", "trHeight",
    "tblHeader", "tblCellSpacing", "jc", "hidden", "ins", "del", "trPrChange",
)
CELL_ORDER = (
    "cnfStyle", "tcW", "gridSpan", "hMerge", "vMerge", "tcBorders", "shd", "noWrap", "tcMar",
    "textDirection", "tcFitText", "vAlign", "hideMark", "headers", "cellIns", "cellDel",
    "cellMerge", "tcPrChange",
)
BORDER_ORDER = ("top", "left", "start", "bottom", "right", "end", "insideH", "insideV", "between", "bar")
MARGIN_ORDER = ("top", "left", "start", "bottom", "right", "end")

_BORDER_TAGS = (
    ("top", "top"),
    ("left", "left"),
    ("bottom", "bottom"),
    ("right", "right"),
    ("inside_h", "insideH"),
    ("inside_v", "insideV"),
    ("between", "between"),
)
_BORDER_ALIASES = {"left": ("left", "start"), "right": ("right", "end")}


# Element helpers


def insert_ordered(parent, child, order: Sequence[str]) -> None:
    name = local_name(child)
    position = order.index(name) if name in order else len(order)
    for index, existing in enumerate(parent):
        existing_name = local_name(existing)
        if existing_name in order and order.index(existing_name) > position:
            parent.insert(index, child)
            return
    parent.append(child)


def ensure_child(parent, tag: str, order: Sequence[str], create: bool = True):
    element = parent.find(qn(f"w:{tag}"))
    if element is None and create:
        element = make_element(f"w:{tag}")
        insert_ordered(parent, element, order)
    return element


def remove_children(parent, tag: str) -> None:
    for element in parent.findall(qn(f"w:{tag}")):
        parent.remove(element)


def set_attr(element, name: str, value) -> None:
    if value is None:
        element.attrib.pop(qn(f"w:{name}"), None)
    else:
        set_w_attr(element, name, value)


def _set_val(parent, tag: str, value, order: Sequence[str], attr: str = "val") -> None:
    """Set (or remove, for None) a single-valued property child."""
    if value is None:
        remove_children(parent, tag)
        return
    set_attr(ensure_child(parent, tag, order), attr, value)


def _set_on_off(parent, tag: str, value: Optional[bool], order: Sequence[str]) -> None:
    if value is None:
        remove_children(parent, tag)
        return
    element = ensure_child(parent, tag, order)
    set_attr(element, "val", None if value else "0")


def _set_attrs(parent, tag: str, values: Iterable[Tuple[str, object]], order: Sequence[str]) -> None:
    """Set several attributes of one child, dropping the child when none remain."""
    element = ensure_child(parent, tag, order)
    for name, value in values:
        set_attr(element, name, value)
    if not element.attrib and len(element) == 0:
        parent.remove(element)


def _set_shading(parent, fill: Optional[str], order: Sequence[str]) -> None:
    if fill is None:
        remove_children(parent, "shd")
        return
    shading = ensure_child(parent, "shd", order)
    if w_attr(shading) is None:
        set_attr(shading, "val", "clear")
    if w_attr(shading, "color") is None:
        set_attr(shading, "color", "auto")
    set_attr(shading, "fill", fill)


def _write_border(element, border: BorderFormatting) -> None:
    set_attr(element, "val", border.style or "single")
    set_attr(element, "sz", border.size)
    set_attr(element, "space", border.space)
    set_attr(element, "color", border.color)


def _set_borders(parent, tag: str, borders: Optional[Borders], old: Optional[Borders], order: Sequence[str]) -> None:
    if borders is None or borders.is_empty():
        remove_children(parent, tag)
        return
    group = ensure_child(parent, tag, order)
    for attribute, edge_tag in _BORDER_TAGS:
        new_edge = getattr(borders, attribute)
        old_edge = getattr(old, attribute) if old is not None else None
        if new_edge == old_edge:
            continue
        aliases = _BORDER_ALIASES.get(attribute, (edge_tag,))
        existing = None
        for alias in aliases:
            existing = group.find(qn(f"w:{alias}"))
            if existing is not None:
                break
        if new_edge is None:
            if existing is not None:
                group.remove(existing)
            continue
        if existing is None:
            existing = make_element(f"w:{edge_tag}")
            insert_ordered(group, existing, BORDER_ORDER)
        _write_border(existing, new_edge)


# Field appliers: (fields, apply(element, new, old))

Applier = Tuple[Tuple[str, ...], Callable]


def _simple(field_name: str, tag: str, order: Sequence[str], attr: str = "val") -> Applier:
    return (field_name,), lambda element, new, old: _set_val(element, tag, getattr(new, field_name), order, attr)


def _toggle(field_name: str, tag: str, order: Sequence[str]) -> Applier:
    return (field_name,), lambda element, new, old: _set_on_off(element, tag, getattr(new, field_name), order)


def _apply_underline(element, new: RunFormatting, old) -> None:
    if new.underline is None and new.underline_style is None:
        remove_children(element, "u")
        return
    style = new.underline_style
    if new.underline is False:
        style = "none"
    elif new.underline and (style is None or style == "none"):
        style = "single"
    _set_val(element, "u", style, RUN_ORDER)


def _apply_fonts(element, new: RunFormatting, old) -> None:
    _set_attrs(
        element,
        "rFonts",
        (
            ("ascii", new.font_ascii),
            ("hAnsi", new.font_h_ansi),
            ("eastAsia", new.font_east_asia),
            ("cs", new.font_cs),
        ),
        RUN_ORDER,
    )


RUN_APPLIERS: List[Applier] = [
    _simple("style_id", "rStyle", RUN_ORDER),
    _toggle("bold", "b", RUN_ORDER),
    _toggle("italic", "i", RUN_ORDER),
    _toggle("strike", "strike", RUN_ORDER),
    _toggle("double_strike", "dstrike", RUN_ORDER),
    _toggle("small_caps", "smallCaps", RUN_ORDER),
    _toggle("all_caps", "caps", RUN_ORDER),
    _toggle("hidden", "vanish", RUN_ORDER),
    (("underline", "underline_style"), _apply_underline),
    _simple("color", "color", RUN_ORDER),
    _simple("highlight", "highlight", RUN_ORDER),
    (("shading_fill",), lambda element, new, old: _set_shading(element, new.shading_fill, RUN_ORDER)),
    (("font_ascii", "font_h_ansi", "font_east_asia", "font_cs"), _apply_fonts),
    _simple("size", "sz", RUN_ORDER),
    _simple("size_cs", "szCs", RUN_ORDER),
    _simple("vertical_align", "vertAlign", RUN_ORDER),
]


def _apply_spacing(element, new: ParagraphFormatting, old) -> None:
    _set_attrs(
        element,
        "spacing",
        (
            ("before", new.spacing_before),
            ("after", new.spacing_after),
            ("line", new.line_spacing),
            ("lineRule", new.line_rule),
        ),
        PARAGRAPH_ORDER,
    )


def _apply_indent(element, new: ParagraphFormatting, old) -> None:
    indent = element.find(qn("w:ind"))
    left = "start" if indent is not None and w_attr(indent, "start") is not None else "left"
    right = "end" if indent is not None and w_attr(indent, "end") is not None else "right"
    _set_attrs(
        element,
        "ind",
        (
            (left, new.indent_left),
            (right, new.indent_right),
            ("firstLine", new.indent_first_line),
            ("hanging", new.indent_hanging),
        ),
        PARAGRAPH_ORDER,
    )


def _apply_numbering(element, new: ParagraphFormatting, old) -> None:
    if new.numbering_id is None and new.numbering_level is None:
        remove_children(element, "numPr")
        return
    numbering = ensure_child(element, "numPr", PARAGRAPH_ORDER)
    _set_val(numbering, "ilvl", new.numbering_level, ("ilvl", "numId"))
    _set_val(numbering, "numId", new.numbering_id, ("ilvl", "numId"))


PARAGRAPH_APPLIERS: List[Applier] = [
    _simple("style_id", "pStyle", PARAGRAPH_ORDER),
    _simple("alignment", "jc", PARAGRAPH_ORDER),
    (("spacing_before", "spacing_after", "line_spacing", "line_rule"), _apply_spacing),
    (("indent_left", "indent_right", "indent_first_line", "indent_hanging"), _apply_indent),
    _toggle("keep_next", "keepNext", PARAGRAPH_ORDER),
    _toggle("keep_lines", "keepLines", PARAGRAPH_ORDER),
    _toggle("page_break_before", "pageBreakBefore", PARAGRAPH_ORDER),
    _toggle("widow_control", "widowControl", PARAGRAPH_ORDER),
    _simple("outline_level", "outlineLvl", PARAGRAPH_ORDER),
    (("numbering_id", "numbering_level"), _apply_numbering),
    (("shading_fill",), lambda element, new, old: _set_shading(element, new.shading_fill, PARAGRAPH_ORDER)),
    (("borders",), lambda element, new, old: _set_borders(element, "pBdr", new.borders, old.borders, PARAGRAPH_ORDER)),
]


def _apply_table_width(element, new: TableFormatting, old) -> None:
    _set_attrs(element, "tblW", (("w", new.width), ("type", new.width_type)), TABLE_ORDER)


def _apply_table_indent(element, new: TableFormatting, old) -> None:
    if new.indent is None:
        remove_children(element, "tblInd")
        return
    indent = ensure_child(element, "tblInd", TABLE_ORDER)
    set_attr(indent, "w", new.indent)
    if w_attr(indent, "type") is None:
        set_attr(indent, "type", "dxa")


def _apply_cell_margins(element, new: TableFormatting, old) -> None:
    if not new.cell_margins:
        remove_children(element, "tblCellMar")
        return
    margins = ensure_child(element, "tblCellMar", TABLE_ORDER)
    for side in list(margins):
        if local_name(side) not in new.cell_margins:
            margins.remove(side)
    for side, value in new.cell_margins.items():
        edge = ensure_child(margins, side, MARGIN_ORDER)
        set_attr(edge, "w", value)
        if w_attr(edge, "type") is None:
            set_attr(edge, "type", "dxa")


TABLE_APPLIERS: List[Applier] = [
    _simple("style_id", "tblStyle", TABLE_ORDER),
    (("width", "width_type"), _apply_table_width),
    _simple("alignment", "jc", TABLE_ORDER),
    (("indent",), _apply_table_indent),
    _simple("layout", "tblLayout", TABLE_ORDER, "type"),
    (("borders",), lambda element, new, old: _set_borders(element, "tblBorders", new.borders, old.borders, TABLE_ORDER)),
    (("cell_margins",), _apply_cell_margins),
]


def _apply_row_height(element, new: TableRowFormatting, old) -> None:
    _set_attrs(element, "trHeight", (("val", new.height), ("hRule", new.height_rule)), ROW_ORDER)


ROW_APPLIERS: List[Applier] = [
    (("height", "height_rule"), _apply_row_height),
    (("is_header",), lambda element, new, old: _set_on_off(element, "tblHeader", True if new.is_header else None, ROW_ORDER)),
    _toggle("cant_split", "cantSplit", ROW_ORDER),
    (("grid_before",), lambda element, new, old: _set_val(element, "gridBefore", new.grid_before or None, ROW_ORDER)),
    (("grid_after",), lambda element, new, old: _set_val(element, "gridAfter", new.grid_after or None, ROW_ORDER)),
]


def _apply_cell_width(element, new: TableCellFormatting, old) -> None:
    _set_attrs(element, "tcW", (("w", new.width), ("type", new.width_type)), CELL_ORDER)


CELL_APPLIERS: List[Applier] = [
    (("width", "width_type"), _apply_cell_width),
    (("shading_fill",), lambda element, new, old: _set_shading(element, new.shading_fill, CELL_ORDER)),
    (("borders",), lambda element, new, old: _set_borders(element, "tcBorders", new.borders, old.borders, CELL_ORDER)),
    _simple("vertical_alignment", "vAlign", CELL_ORDER),
    _simple("text_direction", "textDirection", CELL_ORDER),
    _toggle("no_wrap", "noWrap", CELL_ORDER),
]


class FormattingWriter:
    """Patches or creates property elements from formatting records."""

    def __init__(self, extractor: Optional[FormattingExtractor] = None):
        self.extractor = extractor or FormattingExtractor()

    def _patch(self, tag: str, raw: Optional[str], new, old, appliers: List[Applier]):
        element = from_markup(raw) if raw else make_element(tag)
        changed = []
        for field_names, apply in appliers:
            if any(getattr(new, name) != getattr(old, name) for name in field_names):
                apply(element, new, old)
                changed.extend(field_names)
        if changed:
            logger.debug(f"Patched {tag}: {', '.join(changed)}")
        return element

    def run_properties(self, formatting: RunFormatting, raw: Optional[str] = None):
        """
        Build the w:rPr for a run.

        Args:
            formatting: Desired run formatting
            raw: Verbatim w:rPr the run was read with, if any

        Returns:
            w:rPr element, or None when it would be empty
        """
        old, _ = self.extractor.extract_run_formatting(from_markup(raw) if raw else None)
        element = self._patch("w:rPr", raw, formatting, old, RUN_APPLIERS)
        return element if raw or len(element) else None

    def paragraph_properties(self, formatting: Optional[ParagraphFormatting], raw: Optional[str] = None):
        """
        Build the w:pPr for a paragraph.

        Returns:
            w:pPr element, or None when it would be empty
        """
        formatting = formatting or ParagraphFormatting()
        old, _ = self.extractor.extract_paragraph_formatting(from_markup(raw) if raw else None)
        element = self._patch("w:pPr", raw, formatting, old, PARAGRAPH_APPLIERS)
        return element if len(element) or raw else None

    def table_properties(self, formatting: TableFormatting, raw: Optional[str] = None):
        old, _ = self.extractor.extract_table_formatting(from_markup(raw) if raw else None)
        return self._patch("w:tblPr", raw, formatting, old, TABLE_APPLIERS)

    def table_grid(self, formatting: TableFormatting, column_count: int):
        """w:tblGrid with one column per grid position."""
        widths = list(formatting.grid_column_widths[:column_count])
        if len(widths) < column_count:
            filler = int(sum(widths) / len(widths)) if widths else 2000
            widths.extend([filler] * (column_count - len(widths)))
        grid = make_element("w:tblGrid")
        for width in widths:
            column = make_element("w:gridCol")
            set_attr(column, "w", width)
            grid.append(column)
        return grid

    def row_properties(self, formatting: TableRowFormatting, raw: Optional[str] = None):
        old, _ = self.extractor.extract_row_formatting(from_markup(raw) if raw else None)
        element = self._patch("w:trPr", raw, formatting, old, ROW_APPLIERS)
        return element if raw or len(element) else None

    def cell_properties(
        self,
        formatting: TableCellFormatting,
        raw: Optional[str] = None,
        grid_span: int = 1,
        vertical_merge: Optional[str] = None,
    ):
        """
        Build the w:tcPr for a cell.

        Args:
            formatting: Desired cell formatting
            raw: Verbatim w:tcPr, if any
            grid_span: Columns covered by the cell
            vertical_merge: "restart", "continue" or None

        Returns:
            w:tcPr element, or None when it would be empty
        """
        old, old_span, _ = self.extractor.extract_cell_formatting(from_markup(raw) if raw else None)
        element = self._patch("w:tcPr", raw, formatting, old, CELL_APPLIERS)
        if grid_span != old_span:
            _set_val(element, "gridSpan", grid_span if grid_span > 1 else None, CELL_ORDER)
        if vertical_merge != old.vertical_merge:
            if vertical_merge is None:
                remove_children(element, "vMerge")
            else:
                merge = ensure_child(element, "vMerge", CELL_ORDER)
                set_attr(merge, "val", "restart" if vertical_merge == "restart" else None)
        return element if raw or len(element) else None

