"""
Table extraction: w:tbl to a TableData grid.

Cell content is handed back to the tree builder, so paragraphs, headings,
lists and nested tables inside a cell are built by the same algorithm as the
body.
"""

import logging
from typing import Callable, List, Optional, Tuple

from .content_control_extractor import ContentControlExtractor
from .formatting_extractor import FormattingExtractor
from ..exceptions import FidelityGap
from ..models.content_control import ContentControlProperties
from ..models.source import LooseMarkup
from ..models.table import TableCell, TableData, TableRow
from ..utils.xml import prefixed_name, qn, to_markup

logger = logging.getLogger(__name__)


class TableExtractor:
    """
    Builds TableData from w:tbl elements.

    Args:
        build_cell: Called with a new TableCell and its content elements;
            fills the cell's children
        register_control: Called with every row- or cell-level content control
    """

    def __init__(
        self,
        build_cell: Callable[[TableCell, list], None],
        formatting_extractor: Optional[FormattingExtractor] = None,
        control_extractor: Optional[ContentControlExtractor] = None,
        register_control: Optional[Callable[[ContentControlProperties], None]] = None,
    ):
        self.build_cell = build_cell
        self.formatting = formatting_extractor or FormattingExtractor()
        self.controls = control_extractor or ContentControlExtractor()
        self.register_control = register_control

    def extract(self, table_element) -> Tuple[TableData, List[FidelityGap]]:
        """
        Extract a table.

        Args:
            table_element: w:tbl element

        Returns:
            (TableData, unmodelled table, row and cell properties)
        """
        tbl_pr = table_element.find(qn("w:tblPr"))
        formatting, gaps = self.formatting.extract_table_formatting(tbl_pr, table_element.find(qn("w:tblGrid")))
        table = TableData(formatting=formatting, raw_properties=to_markup(tbl_pr) if tbl_pr is not None else None)

        pending: List[LooseMarkup] = []
        self._extract_rows(table_element, table, [], pending, gaps)
        table.trailing_markup = pending

        row_widths = [row.effective_column_count for row in table.rows]
        table.column_count = max([len(formatting.grid_column_widths)] + row_widths)
        self._compute_row_spans(table)

        logger.debug(f"Extracted table with {table.row_count} rows and {table.column_count} columns")
        return table, gaps

    def _extract_rows(self, parent, table: TableData, controls, pending: List[LooseMarkup], gaps) -> None:
        for child in parent:
            if not isinstance(child.tag, str):
                continue
            name = prefixed_name(child)
            if name in ("w:tblPr", "w:tblGrid"):
                continue
            if name == "w:tr":
                self._extract_row(child, table, controls, pending, gaps)
                pending.clear()
            elif name == "w:sdt" and child.find(qn("w:sdtContent")) is not None:
                properties = self._wrapper_properties(child)
                count = table.row_count
                mark = len(pending)
                self._extract_rows(child.find(qn("w:sdtContent")), table, list(controls) + [properties], pending, gaps)
                if table.row_count == count:
                    del pending[mark:]
                    pending.append(LooseMarkup(to_markup(child), len(controls)))
                elif self.register_control is not None:
                    self.register_control(properties)
            else:
                pending.append(LooseMarkup(to_markup(child), len(controls)))

    def _extract_row(self, element, table: TableData, controls, pending: List[LooseMarkup], gaps) -> None:
        tr_pr = element.find(qn("w:trPr"))
        formatting, row_gaps = self.formatting.extract_row_formatting(tr_pr)
        gaps.extend(row_gaps)
        row = TableRow(
            index=table.row_count,
            formatting=formatting,
            raw_properties=to_markup(tr_pr) if tr_pr is not None else None,
            raw_attributes=dict(element.attrib),
        )
        exceptions = element.find(qn("w:tblPrEx"))
        if exceptions is not None:
            row.raw_exceptions = to_markup(exceptions)
        row.content_controls = list(controls)
        row.preceding_markup = list(pending)

        cell_pending: List[LooseMarkup] = []
        self._extract_cells(element, row, [], cell_pending, formatting.grid_before, gaps)
        row.trailing_markup = cell_pending
        table.rows.append(row)

    def _extract_cells(self, parent, row: TableRow, controls, pending: List[LooseMarkup], column: int, gaps) -> int:
        for child in parent:
            if not isinstance(child.tag, str):
                continue
            name = prefixed_name(child)
            if name in ("w:trPr", "w:tblPrEx"):
                continue
            if name == "w:tc":
                cell = self._extract_cell(child, row, column, controls, pending, gaps)
                pending.clear()
                column += cell.col_span
            elif name == "w:sdt" and child.find(qn("w:sdtContent")) is not None:
                properties = self._wrapper_properties(child)
                count = len(row.cells)
                mark = len(pending)
                column = self._extract_cells(
                    child.find(qn("w:sdtContent")), row, list(controls) + [properties], pending, column, gaps
                )
                if len(row.cells) == count:
                    del pending[mark:]
                    pending.append(LooseMarkup(to_markup(child), len(controls)))
                elif self.register_control is not None:
                    self.register_control(properties)
            else:
                pending.append(LooseMarkup(to_markup(child), len(controls)))
        return column

    def _extract_cell(self, element, row: TableRow, column: int, controls, pending, gaps) -> TableCell:
        tc_pr = element.find(qn("w:tcPr"))
        formatting, grid_span, cell_gaps = self.formatting.extract_cell_formatting(tc_pr)
        gaps.extend(cell_gaps)
        cell = TableCell(
            row_index=row.index,
            column_index=column,
            col_span=max(grid_span, 1),
            formatting=formatting,
            raw_properties=to_markup(tc_pr) if tc_pr is not None else None,
        )
        cell.content_controls = list(controls)
        cell.preceding_markup = list(pending)
        row.cells.append(cell)
        self.build_cell(cell, [child for child in element if child is not tc_pr])
        return cell

    def _wrapper_properties(self, sdt) -> ContentControlProperties:
        return self.controls.extract(sdt.find(qn("w:sdtPr")), sdt.find(qn("w:sdtEndPr")))

    @staticmethod
    def _compute_row_spans(table: TableData) -> None:
        """Turn w:vMerge restart/continue markers into row spans."""
        for row_index, row in enumerate(table.rows):
            for cell in row.cells:
                if cell.formatting.vertical_merge != "restart" or cell.row_span == 0:
                    continue
                span = 1
                for below in table.rows[row_index + 1:]:
                    covered = next(
                        (candidate for candidate in below.cells if candidate.column_index == cell.column_index),
                        None,
                    )
                    if covered is None or covered.formatting.vertical_merge != "continue":
                        break
                    covered.row_span = 0
                    span += 1
                cell.row_span = span
        orphans = [
            cell
            for cell in table.iter_cells()
            if cell.formatting.vertical_merge == "continue" and cell.row_span != 0
        ]
        if orphans:
            logger.debug(f"{len(orphans)} vertically merged cell(s) without an origin kept as ordinary cells")
