"""
Table backing data for Table nodes.
"""

import logging
from typing import Dict, List, Optional

from .container import NodeContainer
from .formatting import TableCellFormatting, TableFormatting, TableRowFormatting
from .source import LooseMarkup

logger = logging.getLogger(__name__)


class TableCell(NodeContainer):
    """
    A grid cell.

    ``row_span`` is 1 for an ordinary cell, greater than 1 for the origin of a
    vertical merge, and 0 for a cell covered by a merge above it.
    """

    def __init__(
        self,
        row_index: int = 0,
        column_index: int = 0,
        col_span: int = 1,
        row_span: int = 1,
        formatting: Optional[TableCellFormatting] = None,
        raw_properties: Optional[str] = None,
    ):
        super().__init__()
        self.row_index = row_index
        self.column_index = column_index
        self.col_span = col_span
        self.row_span = row_span
        self.formatting = formatting or TableCellFormatting()
        self.raw_properties = raw_properties
        # Cell-level w:sdt wrappers (outermost first) and markup kept around the cell
        self.content_controls: list = []
        self.preceding_markup: List[LooseMarkup] = []
        self.trailing_markup: List[LooseMarkup] = []

    @property
    def is_merged_continuation(self) -> bool:
        return self.row_span == 0

    @property
    def text(self) -> str:
        return self.plain_text

    def state(self) -> Dict[str, object]:
        return {
            "row": self.row_index,
            "column": self.column_index,
            "col_span": self.col_span,
            "row_span": self.row_span,
            "formatting": self.formatting,
            "controls": self.content_controls,
            "content": [[node.fingerprint(), node.content_controls] for node in self.iter_descendants()],
        }

    def __repr__(self) -> str:
        return (
            f"TableCell(row={self.row_index}, column={self.column_index}, "
            f"col_span={self.col_span}, row_span={self.row_span}, children={len(self.children)})"
        )


class TableRow:
    """A table row: its cells plus row formatting."""

    def __init__(
        self,
        index: int = 0,
        cells: Optional[List[TableCell]] = None,
        formatting: Optional[TableRowFormatting] = None,
        raw_properties: Optional[str] = None,
        raw_attributes: Optional[Dict[str, str]] = None,
    ):
        self.index = index
        self.cells: List[TableCell] = cells or []
        self.formatting = formatting or TableRowFormatting()
        self.raw_properties = raw_properties
        self.raw_attributes: Dict[str, str] = raw_attributes or {}
        # w:tblPrEx, row-level w:sdt wrappers and markup kept around the row
        self.raw_exceptions: Optional[str] = None
        self.content_controls: list = []
        self.preceding_markup: List[LooseMarkup] = []
        self.trailing_markup: List[LooseMarkup] = []

    @property
    def is_header(self) -> bool:
        return self.formatting.is_header

    @property
    def effective_column_count(self) -> int:
        return self.formatting.grid_before + sum(cell.col_span for cell in self.cells) + self.formatting.grid_after

    def state(self) -> Dict[str, object]:
        return {
            "index": self.index,
            "formatting": self.formatting,
            "controls": self.content_controls,
            "cells": [cell.state() for cell in self.cells],
        }


class TableData:
    """
    Row-major grid backing a Table node.

    ``column_count`` is authoritative; a row may cover fewer columns.
    """

    def __init__(
        self,
        column_count: int = 0,
        rows: Optional[List[TableRow]] = None,
        formatting: Optional[TableFormatting] = None,
        raw_properties: Optional[str] = None,
    ):
        self.column_count = column_count
        self.rows: List[TableRow] = rows or []
        self.formatting = formatting or TableFormatting()
        self.raw_properties = raw_properties
        self.trailing_markup: List[LooseMarkup] = []

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def iter_cells(self):
        for row in self.rows:
            yield from row.cells

    def cell_at(self, row_index: int, column_index: int) -> Optional[TableCell]:
        """Return the cell whose span covers the given grid position in a row."""
        if row_index < 0 or row_index >= len(self.rows):
            return None
        for cell in self.rows[row_index].cells:
            if cell.column_index <= column_index < cell.column_index + cell.col_span:
                return cell
        return None

    def add_row(self, cells: List[TableCell], formatting: Optional[TableRowFormatting] = None) -> TableRow:
        """Append a row, assigning row/column indices to its cells."""
        row = TableRow(index=len(self.rows), cells=cells, formatting=formatting)
        column = row.formatting.grid_before
        for cell in cells:
            cell.row_index = row.index
            cell.column_index = column
            column += cell.col_span
        self.rows.append(row)
        self.column_count = max(self.column_count, row.effective_column_count)
        return row

    @property
    def text(self) -> str:
        return "\n".join("\t".join(cell.text for cell in row.cells) for row in self.rows)

    def state(self) -> Dict[str, object]:
        return {
            "column_count": self.column_count,
            "formatting": self.formatting,
            "rows": [row.state() for row in self.rows],
        }
