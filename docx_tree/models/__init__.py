"""Document tree models."""

from .container import NodeContainer
from .content_control import (
    ContentControlListItem,
    ContentControlProperties,
    ContentControlType,
    DataBinding,
)
from .formatting import (
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
from .image import ImageData
from .node import ContentType, DocumentNode, DocumentRoot
from .run import DocumentPropertyField, DocumentPropertyType, FormattedRun, HyperlinkData
from .source import LooseMarkup, ModeledSource, PartialSource, SourceMarkup
from .table import TableCell, TableData, TableRow

__all__ = [
    "NodeContainer",
    "ContentControlListItem",
    "ContentControlProperties",
    "ContentControlType",
    "DataBinding",
    "BorderFormatting",
    "Borders",
    "ImageFormatting",
    "ParagraphFormatting",
    "RunFormatting",
    "TableCellFormatting",
    "TableFormatting",
    "TableRowFormatting",
    "WrapType",
    "ImageData",
    "ContentType",
    "DocumentNode",
    "DocumentRoot",
    "DocumentPropertyField",
    "DocumentPropertyType",
    "FormattedRun",
    "HyperlinkData",
    "LooseMarkup",
    "ModeledSource",
    "PartialSource",
    "SourceMarkup",
    "TableCell",
    "TableData",
    "TableRow",
]
