"""
Document tree nodes.

The tree is organised by heading hierarchy: a heading owns every block that
follows it up to the next heading of the same or a shallower level. Only the
root carries the package fidelity store.
"""

import logging
import uuid
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from .container import NodeContainer
from .content_control import ContentControlProperties, ContentControlType
from .formatting import ParagraphFormatting, RunFormatting
from .image import ImageData
from .run import FormattedRun
from .source import SourceMarkup
from .table import TableData
from ..utils.fingerprint import compute_fingerprint
from ..utils.id_manager import IDManager

logger = logging.getLogger(__name__)

MAX_HEADING_LEVEL = 9

# Metadata keys
META_LIST_ID = "list_id"
META_LIST_LEVEL = "list_level"
META_TABLE_DATA = "table_data"
META_IMAGE_DATA = "image_data"
META_CONTENT_CONTROLS = "content_controls"
META_PRECEDING_MARKUP = "preceding_markup"
META_FILE_NAME = "file_name"
META_MAIN_PART = "main_part"
META_DOCUMENT_SHELL = "document_shell"
META_SECTION_PROPERTIES = "section_properties"
META_TRAILING_MARKUP = "trailing_markup"
META_FOLLOWING_MARKUP = "following_markup"

CONTENT_CONTROL_SCOPE = "content_control"
_MAX_CONTENT_CONTROL_ID = 2 ** 31 - 1


class ContentType(Enum):
    DOCUMENT = "Document"
    HEADING = "Heading"
    PARAGRAPH = "Paragraph"
    TABLE = "Table"
    IMAGE = "Image"
    LIST = "List"
    LIST_ITEM = "ListItem"
    HYPERLINK_TEXT = "HyperlinkText"
    TEXT_RUN = "TextRun"


# Node types whose children are part of their own paragraph markup (drawings)
# rather than following blocks.
PARAGRAPH_LIKE = frozenset(
    {
        ContentType.PARAGRAPH,
        ContentType.LIST_ITEM,
        ContentType.IMAGE,
        ContentType.TEXT_RUN,
        ContentType.HYPERLINK_TEXT,
    }
)


class DocumentNode(NodeContainer):
    """
    A node of the document tree.

    Attributes:
        id: Stable identifier
        type: Content type tag
        heading_level: 0 for non-headings, 1-9 for headings
        runs: Ordered formatted runs
        paragraph_formatting: Paragraph formatting, if any
        source: Verbatim markup and parse-time fingerprint, if parsed
        metadata: Auxiliary facts keyed by string
    """

    def __init__(
        self,
        type: ContentType = ContentType.PARAGRAPH,
        text: str = "",
        heading_level: int = 0,
        runs: Optional[List[FormattedRun]] = None,
        paragraph_formatting: Optional[ParagraphFormatting] = None,
        metadata: Optional[Dict[str, Any]] = None,
        source: Optional[SourceMarkup] = None,
    ):
        super().__init__()
        if not isinstance(type, ContentType):
            raise TypeError(f"Expected ContentType, got {type!r}")
        if type == ContentType.HEADING:
            _check_heading_level(heading_level)
        elif heading_level:
            raise ValueError(f"Only headings have a heading level (got {heading_level} for {type.value})")
        self.id = str(uuid.uuid4())
        self.type = type
        self.heading_level = heading_level
        self.runs: List[FormattedRun] = runs or []
        self.paragraph_formatting = paragraph_formatting
        self.metadata: Dict[str, Any] = metadata or {}
        self.source = source
        self._text = text
        if text and not self.runs and type not in (ContentType.DOCUMENT, ContentType.TABLE, ContentType.LIST):
            self.runs = [FormattedRun(text=text)]

    # Text

    @property
    def text(self) -> str:
        """Plain-text projection of the node."""
        if self.runs:
            return "".join(run.plain_text for run in self.runs)
        if self.type == ContentType.TABLE and self.table_data is not None:
            return self.table_data.text
        return self._text

    @text.setter
    def text(self, value: str) -> None:
        self.set_text(value)

    def set_text(self, text: str) -> None:
        """
        Replace the node's content with a single run of text.

        The first text run's formatting and wrappers are kept; positional
        items (tabs, breaks, fields, bookmarks, drawings) are dropped.
        """
        if self.type in (ContentType.DOCUMENT, ContentType.TABLE, ContentType.LIST):
            self._text = text
            return
        inline_images = self.inline_images()
        template = next((run for run in self.runs if not run.is_raw and run.drawing_id is None), None)
        if template is not None:
            self.runs = [template.copy_with_text(text)]
        else:
            self.runs = [FormattedRun(text=text)]
        self._text = text
        for child in inline_images:
            self.remove_child(child)

    def inline_images(self) -> List["DocumentNode"]:
        """Image children drawn inside this node's own paragraph."""
        if self.type in PARAGRAPH_LIKE:
            return [child for child in self.children if child.type == ContentType.IMAGE]
        referenced = {run.drawing_id for run in self.runs if run.drawing_id is not None}
        return [child for child in self.children if child.type == ContentType.IMAGE and child.id in referenced]

    # Formatting

    def set_paragraph_formatting(self, formatting: Optional[ParagraphFormatting]) -> None:
        if formatting is not None and not isinstance(formatting, ParagraphFormatting):
            raise TypeError(f"Expected ParagraphFormatting, got {type(formatting).__name__}")
        self.paragraph_formatting = formatting

    def set_run_formatting(self, index: int, formatting: RunFormatting) -> None:
        """
        Replace the formatting of one run.

        Raises:
            IndexError: If there is no run at index
        """
        if not isinstance(formatting, RunFormatting):
            raise TypeError(f"Expected RunFormatting, got {type(formatting).__name__}")
        run = self.runs[index]
        if run.is_raw:
            raise ValueError(f"Run {index} is an opaque inline item and has no formatting")
        run.formatting = formatting

    def set_heading_level(self, level: int) -> None:
        if self.type != ContentType.HEADING:
            raise ValueError(f"Node {self.id} is not a heading")
        _check_heading_level(level)
        self.heading_level = level

    # Typed metadata accessors

    @property
    def table_data(self) -> Optional[TableData]:
        return self.metadata.get(META_TABLE_DATA)

    @table_data.setter
    def table_data(self, value: Optional[TableData]) -> None:
        if value is None:
            self.metadata.pop(META_TABLE_DATA, None)
            return
        for cell in value.iter_cells():
            cell.parent = self
        self.metadata[META_TABLE_DATA] = value

    @property
    def image_data(self) -> Optional[ImageData]:
        return self.metadata.get(META_IMAGE_DATA)

    @image_data.setter
    def image_data(self, value: Optional[ImageData]) -> None:
        if value is None:
            self.metadata.pop(META_IMAGE_DATA, None)
        else:
            self.metadata[META_IMAGE_DATA] = value

    @property
    def list_id(self) -> Optional[str]:
        return self.metadata.get(META_LIST_ID)

    @property
    def list_level(self) -> Optional[int]:
        return self.metadata.get(META_LIST_LEVEL)

    # Content controls

    @property
    def content_controls(self) -> List[ContentControlProperties]:
        """Block content controls wrapping this node, outermost first."""
        return self.metadata.get(META_CONTENT_CONTROLS, [])

    @property
    def content_control(self) -> Optional[ContentControlProperties]:
        controls = self.content_controls
        return controls[-1] if controls else None

    def set_content_control(self, properties: ContentControlProperties) -> None:
        """
        Wrap this node in a block content control (replacing the innermost).

        Ids are allocated from the owning root when the properties have none.
        """
        if not isinstance(properties, ContentControlProperties):
            raise TypeError(f"Expected ContentControlProperties, got {type(properties).__name__}")
        root = self.root
        if properties.id is None and isinstance(root, DocumentRoot):
            properties.id = root.allocate_content_control_id()
        controls = list(self.content_controls)
        if controls:
            controls[-1] = properties
        else:
            controls.append(properties)
        self.metadata[META_CONTENT_CONTROLS] = controls

    def clear_content_control(self, properties: Optional[ContentControlProperties] = None) -> bool:
        """
        Remove a content control wrapping this node or some of its runs.

        Args:
            properties: Control to remove; defaults to the innermost block
                control, or the only inline control

        Returns:
            True if something was removed
        """
        target = properties or self.content_control or self._single_inline_control()
        if target is None:
            return False
        removed = False
        controls = [control for control in self.content_controls if control is not target]
        if len(controls) != len(self.content_controls):
            removed = True
            if controls:
                self.metadata[META_CONTENT_CONTROLS] = controls
            else:
                self.metadata.pop(META_CONTENT_CONTROLS, None)
        for run in self.runs:
            if any(control is target for control in run.content_controls):
                run.content_controls = [control for control in run.content_controls if control is not target]
                removed = True
        return removed

    def inline_content_controls(self) -> List[ContentControlProperties]:
        """Distinct inline content controls in run order."""
        found: List[ContentControlProperties] = []
        for run in self.runs:
            for control in run.content_controls:
                if not any(control is known for known in found):
                    found.append(control)
        return found

    def find_content_control(self, tag_or_alias: str) -> Optional[ContentControlProperties]:
        """Find a block or inline control on this node by tag, then by alias."""
        candidates = list(self.content_controls) + self.inline_content_controls()
        for control in candidates:
            if control.tag == tag_or_alias:
                return control
        for control in candidates:
            if control.alias == tag_or_alias:
                return control
        return None

    def _single_inline_control(self) -> Optional[ContentControlProperties]:
        controls = self.inline_content_controls()
        return controls[0] if len(controls) == 1 else None

    def _resolve_control(self, control) -> ContentControlProperties:
        if isinstance(control, str):
            found = self.find_content_control(control)
            if found is None:
                raise KeyError(f"No content control with tag or alias {control!r} on node {self.id}")
            return found
        if control is not None:
            return control
        found = self.content_control or self._single_inline_control()
        if found is None:
            raise ValueError(f"Node {self.id} has no unambiguous content control")
        return found

    def set_content_control_value(self, value: str, control=None) -> ContentControlProperties:
        """
        Set the value of a content control and its visible text.

        Args:
            value: New value (for list controls, a display text or item value)
            control: ContentControlProperties, tag/alias string, or None for
                the node's only control

        Returns:
            The updated properties
        """
        target = self._resolve_control(control)
        display = value
        if target.type in (ContentControlType.DROP_DOWN_LIST, ContentControlType.COMBO_BOX):
            item = target.find_list_item(value)
            if item is not None:
                display = item.display_text
                target.last_value = item.value
            elif target.type == ContentControlType.DROP_DOWN_LIST:
                raise ValueError(f"{value!r} is not one of the drop-down list items")
            else:
                target.last_value = value
        target.value = display
        target.showing_placeholder = False
        self._replace_control_text(target, display)
        logger.debug(f"Set content control {target.tag or target.id} on node {self.id} to {display!r}")
        return target

    def set_content_control_checked(self, checked: bool, control=None) -> ContentControlProperties:
        """Tick or clear a checkbox control, updating its glyph when known."""
        target = self._resolve_control(control)
        if target.type != ContentControlType.CHECKBOX:
            raise ValueError(f"Content control {target.tag or target.id} is not a checkbox")
        target.checked = bool(checked)
        symbol = target.checked_symbol if checked else target.unchecked_symbol
        if symbol:
            glyph = chr(int(symbol, 16))
            target.value = glyph
            self._replace_control_text(target, glyph)
        return target

    def _replace_control_text(self, target: ContentControlProperties, text: str) -> None:
        if any(control is target for control in self.content_controls):
            self.set_text(text)
            return
        positions = [
            index
            for index, run in enumerate(self.runs)
            if any(control is target for control in run.content_controls)
        ]
        if not positions:
            raise ValueError(f"Content control {target.tag or target.id} does not wrap any run of node {self.id}")
        template = next(
            (self.runs[index] for index in positions if not self.runs[index].is_raw),
            None,
        )
        if template is not None:
            replacement = template.copy_with_text(text)
        else:
            chain = self.runs[positions[0]].content_controls
            replacement = FormattedRun(text=text, content_controls=list(chain))
        first = positions[0]
        self.runs = [run for index, run in enumerate(self.runs) if index not in positions]
        self.runs.insert(first, replacement)

    # Tree navigation

    @property
    def root(self) -> Optional["DocumentNode"]:
        node = self
        while node.parent is not None:
            node = node.parent
        return node if isinstance(node, DocumentNode) else None

    def get_depth(self) -> int:
        depth = 0
        node = self.parent
        while node is not None:
            if isinstance(node, DocumentNode):
                depth += 1
            node = node.parent
        return depth

    def iter_descendants(self) -> Iterator["DocumentNode"]:
        for child in self.children:
            yield child
            yield from child.iter_descendants()
        table = self.table_data
        if table is not None:
            for cell in table.iter_cells():
                yield from cell.iter_descendants()

    def find_by_id(self, node_id: str) -> Optional["DocumentNode"]:
        if self.id == node_id:
            return self
        for node in self.iter_descendants():
            if node.id == node_id:
                return node
        return None

    def find_child_by_id(self, node_id: str) -> Optional["DocumentNode"]:
        for child in self.children:
            if child.id == node_id:
                return child
        return None

    # Dirty tracking

    def markup_state(self) -> Dict[str, Any]:
        """The part of the node's state that its own markup encodes."""
        state: Dict[str, Any] = {
            "type": self.type,
            "heading_level": self.heading_level,
            "runs": self.runs,
            "paragraph_formatting": self.paragraph_formatting,
            "list": [self.list_id, self.list_level],
        }
        if not self.runs and self.type not in (ContentType.TABLE, ContentType.LIST, ContentType.DOCUMENT):
            state["text"] = self._text
        if self.table_data is not None:
            state["table"] = self.table_data.state()
        if self.image_data is not None:
            state["image"] = self.image_data
        if self.type in PARAGRAPH_LIKE:
            state["children"] = [child.fingerprint() for child in self.children]
        elif self.type == ContentType.HEADING:
            state["images"] = [child.fingerprint() for child in self.inline_images()]
        return state

    def fingerprint(self) -> str:
        return compute_fingerprint(self.markup_state())

    @property
    def is_modified(self) -> bool:
        """True when the node's markup must be regenerated."""
        if self.source is None:
            return True
        return self.fingerprint() != self.source.fingerprint

    def __repr__(self) -> str:
        label = f"H{self.heading_level}" if self.type == ContentType.HEADING else self.type.value
        text = self.text
        if len(text) > 40:
            text = text[:37] + "..."
        return f"DocumentNode({label}, {text!r}, children={len(self.children)})"


class DocumentRoot(DocumentNode):
    """
    Root of a document tree. The only node that owns the fidelity store.

    Attributes:
        fidelity_store: Document-wide parts captured from the package
        id_manager: Identifier allocation scoped to this tree
        fidelity_gaps: Unmodelled properties met while parsing
    """

    def __init__(self, fidelity_store, text: str = "Document", id_manager: Optional[IDManager] = None):
        super().__init__(ContentType.DOCUMENT, text=text)
        if fidelity_store is None:
            raise ValueError("A document root requires a fidelity store")
        self.fidelity_store = fidelity_store
        self.id_manager = id_manager or fidelity_store.id_manager
        self.fidelity_gaps = []

    @property
    def parent(self):
        return None

    @parent.setter
    def parent(self, value) -> None:
        if value is not None:
            raise ValueError("The document root cannot have a parent")

    def register_content_control_id(self, control_id: int) -> None:
        self.id_manager.register_id(CONTENT_CONTROL_SCOPE, str(control_id))

    def allocate_content_control_id(self) -> int:
        """Return a content-control id not used anywhere in this tree."""
        control_id = int(self.id_manager.generate_unique_id(CONTENT_CONTROL_SCOPE))
        if control_id > _MAX_CONTENT_CONTROL_ID:
            control_id = 1
            while self.id_manager.is_id_registered(CONTENT_CONTROL_SCOPE, str(control_id)):
                control_id += 1
            self.id_manager.register_id(CONTENT_CONTROL_SCOPE, str(control_id))
        return control_id

    def markup_state(self) -> Dict[str, Any]:
        return {"type": self.type, "text": self._text}


def _check_heading_level(level: int) -> None:
    if not isinstance(level, int) or isinstance(level, bool) or not 1 <= level <= MAX_HEADING_LEVEL:
        raise ValueError(f"Heading level must be an integer between 1 and {MAX_HEADING_LEVEL}, got {level!r}")