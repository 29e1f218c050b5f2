"""
Document tree builder.

Turns the flat sequence of body blocks into a tree organised by heading
hierarchy. An explicit stack holds the open headings; a heading of level L
closes every open heading of level L or deeper and becomes the parent of the
blocks that follow it. Table cells are built by the same algorithm in a
context of their own.
"""

import logging
from typing import List, Optional

from .content_control_extractor import ContentControlExtractor
from .formatting_extractor import FormattingExtractor
from .image_extractor import ImageExtractor
from .run_extractor import RunExtractor
from .styles import StyleCatalog
from .table_extractor import TableExtractor
from ..metadata.property_names import property_name_from_xpath
from ..models.container import NodeContainer
from ..models.content_control import ContentControlProperties
from ..models.image import ImageData
from ..models.node import (
    META_CONTENT_CONTROLS,
    META_FOLLOWING_MARKUP,
    META_LIST_ID,
    META_LIST_LEVEL,
    META_PRECEDING_MARKUP,
    META_SECTION_PROPERTIES,
    META_TRAILING_MARKUP,
    ContentType,
    DocumentNode,
    DocumentRoot,
)
from ..models.source import LooseMarkup, make_source
from ..models.table import TableCell
from ..options import ParseOptions
from ..utils.xml import prefixed_name, qn, to_markup

logger = logging.getLogger(__name__)


class _BuildContext:
    """Heading stack and pending markup for one container (the body or a cell)."""

    def __init__(self, container: NodeContainer):
        self.container = container
        self.stack: List[DocumentNode] = []
        self.pending: List[LooseMarkup] = []
        self.current_list: Optional[DocumentNode] = None
        self.nodes: List[DocumentNode] = []

    @property
    def insertion_parent(self) -> NodeContainer:
        return self.stack[-1] if self.stack else self.container


class DocumentTreeBuilder:
    """
    Builds the node tree of a DocumentRoot from the main document body.

    Args:
        root: Root to populate; its fidelity store must already be filled
        styles: Paragraph style catalog used for heading detection
        options: Parse options
    """

    def __init__(self, root: DocumentRoot, styles: Optional[StyleCatalog] = None, options: Optional[ParseOptions] = None):
        self.root = root
        self.store = root.fidelity_store
        self.styles = styles or StyleCatalog()
        self.options = options or ParseOptions()

        self.formatting = FormattingExtractor()
        self.controls = ContentControlExtractor()
        self.images = ImageExtractor(self.store, self.formatting)
        self.runs = RunExtractor(
            self.store,
            formatting_extractor=self.formatting,
            control_extractor=self.controls,
            image_extractor=self.images,
            register_control=self._register_control,
            resolve_document_properties=self.options.resolve_document_properties,
        )
        self.tables = TableExtractor(
            self.build_cell,
            formatting_extractor=self.formatting,
            control_extractor=self.controls,
            register_control=self._register_control,
        )

    def build_body(self, body) -> DocumentRoot:
        """
        Build the tree from a w:body element.

        The final w:sectPr is kept on the root, as is any markup left over
        after the last block.
        """
        elements = [child for child in body if isinstance(child.tag, str)]
        if elements and prefixed_name(elements[-1]) == "w:sectPr":
            self.root.metadata[META_SECTION_PROPERTIES] = to_markup(elements.pop())
        trailing = self.build_into(self.root, elements)
        if trailing:
            self.root.metadata[META_TRAILING_MARKUP] = trailing
        logger.info(f"Built document tree with {sum(1 for _ in self.root.iter_descendants())} nodes")
        return self.root

    def build_into(self, container: NodeContainer, elements) -> List[LooseMarkup]:
        """
        Build blocks into a container.

        Returns:
            Markup found after the last block
        """
        context = _BuildContext(container)
        for element in elements:
            if isinstance(element.tag, str):
                self._process_block(element, context, [])
        return context.pending

    def build_cell(self, cell: TableCell, elements) -> None:
        cell.trailing_markup = self.build_into(cell, elements)

    # Blocks

    def _process_block(self, element, context: _BuildContext, controls: List[ContentControlProperties]) -> None:
        name = prefixed_name(element)
        if name == "w:p":
            self._process_paragraph(element, context, controls)
        elif name == "w:tbl":
            self._process_table(element, context, controls)
        elif name == "w:sdt":
            self._process_block_sdt(element, context, controls)
        else:
            logger.debug(f"Keeping {name or 'node'} verbatim with the next block")
            context.pending.append(LooseMarkup(to_markup(element), len(controls)))

    def _process_block_sdt(self, element, context: _BuildContext, controls) -> None:
        properties = self.controls.extract(element.find(qn("w:sdtPr")), element.find(qn("w:sdtEndPr")))
        content = element.find(qn("w:sdtContent"))
        created = len(context.nodes)
        mark = len(context.pending)
        if content is not None:
            inner = list(controls) + [properties]
            for child in content:
                if isinstance(child.tag, str):
                    self._process_block(child, context, inner)

        if len(context.nodes) == created:
            del context.pending[mark:]
            context.pending.append(LooseMarkup(to_markup(element), len(controls)))
            return

        self._register_control(properties)
        if context.pending:
            # Markup after the last block inside the wrapper stays inside it
            context.nodes[-1].metadata.setdefault(META_FOLLOWING_MARKUP, []).extend(context.pending)
            context.pending.clear()
        properties.value = "\n".join(node.text for node in context.nodes[created:])
        if properties.is_document_property:
            self._resolve_bound_property(properties)

    def _process_paragraph(self, element, context: _BuildContext, controls) -> None:
        ppr = element.find(qn("w:pPr"))
        formatting, gaps = self.formatting.extract_paragraph_formatting(ppr)
        level = self.styles.heading_level(formatting.style_id, formatting.outline_level)

        images: List[DocumentNode] = []
        runs, run_gaps = self.runs.extract(element, lambda image: self._image_node(image, images))
        if level:
            # Pictures in a heading are its first children, ahead of the section content
            node = DocumentNode(ContentType.HEADING, heading_level=level, paragraph_formatting=formatting)
        elif formatting.numbering_id not in (None, "0"):
            node = DocumentNode(ContentType.LIST_ITEM, paragraph_formatting=formatting)
            node.metadata[META_LIST_ID] = formatting.numbering_id
            node.metadata[META_LIST_LEVEL] = formatting.numbering_level or 0
        elif len(images) == 1 and _is_single_drawing(runs):
            node = images.pop()
            node.paragraph_formatting = formatting
        else:
            node = DocumentNode(ContentType.PARAGRAPH, paragraph_formatting=formatting)
        node.runs = runs
        for image in images:
            node.add_child(image)

        gaps.extend(run_gaps)
        node.source = make_source(to_markup(element), node.fingerprint(), gaps)
        self._record_gaps(gaps)
        self._place(node, context, controls)

    def _image_node(self, image: ImageData, images: List[DocumentNode]) -> str:
        node = DocumentNode(ContentType.IMAGE)
        node.image_data = image
        node.source = make_source(image.raw_drawing, node.fingerprint(), [])
        images.append(node)
        return node.id

    def _process_table(self, element, context: _BuildContext, controls) -> None:
        table, gaps = self.tables.extract(element)
        node = DocumentNode(ContentType.TABLE)
        node.table_data = table
        node.source = make_source(to_markup(element), node.fingerprint(), gaps)
        self._record_gaps(gaps)
        self._place(node, context, controls)

    # Placement

    def _place(self, node: DocumentNode, context: _BuildContext, controls) -> None:
        if controls:
            node.metadata[META_CONTENT_CONTROLS] = list(controls)
        if context.pending:
            node.metadata[META_PRECEDING_MARKUP] = list(context.pending)
            context.pending.clear()

        if node.type == ContentType.HEADING:
            while context.stack and context.stack[-1].heading_level >= node.heading_level:
                context.stack.pop()
            context.insertion_parent.add_child(node)
            context.stack.append(node)
            context.current_list = None
        elif node.type == ContentType.LIST_ITEM:
            current = context.current_list
            if current is None or current.list_id != node.list_id or current.parent is not context.insertion_parent:
                current = DocumentNode(ContentType.LIST, metadata={META_LIST_ID: node.list_id})
                context.insertion_parent.add_child(current)
                context.current_list = current
            current.add_child(node)
        else:
            context.insertion_parent.add_child(node)
            context.current_list = None

        context.nodes.append(node)
        logger.debug(f"Placed {node!r} under {type(node.parent).__name__}")

    # Content controls

    def _register_control(self, properties: ContentControlProperties) -> None:
        if properties.id is not None:
            self.root.register_content_control_id(properties.id)

    def _resolve_bound_property(self, properties: ContentControlProperties) -> None:
        if not self.options.resolve_document_properties or properties.data_binding is None:
            return
        name = property_name_from_xpath(properties.data_binding.xpath)
        _, value = self.store.get_document_property(name)
        if value is not None:
            properties.value = str(value)

    def _record_gaps(self, gaps) -> None:
        if not gaps:
            return
        self.root.fidelity_gaps.extend(gaps)
        for gap in gaps:
            message = f"Unmodelled property {gap.property} in {gap.element} kept verbatim"
            if self.options.warn_on_fidelity_gaps:
                logger.warning(message)
            else:
                logger.debug(message)


def _is_single_drawing(runs) -> bool:
    """True when a single picture is the only visible content of a paragraph."""
    visible = [
        run
        for run in runs
        if run.drawing_id is not None or run.is_tab or run.is_break or run.is_carriage_return or run.text
    ]
    return len(visible) == 1 and visible[0].drawing_id is not None
