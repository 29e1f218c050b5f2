"""
Document tree writer.

Serialises a DocumentRoot back into a DOCX package. The main document part
is rebuilt from the tree: nodes whose state still matches the fingerprint
taken at parse time are emitted from their verbatim source markup, every
other node is regenerated by patching that markup. Every other part comes
from the fidelity store, byte for byte where nothing changed.
"""

import logging
import posixpath
import re
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from .formatting_writer import FormattingWriter
from .markup_builder import MarkupBuilder, Wrapped, heading_formatting, wrap_groups
from .package_writer import PackageWriter, generate_content_types_xml, generate_relationships_xml
from ..exceptions import StructuralError
from ..models.content_control import ContentControlProperties
from ..models.node import (
    META_DOCUMENT_SHELL,
    META_FOLLOWING_MARKUP,
    META_MAIN_PART,
    META_PRECEDING_MARKUP,
    META_SECTION_PROPERTIES,
    META_TRAILING_MARKUP,
    PARAGRAPH_LIKE,
    ContentType,
    DocumentNode,
    DocumentRoot,
)
from ..models.container import NodeContainer
from ..models.image import ImageData
from ..models.run import FormattedRun
from ..models.table import TableCell, TableData, TableRow
from ..options import WriteOptions
from ..parser.relationships import (
    CONTENT_TYPES_PART,
    PACKAGE_SOURCE,
    RT_OFFICE_DOCUMENT,
    ContentTypeMap,
    Relationship,
    parse_relationships,
    relationships_part_name,
    resolve_target,
    source_part_name,
)
from ..parser.styles import StyleCatalog
from ..utils.xml import from_markup, make_element, qn, serialize_part, sub_element

logger = logging.getLogger(__name__)

DRAWING_SCOPE = "drawing"
MAIN_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"
_EMBED_REFERENCE = re.compile(r'\br:embed="([^"]*)"')
_BASE_DEFAULTS = (
    ("rels", "application/vnd.openxmlformats-package.relationships+xml"),
    ("xml", "application/xml"),
)


class DocumentTreeWriter:
    """
    Writes document trees to DOCX packages.

    Examples:
        >>> data = DocumentTreeWriter().write(root)
        >>> DocumentTreeWriter().write_to_file(root, "out.docx")
    """

    def __init__(self, options: Optional[WriteOptions] = None):
        self.options = options or WriteOptions()

    def write(self, root: DocumentRoot) -> bytes:
        """
        Serialise a tree into package bytes.

        Args:
            root: Root of the tree to write

        Returns:
            Bytes of a DOCX zip container

        Raises:
            StructuralError: If a table's spans are inconsistent or a
                reference cannot be resolved against the fidelity store
        """
        if not isinstance(root, DocumentRoot):
            raise TypeError(f"Expected DocumentRoot, got {type(root).__name__}")
        self.validate(root)

        store = root.fidelity_store
        main_part = root.metadata.get(META_MAIN_PART) or store.main_part_name
        emitter = _BodyEmitter(root)
        parts: Dict[str, bytes] = {main_part: serialize_part(emitter.document())}
        self._add_store_parts(parts, root, main_part)
        self._close_references(parts, store)
        parts[CONTENT_TYPES_PART] = self._content_types(parts, store, main_part)

        logger.info(f"Serialised document tree into {len(parts)} parts")
        return PackageWriter(self.options.compression).write(parts, store.part_order)

    def write_to_file(self, root: DocumentRoot, path: Union[str, Path]) -> Path:
        """Serialise a tree and save it; returns the path written."""
        target = Path(path)
        data = self.write(root)
        target.write_bytes(data)
        logger.info(f"Saved {target} ({len(data)} bytes)")
        return target

    # Validation

    def validate(self, root: DocumentRoot) -> None:
        """
        Check the tree can be written.

        Table spans are always checked; media, hyperlink and data-store
        references only when ``validate_references`` is set.

        Raises:
            StructuralError: On the first problem found
        """
        store = root.fidelity_store
        store_ids: Set[str] = set()
        rel_ids: Set[str] = set()
        if self.options.validate_references:
            store_ids = store.known_store_item_ids()
            rel_ids = {relationship.rel_id for relationship in store.current_document_relationships()}
        for node in root.iter_descendants():
            if node.type == ContentType.TABLE and node.table_data is None:
                raise StructuralError("Table node has no table data", node_id=node.id)
            if node.table_data is not None:
                _validate_table(node)
            if not self.options.validate_references:
                continue
            controls: List[ContentControlProperties] = list(node.content_controls)
            if node.image_data is not None:
                rel_id = node.image_data.rel_id
                if rel_id is None or store.get_media(rel_id) is None:
                    raise StructuralError("Image references unknown media", rel_id, node_id=node.id)
            for run in node.runs:
                controls.extend(run.content_controls)
                link = run.hyperlink
                if link is not None and link.rel_id is not None and store.get_hyperlink(link.rel_id) is None:
                    raise StructuralError("Hyperlink references unknown relationship", link.rel_id, node_id=node.id)
                if run.is_raw:
                    for rel_id in _EMBED_REFERENCE.findall(run.raw_markup):
                        if rel_id not in rel_ids:
                            raise StructuralError("Embedded object references unknown relationship", rel_id, node_id=node.id)
            if node.table_data is not None:
                for row in node.table_data.rows:
                    controls.extend(row.content_controls)
                    for cell in row.cells:
                        controls.extend(cell.content_controls)
            for control in controls:
                binding = control.data_binding
                if binding is None or not binding.store_item_id:
                    continue
                if binding.store_item_id.upper() not in store_ids:
                    raise StructuralError(
                        "Content control is bound to an unknown data store",
                        f"{control.tag or control.id}: {binding.store_item_id}",
                        node_id=node.id,
                    )

    # Parts

    def _add_store_parts(self, parts: Dict[str, bytes], root: DocumentRoot, main_part: str) -> None:
        store = root.fidelity_store
        for part in store.iter_stored_parts():
            parts[part.name] = part.data
        for media in list(store.media.values()) + list(store.glossary_media.values()):
            parts[media.uri] = media.data

        main_rels = relationships_part_name(main_part)
        current = store.current_document_relationships()
        if current == store.document_relationships and main_rels in store.original_parts:
            parts[main_rels] = store.original_parts[main_rels]
        elif current:
            parts[main_rels] = generate_relationships_xml(current)

        package_rels = relationships_part_name(PACKAGE_SOURCE)
        package = store.current_package_relationships()
        if package == store.package_relationships and package_rels in store.original_parts:
            parts[package_rels] = store.original_parts[package_rels]
        else:
            if not any(rel.rel_type == RT_OFFICE_DOCUMENT for rel in package):
                taken = {rel.rel_id for rel in package}
                number = 1
                while f"rId{number}" in taken:
                    number += 1
                package.insert(0, Relationship(f"rId{number}", RT_OFFICE_DOCUMENT, main_part))
            parts[package_rels] = generate_relationships_xml(package)

    @staticmethod
    def _close_references(parts: Dict[str, bytes], store) -> None:
        """Add original parts still targeted by a written relationship part."""
        queue = [name for name in parts if name.endswith(".rels")]
        seen: Set[str] = set()
        while queue:
            rels_name = queue.pop()
            if rels_name in seen:
                continue
            seen.add(rels_name)
            source = source_part_name(rels_name)
            if source is None:
                continue
            for relationship in parse_relationships(parts[rels_name], rels_name):
                if relationship.is_external:
                    continue
                target = resolve_target(source, relationship.target)
                if target in parts or target not in store.original_parts:
                    continue
                logger.debug(f"Restoring {target}, still referenced by {rels_name}")
                parts[target] = store.original_parts[target]
                target_rels = relationships_part_name(target)
                if target_rels not in parts and target_rels in store.original_parts:
                    parts[target_rels] = store.original_parts[target_rels]
                    queue.append(target_rels)

    @staticmethod
    def _content_types(parts: Dict[str, bytes], store, main_part: str) -> bytes:
        current = store.current_content_types()
        original = store.original_parts.get(CONTENT_TYPES_PART)
        if original is not None and current == store.content_types and all(name in parts for name in current.overrides):
            return original

        content_types = ContentTypeMap()
        content_types.defaults = current.defaults.copy()
        for extension, content_type in _BASE_DEFAULTS:
            if not content_types.has_default(extension):
                content_types.defaults[extension] = content_type
        for part_name, content_type in current.overrides.items():
            if part_name in parts:
                content_types.overrides[part_name] = content_type
        if content_types.content_type_for(main_part) != MAIN_CONTENT_TYPE:
            content_types.overrides[main_part] = MAIN_CONTENT_TYPE
        for name in parts:
            extension = posixpath.splitext(name)[1].lstrip(".")
            if content_types.content_type_for(name) is None and extension:
                logger.warning(f"No content type known for {name}")
        return generate_content_types_xml(content_types)


class _BodyEmitter:
    """Builds the w:document element for one tree."""

    def __init__(self, root: DocumentRoot):
        self.root = root
        store = root.fidelity_store
        self.styles = StyleCatalog.from_xml(store.get_part_bytes("styles"))
        self.markup = MarkupBuilder(
            FormattingWriter(),
            allocate_drawing_id=lambda: int(root.id_manager.generate_unique_id(DRAWING_SCOPE)),
        )
        self.verbatim = 0
        self.regenerated = 0

    def document(self):
        shell = self.root.metadata.get(META_DOCUMENT_SHELL)
        if shell:
            document = from_markup(shell)
            body = document.find(qn("w:body"))
        else:
            document = make_element("w:document")
            body = sub_element(document, "w:body")

        items = self.container_items(self.root)
        items.extend(_loose_items([], self.root.metadata.get(META_TRAILING_MARKUP, [])))
        for element in wrap_groups(items, self.markup.content_control):
            body.append(element)
        section = self.root.metadata.get(META_SECTION_PROPERTIES)
        if section:
            body.append(from_markup(section))
        logger.debug(f"Main document: {self.verbatim} blocks verbatim, {self.regenerated} regenerated")
        return document

    # Blocks

    def container_items(self, container: NodeContainer) -> List[Wrapped]:
        items: List[Wrapped] = []
        for node in container.children:
            items.extend(self.node_items(node))
        return items

    def node_items(self, node: DocumentNode) -> List[Wrapped]:
        chain = list(node.content_controls)
        items = _loose_items(chain, node.metadata.get(META_PRECEDING_MARKUP, []))
        trailing_children: List[DocumentNode] = []

        if node.type == ContentType.LIST:
            for child in node.children:
                items.extend(self.node_items(child))
        elif node.type == ContentType.TABLE:
            items.append((chain, self.table(node)))
        elif node.type == ContentType.HEADING or node.type in PARAGRAPH_LIKE:
            images, trailing_children = self._inline_images(node)
            items.append((chain, self.paragraph(node, images)))
        else:
            logger.warning(f"Node type {node.type.value} has no block markup; writing its children only")
            trailing_children = list(node.children)

        items.extend(_loose_items(chain, node.metadata.get(META_FOLLOWING_MARKUP, [])))
        for child in trailing_children:
            items.extend(self.node_items(child))
        return items

    @staticmethod
    def _inline_images(node: DocumentNode):
        referenced = {run.drawing_id for run in node.runs if run.drawing_id is not None}
        images: Dict[str, ImageData] = {}
        if node.image_data is not None:
            images[node.id] = node.image_data
        others = []
        for child in node.children:
            if child.id in referenced and child.image_data is not None:
                images[child.id] = child.image_data
            else:
                others.append(child)
        return images, others

    def _source_element(self, node: DocumentNode, tag: str):
        if node.source is None:
            return None
        element = from_markup(node.source.markup)
        return element if element.tag == qn(tag) else None

    def paragraph(self, node: DocumentNode, images: Dict[str, ImageData]):
        source = self._source_element(node, "w:p")
        if source is not None and not node.is_modified:
            self.verbatim += 1
            return source

        self.regenerated += 1
        formatting = node.paragraph_formatting
        if node.type == ContentType.HEADING:
            style_id = formatting.style_id if formatting is not None else None
            outline = formatting.outline_level if formatting is not None else None
            if self.styles.heading_level(style_id, outline) != node.heading_level:
                formatting = heading_formatting(formatting, node.heading_level)

        runs = node.runs
        if node.type == ContentType.IMAGE and node.image_data is not None:
            if not any(run.drawing_id == node.id for run in runs):
                runs = list(runs) + [FormattedRun(drawing_id=node.id)]
            images = dict(images)
            images[node.id] = node.image_data
        return self.markup.paragraph(runs, formatting, source, images)

    # Tables

    def table(self, node: DocumentNode):
        source = self._source_element(node, "w:tbl")
        if source is not None and not node.is_modified:
            self.verbatim += 1
            return source

        self.regenerated += 1
        data: TableData = node.table_data
        formatting = self.markup.formatting
        table = make_element("w:tbl")
        table.append(formatting.table_properties(data.formatting, data.raw_properties))
        table.append(formatting.table_grid(data.formatting, data.column_count))

        items: List[Wrapped] = []
        for row in data.rows:
            items.extend(_loose_items(row.content_controls, row.preceding_markup))
            items.append((row.content_controls, self.row(row)))
        items.extend(_loose_items([], data.trailing_markup))
        for element in wrap_groups(items, self.markup.content_control):
            table.append(element)
        return table

    def row(self, row: TableRow):
        element = make_element("w:tr")
        for name, value in row.raw_attributes.items():
            element.set(name, value)
        if row.raw_exceptions:
            element.append(from_markup(row.raw_exceptions))
        properties = self.markup.formatting.row_properties(row.formatting, row.raw_properties)
        if properties is not None:
            element.append(properties)

        items: List[Wrapped] = []
        for cell in row.cells:
            items.extend(_loose_items(cell.content_controls, cell.preceding_markup))
            items.append((cell.content_controls, self.cell(cell)))
        items.extend(_loose_items([], row.trailing_markup))
        for child in wrap_groups(items, self.markup.content_control):
            element.append(child)
        return element

    def cell(self, cell: TableCell):
        element = make_element("w:tc")
        if cell.row_span > 1:
            vertical_merge = "restart"
        elif cell.row_span == 0:
            vertical_merge = "continue"
        else:
            vertical_merge = cell.formatting.vertical_merge
        properties = self.markup.formatting.cell_properties(
            cell.formatting, cell.raw_properties, cell.col_span, vertical_merge
        )
        if properties is not None:
            element.append(properties)

        items = self.container_items(cell)
        items.extend(_loose_items([], cell.trailing_markup))
        content = wrap_groups(items, self.markup.content_control)
        for child in content:
            element.append(child)
        # A cell must end with a paragraph
        blocks = [child for child in content if child.tag in (qn("w:p"), qn("w:tbl"), qn("w:sdt"))]
        if not blocks or blocks[-1].tag == qn("w:tbl"):
            sub_element(element, "w:p")
        return element


def _loose_items(chain, markup) -> List[Wrapped]:
    return [(list(chain[: loose.depth]), from_markup(loose.markup)) for loose in markup]


def _validate_table(node: DocumentNode) -> None:
    """Check the spans of a table's cells against its grid."""
    table: TableData = node.table_data
    for row_index, row in enumerate(table.rows):
        previous_end = 0
        for cell in row.cells:
            where = f"row {row_index}, column {cell.column_index}"
            if cell.col_span < 1:
                raise StructuralError("Cell column span must be at least 1", where, node_id=node.id)
            if cell.row_span < 0:
                raise StructuralError("Cell row span cannot be negative", where, node_id=node.id)
            if cell.column_index < previous_end:
                raise StructuralError("Cells overlap", where, node_id=node.id)
            previous_end = cell.column_index + cell.col_span
            if previous_end > table.column_count:
                raise StructuralError(
                    "Cell spans past the last grid column", f"{where} ({table.column_count} columns)", node_id=node.id
                )
            if cell.row_span > 1:
                _validate_merge_origin(node, table, row_index, cell)
            elif cell.row_span == 0:
                _validate_merge_continuation(node, table, row_index, cell)


def _validate_merge_origin(node: DocumentNode, table: TableData, row_index: int, cell: TableCell) -> None:
    where = f"row {row_index}, column {cell.column_index}"
    if row_index + cell.row_span > table.row_count:
        raise StructuralError("Vertical merge extends past the last row", where, node_id=node.id)
    for below in range(row_index + 1, row_index + cell.row_span):
        covered = next((c for c in table.rows[below].cells if c.column_index == cell.column_index), None)
        if covered is None or covered.row_span != 0:
            raise StructuralError(
                "Vertical merge is missing a continuation cell", f"{where} (row {below})", node_id=node.id
            )


def _validate_merge_continuation(node: DocumentNode, table: TableData, row_index: int, cell: TableCell) -> None:
    for above in range(row_index - 1, -1, -1):
        candidate = next((c for c in table.rows[above].cells if c.column_index == cell.column_index), None)
        if candidate is None:
            break
        if candidate.row_span == 0:
            continue
        if candidate.row_span > 1 and above + candidate.row_span > row_index:
            return
        break
    raise StructuralError(
        "Merged cell has no origin above it", f"row {row_index}, column {cell.column_index}", node_id=node.id
    )


def write_document(root: DocumentRoot, options: Optional[WriteOptions] = None) -> bytes:
    return DocumentTreeWriter(options).write(root)
