"""
Markup builder.

Builds WordprocessingML elements for regenerated content: paragraphs, runs,
hyperlink and content-control wrappers, and drawings. Elements read from a
package are the starting point wherever they exist, so anything the models
do not cover is carried over.
"""

import logging
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from lxml import etree

from .formatting_writer import FormattingWriter, ensure_child, insert_ordered, remove_children, set_attr
from ..models.content_control import ContentControlProperties, ContentControlType
from ..models.formatting import ParagraphFormatting
from ..models.image import ImageData
from ..models.run import FormattedRun, HyperlinkData
from ..parser.content_control_extractor import ContentControlExtractor
from ..parser.image_extractor import PICTURE_URI
from ..utils.fingerprint import compute_fingerprint
from ..utils.xml import NAMESPACES, XML_NS, from_markup, make_element, prefixed_name, qn, sub_element, w_attr

logger = logging.getLogger(__name__)

SDT_PROPERTIES_ORDER = (
    "rPr", "alias", "tag", "id", "lock", "placeholder", "temporary", "showingPlcHdr", "dataBinding",
    "label", "tabIndex", "docPartObj", "docPartList", "richText", "text", "picture", "date",
    "dropDownList", "comboBox", "group", "bibliography", "citation", "equation",
)

_TYPE_ELEMENTS = {
    ContentControlType.RICH_TEXT: "w:richText",
    ContentControlType.PLAIN_TEXT: "w:text",
    ContentControlType.PICTURE: "w:picture",
    ContentControlType.DATE: "w:date",
    ContentControlType.DROP_DOWN_LIST: "w:dropDownList",
    ContentControlType.COMBO_BOX: "w:comboBox",
    ContentControlType.GROUP: "w:group",
    ContentControlType.BIBLIOGRAPHY: "w:bibliography",
    ContentControlType.CITATION: "w:citation",
    ContentControlType.EQUATION: "w:equation",
}

_DEFAULT_IMAGE_EMU = 914400

Wrapped = Tuple[Sequence[object], object]


def wrap_groups(items: List[Wrapped], build_wrapper: Callable, depth: int = 0) -> List[object]:
    """
    Re-wrap a flat sequence of elements in their wrappers.

    Each item is (wrapper chain outermost first, element). Consecutive items
    sharing the same wrapper object at a depth are enclosed in one wrapper.

    Args:
        items: Chains and elements in document order
        build_wrapper: Called as build_wrapper(wrapper, inner_elements)
        depth: Chain position being grouped

    Returns:
        Top-level elements
    """
    output = []
    index = 0
    while index < len(items):
        chain, element = items[index]
        if len(chain) <= depth:
            if element is not None:
                output.append(element)
            index += 1
            continue
        wrapper = chain[depth]
        end = index
        while end < len(items) and len(items[end][0]) > depth and items[end][0][depth] is wrapper:
            end += 1
        inner = wrap_groups(items[index:end], build_wrapper, depth + 1)
        output.append(build_wrapper(wrapper, inner))
        index = end
    return output


def _set_any_attr(element, name: str, value) -> None:
    if value is None:
        element.attrib.pop(name, None)
    else:
        element.set(name, str(value))


class MarkupBuilder:
    """
    Element factory used by the writer.

    Args:
        allocate_drawing_id: Returns a fresh wp:docPr id for new drawings
    """

    def __init__(self, formatting_writer: Optional[FormattingWriter] = None, allocate_drawing_id: Optional[Callable[[], int]] = None):
        self.formatting = formatting_writer or FormattingWriter()
        self.control_extractor = ContentControlExtractor()
        self.allocate_drawing_id = allocate_drawing_id or (lambda: 1)

    # Paragraphs and runs

    def paragraph(self, runs: List[FormattedRun], formatting, source_paragraph=None, images: Optional[Dict[str, ImageData]] = None):
        """
        Build a w:p.

        Args:
            runs: Runs in order
            formatting: ParagraphFormatting (None for none)
            source_paragraph: The w:p the node was read from, if any
            images: Node id -> ImageData for drawing runs

        Returns:
            w:p element
        """
        paragraph = make_element("w:p")
        raw_properties = None
        if source_paragraph is not None:
            for name, value in source_paragraph.attrib.items():
                paragraph.set(name, value)
            source_properties = source_paragraph.find(qn("w:pPr"))
            if source_properties is not None:
                raw_properties = etree.tostring(source_properties, encoding="unicode")
        properties = self.formatting.paragraph_properties(formatting, raw_properties)
        if properties is not None:
            paragraph.append(properties)
        for element in self.inline_content(runs, images or {}):
            paragraph.append(element)
        return paragraph

    def inline_content(self, runs: List[FormattedRun], images: Dict[str, ImageData]) -> List[object]:
        items: List[Wrapped] = []
        for run in runs:
            chain = list(run.content_controls)
            if run.hyperlink is not None:
                chain.append(run.hyperlink)
            for element in self.run_elements(run, images):
                items.append((chain, element))
        return wrap_groups(items, self._inline_wrapper)

    def run_elements(self, run: FormattedRun, images: Dict[str, ImageData]) -> List[object]:
        """Elements for one run: a w:r, or the verbatim item for opaque runs."""
        if run.is_raw:
            return [from_markup(run.raw_markup)]

        element = make_element("w:r")
        properties = self.formatting.run_properties(run.formatting, run.raw_properties)
        if properties is not None:
            element.append(properties)

        if run.drawing_id is not None:
            image = images.get(run.drawing_id)
            if image is None:
                logger.debug(f"Dropping drawing run for detached image node {run.drawing_id}")
                return []
            element.append(self.drawing(image))
        elif run.is_tab:
            sub_element(element, "w:tab")
        elif run.is_break:
            sub_element(element, "w:br", type=run.break_type)
        elif run.is_carriage_return:
            sub_element(element, "w:cr")
        else:
            self._append_text(element, run.text)
        return [element]

    @staticmethod
    def _append_text(run_element, text: str) -> None:
        lines = text.split("\n")
        for line_index, line in enumerate(lines):
            if line_index:
                sub_element(run_element, "w:br")
            for piece_index, piece in enumerate(line.split("\t")):
                if piece_index:
                    sub_element(run_element, "w:tab")
                if not piece:
                    continue
                text_element = sub_element(run_element, "w:t")
                text_element.text = piece
                if piece[0].isspace() or piece[-1].isspace():
                    text_element.set(f"{{{XML_NS}}}space", "preserve")

    def _inline_wrapper(self, wrapper, inner: List[object]):
        if isinstance(wrapper, HyperlinkData):
            return self.hyperlink(wrapper, inner)
        return self.content_control(wrapper, inner)

    def hyperlink(self, link: HyperlinkData, inner: List[object]):
        element = make_element("w:hyperlink")
        for name, value in link.raw_attributes.items():
            element.set(name, value)
        _set_any_attr(element, qn("r:id"), link.rel_id)
        _set_any_attr(element, qn("w:anchor"), link.anchor)
        _set_any_attr(element, qn("w:tooltip"), link.tooltip)
        for child in inner:
            element.append(child)
        return element

    # Content controls

    def content_control(self, properties: ContentControlProperties, inner: List[object]):
        """Build a w:sdt around already-built content."""
        element = make_element("w:sdt")
        element.append(self.content_control_properties(properties))
        if properties.raw_end_properties:
            element.append(from_markup(properties.raw_end_properties))
        content = sub_element(element, "w:sdtContent")
        for child in inner:
            content.append(child)
        return element

    def content_control_properties(self, properties: ContentControlProperties):
        """
        Build the w:sdtPr for a control.

        Unchanged controls get their verbatim w:sdtPr back; edited ones get it
        patched property by property.
        """
        raw = properties.raw_properties
        if raw and properties.source_fingerprint == compute_fingerprint(properties):
            return from_markup(raw)

        element = from_markup(raw) if raw else make_element("w:sdtPr")
        old = self.control_extractor.extract(from_markup(raw) if raw else None)
        order = SDT_PROPERTIES_ORDER

        def changed(*names) -> bool:
            return any(getattr(properties, name) != getattr(old, name) for name in names)

        if changed("alias"):
            _set_child_val(element, "alias", properties.alias, order)
        if changed("tag"):
            _set_child_val(element, "tag", properties.tag, order)
        if changed("id"):
            _set_child_val(element, "id", properties.id, order)
        if changed("lock_control", "lock_contents"):
            _set_child_val(element, "lock", properties.lock_value, order)
        if changed("placeholder"):
            if properties.placeholder is None:
                remove_children(element, "placeholder")
            else:
                placeholder = ensure_child(element, "placeholder", order)
                set_attr(ensure_child(placeholder, "docPart", ("docPart",)), "val", properties.placeholder)
        if changed("showing_placeholder"):
            if properties.showing_placeholder:
                ensure_child(element, "showingPlcHdr", order)
            else:
                remove_children(element, "showingPlcHdr")
        if changed("data_binding"):
            self._write_data_binding(element, properties)
        if raw is None or changed("type"):
            self._write_type(element, properties, old)
        else:
            self._patch_type_details(element, properties, old)
        logger.debug(f"Regenerated w:sdtPr for control {properties.tag or properties.id}")
        return element

    @staticmethod
    def _write_data_binding(element, properties: ContentControlProperties) -> None:
        binding = properties.data_binding
        if binding is None:
            remove_children(element, "dataBinding")
            return
        target = ensure_child(element, "dataBinding", SDT_PROPERTIES_ORDER)
        set_attr(target, "prefixMappings", binding.prefix_mappings)
        set_attr(target, "xpath", binding.xpath)
        set_attr(target, "storeItemID", binding.store_item_id)

    def _write_type(self, element, properties: ContentControlProperties, old: ContentControlProperties) -> None:
        for tag in list(_TYPE_ELEMENTS.values()) + ["w:docPartList"]:
            for existing in element.findall(qn(tag)):
                element.remove(existing)
        for existing in element.findall(qn("w14:checkbox")):
            element.remove(existing)

        control_type = properties.type
        if control_type == ContentControlType.CHECKBOX:
            element.append(self._checkbox(properties))
            return
        if control_type == ContentControlType.BUILDING_BLOCK_GALLERY:
            doc_part_list = make_element("w:docPartList")
            if properties.gallery:
                sub_element(doc_part_list, "w:docPartGallery", val=properties.gallery)
            if properties.category:
                sub_element(doc_part_list, "w:docPartCategory", val=properties.category)
            insert_ordered(element, doc_part_list, SDT_PROPERTIES_ORDER)
            return
        tag = _TYPE_ELEMENTS.get(control_type)
        if tag is None:
            return
        type_element = make_element(tag)
        insert_ordered(element, type_element, SDT_PROPERTIES_ORDER)
        blank = ContentControlProperties(type=control_type)
        self._patch_type_details(element, properties, blank)

    def _patch_type_details(self, element, properties: ContentControlProperties, old: ContentControlProperties) -> None:
        control_type = properties.type
        if control_type in (ContentControlType.DROP_DOWN_LIST, ContentControlType.COMBO_BOX):
            container = element.find(qn(_TYPE_ELEMENTS[control_type]))
            if container is None:
                return
            if properties.last_value != old.last_value:
                set_attr(container, "lastValue", properties.last_value)
            if properties.list_items != old.list_items:
                for item in container.findall(qn("w:listItem")):
                    container.remove(item)
                for item in properties.list_items:
                    sub_element(container, "w:listItem", displayText=item.display_text, value=item.value)
        elif control_type == ContentControlType.DATE:
            date = element.find(qn("w:date"))
            if date is None:
                return
            if properties.full_date != old.full_date:
                set_attr(date, "fullDate", properties.full_date)
            date_order = ("dateFormat", "lid", "storeMappedDataAs", "calendar")
            if properties.date_format != old.date_format:
                _set_child_val(date, "dateFormat", properties.date_format, date_order)
            if properties.date_locale != old.date_locale:
                _set_child_val(date, "lid", properties.date_locale, date_order)
        elif control_type == ContentControlType.CHECKBOX:
            checkbox = element.find(qn("w14:checkbox"))
            if checkbox is None:
                element.append(self._checkbox(properties))
                return
            if properties.checked != old.checked:
                checked = checkbox.find(qn("w14:checked"))
                if checked is None:
                    checked = etree.SubElement(checkbox, qn("w14:checked"))
                    checkbox.insert(0, checked)
                checked.set(qn("w14:val"), "1" if properties.checked else "0")

    @staticmethod
    def _checkbox(properties: ContentControlProperties):
        nsmap = {"w14": NAMESPACES["w14"]}
        checkbox = etree.Element(qn("w14:checkbox"), nsmap=nsmap)
        checked = etree.SubElement(checkbox, qn("w14:checked"))
        checked.set(qn("w14:val"), "1" if properties.checked else "0")
        for tag, symbol in (("w14:checkedState", properties.checked_symbol), ("w14:uncheckedState", properties.unchecked_symbol)):
            if symbol:
                state = etree.SubElement(checkbox, qn(tag))
                state.set(qn("w14:val"), symbol)
                state.set(qn("w14:font"), "MS Gothic")
        return checkbox

    # Drawings

    def drawing(self, image: ImageData):
        """
        Build a w:drawing for an image.

        A drawing read from a package is re-anchored on the image's
        relationship id and its size, names and placement updated; a new
        image gets an inline picture drawing.
        """
        if not image.raw_drawing:
            return self._new_drawing(image)

        drawing = from_markup(image.raw_drawing)
        container = drawing.find(qn("wp:inline"))
        if container is None:
            container = drawing.find(qn("wp:anchor"))
        if container is None:
            logger.warning(f"Drawing for {image.rel_id} has no inline or anchor placement; keeping it as read")
            return drawing
        blip = drawing.find(".//" + qn("a:blip"))
        if blip is not None:
            blip.set(qn("r:embed"), image.rel_id)

        extent = container.find(qn("wp:extent"))
        natural = drawing.find(".//" + qn("pic:spPr") + "/" + qn("a:xfrm") + "/" + qn("a:ext"))
        if extent is not None and image.width_emu is not None and image.height_emu is not None:
            declared = (str(image.width_emu), str(image.height_emu))
            if (extent.get("cx"), extent.get("cy")) != declared:
                extent.set("cx", declared[0])
                extent.set("cy", declared[1])
                if natural is not None:
                    natural.set("cx", declared[0])
                    natural.set("cy", declared[1])
            elif natural is not None and image.natural_width_emu is not None and image.natural_height_emu is not None:
                natural.set("cx", str(image.natural_width_emu))
                natural.set("cy", str(image.natural_height_emu))

        doc_pr = container.find(qn("wp:docPr"))
        if doc_pr is not None:
            if image.drawing_id is not None:
                doc_pr.set("id", str(image.drawing_id))
            if image.name is not None:
                doc_pr.set("name", image.name)
            _set_any_attr(doc_pr, "title", image.title)
            _set_any_attr(doc_pr, "descr", image.description)

        placement = image.formatting
        for attribute, value in (
            ("distT", placement.distance_top),
            ("distB", placement.distance_bottom),
            ("distL", placement.distance_left),
            ("distR", placement.distance_right),
        ):
            if value is not None:
                container.set(attribute, str(value))
        if prefixed_name(container) == "wp:anchor":
            for attribute, value in (
                ("allowOverlap", placement.allow_overlap),
                ("behindDoc", placement.behind_document),
                ("layoutInCell", placement.layout_in_cell),
                ("locked", placement.locked),
            ):
                if value is not None:
                    container.set(attribute, "1" if value else "0")
            if placement.relative_height is not None:
                container.set("relativeHeight", str(placement.relative_height))
            for tag, offset in (("wp:positionH", placement.horizontal_offset), ("wp:positionV", placement.vertical_offset)):
                position = container.find(qn(tag))
                offset_element = position.find(qn("wp:posOffset")) if position is not None else None
                if offset_element is not None and offset is not None:
                    offset_element.text = str(offset)
        return drawing

    def _new_drawing(self, image: ImageData):
        width = image.width_emu or image.natural_width_emu or _DEFAULT_IMAGE_EMU
        height = image.height_emu or image.natural_height_emu or _DEFAULT_IMAGE_EMU
        drawing_id = image.drawing_id if image.drawing_id is not None else self.allocate_drawing_id()
        name = image.name or f"Picture {drawing_id}"
        placement = image.formatting

        nsmap = {prefix: NAMESPACES[prefix] for prefix in ("w", "wp", "a", "pic", "r")}
        drawing = etree.Element(qn("w:drawing"), nsmap=nsmap)
        inline = etree.SubElement(drawing, qn("wp:inline"))
        for attribute, value in (
            ("distT", placement.distance_top),
            ("distB", placement.distance_bottom),
            ("distL", placement.distance_left),
            ("distR", placement.distance_right),
        ):
            inline.set(attribute, str(value or 0))
        etree.SubElement(inline, qn("wp:extent"), cx=str(width), cy=str(height))
        doc_pr = etree.SubElement(inline, qn("wp:docPr"), id=str(drawing_id), name=name)
        if image.title:
            doc_pr.set("title", image.title)
        if image.description:
            doc_pr.set("descr", image.description)
        frame = etree.SubElement(inline, qn("wp:cNvGraphicFramePr"))
        etree.SubElement(frame, qn("a:graphicFrameLocks"), noChangeAspect="1")

        graphic_data = etree.SubElement(etree.SubElement(inline, qn("a:graphic")), qn("a:graphicData"), uri=PICTURE_URI)
        picture = etree.SubElement(graphic_data, qn("pic:pic"))
        non_visual = etree.SubElement(picture, qn("pic:nvPicPr"))
        etree.SubElement(non_visual, qn("pic:cNvPr"), id="0", name=name)
        etree.SubElement(non_visual, qn("pic:cNvPicPr"))
        fill = etree.SubElement(picture, qn("pic:blipFill"))
        blip = etree.SubElement(fill, qn("a:blip"))
        blip.set(qn("r:embed"), image.rel_id)
        etree.SubElement(etree.SubElement(fill, qn("a:stretch")), qn("a:fillRect"))
        shape = etree.SubElement(picture, qn("pic:spPr"))
        transform = etree.SubElement(shape, qn("a:xfrm"))
        etree.SubElement(transform, qn("a:off"), x="0", y="0")
        etree.SubElement(transform, qn("a:ext"), cx=str(width), cy=str(height))
        geometry = etree.SubElement(shape, qn("a:prstGeom"), prst="rect")
        etree.SubElement(geometry, qn("a:avLst"))
        logger.debug(f"Built inline drawing {drawing_id} for {image.rel_id}")
        return drawing


def _set_child_val(parent, tag: str, value, order: Sequence[str]) -> None:
    if value is None:
        remove_children(parent, tag)
    else:
        set_attr(ensure_child(parent, tag, order), "val", value)


def heading_formatting(formatting: Optional[ParagraphFormatting], level: int) -> ParagraphFormatting:
    """Formatting for a heading paragraph restyled to express the given level."""
    base = formatting or ParagraphFormatting()
    outline = level - 1 if base.outline_level is not None else None
    return replace(base, style_id=f"Heading{level}", outline_level=outline)
