"""
Run extraction: paragraph children to an ordered list of FormattedRun items.

Text, tabs, breaks and pictures become ordinary runs. Hyperlinks and inline
content controls are flattened onto the runs they wrap (shared wrapper
objects mark which runs were wrapped together). Everything else is kept as an
opaque item with its verbatim markup, in position.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from .content_control_extractor import ContentControlExtractor
from .formatting_extractor import FormattingExtractor
from .image_extractor import ImageExtractor
from ..exceptions import FidelityGap
from ..metadata.property_names import property_type_for
from ..models.content_control import ContentControlProperties
from ..models.image import ImageData
from ..models.run import DocumentPropertyField, FormattedRun, HyperlinkData
from ..utils.xml import prefixed_name, qn, to_markup, w_attr

logger = logging.getLogger(__name__)

_DOCPROPERTY = re.compile(r'^\s*DOCPROPERTY\s+(?:"([^"]+)"|(\S+))', re.IGNORECASE)

# Run children that map onto FormattedRun fields; anything else makes the run opaque.
_CONTENT_CHILDREN = frozenset({"w:t", "w:tab", "w:br", "w:cr", "w:drawing"})
_SKIPPED_CHILDREN = frozenset({"w:rPr", "w:lastRenderedPageBreak"})

_HYPERLINK_ATTRIBUTES = frozenset({qn("r:id"), qn("w:anchor"), qn("w:tooltip")})


def parse_docproperty_instruction(instruction: str) -> Optional[str]:
    """Property name of a DOCPROPERTY field instruction, or None."""
    match = _DOCPROPERTY.match(instruction or "")
    if not match:
        return None
    return match.group(1) or match.group(2)


def visible_text(element) -> str:
    return "".join(t.text or "" for t in element.iter(qn("w:t")))


@dataclass
class _FieldState:
    instruction: str = ""
    separated: bool = False
    property: Optional[DocumentPropertyField] = None
    result_text: str = ""


class _Context:
    """Per-paragraph extraction state."""

    def __init__(self, on_image: Optional[Callable[[ImageData], str]]):
        self.runs: List[FormattedRun] = []
        self.gaps: List[FidelityGap] = []
        self.fields: List[_FieldState] = []
        self.on_image = on_image


class RunExtractor:
    """
    Turns the inline content of a paragraph into runs.

    Args:
        fidelity_store: Store used to resolve hyperlink targets, media and
            document property values
        register_control: Called with every content control found, so the
            owner can reserve its id
        resolve_document_properties: Resolve DOCPROPERTY field values from
            the package properties instead of the cached field result
    """

    def __init__(
        self,
        fidelity_store,
        formatting_extractor: Optional[FormattingExtractor] = None,
        control_extractor: Optional[ContentControlExtractor] = None,
        image_extractor: Optional[ImageExtractor] = None,
        register_control: Optional[Callable[[ContentControlProperties], None]] = None,
        resolve_document_properties: bool = True,
    ):
        self.store = fidelity_store
        self.formatting = formatting_extractor or FormattingExtractor()
        self.controls = control_extractor or ContentControlExtractor()
        self.images = image_extractor or ImageExtractor(fidelity_store, self.formatting)
        self.register_control = register_control
        self.resolve_document_properties = resolve_document_properties

    def extract(
        self, paragraph, on_image: Optional[Callable[[ImageData], str]] = None
    ) -> Tuple[List[FormattedRun], List[FidelityGap]]:
        """
        Extract the runs of a paragraph.

        Args:
            paragraph: w:p element
            on_image: Called with each embedded picture; returns the id of the
                node that now holds it. Without it pictures stay opaque.

        Returns:
            (runs, unmodelled run properties)
        """
        context = _Context(on_image)
        self._process_children(paragraph, context, None, [])
        if context.fields:
            logger.debug(f"Paragraph ends inside {len(context.fields)} unterminated field(s)")
        return context.runs, context.gaps

    def _process_children(self, parent, context: _Context, hyperlink, controls) -> None:
        for child in parent:
            if not isinstance(child.tag, str):
                continue
            name = prefixed_name(child)
            if name == "w:pPr":
                continue
            if name == "w:r":
                self._process_run(child, context, hyperlink, controls)
            elif name == "w:hyperlink":
                self._process_hyperlink(child, context, hyperlink, controls)
            elif name == "w:sdt":
                self._process_inline_sdt(child, context, hyperlink, controls)
            elif name == "w:fldSimple":
                self._process_simple_field(child, context, hyperlink, controls)
            else:
                self._add_raw(child, context, hyperlink, controls)

    def _add_raw(self, element, context: _Context, hyperlink, controls) -> FormattedRun:
        run = FormattedRun(
            text=visible_text(element),
            raw_markup=to_markup(element),
            hyperlink=hyperlink,
            content_controls=list(controls),
        )
        context.runs.append(run)
        return run

    # Runs

    def _process_run(self, element, context: _Context, hyperlink, controls) -> None:
        children = [
            child
            for child in element
            if isinstance(child.tag, str) and prefixed_name(child) not in _SKIPPED_CHILDREN
        ]
        if any(prefixed_name(child) not in _CONTENT_CHILDREN for child in children):
            self._process_opaque_run(element, context, hyperlink, controls)
            return

        images = {}
        drawings = [child for child in children if prefixed_name(child) == "w:drawing"]
        if drawings:
            if context.on_image is None:
                self._add_raw(element, context, hyperlink, controls)
                return
            for drawing in drawings:
                image = self.images.extract(drawing)
                if image is None:
                    self._add_raw(element, context, hyperlink, controls)
                    return
                images[id(drawing)] = image

        rpr = element.find(qn("w:rPr"))
        formatting, gaps = self.formatting.extract_run_formatting(rpr)
        context.gaps.extend(gaps)
        raw_properties = to_markup(rpr) if rpr is not None else None

        for index, child in enumerate(children):
            run = FormattedRun(
                formatting=formatting if index == 0 else replace(formatting),
                hyperlink=hyperlink,
                content_controls=list(controls),
                raw_properties=raw_properties,
            )
            name = prefixed_name(child)
            if name == "w:t":
                run.text = child.text or ""
            elif name == "w:tab":
                run.is_tab = True
            elif name == "w:br":
                run.is_break = True
                run.break_type = w_attr(child, "type")
            elif name == "w:cr":
                run.is_carriage_return = True
            else:
                run.drawing_id = context.on_image(images[id(child)])
            self._attach_field_result(run, context)
            context.runs.append(run)

    def _process_opaque_run(self, element, context: _Context, hyperlink, controls) -> None:
        field_char = element.find(qn("w:fldChar"))
        instruction = element.find(qn("w:instrText"))
        if field_char is not None:
            self._field_char(w_attr(field_char, "fldCharType"), context)
        elif instruction is not None and context.fields and not context.fields[-1].separated:
            context.fields[-1].instruction += instruction.text or ""
        run = self._add_raw(element, context, hyperlink, controls)
        if field_char is None and instruction is None:
            self._attach_field_result(run, context)

    # Fields

    def _field_char(self, char_type: Optional[str], context: _Context) -> None:
        if char_type == "begin":
            context.fields.append(_FieldState())
        elif char_type == "separate" and context.fields:
            state = context.fields[-1]
            state.separated = True
            name = parse_docproperty_instruction(state.instruction)
            if name:
                state.property = DocumentPropertyField(
                    name=name,
                    property_type=property_type_for(name),
                    field_code=state.instruction,
                )
        elif char_type == "end" and context.fields:
            state = context.fields.pop()
            if state.property is not None:
                state.property.value = self._resolve_property(state.property.name, state.result_text)
                logger.debug(f"DOCPROPERTY field {state.property.name} = {state.property.value!r}")

    def _attach_field_result(self, run: FormattedRun, context: _Context) -> None:
        if not context.fields:
            return
        state = context.fields[-1]
        if state.separated and state.property is not None:
            run.document_property = state.property
            state.result_text += run.text

    def _process_simple_field(self, element, context: _Context, hyperlink, controls) -> None:
        run = self._add_raw(element, context, hyperlink, controls)
        instruction = w_attr(element, "instr") or ""
        name = parse_docproperty_instruction(instruction)
        if name:
            run.document_property = DocumentPropertyField(
                name=name,
                property_type=property_type_for(name),
                value=self._resolve_property(name, run.text),
                field_code=instruction,
            )

    def _resolve_property(self, name: str, cached: str) -> str:
        if not self.resolve_document_properties:
            return cached
        _, value = self.store.get_document_property(name)
        if value is None:
            return cached
        return str(value)

    # Wrappers

    def _process_hyperlink(self, element, context: _Context, hyperlink, controls) -> None:
        rel_id = element.get(qn("r:id"))
        link = HyperlinkData(
            rel_id=rel_id,
            anchor=w_attr(element, "anchor"),
            tooltip=w_attr(element, "tooltip"),
            raw_attributes={
                name: value for name, value in element.attrib.items() if name not in _HYPERLINK_ATTRIBUTES
            },
        )
        if rel_id:
            target = self.store.get_hyperlink(rel_id)
            link.url = target.url if target is not None else None
        start = len(context.runs)
        self._process_children(element, context, link, controls)
        if len(context.runs) == start:
            self._add_raw(element, context, hyperlink, controls)

    def _process_inline_sdt(self, element, context: _Context, hyperlink, controls) -> None:
        properties = self.controls.extract(element.find(qn("w:sdtPr")), element.find(qn("w:sdtEndPr")))
        content = element.find(qn("w:sdtContent"))
        start = len(context.runs)
        if content is not None:
            self._process_children(content, context, hyperlink, list(controls) + [properties])
        produced = context.runs[start:]
        if not produced:
            self._add_raw(element, context, hyperlink, controls)
            return
        properties.value = "".join(run.plain_text for run in produced)
        if self.register_control is not None:
            self.register_control(properties)
