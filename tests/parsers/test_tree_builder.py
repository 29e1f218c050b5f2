"""
Tests for building document trees from the main document body.
"""

import io
import zipfile

import pytest

from docx_tree import parse
from docx_tree.exceptions import ParseError
from docx_tree.models.content_control import ContentControlType
from docx_tree.models.node import (
    META_PRECEDING_MARKUP,
    META_SECTION_PROPERTIES,
    META_TRAILING_MARKUP,
    ContentType,
)
from docx_tree.models.run import DocumentPropertyType
from docx_tree.models.source import PartialSource
from docx_tree.options import ParseOptions

from tests.snippets import (
    cell,
    drawing,
    dropdown_block,
    heading,
    inline_text_control,
    list_item,
    paragraph,
    run,
    simple_table,
    table,
)


def shape(node):
    """(label, text, children) view of a subtree."""
    label = f"H{node.heading_level}" if node.type == ContentType.HEADING else node.type.value
    return (label, node.text, [shape(child) for child in node.children])


class TestHeadingHierarchy:
    """The heading stack decides where each block is attached."""

    def test_blocks_attach_to_nearest_open_heading(self, docx_factory):
        body = (
            paragraph("Intro")
            + heading("A", 1)
            + paragraph("a1")
            + heading("B", 2)
            + paragraph("b1")
            + heading("C", 1)
            + paragraph("c1")
        )
        root = parse(docx_factory(body))

        assert [shape(child) for child in root.children] == [
            ("Paragraph", "Intro", []),
            ("H1", "A", [("Paragraph", "a1", []), ("H2", "B", [("Paragraph", "b1", [])])]),
            ("H1", "C", [("Paragraph", "c1", [])]),
        ]

    def test_sibling_headings_close_each_other(self, docx_factory):
        root = parse(docx_factory(heading("A", 2) + heading("B", 2) + heading("C", 3)))
        assert [shape(child) for child in root.children] == [
            ("H2", "A", []),
            ("H2", "B", [("H3", "C", [])]),
        ]

    def test_non_contiguous_levels(self, docx_factory):
        """[H1, H3, P]: H3 is a child of H1 and P a child of H3."""
        root = parse(docx_factory(heading("One", 1) + heading("Three", 3) + paragraph("Body")))

        h1 = root.children[0]
        h3 = h1.children[0]
        assert h3.heading_level == 3
        assert h3.children[0].text == "Body"
        assert h3.get_depth() == 2

    def test_every_heading_parent_is_shallower(self, docx_factory):
        body = "".join(heading(f"H{level}", level) + paragraph("x") for level in (1, 3, 2, 4, 1, 2))
        root = parse(docx_factory(body))
        for node in root.iter_descendants():
            if node.type == ContentType.HEADING and node.parent is not root:
                assert node.parent.heading_level < node.heading_level

    def test_heading_from_style_outline_level(self, docx_factory):
        root = parse(docx_factory(paragraph("Rozdzial", style="Kapitel") + paragraph("x")))
        assert root.children[0].type == ContentType.HEADING
        assert root.children[0].heading_level == 2

    def test_heading_from_direct_outline_level(self, docx_factory):
        body = paragraph("Top", properties='<w:outlineLvl w:val="0"/>') + paragraph(
            "Body text", properties='<w:outlineLvl w:val="9"/>'
        )
        root = parse(docx_factory(body, styles=False))

        assert root.children[0].heading_level == 1
        assert root.children[0].children[0].type == ContentType.PARAGRAPH

    def test_title_style_is_not_a_heading(self, docx_factory):
        root = parse(docx_factory(paragraph("Report", style="Title")))
        assert root.children[0].type == ContentType.PARAGRAPH

    def test_heading_level_out_of_range(self, docx_factory):
        with pytest.raises(ParseError):
            parse(docx_factory(paragraph("Too deep", style="Heading10")))

    def test_empty_paragraphs_are_kept(self, docx_factory):
        root = parse(docx_factory(paragraph("a") + paragraph() + paragraph("b")))
        assert [child.text for child in root.children] == ["a", "", "b"]


class TestLists:
    """Numbered paragraphs become list items grouped under List nodes."""

    def test_consecutive_items_share_a_list(self, docx_factory):
        body = list_item("one") + list_item("two", level=1) + list_item("other", num_id=2) + paragraph("after")
        root = parse(docx_factory(body))

        first, second, after = root.children
        assert first.type == ContentType.LIST
        assert [item.text for item in first.children] == ["one", "two"]
        assert first.children[1].list_level == 1
        assert first.list_id == "1"
        assert [item.text for item in second.children] == ["other"]
        assert after.type == ContentType.PARAGRAPH

    def test_num_id_zero_is_not_a_list_item(self, docx_factory):
        root = parse(docx_factory(list_item("plain", num_id=0)))
        assert root.children[0].type == ContentType.PARAGRAPH

    def test_list_under_heading(self, docx_factory):
        root = parse(docx_factory(heading("Steps", 1) + list_item("a") + list_item("b")))
        steps = root.children[0]
        assert steps.children[0].type == ContentType.LIST
        assert len(steps.children[0].children) == 2


class TestRuns:
    """Inline content of paragraphs."""

    def test_formatting_and_positional_items(self, docx_factory):
        runs = run("Bold", "<w:b/>") + '<w:r><w:tab/><w:t>after tab</w:t><w:br/></w:r>'
        root = parse(docx_factory(paragraph(runs=runs)))

        node = root.children[0]
        assert node.runs[0].formatting.bold is True
        assert node.runs[1].is_tab
        assert node.text == "Bold\tafter tab\n"

    def test_bookmarks_are_kept_in_position(self, docx_factory):
        runs = '<w:bookmarkStart w:id="0" w:name="start"/>' + run("Text") + '<w:bookmarkEnd w:id="0"/>'
        node = parse(docx_factory(paragraph(runs=runs))).children[0]

        assert [r.is_raw for r in node.runs] == [True, False, True]
        assert node.text == "Text"

    def test_hyperlink(self, docx_factory):
        runs = '<w:hyperlink r:id="rId11" w:history="1">' + run("Click") + run(" here") + "</w:hyperlink>"
        node = parse(docx_factory(paragraph(runs=runs), hyperlink="https://example.com/")).children[0]

        assert node.runs[0].hyperlink is node.runs[1].hyperlink
        assert node.runs[0].hyperlink.url == "https://example.com/"
        assert node.runs[0].hyperlink.raw_attributes

    def test_docproperty_field_is_resolved(self, docx_factory):
        runs = (
            '<w:r><w:fldChar w:fldCharType="begin"/></w:r>'
            '<w:r><w:instrText xml:space="preserve"> DOCPROPERTY  Title  \\* MERGEFORMAT </w:instrText></w:r>'
            '<w:r><w:fldChar w:fldCharType="separate"/></w:r>'
            + run("Stale title")
            + '<w:r><w:fldChar w:fldCharType="end"/></w:r>'
        )
        node = parse(docx_factory(paragraph(runs=runs))).children[0]

        result = next(r for r in node.runs if r.document_property is not None)
        assert result.text == "Stale title"
        assert result.document_property.name == "Title"
        assert result.document_property.property_type == DocumentPropertyType.CORE
        assert result.document_property.value == "Original title"

    def test_docproperty_resolution_can_be_disabled(self, docx_factory):
        runs = '<w:fldSimple w:instr=" DOCPROPERTY Client ">' + run("cached") + "</w:fldSimple>"
        data = docx_factory(paragraph(runs=runs), custom_properties={"Client": "ACME"})

        resolved = parse(data).children[0].runs[0].document_property
        cached = parse(data, ParseOptions(resolve_document_properties=False)).children[0].runs[0].document_property

        assert resolved.property_type == DocumentPropertyType.CUSTOM
        assert resolved.value == "ACME"
        assert cached.value == "cached"


class TestImages:
    """Drawings become Image nodes."""

    def test_picture_only_paragraph_is_an_image_node(self, docx_factory):
        body = paragraph(runs=f"<w:r>{drawing()}</w:r>")
        node = parse(docx_factory(body, media=True)).children[0]

        assert node.type == ContentType.IMAGE
        assert node.image_data.rel_id == "rId10"
        assert node.image_data.content_type == "image/png"
        assert node.image_data.width_emu == 914400
        assert node.image_data.description == "Logo"
        assert node.runs[0].drawing_id == node.id

    def test_picture_inside_text_is_a_child(self, docx_factory):
        body = paragraph(runs=run("Logo: ") + f"<w:r>{drawing()}</w:r>")
        node = parse(docx_factory(body, media=True)).children[0]

        assert node.type == ContentType.PARAGRAPH
        image = node.children[0]
        assert image.type == ContentType.IMAGE
        assert node.runs[1].drawing_id == image.id

    def test_picture_in_heading_is_its_first_child(self, docx_factory):
        body = paragraph(style="Heading1", runs=run("Logo ") + f"<w:r>{drawing()}</w:r>") + paragraph("Body")
        node = parse(docx_factory(body, media=True)).children[0]

        assert node.type == ContentType.HEADING
        assert node.text == "Logo "
        image, body_node = node.children
        assert image.type == ContentType.IMAGE
        assert image.image_data.rel_id == "rId10"
        assert node.runs[1].drawing_id == image.id
        assert not node.runs[1].is_raw
        assert body_node.text == "Body"
        assert node.inline_images() == [image]

    def test_missing_media_stays_opaque(self, docx_factory):
        body = paragraph(runs=f"<w:r>{drawing(rel_id='rId99')}</w:r>")
        node = parse(docx_factory(body, media=True)).children[0]

        assert node.type == ContentType.PARAGRAPH
        assert node.runs[0].is_raw


class TestContentControls:
    """Block and inline content controls."""

    def test_block_drop_down(self, docx_factory):
        root = parse(docx_factory(dropdown_block("choice", "A")))
        node = root.children[0]

        control = node.content_control
        assert control.type == ContentControlType.DROP_DOWN_LIST
        assert control.tag == "choice"
        assert control.value == "A"
        assert node.text == "A"

    def test_block_control_spanning_paragraphs(self, docx_factory):
        body = (
            '<w:sdt><w:sdtPr><w:tag w:val="section"/><w:id w:val="5"/><w:richText/></w:sdtPr><w:sdtContent>'
            + heading("Inside", 1)
            + paragraph("first")
            + "</w:sdtContent></w:sdt>"
            + paragraph("outside")
        )
        root = parse(docx_factory(body))

        inside = root.children[0]
        assert inside.content_control is inside.children[0].content_control
        assert inside.content_control.value == "Inside\nfirst"
        assert inside.children[1].content_controls == []

    def test_inline_control(self, docx_factory):
        body = paragraph(runs=run("Client: ") + inline_text_control("client", "ACME"))
        node = parse(docx_factory(body)).children[0]

        assert node.content_controls == []
        controls = node.inline_content_controls()
        assert len(controls) == 1
        assert controls[0].type == ContentControlType.PLAIN_TEXT
        assert controls[0].value == "ACME"
        assert node.find_content_control("client") is controls[0]
        assert node.text == "Client: ACME"

    def test_ids_are_reserved(self, docx_factory):
        root = parse(docx_factory(dropdown_block("choice", "A", control_id=7)))
        assert root.allocate_content_control_id() == 8


class TestTables:
    """Tables and their cells."""

    def test_simple_table(self, docx_factory):
        root = parse(docx_factory(simple_table([["a", "b"], ["c", "d"]])))
        node = root.children[0]

        assert node.type == ContentType.TABLE
        table_data = node.table_data
        assert (table_data.row_count, table_data.column_count) == (2, 2)
        assert table_data.cell_at(1, 1).text == "d"
        assert node.text == "a\tb\nc\td"

    def test_merged_cells(self, docx_factory):
        rows = [
            [cell(paragraph("wide"), '<w:gridSpan w:val="2"/>'), cell(paragraph("tall"), '<w:vMerge w:val="restart"/>')],
            [cell(paragraph("x")), cell(paragraph("y")), cell(paragraph(), "<w:vMerge/>")],
            [cell(paragraph("p")), cell(paragraph("q")), cell(paragraph("r"))],
        ]
        table_data = parse(docx_factory(table(rows, widths=[1000, 1000, 1000]))).children[0].table_data

        wide, tall = table_data.rows[0].cells
        assert (wide.col_span, tall.column_index) == (2, 2)
        assert tall.row_span == 2
        assert table_data.rows[1].cells[2].row_span == 0
        assert table_data.rows[2].cells[2].row_span == 1

    def test_nested_table_and_headings_in_cells(self, docx_factory):
        inner = simple_table([["inner"]])
        rows = [[cell(heading("Cell heading", 2) + paragraph("under") + inner + paragraph())]]
        node = parse(docx_factory(table(rows))).children[0]

        content = node.table_data.rows[0].cells[0].children
        assert content[0].type == ContentType.HEADING
        nested = content[0].children[1]
        assert nested.type == ContentType.TABLE
        assert nested.table_data.cell_at(0, 0).text == "inner"
        assert nested.table_data.cell_at(0, 0).parent is nested
        assert any(descendant.text == "inner" for descendant in node.iter_descendants())


class TestDocumentLevelMarkup:
    """Markup that has no node of its own."""

    def test_section_properties_and_trailing_markup(self, docx_factory):
        body = '<w:bookmarkStart w:id="1" w:name="top"/>' + paragraph("Only") + '<w:bookmarkEnd w:id="1"/>'
        root = parse(docx_factory(body))

        assert "w:bookmarkStart" in root.children[0].metadata[META_PRECEDING_MARKUP][0].markup
        assert "w:bookmarkEnd" in root.metadata[META_TRAILING_MARKUP][0].markup
        assert "w:pgSz" in root.metadata[META_SECTION_PROPERTIES]

    def test_fidelity_gaps(self, docx_factory):
        root = parse(docx_factory(paragraph("x", properties="<w:suppressAutoHyphens/>")))

        assert isinstance(root.children[0].source, PartialSource)
        assert [gap.property for gap in root.fidelity_gaps] == ["w:suppressAutoHyphens"]

    def test_document_name(self, docx_factory, temp_dir):
        path = temp_dir / "named.docx"
        path.write_bytes(docx_factory(paragraph("x")))

        assert parse(path).text == "named.docx"
        assert parse(path, ParseOptions(document_name="Report")).text == "Report"
        assert parse(path.read_bytes()).text == "Document"

    def test_missing_main_part(self, docx_factory, unzip):
        parts = unzip(docx_factory(paragraph("x")))
        del parts["word/document.xml"]
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zip_file:
            for name, data in parts.items():
                zip_file.writestr(name, data)

        with pytest.raises(ParseError):
            parse(buffer.getvalue())
