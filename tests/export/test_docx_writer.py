"""
Tests for writing document trees back to DOCX packages.
"""

import io
import zipfile

import pytest
from lxml import etree

from docx_tree import new_document, parse, write, write_to_file
from docx_tree.exceptions import StructuralError
from docx_tree.export.docx_writer import DocumentTreeWriter
from docx_tree.models.content_control import ContentControlProperties, ContentControlType, DataBinding
from docx_tree.models.formatting import ParagraphFormatting, RunFormatting
from docx_tree.models.image import ImageData
from docx_tree.models.node import ContentType, DocumentNode
from docx_tree.options import WriteOptions

from tests.conftest import PNG_BYTES, W_NS
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

NS = {"w": W_NS}


def outline(node):
    label = f"H{node.heading_level}" if node.type == ContentType.HEADING else node.type.value
    return (label, node.text, [outline(child) for child in node.children])


def body_of(data: bytes, unzip):
    return etree.fromstring(unzip(data)["word/document.xml"]).find("w:body", NS)


def canonical(element) -> bytes:
    return etree.tostring(element, method="c14n")


RICH_BODY = (
    paragraph("Preface")
    + heading("Chapter", 1)
    + paragraph(runs=run("Bold", "<w:b/>") + run(" and plain"))
    + list_item("first")
    + list_item("second", level=1)
    + heading("Section", 2)
    + simple_table([["a", "b"], ["c", "d"]])
    + dropdown_block("choice", "A")
    + paragraph("Hyphenation off", properties="<w:suppressAutoHyphens/>")
)


class TestRoundTrip:
    """Unmodified trees are written back unchanged."""

    def test_reparse_gives_the_same_tree(self, docx_factory):
        root = parse(docx_factory(RICH_BODY))
        again = parse(write(root))
        assert [outline(child) for child in again.children] == [outline(child) for child in root.children]

    def test_writing_is_a_fixpoint(self, docx_factory, unzip):
        first = write(parse(docx_factory(RICH_BODY)))
        second = write(parse(first))
        assert unzip(first)["word/document.xml"] == unzip(second)["word/document.xml"]

    def test_document_wide_parts_are_byte_identical(self, docx_factory, unzip):
        data = docx_factory(RICH_BODY, media=True, hyperlink="https://example.com/")
        original = unzip(data)

        written = unzip(write(parse(data)))

        for name in (
            "word/styles.xml",
            "word/theme/theme1.xml",
            "word/numbering.xml",
            "customXml/item1.xml",
            "customXml/itemProps1.xml",
            "customXml/_rels/item1.xml.rels",
            "docProps/core.xml",
            "word/media/image1.png",
            "word/_rels/document.xml.rels",
            "_rels/.rels",
            "[Content_Types].xml",
        ):
            assert written[name] == original[name], name
        assert set(written) == set(original)

    def test_part_order_is_kept(self, docx_factory):
        data = docx_factory(RICH_BODY)
        written = write(parse(data))
        with zipfile.ZipFile(io.BytesIO(data)) as source, zipfile.ZipFile(io.BytesIO(written)) as result:
            assert result.namelist() == source.namelist()

    def test_unmodelled_property_survives_untouched(self, docx_factory, unzip):
        root = parse(docx_factory(paragraph("Keep me", properties="<w:suppressAutoHyphens/>")))
        body = body_of(write(root), unzip)
        assert body.find("w:p/w:pPr/w:suppressAutoHyphens", NS) is not None

    def test_unmodelled_property_survives_an_edit(self, docx_factory, unzip):
        root = parse(docx_factory(paragraph("Keep me", properties='<w:suppressAutoHyphens/><w:jc w:val="left"/>')))
        node = root.children[0]
        node.text = "Edited"
        formatting = node.paragraph_formatting
        formatting.alignment = "center"

        body = body_of(write(root), unzip)

        paragraph_element = body.find("w:p", NS)
        assert paragraph_element.find("w:pPr/w:suppressAutoHyphens", NS) is not None
        assert paragraph_element.find("w:pPr/w:jc", NS).get(f"{{{W_NS}}}val") == "center"
        assert "".join(paragraph_element.itertext()) == "Edited"

    def test_bookmarks_and_section_properties(self, docx_factory, unzip):
        body_xml = '<w:bookmarkStart w:id="3" w:name="top"/>' + paragraph("x") + '<w:bookmarkEnd w:id="3"/>'
        body = body_of(write(parse(docx_factory(body_xml))), unzip)

        tags = [etree.QName(child).localname for child in body]
        assert tags == ["bookmarkStart", "p", "bookmarkEnd", "sectPr"]


class TestEdits:
    """Edits are reflected in the written package and nowhere else."""

    def test_text_edit_leaves_other_blocks_verbatim(self, docx_factory, unzip):
        data = docx_factory(paragraph("one") + paragraph("two", properties="<w:keepNext/>"))
        root = parse(data)
        root.children[0].text = "uno"

        written = write(root)

        body = body_of(written, unzip)
        original = body_of(data, unzip)
        assert "".join(body[0].itertext()) == "uno"
        assert canonical(body[1]) == canonical(original[1])

    def test_run_formatting_edit(self, docx_factory):
        root = parse(docx_factory(paragraph(runs=run("plain") + run(" tail", "<w:kern w:val=\"16\"/>"))))
        node = root.children[0]
        node.set_run_formatting(0, RunFormatting(bold=True, color="FF0000"))

        again = parse(write(root)).children[0]

        assert again.runs[0].formatting.bold is True
        assert again.runs[0].formatting.color == "FF0000"
        assert again.runs[1].text == " tail"
        assert [gap.property for gap in again.source.gaps] == ["w:kern"]

    def test_heading_level_change_restyles(self, docx_factory):
        root = parse(docx_factory(heading("Chapter", 1) + paragraph("body")))
        root.children[0].set_heading_level(2)

        again = parse(write(root))

        assert again.children[0].heading_level == 2
        assert again.children[0].paragraph_formatting.style_id == "Heading2"

    def test_moved_nodes_are_written_in_tree_order(self, docx_factory):
        root = parse(docx_factory(heading("A", 1) + paragraph("a") + heading("B", 1) + paragraph("b")))
        first, second = root.children
        moved = first.remove_child(first.children[0])
        second.add_child(moved)

        again = parse(write(root))

        assert [outline(child) for child in again.children] == [
            ("H1", "A", []),
            ("H1", "B", [("Paragraph", "b", []), ("Paragraph", "a", [])]),
        ]

    def test_new_nodes(self, docx_factory):
        root = parse(docx_factory(heading("A", 1)))
        heading_node = root.children[0]
        heading_node.add_child(DocumentNode(ContentType.PARAGRAPH, text="new\tline\nbreak"))
        root.add_child(DocumentNode(ContentType.HEADING, text="Z", heading_level=1))

        again = parse(write(root))

        assert again.children[0].children[0].text == "new\tline\nbreak"
        assert outline(again.children[1]) == ("H1", "Z", [])

    def test_core_property_edit_is_isolated(self, docx_factory, unzip):
        data = docx_factory(paragraph("x"))
        original = unzip(data)
        root = parse(data)
        root.fidelity_store.set_core_property("Title", "New title")

        written = unzip(write(root))

        assert written["docProps/core.xml"] != original["docProps/core.xml"]
        for name in ("word/styles.xml", "word/theme/theme1.xml", "word/numbering.xml", "customXml/item1.xml"):
            assert written[name] == original[name]
        assert parse(write(root)).fidelity_store.core.title == "New title"

    def test_custom_property_added_to_package(self, docx_factory, unzip):
        root = parse(docx_factory(paragraph("x")))
        root.fidelity_store.set_custom_property("Client", "ACME")

        written = write(root)

        assert "docProps/custom.xml" in unzip(written)
        assert parse(written).fidelity_store.get_custom_property("Client") == "ACME"


class TestContentControls:
    """Content-control edits on write."""

    def test_drop_down_selection(self, docx_factory, unzip):
        root = parse(docx_factory(dropdown_block("choice", "A")))
        root.children[0].set_content_control_value("B")

        written = write(root)
        again = parse(written).children[0]

        control = again.content_control
        assert control.value == "B"
        assert control.last_value == "B"
        assert (control.alias, control.tag, control.id) == ("Choice", "choice", 101)
        assert [item.value for item in control.list_items] == ["A", "B", "C"]
        assert again.text == "B"
        assert len(body_of(written, unzip).findall("w:sdt", NS)) == 1

    def test_unchanged_control_properties_are_verbatim(self, docx_factory, unzip):
        data = docx_factory(dropdown_block("choice", "A"))
        body = body_of(write(parse(data)), unzip)
        original = body_of(data, unzip)
        assert canonical(body.find("w:sdt/w:sdtPr", NS)) == canonical(original.find("w:sdt/w:sdtPr", NS))

    def test_inline_control_value(self, docx_factory):
        root = parse(docx_factory(paragraph(runs=run("Client: ") + inline_text_control("client", "Old"))))
        root.children[0].set_content_control_value("New Corp", "client")

        again = parse(write(root)).children[0]

        assert again.find_content_control("client").value == "New Corp"
        assert again.text == "Client: New Corp"

    def test_new_block_control(self, docx_factory):
        root = parse(docx_factory(paragraph("wrap me") + paragraph("leave me")))
        root.children[0].set_content_control(
            ContentControlProperties(type=ContentControlType.PLAIN_TEXT, tag="wrapped", alias="Wrapped")
        )

        again = parse(write(root))

        control = again.children[0].content_control
        assert control.type == ContentControlType.PLAIN_TEXT
        assert control.tag == "wrapped"
        assert control.id == 1
        assert again.children[1].content_controls == []

    def test_checkbox_toggle(self, docx_factory):
        body = (
            '<w:sdt><w:sdtPr><w:tag w:val="agree"/><w:id w:val="9"/>'
            '<w14:checkbox><w14:checked w14:val="0"/>'
            '<w14:checkedState w14:val="2612" w14:font="MS Gothic"/>'
            '<w14:uncheckedState w14:val="2610" w14:font="MS Gothic"/></w14:checkbox></w:sdtPr>'
            "<w:sdtContent>" + paragraph("☐") + "</w:sdtContent></w:sdt>"
        )
        root = parse(docx_factory(body))
        root.children[0].set_content_control_checked(True)

        again = parse(write(root)).children[0]

        assert again.content_control.checked is True
        assert again.text == "☒"

    def test_bound_control_with_known_store(self, docx_factory, store_item_id):
        root = parse(docx_factory(paragraph("x")))
        root.children[0].set_content_control(
            ContentControlProperties(
                type=ContentControlType.PLAIN_TEXT,
                tag="client",
                data_binding=DataBinding(xpath="/data/client", store_item_id=store_item_id.lower()),
            )
        )
        control = parse(write(root)).children[0].content_control
        assert control.data_binding.xpath == "/data/client"


class TestTables:
    """Tables survive edits with their structure intact."""

    def test_nested_table_edit(self, docx_factory):
        inner = simple_table([["inner a", "inner b"]])
        rows = [
            [cell(paragraph("outer") + inner + paragraph()), cell(paragraph("top"), '<w:vMerge w:val="restart"/>')],
            [cell(paragraph("below")), cell(paragraph(), "<w:vMerge/>")],
        ]
        root = parse(docx_factory(table(rows)))
        outer = root.children[0].table_data
        nested = outer.cell_at(0, 0).children[1]
        nested.table_data.cell_at(0, 1).children[0].text = "edited"

        again = parse(write(root)).children[0].table_data

        assert again.cell_at(0, 0).children[1].table_data.cell_at(0, 1).text == "edited"
        assert again.cell_at(0, 1).row_span == 2
        assert again.cell_at(1, 1).row_span == 0
        assert again.cell_at(1, 0).text == "below"

    def test_cell_ends_with_paragraph(self, docx_factory, unzip):
        root = parse(docx_factory(simple_table([["a"]])))
        target = root.children[0].table_data.cell_at(0, 0)
        target.remove_child(target.children[0])

        body = body_of(write(root), unzip)

        assert body.find("w:tbl/w:tr/w:tc/w:p", NS) is not None

    def test_col_span_change(self, docx_factory):
        rows = [[cell(paragraph("a")), cell(paragraph("b"))], [cell(paragraph("c")), cell(paragraph("d"))]]
        root = parse(docx_factory(table(rows)))
        table_data = root.children[0].table_data
        first_row = table_data.rows[0]
        first_row.cells[0].col_span = 2
        first_row.cells.pop()

        again = parse(write(root)).children[0].table_data

        assert again.rows[0].cells[0].col_span == 2
        assert again.column_count == 2


class TestImages:
    """Image nodes and the media table."""

    def test_image_round_trip(self, docx_factory, unzip):
        data = docx_factory(paragraph(runs=f"<w:r>{drawing()}</w:r>"), media=True)
        written = write(parse(data))

        again = parse(written).children[0]
        assert again.type == ContentType.IMAGE
        assert again.image_data.data == PNG_BYTES
        assert unzip(written)["word/media/image1.png"] == PNG_BYTES

    def test_image_resize_and_alt_text(self, docx_factory):
        root = parse(docx_factory(paragraph(runs=f"<w:r>{drawing()}</w:r>"), media=True))
        image = root.children[0].image_data
        image.width_emu, image.height_emu = 457200, 228600
        image.description = "Company logo"

        again = parse(write(root)).children[0].image_data

        assert (again.width_emu, again.height_emu) == (457200, 228600)
        assert (again.natural_width_emu, again.natural_height_emu) == (457200, 228600)
        assert again.description == "Company logo"

    def test_replace_media(self, docx_factory):
        root = parse(docx_factory(paragraph(runs=f"<w:r>{drawing()}</w:r>"), media=True))
        root.fidelity_store.replace_media("rId10", b"\xff\xd8\xff\xe0", "image/jpeg")

        again = parse(write(root)).children[0].image_data

        assert again.data == b"\xff\xd8\xff\xe0"
        assert again.content_type == "image/jpeg"

    def test_new_image_node(self, docx_factory):
        root = parse(docx_factory(paragraph("x"), media=True))
        rel_id = root.fidelity_store.add_media(PNG_BYTES, file_name="chart.png")
        image = DocumentNode(ContentType.IMAGE)
        image.image_data = ImageData(rel_id=rel_id, content_type="image/png", data=PNG_BYTES, description="Chart")
        root.add_child(image)

        again = parse(write(root)).children[1]

        assert again.type == ContentType.IMAGE
        assert again.image_data.rel_id == rel_id
        assert again.image_data.description == "Chart"
        assert again.image_data.drawing_id == 1

    def test_picture_in_heading(self, docx_factory):
        body = paragraph(style="Heading1", runs=run("Logo ") + f"<w:r>{drawing()}</w:r>") + paragraph("Body")
        root = parse(docx_factory(body, media=True))
        heading_node = root.children[0]
        heading_node.children[0].image_data.width_emu = 457200

        assert heading_node.is_modified
        again = parse(write(root)).children[0]

        image, body_node = again.children
        assert again.text == "Logo "
        assert again.runs[1].drawing_id == image.id
        assert image.image_data.width_emu == 457200
        assert body_node.text == "Body"

    def test_drawing_ids_do_not_collide(self, docx_factory):
        root = parse(docx_factory(paragraph(runs=f"<w:r>{drawing(doc_pr_id=7)}</w:r>"), media=True))
        image = DocumentNode(ContentType.IMAGE)
        image.image_data = ImageData(rel_id="rId10", content_type="image/png")
        root.add_child(image)

        again = parse(write(root))

        assert [child.image_data.drawing_id for child in again.children] == [7, 8]


class TestStructuralErrors:
    """Trees that cannot be written are rejected before any output."""

    def test_span_past_grid(self, docx_factory):
        root = parse(docx_factory(simple_table([["a", "b"]])))
        root.children[0].table_data.rows[0].cells[1].col_span = 3

        with pytest.raises(StructuralError) as exc_info:
            write(root)
        assert exc_info.value.node_id == root.children[0].id

    def test_row_span_past_last_row(self, docx_factory):
        root = parse(docx_factory(simple_table([["a"], ["b"]])))
        root.children[0].table_data.rows[1].cells[0].row_span = 2

        with pytest.raises(StructuralError):
            write(root)

    def test_continuation_without_origin(self, docx_factory):
        root = parse(docx_factory(simple_table([["a"], ["b"]])))
        root.children[0].table_data.rows[1].cells[0].row_span = 0

        with pytest.raises(StructuralError):
            write(root)

    def test_missing_media(self, docx_factory):
        root = parse(docx_factory(paragraph(runs=f"<w:r>{drawing()}</w:r>"), media=True))
        root.fidelity_store.remove_media("rId10")

        with pytest.raises(StructuralError):
            write(root)

    def test_missing_media_of_heading_picture(self, docx_factory):
        body = paragraph(style="Heading1", runs=run("Logo ") + f"<w:r>{drawing()}</w:r>")
        root = parse(docx_factory(body, media=True))
        root.fidelity_store.remove_media("rId10")

        with pytest.raises(StructuralError) as exc_info:
            write(root)
        assert exc_info.value.node_id == root.children[0].children[0].id

    def test_opaque_drawing_with_unknown_relationship(self, docx_factory):
        root = parse(docx_factory(paragraph(runs=run("See ") + f"<w:r>{drawing(rel_id='rId99')}</w:r>"), media=True))
        assert root.children[0].runs[1].is_raw

        with pytest.raises(StructuralError) as exc_info:
            write(root)
        assert exc_info.value.details == "rId99"
        write(root, WriteOptions(validate_references=False))

    def test_table_without_data(self):
        root = new_document()
        table_node = root.add_child(DocumentNode(ContentType.TABLE))

        with pytest.raises(StructuralError) as exc_info:
            write(root)
        assert exc_info.value.node_id == table_node.id

    def test_unknown_hyperlink(self, docx_factory):
        body = paragraph(runs='<w:hyperlink r:id="rId11">' + run("link") + "</w:hyperlink>")
        root = parse(docx_factory(body, hyperlink="https://example.com/"))
        root.children[0].runs[0].hyperlink.rel_id = "rId77"

        with pytest.raises(StructuralError):
            write(root)

    def test_unknown_data_store(self, docx_factory):
        root = parse(docx_factory(paragraph("x")))
        root.children[0].set_content_control(
            ContentControlProperties(
                tag="bound",
                data_binding=DataBinding(xpath="/a", store_item_id="{00000000-0000-0000-0000-000000000000}"),
            )
        )

        with pytest.raises(StructuralError):
            write(root)
        write(root, WriteOptions(validate_references=False))

    def test_not_a_root(self):
        with pytest.raises(TypeError):
            DocumentTreeWriter().write(DocumentNode(text="x"))


class TestNewDocuments:
    """Trees built from scratch."""

    def test_new_document(self, temp_dir):
        root = new_document("Report")
        chapter = root.add_child(DocumentNode(ContentType.HEADING, text="Intro", heading_level=1))
        chapter.add_child(
            DocumentNode(
                ContentType.PARAGRAPH,
                text="Body",
                paragraph_formatting=ParagraphFormatting(alignment="both"),
            )
        )
        root.fidelity_store.set_core_property("Title", "Report")

        path = write_to_file(root, temp_dir / "report.docx")
        again = parse(path)

        assert path.exists()
        assert [outline(child) for child in again.children] == [("H1", "Intro", [("Paragraph", "Body", [])])]
        assert again.children[0].children[0].paragraph_formatting.alignment == "both"
        assert again.fidelity_store.core.title == "Report"
