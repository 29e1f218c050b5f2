"""
Tests for FormattingExtractor.
"""

from lxml import etree

from docx_tree.exceptions import FidelityGap
from docx_tree.parser.formatting_extractor import FormattingExtractor

from tests.conftest import W_NS


def element(markup: str):
    end = markup.index(">")
    return etree.fromstring(markup[:end] + f' xmlns:w="{W_NS}"' + markup[end:])


class TestRunFormatting:
    """Character formatting extraction."""

    def setup_method(self):
        self.extractor = FormattingExtractor()

    def test_none_gives_empty_formatting(self):
        formatting, gaps = self.extractor.extract_run_formatting(None)
        assert formatting.bold is None
        assert gaps == []

    def test_toggles_and_values(self):
        rpr = element(
            '<w:rPr><w:b/><w:i w:val="0"/><w:u w:val="double"/><w:color w:val="FF0000"/>'
            '<w:sz w:val="28"/><w:rFonts w:ascii="Arial" w:hAnsi="Arial"/></w:rPr>'
        )
        formatting, gaps = self.extractor.extract_run_formatting(rpr)

        assert formatting.bold is True
        assert formatting.italic is False
        assert formatting.underline is True
        assert formatting.underline_style == "double"
        assert formatting.color == "FF0000"
        assert formatting.size == 28
        assert formatting.font_ascii == "Arial"
        assert gaps == []

    def test_unmodelled_property_is_reported(self):
        rpr = element('<w:rPr><w:b/><w:kern w:val="16"/></w:rPr>')
        _, gaps = self.extractor.extract_run_formatting(rpr)
        assert gaps == [FidelityGap("w:rPr", "w:kern")]


class TestParagraphFormatting:
    """Paragraph formatting extraction."""

    def setup_method(self):
        self.extractor = FormattingExtractor()

    def test_style_spacing_indent(self):
        ppr = element(
            '<w:pPr><w:pStyle w:val="Heading2"/><w:jc w:val="center"/>'
            '<w:spacing w:before="120" w:after="240" w:line="360" w:lineRule="auto"/>'
            '<w:ind w:left="720" w:hanging="360"/><w:keepNext/></w:pPr>'
        )
        formatting, gaps = self.extractor.extract_paragraph_formatting(ppr)

        assert formatting.style_id == "Heading2"
        assert formatting.alignment == "center"
        assert (formatting.spacing_before, formatting.spacing_after) == (120, 240)
        assert formatting.line_rule == "auto"
        assert formatting.indent_left == 720
        assert formatting.indent_hanging == 360
        assert formatting.keep_next is True
        assert gaps == []

    def test_numbering_and_outline_level(self):
        ppr = element(
            '<w:pPr><w:numPr><w:ilvl w:val="1"/><w:numId w:val="3"/></w:numPr><w:outlineLvl w:val="2"/></w:pPr>'
        )
        formatting, _ = self.extractor.extract_paragraph_formatting(ppr)
        assert formatting.numbering_id == "3"
        assert formatting.numbering_level == 1
        assert formatting.outline_level == 2

    def test_paragraph_borders(self):
        ppr = element('<w:pPr><w:pBdr><w:bottom w:val="single" w:sz="6" w:space="1" w:color="auto"/></w:pBdr></w:pPr>')
        formatting, _ = self.extractor.extract_paragraph_formatting(ppr)
        assert formatting.borders.bottom.style == "single"
        assert formatting.borders.bottom.size == 6
        assert formatting.borders.top is None

    def test_unmodelled_paragraph_property(self):
        ppr = element("<w:pPr><w:suppressAutoHyphens/></w:pPr>")
        _, gaps = self.extractor.extract_paragraph_formatting(ppr)
        assert [gap.property for gap in gaps] == ["w:suppressAutoHyphens"]


class TestTableFormatting:
    """Table, row and cell formatting extraction."""

    def setup_method(self):
        self.extractor = FormattingExtractor()

    def test_table_properties_and_grid(self):
        tbl_pr = element('<w:tblPr><w:tblStyle w:val="TableGrid"/><w:tblW w:w="5000" w:type="pct"/></w:tblPr>')
        grid = element('<w:tblGrid><w:gridCol w:w="3000"/><w:gridCol w:w="2000"/></w:tblGrid>')

        formatting, gaps = self.extractor.extract_table_formatting(tbl_pr, grid)

        assert formatting.style_id == "TableGrid"
        assert (formatting.width, formatting.width_type) == (5000, "pct")
        assert formatting.grid_column_widths == [3000, 2000]
        assert gaps == []

    def test_row_properties(self):
        tr_pr = element('<w:trPr><w:tblHeader/><w:trHeight w:val="400" w:hRule="exact"/></w:trPr>')
        formatting, _ = self.extractor.extract_row_formatting(tr_pr)
        assert formatting.is_header is True
        assert formatting.height == 400
        assert formatting.height_rule == "exact"

    def test_cell_properties(self):
        tc_pr = element(
            '<w:tcPr><w:tcW w:w="2000" w:type="dxa"/><w:gridSpan w:val="2"/>'
            '<w:vMerge w:val="restart"/><w:shd w:val="clear" w:fill="D9D9D9"/></w:tcPr>'
        )
        formatting, grid_span, gaps = self.extractor.extract_cell_formatting(tc_pr)

        assert grid_span == 2
        assert formatting.vertical_merge == "restart"
        assert formatting.shading_fill == "D9D9D9"
        assert gaps == []

    def test_bare_vmerge_is_continue(self):
        formatting, grid_span, _ = self.extractor.extract_cell_formatting(element("<w:tcPr><w:vMerge/></w:tcPr>"))
        assert formatting.vertical_merge == "continue"
        assert grid_span == 1
