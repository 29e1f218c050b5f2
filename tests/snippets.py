"""WordprocessingML fragments used to assemble test documents."""

from xml.sax.saxutils import escape


def run(text: str, properties: str = "") -> str:
    rpr = f"<w:rPr>{properties}</w:rPr>" if properties else ""
    space = ' xml:space="preserve"' if text != text.strip() else ""
    return f"<w:r>{rpr}<w:t{space}>{escape(text)}</w:t></w:r>"


def paragraph(text: str = "", style: str = None, properties: str = "", runs: str = None) -> str:
    style_xml = f'<w:pStyle w:val="{style}"/>' if style else ""
    ppr = f"<w:pPr>{style_xml}{properties}</w:pPr>" if style_xml or properties else ""
    content = runs if runs is not None else (run(text) if text else "")
    return f"<w:p>{ppr}{content}</w:p>"


def heading(text: str, level: int) -> str:
    return paragraph(text, style=f"Heading{level}")


def list_item(text: str, num_id: int = 1, level: int = 0) -> str:
    numbering = f'<w:numPr><w:ilvl w:val="{level}"/><w:numId w:val="{num_id}"/></w:numPr>'
    return paragraph(text, properties=numbering)


def cell(content: str, properties: str = "") -> str:
    tcpr = f"<w:tcPr>{properties}</w:tcPr>" if properties else ""
    return f"<w:tc>{tcpr}{content}</w:tc>"


def table(rows, widths=None) -> str:
    """rows: list of lists of cell XML."""
    columns = max(len(row) for row in rows)
    widths = widths or [2000] * columns
    grid = "".join(f'<w:gridCol w:w="{width}"/>' for width in widths)
    body = "".join("<w:tr>" + "".join(row) + "</w:tr>" for row in rows)
    return f'<w:tbl><w:tblPr><w:tblW w:w="0" w:type="auto"/></w:tblPr><w:tblGrid>{grid}</w:tblGrid>{body}</w:tbl>'


def simple_table(texts) -> str:
    return table([[cell(paragraph(text)) for text in row] for row in texts])


def dropdown_block(tag: str, selected: str, items=("A", "B", "C"), control_id: int = 101) -> str:
    entries = "".join(f'<w:listItem w:displayText="{item}" w:value="{item}"/>' for item in items)
    return (
        f'<w:sdt><w:sdtPr><w:alias w:val="{tag.title()}"/><w:tag w:val="{tag}"/><w:id w:val="{control_id}"/>'
        f'<w:dropDownList w:lastValue="{selected}">{entries}</w:dropDownList></w:sdtPr>'
        f"<w:sdtContent>{paragraph(selected)}</w:sdtContent></w:sdt>"
    )


def inline_text_control(tag: str, text: str, control_id: int = 201) -> str:
    return (
        f'<w:sdt><w:sdtPr><w:tag w:val="{tag}"/><w:id w:val="{control_id}"/><w:text/></w:sdtPr>'
        f"<w:sdtContent>{run(text)}</w:sdtContent></w:sdt>"
    )


def drawing(rel_id: str = "rId10", doc_pr_id: int = 1, cx: int = 914400, cy: int = 457200) -> str:
    return (
        f'<w:drawing><wp:inline distT="0" distB="0" distL="0" distR="0">'
        f'<wp:extent cx="{cx}" cy="{cy}"/>'
        f'<wp:docPr id="{doc_pr_id}" name="Picture {doc_pr_id}" descr="Logo"/>'
        '<a:graphic><a:graphicData uri="http://schemas.openxmlformats.org/drawingml/2006/picture">'
        f'<pic:pic><pic:nvPicPr><pic:cNvPr id="0" name="logo.png"/><pic:cNvPicPr/></pic:nvPicPr>'
        f'<pic:blipFill><a:blip r:embed="{rel_id}"/><a:stretch><a:fillRect/></a:stretch></pic:blipFill>'
        f'<pic:spPr><a:xfrm><a:off x="0" y="0"/><a:ext cx="{cx}" cy="{cy}"/></a:xfrm>'
        '<a:prstGeom prst="rect"><a:avLst/></a:prstGeom></pic:spPr></pic:pic>'
        "</a:graphicData></a:graphic></wp:inline></w:drawing>"
    )
