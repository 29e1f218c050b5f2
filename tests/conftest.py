"""
Pytest configuration for docx-tree.

Packages are assembled in memory, so the suite needs no binary fixtures.
"""

import io
import logging
import sys
import zipfile
from pathlib import Path

import pytest

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
RT = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
STORE_ITEM_ID = "{6A2B3C4D-1111-2222-3333-444455556666}"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32

DOCUMENT_NAMESPACES = (
    f'xmlns:w="{W_NS}" xmlns:r="{R_NS}" '
    'xmlns:wp="http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing" '
    'xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" '
    'xmlns:pic="http://schemas.openxmlformats.org/drawingml/2006/picture" '
    'xmlns:w14="http://schemas.microsoft.com/office/word/2010/wordml"'
)

STYLES_XML = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:styles xmlns:w="{W_NS}">
  <w:style w:type="paragraph" w:default="1" w:styleId="Normal"><w:name w:val="Normal"/></w:style>
  <w:style w:type="paragraph" w:styleId="Heading1"><w:name w:val="heading 1"/><w:pPr><w:outlineLvl w:val="0"/></w:pPr></w:style>
  <w:style w:type="paragraph" w:styleId="Heading2"><w:name w:val="heading 2"/><w:pPr><w:outlineLvl w:val="1"/></w:pPr></w:style>
  <w:style w:type="paragraph" w:styleId="Kapitel"><w:name w:val="Kapitel"/><w:pPr><w:outlineLvl w:val="1"/></w:pPr></w:style>
  <w:style w:type="paragraph" w:styleId="Title"><w:name w:val="Title"/></w:style>
</w:styles>""".encode("utf-8")

THEME_XML = b"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<a:theme xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main" name="Office Theme"><a:themeElements/></a:theme>"""

NUMBERING_XML = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:numbering xmlns:w="{W_NS}">
  <w:abstractNum w:abstractNumId="0"><w:lvl w:ilvl="0"><w:numFmt w:val="bullet"/></w:lvl></w:abstractNum>
  <w:num w:numId="1"><w:abstractNumId w:val="0"/></w:num>
  <w:num w:numId="2"><w:abstractNumId w:val="0"/></w:num>
</w:numbering>""".encode("utf-8")

CUSTOM_XML_ITEM = b"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<data xmlns="urn:example:data"><client>ACME</client></data>"""

CUSTOM_XML_PROPS = f"""<?xml version="1.0" encoding="UTF-8" standalone="no"?>
<ds:datastoreItem ds:itemID="{STORE_ITEM_ID}" xmlns:ds="http://schemas.openxmlformats.org/officeDocument/2006/customXml"><ds:schemaRefs/></ds:datastoreItem>""".encode("utf-8")

CORE_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<cp:coreProperties xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:dcterms="http://purl.org/dc/terms/" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"><dc:title>{title}</dc:title><dc:creator>Jan Kowalski</dc:creator></cp:coreProperties>"""

CUSTOM_PROPERTIES_XML = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Properties xmlns="http://schemas.openxmlformats.org/officeDocument/2006/custom-properties" xmlns:vt="http://schemas.openxmlformats.org/officeDocument/2006/docPropsVTypes">{properties}</Properties>"""


def document_xml(body: str, section: bool = True) -> bytes:
    section_xml = '<w:sectPr><w:pgSz w:w="11906" w:h="16838"/></w:sectPr>' if section else ""
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f"<w:document {DOCUMENT_NAMESPACES}><w:body>{body}{section_xml}</w:body></w:document>"
    ).encode("utf-8")


def build_docx(
    body: str = "",
    styles: bool = True,
    theme: bool = True,
    numbering: bool = True,
    custom_xml: bool = True,
    title: str = "Original title",
    custom_properties=None,
    media: bool = False,
    hyperlink: str = None,
    section: bool = True,
    document_parts=None,
    extra_parts=None,
) -> bytes:
    """
    Assemble a DOCX package.

    Args:
        body: Inner XML of w:body (before the final sectPr)
        custom_properties: Name -> string value for docProps/custom.xml
        media: Add word/media/image1.png as rId10
        hyperlink: Add an external hyperlink relationship rId11 to this URL
        document_parts: (rel_id, relationship type, target, data, content type)
            tuples for parts reached from the main document
        extra_parts: Name -> bytes for parts added without a document relationship
    """
    overrides = {
        "word/document.xml": "application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml",
        "docProps/core.xml": "application/vnd.openxmlformats-package.core-properties+xml",
    }
    parts = {}
    document_rels = []
    package_rels = [
        ("rId1", f"{RT}/officeDocument", "word/document.xml", None),
        ("rId2", "http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties", "docProps/core.xml", None),
    ]
    parts["docProps/core.xml"] = CORE_XML.format(title=title).encode("utf-8")

    if styles:
        parts["word/styles.xml"] = STYLES_XML
        overrides["word/styles.xml"] = "application/vnd.openxmlformats-officedocument.wordprocessingml.styles+xml"
        document_rels.append(("rId1", f"{RT}/styles", "styles.xml", None))
    if theme:
        parts["word/theme/theme1.xml"] = THEME_XML
        overrides["word/theme/theme1.xml"] = "application/vnd.openxmlformats-officedocument.theme+xml"
        document_rels.append(("rId2", f"{RT}/theme", "theme/theme1.xml", None))
    if numbering:
        parts["word/numbering.xml"] = NUMBERING_XML
        overrides["word/numbering.xml"] = "application/vnd.openxmlformats-officedocument.wordprocessingml.numbering+xml"
        document_rels.append(("rId3", f"{RT}/numbering", "numbering.xml", None))
    if custom_xml:
        parts["customXml/item1.xml"] = CUSTOM_XML_ITEM
        parts["customXml/itemProps1.xml"] = CUSTOM_XML_PROPS
        parts["customXml/_rels/item1.xml.rels"] = relationships_xml(
            [("rId1", f"{RT}/customXmlProps", "itemProps1.xml", None)]
        )
        overrides["customXml/itemProps1.xml"] = "application/vnd.openxmlformats-officedocument.customXmlProperties+xml"
        document_rels.append(("rId4", f"{RT}/customXml", "../customXml/item1.xml", None))
    if custom_properties:
        entries = "".join(
            f'<property fmtid="{{D5CDD505-2E9C-101B-9397-08002B2CF9AE}}" pid="{pid}" name="{name}"><vt:lpwstr>{value}</vt:lpwstr></property>'
            for pid, (name, value) in enumerate(custom_properties.items(), start=2)
        )
        parts["docProps/custom.xml"] = CUSTOM_PROPERTIES_XML.format(properties=entries).encode("utf-8")
        overrides["docProps/custom.xml"] = "application/vnd.openxmlformats-officedocument.custom-properties+xml"
        package_rels.append(
            ("rId3", f"{RT}/custom-properties", "docProps/custom.xml", None)
        )
    if media:
        parts["word/media/image1.png"] = PNG_BYTES
        document_rels.append(("rId10", f"{RT}/image", "media/image1.png", None))
    if hyperlink:
        document_rels.append(("rId11", f"{RT}/hyperlink", hyperlink, "External"))
    for rel_id, rel_type, target, data, content_type in document_parts or ():
        parts[f"word/{target}"] = data
        if content_type:
            overrides[f"word/{target}"] = content_type
        document_rels.append((rel_id, f"{RT}/{rel_type}", target, None))
    parts.update(extra_parts or {})

    parts["word/document.xml"] = document_xml(body, section)
    parts["word/_rels/document.xml.rels"] = relationships_xml(document_rels)
    parts["_rels/.rels"] = relationships_xml(package_rels)

    defaults = (
        '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
        '<Default Extension="xml" ContentType="application/xml"/>'
        '<Default Extension="png" ContentType="image/png"/>'
    )
    override_xml = "".join(
        f'<Override PartName="/{name}" ContentType="{content_type}"/>' for name, content_type in overrides.items()
    )
    content_types = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        f'<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">{defaults}{override_xml}</Types>'
    ).encode("utf-8")

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zip_file:
        zip_file.writestr("[Content_Types].xml", content_types)
        for name, data in parts.items():
            zip_file.writestr(name, data)
    return buffer.getvalue()


def relationships_xml(relationships) -> bytes:
    entries = []
    for rel_id, rel_type, target, mode in relationships:
        mode_attr = f' TargetMode="{mode}"' if mode else ""
        entries.append(f'<Relationship Id="{rel_id}" Type="{rel_type}" Target="{target}"{mode_attr}/>')
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
        + "".join(entries)
        + "</Relationships>"
    ).encode("utf-8")


def read_zip(data: bytes) -> dict:
    with zipfile.ZipFile(io.BytesIO(data)) as zip_file:
        return {name: zip_file.read(name) for name in zip_file.namelist()}


@pytest.fixture(autouse=True)
def configure_logging():
    """Configure logging for tests to avoid file handler issues."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(name)s - %(levelname)s - %(message)s"))

    root_logger.addHandler(console_handler)
    root_logger.setLevel(logging.WARNING)

    yield

    root_logger.handlers.clear()


@pytest.fixture
def temp_dir(tmp_path) -> Path:
    return tmp_path


@pytest.fixture
def docx_factory():
    """Build DOCX bytes from body XML; see build_docx for the options."""
    return build_docx


@pytest.fixture
def unzip():
    """Read a package into a part name -> bytes dict."""
    return read_zip


@pytest.fixture
def store_item_id():
    return STORE_ITEM_ID
