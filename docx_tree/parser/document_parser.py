"""
Document parser: package bytes to a DocumentRoot.

Reads the package, captures every document-wide part in the fidelity store,
then builds the node tree from the main document body.
"""

import logging
from pathlib import Path
from typing import Optional

from .package_reader import PackageReader, Source
from .styles import StyleCatalog
from .tree_builder import DocumentTreeBuilder
from ..exceptions import ParseError
from ..models.node import (
    META_DOCUMENT_SHELL,
    META_FILE_NAME,
    META_MAIN_PART,
    DocumentRoot,
)
from ..options import ParseOptions
from ..package.store_builder import build_fidelity_store
from ..utils.id_manager import IDManager
from ..utils.xml import int_or_none, parse_xml, qn, to_markup

logger = logging.getLogger(__name__)

DRAWING_SCOPE = "drawing"


class DocumentParser:
    """
    Parses a DOCX package into a document tree.

    Examples:
        >>> root = DocumentParser().parse("report.docx")
        >>> [child.text for child in root.children]
    """

    def __init__(self, options: Optional[ParseOptions] = None):
        self.options = options or ParseOptions()

    def parse(self, source: Source) -> DocumentRoot:
        """
        Parse a package.

        Args:
            source: Package bytes, a binary stream, or a path

        Returns:
            Root of the new tree, owning the package fidelity store

        Raises:
            ParseError: If the package, its main part or a heading level is invalid
        """
        reader = PackageReader.open(source)
        id_manager = IDManager()
        store = build_fidelity_store(reader, id_manager)

        main_part = reader.main_document_part
        document = reader.get_xml(main_part)
        body = document.find(qn("w:body"))
        if body is None:
            raise ParseError("Main document part has no body", main_part)

        root = DocumentRoot(store, text=self._document_name(reader), id_manager=id_manager)
        root.metadata[META_MAIN_PART] = main_part
        if reader.name:
            root.metadata[META_FILE_NAME] = reader.name
        self._reserve_ids(root, document, store)

        styles = StyleCatalog.from_xml(store.get_part_bytes("styles"))
        DocumentTreeBuilder(root, styles, self.options).build_body(body)
        root.metadata[META_DOCUMENT_SHELL] = self._document_shell(document)

        if root.fidelity_gaps:
            logger.info(f"{len(root.fidelity_gaps)} unmodelled properties kept verbatim")
        logger.info(f"Parsed {reader.name or 'package'}: {len(root.children)} top-level nodes")
        return root

    def _document_name(self, reader: PackageReader) -> str:
        if self.options.document_name:
            return self.options.document_name
        if reader.name:
            return Path(reader.name).name
        return "Document"

    @staticmethod
    def _document_shell(document) -> str:
        """The w:document element with an empty body."""
        shell = parse_xml(to_markup(document).encode("utf-8"), "document shell")
        body = shell.find(qn("w:body"))
        for child in list(body):
            body.remove(child)
        body.text = None
        return to_markup(shell)

    @staticmethod
    def _reserve_ids(root: DocumentRoot, document, store) -> None:
        """Register content-control and drawing ids used anywhere in the package."""
        trees = [document]
        for part in list(store.headers.values()) + list(store.footers.values()):
            trees.append(parse_xml(part.data, part.name))
        for slot in ("footnotes", "endnotes", "glossary_document"):
            data = store.get_part_bytes(slot)
            if data:
                trees.append(parse_xml(data, slot))

        sdt_pr = qn("w:sdtPr")
        for tree in trees:
            for element in tree.iter(qn("w:id")):
                parent = element.getparent()
                value = int_or_none(element.get(qn("w:val")))
                if parent is not None and parent.tag == sdt_pr and value is not None:
                    root.register_content_control_id(value)
            for doc_pr in tree.iter(qn("wp:docPr")):
                if doc_pr.get("id"):
                    root.id_manager.register_id(DRAWING_SCOPE, doc_pr.get("id"))
        logger.debug(f"Reserved content-control and drawing ids from {len(trees)} parts")
