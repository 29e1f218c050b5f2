"""
Population of the package fidelity store.

One pass over the package relationships, independent of the document body:
every document-wide part is copied byte for byte into its slot, media by
relationship id, hyperlinks as URL plus external flag. Whatever has no slot
is kept by name in ``extra_parts``.
"""

import logging
import re
from typing import Dict, Optional, Set

from .fidelity_store import (
    CustomXmlPart,
    HyperlinkRelationship,
    MediaPart,
    PackageFidelityStore,
    StoredPart,
    media_content_type,
)
from ..parser.package_reader import PackageReader
from ..parser.relationships import (
    CONTENT_TYPES_PART,
    PACKAGE_SOURCE,
    RT_CORE_PROPERTIES,
    RT_CUSTOM_PROPERTIES,
    RT_CUSTOM_XML,
    RT_CUSTOM_XML_PROPS,
    RT_ENDNOTES,
    RT_EXTENDED_PROPERTIES,
    RT_FONT_TABLE,
    RT_FOOTER,
    RT_FOOTNOTES,
    RT_GLOSSARY,
    RT_HEADER,
    RT_HYPERLINK,
    RT_IMAGE,
    RT_NUMBERING,
    RT_SETTINGS,
    RT_STYLES,
    RT_THEME,
    RT_WEB_SETTINGS,
    Relationship,
    relationships_part_name,
)
from ..utils.id_manager import IDManager
from ..utils.xml import qn

logger = logging.getLogger(__name__)

_DOCUMENT_SLOTS: Dict[str, str] = {
    RT_STYLES: "styles",
    RT_THEME: "theme",
    RT_FONT_TABLE: "font_table",
    RT_NUMBERING: "numbering",
    RT_SETTINGS: "settings",
    RT_WEB_SETTINGS: "web_settings",
    RT_FOOTNOTES: "footnotes",
    RT_ENDNOTES: "endnotes",
}

_PACKAGE_SLOTS: Dict[str, str] = {
    RT_CORE_PROPERTIES: "core_properties",
    RT_EXTENDED_PROPERTIES: "extended_properties",
    RT_CUSTOM_PROPERTIES: "custom_properties",
}

_GLOSSARY_SLOTS: Dict[str, str] = {
    RT_STYLES: "glossary_styles",
    RT_FONT_TABLE: "glossary_font_table",
}

_CUSTOM_XML_ITEM = re.compile(r"^customXml/item\d+\.xml$", re.IGNORECASE)


class FidelityStoreBuilder:
    """Fills a PackageFidelityStore from a PackageReader."""

    def __init__(self, reader: PackageReader, id_manager: Optional[IDManager] = None):
        self.reader = reader
        self.main_part = reader.main_document_part
        self.store = PackageFidelityStore(self.main_part, id_manager or IDManager())
        self._claimed: Set[str] = set()

    def build(self) -> PackageFidelityStore:
        """
        Capture every part of the package except the main document body.

        Returns:
            The populated store
        """
        reader = self.reader
        store = self.store
        store.content_types = reader.content_types.copy()
        store.part_order = reader.part_order
        store.original_parts = dict(reader.parts)
        store.package_relationships = reader.get_relationships(PACKAGE_SOURCE)
        store.document_relationships = reader.get_relationships(self.main_part)

        self._claimed.update(
            {
                CONTENT_TYPES_PART,
                relationships_part_name(PACKAGE_SOURCE),
                self.main_part,
                relationships_part_name(self.main_part),
            }
        )
        self._register_relationship_ids()
        self._capture_package_parts()
        self._capture_document_parts()
        self._capture_orphan_custom_xml()
        self._capture_extra_parts()

        logger.info(f"Captured fidelity store: {store!r}")
        return store

    def _register_relationship_ids(self) -> None:
        for source, relationships in self.reader.relationships.items():
            self.store.id_manager.register_ids(
                PackageFidelityStore.relationship_scope(source),
                (rel.rel_id for rel in relationships),
            )

    def _stored_part(self, source: str, relationship: Relationship) -> Optional[StoredPart]:
        part_name = self.reader.resolve_part(source, relationship)
        if part_name is None:
            if not relationship.is_external:
                logger.warning(f"Relationship {relationship.rel_id} of {source or 'package'} points at missing part")
            return None
        self._claimed.add(part_name)
        return StoredPart(
            name=part_name,
            data=self.reader.parts[part_name],
            content_type=self.reader.content_types.content_type_for(part_name),
            rel_id=relationship.rel_id,
            rel_type=relationship.rel_type,
        )

    def _media_part(self, source: str, relationship: Relationship) -> Optional[MediaPart]:
        part_name = self.reader.resolve_part(source, relationship)
        if part_name is None:
            return None
        self._claimed.add(part_name)
        content_type = self.reader.content_types.content_type_for(part_name) or media_content_type(part_name)
        return MediaPart(data=self.reader.parts[part_name], content_type=content_type, uri=part_name)

    def _capture_package_parts(self) -> None:
        for relationship in self.store.package_relationships:
            slot = _PACKAGE_SLOTS.get(relationship.rel_type)
            if slot and getattr(self.store, slot) is None:
                setattr(self.store, slot, self._stored_part(PACKAGE_SOURCE, relationship))

    def _capture_document_parts(self) -> None:
        store = self.store
        for relationship in store.document_relationships:
            rel_type = relationship.rel_type
            slot = _DOCUMENT_SLOTS.get(rel_type)
            if slot and getattr(store, slot) is None:
                setattr(store, slot, self._stored_part(self.main_part, relationship))
            elif rel_type == RT_HEADER:
                part = self._stored_part(self.main_part, relationship)
                if part is not None:
                    store.headers[relationship.rel_id] = part
            elif rel_type == RT_FOOTER:
                part = self._stored_part(self.main_part, relationship)
                if part is not None:
                    store.footers[relationship.rel_id] = part
            elif rel_type == RT_IMAGE and not relationship.is_external:
                media = self._media_part(self.main_part, relationship)
                if media is not None:
                    store.media[relationship.rel_id] = media
            elif rel_type == RT_HYPERLINK:
                store.hyperlinks[relationship.rel_id] = HyperlinkRelationship(
                    url=relationship.target, is_external=relationship.is_external
                )
            elif rel_type == RT_CUSTOM_XML:
                part = self._stored_part(self.main_part, relationship)
                if part is not None:
                    self._add_custom_xml(part)
            elif rel_type == RT_GLOSSARY and store.glossary_document is None:
                store.glossary_document = self._stored_part(self.main_part, relationship)
                if store.glossary_document is not None:
                    self._capture_glossary(store.glossary_document.name)

    def _capture_glossary(self, glossary_part: str) -> None:
        for relationship in self.reader.get_relationships(glossary_part):
            slot = _GLOSSARY_SLOTS.get(relationship.rel_type)
            if slot and getattr(self.store, slot) is None:
                setattr(self.store, slot, self._stored_part(glossary_part, relationship))
            elif relationship.rel_type == RT_IMAGE and not relationship.is_external:
                media = self._media_part(glossary_part, relationship)
                if media is not None:
                    self.store.glossary_media[relationship.rel_id] = media

    def _add_custom_xml(self, part: StoredPart) -> None:
        properties = None
        for relationship in self.reader.get_relationships(part.name):
            if relationship.rel_type == RT_CUSTOM_XML_PROPS:
                properties = self._stored_part(part.name, relationship)
                break
        item_id = None
        if properties is not None:
            root = self.reader.get_xml(properties.name)
            item_id = root.get(qn("ds:itemID"))
        self.store.custom_xml_parts[part.name] = CustomXmlPart(part=part, properties=properties, item_id=item_id)
        logger.debug(f"Captured custom XML part {part.name} (store item {item_id})")

    def _capture_orphan_custom_xml(self) -> None:
        for part_name in self.reader.parts:
            if part_name in self._claimed or not _CUSTOM_XML_ITEM.match(part_name):
                continue
            self._claimed.add(part_name)
            part = StoredPart(
                name=part_name,
                data=self.reader.parts[part_name],
                content_type=self.reader.content_types.content_type_for(part_name),
            )
            self._add_custom_xml(part)

    def _capture_extra_parts(self) -> None:
        for part_name, data in self.reader.parts.items():
            if part_name in self._claimed:
                continue
            self.store.extra_parts[part_name] = StoredPart(
                name=part_name,
                data=data,
                content_type=self.reader.content_types.content_type_for(part_name),
            )
        logger.debug(f"Kept {len(self.store.extra_parts)} parts without a dedicated slot")


def build_fidelity_store(reader: PackageReader, id_manager: Optional[IDManager] = None) -> PackageFidelityStore:
    return FidelityStoreBuilder(reader, id_manager).build()
