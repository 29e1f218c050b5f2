"""
Package fidelity store.

Holds every document-wide part of a package byte for byte, keyed by the
role it plays, so that writing a tree back produces the same styles, theme,
numbering, settings, headers, footers, custom XML, properties and media
that were read. Edits go through explicit methods and touch only the slot
they name.
"""

import logging
import mimetypes
import posixpath
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from ..metadata import core_properties, custom_properties, extended_properties
from ..metadata.core_properties import CoreProperties
from ..parser.relationships import (
    PACKAGE_SOURCE,
    RT_CORE_PROPERTIES,
    RT_CUSTOM_PROPERTIES,
    RT_EXTENDED_PROPERTIES,
    RT_HYPERLINK,
    RT_IMAGE,
    ContentTypeMap,
    Relationship,
    relative_target,
    resolve_target,
)
from ..utils.id_manager import IDManager

logger = logging.getLogger(__name__)

# Built-in data stores a content control may bind to without a custom XML part.
CORE_PROPERTIES_STORE_ID = "{6C3C8BC8-F283-45AE-878A-BAB7291924A1}"
EXTENDED_PROPERTIES_STORE_ID = "{6668398D-A668-4E3E-A5EB-62B293D839F1}"
COVER_PAGE_PROPERTIES_STORE_ID = "{55AF091B-3C7A-41E3-B477-F2FDAA23CFDA}"
BUILT_IN_STORE_IDS = frozenset(
    {CORE_PROPERTIES_STORE_ID, EXTENDED_PROPERTIES_STORE_ID, COVER_PAGE_PROPERTIES_STORE_ID}
)

MEDIA_CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "svg": "image/svg+xml",
    "wmf": "image/x-wmf",
    "emf": "image/x-emf",
}

# Single-part slots
PART_SLOTS = (
    "styles",
    "theme",
    "font_table",
    "numbering",
    "settings",
    "web_settings",
    "footnotes",
    "endnotes",
    "glossary_document",
    "glossary_styles",
    "glossary_font_table",
    "core_properties",
    "extended_properties",
    "custom_properties",
)


@dataclass
class StoredPart:
    """A part kept verbatim, with the relationship that reaches it."""

    name: str
    data: bytes = field(repr=False)
    content_type: Optional[str] = None
    rel_id: Optional[str] = None
    rel_type: Optional[str] = None


@dataclass
class MediaPart:
    data: bytes = field(repr=False)
    content_type: Optional[str]
    uri: str


@dataclass
class CustomXmlPart:
    part: StoredPart
    properties: Optional[StoredPart] = None
    item_id: Optional[str] = None

    @property
    def path(self) -> str:
        return self.part.name


@dataclass
class HyperlinkRelationship:
    url: str
    is_external: bool = True


def media_content_type(file_name: str) -> str:
    extension = posixpath.splitext(file_name)[1].lstrip(".").lower()
    if extension in MEDIA_CONTENT_TYPES:
        return MEDIA_CONTENT_TYPES[extension]
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or "application/octet-stream"


def extension_for(content_type: Optional[str]) -> str:
    for extension, known in MEDIA_CONTENT_TYPES.items():
        if known == content_type:
            return extension
    guessed = mimetypes.guess_extension(content_type or "") or ".bin"
    return guessed.lstrip(".")


class PackageFidelityStore:
    """
    Keyed bag of document-wide parts.

    Single-part slots (``styles``, ``theme``, ...) hold a StoredPart or None.
    Keyed slots: ``headers`` / ``footers`` by relationship id,
    ``glossary_media`` by glossary relationship id, ``custom_xml_parts`` by
    part path, ``media`` and ``hyperlinks`` by main-document relationship id.
    Parts with no dedicated slot live in ``extra_parts`` by name.
    """

    def __init__(self, main_part_name: str = "word/document.xml", id_manager: Optional[IDManager] = None):
        self.main_part_name = main_part_name
        self.id_manager = id_manager or IDManager()

        self.styles: Optional[StoredPart] = None
        self.theme: Optional[StoredPart] = None
        self.font_table: Optional[StoredPart] = None
        self.numbering: Optional[StoredPart] = None
        self.settings: Optional[StoredPart] = None
        self.web_settings: Optional[StoredPart] = None
        self.footnotes: Optional[StoredPart] = None
        self.endnotes: Optional[StoredPart] = None
        self.glossary_document: Optional[StoredPart] = None
        self.glossary_styles: Optional[StoredPart] = None
        self.glossary_font_table: Optional[StoredPart] = None
        self.core_properties: Optional[StoredPart] = None
        self.extended_properties: Optional[StoredPart] = None
        self.custom_properties: Optional[StoredPart] = None

        self.headers: "OrderedDict[str, StoredPart]" = OrderedDict()
        self.footers: "OrderedDict[str, StoredPart]" = OrderedDict()
        self.glossary_media: "OrderedDict[str, MediaPart]" = OrderedDict()
        self.custom_xml_parts: "OrderedDict[str, CustomXmlPart]" = OrderedDict()
        self.media: "OrderedDict[str, MediaPart]" = OrderedDict()
        self.hyperlinks: "OrderedDict[str, HyperlinkRelationship]" = OrderedDict()
        self.extra_parts: "OrderedDict[str, StoredPart]" = OrderedDict()

        # Package structure as read
        self.document_relationships: List[Relationship] = []
        self.package_relationships: List[Relationship] = []
        self.content_types = ContentTypeMap()
        self.part_order: List[str] = []
        self.original_parts: Dict[str, bytes] = {}

        self._added_package_relationships: List[Relationship] = []
        self._added_overrides: "OrderedDict[str, str]" = OrderedDict()

    # Slot access

    def get_part(self, slot: str) -> Optional[StoredPart]:
        if slot not in PART_SLOTS:
            raise KeyError(f"Unknown part slot: {slot}")
        return getattr(self, slot)

    def get_part_bytes(self, slot: str) -> Optional[bytes]:
        part = self.get_part(slot)
        return part.data if part is not None else None

    def iter_stored_parts(self) -> Iterator[StoredPart]:
        """Every verbatim part (not media), in no particular order."""
        for slot in PART_SLOTS:
            part = getattr(self, slot)
            if part is not None:
                yield part
        yield from self.headers.values()
        yield from self.footers.values()
        for custom_xml in self.custom_xml_parts.values():
            yield custom_xml.part
            if custom_xml.properties is not None:
                yield custom_xml.properties
        yield from self.extra_parts.values()

    def part_names(self) -> Set[str]:
        names = {part.name for part in self.iter_stored_parts()}
        names.update(media.uri for media in self.media.values())
        names.update(media.uri for media in self.glossary_media.values())
        names.add(self.main_part_name)
        names.update(self.part_order)
        return names

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of every slot, for comparisons."""
        slots: Dict[str, Any] = {slot: self.get_part_bytes(slot) for slot in PART_SLOTS}
        slots["headers"] = {rel_id: part.data for rel_id, part in self.headers.items()}
        slots["footers"] = {rel_id: part.data for rel_id, part in self.footers.items()}
        slots["glossary_media"] = {rel_id: media.data for rel_id, media in self.glossary_media.items()}
        slots["custom_xml_parts"] = {
            path: (item.part.data, item.properties.data if item.properties else None)
            for path, item in self.custom_xml_parts.items()
        }
        slots["media"] = {rel_id: (media.data, media.content_type) for rel_id, media in self.media.items()}
        slots["hyperlinks"] = {
            rel_id: (link.url, link.is_external) for rel_id, link in self.hyperlinks.items()
        }
        slots["extra_parts"] = {name: part.data for name, part in self.extra_parts.items()}
        return slots

    # Core properties

    @property
    def core(self) -> CoreProperties:
        return core_properties.read_core_properties(self.get_part_bytes("core_properties"))

    def get_core_property(self, name: str) -> Optional[str]:
        return core_properties.get_core_property(self.get_part_bytes("core_properties"), name)

    def set_core_property(self, name: str, value: Optional[str]) -> None:
        """
        Set one core property (Title, Subject, Creator, ...).

        Only the named element of docProps/core.xml changes. The part and its
        package relationship are created when the package had none.
        """
        data = core_properties.set_core_property(self.get_part_bytes("core_properties"), name, value)
        if self.core_properties is None:
            self.core_properties = self._create_package_part(
                core_properties.CORE_PROPERTIES_PART,
                core_properties.CORE_PROPERTIES_CONTENT_TYPE,
                RT_CORE_PROPERTIES,
                data,
            )
        else:
            self.core_properties.data = data
        logger.info(f"Updated core property {name}")

    # Extended properties

    def get_extended_property(self, name: str) -> Optional[str]:
        return extended_properties.get_extended_property(self.get_part_bytes("extended_properties"), name)

    def set_extended_property(self, name: str, value) -> None:
        data = extended_properties.set_extended_property(self.get_part_bytes("extended_properties"), name, value)
        if self.extended_properties is None:
            self.extended_properties = self._create_package_part(
                extended_properties.EXTENDED_PROPERTIES_PART,
                extended_properties.EXTENDED_PROPERTIES_CONTENT_TYPE,
                RT_EXTENDED_PROPERTIES,
                data,
            )
        else:
            self.extended_properties.data = data
        logger.info(f"Updated extended property {name}")

    # Custom properties

    def get_custom_property(self, name: str) -> Any:
        return custom_properties.get_custom_property(self.get_part_bytes("custom_properties"), name)

    def custom_property_names(self) -> List[str]:
        return [prop.name for prop in custom_properties.read_custom_properties(self.get_part_bytes("custom_properties"))]

    def set_custom_property(self, name: str, value: Any) -> None:
        """Create or replace a custom property; creates docProps/custom.xml on first use."""
        data = custom_properties.set_custom_property(self.get_part_bytes("custom_properties"), name, value)
        if self.custom_properties is None:
            self.custom_properties = self._create_package_part(
                custom_properties.CUSTOM_PROPERTIES_PART,
                custom_properties.CUSTOM_PROPERTIES_CONTENT_TYPE,
                RT_CUSTOM_PROPERTIES,
                data,
            )
        else:
            self.custom_properties.data = data
        logger.info(f"Updated custom property {name}")

    def remove_custom_property(self, name: str) -> bool:
        data = custom_properties.remove_custom_property(self.get_part_bytes("custom_properties"), name)
        if data is None:
            return False
        self.custom_properties.data = data
        return True

    def get_document_property(self, name: str) -> Tuple[Optional[str], Any]:
        """
        Look a property up by name in core, then extended, then custom properties.

        Returns:
            (kind, value) where kind is "core", "extended", "custom" or None
        """
        if core_properties.normalize_core_name(name) is not None:
            return "core", self.get_core_property(name)
        if extended_properties.normalize_extended_name(name) is not None:
            return "extended", self.get_extended_property(name)
        value = self.get_custom_property(name)
        if value is not None:
            return "custom", value
        return None, None

    def _create_package_part(self, part_name: str, content_type: str, rel_type: str, data: bytes) -> StoredPart:
        rel_id = self.id_manager.generate_unique_id(self.relationship_scope(PACKAGE_SOURCE), "rId")
        self._added_package_relationships.append(Relationship(rel_id, rel_type, part_name))
        self._added_overrides[part_name] = content_type
        logger.debug(f"Created package part {part_name} ({rel_id})")
        return StoredPart(name=part_name, data=data, content_type=content_type, rel_id=rel_id, rel_type=rel_type)

    # Media

    @staticmethod
    def relationship_scope(source: str) -> str:
        return f"rels:{source}"

    def _allocate_document_rel_id(self) -> str:
        return self.id_manager.generate_unique_id(self.relationship_scope(self.main_part_name), "rId")

    def get_media(self, rel_id: str) -> Optional[MediaPart]:
        return self.media.get(rel_id)

    def add_media(self, data: bytes, content_type: Optional[str] = None, file_name: Optional[str] = None) -> str:
        """
        Add a binary to the media table.

        Args:
            data: Image bytes
            content_type: MIME type (guessed from file_name when omitted)
            file_name: Suggested file name ("logo.png")

        Returns:
            New relationship id
        """
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("Media data must be bytes")
        if content_type is None:
            content_type = media_content_type(file_name) if file_name else "image/png"
        extension = posixpath.splitext(file_name)[1].lstrip(".") if file_name else extension_for(content_type)
        uri = self._unique_media_uri(extension)
        rel_id = self._allocate_document_rel_id()
        self.media[rel_id] = MediaPart(data=bytes(data), content_type=content_type, uri=uri)
        logger.info(f"Added media {uri} as {rel_id}")
        return rel_id

    def replace_media(self, rel_id: str, data: bytes, content_type: Optional[str] = None) -> None:
        """Replace the bytes behind an existing media relationship."""
        media = self.media.get(rel_id)
        if media is None:
            raise KeyError(f"No media with relationship id {rel_id}")
        media.data = bytes(data)
        if content_type is not None and content_type != media.content_type:
            extension = extension_for(content_type)
            renamed = f"{posixpath.splitext(media.uri)[0]}.{extension}"
            if renamed in self.part_names():
                renamed = self._unique_media_uri(extension)
            logger.info(f"Renamed media {media.uri} to {renamed}")
            media.uri = renamed
            media.content_type = content_type

    def remove_media(self, rel_id: str) -> MediaPart:
        media = self.media.pop(rel_id, None)
        if media is None:
            raise KeyError(f"No media with relationship id {rel_id}")
        logger.info(f"Removed media {media.uri} ({rel_id})")
        return media

    def _unique_media_uri(self, extension: str) -> str:
        # A stem used with any extension is taken
        directory = posixpath.join(posixpath.dirname(self.main_part_name), "media")
        taken = {posixpath.splitext(name)[0] for name in self.part_names()}
        index = 1
        while f"{directory}/image{index}" in taken:
            index += 1
        return f"{directory}/image{index}.{extension}"

    # Hyperlinks

    def get_hyperlink(self, rel_id: str) -> Optional[HyperlinkRelationship]:
        return self.hyperlinks.get(rel_id)

    def add_hyperlink(self, url: str, external: bool = True) -> str:
        rel_id = self._allocate_document_rel_id()
        self.hyperlinks[rel_id] = HyperlinkRelationship(url=url, is_external=external)
        return rel_id

    def set_hyperlink_url(self, rel_id: str, url: str) -> None:
        link = self.hyperlinks.get(rel_id)
        if link is None:
            raise KeyError(f"No hyperlink with relationship id {rel_id}")
        link.url = url

    # Custom XML

    def known_store_item_ids(self) -> Set[str]:
        ids = {item.item_id.upper() for item in self.custom_xml_parts.values() if item.item_id}
        ids.update(BUILT_IN_STORE_IDS)
        return ids

    # Package structure for writing

    def current_document_relationships(self) -> List[Relationship]:
        """Main-document relationships reflecting media and hyperlink edits."""
        relationships: List[Relationship] = []
        seen: Set[str] = set()
        for relationship in self.document_relationships:
            rel_id = relationship.rel_id
            if relationship.rel_type == RT_IMAGE and not relationship.is_external:
                media = self.media.get(rel_id)
                if media is None:
                    continue
                target = relationship.target
                if media.uri != self._resolve_document_target(relationship.target):
                    target = relative_target(self.main_part_name, media.uri)
                relationships.append(Relationship(rel_id, relationship.rel_type, target, relationship.target_mode))
            elif relationship.rel_type == RT_HYPERLINK and rel_id in self.hyperlinks:
                link = self.hyperlinks[rel_id]
                mode = "External" if link.is_external else None
                relationships.append(Relationship(rel_id, relationship.rel_type, link.url, mode))
            else:
                relationships.append(relationship)
            seen.add(rel_id)
        for rel_id, media in self.media.items():
            if rel_id not in seen:
                relationships.append(
                    Relationship(rel_id, RT_IMAGE, relative_target(self.main_part_name, media.uri))
                )
        for rel_id, link in self.hyperlinks.items():
            if rel_id not in seen:
                relationships.append(
                    Relationship(rel_id, RT_HYPERLINK, link.url, "External" if link.is_external else None)
                )
        return relationships

    def current_package_relationships(self) -> List[Relationship]:
        return list(self.package_relationships) + list(self._added_package_relationships)

    def current_content_types(self) -> ContentTypeMap:
        """Content types covering every part that will be written."""
        content_types = self.content_types.copy()
        for part_name, content_type in self._added_overrides.items():
            content_types.overrides.setdefault(part_name, content_type)
        for media in list(self.media.values()) + list(self.glossary_media.values()):
            extension = posixpath.splitext(media.uri)[1].lstrip(".")
            if content_types.content_type_for(media.uri) is None and extension:
                content_types.defaults[extension.lower()] = media.content_type or media_content_type(media.uri)
        return content_types

    def _resolve_document_target(self, target: str) -> str:
        return resolve_target(self.main_part_name, target)

    def __repr__(self) -> str:
        filled = [slot for slot in PART_SLOTS if getattr(self, slot) is not None]
        return (
            f"PackageFidelityStore(slots={filled}, headers={len(self.headers)}, footers={len(self.footers)}, "
            f"media={len(self.media)}, custom_xml={len(self.custom_xml_parts)}, extra={len(self.extra_parts)})"
        )
