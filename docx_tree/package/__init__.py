"""Package fidelity store: capture and re-emission of document-wide parts."""

from .fidelity_store import (
    CustomXmlPart,
    HyperlinkRelationship,
    MediaPart,
    PackageFidelityStore,
    StoredPart,
)
from .store_builder import FidelityStoreBuilder, build_fidelity_store

__all__ = [
    "CustomXmlPart",
    "HyperlinkRelationship",
    "MediaPart",
    "PackageFidelityStore",
    "StoredPart",
    "FidelityStoreBuilder",
    "build_fidelity_store",
]
