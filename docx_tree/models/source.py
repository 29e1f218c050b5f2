"""
Verbatim source markup retained on nodes.

A node parsed from a package keeps the exact markup of its element and the
fingerprint of its state at parse time. The two variants say whether the
formatting model covered every property of that element.
"""

from dataclasses import dataclass, field
from typing import Tuple

from ..exceptions import FidelityGap


@dataclass(frozen=True)
class SourceMarkup:
    markup: str
    fingerprint: str

    @property
    def is_partial(self) -> bool:
        return False

    @property
    def gaps(self) -> Tuple[FidelityGap, ...]:
        return ()


@dataclass(frozen=True)
class ModeledSource(SourceMarkup):
    """Every property of the element maps onto a formatting record."""


@dataclass(frozen=True)
class PartialSource(SourceMarkup):
    """Some properties are not modelled; regeneration patches the markup."""

    unmodeled: Tuple[FidelityGap, ...] = field(default_factory=tuple)

    @property
    def is_partial(self) -> bool:
        return True

    @property
    def gaps(self) -> Tuple[FidelityGap, ...]:
        return self.unmodeled


@dataclass(frozen=True)
class LooseMarkup:
    """
    Body markup with no node of its own (bookmarks, w:customXml, ...).

    ``depth`` is how many of the owning node's content controls enclose it.
    """

    markup: str
    depth: int = 0


def make_source(markup: str, fingerprint: str, gaps) -> SourceMarkup:
    """Pick the variant matching the gaps found for the element."""
    if gaps:
        return PartialSource(markup=markup, fingerprint=fingerprint, unmodeled=tuple(gaps))
    return ModeledSource(markup=markup, fingerprint=fingerprint)
