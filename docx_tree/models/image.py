"""
Image backing data for Image nodes.
"""

from dataclasses import dataclass, field
from typing import Optional

from .formatting import ImageFormatting
from ..utils.units import emu_to_inches


@dataclass
class ImageData:
    """
    A drawing that shows a binary from the package's media table.

    ``data`` is resolved from the fidelity store at parse time; the
    relationship id is what the writer re-anchors on.
    """

    rel_id: Optional[str] = None
    content_type: Optional[str] = None
    data: Optional[bytes] = field(default=None, repr=False)
    name: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    drawing_id: Optional[int] = None
    width_emu: Optional[int] = None
    height_emu: Optional[int] = None
    natural_width_emu: Optional[int] = None
    natural_height_emu: Optional[int] = None
    formatting: ImageFormatting = field(default_factory=ImageFormatting)
    # Verbatim w:drawing the image was read from; patched on write.
    raw_drawing: Optional[str] = field(default=None, repr=False, metadata={"fingerprint": False})

    @property
    def width_inches(self) -> Optional[float]:
        return emu_to_inches(self.width_emu)

    @property
    def height_inches(self) -> Optional[float]:
        return emu_to_inches(self.height_emu)

    @property
    def alt_text(self) -> Optional[str]:
        return self.title or self.description
