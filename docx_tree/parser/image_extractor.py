"""
Image extraction from w:drawing elements.
"""

import logging
from typing import Optional

from .formatting_extractor import FormattingExtractor
from ..models.image import ImageData
from ..utils.xml import int_or_none, qn, to_markup

logger = logging.getLogger(__name__)

PICTURE_URI = "http://schemas.openxmlformats.org/drawingml/2006/picture"


class ImageExtractor:
    """
    Reads picture drawings and resolves their binaries from the media table.

    Drawings that are not pictures (charts, shapes, canvases) or whose
    picture is linked rather than embedded are left to the caller to keep
    verbatim.
    """

    def __init__(self, fidelity_store, formatting_extractor: Optional[FormattingExtractor] = None):
        self.store = fidelity_store
        self.formatting = formatting_extractor or FormattingExtractor()

    def extract(self, drawing) -> Optional[ImageData]:
        """
        Extract an embedded picture.

        Args:
            drawing: w:drawing element

        Returns:
            ImageData, or None when the drawing is not an embedded picture
        """
        container = drawing.find(qn("wp:inline"))
        if container is None:
            container = drawing.find(qn("wp:anchor"))
        if container is None:
            return None

        graphic_data = container.find(f"{qn('a:graphic')}/{qn('a:graphicData')}")
        if graphic_data is None or graphic_data.get("uri") != PICTURE_URI:
            return None
        picture = graphic_data.find(qn("pic:pic"))
        if picture is None:
            return None
        blip = picture.find(f"{qn('pic:blipFill')}/{qn('a:blip')}")
        rel_id = blip.get(qn("r:embed")) if blip is not None else None
        if not rel_id:
            return None

        media = self.store.get_media(rel_id)
        if media is None:
            logger.warning(f"Drawing references unknown media relationship {rel_id}")
            return None

        image = ImageData(
            rel_id=rel_id,
            content_type=media.content_type,
            data=media.data,
            formatting=self.formatting.extract_image_formatting(container),
            raw_drawing=to_markup(drawing),
        )

        extent = container.find(qn("wp:extent"))
        if extent is not None:
            image.width_emu = int_or_none(extent.get("cx"))
            image.height_emu = int_or_none(extent.get("cy"))

        doc_pr = container.find(qn("wp:docPr"))
        if doc_pr is not None:
            image.drawing_id = int_or_none(doc_pr.get("id"))
            image.name = doc_pr.get("name")
            image.title = doc_pr.get("title")
            image.description = doc_pr.get("descr")

        natural = picture.find(f"{qn('pic:spPr')}/{qn('a:xfrm')}/{qn('a:ext')}")
        if natural is not None:
            image.natural_width_emu = int_or_none(natural.get("cx"))
            image.natural_height_emu = int_or_none(natural.get("cy"))

        logger.debug(f"Extracted image {rel_id} ({image.content_type}, {image.width_emu}x{image.height_emu} EMU)")
        return image
