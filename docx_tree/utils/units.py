"""
Unit conversions for WordprocessingML measurements.

Stored values keep their native units (half-points for font sizes,
twentieths of a point for spacing and widths, EMU for drawings). Everything
here derives presentation values from them.
"""

from typing import Optional

EMU_PER_INCH = 914400
EMU_PER_POINT = 12700
TWIPS_PER_INCH = 1440
TWIPS_PER_POINT = 20


def half_points_to_points(value: Optional[int]) -> Optional[float]:
    if value is None:
        return None
    return value / 2.0


def points_to_half_points(points: float) -> int:
    return int(round(points * 2))


def twips_to_points(value: Optional[int]) -> Optional[float]:
    if value is None:
        return None
    return value / float(TWIPS_PER_POINT)


def twips_to_inches(value: Optional[int]) -> Optional[float]:
    if value is None:
        return None
    return value / float(TWIPS_PER_INCH)


def emu_to_inches(value: Optional[int]) -> Optional[float]:
    if value is None:
        return None
    return value / float(EMU_PER_INCH)


def inches_to_emu(inches: float) -> int:
    return int(round(inches * EMU_PER_INCH))


def emu_to_points(value: Optional[int]) -> Optional[float]:
    if value is None:
        return None
    return value / float(EMU_PER_POINT)


def eighth_points_to_points(value: Optional[int]) -> Optional[float]:
    """Border widths (w:sz) are stored in eighths of a point."""
    if value is None:
        return None
    return value / 8.0
