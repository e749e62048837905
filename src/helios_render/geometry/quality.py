"""
Image Quality
=============

Quality presets and the request scale for a source's images.

The image service serves each source at a native resolution. Requesting a
scale factor > 1 downsamples the image server side; a factor < 1 would
upscale it with no quality gain, so the factor is clamped to 1.

Native resolutions are stored as a sparse breakpoint table: a source id
uses the resolution of the nearest breakpoint at or below it.
"""

import bisect
import logging
from dataclasses import dataclass
from typing import Dict, List


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QualitySettings:
    """
    Requested image quality.

    Attributes:
        resolution: Desired image resolution. 1024 requests a 1024x1024 image
        format: Image format for textures: "png", "jpg" or "webp".
            png is higher quality but uses more bandwidth.
    """

    resolution: int
    format: str = "png"

    def __post_init__(self) -> None:
        if self.resolution <= 0:
            raise ValueError("resolution must be positive")
        if self.format not in ("png", "jpg", "webp"):
            raise ValueError(f"Unsupported image format: {self.format}")


class Quality:
    """Named quality presets."""

    LOW = QualitySettings(resolution=512, format="jpg")
    DEFAULT = QualitySettings(resolution=1024, format="png")
    HIGH = QualitySettings(resolution=2048, format="png")
    MAXIMUM = QualitySettings(resolution=4096, format="png")


QUALITY_PRESETS: Dict[str, QualitySettings] = {
    "Low": Quality.LOW,
    "Default": Quality.DEFAULT,
    "High": Quality.HIGH,
    "Maximum": Quality.MAXIMUM,
}


# Breakpoint source id -> native resolution of sources from there up
SOURCE_RESOLUTIONS: Dict[int, int] = {
    0: 1024,   # 0 - 7
    8: 4096,   # 8 - 19
    20: 2048,  # 20 - 27
    28: 512,   # 28
    29: 2048,  # 29
    30: 512,   # 30
    31: 2048,  # 31 - 32
    33: 512,   # 33 - 74
    75: 1024,  # 75 - 76
    77: 512,   # 77
    78: 1024,  # 78+
}

_BREAKPOINTS: List[int] = sorted(SOURCE_RESOLUTIONS)


def resolution_breakpoint(source_id: int) -> int:
    """
    Nearest breakpoint at or below source_id.

    Negative ids are invalid; they fall back to the lowest breakpoint.
    """
    if source_id < 0:
        logger.warning(
            f"Invalid source id {source_id}, "
            f"using resolution of source {_BREAKPOINTS[0]}"
        )
        return _BREAKPOINTS[0]
    index = bisect.bisect_right(_BREAKPOINTS, source_id) - 1
    return _BREAKPOINTS[index]


def base_resolution(source_id: int) -> int:
    """Native image resolution of a source."""
    return SOURCE_RESOLUTIONS[resolution_breakpoint(source_id)]


def resolution_scale(resolution: int, source_id: int) -> float:
    """
    Image scale to request for a desired resolution.

    Args:
        resolution: Desired resolution in pixels (square)
        source_id: Image source id

    Returns:
        base_resolution / resolution, never less than 1
    """
    if resolution <= 0:
        raise ValueError("resolution must be positive")
    scale = base_resolution(source_id) / resolution
    return max(scale, 1.0)
