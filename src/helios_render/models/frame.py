"""
Frame Models
============

Typed records flowing from the fetch collaborator into the frame store.

Input Contract (one entry of query_images):
    {
        "id": 79132443,
        "timestamp": "2024-05-10T12:00:09Z",
        "info": {
            "timestamp": "2024-05-10T12:00:09Z",
            "width": 4096,
            "height": 4096,
            "solar_center_x": 2048.5,
            "solar_center_y": 2048.5,
            "offset_x": 0.0,
            "offset_y": 0.0,
            "solar_rotation": 0.0,
            "solar_radius": 1600.2
        }
    }

Models:
    - FrameInfo: Per-frame physical info reported by the image service
    - ImageRecord: One queried image (id + timestamp + FrameInfo)
    - Texture: Decoded image pixels
    - Frame: Everything the store keeps for one playable image
"""

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from helios_render.metadata.parser import MetadataParser


class FrameInfo(BaseModel):
    """
    Physical layout of one image as reported by the image service.

    Attributes:
        timestamp: Observation time of the image
        width: Original image width in pixels
        height: Original image height in pixels
        solar_center_x: x coordinate of the solar center in the image
        solar_center_y: y coordinate of the solar center in the image
        offset_x: Horizontal offset of the image
        offset_y: Vertical offset of the image
        solar_rotation: Rotation to apply to the image, in degrees
        solar_radius: Radius of the sun in pixels
    """

    timestamp: datetime = Field(..., description="Observation time")
    width: int = Field(..., gt=0, description="Image width (pixels)")
    height: int = Field(..., gt=0, description="Image height (pixels)")
    solar_center_x: float = Field(default=0.0, description="Solar center x (pixels)")
    solar_center_y: float = Field(default=0.0, description="Solar center y (pixels)")
    offset_x: float = Field(default=0.0, description="Horizontal image offset")
    offset_y: float = Field(default=0.0, description="Vertical image offset")
    solar_rotation: float = Field(default=0.0, description="Rotation in degrees")
    solar_radius: float = Field(..., ge=0.0, description="Solar radius (pixels)")


class ImageRecord(BaseModel):
    """
    One image returned by a time range query.

    Attributes:
        id: Image identifier on the image service
        timestamp: Observation time of the image
        info: Physical layout of the image
    """

    id: int = Field(..., description="Image identifier")
    timestamp: datetime = Field(..., description="Observation time")
    info: FrameInfo


@dataclass(frozen=True, slots=True)
class Texture:
    """
    Decoded image ready to be handed to the renderer.

    Attributes:
        url: Where the image was downloaded from
        pixels: RGB or RGBA image, shape (H, W, C), dtype uint8
    """

    url: str
    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel data."""
        return f"Texture(url={self.url!r}, shape={self.pixels.shape})"


@dataclass(frozen=True, slots=True)
class Frame:
    """
    One playable image owned by a FrameStore.

    Attributes:
        id: Image identifier
        timestamp: Observation time
        url: Source url of the texture
        info: Physical layout reported by the image service
        metadata: Parsed calibration header
        texture: Decoded texture
    """

    id: int
    timestamp: datetime
    url: str
    info: FrameInfo
    metadata: "MetadataParser"
    texture: Texture

    def __repr__(self) -> str:
        return (
            f"Frame(id={self.id}, "
            f"timestamp={self.timestamp.isoformat()}, "
            f"url={self.url!r})"
        )
