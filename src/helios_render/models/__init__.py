"""
Data Models
===========

Typed values shared across helios_render.

Models:
    Header:
        - Header: Immutable calibration tag mapping for one image

    Frame:
        - FrameInfo: Per-frame physical info (pydantic input contract)
        - ImageRecord: One queried image
        - Texture: Decoded image pixels
        - Frame: Playable image owned by a FrameStore

    Render:
        - GeometryClass: PLANE or SPHERE
        - PlaneParameters, SphereParameters: RenderParameters variants
"""

from helios_render.models.header import Header
from helios_render.models.frame import Frame, FrameInfo, ImageRecord, Texture
from helios_render.models.render import (
    GeometryClass,
    PlaneParameters,
    RenderParameters,
    SphereParameters,
)

__all__ = [
    # Header
    "Header",
    # Frame
    "FrameInfo",
    "ImageRecord",
    "Texture",
    "Frame",
    # Render
    "GeometryClass",
    "PlaneParameters",
    "SphereParameters",
    "RenderParameters",
]
