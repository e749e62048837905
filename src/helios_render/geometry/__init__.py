"""
Geometry Module
===============

Decides how an image is placed on a model.

Components:
    - classify: Source id -> GeometryClass (PLANE or SPHERE)
    - resolution_scale: Request scale for a desired resolution
    - Quality, QualitySettings: Named quality presets
    - build_render_parameters: Metadata + frame info -> RenderParameters
"""

from helios_render.geometry.sources import PLANE_SOURCES, classify, is_plane_source
from helios_render.geometry.quality import (
    QUALITY_PRESETS,
    Quality,
    QualitySettings,
    base_resolution,
    resolution_scale,
)
from helios_render.geometry.parameters import build_render_parameters, plane_dimensions

__all__ = [
    "PLANE_SOURCES",
    "classify",
    "is_plane_source",
    "QUALITY_PRESETS",
    "Quality",
    "QualitySettings",
    "base_resolution",
    "resolution_scale",
    "build_render_parameters",
    "plane_dimensions",
]
