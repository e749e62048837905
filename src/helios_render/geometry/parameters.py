"""
Render Parameter Builder
========================

Combines parsed metadata and per-frame info into renderer parameters.

Plane geometry:
    dimensions = (width / solar_radius_px, height / solar_radius_px)
    offsets    = metadata.scene_offset_x/y()

Sphere geometry:
    scale              = metadata.scale()
    aspect             = metadata.width() / metadata.height()
    offsets            = metadata.gl_offset_x/y()
    rotation_degrees   = frame_info.solar_rotation
    center_of_rotation = metadata.center_of_rotation()

Design Rules:
    - Pure and deterministic, called on model creation and on every swap
    - Metadata errors are NOT caught here; they fail the frame
"""

from typing import Tuple

from helios_render.metadata.parser import MetadataComputationError, MetadataParser
from helios_render.models.frame import FrameInfo
from helios_render.models.render import (
    GeometryClass,
    PlaneParameters,
    RenderParameters,
    SphereParameters,
)


def plane_dimensions(frame_info: FrameInfo) -> Tuple[float, float]:
    """
    Plane size in solar radii.

    Raises:
        MetadataComputationError: If the frame reports no solar radius
    """
    if frame_info.solar_radius <= 0:
        raise MetadataComputationError(
            f"Frame at {frame_info.timestamp.isoformat()} has no solar radius"
        )
    return (
        frame_info.width / frame_info.solar_radius,
        frame_info.height / frame_info.solar_radius,
    )


def build_plane_parameters(metadata: MetadataParser, frame_info: FrameInfo) -> PlaneParameters:
    width, height = plane_dimensions(frame_info)
    return PlaneParameters(
        width=width,
        height=height,
        x_offset=metadata.scene_offset_x(),
        y_offset=metadata.scene_offset_y(),
    )


def build_sphere_parameters(metadata: MetadataParser, frame_info: FrameInfo) -> SphereParameters:
    return SphereParameters(
        scale=metadata.scale(),
        aspect=metadata.width() / metadata.height(),
        x_offset=metadata.gl_offset_x(),
        y_offset=metadata.gl_offset_y(),
        rotation_degrees=frame_info.solar_rotation,
        center_of_rotation=metadata.center_of_rotation(),
    )


def build_render_parameters(
    metadata: MetadataParser,
    frame_info: FrameInfo,
    geometry: GeometryClass,
) -> RenderParameters:
    """
    Parameters placing one frame on its geometry.

    Args:
        metadata: Parsed header of the frame
        frame_info: Physical info of the frame
        geometry: Geometry class of the frame's source

    Returns:
        PlaneParameters or SphereParameters matching geometry

    Raises:
        MetadataError: If the header cannot support the computation
    """
    if geometry is GeometryClass.PLANE:
        return build_plane_parameters(metadata, frame_info)
    return build_sphere_parameters(metadata, frame_info)
