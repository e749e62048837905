"""
Render Parameter Models
=======================

Geometry classes and the per-frame parameters handed to the renderer.

RenderParameters is a tagged variant:
    - PlaneParameters: the plane geometry is resized directly and moved
      to (x_offset, y_offset) in scene units (solar radii)
    - SphereParameters: consumed as shader uniforms by the hemisphere model

Both variants are immutable and rebuilt on every texture swap.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Tuple, Union


class GeometryClass(str, Enum):
    """
    Geometry template an image source is mapped onto.

    Attributes:
        PLANE: Flat plane (coronagraph-style imagery)
        SPHERE: Hemisphere model (solar disk imagery)
    """

    PLANE = "PLANE"
    SPHERE = "SPHERE"


@dataclass(frozen=True, slots=True)
class PlaneParameters:
    """
    Placement of a flat image plane.

    Attributes:
        width: Plane width in solar radii
        height: Plane height in solar radii
        x_offset: Horizontal position of the plane center (solar radii)
        y_offset: Vertical position of the plane center (solar radii)
    """

    geometry: ClassVar[GeometryClass] = GeometryClass.PLANE

    width: float
    height: float
    x_offset: float
    y_offset: float


@dataclass(frozen=True, slots=True)
class SphereParameters:
    """
    Shader uniforms positioning an image on the hemisphere model.

    Attributes:
        scale: Texture scale relative to the model
        aspect: Image width / height
        x_offset: Horizontal texture offset (uv units)
        y_offset: Vertical texture offset (uv units)
        rotation_degrees: Rotation to apply around center_of_rotation
        center_of_rotation: Rotation center (uv units)
    """

    geometry: ClassVar[GeometryClass] = GeometryClass.SPHERE

    scale: float
    aspect: float
    x_offset: float
    y_offset: float
    rotation_degrees: float
    center_of_rotation: Tuple[float, float]


RenderParameters = Union[PlaneParameters, SphereParameters]
