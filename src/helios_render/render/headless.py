"""
Headless Renderer
=================

Render collaborator that keeps model state in plain Python objects.

Useful wherever the placement of frames matters but pixels do not:
offline pipelines, exporting uniforms to another engine, and tests.

Model Layout:
    PLANE:  one PlaneMesh, resized and moved on every swap
    SPHERE: a front SphereMesh and an additive backside SphereMesh,
            both sharing the loaded mesh geometry

Design Rules:
    - Uniform updates copy each field explicitly per variant
    - A swap keeps each mesh's opacity and backside flag
    - Swapping to parameters of the other geometry class is an error
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from helios_render.models.frame import Texture
from helios_render.models.render import (
    GeometryClass,
    PlaneParameters,
    RenderParameters,
    SphereParameters,
)
from helios_render.resources.texture import LoadError


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MeshData:
    """Raw mesh file contents."""

    path: str
    data: bytes

    def __repr__(self) -> str:
        return f"MeshData(path={self.path!r}, size={len(self.data)})"


@dataclass(slots=True)
class PlaneMesh:
    """Flat image plane."""

    texture: Texture
    width: float
    height: float
    position: Tuple[float, float]
    opacity: float = 1.0

    def apply(self, texture: Texture, params: PlaneParameters) -> None:
        self.texture = texture
        self.width = params.width
        self.height = params.height
        self.position = (params.x_offset, params.y_offset)


@dataclass(slots=True)
class SphereMesh:
    """Hemisphere mesh with its shader uniforms."""

    texture: Texture
    scale: float
    aspect: float
    x_offset: float
    y_offset: float
    rotation_degrees: float
    center_of_rotation: Tuple[float, float]
    mesh: Optional[MeshData] = None
    opacity: float = 1.0
    backside: bool = False

    def apply(self, texture: Texture, params: SphereParameters) -> None:
        self.texture = texture
        self.scale = params.scale
        self.aspect = params.aspect
        self.x_offset = params.x_offset
        self.y_offset = params.y_offset
        self.rotation_degrees = params.rotation_degrees
        self.center_of_rotation = params.center_of_rotation


@dataclass(slots=True)
class SolarModel:
    """
    Model built by HeadlessRenderer.

    Attributes:
        geometry: Geometry class of the model
        meshes: Plane mesh, or front and backside sphere meshes
        disposed: Whether dispose() has been called
        swap_count: Number of texture swaps applied
    """

    geometry: GeometryClass
    meshes: List[Union[PlaneMesh, SphereMesh]] = field(default_factory=list)
    disposed: bool = False
    swap_count: int = 0

    @property
    def texture(self) -> Optional[Texture]:
        return self.meshes[0].texture if self.meshes else None


class HeadlessRenderer:
    """Renderer without a draw pipeline."""

    async def load_mesh(self, path: str) -> MeshData:
        """
        Read a mesh file.

        Raises:
            LoadError: If the file cannot be read
        """
        try:
            data = await asyncio.to_thread(Path(path).read_bytes)
        except OSError as e:
            raise LoadError(f"Failed to load mesh {path}: {e}")
        logger.debug(f"Loaded mesh {path} ({len(data)} bytes)")
        return MeshData(path=path, data=data)

    def create_model(
        self,
        geometry: GeometryClass,
        params: RenderParameters,
        texture: Texture,
        mesh: Optional[MeshData] = None,
    ) -> SolarModel:
        model = SolarModel(geometry=geometry)

        if geometry is GeometryClass.PLANE:
            if not isinstance(params, PlaneParameters):
                raise TypeError(f"Plane model needs PlaneParameters, got {type(params).__name__}")
            model.meshes.append(PlaneMesh(
                texture=texture,
                width=params.width,
                height=params.height,
                position=(params.x_offset, params.y_offset),
            ))
            return model

        if not isinstance(params, SphereParameters):
            raise TypeError(f"Sphere model needs SphereParameters, got {type(params).__name__}")
        for backside in (True, False):
            model.meshes.append(SphereMesh(
                texture=texture,
                scale=params.scale,
                aspect=params.aspect,
                x_offset=params.x_offset,
                y_offset=params.y_offset,
                rotation_degrees=params.rotation_degrees,
                center_of_rotation=params.center_of_rotation,
                mesh=mesh,
                backside=backside,
            ))
        return model

    def swap_texture(self, model: SolarModel, texture: Texture, params: RenderParameters) -> None:
        if model.disposed:
            raise RuntimeError("Cannot update a disposed model")
        if params.geometry is not model.geometry:
            raise TypeError(
                f"{model.geometry.value} model cannot take "
                f"{params.geometry.value} parameters"
            )
        for mesh in model.meshes:
            mesh.apply(texture, params)
        model.swap_count += 1

    def set_opacity(self, model: SolarModel, value: float) -> None:
        for mesh in model.meshes:
            mesh.opacity = value

    def dispose(self, model: SolarModel) -> None:
        if model.disposed:
            return
        model.meshes.clear()
        model.disposed = True
