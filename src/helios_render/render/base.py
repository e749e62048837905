"""
Renderer Protocol
=================

Interface of the render collaborator driven by a FrameStore.

The renderer owns the draw pipeline. The store only hands it parameters,
textures and shared mesh geometry, and asks it to swap, fade or free a
model.

This interface is implemented by:
    - HeadlessRenderer (uniform state only, no GPU)
    - GPU backed renderers living outside this package
"""

from typing import Any, Optional, Protocol

from helios_render.models.frame import Texture
from helios_render.models.render import GeometryClass, RenderParameters


class Renderer(Protocol):
    """Protocol for render backends."""

    async def load_mesh(self, path: str) -> Any:
        """Load the mesh geometry at path. Raises LoadError on failure."""
        ...

    def create_model(
        self,
        geometry: GeometryClass,
        params: RenderParameters,
        texture: Texture,
        mesh: Optional[Any] = None,
    ) -> Any:
        """Build a model for the first frame."""
        ...

    def swap_texture(self, model: Any, texture: Texture, params: RenderParameters) -> None:
        """Show another frame on an existing model."""
        ...

    def set_opacity(self, model: Any, value: float) -> None:
        """Set model opacity, 0 is transparent and 1 is opaque."""
        ...

    def dispose(self, model: Any) -> None:
        """Release the model's materials. Shared mesh geometry is left alone."""
        ...
