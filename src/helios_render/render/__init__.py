"""
Render Module
=============

Render collaborator interface and a headless implementation.

Components:
    - Renderer: Protocol a FrameStore drives
    - HeadlessRenderer: Keeps model state without a GPU
"""

from helios_render.render.base import Renderer
from helios_render.render.headless import (
    HeadlessRenderer,
    MeshData,
    PlaneMesh,
    SolarModel,
    SphereMesh,
)

__all__ = [
    "Renderer",
    "HeadlessRenderer",
    "MeshData",
    "PlaneMesh",
    "SphereMesh",
    "SolarModel",
]
