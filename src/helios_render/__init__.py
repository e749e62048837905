"""
helios_render
=============

Solar observatory imagery placed on 3D models.

This package converts per-image calibration headers into the scale,
offset and rotation needed to map an image onto a plane or hemisphere
model, and manages time-indexed sets of such images for playback.

Components:
    - metadata: Header interpretation and the Earth-Sun distance model
    - geometry: Source classification, quality scale, render parameters
    - resources: De-duplicating resource cache and texture loading
    - sources: Helioviewer fetch collaborator
    - render: Renderer protocol and a headless renderer
    - store: FrameStore, nearest-time frame selection and texture swaps

Example:
    from helios_render.config import load_config
    from helios_render.render import HeadlessRenderer
    from helios_render.store import FrameStore

    settings = load_config()
    store = FrameStore.from_settings(
        settings, 13, start, end, cadence=3600, renderer=HeadlessRenderer()
    )
    await store.ready
    store.set_time(start)
"""

__version__ = "0.1.0"

from helios_render.geometry.quality import Quality, QualitySettings
from helios_render.store.frame_store import FrameStore, StoreState, static_frame_store

__all__ = [
    "__version__",
    "Quality",
    "QualitySettings",
    "FrameStore",
    "StoreState",
    "static_frame_store",
]
