"""
Store Module
============

Time-indexed frame collections driving rendered models.

Components:
    - FrameStore: Frames of one source and time range, nearest-time playback
    - StoreState: LOADING, READY, FAILED, DISPOSED
    - static_frame_store: Store holding a single image
"""

from helios_render.store.frame_store import (
    FrameStore,
    SelectedFrame,
    StoreState,
    select_nearest,
    static_frame_store,
    unique_by_url,
)

__all__ = [
    "FrameStore",
    "SelectedFrame",
    "StoreState",
    "select_nearest",
    "static_frame_store",
    "unique_by_url",
]
