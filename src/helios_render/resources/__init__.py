"""
Resources Module
================

Shared asset loading.

Components:
    - ResourceCache: De-duplicating memoization of async loads
    - TextureLoader: HTTP download + OpenCV decode into Texture
    - LoadError: Raised on download or decode failure

Example:
    cache = ResourceCache()
    loader = TextureLoader(timeout=30)

    texture = await cache.get(url, loader.load)
"""

from helios_render.resources.cache import ResourceCache, default_cache
from helios_render.resources.texture import LoadError, TextureLoader, decode_image

__all__ = [
    "ResourceCache",
    "default_cache",
    "TextureLoader",
    "LoadError",
    "decode_image",
]
