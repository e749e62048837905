"""
Texture Loader
==============

Downloads an image url and decodes it into a Texture.

Design Rules:
    - This is the ONLY place in the codebase that decodes images
    - Blocking HTTP and decode run in a worker thread
    - Fails fast on HTTP errors and corrupt payloads (LoadError)
    - Pixels are returned as RGB (or RGBA when the image has alpha)
"""

import asyncio
import logging
from typing import Optional

import cv2
import numpy as np
import requests

from helios_render.models.frame import Texture


logger = logging.getLogger(__name__)


class LoadError(Exception):
    """Raised when a texture or mesh cannot be loaded or decoded."""
    pass


def decode_image(data: bytes, url: str = "<memory>") -> np.ndarray:
    """
    Decode encoded image bytes (png, jpg, webp) to an RGB(A) array.

    Args:
        data: Encoded image bytes
        url: Source of the bytes, used in error messages

    Returns:
        Image as np.ndarray (H, W, 3) or (H, W, 4), dtype=uint8

    Raises:
        LoadError: If decoding fails or the image is invalid
    """
    nparr = np.frombuffer(data, np.uint8)
    image = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)

    if image is None:
        raise LoadError(f"Failed to decode image {url}: cv2.imdecode returned None")

    if image.dtype != np.uint8:
        # 16 bit pngs
        image = cv2.convertScaleAbs(image, alpha=255.0 / 65535.0)

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)

    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise LoadError(f"Invalid image shape for {url}: {image.shape}")

    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


class TextureLoader:
    """
    Loads textures over HTTP.

    Attributes:
        timeout: Seconds to wait for each download
    """

    def __init__(
        self,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self._session = session or requests.Session()
        self._loaded_count: int = 0
        self._error_count: int = 0

    def _download(self, url: str) -> bytes:
        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise LoadError(f"Failed to download texture {url}: {e}")
        return response.content

    def _load_sync(self, url: str) -> Texture:
        return Texture(url=url, pixels=decode_image(self._download(url), url))

    async def load(self, url: str) -> Texture:
        """
        Download and decode one texture.

        Raises:
            LoadError: On HTTP failure or undecodable payload
        """
        try:
            texture = await asyncio.to_thread(self._load_sync, url)
        except LoadError as e:
            self._error_count += 1
            logger.error(str(e))
            raise
        self._loaded_count += 1
        logger.debug(f"Loaded texture {url} ({texture.width}x{texture.height})")
        return texture

    def get_metrics(self) -> dict:
        """Get loader metrics for observability."""
        return {
            "loaded_count": self._loaded_count,
            "error_count": self._error_count,
        }
