"""
Image Source Protocol
=====================

Interface of the fetch collaborator that populates a FrameStore.

This interface is implemented by:
    - HelioviewerClient (Helioviewer HTTP API)
    - in-memory fakes in the test suite
"""

from datetime import datetime
from typing import List, Optional, Protocol

from helios_render.models.frame import ImageRecord
from helios_render.models.header import Header


class ImageSource(Protocol):
    """
    Protocol for image catalogues.

    Failures are reported by raising FetchError.
    """

    async def query_images(
        self,
        source: int,
        start: datetime,
        end: datetime,
        cadence: float,
    ) -> List[ImageRecord]:
        """
        Images nearest to each cadence step between start and end.

        The result is in query order and may contain the same image
        more than once.
        """
        ...

    async def fetch_header(self, image_id: int, timestamp: Optional[datetime] = None) -> Header:
        """Calibration header of an image, with an optional timestamp override."""
        ...

    def image_url(self, image_id: int, scale: float, format: str) -> str:
        """Url of the rendered image at the given scale and format."""
        ...
