"""
Helioviewer Client
==================

Fetch collaborator backed by the Helioviewer HTTP API.

This client:
    - Queries getClosestImage once per cadence step of a time range
    - Fetches JP2 headers (getJP2Header) and converts them to Header
    - Builds downloadImage urls for textures

API Contract (getClosestImage):
    {
        "id": 79132443,
        "date": "2024-05-10 12:00:09",
        "width": 4096, "height": 4096,
        "refPixelX": 2048.5, "refPixelY": 2048.5,
        "offsetX": 0, "offsetY": 0,
        "rotation": 0, "rsun": 1600.2
    }

Design Rules:
    - Blocking requests calls run in a worker thread (asyncio.to_thread)
    - Every transport, status or payload problem raises FetchError
    - No retry or backoff; callers decide what to do on failure
    - The API url is given at construction, never read from globals
"""

import asyncio
import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from helios_render.metadata.parser import parse_date
from helios_render.models.frame import FrameInfo, ImageRecord
from helios_render.models.header import Header


logger = logging.getLogger(__name__)


DEFAULT_API_URL = "https://api.helioviewer.org/?action="


class FetchError(Exception):
    """Raised when the image service cannot deliver a result."""
    pass


def _format_time(value: datetime) -> str:
    """ISO 8601 UTC timestamp as expected by the API. Naive values are taken as UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_image_record(payload: Dict[str, Any]) -> ImageRecord:
    """
    Convert a getClosestImage response to an ImageRecord.

    Raises:
        FetchError: If the payload is an error or misses fields
    """
    if "error" in payload:
        raise FetchError(f"Helioviewer error: {payload['error']}")
    try:
        timestamp = parse_date(str(payload["date"]))
        return ImageRecord(
            id=int(payload["id"]),
            timestamp=timestamp,
            info=FrameInfo(
                timestamp=timestamp,
                width=payload["width"],
                height=payload["height"],
                solar_center_x=payload.get("refPixelX", 0.0),
                solar_center_y=payload.get("refPixelY", 0.0),
                offset_x=payload.get("offsetX", 0.0),
                offset_y=payload.get("offsetY", 0.0),
                solar_rotation=payload.get("rotation", 0.0),
                solar_radius=payload["rsun"],
            ),
        )
    except (KeyError, ValueError, TypeError, ValidationError) as e:
        raise FetchError(f"Invalid image payload: {e}")


def parse_header_xml(document: str, timestamp: Optional[datetime] = None) -> Header:
    """
    Convert a JP2 header XML document to a Header.

    Tags are read from the <fits> element. Documents without one
    contribute every leaf element of the root.

    Raises:
        FetchError: If the document is not XML
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise FetchError(f"Invalid JP2 header: {e}")

    fits = root if root.tag.lower() == "fits" else root.find(".//fits")
    elements = list(fits) if fits is not None else [el for el in root.iter() if len(el) == 0]

    tags = {}
    for element in elements:
        if element.text is None:
            continue
        tags[element.tag] = element.text.strip()
    return Header(tags=tags, timestamp=timestamp)


class HelioviewerClient:
    """
    Async client for the Helioviewer API.

    Attributes:
        api_url: Base url; the action name and query string are appended
        timeout: Seconds to wait for each request

    Example:
        client = HelioviewerClient(settings.api.url)
        records = await client.query_images(13, start, end, cadence=3600)
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_url = api_url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._request_count: int = 0
        self._error_count: int = 0

    def _get(self, url: str) -> requests.Response:
        self._request_count += 1
        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            self._error_count += 1
            raise FetchError(f"Request failed: {url}: {e}")
        return response

    def _get_json(self, url: str) -> Dict[str, Any]:
        response = self._get(url)
        try:
            return response.json()
        except ValueError as e:
            self._error_count += 1
            raise FetchError(f"Invalid JSON from {url}: {e}")

    async def get_closest_image(self, source: int, time: datetime) -> ImageRecord:
        """Image of a source nearest to the given time."""
        url = f"{self.api_url}getClosestImage&sourceId={source}&date={_format_time(time)}"
        payload = await asyncio.to_thread(self._get_json, url)
        return parse_image_record(payload)

    async def query_images(
        self,
        source: int,
        start: datetime,
        end: datetime,
        cadence: float,
    ) -> List[ImageRecord]:
        """
        Closest image for every cadence step in [start, end].

        All steps are queried concurrently; results keep step order.
        A cadence of 0 issues a single query at start.
        """
        if cadence < 0:
            raise ValueError("cadence must be >= 0")

        times = []
        query_time = start
        while query_time <= end:
            times.append(query_time)
            if cadence == 0:
                break
            query_time = query_time + timedelta(seconds=cadence)

        logger.info(
            f"Querying {len(times)} images for source {source} "
            f"between {start.isoformat()} and {end.isoformat()}"
        )
        return list(await asyncio.gather(
            *(self.get_closest_image(source, t) for t in times)
        ))

    async def fetch_header(self, image_id: int, timestamp: Optional[datetime] = None) -> Header:
        """JP2 header of an image."""
        url = f"{self.api_url}getJP2Header&id={image_id}"
        response = await asyncio.to_thread(self._get, url)
        return parse_header_xml(response.text, timestamp)

    def image_url(self, image_id: int, scale: float, format: str = "jpg") -> str:
        """Url returning the image at the given scale and format."""
        return f"{self.api_url}downloadImage&id={image_id}&scale={scale:g}&type={format}"

    def get_metrics(self) -> dict:
        """Get client metrics for observability."""
        return {
            "request_count": self._request_count,
            "error_count": self._error_count,
        }
