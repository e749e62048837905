"""
Test Configuration
==================

Pytest fixtures and in-memory collaborators for helios_render.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import numpy as np
import pytest

from helios_render.models.frame import FrameInfo, ImageRecord, Texture
from helios_render.models.header import Header
from helios_render.render.headless import HeadlessRenderer


T0 = datetime(2024, 5, 10, 12, 0, 0, tzinfo=timezone.utc)


def make_record(image_id: int, timestamp: datetime, solar_radius: float = 400.0) -> ImageRecord:
    """Image record of a 1024x1024 image."""
    return ImageRecord(
        id=image_id,
        timestamp=timestamp,
        info=FrameInfo(
            timestamp=timestamp,
            width=1024,
            height=1024,
            solar_center_x=512.5,
            solar_center_y=512.5,
            solar_rotation=0.0,
            solar_radius=solar_radius,
        ),
    )


class FakeImageSource:
    """
    In-memory image catalogue.

    query_images behaves like the Helioviewer API: for every cadence
    step it returns the catalogue image nearest to that step, so the
    same image can be returned more than once.
    """

    def __init__(
        self,
        records: List[ImageRecord],
        headers: Dict[int, Dict[str, str]],
        gate: Optional[asyncio.Event] = None,
        header_error: Optional[Exception] = None,
    ) -> None:
        self.records = records
        self.headers = headers
        self.gate = gate
        self.header_error = header_error
        self.header_requests: List[int] = []

    async def query_images(self, source, start, end, cadence):
        if self.gate is not None:
            await self.gate.wait()
        steps = []
        query_time = start
        while query_time <= end:
            steps.append(query_time)
            if cadence == 0:
                break
            query_time = query_time + timedelta(seconds=cadence)
        if not self.records:
            return []
        return [
            min(self.records, key=lambda r: abs((r.timestamp - step).total_seconds()))
            for step in steps
        ]

    async def fetch_header(self, image_id, timestamp=None):
        self.header_requests.append(image_id)
        await asyncio.sleep(0)
        if self.header_error is not None:
            raise self.header_error
        return Header(tags=self.headers[image_id], timestamp=timestamp)

    def image_url(self, image_id, scale, format):
        return f"https://images.test/{image_id}?scale={scale:g}&type={format}"


class FakeTextureLoader:
    """Texture loader producing blank textures and counting loads."""

    def __init__(self) -> None:
        self.loaded: List[str] = []

    async def load(self, url: str) -> Texture:
        self.loaded.append(url)
        await asyncio.sleep(0)
        return Texture(url=url, pixels=np.zeros((4, 4, 3), dtype=np.uint8))


class CountingRenderer(HeadlessRenderer):
    """Headless renderer recording what it was asked to do."""

    def __init__(self) -> None:
        self.created = []
        self.disposed = []
        self.mesh_loads = 0

    async def load_mesh(self, path):
        self.mesh_loads += 1
        return await super().load_mesh(path)

    def create_model(self, geometry, params, texture, mesh=None):
        model = super().create_model(geometry, params, texture, mesh)
        self.created.append(model)
        return model

    def dispose(self, model):
        self.disposed.append(model)
        super().dispose(model)


@pytest.fixture
def disk_tags() -> Dict[str, str]:
    """Header of a 1024x1024 solar disk image seen from ~1 AU."""
    return {
        "NAXIS1": "1024",
        "NAXIS2": "1024",
        "CDELT1": "2.4",
        "CDELT2": "2.4",
        "CRPIX1": "512.5",
        "CRPIX2": "512.5",
        "CRVAL1": "0.0",
        "CRVAL2": "0.0",
        "DSUN_OBS": "151797750000.0",
        "SOLAR_R": "400.0",
        "DATE_OBS": "2024-05-10T12:00:09.35",
    }


@pytest.fixture
def coronagraph_tags() -> Dict[str, str]:
    """Header of a 1024x1024 coronagraph image."""
    return {
        "NAXIS1": "1024",
        "NAXIS2": "1024",
        "CDELT1": "11.9",
        "CDELT2": "11.9",
        "CRPIX1": "510.5",
        "CRPIX2": "515.5",
        "CRVAL1": "0.0",
        "CRVAL2": "0.0",
        "DSUN_OBS": "147000000000.0",
        "SOLAR_R": "80.0",
        "DATE_OBS": "2024-05-10T12:00:00.00",
    }


@pytest.fixture
def mesh_file(tmp_path) -> str:
    """Mesh file on disk for hemisphere models."""
    path = tmp_path / "sun_model.glb"
    path.write_bytes(b"glTF-mesh")
    return str(path)


@pytest.fixture
def texture_loader() -> FakeTextureLoader:
    return FakeTextureLoader()


@pytest.fixture
def renderer() -> CountingRenderer:
    return CountingRenderer()
