"""
Frame Store
===========

Time-indexed set of solar images driving one rendered model.

A FrameStore is created for one image source and time range. On
construction it schedules population in the background:

    1. query the image source for the time range
    2. build the texture url of every image, dropping duplicate urls
       (first occurrence kept, query order preserved)
    3. fetch every header and texture concurrently and join them all
    4. build the model for the first frame and apply the current time
    5. LOADING -> READY, or LOADING -> FAILED on any error

Afterwards set_time() selects the frame nearest to a requested time,
rebuilds its render parameters and swaps the texture on the model.

State Machine:
    LOADING -> READY
    LOADING -> FAILED
    any     -> DISPOSED   (dispose())

Design Rules:
    - Frames are kept in delivery order, not time order; the nearest
      frame search breaks ties in favour of the lowest index
    - The frame list is only published once complete (READY)
    - Disposal does not cancel in-flight fetches. Every step after an
      await checks the disposed flag and discards late results.
    - Only the ResourceCache is shared with other stores. Disposal
      releases this store's texture references; a texture is evicted only
      once no other store holds it

Example:
    store = FrameStore(
        13, start, end, cadence=3600, quality=Quality.DEFAULT,
        images=HelioviewerClient(settings.api.url),
        renderer=HeadlessRenderer(),
        model_path=settings.model.path,
    )
    await store.ready

    applied = store.set_time(start + timedelta(minutes=45))
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    List,
    Optional,
    Sequence,
    Tuple,
)

import numpy as np

from helios_render.config import Settings
from helios_render.geometry.parameters import build_render_parameters
from helios_render.geometry.quality import Quality, QualitySettings, resolution_scale
from helios_render.geometry.sources import classify
from helios_render.metadata.distance import datetime_to_millis
from helios_render.metadata.parser import MetadataParser
from helios_render.models.frame import Frame, ImageRecord, Texture
from helios_render.models.render import GeometryClass
from helios_render.render.base import Renderer
from helios_render.resources.cache import ResourceCache, default_cache
from helios_render.resources.texture import TextureLoader
from helios_render.sources.base import ImageSource
from helios_render.sources.helioviewer import FetchError, HelioviewerClient


logger = logging.getLogger(__name__)


TextureLoadFn = Callable[[str], Awaitable[Texture]]
PreloadFn = Callable[[Texture], None]


class StoreState(str, Enum):
    """
    Lifecycle states of a FrameStore.

    Attributes:
        LOADING: Population in progress, no frames available
        READY: All frames loaded, model built
        FAILED: Population failed, no frames available
        DISPOSED: Resources released, late results are discarded
    """

    LOADING = "LOADING"
    READY = "READY"
    FAILED = "FAILED"
    DISPOSED = "DISPOSED"


@dataclass(frozen=True, slots=True)
class SelectedFrame:
    """Id and timestamp of the frame currently shown."""

    id: int
    timestamp: datetime


def unique_by_url(
    records: Sequence[ImageRecord],
    url_for: Callable[[ImageRecord], str],
) -> List[Tuple[ImageRecord, str]]:
    """
    Pair records with their urls, keeping the first record of each url.

    Order of the input is preserved.
    """
    seen = set()
    unique = []
    for record in records:
        url = url_for(record)
        if url in seen:
            continue
        seen.add(url)
        unique.append((record, url))
    return unique


def _retrieve_population_error(task: asyncio.Task) -> None:
    # FAILED already records the error; mark it retrieved for unawaited stores
    if not task.cancelled():
        task.exception()


def select_nearest(frames: Sequence[Frame], time: datetime) -> Optional[Frame]:
    """
    Frame with the smallest |time - frame.timestamp|.

    Ties go to the frame with the lowest index. Returns None when
    there are no frames.
    """
    if not frames:
        return None
    stamps = np.array([datetime_to_millis(f.timestamp) for f in frames], dtype=np.float64)
    deltas = np.abs(stamps - datetime_to_millis(time))
    # argmin returns the first occurrence of the minimum
    return frames[int(np.argmin(deltas))]


class FrameStore:
    """
    Ordered frames of one source plus the model showing them.

    Must be constructed inside a running asyncio event loop.

    Attributes:
        source_id: Image source id
        geometry: Geometry class of the source
        quality: Requested image quality
        state: Current lifecycle state
    """

    def __init__(
        self,
        source_id: int,
        start: datetime,
        end: datetime,
        cadence: float,
        quality: QualitySettings,
        *,
        images: ImageSource,
        renderer: Renderer,
        model_path: str,
        load_texture: Optional[TextureLoadFn] = None,
        cache: Optional[ResourceCache] = None,
        preload: Optional[PreloadFn] = None,
    ) -> None:
        """
        Initialize the store and schedule population.

        Args:
            source_id: Observatory source id
            start: Start of the time range
            end: End of the time range (inclusive)
            cadence: Seconds between requested frames; 0 requests one frame
            quality: Image resolution and format to request
            images: Fetch collaborator
            renderer: Render collaborator
            model_path: Mesh used for hemisphere models
            load_texture: Async texture loader, defaults to TextureLoader().load
            cache: Shared resource cache, defaults to the process wide cache
            preload: Called once with every loaded texture, e.g. to upload
                it to the GPU ahead of playback

        Raises:
            ValueError: On a negative cadence or end before start
            RuntimeError: If no event loop is running
        """
        if cadence < 0:
            raise ValueError("cadence must be >= 0")
        if end < start:
            raise ValueError("end must not be before start")

        self.source_id = source_id
        self.geometry: GeometryClass = classify(source_id)
        self.quality = quality

        self._start = start
        self._end = end
        self._cadence = cadence
        self._images = images
        self._renderer = renderer
        self._model_path = model_path
        self._load_texture = load_texture or TextureLoader().load
        self._cache = cache if cache is not None else default_cache()
        self._preload = preload

        self._state = StoreState.LOADING
        self._disposed = False
        self._frames: Tuple[Frame, ...] = ()
        self._model: Optional[Any] = None
        self._time: datetime = datetime.now(timezone.utc)
        self._selected: Optional[SelectedFrame] = None

        self._task = asyncio.get_running_loop().create_task(self._populate())
        self._task.add_done_callback(_retrieve_population_error)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        source_id: int,
        start: datetime,
        end: datetime,
        cadence: float,
        renderer: Renderer,
        quality: Optional[QualitySettings] = None,
        cache: Optional[ResourceCache] = None,
        preload: Optional[PreloadFn] = None,
    ) -> "FrameStore":
        """Build a store whose collaborators are configured from settings."""
        timeout = settings.api.timeout_seconds
        return cls(
            source_id,
            start,
            end,
            cadence,
            quality or settings.quality.settings(),
            images=HelioviewerClient(settings.api.url, timeout=timeout),
            renderer=renderer,
            model_path=settings.model.path,
            load_texture=TextureLoader(timeout=timeout).load,
            cache=cache,
            preload=preload,
        )

    def __repr__(self) -> str:
        return (
            f"FrameStore(source={self.source_id}, "
            f"geometry={self.geometry.value}, "
            f"state={self._state.value}, "
            f"frames={len(self._frames)})"
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def ready(self) -> Awaitable[None]:
        """Completes when populated; raises the population error on failure."""
        return asyncio.shield(self._task)

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def frames(self) -> Tuple[Frame, ...]:
        """Frames in delivery order. Empty unless READY."""
        return self._frames

    @property
    def count(self) -> int:
        """The number of frames in this store."""
        return len(self._frames)

    @property
    def model(self) -> Optional[Any]:
        """Model built by the renderer, None until READY and after dispose."""
        return self._model

    @property
    def time(self) -> datetime:
        """Current time pointer."""
        return self._time

    @property
    def selected(self) -> Optional[SelectedFrame]:
        """Frame currently shown by the model."""
        return self._selected

    @property
    def range(self) -> Tuple[datetime, datetime]:
        """Timestamps of the first and last stored frames (both now if empty)."""
        if self._frames:
            return self._frames[0].timestamp, self._frames[-1].timestamp
        now = datetime.now(timezone.utc)
        return now, now

    @property
    def info(self) -> List[Tuple[int, datetime]]:
        """(id, timestamp) of every frame."""
        return [(frame.id, frame.timestamp) for frame in self._frames]

    # -------------------------------------------------------------------------
    # Population
    # -------------------------------------------------------------------------

    async def _populate(self) -> None:
        logger.info(
            f"Loading source {self.source_id} ({self.geometry.value}) "
            f"from {self._start.isoformat()} to {self._end.isoformat()}, "
            f"cadence={self._cadence}s, resolution={self.quality.resolution}"
        )
        model = None
        frames: List[Frame] = []
        try:
            frames = await self._load_frames()
            if self._disposed:
                self._discard(frames)
                return

            model = await self._build_model(frames[0])
            if self._disposed:
                self._renderer.dispose(model)
                self._discard(frames)
                return

            self._model = model
            self._apply(frames, self._time)
        except Exception as e:
            if self._model is not None:
                self._renderer.dispose(self._model)
                self._model = None
            if self._disposed:
                logger.debug(f"Ignoring population error after dispose: {e}")
                self._discard(frames)
                return
            self._state = StoreState.FAILED
            logger.error(f"Failed to load source {self.source_id}: {e}")
            raise

        self._frames = tuple(frames)
        self._state = StoreState.READY
        logger.info(f"Source {self.source_id} ready with {len(frames)} frames")

    async def _load_frames(self) -> List[Frame]:
        records = await self._images.query_images(
            self.source_id, self._start, self._end, self._cadence
        )
        if self._disposed:
            return []

        scale = resolution_scale(self.quality.resolution, self.source_id)
        unique = unique_by_url(
            records,
            lambda record: self._images.image_url(record.id, scale, self.quality.format),
        )
        if len(unique) < len(records):
            logger.debug(f"Dropped {len(records) - len(unique)} duplicate images")
        if not unique:
            raise FetchError(
                f"No images available for source {self.source_id} "
                f"between {self._start.isoformat()} and {self._end.isoformat()}"
            )

        results = await asyncio.gather(
            *(self._load_frame(record, url) for record, url in unique),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)

    async def _load_frame(self, record: ImageRecord, url: str) -> Frame:
        header, texture = await asyncio.gather(
            self._images.fetch_header(record.id, record.timestamp),
            self._cache.get(url, self._load_texture),
        )
        if self._preload is not None and not self._disposed:
            self._preload(texture)
        return Frame(
            id=record.id,
            timestamp=record.timestamp,
            url=url,
            info=record.info,
            metadata=MetadataParser(header),
            texture=texture,
        )

    async def _build_model(self, frame: Frame) -> Any:
        params = build_render_parameters(frame.metadata, frame.info, self.geometry)
        mesh = None
        if self.geometry is GeometryClass.SPHERE:
            mesh = await self._cache.get(self._model_path, self._renderer.load_mesh)
        return self._renderer.create_model(self.geometry, params, frame.texture, mesh)

    def _discard(self, frames: Sequence[Frame]) -> None:
        logger.info(f"Source {self.source_id} disposed during loading, discarding results")
        for frame in frames:
            self._cache.release(frame.url)

    # -------------------------------------------------------------------------
    # Playback
    # -------------------------------------------------------------------------

    def select_nearest(self, time: datetime) -> Optional[Frame]:
        """Stored frame nearest to time, None if the store is empty."""
        return select_nearest(self._frames, time)

    def _apply(self, frames: Sequence[Frame], time: datetime) -> Optional[Frame]:
        frame = select_nearest(frames, time)
        if frame is None:
            return None
        params = build_render_parameters(frame.metadata, frame.info, self.geometry)
        self._renderer.swap_texture(self._model, frame.texture, params)
        self._selected = SelectedFrame(id=frame.id, timestamp=frame.timestamp)
        self._time = frame.timestamp
        return frame

    def set_time(self, time: datetime) -> datetime:
        """
        Show the frame nearest to time.

        The nearest loaded frame may be far from the requested time;
        this is a best-effort update. Before the store is READY only
        the time pointer moves, and it is applied once loading ends.

        Args:
            time: Requested time

        Returns:
            Timestamp of the frame actually shown, or the requested
            time when no frame could be applied

        Raises:
            MetadataError: If the selected frame's header is unusable
        """
        self._time = time
        if self._disposed or self._model is None:
            return self._time
        self._apply(self._frames, time)
        return self._time

    async def set_opacity(self, value: float) -> None:
        """
        Set model opacity once the store is ready.

        Args:
            value: 0 is transparent and 1 is opaque
        """
        if not 0.0 <= value <= 1.0:
            raise ValueError("opacity must be between 0 and 1")
        await self.ready
        if self._model is not None and not self._disposed:
            self._renderer.set_opacity(self._model, value)

    def dispose(self) -> None:
        """
        Release the model and this store's texture references.

        Safe to call in any state and more than once. Population still
        in flight finishes in the background and its results are dropped.
        """
        if self._disposed:
            return
        self._disposed = True
        self._state = StoreState.DISPOSED

        if self._model is not None:
            self._renderer.dispose(self._model)
            self._model = None
        for frame in self._frames:
            self._cache.release(frame.url)
        self._frames = ()
        self._selected = None
        logger.info(f"Source {self.source_id} disposed")


def static_frame_store(
    source_id: int,
    time: datetime,
    quality: QualitySettings = Quality.MAXIMUM,
    **collaborators: Any,
) -> FrameStore:
    """
    Store holding the single image nearest to time.

    Keyword arguments are passed to FrameStore (images, renderer,
    model_path, ...).
    """
    return FrameStore(source_id, time, time, 0, quality, **collaborators)
