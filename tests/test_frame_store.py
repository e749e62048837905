"""
Frame Store Tests
=================
"""

import asyncio
import gc
from datetime import timedelta

import pytest

from conftest import T0, FakeImageSource, make_record
from helios_render.geometry.quality import Quality
from helios_render.metadata.parser import MissingTagError
from helios_render.models.render import GeometryClass
from helios_render.resources import LoadError
from helios_render.resources.cache import ResourceCache
from helios_render.sources.helioviewer import FetchError
from helios_render.store import FrameStore, StoreState, static_frame_store
from helios_render.store.frame_store import select_nearest, unique_by_url


HOUR = timedelta(hours=1)


def hourly_records(count=3):
    return [make_record(i + 1, T0 + i * HOUR) for i in range(count)]


def sphere_source(disk_tags, count=3, **kwargs):
    records = hourly_records(count)
    return FakeImageSource(records, {r.id: dict(disk_tags) for r in records}, **kwargs)


def make_store(images, renderer, mesh_file, texture_loader, source_id=13,
               start=T0, end=T0 + 2 * HOUR, cadence=3600, **kwargs):
    kwargs.setdefault("cache", ResourceCache())
    return FrameStore(
        source_id, start, end, cadence, Quality.DEFAULT,
        images=images,
        renderer=renderer,
        model_path=mesh_file,
        load_texture=texture_loader.load,
        **kwargs,
    )


class TestHelpers:
    """Tests for the nearest frame search and url de-duplication."""

    def test_unique_by_url_keeps_first_in_order(self):
        records = [make_record(i, T0) for i in (5, 3, 5, 1, 3)]
        unique = unique_by_url(records, lambda r: f"url-{r.id}")
        assert [url for _, url in unique] == ["url-5", "url-3", "url-1"]
        assert unique[0][0] is records[0]

    def test_select_nearest_empty(self):
        assert select_nearest([], T0) is None


class TestPopulation:
    """Tests for loading a store."""

    def test_sphere_store_becomes_ready(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            store = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader)
            assert store.state is StoreState.LOADING
            assert store.frames == ()
            await store.ready
            return store

        store = asyncio.run(scenario())

        assert store.state is StoreState.READY
        assert store.geometry is GeometryClass.SPHERE
        assert store.count == 3
        assert store.info == [(1, T0), (2, T0 + HOUR), (3, T0 + 2 * HOUR)]
        assert store.range == (T0, T0 + 2 * HOUR)
        assert len(renderer.created) == 1
        assert store.model is renderer.created[0]
        assert len(store.model.meshes) == 2
        assert store.model.meshes[0].mesh.path == mesh_file

    def test_texture_urls_use_quality_scale(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            store = make_store(sphere_source(disk_tags, count=1), renderer, mesh_file,
                               texture_loader, end=T0)
            await store.ready
            return store

        store = asyncio.run(scenario())
        # source 13 is served at 4096, Default quality requests 1024
        assert texture_loader.loaded == ["https://images.test/1?scale=4&type=png"]
        assert store.frames[0].url == texture_loader.loaded[0]

    def test_static_plane_store(self, coronagraph_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            record = make_record(7, T0, solar_radius=80.0)
            images = FakeImageSource([record], {7: coronagraph_tags})
            store = static_frame_store(
                4, T0,
                images=images,
                renderer=renderer,
                model_path=mesh_file,
                load_texture=texture_loader.load,
                cache=ResourceCache(),
            )
            await store.ready
            return store

        store = asyncio.run(scenario())

        assert store.geometry is GeometryClass.PLANE
        assert store.quality is Quality.MAXIMUM
        assert store.count == 1
        assert renderer.mesh_loads == 0
        plane = store.model.meshes[0]
        assert plane.width == pytest.approx(12.8)
        assert store.selected.id == 7
        assert store.set_time(T0 + 5 * HOUR) == T0
        assert store.set_time(T0 - 5 * HOUR) == T0

    def test_duplicate_images_are_dropped(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            # 30 minute cadence over 2 hours hits each hourly image more than once
            store = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader,
                               cadence=1800)
            await store.ready
            return store

        store = asyncio.run(scenario())

        assert [frame.id for frame in store.frames] == [1, 2, 3]
        assert len(texture_loader.loaded) == 3

    def test_initial_time_selects_nearest_frame(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            store = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader)
            store.set_time(T0 + timedelta(minutes=100))
            await store.ready
            return store

        store = asyncio.run(scenario())

        assert store.selected.id == 3
        assert store.time == T0 + 2 * HOUR

    def test_header_failure_fails_store(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            images = sphere_source(disk_tags, header_error=FetchError("header unavailable"))
            store = make_store(images, renderer, mesh_file, texture_loader)
            with pytest.raises(FetchError):
                await store.ready
            return store

        store = asyncio.run(scenario())

        assert store.state is StoreState.FAILED
        assert store.frames == ()
        assert store.model is None

    def test_unusable_header_fails_store(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            del disk_tags["CRPIX1"]
            store = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader)
            with pytest.raises(MissingTagError):
                await store.ready
            return store

        store = asyncio.run(scenario())

        assert store.state is StoreState.FAILED
        assert renderer.created == []

    def test_no_images_fails_store(self, renderer, mesh_file, texture_loader):
        async def scenario():
            store = make_store(FakeImageSource([], {}), renderer, mesh_file, texture_loader)
            with pytest.raises(FetchError):
                await store.ready
            return store

        assert asyncio.run(scenario()).state is StoreState.FAILED

    def test_missing_mesh_fails_store(self, disk_tags, renderer, tmp_path, texture_loader):
        async def scenario():
            store = make_store(sphere_source(disk_tags), renderer,
                               str(tmp_path / "missing.glb"), texture_loader)
            with pytest.raises(LoadError):
                await store.ready
            return store

        assert asyncio.run(scenario()).state is StoreState.FAILED

    def test_invalid_arguments(self, disk_tags, renderer, mesh_file, texture_loader):
        images = sphere_source(disk_tags)
        with pytest.raises(ValueError):
            make_store(images, renderer, mesh_file, texture_loader, cadence=-1)
        with pytest.raises(ValueError):
            make_store(images, renderer, mesh_file, texture_loader, start=T0 + HOUR, end=T0)

    def test_shared_mesh_is_loaded_once(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            cache = ResourceCache()
            stores = [
                make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader, cache=cache)
                for _ in range(3)
            ]
            await asyncio.gather(*(store.ready for store in stores))
            return stores

        stores = asyncio.run(scenario())

        assert renderer.mesh_loads == 1
        assert all(store.state is StoreState.READY for store in stores)
        mesh = stores[0].model.meshes[0].mesh
        assert all(store.model.meshes[0].mesh is mesh for store in stores)

    def test_preload_sees_every_texture(self, disk_tags, renderer, mesh_file, texture_loader):
        preloaded = []

        async def scenario():
            store = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader,
                               preload=preloaded.append)
            await store.ready
            return store

        store = asyncio.run(scenario())

        assert sorted(t.url for t in preloaded) == sorted(f.url for f in store.frames)


class TestPlayback:
    """Tests for selecting frames by time."""

    @pytest.fixture
    def ready_store(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            store = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader)
            await store.ready
            return store

        return asyncio.run(scenario())

    def test_nearest_later_frame(self, ready_store):
        assert ready_store.set_time(T0 + timedelta(minutes=45)) == T0 + HOUR
        assert ready_store.selected.id == 2
        assert ready_store.model.texture is ready_store.frames[1].texture

    def test_tie_goes_to_first_frame(self, ready_store):
        assert ready_store.set_time(T0 + timedelta(minutes=30)) == T0
        assert ready_store.selected.id == 1

    def test_time_outside_range(self, ready_store):
        assert ready_store.set_time(T0 + 10 * HOUR) == T0 + 2 * HOUR
        assert ready_store.set_time(T0 - 10 * HOUR) == T0

    def test_every_swap_rebuilds_uniforms(self, ready_store):
        before = ready_store.model.swap_count
        ready_store.set_time(T0 + HOUR)
        ready_store.set_time(T0 + 2 * HOUR)
        assert ready_store.model.swap_count == before + 2
        front = ready_store.model.meshes[1]
        assert front.x_offset == pytest.approx(0.5)
        assert front.opacity == 1.0

    def test_select_nearest_does_not_swap(self, ready_store):
        before = ready_store.model.swap_count
        assert ready_store.select_nearest(T0 + 2 * HOUR).id == 3
        assert ready_store.model.swap_count == before

    def test_set_time_while_loading_moves_pointer(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            gate = asyncio.Event()
            store = make_store(sphere_source(disk_tags, gate=gate), renderer, mesh_file, texture_loader)
            requested = T0 + timedelta(minutes=50)
            assert store.set_time(requested) == requested
            assert store.time == requested
            assert store.selected is None
            gate.set()
            await store.ready
            return store

        store = asyncio.run(scenario())
        assert store.selected.id == 2


class TestOpacity:
    """Tests for set_opacity."""

    def test_opacity_applies_once_ready(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            store = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader)
            await store.set_opacity(0.25)
            return store

        store = asyncio.run(scenario())
        assert [mesh.opacity for mesh in store.model.meshes] == [0.25, 0.25]

    def test_invalid_opacity(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            store = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader)
            with pytest.raises(ValueError):
                await store.set_opacity(1.5)
            await store.ready

        asyncio.run(scenario())


class TestDispose:
    """Tests for releasing a store."""

    def test_dispose_after_ready(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            cache = ResourceCache()
            store = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader,
                               cache=cache)
            await store.ready
            model = store.model
            urls = [frame.url for frame in store.frames]
            store.dispose()
            store.dispose()
            return store, cache, model, urls

        store, cache, model, urls = asyncio.run(scenario())

        assert store.state is StoreState.DISPOSED
        assert store.disposed
        assert store.model is None
        assert store.frames == ()
        assert model.disposed
        assert renderer.disposed == [model]
        assert all(url not in cache for url in urls)
        # the shared mesh stays cached for other stores
        assert mesh_file in cache

    def test_set_time_after_dispose_is_a_no_op(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            store = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader)
            await store.ready
            store.dispose()
            return store

        store = asyncio.run(scenario())
        assert store.set_time(T0 + HOUR) == T0 + HOUR
        assert store.selected is None

    def test_dispose_during_loading_discards_results(
        self, disk_tags, renderer, mesh_file, texture_loader
    ):
        async def scenario():
            gate = asyncio.Event()
            cache = ResourceCache()
            store = make_store(sphere_source(disk_tags, gate=gate), renderer, mesh_file,
                               texture_loader, cache=cache)
            await asyncio.sleep(0)
            store.dispose()
            gate.set()
            await store.ready
            return store, cache

        store, cache = asyncio.run(scenario())

        assert store.state is StoreState.DISPOSED
        assert store.frames == ()
        assert store.model is None
        assert renderer.created == []
        assert len(cache) == 0

    def test_dispose_while_textures_load(self, disk_tags, renderer, mesh_file, texture_loader):
        async def scenario():
            cache = ResourceCache()
            store = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader,
                               cache=cache)
            # let the query finish and the frame loads start
            for _ in range(3):
                await asyncio.sleep(0)
            store.dispose()
            await store.ready
            return store, cache

        store, cache = asyncio.run(scenario())

        assert store.state is StoreState.DISPOSED
        assert store.model is None
        assert all(model.disposed for model in renderer.created)
        assert all(url not in cache for url in texture_loader.loaded)

    def test_dispose_after_failure(self, renderer, mesh_file, texture_loader):
        async def scenario():
            store = make_store(FakeImageSource([], {}), renderer, mesh_file, texture_loader)
            with pytest.raises(FetchError):
                await store.ready
            store.dispose()
            return store

        assert asyncio.run(scenario()).state is StoreState.DISPOSED
    def test_dispose_keeps_textures_of_other_stores(
        self, disk_tags, renderer, mesh_file, texture_loader
    ):
        async def scenario():
            cache = ResourceCache()
            first = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader,
                               cache=cache)
            second = make_store(sphere_source(disk_tags), renderer, mesh_file, texture_loader,
                                cache=cache)
            await asyncio.gather(first.ready, second.ready)
            return first, second, cache

        first, second, cache = asyncio.run(scenario())
        urls = [frame.url for frame in second.frames]

        first.dispose()

        assert all(url in cache for url in urls)
        assert second.set_time(T0 + HOUR) == T0 + HOUR

        second.dispose()

        assert all(url not in cache for url in urls)
        assert len(texture_loader.loaded) == 3


class TestUnawaitedFailure:
    """A failed store that nobody awaits must not leak an unretrieved error."""

    def test_no_unretrieved_task_error(self, renderer, mesh_file, texture_loader):
        reported = []

        async def scenario():
            asyncio.get_running_loop().set_exception_handler(
                lambda loop, context: reported.append(context)
            )
            store = make_store(FakeImageSource([], {}), renderer, mesh_file, texture_loader)
            while store.state is StoreState.LOADING:
                await asyncio.sleep(0)
            state = store.state
            await asyncio.sleep(0)
            del store
            gc.collect()
            return state

        assert asyncio.run(scenario()) is StoreState.FAILED
        assert reported == []
