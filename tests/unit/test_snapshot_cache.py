"""
Unit tests for the adaptive snapshot cache.
"""
import asyncio
import logging
from typing import List, Optional, Union

import pytest

from camera_bridge.core.exceptions import EndpointNotFound, UpstreamDisconnected
from camera_bridge.domain.models.camera import CameraConfig
from camera_bridge.infrastructure.cache.snapshot_cache import SnapshotCache
from tests.helpers import JPEG_FRAME, wait_until


class StubSource:
    """SnapshotSource stand-in returning scripted results."""

    def __init__(self) -> None:
        self.camera = CameraConfig(id="cam1", ip="10.0.0.5")
        self.results: List[Union[bytes, Exception]] = []
        self.calls = 0
        self.gate: Optional[asyncio.Event] = None

    async def fetch(self) -> bytes:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0) if self.results else JPEG_FRAME
        if isinstance(result, Exception):
            raise result
        return result


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _failure() -> UpstreamDisconnected:
    return UpstreamDisconnected("Get snapshot failed: HTTP 503")


@pytest.fixture
def source():
    return StubSource()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(source, clock):
    return SnapshotCache(source, interval=0.2, degraded_interval=1.0, max_age=0.3, clock=clock)


class TestGetFrame:
    """Tests for reads through get_frame"""

    @pytest.mark.asyncio
    async def test_fresh_frame_is_served_from_cache(self, cache, source, clock):
        await cache.refresh()
        clock.now += 0.1
        frame = await cache.get_frame()
        assert frame == JPEG_FRAME
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_stale_frame_triggers_one_refresh(self, cache, source, clock):
        await cache.refresh()
        clock.now += 0.3
        source.results = [b"\xff\xd8new"]
        frame = await cache.get_frame()
        assert frame == b"\xff\xd8new"
        assert source.calls == 2
        assert cache.age() == 0

    @pytest.mark.asyncio
    async def test_refresh_error_is_raised_to_reader(self, cache, source):
        source.results = [EndpointNotFound("Snapshot endpoint not found")]
        with pytest.raises(EndpointNotFound):
            await cache.get_frame()
        assert cache.frame is None
        assert cache.failures == 1

    @pytest.mark.asyncio
    async def test_concurrent_readers_share_one_refresh(self, cache, source):
        source.gate = asyncio.Event()
        readers = [asyncio.create_task(cache.get_frame()) for _ in range(5)]
        await asyncio.sleep(0)
        assert cache.refresh_in_flight
        source.gate.set()
        frames = await asyncio.gather(*readers)
        assert frames == [JPEG_FRAME] * 5
        assert source.calls == 1


class TestTick:
    """Tests for the scheduler tick"""

    @pytest.mark.asyncio
    async def test_tick_skipped_while_refresh_in_flight(self, cache, source):
        source.gate = asyncio.Event()
        reader = asyncio.create_task(cache.get_frame())
        await wait_until(lambda: source.calls == 1)
        await cache.tick()
        assert source.calls == 1
        source.gate.set()
        await reader

    @pytest.mark.asyncio
    async def test_tick_swallows_camera_errors(self, cache, source):
        source.results = [_failure()]
        await cache.tick()
        assert cache.failures == 1

    @pytest.mark.asyncio
    async def test_backoff_after_threshold_and_restore(self, cache, source):
        source.results = [_failure() for _ in range(4)]
        for _ in range(4):
            await cache.tick()
        assert cache.interval == 0.2

        source.results = [_failure()]
        await cache.tick()
        assert cache.failures == 5
        assert cache.interval == 1.0

        await cache.tick()
        assert cache.failures == 0
        assert cache.interval == 0.2
        assert cache.frame == JPEG_FRAME

    @pytest.mark.asyncio
    async def test_failure_logging_is_throttled(self, cache, source, caplog):
        caplog.set_level(logging.WARNING)
        source.results = [_failure() for _ in range(10)]
        for _ in range(10):
            await cache.tick()
        failed = [r for r in caplog.records if "Snapshot refresh failed" in r.getMessage()]
        assert len(failed) == 2
        assert "(1 consecutive)" in failed[0].getMessage()
        assert "(10 consecutive)" in failed[1].getMessage()


class TestPolling:
    """Tests for the background polling loop"""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, source):
        cache = SnapshotCache(source, interval=0.01, degraded_interval=0.05, max_age=0.3)
        cache.start()
        cache.start()
        assert cache.is_polling
        await wait_until(lambda: source.calls >= 3)
        await cache.stop()
        assert not cache.is_polling
        calls = source.calls
        await asyncio.sleep(0.05)
        assert source.calls == calls
        await cache.stop()

    @pytest.mark.asyncio
    async def test_stop_cancels_refresh_in_flight(self, cache, source):
        source.gate = asyncio.Event()
        cache.start()
        await wait_until(lambda: cache.refresh_in_flight)
        await cache.stop()
        assert not cache.refresh_in_flight


def test_degraded_interval_must_be_longer(source):
    with pytest.raises(ValueError):
        SnapshotCache(source, interval=1.0, degraded_interval=0.5)


@pytest.mark.asyncio
async def test_snapshot_view(cache, clock):
    view = cache.snapshot()
    assert view.has_frame is False
    assert view.age_sec is None

    await cache.refresh()
    clock.now += 0.05
    view = cache.snapshot()
    assert view.camera_id == "cam1"
    assert view.has_frame is True
    assert view.age_sec == pytest.approx(0.05)
    assert view.failures == 0
    assert view.interval_sec == 0.2
    assert view.polling is False
