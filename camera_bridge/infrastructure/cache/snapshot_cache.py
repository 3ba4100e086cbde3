"""
Adaptive snapshot cache for one camera.

A background loop (started only for designated cameras) refreshes the latest
JPEG frame at a fixed rate and slows down while the camera keeps failing.
Request handlers read through `get_frame()`, which serves the cached frame
while it is fresh and otherwise performs, or joins, a single refresh.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ...core.exceptions import CameraBridgeError
from ..external.endpoint_probe import consume_task_exception
from ..external.snapshot_source import SnapshotSource

logger = logging.getLogger(__name__)


@dataclass
class SnapshotCacheView:
    """Read-only view of a cache entry for status reporting."""
    camera_id: str
    has_frame: bool
    age_sec: Optional[float]
    failures: int
    interval_sec: float
    polling: bool
    refresh_in_flight: bool


class SnapshotCache:
    """Latest-frame cache with an at-most-one-in-flight refresh guard."""

    def __init__(
        self,
        source: SnapshotSource,
        interval: float = 0.2,
        degraded_interval: float = 1.0,
        max_age: float = 0.3,
        backoff_threshold: int = 5,
        log_every: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if degraded_interval <= interval:
            raise ValueError("degraded_interval must be longer than interval")
        self.source = source
        self.camera_id = source.camera.id
        self.normal_interval = interval
        self.degraded_interval = degraded_interval
        self.max_age = max_age
        self.backoff_threshold = backoff_threshold
        self.log_every = max(1, log_every)
        self._clock = clock

        self.frame: Optional[bytes] = None
        self.captured_at: Optional[float] = None
        self.failures = 0
        self.interval = interval

        self._refresh_task: Optional["asyncio.Task[bytes]"] = None
        self._loop_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    @property
    def is_polling(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def age(self) -> Optional[float]:
        if self.captured_at is None:
            return None
        return self._clock() - self.captured_at

    def snapshot(self) -> SnapshotCacheView:
        return SnapshotCacheView(
            camera_id=self.camera_id,
            has_frame=self.frame is not None,
            age_sec=self.age(),
            failures=self.failures,
            interval_sec=self.interval,
            polling=self.is_polling,
            refresh_in_flight=self.refresh_in_flight,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_frame(self) -> bytes:
        """
        Return a frame no older than `max_age`, refreshing once if needed.

        Raises:
            EndpointNotFound / UpstreamDisconnected: the refresh failed
        """
        age = self.age()
        if self.frame is not None and age is not None and age < self.max_age:
            return self.frame
        return await self.refresh()

    async def refresh(self) -> bytes:
        """Fetch a new frame, joining the refresh already in flight if any."""
        if not self.refresh_in_flight:
            self._refresh_task = asyncio.create_task(self._refresh_once())
            self._refresh_task.add_done_callback(consume_task_exception)
        return await asyncio.shield(self._refresh_task)

    async def tick(self) -> None:
        """One scheduler tick. Skipped while a refresh is in flight."""
        if self.refresh_in_flight:
            return
        try:
            await self.refresh()
        except CameraBridgeError:
            # Already counted and logged; only the next read and the interval care
            pass

    # ------------------------------------------------------------------
    # Background polling
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self.is_polling:
            return
        self._loop_task = asyncio.create_task(self._run())
        logger.info(
            "Snapshot polling started for camera %s every %.0fms",
            self.camera_id,
            self.interval * 1000,
        )

    async def stop(self) -> None:
        """Stop polling and cancel any refresh in flight. Safe to call twice."""
        for task in (self._loop_task, self._refresh_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                except CameraBridgeError:
                    pass
        if self._loop_task is not None:
            logger.info("Snapshot polling stopped for camera %s", self.camera_id)
        self._loop_task = None
        self._refresh_task = None

    async def _run(self) -> None:
        while True:
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Snapshot tick crashed for camera %s", self.camera_id)
            await asyncio.sleep(self.interval)

    async def _refresh_once(self) -> bytes:
        try:
            frame = await self.source.fetch()
        except CameraBridgeError as exc:
            self._record_failure(exc)
            raise
        self.frame = frame
        self.captured_at = self._clock()
        if self.interval != self.normal_interval:
            logger.info(
                "Snapshot for camera %s recovered after %d failures, restoring %.0fms interval",
                self.camera_id,
                self.failures,
                self.normal_interval * 1000,
            )
            self.interval = self.normal_interval
        self.failures = 0
        return frame

    def _record_failure(self, exc: CameraBridgeError) -> None:
        self.failures += 1
        if self.failures == 1 or self.failures % self.log_every == 0:
            logger.warning(
                "Snapshot refresh failed for camera %s (%d consecutive): %s",
                self.camera_id,
                self.failures,
                exc.message,
            )
        if self.failures >= self.backoff_threshold and self.interval != self.degraded_interval:
            self.interval = self.degraded_interval
            logger.warning(
                "Snapshot for camera %s keeps failing, slowing to %.0fms interval",
                self.camera_id,
                self.degraded_interval * 1000,
            )
