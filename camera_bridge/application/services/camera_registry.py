# Standard library imports
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

# External package imports
import httpx

# Local application imports
from ...core.config import Settings, get_settings
from ...core.exceptions import CameraNotRegistered
from ...domain.models.camera import CameraConfig
from ...infrastructure.cache.snapshot_cache import SnapshotCache
from ...infrastructure.external.device_info_source import DeviceInfoSource
from ...infrastructure.external.mjpeg_source import MjpegSource
from ...infrastructure.external.snapshot_source import SnapshotSource
from ...infrastructure.streaming.transcode_session import TranscodeSession

logger = logging.getLogger(__name__)


@dataclass
class CameraRuntime:
    """Everything one camera owns, built from a single CameraConfig."""
    config: CameraConfig
    snapshot_source: SnapshotSource
    mjpeg_source: MjpegSource
    session: TranscodeSession
    snapshot_cache: SnapshotCache
    device_info_source: DeviceInfoSource
    closed: bool = False

    @property
    def id(self) -> str:
        return self.config.id

    async def close(self) -> None:
        """Stop polling and the transcoder. Idempotent."""
        if self.closed:
            return
        self.closed = True
        await self.snapshot_cache.stop()
        await self.session.close()


class CameraRegistry:
    """
    Owns the configured cameras and their runtimes.

    Registering an id that already exists replaces its config: the previous
    runtime is closed first, so its endpoint caches, cached frame and
    transcoder all go away with it.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._http_client = http_client
        self._cameras: Dict[str, CameraRuntime] = {}
        self._lock = asyncio.Lock()

    def build_runtime(self, config: CameraConfig) -> CameraRuntime:
        settings = self.settings
        snapshot_source = SnapshotSource(
            config,
            paths=settings.snapshot_paths,
            http_client=self._http_client,
            probe_timeout=settings.probe_timeout_sec,
            trusted_timeout=settings.trusted_fetch_timeout_sec,
            failure_threshold=settings.endpoint_failure_threshold,
        )
        mjpeg_source = MjpegSource(
            config,
            paths=settings.mjpeg_paths,
            http_client=self._http_client,
            probe_timeout=settings.probe_timeout_sec,
            connect_timeout=settings.mjpeg_connect_timeout_sec,
            failure_threshold=settings.endpoint_failure_threshold,
        )
        snapshot_cache = SnapshotCache(
            snapshot_source,
            interval=settings.snapshot_interval_sec,
            degraded_interval=settings.snapshot_degraded_interval_sec,
            max_age=settings.snapshot_max_age_sec,
            backoff_threshold=settings.snapshot_backoff_threshold,
            log_every=settings.snapshot_log_every,
        )
        return CameraRuntime(
            config=config,
            snapshot_source=snapshot_source,
            mjpeg_source=mjpeg_source,
            session=TranscodeSession(config, settings),
            snapshot_cache=snapshot_cache,
            device_info_source=DeviceInfoSource(
                config,
                paths=settings.device_info_paths,
                http_client=self._http_client,
                timeout=settings.device_info_timeout_sec,
            ),
        )

    async def register_camera(self, config: CameraConfig) -> str:
        """
        Register (or replace) a camera.

        Returns:
            The camera id

        Raises:
            ValueError: another camera already uses the same stream port
        """
        async with self._lock:
            for other in self._cameras.values():
                if other.id != config.id and other.config.ws_port == config.ws_port:
                    raise ValueError(
                        f"Stream port {config.ws_port} is already used by camera '{other.id}'"
                    )

            previous = self._cameras.get(config.id)
            was_polling = False
            if previous is not None:
                was_polling = previous.snapshot_cache.is_polling
                logger.info("Re-registering camera %s, closing previous runtime", config.id)
                await previous.close()

            runtime = self.build_runtime(config)
            self._cameras[config.id] = runtime
            if was_polling:
                runtime.snapshot_cache.start()

        logger.info(
            "Registered camera %s (%s:%d, stream port %d)",
            config.id,
            config.ip,
            config.port,
            config.ws_port,
        )
        return config.id

    def get(self, camera_id: str) -> CameraRuntime:
        """
        Raises:
            CameraNotRegistered: unknown camera id
        """
        runtime = self._cameras.get(camera_id)
        if runtime is None:
            raise CameraNotRegistered(camera_id)
        return runtime

    def list_cameras(self) -> List[str]:
        return list(self._cameras.keys())

    def start_polling(self, camera_id: str) -> None:
        """Start background snapshot polling for one designated camera."""
        self.get(camera_id).snapshot_cache.start()

    async def close(self) -> None:
        """Close every runtime. Safe to call more than once."""
        for runtime in list(self._cameras.values()):
            try:
                await runtime.close()
            except Exception:
                logger.exception("Error closing camera %s", runtime.id)
