"""
Camera stream service - the operations the HTTP layer is allowed to call.

Every operation resolves the camera's runtime from the registry first, so an
unknown id surfaces as CameraNotRegistered before anything touches a camera.
"""

# Standard library imports
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

# Local application imports
from ...domain.models.camera import CameraConfig
from ...infrastructure.external.mjpeg_source import MjpegStream
from ...infrastructure.external.url_utils import mask_url
from .camera_registry import CameraRegistry

logger = logging.getLogger(__name__)


@dataclass
class StreamStatus:
    camera_id: str
    active: bool
    endpoint: str
    client_count: int
    state: str
    last_error: Optional[str] = None


class CameraStreamService:
    """Upward API over the camera registry."""

    def __init__(self, registry: CameraRegistry) -> None:
        self.registry = registry

    async def register_camera(self, config: CameraConfig) -> str:
        return await self.registry.register_camera(config)

    def list_cameras(self) -> List[str]:
        return self.registry.list_cameras()

    async def start_stream(self, camera_id: str, override_url: Optional[str] = None) -> str:
        """
        Start the RTSP transcode for a camera.

        Returns:
            The WebSocket endpoint to hand to the player

        Raises:
            CameraNotRegistered, PortUnavailable, ProcessLaunchFailed
        """
        runtime = self.registry.get(camera_id)
        return await runtime.session.start(override_url)

    async def stop_stream(self, camera_id: str) -> None:
        runtime = self.registry.get(camera_id)
        await runtime.session.stop()

    def stream_status(self, camera_id: str) -> StreamStatus:
        session = self.registry.get(camera_id).session
        return StreamStatus(
            camera_id=camera_id,
            active=session.is_active(),
            endpoint=session.output_endpoint(),
            client_count=session.client_count(),
            state=session.state.value,
            last_error=session.last_error,
        )

    async def get_snapshot(self, camera_id: str) -> bytes:
        """
        Latest JPEG frame for a camera.

        Raises:
            CameraNotRegistered, EndpointNotFound, UpstreamDisconnected
        """
        runtime = self.registry.get(camera_id)
        return await runtime.snapshot_cache.get_frame()

    async def open_mjpeg(self, camera_id: str) -> MjpegStream:
        """
        Open the camera's MJPEG stream for relaying.

        Raises:
            CameraNotRegistered
            EndpointNotFound: no MJPEG endpoint; clients fall back to snapshots
            UpstreamDisconnected
        """
        runtime = self.registry.get(camera_id)
        return await runtime.mjpeg_source.open_stream()

    def camera_status(self, camera_id: str) -> Dict[str, Any]:
        """Diagnostic view: endpoint hints, snapshot cache and stream state."""
        runtime = self.registry.get(camera_id)
        cache_view = runtime.snapshot_cache.snapshot()
        session = runtime.session
        return {
            "camera_id": camera_id,
            "ip": runtime.config.ip,
            "snapshot_endpoint": mask_url(runtime.snapshot_source.endpoint or "") or None,
            "mjpeg_endpoint": mask_url(runtime.mjpeg_source.endpoint or "") or None,
            "snapshot_cache": {
                "has_frame": cache_view.has_frame,
                "age_sec": cache_view.age_sec,
                "failures": cache_view.failures,
                "interval_sec": cache_view.interval_sec,
                "polling": cache_view.polling,
            },
            "stream": {
                "active": session.is_active(),
                "state": session.state.value,
                "endpoint": session.output_endpoint(),
                "client_count": session.client_count(),
                "source_url": mask_url(session.source_url) if session.source_url else None,
                "last_error": session.last_error,
            },
        }

    async def camera_info(self, camera_id: str) -> Dict[str, Any]:
        """
        Ask the camera itself for its device information.

        Never raises for camera-side failures: an unreachable camera is
        reported with connected=False and the error text.

        Raises:
            CameraNotRegistered
        """
        runtime = self.registry.get(camera_id)
        config = runtime.config
        result = await runtime.device_info_source.fetch()
        report: Dict[str, Any] = {
            "camera_id": camera_id,
            "connected": result.connected,
            "ip": config.ip,
            "port": config.port,
            "protocol": config.protocol,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if result.url:
            report["info_endpoint"] = mask_url(result.url)
            report["info"] = result.info
        if result.message:
            report["message"] = result.message
        if result.error:
            report["error"] = result.error
        return report

    async def shutdown(self) -> None:
        await self.registry.close()
        logger.info("Camera stream service shut down")
