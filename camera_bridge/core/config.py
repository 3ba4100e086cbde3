# Standard library imports
import os
from typing import Final, Optional, Tuple

# Local application imports
from ..domain.constants import DEVICE_INFO_PATHS, MJPEG_PATHS, RTSP_PATHS, SNAPSHOT_PATHS


def _paths_from_env(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    """Comma-separated path override; empty or unset keeps the default order."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


class Settings:
    """
    Application settings loaded from environment variables.

    This class centralizes all configuration settings for the application.
    All settings are loaded from environment variables with sensible defaults.
    """

    def __init__(self) -> None:
        # Default camera (registered at startup)
        self.camera_id: Final[str] = os.getenv("CAMERA_ID", "default")
        self.camera_ip: Final[str] = os.getenv("CAMERA_IP", "")
        self.camera_port: Final[int] = int(os.getenv("CAMERA_PORT", "80"))
        self.camera_rtsp_port: Final[int] = int(os.getenv("CAMERA_RTSP_PORT", "554"))
        self.camera_username: Final[str] = os.getenv("CAMERA_USERNAME", "admin")
        self.camera_password: Final[str] = os.getenv("CAMERA_PASSWORD", "admin")
        self.camera_protocol: Final[str] = os.getenv("CAMERA_PROTOCOL", "http")
        self.camera_ws_port: Final[int] = int(os.getenv("CAMERA_WS_PORT", "9999"))
        self.camera_fps: Final[int] = int(os.getenv("CAMERA_FPS", "20"))
        self.camera_bitrate: Final[str] = os.getenv("CAMERA_BITRATE", "1.5M")

        # Snapshot cache: only this camera is polled in the background
        self.snapshot_poll_camera_id: Final[str] = os.getenv(
            "SNAPSHOT_POLL_CAMERA_ID", self.camera_id
        )
        self.snapshot_interval_sec: Final[float] = float(os.getenv("SNAPSHOT_INTERVAL_SEC", "0.2"))
        self.snapshot_degraded_interval_sec: Final[float] = float(
            os.getenv("SNAPSHOT_DEGRADED_INTERVAL_SEC", "1.0")
        )
        self.snapshot_max_age_sec: Final[float] = float(os.getenv("SNAPSHOT_MAX_AGE_SEC", "0.3"))
        self.snapshot_backoff_threshold: Final[int] = int(os.getenv("SNAPSHOT_BACKOFF_THRESHOLD", "5"))
        self.snapshot_log_every: Final[int] = int(os.getenv("SNAPSHOT_LOG_EVERY", "10"))

        # Endpoint discovery
        self.probe_timeout_sec: Final[float] = float(os.getenv("PROBE_TIMEOUT_SEC", "3.0"))
        self.trusted_fetch_timeout_sec: Final[float] = float(os.getenv("TRUSTED_FETCH_TIMEOUT_SEC", "8.0"))
        self.mjpeg_connect_timeout_sec: Final[float] = float(os.getenv("MJPEG_CONNECT_TIMEOUT_SEC", "15.0"))
        self.endpoint_failure_threshold: Final[int] = int(os.getenv("ENDPOINT_FAILURE_THRESHOLD", "3"))
        self.snapshot_paths: Final[Tuple[str, ...]] = _paths_from_env("SNAPSHOT_PATHS", SNAPSHOT_PATHS)
        self.mjpeg_paths: Final[Tuple[str, ...]] = _paths_from_env("MJPEG_PATHS", MJPEG_PATHS)
        self.rtsp_paths: Final[Tuple[str, ...]] = _paths_from_env("RTSP_PATHS", RTSP_PATHS)
        self.device_info_paths: Final[Tuple[str, ...]] = _paths_from_env(
            "DEVICE_INFO_PATHS", DEVICE_INFO_PATHS
        )
        self.device_info_timeout_sec: Final[float] = float(os.getenv("DEVICE_INFO_TIMEOUT_SEC", "3.0"))

        # Transcoder (RTSP -> MPEG-TS over WebSocket)
        self.ffmpeg_binary: Final[str] = os.getenv("FFMPEG_BINARY", "ffmpeg")
        self.transcoder_codec: Final[str] = os.getenv("TRANSCODER_CODEC", "mpeg1video")
        self.stream_bind_host: Final[str] = os.getenv("STREAM_BIND_HOST", "0.0.0.0")
        self.stream_public_host: Final[str] = os.getenv("STREAM_PUBLIC_HOST", "localhost")
        self.stream_send_timeout_sec: Final[float] = float(os.getenv("WS_STREAM_SEND_TIMEOUT_SEC", "1.0"))
        self.stream_read_chunk_size: Final[int] = int(os.getenv("WS_STREAM_READ_CHUNK_SIZE", "4096"))
        self.stream_stop_grace_sec: Final[float] = float(os.getenv("WS_STREAM_STOP_GRACE_SEC", "3.0"))
        self.stream_restart_delay_sec: Final[float] = float(os.getenv("STREAM_RESTART_DELAY_SEC", "2.0"))
        self.port_release_timeout_sec: Final[float] = float(os.getenv("PORT_RELEASE_TIMEOUT_SEC", "3.0"))
        self.port_busy_timeout_sec: Final[float] = float(os.getenv("PORT_BUSY_TIMEOUT_SEC", "5.0"))
        self.port_poll_interval_sec: Final[float] = float(os.getenv("PORT_POLL_INTERVAL_SEC", "0.2"))

        # HTTP server
        self.http_host: Final[str] = os.getenv("HOST", "0.0.0.0")
        self.http_port: Final[int] = int(os.getenv("PORT", "8080"))

        # Logging
        self.log_level: Final[str] = os.getenv("LOG_LEVEL", "INFO")


# Global settings instance (singleton pattern)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings (singleton pattern)

    Returns:
        Settings instance with all configuration values
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
