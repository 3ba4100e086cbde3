"""Constants for camera endpoint discovery"""

from .endpoint_paths import DEVICE_INFO_PATHS, MJPEG_PATHS, RTSP_PATHS, SNAPSHOT_PATHS

__all__ = [
    "DEVICE_INFO_PATHS",
    "MJPEG_PATHS",
    "RTSP_PATHS",
    "SNAPSHOT_PATHS",
]
