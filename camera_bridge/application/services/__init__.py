from .camera_registry import CameraRegistry, CameraRuntime
from .camera_stream_service import CameraStreamService, StreamStatus

__all__ = [
    "CameraRegistry",
    "CameraRuntime",
    "CameraStreamService",
    "StreamStatus",
]
