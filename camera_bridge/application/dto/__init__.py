from .camera_dto import (
    CameraListResponse,
    CameraRegisterRequest,
    CameraRegisterResponse,
    StreamStartRequest,
    StreamStartResponse,
    StreamStatusResponse,
)

__all__ = [
    "CameraListResponse",
    "CameraRegisterRequest",
    "CameraRegisterResponse",
    "StreamStartRequest",
    "StreamStartResponse",
    "StreamStatusResponse",
]
