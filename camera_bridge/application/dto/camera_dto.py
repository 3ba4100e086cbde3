from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from ...domain.models.camera import CameraConfig


class CameraRegisterRequest(BaseModel):
    """DTO for camera registration request"""
    id: str = "default"
    ip: str
    port: int = 80
    rtsp_port: int = 554
    username: str = "admin"
    password: str = "admin"
    protocol: str = "http"
    ws_port: int = 9999
    fps: int = 20
    bitrate: str = "1.5M"

    def to_domain(self) -> CameraConfig:
        return CameraConfig(**self.model_dump())


class CameraRegisterResponse(BaseModel):
    """DTO for camera registration response"""
    id: str


class CameraListResponse(BaseModel):
    """DTO for registered camera ids"""
    cameras: List[str] = Field(default_factory=list)


class StreamStartRequest(BaseModel):
    """DTO for stream start request (optional RTSP URL override)"""
    rtsp_url: Optional[str] = None

    @field_validator("rtsp_url")
    @classmethod
    def _check_rtsp_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if any(ord(ch) < 32 or ord(ch) == 127 for ch in value):
            raise ValueError("rtsp_url must not contain control characters")
        if not value.lower().startswith(("rtsp://", "rtsps://")):
            raise ValueError("rtsp_url must be an rtsp:// or rtsps:// URL")
        return value


class StreamStatusResponse(BaseModel):
    """DTO for stream status"""
    camera_id: str
    active: bool
    endpoint: str
    client_count: int
    state: str
    last_error: Optional[str] = None


class StreamStartResponse(BaseModel):
    """DTO for stream start response"""
    camera_id: str
    endpoint: str
    message: str = "Stream started"
