# Standard library imports
import ipaddress
import re
from dataclasses import dataclass

BITRATE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kKmMgG]?)\s*$")
SUPPORTED_PROTOCOLS = ("http", "https")
HOST_FORBIDDEN_CHARS = set("/@?#")


@dataclass(frozen=True)
class CameraConfig:
    """
    Pure domain model for a registered IP camera - no external dependencies.

    Immutable once registered. Re-registering the same id replaces the whole
    config (and the runtime built from it) rather than mutating this object.
    """
    id: str
    ip: str
    port: int = 80
    rtsp_port: int = 554
    username: str = "admin"
    password: str = "admin"
    protocol: str = "http"
    ws_port: int = 9999
    fps: int = 20
    bitrate: str = "1.5M"

    def __post_init__(self) -> None:
        """Business validations"""
        if not self.id or not self.id.strip():
            raise ValueError("Camera id is required")
        if not self.ip or not self.ip.strip():
            raise ValueError("Camera IP is required")
        if not _is_valid_host(self.ip):
            raise ValueError(f"Invalid camera IP or host name: {self.ip!r}")
        for name in ("port", "rtsp_port", "ws_port"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 < value < 65536:
                raise ValueError(f"Invalid {name}: {value!r}")
        if self.protocol not in SUPPORTED_PROTOCOLS:
            raise ValueError(f"Unsupported protocol: {self.protocol!r}")
        if not isinstance(self.fps, int) or self.fps <= 0:
            raise ValueError(f"Invalid fps: {self.fps!r}")
        if not BITRATE_PATTERN.match(str(self.bitrate)):
            raise ValueError(f"Invalid bitrate: {self.bitrate!r}")

    @property
    def host(self) -> str:
        """ip as it goes into a URL authority (IPv6 literals bracketed)"""
        if ":" in self.ip and not self.ip.startswith("["):
            return f"[{self.ip}]"
        return self.ip

    @property
    def base_url(self) -> str:
        """HTTP base URL of the camera (no credentials)"""
        return f"{self.protocol}://{self.host}:{self.port}"


def _is_valid_host(value: str) -> bool:
    if any(ch.isspace() or ch in HOST_FORBIDDEN_CHARS for ch in value):
        return False
    if ":" not in value:
        return True
    # Only IPv6 literals may carry colons; the port is a separate field
    literal = value[1:-1] if value.startswith("[") and value.endswith("]") else value
    try:
        ipaddress.IPv6Address(literal)
    except ValueError:
        return False
    return True
