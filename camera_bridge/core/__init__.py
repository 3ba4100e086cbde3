from .config import Settings, get_settings
from .exceptions import (
    CameraBridgeError,
    CameraNotRegistered,
    EndpointNotFound,
    PortUnavailable,
    ProcessLaunchFailed,
    UpstreamDisconnected,
    get_user_message,
)

__all__ = [
    "Settings",
    "get_settings",
    "CameraBridgeError",
    "CameraNotRegistered",
    "EndpointNotFound",
    "PortUnavailable",
    "ProcessLaunchFailed",
    "UpstreamDisconnected",
    "get_user_message",
]
