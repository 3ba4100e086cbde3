"""
Custom exception hierarchy for the camera bridge.

Used by the endpoint sources, the transcode sessions, the registry and the
API layer. All bridge exceptions inherit from CameraBridgeError and carry a
user-facing message that is safe to return to clients.
"""

# -----------------------------------------------------------------------------
# Standard library
# -----------------------------------------------------------------------------
from typing import Any, Dict, Optional


# -----------------------------------------------------------------------------
# Base
# -----------------------------------------------------------------------------


class CameraBridgeError(Exception):
    """Base exception for all camera bridge errors."""

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or "An error occurred. Please try again."
        self.details = details or {}


# -----------------------------------------------------------------------------
# Endpoint discovery / camera HTTP
# -----------------------------------------------------------------------------


class EndpointNotFound(CameraBridgeError):
    """Raised when no candidate endpoint satisfied the validator."""

    def __init__(self, message: str, last_error: Optional[BaseException] = None):
        detail = describe_error(last_error) if last_error is not None else "Unknown"
        super().__init__(
            f"{message}. Last error: {detail}",
            user_message="Camera endpoint not available.",
            details={"last_error": detail},
        )
        self.last_error = last_error


class UpstreamDisconnected(CameraBridgeError):
    """Raised when a trusted camera endpoint fails or drops mid-request."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            user_message="Camera connection failed. Please try again.",
            **kwargs,
        )


# -----------------------------------------------------------------------------
# Transcode process lifecycle
# -----------------------------------------------------------------------------


class PortUnavailable(CameraBridgeError):
    """Raised when the stream port is still bound after the wait budget."""

    def __init__(self, port: int, message: Optional[str] = None):
        super().__init__(
            message or f"Port {port} is still in use. Please wait a moment and try again.",
            user_message="Stream port is busy. Please wait a moment and try again.",
            details={"port": port},
        )
        self.port = port


class ProcessLaunchFailed(CameraBridgeError):
    """Raised when the transcoder process could not be started."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            user_message="Failed to start the video stream.",
            **kwargs,
        )


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------


class CameraNotRegistered(CameraBridgeError):
    """Raised when a camera id is not in the registry."""

    def __init__(self, camera_id: str):
        super().__init__(
            f"Camera '{camera_id}' not found",
            user_message=f"Camera '{camera_id}' not found.",
            details={"camera_id": camera_id},
        )
        self.camera_id = camera_id


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def describe_error(exc: BaseException) -> str:
    """Short diagnostic text for an underlying HTTP/network error."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if status_code == 404:
        return "404 Not Found"
    if status_code is not None:
        return f"HTTP {status_code}"
    return str(exc) or exc.__class__.__name__


def get_user_message(exc: BaseException) -> str:
    """
    Return a safe, user-facing message for any exception.
    Use this at API boundaries so internal details are never exposed.
    """
    if isinstance(exc, CameraBridgeError) and getattr(exc, "user_message", None):
        return exc.user_message
    return "Something went wrong. Please try again."
