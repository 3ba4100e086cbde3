# External package imports
from fastapi import HTTPException, status

# Local application imports
from ...core.exceptions import (
    CameraBridgeError,
    CameraNotRegistered,
    EndpointNotFound,
    PortUnavailable,
    ProcessLaunchFailed,
    UpstreamDisconnected,
    get_user_message,
)

_STATUS_BY_ERROR = (
    (CameraNotRegistered, status.HTTP_404_NOT_FOUND),
    (EndpointNotFound, status.HTTP_404_NOT_FOUND),
    (UpstreamDisconnected, status.HTTP_502_BAD_GATEWAY),
    (PortUnavailable, status.HTTP_409_CONFLICT),
    (ProcessLaunchFailed, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def to_http_exception(exc: CameraBridgeError) -> HTTPException:
    """Map a bridge error kind to the HTTP status the client sees."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=get_user_message(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=get_user_message(exc),
    )
