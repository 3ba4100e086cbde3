"""
Streaming API: cached snapshot, MJPEG passthrough, RTSP transcode start/stop/status.
"""

# -----------------------------------------------------------------------------
# Standard library
# -----------------------------------------------------------------------------
import logging
from typing import Optional

# -----------------------------------------------------------------------------
# Third-party
# -----------------------------------------------------------------------------
from fastapi import APIRouter, Body, HTTPException, status
from fastapi.responses import Response, StreamingResponse
from starlette.background import BackgroundTask

# -----------------------------------------------------------------------------
# Application
# -----------------------------------------------------------------------------
from ...application.dto.camera_dto import (
    StreamStartRequest,
    StreamStartResponse,
    StreamStatusResponse,
)
from ...application.services.camera_stream_service import CameraStreamService
from ...core.exceptions import CameraBridgeError, EndpointNotFound
from ...di.container import get_container
from .error_mapping import to_http_exception

# -----------------------------------------------------------------------------
# Logging and router
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)

router = APIRouter(tags=["streaming"])


def _service() -> CameraStreamService:
    return get_container().get(CameraStreamService)


@router.get("/{camera_id}/snapshot.jpg")
async def get_camera_snapshot(camera_id: str) -> Response:
    """
    Return the latest cached JPEG for the given camera.

    The frame is at most a few hundred milliseconds old; if the cache is
    stale one refresh is made (shared with any refresh already running).
    """
    try:
        frame = await _service().get_snapshot(camera_id)
    except CameraBridgeError as e:
        raise to_http_exception(e)

    return Response(
        content=frame,
        media_type="image/jpeg",
        headers={
            "Cache-Control": "no-store, max-age=0",
            "Pragma": "no-cache",
        },
    )


@router.get("/{camera_id}/mjpeg")
async def proxy_mjpeg(camera_id: str) -> StreamingResponse:
    """
    Relay the camera's MJPEG stream verbatim.

    404 means the camera has no MJPEG endpoint and the client should fall
    back to polling snapshot.jpg. Closing the client connection closes the
    upstream request.
    """
    try:
        stream = await _service().open_mjpeg(camera_id)
    except EndpointNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="MJPEG stream not available. Use snapshot endpoint instead.",
        )
    except CameraBridgeError as e:
        raise to_http_exception(e)

    return StreamingResponse(
        stream.body,
        media_type=stream.content_type,
        headers=stream.headers,
        background=BackgroundTask(stream.aclose),
    )


@router.post("/{camera_id}/stream/start", response_model=StreamStartResponse)
async def start_stream(
    camera_id: str,
    request: Optional[StreamStartRequest] = Body(default=None),
) -> StreamStartResponse:
    """
    Start (or restart) the RTSP -> WebSocket transcode for a camera.

    Raises:
        HTTPException: 404 unknown camera, 409 stream port still busy,
            500 transcoder could not be launched
    """
    override = request.rtsp_url if request else None
    try:
        endpoint = await _service().start_stream(camera_id, override)
    except CameraBridgeError as e:
        logger.error("Failed to start stream for camera %s: %s", camera_id, e.message)
        raise to_http_exception(e)
    return StreamStartResponse(camera_id=camera_id, endpoint=endpoint)


@router.post("/{camera_id}/stream/stop")
async def stop_stream(camera_id: str) -> dict:
    """Stop the transcode. Stopping an already stopped stream succeeds."""
    try:
        await _service().stop_stream(camera_id)
    except CameraBridgeError as e:
        raise to_http_exception(e)
    return {"camera_id": camera_id, "message": "Stream stopped"}


@router.get("/{camera_id}/stream/status", response_model=StreamStatusResponse)
async def get_stream_status(camera_id: str) -> StreamStatusResponse:
    """Whether the transcode is running, where to connect, and how many viewers it has."""
    try:
        stream_status = _service().stream_status(camera_id)
    except CameraBridgeError as e:
        raise to_http_exception(e)
    return StreamStatusResponse(
        camera_id=stream_status.camera_id,
        active=stream_status.active,
        endpoint=stream_status.endpoint,
        client_count=stream_status.client_count,
        state=stream_status.state,
        last_error=stream_status.last_error,
    )
