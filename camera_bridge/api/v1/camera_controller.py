"""
Camera API: register and list cameras, per-camera diagnostic status and device info.
"""

# Standard library imports
import logging

# External package imports
from fastapi import APIRouter, HTTPException, status

# Local application imports
from ...application.dto.camera_dto import (
    CameraListResponse,
    CameraRegisterRequest,
    CameraRegisterResponse,
)
from ...application.services.camera_stream_service import CameraStreamService
from ...core.exceptions import CameraBridgeError
from ...di.container import get_container
from .error_mapping import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cameras"])


@router.get("", response_model=CameraListResponse)
async def list_cameras() -> CameraListResponse:
    """List registered camera ids."""
    service = get_container().get(CameraStreamService)
    return CameraListResponse(cameras=service.list_cameras())


@router.post("", response_model=CameraRegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_camera(request: CameraRegisterRequest) -> CameraRegisterResponse:
    """
    Register a camera, or replace the config of an already registered id.

    Raises:
        HTTPException: 400 if the config is invalid or its stream port is taken
    """
    service = get_container().get(CameraStreamService)
    try:
        camera_id = await service.register_camera(request.to_domain())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return CameraRegisterResponse(id=camera_id)


@router.get("/{camera_id}/status")
async def get_camera_status(camera_id: str) -> dict:
    """Endpoint hints, snapshot cache state and stream state for one camera."""
    service = get_container().get(CameraStreamService)
    try:
        return service.camera_status(camera_id)
    except CameraBridgeError as e:
        raise to_http_exception(e)


@router.get("/{camera_id}/info")
async def get_camera_info(camera_id: str) -> dict:
    """Device information reported by the camera, plus whether it answered at all."""
    service = get_container().get(CameraStreamService)
    try:
        return await service.camera_info(camera_id)
    except CameraBridgeError as e:
        raise to_http_exception(e)
