# Standard library imports
from pathlib import Path
from contextlib import asynccontextmanager
import logging

# External package imports
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Local application imports
from .api.v1 import camera_router, streaming_router
from .application.services.camera_stream_service import CameraStreamService
from .core.config import Settings, get_settings
from .core.exceptions import CameraNotRegistered
from .di.container import get_container
from .domain.models.camera import CameraConfig
from .infrastructure.http_client_factory import close_shared_http_client

logger = logging.getLogger(__name__)


def default_camera_config(settings: Settings) -> CameraConfig:
    """Build the camera configured through CAMERA_* environment variables."""
    return CameraConfig(
        id=settings.camera_id,
        ip=settings.camera_ip,
        port=settings.camera_port,
        rtsp_port=settings.camera_rtsp_port,
        username=settings.camera_username,
        password=settings.camera_password,
        protocol=settings.camera_protocol,
        ws_port=settings.camera_ws_port,
        fps=settings.camera_fps,
        bitrate=settings.camera_bitrate,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.

    Registers the default camera (when CAMERA_IP is set) and starts
    background snapshot polling for the one designated camera only; every
    other camera refreshes on demand.
    """
    container = get_container()
    settings = container.get(Settings)
    service: CameraStreamService = container.get(CameraStreamService)

    if settings.camera_ip:
        try:
            await service.register_camera(default_camera_config(settings))
        except ValueError as e:
            logger.error(f"Default camera config is invalid: {e}")

    if settings.snapshot_poll_camera_id:
        try:
            service.registry.start_polling(settings.snapshot_poll_camera_id)
        except CameraNotRegistered:
            logger.warning(
                f"Snapshot polling camera '{settings.snapshot_poll_camera_id}' is not registered; "
                f"snapshots will refresh on demand only"
            )

    yield

    # Shutdown: stop pollers and transcoders, then the shared HTTP pool
    try:
        await service.shutdown()
    except Exception as e:
        logger.error(f"Error shutting down camera service: {e}", exc_info=True)
    await close_shared_http_client()
    logger.info("Application shutdown complete")


def create_application() -> FastAPI:
    """
    Create and configure FastAPI application.

    This function sets up the FastAPI application with:
    - Environment variable loading
    - Logging configuration
    - CORS middleware configuration
    - API route registration

    Returns:
        Configured FastAPI application instance
    """
    # Load environment variables from .env file
    env_path = Path(__file__).resolve().parent.parent / ".env"
    load_dotenv(env_path)

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    application = FastAPI(
        title="Camera Bridge API",
        version="1.0.0",
        description="IP camera RTSP/MJPEG bridge with snapshot caching",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(camera_router, prefix="/api/v1/cameras")
    application.include_router(streaming_router, prefix="/api/v1/cameras")

    @application.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return application


# Create application instance
app = create_application()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run("camera_bridge.main:app", host=settings.http_host, port=settings.http_port)


if __name__ == "__main__":
    run()
