from .camera_controller import router as camera_router
from .streaming_controller import router as streaming_router


__all__ = ["camera_router", "streaming_router"]
