from .camera import CameraConfig

__all__ = ["CameraConfig"]
