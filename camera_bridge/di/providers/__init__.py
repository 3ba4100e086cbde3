from .camera_provider import CameraProvider

__all__ = ["CameraProvider"]
