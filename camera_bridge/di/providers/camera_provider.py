from typing import TYPE_CHECKING
from ...application.services.camera_registry import CameraRegistry
from ...application.services.camera_stream_service import CameraStreamService
from ...core.config import Settings, get_settings

if TYPE_CHECKING:
    from ..base_container import BaseContainer


class CameraProvider:
    """Camera provider - registers the camera registry and stream service"""

    @staticmethod
    def register(container: "BaseContainer") -> None:
        """
        Register camera services.
        Registry and service are singletons: every camera's runtime state
        (endpoint caches, cached frames, transcoder) lives in one registry.
        """
        try:
            container.get(Settings)
        except ValueError:
            container.register_singleton(Settings, get_settings())

        try:
            container.get(CameraRegistry)
        except ValueError:
            container.register_singleton(
                CameraRegistry,
                CameraRegistry(settings=container.get(Settings)),
            )

        try:
            container.get(CameraStreamService)
        except ValueError:
            container.register_singleton(
                CameraStreamService,
                CameraStreamService(registry=container.get(CameraRegistry)),
            )
