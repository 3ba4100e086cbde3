# Local application imports
from .base_container import BaseContainer
from .providers import CameraProvider


class DIContainer(BaseContainer):
    """
    Application container for the camera bridge.

    One provider today: cameras. Settings are registered first because the
    registry and every camera runtime read their timeouts from them.
    """

    def __init__(self) -> None:
        super().__init__()
        self.setup()

    def setup(self) -> None:
        CameraProvider.register(self)


# Process-wide container, created on first use
_container: DIContainer | None = None


def get_container() -> DIContainer:
    """
    Return the process-wide DIContainer, building it on first call.

    Controllers and the app lifespan resolve services through this.
    """
    global _container
    if _container is None:
        _container = DIContainer()
    return _container
