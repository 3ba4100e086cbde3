# Standard library imports
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

# External package imports
import httpx

# Local application imports
from ...core.exceptions import EndpointNotFound, describe_error
from ...domain.models.camera import CameraConfig
from ..http_client_factory import get_shared_http_client
from .endpoint_probe import EndpointCache, EndpointProbe
from .url_utils import build_candidate_urls, url_path

logger = logging.getLogger(__name__)

MAX_INFO_CHARS = 8192


@dataclass
class DeviceInfo:
    """Outcome of a device-info query. `connected` means the camera answered HTTP at all."""
    connected: bool
    url: Optional[str] = None
    info: Any = None
    message: Optional[str] = None
    error: Optional[str] = None


class DeviceInfoSource:
    """
    Vendor device-information lookup for one camera.

    Walks the known info endpoints in order and keeps the first one that
    answers 200. Unlike snapshots this is a diagnostic path: a failing cached
    URL is dropped and the full list is probed again in the same call.
    """

    def __init__(
        self,
        camera: CameraConfig,
        paths: Sequence[str],
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 3.0,
    ) -> None:
        self.camera = camera
        self.timeout = timeout
        self._client = http_client
        self._auth = httpx.BasicAuth(camera.username, camera.password)
        self._answered = False
        self.cache = EndpointCache(threshold=1)
        self.probe: EndpointProbe[Any] = EndpointProbe(
            candidates=build_candidate_urls(camera.base_url, paths),
            attempt=self._get_info,
            timeout=timeout,
            label="Device info",
        )

    @property
    def endpoint(self) -> Optional[str]:
        return self.cache.url

    async def fetch(self) -> DeviceInfo:
        """Query the camera. Camera-side failures are reported in the result, not raised."""
        cached = self.cache.url
        if cached:
            try:
                info = await self._get_info(cached, self.timeout)
            except httpx.HTTPError as exc:
                logger.info(
                    "Device info endpoint for camera %s failed (%s), rediscovering...",
                    self.camera.id,
                    describe_error(exc),
                )
                self.cache.record_failure()
            else:
                return DeviceInfo(connected=True, url=cached, info=info)

        if not self.probe.in_flight:
            self._answered = False
        try:
            result = await self.probe.discover()
        except EndpointNotFound as exc:
            if self._answered:
                return DeviceInfo(
                    connected=True,
                    message="Camera connected but info endpoint not found",
                )
            return DeviceInfo(connected=False, error=exc.message)

        if self.cache.trust(result.url):
            logger.info(
                "Device info endpoint found for camera %s: %s",
                self.camera.id,
                url_path(result.url),
            )
        return DeviceInfo(connected=True, url=result.url, info=result.payload)

    async def _get_info(self, url: str, timeout: float) -> Any:
        client = self._client or get_shared_http_client()
        response = await client.get(url, auth=self._auth, timeout=timeout)
        self._answered = True
        if response.status_code != 200:
            raise httpx.HTTPStatusError(
                f"Camera returned status {response.status_code}",
                request=response.request,
                response=response,
            )
        if "json" in response.headers.get("content-type", ""):
            try:
                return response.json()
            except ValueError:
                pass
        # XML (ISAPI, ONVIF) and key=value bodies are returned as text
        return response.text[:MAX_INFO_CHARS]
