# Standard library imports
import logging
from typing import Optional, Sequence

# External package imports
import httpx

# Local application imports
from ...core.exceptions import UpstreamDisconnected, describe_error
from ...domain.models.camera import CameraConfig
from ..http_client_factory import get_shared_http_client
from .endpoint_probe import EndpointCache, EndpointProbe, PayloadRejected
from .url_utils import build_candidate_urls, url_path

logger = logging.getLogger(__name__)

JPEG_SOI = b"\xff\xd8"


class SnapshotSource:
    """
    Single-frame JPEG retrieval for one camera.

    The first working snapshot URL is cached and fetched directly on later
    calls. After `failure_threshold` consecutive failures on the cached URL
    the cache is cleared and the next call rediscovers from the full list.
    """

    def __init__(
        self,
        camera: CameraConfig,
        paths: Sequence[str],
        http_client: Optional[httpx.AsyncClient] = None,
        probe_timeout: float = 3.0,
        trusted_timeout: float = 8.0,
        failure_threshold: int = 3,
    ) -> None:
        self.camera = camera
        self.trusted_timeout = trusted_timeout
        self._client = http_client
        self._auth = httpx.BasicAuth(camera.username, camera.password)
        self.cache = EndpointCache(threshold=failure_threshold)
        self.probe: EndpointProbe[bytes] = EndpointProbe(
            candidates=build_candidate_urls(camera.base_url, paths),
            attempt=self._get_jpeg,
            timeout=probe_timeout,
            label="Snapshot",
        )

    @property
    def endpoint(self) -> Optional[str]:
        """Cached snapshot URL (a hint; may be invalidated at any time)."""
        return self.cache.url

    def invalidate(self) -> None:
        self.cache.invalidate()

    async def fetch(self) -> bytes:
        """
        Fetch one JPEG frame from the camera.

        Returns:
            JPEG bytes (always starting with the SOI marker)

        Raises:
            UpstreamDisconnected: the cached endpoint failed this time
            EndpointNotFound: discovery exhausted the candidate list
        """
        cached = self.cache.url
        if cached:
            try:
                frame = await self._get_jpeg(cached, self.trusted_timeout)
            except (httpx.HTTPError, PayloadRejected) as exc:
                if self.cache.url == cached and self.cache.record_failure():
                    logger.warning(
                        "Cached snapshot endpoint for camera %s failed %d times, rediscovering...",
                        self.camera.id,
                        self.cache.threshold,
                    )
                raise UpstreamDisconnected(
                    f"Get snapshot failed: {describe_error(exc)}",
                    details={"camera_id": self.camera.id},
                ) from exc
            self.cache.record_success()
            return frame

        result = await self.probe.discover()
        if self.cache.trust(result.url):
            logger.info(
                "Snapshot endpoint found for camera %s: %s",
                self.camera.id,
                url_path(result.url),
            )
        return result.payload

    async def _get_jpeg(self, url: str, timeout: float) -> bytes:
        client = self._client or get_shared_http_client()
        response = await client.get(url, auth=self._auth, timeout=timeout)
        if response.status_code != 200:
            raise httpx.HTTPStatusError(
                f"Camera returned status {response.status_code}",
                request=response.request,
                response=response,
            )
        data = response.content
        if len(data) < 2 or data[:2] != JPEG_SOI:
            raise PayloadRejected(f"Not a JPEG frame ({len(data)} bytes)")
        return data
