# Standard library imports
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional, Sequence

# External package imports
import httpx

# Local application imports
from ...core.exceptions import UpstreamDisconnected, describe_error
from ...domain.models.camera import CameraConfig
from ..http_client_factory import get_shared_http_client
from .endpoint_probe import EndpointCache, EndpointProbe, PayloadRejected
from .url_utils import build_candidate_urls, url_path

logger = logging.getLogger(__name__)

DEFAULT_MJPEG_CONTENT_TYPE = "multipart/x-mixed-replace; boundary=--myboundary"
MJPEG_CONTENT_MARKERS = ("multipart", "mjpeg", "mjpg")

# Sent to the browser so proxies and the browser itself never buffer the stream
NO_BUFFERING_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def is_mjpeg_content_type(content_type: str) -> bool:
    lowered = (content_type or "").lower()
    return any(marker in lowered for marker in MJPEG_CONTENT_MARKERS)


@dataclass
class MjpegStream:
    """An open upstream MJPEG response, ready to be relayed verbatim."""
    url: str
    content_type: str
    body: AsyncIterator[bytes]
    headers: Dict[str, str] = field(default_factory=lambda: dict(NO_BUFFERING_HEADERS))
    _response: Optional[httpx.Response] = None

    async def aclose(self) -> None:
        """Close the upstream response. Safe to call more than once."""
        if self._response is not None and not self._response.is_closed:
            await self._response.aclose()


class MjpegSource:
    """
    Continuous multipart MJPEG retrieval for one camera.

    Discovery validates candidates by content-type. The working URL is cached
    like SnapshotSource does; open failures count toward the rediscovery
    threshold, and an upstream error in the middle of a relay drops the cached
    URL straight away.
    """

    def __init__(
        self,
        camera: CameraConfig,
        paths: Sequence[str],
        http_client: Optional[httpx.AsyncClient] = None,
        probe_timeout: float = 3.0,
        connect_timeout: float = 15.0,
        failure_threshold: int = 3,
    ) -> None:
        self.camera = camera
        self.connect_timeout = connect_timeout
        self._client = http_client
        self._auth = httpx.BasicAuth(camera.username, camera.password)
        self.cache = EndpointCache(threshold=failure_threshold)
        self.probe: EndpointProbe[str] = EndpointProbe(
            candidates=build_candidate_urls(camera.base_url, paths),
            attempt=self._check_mjpeg,
            timeout=probe_timeout,
            label="MJPEG",
        )

    @property
    def endpoint(self) -> Optional[str]:
        """Cached MJPEG URL (a hint; may be invalidated at any time)."""
        return self.cache.url

    def invalidate(self) -> None:
        self.cache.invalidate()

    async def find_working_url(self) -> str:
        """
        Return the cached MJPEG URL, discovering one if needed.

        Raises:
            EndpointNotFound: no candidate answered with an MJPEG content-type
        """
        if self.cache.url:
            return self.cache.url
        result = await self.probe.discover()
        if self.cache.trust(result.url):
            logger.info(
                "Found working MJPEG stream for camera %s: %s",
                self.camera.id,
                url_path(result.url),
            )
        return result.url

    async def open_stream(self) -> MjpegStream:
        """
        Open the upstream MJPEG stream.

        The first chunk is read before returning so that a camera that
        accepts the connection but sends nothing still fails here, while the
        caller has not yet answered its own client.

        Raises:
            EndpointNotFound: no MJPEG endpoint (caller should fall back to snapshots)
            UpstreamDisconnected: the endpoint failed to open
        """
        url = await self.find_working_url()
        client = self._client or get_shared_http_client()
        request = client.build_request(
            "GET",
            url,
            headers={"Connection": "keep-alive", "User-Agent": "Mozilla/5.0"},
            timeout=httpx.Timeout(self.connect_timeout),
        )

        response: Optional[httpx.Response] = None
        try:
            response = await client.send(request, auth=self._auth, stream=True)
            if response.status_code != 200:
                raise httpx.HTTPStatusError(
                    f"Camera returned status {response.status_code}",
                    request=request,
                    response=response,
                )
            chunks = response.aiter_raw()
            first = await chunks.__anext__()
        except (httpx.HTTPError, StopAsyncIteration) as exc:
            if response is not None:
                await response.aclose()
            self._record_open_failure(url)
            reason = describe_error(exc) if isinstance(exc, httpx.HTTPError) else "empty response"
            raise UpstreamDisconnected(
                f"MJPEG stream failed to open: {reason}",
                details={"camera_id": self.camera.id},
            ) from exc

        self.cache.record_success()
        content_type = response.headers.get("content-type") or DEFAULT_MJPEG_CONTENT_TYPE
        return MjpegStream(
            url=url,
            content_type=content_type,
            body=self._relay(response, chunks, first, url),
            _response=response,
        )

    async def _relay(
        self,
        response: httpx.Response,
        chunks: AsyncIterator[bytes],
        first: bytes,
        url: str,
    ) -> AsyncIterator[bytes]:
        try:
            yield first
            async for chunk in chunks:
                yield chunk
        except httpx.HTTPError as exc:
            # Bytes already reached the client: end the stream, rediscover next time
            if self.cache.url == url:
                self.cache.invalidate()
            logger.warning(
                "MJPEG upstream for camera %s dropped mid-stream: %s",
                self.camera.id,
                describe_error(exc),
            )
        finally:
            await response.aclose()

    def _record_open_failure(self, url: str) -> None:
        if self.cache.url == url and self.cache.record_failure():
            logger.warning(
                "Cached MJPEG endpoint for camera %s failed %d times, rediscovering...",
                self.camera.id,
                self.cache.threshold,
            )

    async def _check_mjpeg(self, url: str, timeout: float) -> str:
        client = self._client or get_shared_http_client()
        async with client.stream(
            "GET",
            url,
            auth=self._auth,
            headers={"Connection": "keep-alive"},
            timeout=timeout,
        ) as response:
            if response.status_code != 200:
                raise httpx.HTTPStatusError(
                    f"Camera returned status {response.status_code}",
                    request=response.request,
                    response=response,
                )
            content_type = response.headers.get("content-type", "")
            if not is_mjpeg_content_type(content_type):
                raise PayloadRejected(f"Not an MJPEG stream ({content_type or 'no content-type'})")
            return content_type
