"""Pooled httpx client shared by every camera source."""
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

# Callers pass their own per-request timeouts (probe, trusted fetch, MJPEG
# connect); this only bounds a request that forgets to
DEFAULT_TIMEOUT_SEC = 15.0
CAMERA_POOL_LIMITS = httpx.Limits(
    max_keepalive_connections=20,
    max_connections=200,
    keepalive_expiry=30.0,
)

_shared_client: Optional[httpx.AsyncClient] = None


def get_shared_http_client() -> httpx.AsyncClient:
    """
    Lazily create the shared camera client.

    Snapshot fetches, discovery probes and MJPEG relays for all cameras go
    through one pool. Redirects are not followed: a camera that redirects a
    snapshot path to its login page should fail validation, not pass it.
    """
    global _shared_client

    if _shared_client is None:
        _shared_client = httpx.AsyncClient(
            timeout=DEFAULT_TIMEOUT_SEC,
            limits=CAMERA_POOL_LIMITS,
            follow_redirects=False,
        )
        logger.info("Created shared camera HTTP client")

    return _shared_client


async def close_shared_http_client() -> None:
    """Close the shared client on shutdown. No-op if it was never created."""
    global _shared_client

    client, _shared_client = _shared_client, None
    if client is not None:
        await client.aclose()
        logger.info("Closed shared camera HTTP client")
