"""
Ordered endpoint discovery for camera HTTP endpoints.

A probe walks an ordered candidate list and returns the first URL whose
response satisfies the caller's validator. Each source owns one probe, and a
probe runs at most one discovery at a time: callers arriving while a
discovery is outstanding await the same result instead of starting another.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

import httpx

from ...core.exceptions import EndpointNotFound
from .url_utils import mask_url

logger = logging.getLogger(__name__)

T = TypeVar("T")

# attempt(url, timeout) -> payload; raises on failure
Attempt = Callable[[str, float], Awaitable[T]]


class PayloadRejected(ValueError):
    """The endpoint answered 200 but the payload failed validation."""


@dataclass
class ProbeResult(Generic[T]):
    url: str
    payload: T


class EndpointCache:
    """
    Currently trusted endpoint plus a consecutive-failure counter.

    Mutated only by the owning source. The cached URL is a hint: it is
    dropped once `threshold` consecutive failures are recorded against it.
    """

    def __init__(self, threshold: int = 3) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.threshold = threshold
        self.url: Optional[str] = None
        self.failures = 0

    def trust(self, url: str) -> bool:
        """Cache a working URL. Returns True if it differs from the previous one."""
        changed = url != self.url
        self.url = url
        self.failures = 0
        return changed

    def record_success(self) -> None:
        self.failures = 0

    def record_failure(self) -> bool:
        """Count a failure on the cached URL. Returns True if the cache was cleared."""
        self.failures += 1
        if self.failures >= self.threshold:
            self.invalidate()
            return True
        return False

    def invalidate(self) -> None:
        self.url = None
        self.failures = 0


class EndpointProbe(Generic[T]):
    """Single-flight prober over an ordered candidate list."""

    def __init__(
        self,
        candidates: Sequence[str],
        attempt: Attempt,
        timeout: float,
        label: str,
    ) -> None:
        self.candidates: List[str] = list(candidates)
        self.timeout = timeout
        self.label = label
        self._attempt = attempt
        self._inflight: Optional["asyncio.Task[ProbeResult[T]]"] = None
        self.probe_count = 0

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def discover(self) -> ProbeResult[T]:
        """
        Return the first satisfying candidate.

        Joins the in-flight discovery if there is one. A cancelled caller does
        not cancel the discovery for the others.

        Raises:
            EndpointNotFound: no candidate satisfied the validator
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._probe_all())
            self._inflight.add_done_callback(consume_task_exception)
        return await asyncio.shield(self._inflight)

    async def _probe_all(self) -> ProbeResult[T]:
        self.probe_count += 1
        last_error: Optional[BaseException] = None
        for url in self.candidates:
            try:
                payload = await self._attempt(url, self.timeout)
            except (httpx.HTTPError, PayloadRejected) as exc:
                last_error = exc
                logger.debug("%s probe miss %s: %s", self.label, mask_url(url), exc)
                continue
            return ProbeResult(url=url, payload=payload)
        raise EndpointNotFound(f"{self.label} endpoint not found", last_error=last_error)


def consume_task_exception(task: "asyncio.Task[Any]") -> None:
    # Retrieve the exception so an unawaited failure is not reported as leaked
    if not task.cancelled():
        task.exception()
