"""
Unit tests for ordered endpoint discovery and the endpoint cache.
"""
import asyncio

import httpx
import pytest

from camera_bridge.core.exceptions import EndpointNotFound
from camera_bridge.infrastructure.external.endpoint_probe import (
    EndpointCache,
    EndpointProbe,
    PayloadRejected,
)


def _not_found(url: str) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", url)
    return httpx.HTTPStatusError("404", request=request, response=httpx.Response(404, request=request))


class TestEndpointCache:
    """Tests for EndpointCache"""

    def test_trust_reports_change(self):
        cache = EndpointCache(threshold=3)
        assert cache.trust("http://cam/a") is True
        assert cache.trust("http://cam/a") is False
        assert cache.trust("http://cam/b") is True

    def test_cleared_at_threshold(self):
        cache = EndpointCache(threshold=3)
        cache.trust("http://cam/a")
        assert cache.record_failure() is False
        assert cache.record_failure() is False
        assert cache.record_failure() is True
        assert cache.url is None
        assert cache.failures == 0

    def test_success_resets_counter(self):
        cache = EndpointCache(threshold=3)
        cache.trust("http://cam/a")
        cache.record_failure()
        cache.record_failure()
        cache.record_success()
        assert cache.record_failure() is False
        assert cache.url == "http://cam/a"

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValueError):
            EndpointCache(threshold=0)


class TestEndpointProbe:
    """Tests for EndpointProbe"""

    @pytest.mark.asyncio
    async def test_first_satisfying_candidate_wins(self):
        tried = []

        async def attempt(url, timeout):
            tried.append(url)
            if url.endswith("/b") or url.endswith("/c"):
                return f"payload {url[-1]}"
            raise _not_found(url)

        probe = EndpointProbe(["http://cam/a", "http://cam/b", "http://cam/c"], attempt, 1.0, "Test")
        result = await probe.discover()

        assert result.url == "http://cam/b"
        assert result.payload == "payload b"
        assert tried == ["http://cam/a", "http://cam/b"]

    @pytest.mark.asyncio
    async def test_rejected_payload_moves_on(self):
        async def attempt(url, timeout):
            if url.endswith("/a"):
                raise PayloadRejected("not a jpeg")
            return b"ok"

        probe = EndpointProbe(["http://cam/a", "http://cam/b"], attempt, 1.0, "Test")
        result = await probe.discover()
        assert result.url == "http://cam/b"

    @pytest.mark.asyncio
    async def test_exhausted_list_carries_last_error(self):
        async def attempt(url, timeout):
            if url.endswith("/last"):
                raise httpx.ConnectError("Connection refused")
            raise _not_found(url)

        probe = EndpointProbe(["http://cam/a", "http://cam/last"], attempt, 1.0, "Snapshot")
        with pytest.raises(EndpointNotFound) as exc_info:
            await probe.discover()

        assert isinstance(exc_info.value.last_error, httpx.ConnectError)
        assert "Snapshot endpoint not found" in exc_info.value.message
        assert "Connection refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_passes_timeout_to_attempt(self):
        seen = []

        async def attempt(url, timeout):
            seen.append(timeout)
            return b"ok"

        probe = EndpointProbe(["http://cam/a"], attempt, 3.0, "Test")
        await probe.discover()
        assert seen == [3.0]

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_discovery(self):
        release = asyncio.Event()
        calls = []

        async def attempt(url, timeout):
            calls.append(url)
            await release.wait()
            return b"frame"

        probe = EndpointProbe(["http://cam/a", "http://cam/b"], attempt, 1.0, "Test")
        waiters = [asyncio.create_task(probe.discover()) for _ in range(5)]
        await asyncio.sleep(0)
        assert probe.in_flight
        release.set()
        results = await asyncio.gather(*waiters)

        assert probe.probe_count == 1
        assert calls == ["http://cam/a"]
        assert {r.url for r in results} == {"http://cam/a"}
        assert not probe.in_flight

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_discovery(self):
        release = asyncio.Event()

        async def attempt(url, timeout):
            await release.wait()
            return b"frame"

        probe = EndpointProbe(["http://cam/a"], attempt, 1.0, "Test")
        first = asyncio.create_task(probe.discover())
        second = asyncio.create_task(probe.discover())
        await asyncio.sleep(0)
        first.cancel()
        release.set()

        result = await second
        assert result.payload == b"frame"
        with pytest.raises(asyncio.CancelledError):
            await first

    @pytest.mark.asyncio
    async def test_next_discovery_after_failure_probes_again(self):
        async def attempt(url, timeout):
            raise _not_found(url)

        probe = EndpointProbe(["http://cam/a"], attempt, 1.0, "Test")
        for _ in range(2):
            with pytest.raises(EndpointNotFound):
                await probe.discover()
        assert probe.probe_count == 2
