"""
Test doubles shared across the camera-bridge test suite: a fake camera served
through httpx.MockTransport and a fake transcoder process.
"""
import asyncio
import os
from typing import Callable, Dict, List, Optional
from unittest.mock import patch

import httpx

from camera_bridge.core.config import Settings

JPEG_FRAME = b"\xff\xd8\xff\xe0" + b"\x00" * 64 + b"\xff\xd9"
MJPEG_CONTENT_TYPE = "multipart/x-mixed-replace; boundary=--myboundary"

# Fast timings so lifecycle tests finish in well under a second each
FAST_ENV = {
    "STREAM_BIND_HOST": "127.0.0.1",
    "STREAM_PUBLIC_HOST": "localhost",
    "PROBE_TIMEOUT_SEC": "0.5",
    "TRUSTED_FETCH_TIMEOUT_SEC": "0.5",
    "MJPEG_CONNECT_TIMEOUT_SEC": "0.5",
    "PORT_RELEASE_TIMEOUT_SEC": "1.0",
    "PORT_BUSY_TIMEOUT_SEC": "0.3",
    "PORT_POLL_INTERVAL_SEC": "0.02",
    "STREAM_RESTART_DELAY_SEC": "0.05",
    "WS_STREAM_STOP_GRACE_SEC": "0.2",
    "WS_STREAM_SEND_TIMEOUT_SEC": "0.5",
}


def make_settings(**overrides: str) -> Settings:
    """Build Settings from FAST_ENV plus overrides (env var name -> value)."""
    env = dict(FAST_ENV)
    env.update(overrides)
    with patch.dict(os.environ, env, clear=False):
        return Settings()


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll a condition from inside a test; fails the test on timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


# -----------------------------------------------------------------------------
# Fake camera (httpx.MockTransport)
# -----------------------------------------------------------------------------

class FakeCamera:
    """
    MockTransport handler serving canned responses keyed by path+query.

    Unknown paths answer 404. Every request is recorded in `hits`.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.hits: List[str] = []

    def route(self, path: str, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[path] = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.raw_path.decode()
        self.hits.append(path)
        responder = self.routes.get(path)
        if responder is None:
            return httpx.Response(404)
        return responder(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def jpeg_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, headers={"content-type": "image/jpeg"}, content=JPEG_FRAME)


def refused(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


def mjpeg_response(
    chunks: Optional[List[bytes]] = None,
    error: Optional[Exception] = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Responder streaming `chunks`, optionally raising `error` after them."""
    parts = chunks if chunks is not None else [b"--myboundary\r\n", JPEG_FRAME]

    def _respond(request: httpx.Request) -> httpx.Response:
        async def _body():
            for part in parts:
                yield part
            if error is not None:
                raise error

        return httpx.Response(200, headers={"content-type": MJPEG_CONTENT_TYPE}, content=_body())

    return _respond


# -----------------------------------------------------------------------------
# Fake transcoder process
# -----------------------------------------------------------------------------

class FakeProcess:
    """
    Stand-in for asyncio.subprocess.Process.

    stdout/stderr are real StreamReaders fed by the test; `exit()` simulates
    the transcoder dying on its own.
    """

    def __init__(self, exit_on_terminate: bool = True) -> None:
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.returncode: Optional[int] = None
        self.terminated = False
        self.killed = False
        self._exit_on_terminate = exit_on_terminate
        self._exited = asyncio.Event()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        if self._exit_on_terminate:
            self.exit(-15)

    def kill(self) -> None:
        self.killed = True
        self.exit(-9)

    def exit(self, code: int) -> None:
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exited.set()


class FakeLauncher:
    """Replacement for TranscodeSession._start_process that records launches."""

    def __init__(self, error: Optional[BaseException] = None, **process_kwargs) -> None:
        self.error = error
        self.urls: List[str] = []
        self.processes: List[FakeProcess] = []
        self._process_kwargs = process_kwargs

    async def __call__(self, source_url: str) -> FakeProcess:
        self.urls.append(source_url)
        if self.error is not None:
            raise self.error
        process = FakeProcess(**self._process_kwargs)
        self.processes.append(process)
        return process

    @property
    def running(self) -> List[FakeProcess]:
        return [p for p in self.processes if p.returncode is None]
