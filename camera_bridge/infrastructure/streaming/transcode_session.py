"""
Per-camera RTSP transcode session: RTSP -> FFmpeg -> MPEG-TS -> WebSocket.

One session per camera owns one FFmpeg process and the WebSocket stream
server bound on the camera's stream port. Start and stop are serialized by
the session lock; a new start always stops the previous process and waits for
the port to be released before binding it again.

State machine:
    STOPPED -> STARTING -> RUNNING -> STOPPED (stop)
                                   -> FAILED  (unexpected exit with viewers)
    FAILED  -> STARTING -> RUNNING (one delayed restart while viewers remain)
            -> STOPPED (no viewers left)
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from ...core.config import Settings, get_settings
from ...core.exceptions import PortUnavailable, ProcessLaunchFailed
from ...domain.models.camera import CameraConfig
from ..external.url_utils import build_rtsp_base, mask_url
from .port_utils import is_port_available, wait_for_port_release
from .stream_server import StreamServer
from .transcoder_command import build_transcoder_command, is_alert_line

logger = logging.getLogger(__name__)


class TranscodeState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionExited:
    """The transcoder process exited without being asked to."""
    camera_id: str
    return_code: Optional[int]


@dataclass(frozen=True)
class SessionErrored:
    """The transcoder could not be (re)started."""
    camera_id: str
    reason: str


SessionEvent = Union[SessionExited, SessionErrored]
SessionListener = Callable[[SessionEvent], None]


class TranscodeSession:
    """Lifecycle manager for one camera's transcoder process and stream port."""

    def __init__(self, camera: CameraConfig, settings: Optional[Settings] = None) -> None:
        settings = settings or get_settings()
        self.camera = camera
        self.port = camera.ws_port
        self._settings = settings
        self._rtsp_paths = list(settings.rtsp_paths)

        self._lock = asyncio.Lock()
        self._state = TranscodeState.STOPPED
        self._process: Optional[asyncio.subprocess.Process] = None
        self._server: Optional[StreamServer] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._restart_task: Optional[asyncio.Task] = None
        self._settle_task: Optional[asyncio.Task] = None
        self._listeners: List[SessionListener] = []

        self.source_url: Optional[str] = None
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def state(self) -> TranscodeState:
        return self._state

    def is_active(self) -> bool:
        return self._state == TranscodeState.RUNNING

    def client_count(self) -> int:
        return self._server.viewer_count if self._server else 0

    def output_endpoint(self) -> str:
        """WebSocket URL browser players connect to."""
        return f"ws://{self._settings.stream_public_host}:{self.port}"

    def rtsp_candidates(self) -> List[str]:
        """Known RTSP URLs for this camera, sub-streams first."""
        base = build_rtsp_base(
            self.camera.username,
            self.camera.password,
            self.camera.host,
            self.camera.rtsp_port,
        )
        return [f"{base}{path}" for path in self._rtsp_paths]

    def resolve_source_url(self, override: Optional[str] = None) -> str:
        if override:
            return override
        return self.rtsp_candidates()[0]

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener for SessionExited / SessionErrored. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self, source_url: Optional[str] = None) -> str:
        """
        Start (or restart) the stream.

        Args:
            source_url: RTSP URL to pull instead of the first known path

        Returns:
            The output endpoint clients connect to

        Raises:
            PortUnavailable: the stream port was not released in time
            ProcessLaunchFailed: FFmpeg could not be started
        """
        async with self._lock:
            release_timeout = self._settings.port_release_timeout_sec
            if self._state != TranscodeState.STOPPED or self._server is not None:
                logger.info("Stopping existing RTSP stream for camera %s...", self.camera.id)
                await self._stop_locked()
                if not await self._wait_for_port(release_timeout):
                    raise PortUnavailable(
                        self.port,
                        f"Port {self.port} is still in use after stopping stream. "
                        f"Please wait a moment and try again.",
                    )
            elif not is_port_available(self.port, self._settings.stream_bind_host):
                logger.warning("Port %d is in use. Waiting for release...", self.port)
                if not await self._wait_for_port(self._settings.port_busy_timeout_sec):
                    raise PortUnavailable(
                        self.port,
                        f"Port {self.port} is still in use. Another process may be using it.",
                    )

            url = self.resolve_source_url(source_url)
            self._state = TranscodeState.STARTING
            self.source_url = url
            self.last_error = None
            logger.info("Starting RTSP stream for camera %s from: %s", self.camera.id, mask_url(url))

            server = StreamServer(
                camera_id=self.camera.id,
                host=self._settings.stream_bind_host,
                port=self.port,
                send_timeout=self._settings.stream_send_timeout_sec,
                on_viewers_changed=self._on_viewers_changed,
            )
            try:
                await server.start()
            except OSError as exc:
                self._state = TranscodeState.STOPPED
                self.last_error = str(exc)
                raise PortUnavailable(self.port, f"Port {self.port} could not be bound: {exc}") from exc

            try:
                process = await self._start_process(url)
            except Exception as exc:
                # ValueError (e.g. NUL in the URL) as well as OSError
                await server.close()
                self._state = TranscodeState.STOPPED
                self.last_error = str(exc)
                logger.error("Failed to start RTSP stream for camera %s: %s", self.camera.id, exc)
                self._emit(SessionErrored(camera_id=self.camera.id, reason=str(exc)))
                raise ProcessLaunchFailed(f"Failed to start transcoder: {exc}") from exc
            except BaseException:
                # Cancelled mid-launch: never leave the port bound
                await server.close()
                self._state = TranscodeState.STOPPED
                raise

            self._server = server
            self._attach(process)
            self._state = TranscodeState.RUNNING
            logger.info("RTSP stream started for camera %s at %s", self.camera.id, self.output_endpoint())
            return self.output_endpoint()

    async def stop(self) -> None:
        """Stop the transcoder and release the stream port. No-op when already stopped."""
        async with self._lock:
            if (
                self._state == TranscodeState.STOPPED
                and self._process is None
                and self._server is None
            ):
                return
            await self._stop_locked()
            logger.info("RTSP stream stopped for camera %s", self.camera.id)

    async def close(self) -> None:
        """Shutdown path: stop and give the port a moment to be released."""
        await self.stop()
        await self._wait_for_port(2.0)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _start_process(self, source_url: str) -> asyncio.subprocess.Process:
        cmd = build_transcoder_command(
            source_url,
            fps=self.camera.fps,
            bitrate=self.camera.bitrate,
            codec=self._settings.transcoder_codec,
            ffmpeg_binary=self._settings.ffmpeg_binary,
        )
        return await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

    def _attach(self, process: asyncio.subprocess.Process) -> None:
        self._process = process
        self._pump_task = asyncio.create_task(self._pump_stdout(process))
        self._stderr_task = asyncio.create_task(self._drain_stderr(process))
        self._watch_task = asyncio.create_task(self._watch(process))

    async def _wait_for_port(self, timeout: float) -> bool:
        return await wait_for_port_release(
            self.port,
            timeout,
            interval=self._settings.port_poll_interval_sec,
            host=self._settings.stream_bind_host,
        )

    async def _stop_locked(self) -> None:
        process = self._process
        self._process = None
        current = asyncio.current_task()
        for task in (
            self._restart_task,
            self._pump_task,
            self._stderr_task,
            self._watch_task,
        ):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._restart_task = None
        self._pump_task = None
        self._stderr_task = None
        self._watch_task = None

        if process is not None:
            await self._terminate(process)
        if self._server is not None:
            server = self._server
            self._server = None
            await server.close()
        self._state = TranscodeState.STOPPED

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        grace = self._settings.stream_stop_grace_sec
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=grace)
        except asyncio.TimeoutError:
            logger.warning("Transcoder for camera %s ignored terminate, killing", self.camera.id)
            try:
                process.kill()
                await asyncio.wait_for(process.wait(), timeout=grace)
            except (ProcessLookupError, asyncio.TimeoutError):
                logger.error("Transcoder for camera %s could not be killed", self.camera.id)

    async def _pump_stdout(self, process: asyncio.subprocess.Process) -> None:
        """Relay FFmpeg stdout to the stream server until EOF."""
        if process.stdout is None:
            return
        chunk_size = self._settings.stream_read_chunk_size
        while True:
            chunk = await process.stdout.read(chunk_size)
            if not chunk:
                return
            server = self._server
            if server is not None:
                await server.broadcast(chunk)

    async def _drain_stderr(self, process: asyncio.subprocess.Process) -> None:
        if process.stderr is None:
            return
        while True:
            try:
                raw = await process.stderr.readline()
            except ValueError:
                # Line longer than the stream buffer limit; skip it
                continue
            if not raw:
                return
            line = raw.decode("utf-8", errors="ignore").strip()
            if line and is_alert_line(line):
                self.last_error = line
                logger.error("[ffmpeg %s] %s", self.camera.id, line)

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        return_code = await process.wait()
        await self._handle_exit(process, return_code)

    async def _handle_exit(self, process: asyncio.subprocess.Process, return_code: Optional[int]) -> None:
        async with self._lock:
            if process is not self._process:
                # Stopped on purpose or already replaced
                return
            self._process = None
            self.last_error = self.last_error or f"ffmpeg exited with code {return_code}"
            logger.error(
                "RTSP stream process for camera %s exited with code %s",
                self.camera.id,
                return_code,
            )
            self._emit(SessionExited(camera_id=self.camera.id, return_code=return_code))

            if self.client_count() > 0:
                self._state = TranscodeState.FAILED
                logger.info("Attempting to restart RTSP stream for camera %s...", self.camera.id)
                self._restart_task = asyncio.create_task(self._restart_later(self.source_url))
            else:
                await self._stop_locked()

    async def _restart_later(self, source_url: Optional[str]) -> None:
        await asyncio.sleep(self._settings.stream_restart_delay_sec)
        async with self._lock:
            if self._state != TranscodeState.FAILED:
                return
            if self.client_count() == 0:
                logger.info("No viewers left for camera %s, not restarting", self.camera.id)
                await self._stop_locked()
                return
            self._state = TranscodeState.STARTING
            try:
                process = await self._start_process(source_url or self.resolve_source_url())
            except Exception as exc:
                self.last_error = str(exc)
                logger.error("Restart of RTSP stream for camera %s failed: %s", self.camera.id, exc)
                self._emit(SessionErrored(camera_id=self.camera.id, reason=str(exc)))
                await self._stop_locked()
                return
            self._attach(process)
            self._state = TranscodeState.RUNNING
            logger.info("RTSP stream restarted for camera %s", self.camera.id)

    def _on_viewers_changed(self, count: int) -> None:
        if count == 0 and self._state == TranscodeState.FAILED:
            if self._settle_task is None or self._settle_task.done():
                self._settle_task = asyncio.create_task(self._settle_if_idle())

    async def _settle_if_idle(self) -> None:
        async with self._lock:
            if self._state == TranscodeState.FAILED and self.client_count() == 0:
                logger.info("Last viewer left failed stream for camera %s", self.camera.id)
                await self._stop_locked()

    def _emit(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Session listener failed for camera %s", self.camera.id)
