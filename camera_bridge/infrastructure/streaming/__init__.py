# Infrastructure streaming layer exports
from .stream_server import StreamServer
from .transcode_session import (
    SessionErrored,
    SessionExited,
    TranscodeSession,
    TranscodeState,
)

__all__ = [
    "SessionErrored",
    "SessionExited",
    "StreamServer",
    "TranscodeSession",
    "TranscodeState",
]
