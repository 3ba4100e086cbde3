"""
Shared pytest fixtures for camera-bridge tests.
"""
import socket

import pytest

from camera_bridge.core.config import Settings
from camera_bridge.domain.models.camera import CameraConfig
from tests.helpers import FakeCamera, make_settings


@pytest.fixture
def settings() -> Settings:
    """Settings with fast timeouts and the stream server bound to loopback."""
    return make_settings()


@pytest.fixture
def free_port() -> int:
    """A TCP port that was free a moment ago on 127.0.0.1."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def camera(free_port) -> CameraConfig:
    return CameraConfig(id="cam1", ip="10.0.0.5", ws_port=free_port)


@pytest.fixture
def fake_camera() -> FakeCamera:
    return FakeCamera()
