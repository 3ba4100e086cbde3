"""
API layer for the camera bridge.

Exposes HTTP endpoints under /api/v1/cameras (registration, snapshots, MJPEG
passthrough, RTSP transcode control). Live video itself is served by each
camera's WebSocket stream server, not by this app.
"""
