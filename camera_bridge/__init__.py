"""
Camera Bridge Application - root package.

This package contains the FastAPI app entry point (main.py), the HTTP API,
the camera domain model, and the infrastructure that talks to cameras
(endpoint discovery, snapshot caching, RTSP transcoding over WebSocket).
"""
