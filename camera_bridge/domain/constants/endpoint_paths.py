"""
Ordered candidate paths for camera endpoint discovery.

Order is a preference list (vendor-specific paths before generic fallbacks)
and is preserved as-is: some cameras answer 200 on wrong paths, so the first
path that validates wins. Each list can be overridden from configuration
(see core.config).
"""

# -----------------------------------------------------------------------------
# Single JPEG frame
# -----------------------------------------------------------------------------
SNAPSHOT_PATHS = (
    # Vivotek SD9384/SD9368
    "/cgi-bin/viewer/video.jpg",
    "/cgi-bin/video.jpg",
    "/cgi-bin/viewer/video.jpg?channel=1",
    "/cgi-bin/viewer/video.jpg?channel=1&subtype=0",
    "/cgi-bin/snapshot.cgi?channel=1",
    "/cgi-bin/snapshot.cgi",
    # Hikvision
    "/ISAPI/Streaming/channels/1/picture",
    "/ISAPI/Streaming/channels/101/picture",
    "/Streaming/channels/1/picture",
    "/Streaming/channels/101/picture",
    # Dahua
    "/cgi-bin/snapshot.cgi?channel=1",
    "/cgi-bin/snapshot.cgi",
    "/snapshot.cgi?channel=1",
    # Generic
    "/snapshot.jpg",
    "/snapshot.jpeg",
    "/image.jpg",
    "/image.jpeg",
    "/jpg/image.jpg",
    "/jpg/image.cgi",
    # Axis
    "/axis-cgi/jpg/image.cgi",
    "/axis-cgi/jpg/image.cgi?resolution=640x480",
    # Other
    "/video.jpg",
    "/video.mjpg",
    "/img/snapshot.cgi",
    "/api/camera/snapshot",
)

# -----------------------------------------------------------------------------
# Multipart MJPEG stream
# -----------------------------------------------------------------------------
MJPEG_PATHS = (
    # Vivotek SD9384/SD9368
    "/cgi-bin/viewer/video.mjpg",
    "/cgi-bin/viewer/video.mjpeg",
    "/cgi-bin/viewer/video.mjpg?channel=1&subtype=0",
    "/cgi-bin/viewer/video.mjpg?channel=1&subtype=1",
    # Vivotek alternatives
    "/cgi-bin/video.mjpg",
    "/cgi-bin/mjpg/video.cgi?channel=1&subtype=0",
    "/cgi-bin/mjpg/video.cgi?channel=1&subtype=1",
    # Generic
    "/video.mjpg",
    "/stream/video.mjpeg",
)

# -----------------------------------------------------------------------------
# RTSP pull paths (sub-streams first: lower bandwidth)
# -----------------------------------------------------------------------------
RTSP_PATHS = (
    # Sub-stream
    "/live1s1.sdp",
    "/live2s1.sdp",
    "/videoSub",
    "/Streaming/Channels/102",
    # Main stream
    "/live1s0.sdp",
    "/live2s0.sdp",
    "/videoMain",
    "/Streaming/Channels/101",
    # Generic fallback
    "/live.sdp",
)

# -----------------------------------------------------------------------------
# Device information (model, firmware); first 200 wins
# -----------------------------------------------------------------------------
DEVICE_INFO_PATHS = (
    # Hikvision
    "/ISAPI/System/deviceInfo",
    # Dahua
    "/cgi-bin/magicBox.cgi?action=getDeviceClass",
    # Generic
    "/api/system/deviceinfo",
    # ONVIF
    "/onvif/device_service",
)
