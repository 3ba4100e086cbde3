"""
FFmpeg command construction for the RTSP -> MPEG-TS transcoder.

Bitrate bounds are all derived from the camera's single base bitrate:
maxrate = 1.25 x base, bufsize = 2.5 x maxrate, minrate = 0.5 x base.
"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import List

from ...domain.models.camera import BITRATE_PATTERN

# Only stderr lines that look like problems are worth logging
STDERR_ALERT_PATTERN = re.compile(r"error|fail|refused|timed out|invalid", re.IGNORECASE)

_ONE_DECIMAL = Decimal("0.1")


def scale_bitrate(bitrate: str, factor: str) -> str:
    """
    Scale a bitrate string such as "1.5M", keeping its unit suffix.

    >>> scale_bitrate("1.5M", "1.25")
    '1.9M'
    """
    match = BITRATE_PATTERN.match(str(bitrate))
    if not match:
        raise ValueError(f"Invalid bitrate: {bitrate!r}")
    value = Decimal(match.group(1)) * Decimal(factor)
    return f"{value.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP)}{match.group(2)}"


def bitrate_bounds(bitrate: str) -> dict:
    """Return the -b:v / -maxrate / -bufsize / -minrate values for a base bitrate."""
    base = str(bitrate).strip()
    max_rate = scale_bitrate(base, "1.25")
    return {
        "bitrate": base,
        "maxrate": max_rate,
        "bufsize": scale_bitrate(max_rate, "2.5"),
        "minrate": scale_bitrate(base, "0.5"),
    }


def build_transcoder_command(
    source_url: str,
    fps: int,
    bitrate: str,
    codec: str = "mpeg1video",
    ffmpeg_binary: str = "ffmpeg",
) -> List[str]:
    """
    Build an FFmpeg command that pulls RTSP over TCP and writes MPEG-TS to stdout.
    """
    bounds = bitrate_bounds(bitrate)
    cmd = [
        ffmpeg_binary,
        "-hide_banner",
        "-nostats",
        "-loglevel",
        "warning",
        # RTSP input: reliable transport, generous probing for slow cameras
        "-rtsp_transport",
        "tcp",
        "-thread_queue_size",
        "512",
        "-analyzeduration",
        "10000000",
        "-probesize",
        "5000000",
        "-fflags",
        "nobuffer+fastseek+genpts",
        "-flags",
        "low_delay",
        # Input
        "-i",
        source_url,
        "-an",
        # Video
        "-c:v",
        codec,
        "-pix_fmt",
        "yuv420p",
        "-r",
        str(fps),
        "-g",
        str(fps * 2),
        "-keyint_min",
        str(fps),
        "-bf",
        "0",
        "-b:v",
        bounds["bitrate"],
        "-maxrate",
        bounds["maxrate"],
        "-bufsize",
        bounds["bufsize"],
        "-minrate",
        bounds["minrate"],
    ]
    if codec == "libx264":
        cmd += [
            "-preset",
            "ultrafast",
            "-tune",
            "zerolatency",
            "-profile:v",
            "baseline",
            "-x264opts",
            "no-mbtree:no-cabac:ref=1:8x8dct=0:weightp=0",
        ]
    cmd += [
        "-avoid_negative_ts",
        "make_zero",
        # MPEG-TS to stdout, no mux delay
        "-f",
        "mpegts",
        "-muxdelay",
        "0",
        "-muxpreload",
        "0",
        "pipe:1",
    ]
    return cmd


def is_alert_line(line: str) -> bool:
    return bool(STDERR_ALERT_PATTERN.search(line))
