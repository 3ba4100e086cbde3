"""Camera HTTP clients: endpoint discovery, snapshot and MJPEG sources"""

from .endpoint_probe import EndpointCache, EndpointProbe, PayloadRejected, ProbeResult
from .mjpeg_source import MjpegSource, MjpegStream
from .snapshot_source import SnapshotSource
from .url_utils import mask_url

__all__ = [
    "EndpointCache",
    "EndpointProbe",
    "PayloadRejected",
    "ProbeResult",
    "MjpegSource",
    "MjpegStream",
    "SnapshotSource",
    "mask_url",
]
