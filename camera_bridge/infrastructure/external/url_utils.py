"""URL helpers shared by the camera endpoint sources and the transcode session."""
import re
from typing import Iterable, List
from urllib.parse import quote, urlsplit

_USERINFO_PASSWORD = re.compile(r"(://[^:/@\s]*):[^@/\s]*@")

MASKED_PASSWORD = "****"


def mask_url(url: str) -> str:
    """Replace the password segment of a URL's userinfo before it is logged."""
    if not url:
        return url
    return _USERINFO_PASSWORD.sub(rf"\1:{MASKED_PASSWORD}@", url)


def build_candidate_urls(base_url: str, paths: Iterable[str]) -> List[str]:
    """
    Join ordered paths onto a base URL.

    Repeated paths keep only their first position so a probe never hits the
    same URL twice.
    """
    base = base_url.rstrip("/")
    urls = []
    for path in paths:
        if not path.startswith("/"):
            path = f"/{path}"
        urls.append(f"{base}{path}")
    return list(dict.fromkeys(urls))


def build_rtsp_base(username: str, password: str, host: str, port: int) -> str:
    # Credentials are percent-encoded so '@' or ':' in a password survive
    user = quote(username, safe="")
    secret = quote(password, safe="")
    return f"rtsp://{user}:{secret}@{host}:{port}"


def url_path(url: str) -> str:
    """Path and query of a URL, for log lines that should not repeat the host."""
    parts = urlsplit(url)
    return f"{parts.path}?{parts.query}" if parts.query else parts.path
