"""Reduce tab URLs to origin plus first path segment before they leave the process."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

MAX_RAW_CHARS = 100
MAX_OPAQUE_CHARS = 32

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}
# Anything past one of these in an opaque URL is payload, parameters or a path.
_OPAQUE_CUT_RE = re.compile(r"[;,@/\\?#\s]")


def sanitize_url(url: str) -> str:
    """Return ``origin + "/" + first path segment`` for ``url``.

    Never raises. URLs without a host keep only their scheme and first
    path segment (``file:///home``), or the scheme and a short token for
    opaque schemes (``data:text``, ``about:blank``). Text that does not
    parse into a scheme falls back to a bounded prefix of the raw text, cut
    before any query or fragment.
    """
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
        port = parts.port
    except ValueError:
        return _raw_prefix(url)
    if not parts.scheme:
        return _raw_prefix(url)

    scheme = parts.scheme.lower()
    segments = [segment for segment in parts.path.split("/") if segment]
    first_path = f"/{segments[0]}" if segments else ""

    if not host:
        if parts.netloc or parts.path.startswith("/"):
            return f"{scheme}://{first_path}"
        token = _OPAQUE_CUT_RE.split(parts.path, 1)[0]
        return f"{scheme}:{token[:MAX_OPAQUE_CHARS]}"

    if ":" in host:
        host = f"[{host}]"
    origin = f"{scheme}://{host}"
    if port is not None and _DEFAULT_PORTS.get(scheme) != port:
        origin = f"{origin}:{port}"
    return f"{origin}{first_path}"


def _raw_prefix(url: str) -> str:
    text = str(url)
    for marker in ("?", "#"):
        text = text.split(marker, 1)[0]
    return text[:MAX_RAW_CHARS]
