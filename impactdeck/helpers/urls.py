"""URL sanitization: keep hrefs to http(s), keep outbound fetches off internal hosts."""

from __future__ import annotations

import ipaddress
from typing import Optional
from urllib.parse import urlsplit

_LOCAL_HOSTS = {"localhost", "0.0.0.0", "metadata", "metadata.google.internal"}
_INTERNAL_SUFFIXES = (".internal", ".local", ".localhost")


def sanitize_url(url: Optional[str]) -> str:
    if not url:
        return ""
    s = url.strip()
    if not s:
        return ""

    try:
        parts = urlsplit(s)
    except ValueError:
        return ""

    if parts.scheme:
        return s if parts.scheme.lower() in {"http", "https"} and parts.netloc else ""

    # Root-relative paths resolve against our own origin
    if s.startswith("/") and not s.startswith("//"):
        return s
    return ""


def is_private_url(url: str) -> bool:
    """True for loopback/private/link-local targets. Unparseable URLs count as private."""
    try:
        parts = urlsplit((url or "").strip())
        host = (parts.hostname or "").lower()
    except ValueError:
        return True

    if not host:
        return True
    if host in _LOCAL_HOSTS or host.endswith(_INTERNAL_SUFFIXES):
        return True

    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False

    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_unspecified or ip.is_reserved


def hostname(url: Optional[str]) -> str:
    try:
        return (urlsplit((url or "").strip()).hostname or "").lower()
    except ValueError:
        return ""
