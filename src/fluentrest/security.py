"""Header redaction for request logs and base URL checks for named clients."""

from __future__ import annotations

from typing import Mapping

import httpx

REDACTED = "[REDACTED]"

SENSITIVE_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie", "x-api-key"})

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


def sanitize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy ``headers`` for a log record, masking credential values."""
    return {name: REDACTED if name.lower() in SENSITIVE_HEADERS else value for name, value in headers.items()}


def validate_base_url(url: str, *, allow_http: bool = False) -> None:
    """Reject base URLs a named client must not be registered with.

    The URL must be absolute ``https``. Plain ``http`` passes for loopback
    hosts, or for any host when ``allow_http`` is set.
    """
    if "\x00" in url:
        raise ValueError(f"base_url contains a NUL byte: {url!r}")
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ValueError(f"base_url is not a valid URL: {url!r}") from exc
    if not parsed.is_absolute_url or not parsed.host:
        raise ValueError(f"base_url must include a scheme and host: {url!r}")
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"base_url scheme {parsed.scheme!r} is not supported")
    if parsed.scheme == "http" and not allow_http and parsed.host.lower() not in LOOPBACK_HOSTS:
        raise ValueError(f"plain http base_url {url!r} needs allow_http=True")
