"""Per-host HTTPX transports for provider and OAuth endpoints.

Executors look transports up here when they open a client, so tests and
in-process fakes can stand in for real provider hosts.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("omnibridge")

_TRANSPORTS: dict[str, httpx.AsyncBaseTransport] = {}


def _host_of(url_or_host: str) -> str:
    value = url_or_host.strip()
    if "://" in value:
        value = urlparse(value).netloc
    return value.lower()


def register_upstream_transport(url_or_host: str, transport: httpx.AsyncBaseTransport) -> None:
    """Register a transport for a host, given either a URL or a bare netloc."""
    if not url_or_host:
        raise ValueError("host is required")
    host = _host_of(url_or_host)
    if not host:
        raise ValueError(f"cannot extract host from {url_or_host!r}")
    _TRANSPORTS[host] = transport
    logger.debug("Registered upstream transport for host '%s'", host)


def unregister_upstream_transport(url_or_host: str) -> None:
    if not url_or_host:
        return
    _TRANSPORTS.pop(_host_of(url_or_host), None)


def clear_upstream_transports() -> None:
    """Clear all registered transports (useful for tests)."""
    _TRANSPORTS.clear()


def get_upstream_transport(url: str) -> Optional[httpx.AsyncBaseTransport]:
    """Return the registered transport for the URL's host, if any."""
    if not url:
        return None
    host = urlparse(url).netloc
    if not host:
        return None
    return _TRANSPORTS.get(host.lower())


def build_client(url: str, timeout: httpx.Timeout | float) -> httpx.AsyncClient:
    """Open an AsyncClient for ``url`` honouring any registered transport."""
    return httpx.AsyncClient(
        timeout=timeout,
        transport=get_upstream_transport(url),
        follow_redirects=True,
    )
