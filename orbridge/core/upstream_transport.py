"""Per-host HTTPX transports, used to serve upstream calls in-process.

Tests register an ``httpx.ASGITransport`` for the upstream's netloc; every
other host goes over the network with httpx's default transport.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("orbridge")

_TRANSPORTS: dict[str, httpx.AsyncBaseTransport] = {}


def _netloc(url_or_host: str) -> str:
    if "://" in url_or_host:
        url_or_host = urlparse(url_or_host).netloc
    return url_or_host.strip().lower()


def register_upstream_transport(url_or_host: str, transport: httpx.AsyncBaseTransport) -> None:
    """Route requests for a host (or the host of a URL) through ``transport``."""
    host = _netloc(url_or_host)
    if not host:
        raise ValueError("host is required")
    _TRANSPORTS[host] = transport
    logger.debug("Registered upstream transport for host '%s'", host)


def clear_upstream_transports() -> None:
    _TRANSPORTS.clear()


def get_upstream_transport(url: str) -> Optional[httpx.AsyncBaseTransport]:
    """Return the registered transport for the URL's host, if any."""
    if not url:
        return None
    return _TRANSPORTS.get(_netloc(url))
