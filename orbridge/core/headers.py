"""Header handling for requests forwarded to OpenRouter."""

import re
from typing import Mapping, Optional

HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

API_KEY_HEADER = "X-Api-Key"
_BEARER_PREFIX = re.compile(r"^Bearer\s+", re.IGNORECASE)


def extract_bearer_token(headers: Mapping[str, str]) -> Optional[str]:
    """Return the caller's API key from ``X-Api-Key`` or ``Authorization``.

    The token is passed through verbatim; it is never validated or stored.
    """
    api_key = headers.get(API_KEY_HEADER) or headers.get(API_KEY_HEADER.lower())
    if api_key:
        return api_key
    authorization = headers.get("Authorization") or headers.get("authorization")
    if authorization:
        token = _BEARER_PREFIX.sub("", authorization)
        return token or None
    return None


def build_forward_headers(
    bearer_token: Optional[str], *, with_body: bool = True
) -> dict[str, str]:
    """Build headers for an upstream request.

    GET requests carry no body and therefore no Content-Type.
    """
    headers: dict[str, str] = {}
    if with_body:
        headers["Content-Type"] = "application/json"
    if bearer_token:
        headers["Authorization"] = f"Bearer {bearer_token}"
    # Upstream bodies are relayed byte-for-byte, so ask for them uncompressed
    headers["Accept-Encoding"] = "identity"
    return headers


def filter_response_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Filter upstream response headers, removing hop-by-hop headers."""
    filtered: dict[str, str] = {}
    for key, value in headers.items():
        key_lower = key.lower()
        # Drop headers Starlette will recompute or that no longer match the payload
        if key_lower in HOP_BY_HOP_HEADERS or key_lower in {
            "content-length",
            "content-encoding",
        }:
            continue
        filtered[key] = value
    return filtered
