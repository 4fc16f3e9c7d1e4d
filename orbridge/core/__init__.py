"""Core module initialization."""

from .exceptions import (
    ConfigurationError,
    ProxyError,
    SerializationError,
    StructuralInputError,
    TranslationError,
)
from .forwarder import UpstreamError, build_upstream_url, forward_get, forward_json
from .headers import build_forward_headers, extract_bearer_token, filter_response_headers
from .upstream_transport import (
    clear_upstream_transports,
    get_upstream_transport,
    register_upstream_transport,
)

__all__ = [
    "ConfigurationError",
    "ProxyError",
    "SerializationError",
    "StructuralInputError",
    "TranslationError",
    "UpstreamError",
    "build_forward_headers",
    "build_upstream_url",
    "clear_upstream_transports",
    "extract_bearer_token",
    "filter_response_headers",
    "forward_get",
    "forward_json",
    "get_upstream_transport",
    "register_upstream_transport",
]
