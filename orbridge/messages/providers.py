"""Provider routing directives for OpenRouter.

A directive steers OpenRouter's provider selection::

    {"only": [...], "ignore": [...], "allow_fallbacks": False,
     "data_collection": "deny", "zdr": True}

Directives live in one immutable table keyed by target model id. They can be
selected per request through the body's ``provider`` field, a header, or a
process-wide default key.
"""

from __future__ import annotations

import json
import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional

logger = logging.getLogger("orbridge")

PROVIDER_HEADERS = ("X-OpenRouter-Provider", "X-Provider")

_IGNORED_HOSTS = ("deepinfra", "chutes", "novita")


def _directive(**fields: Any) -> Mapping[str, Any]:
    return MappingProxyType(fields)


PROVIDER_DIRECTIVES: Mapping[str, Mapping[str, Any]] = MappingProxyType({
    "z-ai/glm-4.6:exacto": _directive(
        only=("z-ai",),
        ignore=_IGNORED_HOSTS,
        allow_fallbacks=False,
        data_collection="deny",
        zdr=True,
    ),
    "minimax/minimax-m2": _directive(
        only=("minimax",),
        ignore=_IGNORED_HOSTS,
        allow_fallbacks=False,
        data_collection="deny",
        zdr=True,
    ),
    "z-ai/glm-4.5-air:free": _directive(
        only=("z-ai",),
        ignore=_IGNORED_HOSTS,
        allow_fallbacks=False,
    ),
    "tngtech/deepseek-r1t2-chimera:free": _directive(
        only=("chutes",),
        ignore=("deepinfra", "novita"),
        allow_fallbacks=False,
    ),
})


def _to_payload(directive: Mapping[str, Any]) -> dict[str, Any]:
    """Copy a directive into a JSON-ready dict (tuples become lists)."""
    return {
        key: list(value) if isinstance(value, tuple) else value
        for key, value in directive.items()
    }


def get_provider_directive(key: Optional[str]) -> Optional[dict[str, Any]]:
    """Look up a named directive. Unknown or empty keys yield ``None``."""
    if not key:
        return None
    directive = PROVIDER_DIRECTIVES.get(key)
    if directive is None:
        return None
    return _to_payload(directive)


def _directive_from_header(value: str) -> Optional[dict[str, Any]]:
    named = get_provider_directive(value)
    if named is not None:
        return named
    try:
        parsed = json.loads(value)
    except ValueError:
        logger.debug("Ignoring provider header that is neither a key nor JSON: %r", value)
        return None
    if isinstance(parsed, dict):
        return parsed
    return None


def resolve_provider_directive(
    body: Optional[Mapping[str, Any]],
    headers: Optional[Mapping[str, str]] = None,
    default_key: Optional[str] = None,
) -> Optional[dict[str, Any]]:
    """Resolve a provider directive for a request.

    Precedence:
        1. ``body["provider"]``: a mapping is used as-is, a string is a table
           key (an unknown key resolves to ``None`` without falling through).
        2. ``X-OpenRouter-Provider`` then ``X-Provider`` header: a table key
           or an inline JSON object. Only the first non-empty header is
           read; an unusable value falls through to the default.
        3. ``default_key``, looked up in the table.
    """
    provider = body.get("provider") if isinstance(body, Mapping) else None
    if provider:
        if isinstance(provider, str):
            return get_provider_directive(provider)
        if isinstance(provider, Mapping):
            return dict(provider)

    if headers is not None:
        for header_name in PROVIDER_HEADERS:
            header_value = headers.get(header_name)
            if header_value:
                directive = _directive_from_header(header_value)
                if directive is not None:
                    return directive
                break

    return get_provider_directive(default_key)
