"""Model aliasing and per-model capability tables.

Anthropic model names (``claude-3-5-sonnet-latest`` and friends) are mapped
onto OpenRouter model identifiers by keyword. Identifiers that already carry
a ``vendor/`` namespace are treated as OpenRouter ids and left alone.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("orbridge")

NAMESPACE_SEPARATOR = "/"

# Ordered: the first keyword found in the model name wins.
MODEL_ALIASES: tuple[tuple[str, str], ...] = (
    ("haiku", "z-ai/glm-4.5-air:free"),
    ("sonnet", "z-ai/glm-4.6:exacto"),
    ("opus", "tngtech/deepseek-r1t2-chimera:free"),
)

# Targets that reject tool declarations, tool_calls and tool messages.
NO_TOOL_SUPPORT_MODELS: frozenset[str] = frozenset({
    "tngtech/deepseek-r1t2-chimera:free",
})

PROMPT_CACHE_FAMILY = "claude"


def map_model(model: str) -> str:
    """Map a client-supplied model name to an OpenRouter model id.

    Never fails: unknown names are returned unchanged.
    """
    if NAMESPACE_SEPARATOR in model:
        return model

    for keyword, target in MODEL_ALIASES:
        if keyword in model:
            logger.debug("Aliased model %s -> %s (keyword %r)", model, target, keyword)
            return target

    return model


def supports_tools(model: str) -> bool:
    """Return False for target models that cannot accept tool definitions."""
    return model not in NO_TOOL_SUPPORT_MODELS


def supports_prompt_cache(model: str) -> bool:
    """Return True when the target model understands ``cache_control`` hints."""
    return PROMPT_CACHE_FAMILY in model
