"""orbridge - Anthropic Messages to OpenRouter bridge

Translates Anthropic Messages API requests into OpenAI chat-completion
requests for OpenRouter and relays the answers back.

This module provides:
- messages_to_chat_completions: the request translator
- validate_tool_calls: tool call / tool result pairing
- map_model: Anthropic model name aliasing
- resolve_provider_directive: OpenRouter provider routing presets
- create_app: the FastAPI application

Example:
    >>> from orbridge import create_app
    >>> import uvicorn
    >>> uvicorn.run(create_app(), host="127.0.0.1", port=8787)
"""

from .config_loader import Settings, build_settings, load_config, load_settings
from .core import ProxyError, SerializationError, StructuralInputError, TranslationError
from .logging import logger, setup_logging
from .main import create_app
from .messages import (
    map_model,
    messages_to_chat_completions,
    resolve_provider_directive,
    validate_tool_calls,
)

__all__ = [
    "ProxyError",
    "SerializationError",
    "Settings",
    "StructuralInputError",
    "TranslationError",
    "build_settings",
    "create_app",
    "load_config",
    "load_settings",
    "logger",
    "map_model",
    "messages_to_chat_completions",
    "resolve_provider_directive",
    "setup_logging",
    "validate_tool_calls",
]
