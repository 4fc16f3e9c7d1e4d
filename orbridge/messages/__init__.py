"""Anthropic Messages to OpenRouter translation.

Translates Anthropic Messages API requests into OpenAI Chat Completions
requests for OpenRouter: model aliasing, provider routing directives,
tool-call pairing and per-model capability stripping.
"""

from .models import map_model, supports_prompt_cache, supports_tools
from .providers import (
    PROVIDER_DIRECTIVES,
    get_provider_directive,
    resolve_provider_directive,
)
from .tool_calls import strip_tool_support, validate_tool_calls
from .translator import chat_completion_to_messages, messages_to_chat_completions
from .validation import validate_conversation, validate_message

__all__ = [
    "PROVIDER_DIRECTIVES",
    "chat_completion_to_messages",
    "get_provider_directive",
    "map_model",
    "messages_to_chat_completions",
    "resolve_provider_directive",
    "strip_tool_support",
    "supports_prompt_cache",
    "supports_tools",
    "validate_conversation",
    "validate_message",
    "validate_tool_calls",
]
