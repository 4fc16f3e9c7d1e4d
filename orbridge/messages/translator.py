"""Anthropic <-> OpenRouter Messages translation.

This module translates Anthropic Messages API requests into OpenAI Chat
Completions requests suitable for OpenRouter, and translates non-streaming
chat completions back into Anthropic ``message`` objects.

Key mappings:
- Anthropic system (top-level) -> one OpenAI system message per text block
- Anthropic text blocks -> newline-joined string content
- Anthropic tool_use blocks -> assistant ``tool_calls``
- Anthropic tool_result blocks -> ``tool`` role messages
- Anthropic tools -> OpenAI function tools

Reference:
- Anthropic Messages API: https://docs.anthropic.com/en/api/messages
- OpenAI Chat Completions: https://platform.openai.com/docs/api-reference/chat
- OpenRouter provider routing: https://openrouter.ai/docs/features/provider-routing
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Mapping, Optional

from ..core.exceptions import SerializationError
from .models import map_model, supports_prompt_cache, supports_tools
from .providers import get_provider_directive
from .tool_calls import strip_tool_support, validate_tool_calls
from .validation import validate_conversation

logger = logging.getLogger("orbridge")

EPHEMERAL_CACHE_CONTROL = {"type": "ephemeral"}


def _safe_json_dumps(data: Any, context: str) -> str:
    """Serialize ``data`` to JSON, naming ``context`` on failure."""
    try:
        return json.dumps(data, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Failed to stringify {context}: {exc}") from exc


def _system_part(text: str, cache: bool) -> dict[str, Any]:
    part: dict[str, Any] = {"type": "text", "text": text}
    if cache:
        part["cache_control"] = dict(EPHEMERAL_CACHE_CONTROL)
    return part


def _convert_system_to_openai(
    system: str | list[Mapping[str, Any]] | None, target_model: str
) -> list[dict[str, Any]]:
    """Convert the Anthropic top-level system prompt to system messages.

    A list of text blocks yields one system message per block; a string (or
    an explicit null) yields exactly one. Every text part carries an
    ephemeral ``cache_control`` marker when the target model supports it.
    """
    cache = supports_prompt_cache(target_model)
    if isinstance(system, list):
        return [
            {"role": "system", "content": [_system_part(block["text"], cache)]}
            for block in system
        ]
    return [{"role": "system", "content": [_system_part(system or "", cache)]}]


def _join_text(parts: list[str]) -> str:
    return "".join(f"{text}\n" for text in parts).strip()


def _convert_assistant_blocks(blocks: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
    texts: list[str] = []
    tool_calls: list[dict[str, Any]] = []

    for block in blocks:
        block_type = block["type"]
        if block_type == "text":
            texts.append(block["text"])
        elif block_type == "tool_use":
            tool_calls.append({
                "id": block["id"],
                "type": "function",
                "function": {
                    "name": block["name"],
                    "arguments": _safe_json_dumps(
                        block["input"], f"tool arguments for {block['name']}"
                    ),
                },
            })
        # tool_result blocks in an assistant turn have nothing to answer

    message: dict[str, Any] = {"role": "assistant", "content": None}
    text = _join_text(texts)
    if text:
        message["content"] = text
    if tool_calls:
        message["tool_calls"] = tool_calls
    if message["content"] or tool_calls:
        return [message]
    return []


def _convert_tool_result_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    return _safe_json_dumps(content, "tool result content")


def _convert_user_blocks(blocks: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
    texts: list[str] = []
    tool_messages: list[dict[str, Any]] = []

    for block in blocks:
        block_type = block["type"]
        if block_type == "text":
            texts.append(block["text"])
        elif block_type == "tool_result":
            tool_messages.append({
                "role": "tool",
                "tool_call_id": block["tool_use_id"],
                "content": _convert_tool_result_content(block["content"]),
            })
        # tool_use blocks in a user turn are not forwarded

    converted: list[dict[str, Any]] = []
    text = _join_text(texts)
    if text:
        converted.append({"role": "user", "content": text})
    converted.extend(tool_messages)
    return converted


def _convert_message(message: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Expand one Anthropic message into zero or more OpenAI messages."""
    role = message["role"]
    content = message["content"]

    if isinstance(content, str):
        return [{"role": role, "content": content}]

    if role == "assistant":
        return _convert_assistant_blocks(content)
    if role == "user":
        return _convert_user_blocks(content)

    # Block content is only understood for user and assistant turns
    logger.debug("Dropping %s message with block content", role)
    return []


def _convert_tools(tools: list[Mapping[str, Any]] | None) -> list[dict[str, Any]] | None:
    """Convert Anthropic tools to OpenAI format.

    Anthropic: {"name": "...", "description": "...", "input_schema": {...}}
    OpenAI: {"type": "function", "function": {"name": "...", "description": "...", "parameters": {...}}}
    """
    if not tools:
        return None

    openai_tools = []
    for tool in tools:
        function: dict[str, Any] = {"name": tool["name"]}
        if tool.get("description") is not None:
            function["description"] = tool["description"]
        function["parameters"] = tool.get("input_schema", {})
        openai_tools.append({"type": "function", "function": function})

    return openai_tools


def messages_to_chat_completions(
    payload: Mapping[str, Any],
    *,
    provider: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Translate an Anthropic Messages request to an OpenRouter chat request.

    Args:
        payload: Anthropic Messages API request body
        provider: Explicit provider directive; when omitted the directive
            registered for the aliased model (if any) is attached.

    Returns:
        OpenAI Chat Completions API request body

    Raises:
        StructuralInputError: the request is malformed.
        SerializationError: a tool input or tool result cannot be serialized.
    """
    validate_conversation(payload)

    source_model = payload["model"]
    model = map_model(source_model)

    system_messages: list[dict[str, Any]] = []
    if "system" in payload:
        system_messages = _convert_system_to_openai(payload["system"], model)

    openai_messages: list[dict[str, Any]] = []
    for message in payload["messages"]:
        openai_messages.extend(_convert_message(message))

    result: dict[str, Any] = {"model": model}
    for param in ("temperature", "stream"):
        if param in payload:
            result[param] = payload[param]

    if not supports_tools(model):
        if payload.get("tools"):
            logger.info("Model %s does not support tools; stripping tool use", model)
        result["messages"] = strip_tool_support(system_messages + openai_messages)
    else:
        tools = _convert_tools(payload.get("tools"))
        if tools:
            result["tools"] = tools
        result["messages"] = system_messages + validate_tool_calls(openai_messages)

    directive = dict(provider) if provider is not None else get_provider_directive(model)
    if directive is not None:
        result["provider"] = directive

    logger.debug(
        "Translated messages request: %s -> %s, %d source messages, %d target messages",
        source_model,
        model,
        len(payload["messages"]),
        len(result["messages"]),
    )
    return result


def _convert_stop_reason(finish_reason: str | None) -> str:
    """Convert OpenAI finish_reason to Anthropic stop_reason.

    OpenAI: stop, length, tool_calls, content_filter, function_call
    Anthropic: end_turn, max_tokens, stop_sequence, tool_use, refusal
    """
    if not isinstance(finish_reason, str):
        return "end_turn"

    mapping = {
        "stop": "end_turn",
        "length": "max_tokens",
        "tool_calls": "tool_use",
        "function_call": "tool_use",
        "content_filter": "refusal",
    }

    return mapping.get(finish_reason, "end_turn")


def _convert_openai_content_to_blocks(
    content: str | list[Mapping[str, Any]] | None,
    tool_calls: list[Mapping[str, Any]] | None = None,
) -> list[dict[str, Any]]:
    """Convert OpenAI assistant content to Anthropic content blocks."""
    blocks: list[dict[str, Any]] = []

    if isinstance(content, str) and content:
        blocks.append({"type": "text", "text": content})
    elif isinstance(content, list):
        for part in content:
            if isinstance(part, Mapping) and part.get("type") == "text":
                blocks.append({"type": "text", "text": part.get("text", "")})

    for call in tool_calls or ():
        if not isinstance(call, Mapping):
            continue
        function = call.get("function")
        if not isinstance(function, Mapping):
            function = {}
        arguments = function.get("arguments") or "{}"
        try:
            input_dict = json.loads(arguments) if isinstance(arguments, str) else arguments
        except json.JSONDecodeError:
            input_dict = {"raw": arguments}

        blocks.append({
            "type": "tool_use",
            "id": call.get("id") or f"toolu_{uuid.uuid4().hex[:8]}",
            "name": function.get("name", ""),
            "input": input_dict,
        })

    return blocks


def chat_completion_to_messages(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Translate an OpenAI Chat Completions response to an Anthropic message.

    Only the first choice is used; Anthropic responses carry a single turn.
    """
    openai_id = payload.get("id")
    if not isinstance(openai_id, str) or not openai_id:
        openai_id = f"chatcmpl-{uuid.uuid4().hex[:12]}"
    choices = payload.get("choices") or []
    usage = payload.get("usage")
    if not isinstance(usage, Mapping):
        usage = {}

    choice = choices[0] if isinstance(choices, list) and choices else None
    if not isinstance(choice, Mapping):
        choice = {}
    message = choice.get("message")
    if not isinstance(message, Mapping):
        message = {}
    tool_calls = message.get("tool_calls")
    if not isinstance(tool_calls, list):
        tool_calls = None

    content_blocks = _convert_openai_content_to_blocks(
        message.get("content"), tool_calls
    )
    if not content_blocks:
        content_blocks = [{"type": "text", "text": ""}]

    return {
        "id": f"msg_{openai_id.replace('chatcmpl-', '')}",
        "type": "message",
        "role": "assistant",
        "content": content_blocks,
        "model": payload.get("model", ""),
        "stop_reason": _convert_stop_reason(choice.get("finish_reason")),
        "stop_sequence": None,
        "usage": {
            "input_tokens": usage.get("prompt_tokens", 0),
            "output_tokens": usage.get("completion_tokens", 0),
        },
    }
