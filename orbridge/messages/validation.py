"""Structural validation of Anthropic Messages requests.

Only the shape is checked here; tool arguments are never inspected beyond
"is an object".
"""

from __future__ import annotations

from typing import Any, Mapping

from ..core.exceptions import StructuralInputError
from .models import map_model, supports_tools

CONTENT_PART_TYPES = ("text", "tool_use", "tool_result")


def _is_nonempty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _validate_text_part(part: Mapping[str, Any], index: int) -> None:
    if not isinstance(part.get("text"), str):
        raise StructuralInputError(
            f"Text content part at index {index} must have a string text field",
            field="text",
        )


def _validate_tool_use_part(part: Mapping[str, Any], index: int) -> None:
    if not _is_nonempty_str(part.get("id")):
        raise StructuralInputError(
            f"Tool_use content part at index {index} must have a string id field",
            field="id",
        )
    if not _is_nonempty_str(part.get("name")):
        raise StructuralInputError(
            f"Tool_use content part at index {index} must have a string name field",
            field="name",
        )
    if not isinstance(part.get("input"), Mapping):
        raise StructuralInputError(
            f"Tool_use content part at index {index} must have an object input field",
            field="input",
        )


def _validate_tool_result_part(part: Mapping[str, Any], index: int) -> None:
    if not _is_nonempty_str(part.get("tool_use_id")):
        raise StructuralInputError(
            f"Tool_result content part at index {index} must have a string tool_use_id field",
            field="tool_use_id",
        )
    if _is_empty(part.get("content")):
        raise StructuralInputError(
            f"Tool_result content part at index {index} must have content",
            field="content",
        )


_PART_VALIDATORS = {
    "text": _validate_text_part,
    "tool_use": _validate_tool_use_part,
    "tool_result": _validate_tool_result_part,
}


def validate_message(message: Any) -> None:
    """Validate a single source message.

    Raises:
        StructuralInputError: the message, or one of its content parts, is
            malformed. ``index`` is left unset; the caller knows it.
    """
    if not isinstance(message, Mapping):
        raise StructuralInputError("Message must be a valid object")

    if not _is_nonempty_str(message.get("role")):
        raise StructuralInputError("Message must have a valid role", field="role")

    content = message.get("content")
    if _is_empty(content):
        raise StructuralInputError("Message must have content", field="content")

    if isinstance(content, str):
        return

    if not isinstance(content, list):
        raise StructuralInputError(
            "Message content must be either a string or an array of content parts",
            field="content",
        )

    for part_index, part in enumerate(content):
        if not isinstance(part, Mapping):
            raise StructuralInputError(
                f"Content part at index {part_index} must be a valid object",
                field="content",
            )
        part_type = part.get("type")
        if not _is_nonempty_str(part_type):
            raise StructuralInputError(
                f"Content part at index {part_index} must have a valid type",
                field="type",
            )
        validator = _PART_VALIDATORS.get(part_type)
        if validator is None:
            raise StructuralInputError(
                f"Unknown content part type: {part_type}",
                field="type",
            )
        validator(part, part_index)


def _validate_system(system: Any) -> None:
    if system is None or isinstance(system, str):
        return
    if not isinstance(system, list):
        raise StructuralInputError(
            "System must be a string or an array of text blocks",
            field="system",
        )
    for index, segment in enumerate(system):
        if not isinstance(segment, Mapping) or not isinstance(segment.get("text"), str):
            raise StructuralInputError(
                f"System block at index {index} must have a string text field",
                field="system",
            )


def _validate_tools(tools: Any) -> None:
    if tools is None:
        return
    if not isinstance(tools, list):
        raise StructuralInputError("Tools must be an array", field="tools")
    for index, tool in enumerate(tools):
        if not isinstance(tool, Mapping) or not _is_nonempty_str(tool.get("name")):
            raise StructuralInputError(
                f"Tool at index {index} must have a string name field",
                field="tools",
            )


def validate_conversation(payload: Any) -> None:
    """Validate a whole Messages request body before translation."""
    if payload is None:
        raise StructuralInputError("Request body is required")
    if not isinstance(payload, Mapping):
        raise StructuralInputError("Request body must be a JSON object")

    if not _is_nonempty_str(payload.get("model")):
        raise StructuralInputError(
            "Model is required and must be a string", field="model"
        )

    messages = payload.get("messages")
    if not isinstance(messages, list):
        raise StructuralInputError("Messages must be an array", field="messages")

    for index, message in enumerate(messages):
        try:
            validate_message(message)
        except StructuralInputError as exc:
            raise StructuralInputError(
                f"Invalid message at index {index}: {exc.message}",
                index=index,
                field=exc.field,
            ) from exc

    _validate_system(payload.get("system"))
    # Tools are discarded for models without tool support
    if supports_tools(map_model(payload["model"])):
        _validate_tools(payload.get("tools"))
