"""Tool-call pairing rules for OpenAI chat-completion message lists.

OpenAI-compatible upstreams reject an assistant ``tool_calls`` entry that is
not answered by a ``tool`` message, and a ``tool`` message that does not
answer a call. Both directions are enforced here with an immediate-adjacency
rule: results must sit in the contiguous run of ``tool`` messages directly
after the assistant message that issued the calls.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

logger = logging.getLogger("orbridge")


def _call_ids(message: Mapping[str, Any]) -> set[str]:
    return {call.get("id") for call in message.get("tool_calls") or ()}


def _following_result_ids(messages: Sequence[Mapping[str, Any]], start: int) -> set[str]:
    """Collect ``tool_call_id`` values of the tool run beginning at ``start``."""
    result_ids: set[str] = set()
    index = start
    while index < len(messages) and messages[index].get("role") == "tool":
        tool_call_id = messages[index].get("tool_call_id")
        if tool_call_id:
            result_ids.add(tool_call_id)
        index += 1
    return result_ids


def _issuing_message(
    messages: Sequence[Mapping[str, Any]], index: int
) -> Optional[Mapping[str, Any]]:
    """Return the first non-tool message before ``index``, skipping a tool run."""
    cursor = index - 1
    while cursor >= 0 and messages[cursor].get("role") == "tool":
        cursor -= 1
    if cursor < 0:
        return None
    return messages[cursor]


def validate_tool_calls(messages: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Drop unanswered tool calls and orphaned tool results.

    Returns a new list; the input messages are left untouched. Assistant
    messages that end up with neither content nor calls are dropped.
    """
    validated: list[dict[str, Any]] = []

    for index, message in enumerate(messages):
        role = message.get("role")

        if role == "assistant" and message.get("tool_calls"):
            answered = _following_result_ids(messages, index + 1)
            kept_calls = [
                call for call in message["tool_calls"] if call.get("id") in answered
            ]
            dropped = len(message["tool_calls"]) - len(kept_calls)
            if dropped:
                logger.debug(
                    "Dropping %d unanswered tool call(s) from assistant message %d",
                    dropped,
                    index,
                )

            current = {key: value for key, value in message.items() if key != "tool_calls"}
            if kept_calls:
                current["tool_calls"] = kept_calls
            if current.get("content") or kept_calls:
                validated.append(current)
            else:
                logger.debug("Dropping empty assistant message %d", index)

        elif role == "tool":
            issuer = _issuing_message(messages, index)
            tool_call_id = message.get("tool_call_id")
            if (
                tool_call_id
                and issuer is not None
                and issuer.get("role") == "assistant"
                and tool_call_id in _call_ids(issuer)
            ):
                validated.append(dict(message))
            else:
                logger.debug(
                    "Dropping orphaned tool result %r at %d",
                    tool_call_id,
                    index,
                )

        else:
            validated.append(dict(message))

    return validated


def strip_tool_support(messages: Sequence[Any]) -> list[Any]:
    """Remove every trace of tool use for models without tool support.

    ``tool`` messages are dropped, ``tool_calls`` are removed from assistant
    messages, and assistant messages left without content are dropped.
    Non-mapping entries pass through untouched.
    """
    stripped: list[Any] = []
    for message in messages:
        if not isinstance(message, Mapping):
            stripped.append(message)
            continue
        role = message.get("role")
        if role == "tool":
            continue
        if role == "assistant" and "tool_calls" in message:
            message = {key: value for key, value in message.items() if key != "tool_calls"}
            if not message.get("content"):
                continue
        stripped.append(dict(message))
    return stripped
