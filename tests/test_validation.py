"""Tests for structural validation of Messages requests."""

import pytest

from conftest import text, tool_result, tool_use
from orbridge.core.exceptions import StructuralInputError
from orbridge.messages.validation import validate_conversation, validate_message


def _conversation(*messages, **extra):
    return {"model": "claude-3-haiku", "messages": list(messages), **extra}


class TestValidateConversation:
    def test_valid_conversation(self):
        validate_conversation(
            _conversation(
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": [text("ok"), tool_use("t1")]},
                {"role": "user", "content": [tool_result("t1", {"a": 1})]},
                system=[text("s")],
                tools=[{"name": "search"}],
            )
        )

    def test_empty_messages_are_allowed(self):
        validate_conversation(_conversation())

    def test_missing_body(self):
        with pytest.raises(StructuralInputError, match="Request body is required"):
            validate_conversation(None)

    def test_body_must_be_object(self):
        with pytest.raises(StructuralInputError, match="JSON object"):
            validate_conversation(["not", "an", "object"])

    @pytest.mark.parametrize("model", [None, "", 42])
    def test_model_must_be_string(self, model):
        with pytest.raises(StructuralInputError) as exc_info:
            validate_conversation({"model": model, "messages": []})
        assert exc_info.value.field == "model"

    @pytest.mark.parametrize("messages", [None, "hi", {"role": "user"}])
    def test_messages_must_be_list(self, messages):
        with pytest.raises(StructuralInputError) as exc_info:
            validate_conversation({"model": "m", "messages": messages})
        assert exc_info.value.field == "messages"

    def test_error_identifies_message_index(self):
        with pytest.raises(StructuralInputError) as exc_info:
            validate_conversation(
                _conversation(
                    {"role": "user", "content": "fine"},
                    {"role": "assistant", "content": [{"type": "tool_use", "id": "t1", "input": {}}]},
                )
            )

        error = exc_info.value
        assert error.index == 1
        assert error.field == "name"
        assert error.message.startswith("Invalid message at index 1:")

    def test_system_blocks_need_text(self):
        with pytest.raises(StructuralInputError) as exc_info:
            validate_conversation(_conversation(system=[{"type": "text"}]))
        assert exc_info.value.field == "system"

    def test_system_of_wrong_type(self):
        with pytest.raises(StructuralInputError):
            validate_conversation(_conversation(system=12))

    @pytest.mark.parametrize("tools", ["search", [{"description": "no name"}], ["search"]])
    def test_tools_shape(self, tools):
        with pytest.raises(StructuralInputError) as exc_info:
            validate_conversation(_conversation(tools=tools))
        assert exc_info.value.field == "tools"

    @pytest.mark.parametrize("model", ["claude-3-opus", "tngtech/deepseek-r1t2-chimera:free"])
    def test_tools_ignored_for_models_without_tool_support(self, model):
        validate_conversation({"model": model, "messages": [], "tools": ["search", {"no": "name"}]})


class TestValidateMessage:
    @pytest.mark.parametrize(
        "message, field",
        [
            ({"content": "hi"}, "role"),
            ({"role": 3, "content": "hi"}, "role"),
            ({"role": "user"}, "content"),
            ({"role": "user", "content": ""}, "content"),
            ({"role": "user", "content": 5}, "content"),
            ({"role": "user", "content": ["text"]}, "content"),
            ({"role": "user", "content": [{"text": "no type"}]}, "type"),
            ({"role": "user", "content": [{"type": "image"}]}, "type"),
            ({"role": "user", "content": [{"type": "text", "text": 1}]}, "text"),
            ({"role": "assistant", "content": [{"type": "tool_use", "name": "n", "input": {}}]}, "id"),
            ({"role": "assistant", "content": [{"type": "tool_use", "id": "t", "name": "n"}]}, "input"),
            (
                {"role": "assistant", "content": [{"type": "tool_use", "id": "t", "name": "n", "input": "x"}]},
                "input",
            ),
            ({"role": "user", "content": [{"type": "tool_result", "content": "r"}]}, "tool_use_id"),
            ({"role": "user", "content": [{"type": "tool_result", "tool_use_id": "t"}]}, "content"),
            (
                {"role": "user", "content": [{"type": "tool_result", "tool_use_id": "t", "content": ""}]},
                "content",
            ),
        ],
    )
    def test_invalid_messages(self, message, field):
        with pytest.raises(StructuralInputError) as exc_info:
            validate_message(message)
        assert exc_info.value.field == field

    def test_not_an_object(self):
        with pytest.raises(StructuralInputError, match="valid object"):
            validate_message("hello")

    def test_unknown_part_type_is_named(self):
        with pytest.raises(StructuralInputError, match="Unknown content part type: image"):
            validate_message({"role": "user", "content": [text("a"), {"type": "image"}]})

    def test_part_index_in_message(self):
        with pytest.raises(StructuralInputError, match="index 2"):
            validate_message({"role": "user", "content": [text("a"), text("b"), {"type": "text"}]})

    def test_empty_input_object_is_valid(self):
        validate_message({"role": "assistant", "content": [{"type": "tool_use", "id": "t", "name": "n", "input": {}}]})

    def test_empty_block_list_is_valid(self):
        validate_message({"role": "user", "content": []})
