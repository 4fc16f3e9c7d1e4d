"""Tests for the OpenAI-compatible /oai passthrough routes."""

from __future__ import annotations

import pytest

from conftest import assistant_call, bridge_client, tool_message
from orbridge.api.routes.oai import prepare_oai_payload
from orbridge.testing import UpstreamResponse

CHIMERA = "tngtech/deepseek-r1t2-chimera:free"


class TestPrepareOaiPayload:
    def test_body_key_is_replaced_by_directive(self):
        payload = prepare_oai_payload({"model": "x/y", "provider": "z-ai/glm-4.5-air:free"}, {})
        assert payload["provider"]["only"] == ["z-ai"]

    def test_inline_body_object_is_kept(self):
        payload = prepare_oai_payload(
            {"model": "x/y", "provider": {"sort": "price"}}, {"X-Provider": "z-ai/glm-4.6:exacto"}
        )
        assert payload["provider"] == {"sort": "price"}

    def test_unknown_body_key_is_left_alone(self):
        payload = prepare_oai_payload({"model": "x/y", "provider": "unknown"}, {}, "z-ai/glm-4.6:exacto")
        assert payload["provider"] == "unknown"

    def test_no_directive(self):
        assert "provider" not in prepare_oai_payload({"model": "x/y"}, {})

    def test_chimera_strips_tools(self):
        payload = prepare_oai_payload(
            {
                "model": CHIMERA,
                "tools": [{"type": "function", "function": {"name": "search"}}],
                "messages": [
                    {"role": "user", "content": "q"},
                    assistant_call("t1", "Looking"),
                    tool_message("t1"),
                    assistant_call("t2"),
                ],
            },
            {},
        )

        assert "tools" not in payload
        assert payload["messages"] == [
            {"role": "user", "content": "q"},
            {"role": "assistant", "content": "Looking"},
        ]

    def test_opus_alias_counts_as_chimera(self):
        payload = prepare_oai_payload(
            {"model": "claude-3-opus", "tools": [{}], "messages": []}, {}
        )
        assert "tools" not in payload

    def test_other_models_keep_tools(self):
        payload = prepare_oai_payload(
            {"model": "openai/gpt-4o", "tools": [{}], "messages": [tool_message("orphan")]}, {}
        )
        assert payload["tools"] == [{}]
        assert payload["messages"] == [tool_message("orphan")]


@pytest.mark.asyncio
async def test_chat_completions_forwarded_with_provider(upstream, make_app) -> None:
    upstream.enqueue_chat_response("hi")

    async with bridge_client(make_app()) as client:
        response = await client.post(
            "/oai/v1/chat/completions",
            json={"model": "openai/gpt-4o", "messages": [{"role": "user", "content": "hi"}]},
            headers={"X-OpenRouter-Provider": "z-ai/glm-4.6:exacto", "X-Api-Key": "sk-1"},
        )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert response.json()["choices"][0]["message"]["content"] == "hi"

    sent = upstream.last_request
    assert sent["path"] == "/api/v1/chat/completions"
    assert sent["headers"]["authorization"] == "Bearer sk-1"
    assert sent["json"]["provider"]["data_collection"] == "deny"
    assert sent["json"]["model"] == "openai/gpt-4o"


@pytest.mark.asyncio
async def test_responses_endpoint_uses_default_provider(upstream, make_app) -> None:
    upstream.enqueue_chat_response("hi")

    async with bridge_client(make_app(default_provider="z-ai/glm-4.5-air:free")) as client:
        await client.post("/oai/v1/responses", json={"model": "x/y", "input": "hello"})

    sent = upstream.last_request
    assert sent["path"] == "/api/v1/responses"
    assert sent["json"]["input"] == "hello"
    assert sent["json"]["provider"]["only"] == ["z-ai"]


@pytest.mark.asyncio
async def test_event_stream_from_upstream_is_streamed(upstream, make_app) -> None:
    upstream.enqueue_chat_stream(["a", "b"])

    async with bridge_client(make_app()) as client:
        response = await client.post(
            "/oai/v1/chat/completions",
            json={"model": "x/y", "messages": [{"role": "user", "content": "hi"}]},
        )

    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert "data: [DONE]" in response.text


@pytest.mark.asyncio
async def test_upstream_error_body_returned(upstream, make_app) -> None:
    upstream.enqueue_error(401, "bad key")

    async with bridge_client(make_app()) as client:
        response = await client.post(
            "/oai/v1/chat/completions",
            json={"model": "x/y", "messages": []},
        )

    assert response.status_code == 401
    assert "bad key" in response.text


@pytest.mark.asyncio
async def test_invalid_json_body(upstream, make_app) -> None:
    async with bridge_client(make_app()) as client:
        response = await client.post(
            "/oai/v1/chat/completions",
            content=b"nope",
            headers={"content-type": "application/json"},
        )

    assert response.status_code == 400
    assert response.json() == {
        "error": {"message": "Invalid JSON body", "type": "invalid_request_error", "code": "invalid_json"}
    }


@pytest.mark.asyncio
async def test_models_listing_is_forwarded(upstream, make_app) -> None:
    upstream.enqueue(UpstreamResponse(json_body={"data": [{"id": "z-ai/glm-4.6"}]}))
    upstream.enqueue(UpstreamResponse(json_body={"id": "z-ai/glm-4.6"}))

    async with bridge_client(make_app()) as client:
        listing = await client.get("/oai/v1/models?category=programming", headers={"X-Api-Key": "k"})
        single = await client.get("/oai/v1/models/z-ai/glm-4.6")

    assert listing.json() == {"data": [{"id": "z-ai/glm-4.6"}]}
    assert single.json() == {"id": "z-ai/glm-4.6"}

    first, second = upstream.received
    assert first["method"] == "GET"
    assert first["path"] == "/api/v1/models"
    assert first["query"] == "category=programming"
    assert first["headers"]["authorization"] == "Bearer k"
    assert "content-type" not in first["headers"]
    assert second["path"] == "/api/v1/models/z-ai/glm-4.6"


@pytest.mark.asyncio
async def test_unusable_provider_header_keeps_default(upstream, make_app) -> None:
    upstream.enqueue_chat_response("hi")

    async with bridge_client(make_app(default_provider="minimax/minimax-m2")) as client:
        await client.post(
            "/oai/v1/chat/completions",
            json={"model": "x/y", "messages": [{"role": "user", "content": "hi"}]},
            headers={"X-Provider": "not json"},
        )

    assert upstream.last_request["json"]["provider"]["only"] == ["minimax"]
