"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Generator

import httpx
import pytest
from fastapi import FastAPI

# Make the package importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from orbridge.config_loader import Settings  # noqa: E402

UPSTREAM_HOST = "upstream.local"
UPSTREAM_BASE_URL = f"http://{UPSTREAM_HOST}/api/v1"


# =============================================================================
# Transport Registry Fixtures
# =============================================================================


@pytest.fixture
def clear_transport_registry() -> Generator[None, None, None]:
    """Clear the upstream transport registry after the test."""
    from orbridge.core.upstream_transport import clear_upstream_transports

    yield
    clear_upstream_transports()


@pytest.fixture
def upstream(clear_transport_registry: None) -> Any:
    """A FakeUpstream registered for ``upstream.local``."""
    from orbridge.core.upstream_transport import register_upstream_transport
    from orbridge.testing import FakeUpstream

    fake = FakeUpstream()
    register_upstream_transport(UPSTREAM_HOST, httpx.ASGITransport(app=fake.app))
    return fake


def build_settings(**overrides: Any) -> Settings:
    """Settings pointing at the fake upstream."""
    values: dict[str, Any] = {
        "base_url": UPSTREAM_BASE_URL,
        "default_provider": None,
        "timeout_seconds": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def make_app() -> Any:
    """Factory building the bridge app with test settings."""
    from orbridge.main import create_app

    def factory(**overrides: Any) -> FastAPI:
        return create_app(build_settings(**overrides))

    return factory


@asynccontextmanager
async def bridge_client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://bridge.local",
    ) as client:
        yield client


# =============================================================================
# Payload builders
# =============================================================================


def tool_use(tool_id: str, name: str = "search", **tool_input: Any) -> dict[str, Any]:
    return {"type": "tool_use", "id": tool_id, "name": name, "input": tool_input or {"q": "x"}}


def tool_result(tool_use_id: str, content: Any = "result") -> dict[str, Any]:
    return {"type": "tool_result", "tool_use_id": tool_use_id, "content": content}


def text(value: str) -> dict[str, Any]:
    return {"type": "text", "text": value}


def assistant_call(call_id: str, content: str | None = None) -> dict[str, Any]:
    """OpenAI-format assistant message issuing one tool call."""
    return {
        "role": "assistant",
        "content": content,
        "tool_calls": [
            {
                "id": call_id,
                "type": "function",
                "function": {"name": "search", "arguments": "{}"},
            }
        ],
    }


def tool_message(call_id: str, content: str = "ok") -> dict[str, Any]:
    return {"role": "tool", "tool_call_id": call_id, "content": content}


def assert_tool_pairing(messages: list[dict[str, Any]]) -> None:
    """Assert every tool call is answered in the adjacent tool run and vice versa."""
    for index, message in enumerate(messages):
        if message.get("role") == "assistant":
            assert message.get("content") or message.get("tool_calls"), message
            if not message.get("tool_calls"):
                continue
            answered = set()
            cursor = index + 1
            while cursor < len(messages) and messages[cursor]["role"] == "tool":
                answered.add(messages[cursor]["tool_call_id"])
                cursor += 1
            for call in message["tool_calls"]:
                assert call["id"] in answered, f"unanswered call {call['id']}"
        elif message.get("role") == "tool":
            cursor = index - 1
            while cursor >= 0 and messages[cursor]["role"] == "tool":
                cursor -= 1
            assert cursor >= 0, f"orphan tool result {message['tool_call_id']}"
            issuer = messages[cursor]
            assert issuer["role"] == "assistant"
            assert message["tool_call_id"] in {c["id"] for c in issuer.get("tool_calls", [])}
