"""OpenAI-compatible passthrough routes under /oai.

Endpoints:
- POST /oai/v1/chat/completions -> {base_url}/chat/completions
- POST /oai/v1/responses        -> {base_url}/responses
- GET  /oai/v1/models[/{id}]    -> {base_url}/models[/{id}]

Bodies are already in OpenAI format; the only rewrites are provider
directive injection and tool stripping for models without tool support.
"""

import json
import logging
import uuid
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from ...config_loader import Settings
from ...core import UpstreamError, extract_bearer_token, forward_get, forward_json
from ...messages import map_model, resolve_provider_directive, strip_tool_support, supports_tools

logger = logging.getLogger("orbridge")

OAI_CHAT_PATH = "/oai/v1/chat/completions"
OAI_RESPONSES_PATH = "/oai/v1/responses"
OAI_MODELS_PATH = "/oai/v1/models"


def _openai_error_response(message: str, *, status_code: int = 400, code: str = "invalid_request") -> JSONResponse:
    return JSONResponse(
        {"error": {"message": message, "type": "invalid_request_error", "code": code}},
        status_code=status_code,
    )


def prepare_oai_payload(
    payload: dict[str, Any],
    headers: Any,
    default_provider: Any = None,
) -> dict[str, Any]:
    """Inject the resolved provider directive and strip tools where needed.

    The payload is modified in place and returned.
    """
    directive = resolve_provider_directive(payload, headers, default_provider)
    if directive is not None and not isinstance(payload.get("provider"), dict):
        payload["provider"] = directive

    model = payload.get("model")
    if isinstance(model, str) and not supports_tools(map_model(model)):
        logger.info("Model %s does not support tools; stripping tool use", model)
        payload.pop("tools", None)
        if isinstance(payload.get("messages"), list):
            payload["messages"] = strip_tool_support(payload["messages"])

    return payload


async def _forward_post(request: Request, endpoint: str) -> Response:
    req_id = uuid.uuid4().hex[:8]
    settings: Settings = request.app.state.settings
    logger.info(f"[{req_id}] Handling POST {request.url.path}")

    body = await request.body()
    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError:
        return _openai_error_response("Invalid JSON body", code="invalid_json")
    if not isinstance(payload, dict):
        return _openai_error_response("Request body must be a JSON object", code="invalid_json_shape")

    payload = prepare_oai_payload(payload, request.headers, settings.default_provider)

    try:
        return await forward_json(
            settings.base_url,
            endpoint,
            payload,
            bearer_token=extract_bearer_token(request.headers),
            timeout=settings.timeout_seconds,
        )
    except UpstreamError as exc:
        logger.error(f"[{req_id}] Upstream error: {exc.message}")
        return _openai_error_response(exc.message, status_code=502, code="upstream_error")


async def oai_chat_completions(request: Request) -> Response:
    """POST /oai/v1/chat/completions."""
    return await _forward_post(request, "/chat/completions")


async def oai_responses(request: Request) -> Response:
    """POST /oai/v1/responses."""
    return await _forward_post(request, "/responses")


async def oai_models(request: Request) -> Response:
    """GET /oai/v1/models and /oai/v1/models/{model_id}, forwarded verbatim."""
    settings: Settings = request.app.state.settings
    suffix = request.url.path[len(OAI_MODELS_PATH):]
    try:
        return await forward_get(
            settings.base_url,
            f"/models{suffix}",
            query=request.url.query,
            bearer_token=extract_bearer_token(request.headers),
            timeout=settings.timeout_seconds,
        )
    except UpstreamError as exc:
        logger.error(f"Upstream error listing models: {exc.message}")
        return _openai_error_response(exc.message, status_code=502, code="upstream_error")
