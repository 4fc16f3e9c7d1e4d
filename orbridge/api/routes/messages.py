"""Anthropic-compatible Messages API endpoint."""

import json
import logging
import time
import uuid
from typing import Any, Mapping, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from ...config_loader import Settings
from ...core import (
    TranslationError,
    UpstreamError,
    extract_bearer_token,
    forward_json,
)
from ...messages import (
    chat_completion_to_messages,
    get_provider_directive,
    messages_to_chat_completions,
    resolve_provider_directive,
)

logger = logging.getLogger("orbridge")

CHAT_COMPLETIONS_ENDPOINT = "/chat/completions"


def _anthropic_error_response(
    message: str,
    *,
    error_type: str = "invalid_request_error",
    status_code: int = 400,
    error_code: Optional[str] = None,
    param: Optional[str] = None,
) -> JSONResponse:
    error: dict[str, Any] = {"type": error_type, "message": message}
    if error_code:
        error["code"] = error_code
    if param:
        error["param"] = param
    payload = {"type": "error", "error": error}
    return JSONResponse(payload, status_code=status_code)


def _translate_response(response: Response, model: str, req_id: str) -> Response:
    """Turn a buffered chat completion into an Anthropic message."""
    try:
        completion = json.loads(response.body)
    except json.JSONDecodeError as exc:
        logger.error(f"[{req_id}] Failed to parse upstream response: {exc}")
        # Return the original response if we can't parse it
        return response

    if not isinstance(completion, Mapping):
        return response

    message = chat_completion_to_messages(completion)
    message["id"] = f"msg_{uuid.uuid4().hex[:24]}"
    message["model"] = message["model"] or model
    return JSONResponse(message, status_code=response.status_code)


async def messages_endpoint(request: Request) -> Response:
    """POST /v1/messages - Anthropic Messages API compatible endpoint."""
    req_id = uuid.uuid4().hex[:8]
    start_time = time.perf_counter()
    settings: Settings = request.app.state.settings

    client_host = request.client.host if request.client else "unknown"
    logger.info(
        f"[{req_id}] Messages API request from {client_host}, "
        f"Content-Length: {request.headers.get('content-length', 'not-set')}"
    )

    body = await request.body()
    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError:
        return _anthropic_error_response("Invalid JSON payload", error_code="invalid_json")

    provider = resolve_provider_directive(payload, request.headers) if isinstance(payload, Mapping) else None

    try:
        openai_payload = messages_to_chat_completions(payload, provider=provider)
    except TranslationError as exc:
        logger.warning(f"[{req_id}] Rejected messages request: {exc.message}")
        return _anthropic_error_response(
            exc.message,
            error_code=exc.code,
            param=getattr(exc, "field", None),
        )

    if "provider" not in openai_payload:
        default_directive = get_provider_directive(settings.default_provider)
        if default_directive is not None:
            openai_payload["provider"] = default_directive

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            f"[{req_id}] Translated to OpenAI format: model={openai_payload.get('model')}, "
            f"messages_count={len(openai_payload['messages'])}, "
            f"tools={len(openai_payload.get('tools') or [])}, "
            f"provider={openai_payload.get('provider')}"
        )

    try:
        response = await forward_json(
            settings.base_url,
            CHAT_COMPLETIONS_ENDPOINT,
            openai_payload,
            bearer_token=extract_bearer_token(request.headers),
            timeout=settings.timeout_seconds,
        )
    except UpstreamError as exc:
        elapsed = time.perf_counter() - start_time
        logger.error(f"[{req_id}] Upstream error after {elapsed:.3f}s: {exc.message}")
        return _anthropic_error_response(
            exc.message,
            error_type="api_error",
            status_code=502,
            error_code="upstream_error",
        )

    elapsed = time.perf_counter() - start_time
    if isinstance(response, StreamingResponse):
        logger.info(
            f"[{req_id}] Streaming response for {openai_payload['model']}, "
            f"setup took {elapsed:.3f}s"
        )
        return response

    logger.info(
        f"[{req_id}] Completed response for {openai_payload['model']}, "
        f"status={response.status_code}, took {elapsed:.3f}s"
    )
    if response.status_code >= 400:
        return response
    return _translate_response(response, openai_payload["model"], req_id)
