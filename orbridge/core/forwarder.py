"""Forwarding of translated payloads to the OpenRouter API.

Bodies are relayed without inspection. A response is streamed back as SSE
when the caller asked for ``stream: true`` or when upstream answers with
``text/event-stream``; otherwise it is buffered.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Mapping, Optional

import httpx
from fastapi.responses import Response, StreamingResponse

from .exceptions import ProxyError
from .headers import build_forward_headers, filter_response_headers
from .upstream_transport import get_upstream_transport

logger = logging.getLogger("orbridge.forwarder")

SSE_MEDIA_TYPE = "text/event-stream"
DEFAULT_MEDIA_TYPE = "application/json"


class UpstreamError(ProxyError):
    """Raised when the upstream cannot be reached or the transfer fails."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


def format_httpx_error(exc: httpx.HTTPError, url: str, timeout: Optional[float]) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)
    parts.append(f"url={url}")
    if isinstance(exc, httpx.TimeoutException) and timeout:
        parts.append(f"timeout={timeout}s")
    return "; ".join(parts)


def build_upstream_url(base_url: str, endpoint: str, query: str = "") -> str:
    url = f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"
    if query:
        url = f"{url}?{query}"
    return url


def _build_client(url: str, timeout: Optional[float]) -> httpx.AsyncClient:
    # Reads are unbounded so long generations and streams are never cut off
    client_timeout = httpx.Timeout(connect=timeout, read=None, write=timeout, pool=timeout)
    return httpx.AsyncClient(
        timeout=client_timeout,
        transport=get_upstream_transport(url),
        follow_redirects=True,
    )


async def _send(
    method: str,
    url: str,
    *,
    headers: Mapping[str, str],
    content: Optional[bytes],
    timeout: Optional[float],
) -> tuple[httpx.AsyncClient, httpx.Response]:
    client = _build_client(url, timeout)
    try:
        request = client.build_request(method, url, headers=dict(headers), content=content)
        response = await client.send(request, stream=True)
    except httpx.HTTPError as exc:
        await client.aclose()
        description = format_httpx_error(exc, url, timeout)
        logger.error("Upstream request failed: %s", description)
        raise UpstreamError(description, url) from exc
    return client, response


async def _close(client: httpx.AsyncClient, response: httpx.Response) -> None:
    await response.aclose()
    await client.aclose()


async def _buffered(
    client: httpx.AsyncClient, response: httpx.Response, url: str, timeout: Optional[float]
) -> bytes:
    try:
        return await response.aread()
    except httpx.HTTPError as exc:
        raise UpstreamError(format_httpx_error(exc, url, timeout), url) from exc
    finally:
        await _close(client, response)


def _streaming_response(
    client: httpx.AsyncClient, response: httpx.Response
) -> StreamingResponse:
    async def relay() -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as exc:
            logger.warning("Upstream stream ended early: %s", exc)
        finally:
            await _close(client, response)

    headers = filter_response_headers(response.headers)
    headers.pop("content-type", None)
    headers.pop("Content-Type", None)
    headers["Cache-Control"] = "no-cache"
    headers["Connection"] = "keep-alive"
    return StreamingResponse(
        relay(),
        status_code=response.status_code,
        headers=headers,
        media_type=SSE_MEDIA_TYPE,
    )


async def forward_json(
    base_url: str,
    endpoint: str,
    payload: Mapping[str, Any],
    *,
    bearer_token: Optional[str],
    timeout: Optional[float] = None,
) -> Response:
    """POST ``payload`` to ``{base_url}{endpoint}`` and relay the answer.

    Non-2xx answers are returned as-is with upstream's status code.
    """
    url = build_upstream_url(base_url, endpoint)
    body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    wants_stream = payload.get("stream") is True

    logger.info("Forwarding POST %s (stream=%s, %d bytes)", url, wants_stream, len(body))
    client, response = await _send(
        "POST",
        url,
        headers=build_forward_headers(bearer_token),
        content=body,
        timeout=timeout,
    )

    content_type = response.headers.get("content-type", "")
    if not response.is_success:
        data = await _buffered(client, response, url, timeout)
        logger.warning("Upstream %s returned status %s", url, response.status_code)
        return Response(
            content=data,
            status_code=response.status_code,
            media_type=content_type or "text/plain",
        )

    if wants_stream or SSE_MEDIA_TYPE in content_type:
        logger.debug("Relaying event stream from %s", url)
        return _streaming_response(client, response)

    data = await _buffered(client, response, url, timeout)
    return Response(
        content=data,
        status_code=response.status_code,
        media_type=content_type or DEFAULT_MEDIA_TYPE,
    )


async def forward_get(
    base_url: str,
    endpoint: str,
    *,
    query: str = "",
    bearer_token: Optional[str],
    timeout: Optional[float] = None,
) -> Response:
    """GET ``{base_url}{endpoint}`` and relay status, headers and body."""
    url = build_upstream_url(base_url, endpoint, query)
    logger.info("Forwarding GET %s", url)
    client, response = await _send(
        "GET",
        url,
        headers=build_forward_headers(bearer_token, with_body=False),
        content=None,
        timeout=timeout,
    )
    data = await _buffered(client, response, url, timeout)
    if not response.is_success:
        return Response(content=data, status_code=response.status_code)
    return Response(
        content=data,
        status_code=response.status_code,
        headers=filter_response_headers(response.headers),
    )
