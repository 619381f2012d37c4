"""
Compatible-Mode HTTP Proxy

Streams ``/compatible-mode/v1/<path>`` requests to the upstream HTTP API and
streams the responses back, dropping hop-by-hop and CORS headers.
"""

from typing import Iterable

import httpx
import structlog
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask

from dashbridge.config import Settings, get_settings

logger = structlog.get_logger()

router = APIRouter()

REQUEST_HEADERS_BLOCKLIST = frozenset(
    {
        "host",
        "connection",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "origin",
        "referer",
    }
)

RESPONSE_HEADERS_BLOCKLIST = frozenset(
    {
        "connection",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "access-control-allow-origin",
        "access-control-allow-methods",
        "access-control-allow-headers",
        "access-control-allow-credentials",
        "access-control-expose-headers",
        "access-control-max-age",
    }
)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def filter_headers(
    headers: Iterable[tuple[bytes, bytes]], blocklist: frozenset[str]
) -> list[tuple[bytes, bytes]]:
    """Drop headers whose (case-insensitive) name is in ``blocklist``."""
    return [
        (name, value)
        for name, value in headers
        if name.decode("latin-1").lower() not in blocklist
    ]


def has_header(headers: Iterable[tuple[bytes, bytes]], name: str) -> bool:
    return any(key.decode("latin-1").lower() == name for key, _ in headers)


async def get_http_client(request: Request) -> httpx.AsyncClient:
    """Dependency returning the shared proxy client."""
    return request.app.state.http_client


@router.api_route("/compatible-mode/v1/{path:path}", methods=PROXY_METHODS)
async def compatible_mode_proxy(
    path: str,
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Forward any request to the upstream compatible-mode API."""
    target_url = f"{settings.upstream_http_base_url.rstrip('/')}/{path}"
    if request.url.query:
        target_url = f"{target_url}?{request.url.query}"

    headers = filter_headers(request.headers.raw, REQUEST_HEADERS_BLOCKLIST)

    # Only inject the configured key when the caller brought none
    if not has_header(headers, "authorization") and settings.dashscope_api_key:
        headers.append(
            (b"authorization", f"Bearer {settings.dashscope_api_key}".encode("latin-1"))
        )

    content = None
    if request.method not in ("GET", "HEAD"):
        content = request.stream()

    upstream_request = client.build_request(
        request.method,
        target_url,
        headers=headers,
        content=content,
    )

    try:
        upstream_response = await client.send(upstream_request, stream=True)
    except httpx.HTTPError as e:
        logger.error(
            "Upstream request failed",
            method=request.method,
            path=path,
            error=str(e),
        )
        return PlainTextResponse(str(e), status_code=502)

    response = StreamingResponse(
        upstream_response.aiter_raw(),
        status_code=upstream_response.status_code,
        background=BackgroundTask(upstream_response.aclose),
    )
    response.raw_headers = filter_headers(
        upstream_response.headers.raw, RESPONSE_HEADERS_BLOCKLIST
    )
    return response
