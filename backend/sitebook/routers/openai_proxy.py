"""
Pass-through to the OpenAI-compatible API for clients that call it directly.
The server adds its own bearer key, so the key never reaches the browser.
"""
import logging

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from sitebook.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/openai", tags=["ai-entry"])

# hop-by-hop and credential headers are never forwarded
_DROP_REQUEST_HEADERS = {"host", "authorization", "content-length", "connection", "accept-encoding", "cookie"}
_DROP_RESPONSE_HEADERS = {"content-length", "content-encoding", "transfer-encoding", "connection"}


@router.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"], include_in_schema=False)
async def proxy(path: str, request: Request):
    if not settings.openai_api_key:
        return JSONResponse(status_code=503, content={"error": "OPENAI_API_KEY is not configured"})
    url = f"{settings.openai_base_url.rstrip('/')}/{path}"
    headers = {k: v for k, v in request.headers.items() if k.lower() not in _DROP_REQUEST_HEADERS}
    headers["Authorization"] = f"Bearer {settings.openai_api_key}"
    body = await request.body()
    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(settings.openai_timeout_seconds)) as client:
            upstream = await client.request(
                request.method, url, params=request.query_params, headers=headers, content=body,
            )
    except httpx.HTTPError as e:
        logger.warning("OpenAI proxy request to /%s failed: %s", path, e)
        return JSONResponse(status_code=500, content={"error": str(e) or e.__class__.__name__})
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        headers={k: v for k, v in upstream.headers.items() if k.lower() not in _DROP_RESPONSE_HEADERS},
    )
