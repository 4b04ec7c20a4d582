from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

# Docs endpoints must keep their raw payloads.
SKIP_PATHS = frozenset({"/openapi.json", "/docs", "/redoc"})
DROPPED_HEADERS = frozenset({"content-length", "content-type"})
SUCCESS_CODES = {200: "ok", 201: "created", 202: "accepted"}


def success_envelope(data: Any, status_code: int = 200) -> dict[str, Any]:
    try:
        message = HTTPStatus(status_code).phrase
    except ValueError:
        message = "Success"
    return {
        "code": SUCCESS_CODES.get(status_code, "ok"),
        "message": message,
        "data": data,
        "details": {},
    }


def already_wrapped(payload: Any) -> bool:
    return (
        isinstance(payload, dict)
        and {"code", "message"} <= payload.keys()
        and ("data" in payload or "details" in payload)
    )


async def _read_body(response: Response) -> bytes:
    chunks = []
    async for chunk in response.body_iterator:
        chunks.append(chunk if isinstance(chunk, bytes) else chunk.encode("utf-8"))
    return b"".join(chunks)


def _json_response(original: Response, content: Any, status_code: int) -> JSONResponse:
    wrapped = JSONResponse(status_code=status_code, content=content)
    for name, value in original.headers.items():
        if name.lower() not in DROPPED_HEADERS:
            wrapped.headers[name] = value
    return wrapped


class ResponseEnvelopeMiddleware(BaseHTTPMiddleware):
    """Wrap 2xx JSON bodies as ``{code, message, data, details}``.

    Error responses are already shaped by the exception handlers, so only
    successful responses pass through here. A 204 becomes a 200 with
    ``data: null`` so clients always get a body.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        if request.url.path in SKIP_PATHS or not 200 <= response.status_code < 300:
            return response
        if response.status_code == HTTPStatus.NO_CONTENT:
            return _json_response(response, success_envelope(None), 200)
        if not response.headers.get("content-type", "").startswith("application/json"):
            return response

        raw = await _read_body(response)
        try:
            payload = json.loads(raw) if raw else None
        except ValueError:
            return Response(
                content=raw,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type,
            )
        if not already_wrapped(payload):
            payload = success_envelope(payload, response.status_code)
        return _json_response(response, payload, response.status_code)


def register_response_envelope(app) -> None:
    app.add_middleware(ResponseEnvelopeMiddleware)
