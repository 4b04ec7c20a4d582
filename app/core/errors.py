from __future__ import annotations

import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


@dataclass
class ServiceError(Exception):
    """Base class for domain failures raised by the service layer."""

    message: str
    code: str = "service_error"
    details: dict = field(default_factory=dict)

    status_code = 400

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationError(ServiceError):
    code: str = "validation_error"

    status_code = 400


@dataclass
class AuthenticationError(ServiceError):
    code: str = "unauthorized"

    status_code = 401


@dataclass
class AuthorizationError(ServiceError):
    code: str = "forbidden"

    status_code = 403


@dataclass
class NotFoundError(ServiceError):
    code: str = "not_found"

    status_code = 404


@dataclass
class ConflictError(ServiceError):
    code: str = "concurrent_update"

    status_code = 409


@dataclass
class PersistenceError(ServiceError):
    code: str = "persistence_error"

    status_code = 500


HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    422: "unprocessable_entity",
    429: "rate_limited",
}
# Request sections FastAPI prefixes onto validation locations.
REQUEST_SECTIONS = frozenset({"body", "query", "path", "header"})


def _phrase(status_code: int, fallback: str = "Request failed") -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return fallback


def _as_details(raw: Any) -> dict:
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, list):
        return {"errors": raw}
    return {"detail": str(raw)}


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: dict | None = None,
) -> JSONResponse:
    body = {"code": code, "message": message, "data": None, "details": _as_details(details)}
    response = JSONResponse(status_code=status_code, content=jsonable_encoder(body))
    if headers:
        response.headers.update(headers)
    return response


def _unpack_http_detail(detail: Any, status_code: int) -> tuple[str, str, Any]:
    code = HTTP_ERROR_CODES.get(status_code, "http_error")
    if isinstance(detail, str):
        return code, detail, {"detail": detail}
    if not isinstance(detail, dict):
        return code, _phrase(status_code), detail
    message = detail.get("message") or detail.get("detail") or _phrase(status_code)
    if "details" in detail:
        extra = detail["details"]
    else:
        extra = {k: v for k, v in detail.items() if k not in {"code", "message", "detail"}} or {"detail": message}
    return detail.get("code") or code, message, extra


def _first_error_message(errors: list[dict]) -> str:
    if not errors:
        return "Validation failed"
    first = errors[0] or {}
    msg = str(first.get("msg") or "Validation failed")
    path = ".".join(str(part) for part in first.get("loc") or () if part not in REQUEST_SECTIONS)
    return f"{path}: {msg}" if path else msg


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code, message, details = _unpack_http_detail(exc.detail, exc.status_code)
    return error_response(exc.status_code, code, message, details, getattr(exc, "headers", None))


async def service_exception_handler(request: Request, exc: ServiceError) -> JSONResponse:
    # Database detail for persistence failures stays in the server log.
    details = {} if isinstance(exc, PersistenceError) else exc.details
    return error_response(exc.status_code, exc.code, exc.message, details)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    return error_response(422, "validation_error", _first_error_message(errors), {"errors": errors})


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.info("rate limit hit on %s %s", request.method, request.url.path)
    return error_response(
        429,
        "rate_limited",
        _phrase(429),
        getattr(exc, "detail", None),
        getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "internal_server_error", "Internal server error")


def register_exception_handlers(app) -> None:
    handlers = {
        StarletteHTTPException: http_exception_handler,
        RequestValidationError: validation_exception_handler,
        ServiceError: service_exception_handler,
        RateLimitExceeded: rate_limit_exception_handler,
        Exception: unhandled_exception_handler,
    }
    for exc_class, handler in handlers.items():
        app.add_exception_handler(exc_class, handler)
