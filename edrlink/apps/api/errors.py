from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from edrlink.core.errors import EdrLinkError


logger = logging.getLogger(__name__)

_DEFAULT_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "AUTH_UNAUTHORIZED",
    403: "AUTH_FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def _default_code(status_code: int) -> str:
    # Map status codes to fallback error codes when none are provided.
    return _DEFAULT_ERROR_CODES.get(status_code, "UNKNOWN_ERROR")


def _split_detail(detail: Any, status_code: int) -> tuple[str, str, dict[str, Any] | None]:
    # Extract code/message/details from HTTPException detail payloads.
    if isinstance(detail, dict):
        code = str(detail.get("code") or _default_code(status_code))
        message = str(detail.get("message") or "Request failed")
        details = {k: v for k, v in detail.items() if k not in {"code", "message"}}
        return code, message, details or None
    if isinstance(detail, str):
        return _default_code(status_code), detail, None
    return _default_code(status_code), "Request failed", None


def error_payload(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    # Flat {error, code} body; the dashboard branches on code.
    payload: dict[str, Any] = {"error": message, "code": code}
    if details:
        payload.update({k: v for k, v in details.items() if k not in payload})
    return payload


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    code, message, details = _split_detail(exc.detail, exc.status_code)
    payload = error_payload(code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=exc.status_code, headers=exc.headers)


async def starlette_http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    # Ensure Starlette-raised exceptions (404/405) share the same body shape.
    code, message, details = _split_detail(exc.detail, exc.status_code)
    payload = error_payload(code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=exc.status_code, headers=exc.headers)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Malformed bodies are client errors; keep the field list for UI parsing.
    payload = error_payload(
        code="REQUEST_VALIDATION_ERROR",
        message="Requisição inválida",
        details={"errors": exc.errors()},
    )
    return JSONResponse(content=jsonable_encoder(payload, custom_encoder={Exception: str}), status_code=400)


async def edrlink_exception_handler(request: Request, exc: EdrLinkError) -> JSONResponse:
    # Domain and vendor errors carry their own status and machine-readable code.
    if exc.status_code >= 500:
        logger.error(
            "request_failed path=%s code=%s error=%s",
            request.url.path,
            exc.code,
            exc.message,
            exc_info=exc,
        )
    else:
        logger.info("request_rejected path=%s code=%s", request.url.path, exc.code)
    payload = error_payload(code=exc.code, message=exc.message, details=exc.details or None)
    return JSONResponse(content=payload, status_code=exc.status_code)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Avoid leaking stack traces; return a stable internal error body.
    logger.exception("unhandled_error path=%s", request.url.path, exc_info=exc)
    payload = error_payload(code="INTERNAL_ERROR", message="Erro interno do servidor")
    return JSONResponse(content=payload, status_code=500)


def bad_request(message: str, *, code: str = "BAD_REQUEST") -> HTTPException:
    # Route-level input checks share the domain error body shape.
    return HTTPException(status_code=400, detail={"code": code, "message": message})
