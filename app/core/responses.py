"""
Response envelope and error taxonomy.

Every JSON response is either ``{"success": true, "data"?, "message"?}`` or
``{"success": false, "error", "errorCode"?, "message"?, "details"?}``.
Services raise ``ApiError``; the handlers installed by
``install_exception_handlers`` turn it (and any stray ``HTTPException`` or
validation error) into the failure envelope.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from workspace_shared.schemas.common import ApiFailure, ApiSuccess

log = structlog.get_logger()

_STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "TOO_MANY_REQUESTS",
    500: "INTERNAL_ERROR",
}


class ApiError(HTTPException):
    """An HTTP error carrying a stable machine-readable code."""

    def __init__(
        self,
        status_code: int,
        error: str,
        error_code: Optional[str] = None,
        message: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(status_code=status_code, detail=error)
        self.error = error
        self.error_code = error_code or _STATUS_CODES.get(status_code)
        self.message = message
        self.details = details

    @classmethod
    def bad_request(cls, error: str, error_code: str, **kwargs) -> "ApiError":
        return cls(400, error, error_code, **kwargs)

    @classmethod
    def unauthorized(cls, error: str = "Unauthorized", **kwargs) -> "ApiError":
        return cls(401, error, "UNAUTHORIZED", **kwargs)

    @classmethod
    def forbidden(cls, error: str = "Forbidden", **kwargs) -> "ApiError":
        return cls(403, error, "FORBIDDEN", **kwargs)

    @classmethod
    def not_found(cls, error: str = "Not found", **kwargs) -> "ApiError":
        return cls(404, error, "NOT_FOUND", **kwargs)


def to_wire(value: Any) -> Any:
    """Serialize response models (or containers of them) with camelCase keys."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, dict):
        return {key: to_wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    return value


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    """Build a success envelope, dropping absent keys."""
    envelope = ApiSuccess(data=to_wire(data), message=message)
    return jsonable_encoder(envelope.model_dump(exclude_none=True))


def failure_body(
    error: str,
    error_code: Optional[str] = None,
    message: Optional[str] = None,
    details: Any = None,
) -> dict:
    body = ApiFailure(
        error=error, error_code=error_code, message=message, details=details
    )
    return jsonable_encoder(body.model_dump(by_alias=True, exclude_none=True))


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=failure_body(exc.error, exc.error_code, exc.message, exc.details),
        headers=exc.headers,
    )


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=failure_body(str(exc.detail), _STATUS_CODES.get(exc.status_code)),
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"type": err.get("type"), "loc": list(err.get("loc", ())), "msg": err.get("msg")}
        for err in exc.errors()
    ]
    first = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content=failure_body(
            "Validation failed",
            "VALIDATION_ERROR",
            message=first,
            details=errors,
        ),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("request.unhandled_error", path=request.url.path, method=request.method)
    return JSONResponse(
        status_code=500,
        content=failure_body("Internal server error", "INTERNAL_ERROR"),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
