"""Exception handlers that render every failure as an ErrorResponse.

Status Mapping
==============
::
    RequestValidationError   -> 400  INVALID_URL | INVALID_ALIAS | VALIDATION_ERROR
    UnauthorizedError        -> 401  UNAUTHORIZED
    LinkNotFoundError        -> 404  NOT_FOUND
    AliasConflictError       -> 409  ALIAS_CONFLICT
    LinkExpiredError         -> 410  EXPIRED_URL
    AliasGenerationError     -> 503  ALIAS_UNAVAILABLE
    anything else            -> 500  INTERNAL_ERROR
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shortlinks.config import get_settings
from shortlinks.dependencies import _service_manager
from shortlinks.enums import ErrorCode
from shortlinks.exceptions import LinkError
from shortlinks.schemas import ErrorResponse

__all__ = ["register_exception_handlers"]

_FIELD_CODES = {
    "targetUrl": ErrorCode.INVALID_URL,
    "target_url": ErrorCode.INVALID_URL,
    "customAlias": ErrorCode.INVALID_ALIAS,
    "custom_alias": ErrorCode.INVALID_ALIAS,
}


def _logger() -> logging.Logger:
    if _service_manager._initialized:
        return _service_manager.logger
    return logging.getLogger(get_settings().APP_NAME)


def _error_response(status_code: int, code: ErrorCode, message: str) -> JSONResponse:
    body = ErrorResponse(code=code, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _validation_code(exc: RequestValidationError) -> ErrorCode:
    for error in exc.errors():
        for part in error.get("loc", ()):
            if part in _FIELD_CODES:
                return _FIELD_CODES[part]
    return ErrorCode.VALIDATION_ERROR


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        field_name = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "Invalid value").removeprefix("Value error, ")
        messages.append(f"{field_name}: {message}" if field_name else message)
    return "; ".join(messages) or "Invalid request"


async def handle_link_error(request: Request, exc: LinkError) -> JSONResponse:
    if exc.status_code >= 500:
        _logger().error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        _logger().warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return _error_response(exc.status_code, exc.code, exc.message)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    code = _validation_code(exc)
    message = _validation_message(exc)
    _logger().warning(f"{code} on {request.method} {request.url.path}: {message}")
    return _error_response(400, code, message)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    _logger().exception(f"Unexpected error on {request.method} {request.url.path}")
    return _error_response(500, ErrorCode.INTERNAL_ERROR, "An unexpected error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LinkError, handle_link_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
