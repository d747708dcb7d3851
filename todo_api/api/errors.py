"""Translate exceptions into the response envelope.

Domain errors keep their code and message. Anything unexpected is logged with
its traceback and served as an opaque internal error.
"""
import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.errors import TodoAPIError, ValidationError
from ..schemas.envelope import fail

logger = structlog.get_logger(__name__)


def _request_id(request: Request):
    return getattr(request.state, "request_id", None)


def _envelope(request: Request, status_code: int, code: str, message: str, details=None, headers=None):
    body = fail(code, message, request_id=_request_id(request), details=details)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body.model_dump(exclude_none=True)),
        headers=headers,
    )


async def todo_error_handler(request: Request, exc: TodoAPIError):
    if exc.status_code >= 500:
        logger.error("request failed", code=exc.code, error=exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _envelope(request, exc.status_code, exc.code, exc.message, exc.details, headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return _envelope(
        request, ValidationError.status_code, ValidationError.code, ValidationError.default_message, errors
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
    return _envelope(request, exc.status_code, code, str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error", path=request.url.path)
    return _envelope(request, 500, TodoAPIError.code, TodoAPIError.default_message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TodoAPIError, todo_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
