# filehub/core/errors.py
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException


class FileHubError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class NotFoundError(FileHubError):
    status_code = 404


class ValidationError(FileHubError):
    status_code = 400


class AuthenticationError(FileHubError):
    status_code = 401


class AuthorizationError(FileHubError):
    status_code = 403


class ConflictError(FileHubError):
    status_code = 409


class DatabaseError(FileHubError):
    """Wraps an unexpected database failure; `cause` is for operators only."""

    status_code = 500

    def __init__(self, message: str = "Invalid database operation", cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


def _body(message: str, detail: Any = None) -> dict:
    body: dict = {"error": message}
    if detail is not None:
        body["detail"] = detail
    return body


async def filehub_error_handler(request: Request, exc: FileHubError) -> JSONResponse:
    if isinstance(exc, DatabaseError):
        logger.opt(exception=exc.cause).error(
            "Database error on {} {}: {}", request.method, request.url.path, exc.cause
        )
    elif exc.status_code >= 500:
        logger.opt(exception=exc).error("Unhandled domain error on {}", request.url.path)
    else:
        logger.info("{} {} -> {} {}", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_body(exc.message, exc.detail))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("query", "path", "body")]
        fields.setdefault(".".join(loc) or "request", []).append(err.get("msg", "invalid"))
    summary = "; ".join(f"{k}: {', '.join(v)}" for k, v in fields.items())
    return JSONResponse(status_code=400, content=_body(f"Invalid request: {summary}", fields))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FileHubError, filehub_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    # routing 404/405 and any HTTPException raised by the framework
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
