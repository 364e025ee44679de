"""
Error handling - application exceptions and FastAPI exception handlers.

Every handled error is rendered as {"message": "..."} with the status code
carried by the exception.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class KarirKitError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(KarirKitError):
    status_code = 404


class ValidationFailed(KarirKitError):
    status_code = 400


class AIServiceError(KarirKitError):
    """The embedding/generation API could not be reached or errored."""
    status_code = 502


class AIResponseError(AIServiceError):
    """The model answered, but not with the JSON we asked for."""


class SearchError(KarirKitError):
    status_code = 500


def format_validation_issues(errors: list) -> str:
    """Join pydantic issue messages the way clients expect them."""
    messages = []
    for issue in errors:
        loc = ".".join(str(part) for part in issue.get("loc", ()) if part != "body")
        msg = issue.get("msg", "Invalid value")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return ", ".join(messages)


async def karirkit_error_handler(request: Request, exc: KarirKitError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None)
    )


async def validation_error_handler(request: Request, exc):
    return JSONResponse(
        status_code=400,
        content={"message": format_validation_issues(exc.errors())}
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error in %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": str(exc) or "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(KarirKitError, karirkit_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
