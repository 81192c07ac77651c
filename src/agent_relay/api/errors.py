"""Mapping of domain exceptions to the API error envelope."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from agent_relay.runtime.errors import (
    CliExecutionError,
    CliSpawnError,
    CliTimeoutError,
    TaskCancelledError,
)
from agent_relay.sessions.errors import SessionAlreadyExistsError, SessionNotFoundError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApiError:
    status_code: int
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


def classify_error(error: BaseException) -> ApiError:
    """Status code, error code and message for a raised exception."""

    if isinstance(error, SessionNotFoundError):
        return ApiError(404, "SESSION_NOT_FOUND", str(error), {"session_id": error.session_id})
    if isinstance(error, SessionAlreadyExistsError):
        return ApiError(409, "SESSION_EXISTS", str(error), {"session_id": error.session_id})
    if isinstance(error, TaskCancelledError):
        return ApiError(409, "CANCELLED", str(error))
    if isinstance(error, CliTimeoutError):
        return ApiError(504, "TIMEOUT", str(error), {"timeout_seconds": error.timeout_seconds})
    if isinstance(error, CliSpawnError) and not error.transient:
        return ApiError(503, "CLI_NOT_FOUND", str(error))
    if isinstance(error, CliExecutionError):
        return ApiError(502, "CLI_ERROR", str(error), {"transient": error.transient})
    return ApiError(500, "INTERNAL_ERROR", "Internal server error")


async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    api_error = classify_error(exc)
    logger.warning(
        "%s %s failed with %s: %s",
        request.method,
        request.url.path,
        api_error.code,
        exc,
    )
    return api_error.to_response()


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return ApiError(
        400,
        "INVALID_REQUEST",
        "Request validation failed",
        {"errors": jsonable_encoder(exc.errors())},
    ).to_response()


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return ApiError(500, "INTERNAL_ERROR", "Internal server error").to_response()


def configure_exception_handlers(app: FastAPI) -> None:
    for error_type in (
        SessionNotFoundError,
        SessionAlreadyExistsError,
        TaskCancelledError,
        CliExecutionError,
    ):
        app.add_exception_handler(error_type, domain_error_handler)
    app.add_exception_handler(
        RequestValidationError,
        validation_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, unhandled_error_handler)
