"""Exception handlers for the Nexus HR API.

Every error leaves the service as an ErrorResponse body:

    AgentValidationError   -> 422 INVALID_INPUT
    RequestValidationError -> 422 VALIDATION_ERROR
    PipelineExecutionError -> 502 PIPELINE_EXECUTION_ERROR, naming the stage
    HTTPException          -> its own status
    anything else          -> 500 INTERNAL_ERROR
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.core.exceptions import AgentValidationError, PipelineExecutionError


logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Error body returned by every endpoint."""

    error: str = Field(..., description="Error category, e.g. 'ValidationError'")
    detail: str = Field(..., description="Human-readable description")
    code: str | None = Field(default=None, description="Machine-readable error code")
    path: str | None = Field(default=None, description="Request path")
    stage: str | None = Field(default=None, description="Failing pipeline stage")


def _respond(
    request: Request,
    status_code: int,
    error: str,
    detail: str,
    code: str | None = None,
    stage: str | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        detail=detail,
        code=code,
        path=request.url.path,
        stage=stage,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _status_name(status_code: int) -> str:
    """'Service Unavailable' -> 'ServiceUnavailable'."""
    try:
        return HTTPStatus(status_code).phrase.replace(" ", "").replace("-", "")
    except ValueError:
        return "Error"


# =============================================================================
# Handlers
# =============================================================================

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _respond(request, exc.status_code, _status_name(exc.status_code), str(exc.detail))


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Flatten FastAPI body validation errors into ``loc: msg`` pairs."""
    problems = [
        f"{'.'.join(str(part) for part in error.get('loc', []))}: {error.get('msg', 'Invalid value')}"
        for error in exc.errors()
    ]
    return _respond(
        request,
        422,
        "ValidationError",
        "; ".join(problems) or "Validation error",
        code="VALIDATION_ERROR",
    )


async def agent_validation_handler(request: Request, exc: AgentValidationError) -> JSONResponse:
    return _respond(
        request,
        422,
        "ValidationError",
        f"{exc.field}: {exc}",
        code="INVALID_INPUT",
    )


async def pipeline_execution_handler(
    request: Request,
    exc: PipelineExecutionError,
) -> JSONResponse:
    """Report a failed run as a bad gateway, naming the stage that failed."""
    logger.error(
        "Talent search run failed at %s: %s",
        exc.stage_name,
        exc.message,
        extra={"pipeline": exc.pipeline_name, "stage": exc.stage_name},
    )
    return _respond(
        request,
        502,
        "PipelineExecutionError",
        f"Pipeline failed at stage '{exc.stage_name}': {exc.message}",
        code="PIPELINE_EXECUTION_ERROR",
        stage=exc.stage_name,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled %s on %s", type(exc).__name__, request.url.path)
    return _respond(
        request,
        500,
        "InternalServerError",
        "An unexpected error occurred",
        code="INTERNAL_ERROR",
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register the handlers above on ``app``."""
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(AgentValidationError, agent_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PipelineExecutionError, pipeline_execution_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "ErrorResponse",
    "register_error_handlers",
]
