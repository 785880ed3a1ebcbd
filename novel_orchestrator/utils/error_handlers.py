"""Global error handlers for FastAPI application.

This module provides exception handlers that convert exceptions to standardized
API responses with appropriate HTTP status codes.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from .exceptions import (
    AgentNotFoundError,
    APIError,
    ConfigurationError,
    ExternalServiceError,
    NovelOrchestratorError,
    ProviderNotFoundError,
    SessionNotFoundError,
    WorkflowNotFoundError,
)
from .logging import get_logger

logger = get_logger(__name__)

# Configuration errors that name something which does not exist
_NOT_FOUND_ERRORS = (
    AgentNotFoundError,
    WorkflowNotFoundError,
    SessionNotFoundError,
)


def create_error_response(
    status_code: int,
    error: str,
    message: str,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a standardized error response.

    Args:
        status_code: HTTP status code
        error: Error type/code
        message: Human-readable error message
        details: Optional additional error details
        request_id: Optional request ID for tracing

    Returns:
        JSONResponse with error information
    """
    content: dict[str, Any] = {
        "success": False,
        "error": {
            "code": error,
            "message": message,
        },
    }

    if details:
        content["error"]["details"] = details

    if request_id:
        content["metadata"] = {"request_id": request_id}

    return JSONResponse(status_code=status_code, content=content)


def configuration_status(exc: ConfigurationError) -> int:
    """HTTP status for a configuration error: 404 for unknown ids, else 400."""
    if isinstance(exc, _NOT_FOUND_ERRORS):
        return 404
    if isinstance(exc, ProviderNotFoundError) and exc.code == "PROVIDER_NOT_FOUND":
        return 404
    return 400


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions."""
    request_id = getattr(request.state, "request_id", None)

    logger.warning(
        "API error occurred",
        error=exc.__class__.__name__,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=exc.status_code,
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details if exc.details else None,
        request_id=request_id,
    )


async def configuration_error_handler(
    request: Request, exc: ConfigurationError
) -> JSONResponse:
    """Handle ConfigurationError exceptions (unknown, disabled or malformed references)."""
    request_id = getattr(request.state, "request_id", None)
    status_code = configuration_status(exc)

    logger.warning(
        "Configuration error",
        error=exc.__class__.__name__,
        message=exc.message,
        status_code=status_code,
        details=exc.details,
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=status_code,
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details if exc.details else None,
        request_id=request_id,
    )


async def orchestrator_error_handler(
    request: Request, exc: NovelOrchestratorError
) -> JSONResponse:
    """Handle general NovelOrchestratorError exceptions."""
    request_id = getattr(request.state, "request_id", None)

    logger.error(
        "Orchestrator error occurred",
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details,
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=500,
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details if exc.details else None,
        request_id=request_id,
    )


async def external_service_error_handler(
    request: Request, exc: ExternalServiceError
) -> JSONResponse:
    """Handle ExternalServiceError exceptions, including terminal provider errors."""
    request_id = getattr(request.state, "request_id", None)

    logger.error(
        "External service error",
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details,
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=502,
        error=exc.__class__.__name__,
        message=exc.message,
        details=exc.details if exc.details else None,
        request_id=request_id,
    )


def _validation_errors(errors: list[Any]) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in errors
    ]


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI RequestValidationError exceptions."""
    request_id = getattr(request.state, "request_id", None)
    errors = _validation_errors(list(exc.errors()))

    logger.warning(
        "Request validation error",
        errors=errors,
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=422,
        error="ValidationError",
        message="Request validation failed",
        details={"validation_errors": errors},
        request_id=request_id,
    )


async def pydantic_validation_error_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    """Handle Pydantic ValidationError exceptions."""
    request_id = getattr(request.state, "request_id", None)
    errors = _validation_errors(list(exc.errors()))

    logger.warning(
        "Pydantic validation error",
        errors=errors,
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=422,
        error="ValidationError",
        message="Data validation failed",
        details={"validation_errors": errors},
        request_id=request_id,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unexpected error occurred",
        error=exc.__class__.__name__,
        message=str(exc),
        request_id=request_id,
        path=str(request.url.path),
    )

    return create_error_response(
        status_code=500,
        error="InternalServerError",
        message="An unexpected error occurred",
        request_id=request_id,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    # Starlette picks the handler registered for the closest class in the MRO
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ConfigurationError, configuration_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ExternalServiceError, external_service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(NovelOrchestratorError, orchestrator_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PydanticValidationError, pydantic_validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Error handlers registered")
