"""JSON error responses shared by the route handlers."""

import structlog
from fastapi import status
from fastapi.responses import JSONResponse

from colca.services.exceptions import ServiceError

logger = structlog.get_logger()


def service_error_response(error: ServiceError, event: str) -> JSONResponse:
    """Translate a ServiceError into its ``{"error": tag, ...}`` response."""
    logger.warning(
        event,
        error_tag=error.error_tag,
        status_code=error.status_code,
        error=str(error),
    )
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


def unexpected_error_response(error: Exception, event: str) -> JSONResponse:
    """500 response for anything not classified as a ServiceError."""
    logger.error(
        event,
        error=str(error),
        error_type=type(error).__name__,
        exc_info=error,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "unexpected", "detail": str(error) or type(error).__name__},
    )
