"""Error handling middleware and exception handlers."""

from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from video_orchestrator.commons.telemetry.logger import get_logger
from video_orchestrator.domain.exceptions import (
    ConcurrentUpdateException,
    DomainException,
    ExternalAssetConflictException,
    FindOrCreateAttemptsExceededException,
    InvalidStatusTransitionException,
    InvalidWebhookSignatureException,
    RecordStoreUnavailableException,
    RetryNotAllowedException,
    UnsupportedMediaTypeException,
    VideoNotFoundException,
)

logger = get_logger(__name__)


class APIError(Exception):
    """Base API error with code and details."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


def _build_error_response(
    request: Request,
    code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build the ``{"error": {...}}`` envelope shared by every failure."""
    request_id = getattr(request.state, "request_id", "unknown")

    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
                "request_id": request_id,
            }
        },
    )


def _handle_exception(  # noqa: PLR0911
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Map an exception to its HTTP error response."""
    if isinstance(exc, APIError):
        logger.warning(
            f"API error: {exc.code}",
            extra={
                "error_code": exc.code,
                "error_message": exc.message,
                "details": exc.details,
            },
        )
        return _build_error_response(
            request=request,
            code=exc.code,
            message=exc.message,
            status_code=exc.status_code,
            details=exc.details,
        )

    if isinstance(exc, VideoNotFoundException):
        logger.warning(f"Video not found: {exc}")
        return _build_error_response(
            request=request,
            code="VIDEO_NOT_FOUND",
            message=str(exc),
            status_code=status.HTTP_404_NOT_FOUND,
            details={"video_id": exc.video_id},
        )

    if isinstance(exc, InvalidStatusTransitionException | RetryNotAllowedException):
        logger.warning(f"Status conflict: {exc}")
        return _build_error_response(
            request=request,
            code="INVALID_STATUS",
            message=str(exc),
            status_code=status.HTTP_409_CONFLICT,
            details={"video_id": exc.video_id},
        )

    if isinstance(exc, ConcurrentUpdateException | ExternalAssetConflictException):
        logger.warning(f"Record conflict: {exc}")
        return _build_error_response(
            request=request,
            code="RECORD_CONFLICT",
            message=str(exc),
            status_code=status.HTTP_409_CONFLICT,
            details={"video_id": exc.video_id},
        )

    if isinstance(exc, UnsupportedMediaTypeException):
        logger.warning(f"Unsupported media type: {exc}")
        return _build_error_response(
            request=request,
            code="UNSUPPORTED_MEDIA_TYPE",
            message=str(exc),
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            details={"mime_type": exc.mime_type},
        )

    if isinstance(exc, InvalidWebhookSignatureException):
        logger.warning(f"Rejected webhook: {exc}")
        return _build_error_response(
            request=request,
            code="INVALID_SIGNATURE",
            message="Webhook signature verification failed",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    if isinstance(exc, RecordStoreUnavailableException):
        logger.error(
            f"Record store unavailable: {exc}",
            extra={"operation": exc.operation},
        )
        return _build_error_response(
            request=request,
            code="STORAGE_UNAVAILABLE",
            message="The record store is unavailable; nothing was saved",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"operation": exc.operation},
        )

    if isinstance(exc, FindOrCreateAttemptsExceededException):
        logger.error(f"Circuit breaker: {exc}")
        return _build_error_response(
            request=request,
            code="CIRCUIT_BREAKER_OPEN",
            message=str(exc),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={
                "external_asset_id": exc.external_asset_id,
                "attempts": exc.attempts,
            },
        )

    if isinstance(exc, DomainException):
        logger.warning(f"Domain error: {exc}")
        return _build_error_response(
            request=request,
            code="DOMAIN_ERROR",
            message=str(exc),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    logger.exception(f"Unexpected error: {exc}")
    return _build_error_response(
        request=request,
        code="INTERNAL_ERROR",
        message="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def error_handler_middleware(
    request: Request,
    call_next: RequestResponseEndpoint,
) -> Response:
    """Middleware to catch and format all exceptions."""
    try:
        return await call_next(request)
    except Exception as exc:
        return _handle_exception(request, exc)
