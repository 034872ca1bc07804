# =============================================================================
# app/exceptions.py - Custom Exceptions and Handlers
# =============================================================================
# Centralized exception handling for the API.
#
# Every error response uses the same envelope:
#   {"success": false, "error": "<message>", "code": "<CODE>", ...}
#
# Client mistakes (bad input, resources that don't exist or aren't owned by
# the caller) map to 400, missing/invalid credentials to 401, and failures
# of upstream services (DashScope, storage, database, Stripe) to 500 with a
# generic message. Upstream root causes are logged, never returned.
# =============================================================================

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lib.utils import ApplicationError

logger = logging.getLogger(__name__)

GENERIC_UPSTREAM_MESSAGE = "An upstream service failed. Please try again."


class SmartPhotoException(Exception):
    """
    Base exception for the SmartPhoto API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "SMARTPHOTO_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result: dict[str, Any] = {
            "success": False,
            "error": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Authentication
# =============================================================================

class UnauthenticatedError(SmartPhotoException):
    """Raised when the request carries no valid session token."""

    def __init__(self, reason: str = "Not authenticated"):
        super().__init__(
            message=reason,
            code="UNAUTHENTICATED",
            status_code=401,
            suggestion="Sign in again and retry with a valid bearer token",
        )


# =============================================================================
# Not Found / Access Denied
# =============================================================================
# Missing and foreign resources are reported identically so callers can't
# probe for other users' ids.

class TaskNotFoundError(SmartPhotoException):
    """Raised when a task doesn't exist or belongs to another user."""

    def __init__(self, task_id: str):
        super().__init__(
            message="task not found or access denied",
            code="TASK_NOT_FOUND",
            status_code=400,
            suggestion="Check the task id; deleted tasks cannot be queried",
            details={"task_id": task_id},
        )


class ResultNotFoundError(SmartPhotoException):
    """Raised when a result doesn't exist or its task belongs to another user."""

    def __init__(self, result_id: str):
        super().__init__(
            message="result not found or access denied",
            code="RESULT_NOT_FOUND",
            status_code=400,
            details={"result_id": result_id},
        )


class ImageNotFoundError(SmartPhotoException):
    """Raised when the original image of a new task isn't owned by the caller."""

    def __init__(self, upload_id: str):
        super().__init__(
            message="original image not found or access denied",
            code="IMAGE_NOT_FOUND",
            status_code=400,
            suggestion="Upload the image first using POST /uploads",
            details={"original_image_id": upload_id},
        )


class UploadNotFoundError(SmartPhotoException):
    """Raised when an upload doesn't exist or belongs to another user."""

    def __init__(self, upload_id: str):
        super().__init__(
            message="upload not found or access denied",
            code="UPLOAD_NOT_FOUND",
            status_code=400,
            details={"upload_id": upload_id},
        )


# =============================================================================
# Validation
# =============================================================================

class InvalidImageTypeError(SmartPhotoException):
    """Raised when a task references an upload that isn't an image."""

    def __init__(self, upload_id: str, media_type: str):
        super().__init__(
            message="only image files can be edited",
            code="INVALID_IMAGE_TYPE",
            status_code=400,
            details={"original_image_id": upload_id, "type": media_type},
        )


class InvalidFileTypeError(SmartPhotoException):
    """Raised when uploaded file type is not allowed."""

    def __init__(self, content_type: str, allowed: list[str]):
        super().__init__(
            message=f"Invalid file type: {content_type}",
            code="INVALID_FILE_TYPE",
            status_code=400,
            suggestion=f"Only these file types are supported: {', '.join(allowed)}",
            details={"content_type": content_type, "allowed_types": allowed},
        )


class FileTooLargeError(SmartPhotoException):
    """Raised when uploaded file exceeds size limit."""

    def __init__(self, size_mb: float, max_mb: int):
        super().__init__(
            message=f"File too large: {size_mb:.1f}MB (max: {max_mb}MB)",
            code="FILE_TOO_LARGE",
            status_code=400,
            suggestion=f"Upload a file smaller than {max_mb}MB",
            details={"size_mb": round(size_mb, 2), "max_mb": max_mb},
        )


class PaymentValidationError(SmartPhotoException):
    """Raised when a payment request carries an unacceptable amount."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            code="PAYMENT_VALIDATION_ERROR",
            status_code=400,
        )


# =============================================================================
# Service Availability
# =============================================================================

class PaymentsNotConfiguredError(SmartPhotoException):
    """Raised when Stripe keys are absent."""

    def __init__(self):
        super().__init__(
            message="Payments are not configured",
            code="PAYMENTS_NOT_CONFIGURED",
            status_code=503,
            suggestion="Set STRIPE_PUBLISHABLE_KEY and STRIPE_SECRET_KEY",
        )


# =============================================================================
# Upstream Failures
# =============================================================================

class UpstreamFailureError(SmartPhotoException):
    """
    An external dependency failed.

    The message sent to clients is always generic; `cause` keeps the
    original error for server-side logging.
    """

    def __init__(self, code: str, cause: str | None = None):
        super().__init__(
            message=GENERIC_UPSTREAM_MESSAGE,
            code=code,
            status_code=500,
            suggestion="Retry the request; no partial changes were saved",
        )
        self.cause = cause


class RemoteStatusUnknownError(UpstreamFailureError):
    """Raised when the image edit service reports a status we don't recognize."""

    def __init__(self, task_id: str, remote_status: str):
        super().__init__(
            code="REMOTE_STATUS_UNKNOWN",
            cause=f"task {task_id}: unrecognized remote status {remote_status!r}",
        )


class StorageUploadError(UpstreamFailureError):
    """Raised when file upload to storage fails."""

    def __init__(self, error: str):
        super().__init__(code="STORAGE_UPLOAD_ERROR", cause=error)


class ResultDownloadError(UpstreamFailureError):
    """Raised when a remote result image can't be downloaded."""

    def __init__(self, url: str, error: str):
        super().__init__(code="RESULT_DOWNLOAD_ERROR", cause=f"{url}: {error}")


class PaymentGatewayError(UpstreamFailureError):
    """Raised when a Stripe API call fails."""

    def __init__(self, error: str):
        super().__init__(code="PAYMENT_GATEWAY_ERROR", cause=error)


# =============================================================================
# Exception Handlers
# =============================================================================

async def smartphoto_exception_handler(
    request: Request,
    exc: SmartPhotoException
) -> JSONResponse:
    """Convert SmartPhotoException to the JSON error envelope."""
    if isinstance(exc, UpstreamFailureError):
        logger.error(f"{request.method} {request.url.path} failed [{exc.code}]: {exc.cause}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def application_error_handler(
    request: Request,
    exc: ApplicationError
) -> JSONResponse:
    """
    Handle errors raised by lib/ clients (DashScope, Supabase tables).

    These are always upstream failures.
    """
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": GENERIC_UPSTREAM_MESSAGE,
            "code": exc.code,
        }
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors.

    Reported as 400 with the first failing field in the message.
    """
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))

    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": message,
            "code": "VALIDATION_ERROR",
            "details": {"errors": [
                {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
                for e in errors
            ]},
        }
    )
