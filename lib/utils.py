# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common helpers used by the lib/ clients and the service layer.
# =============================================================================

from datetime import datetime, timezone
from typing import Any
from uuid import UUID


def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format for PostgREST filters.

    Example:
        task_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        task_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string (timestamptz friendly)."""
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Base Error Class
# =============================================================================

class ApplicationError(Exception):
    """
    Base error class for failures inside lib/ clients.

    Attributes:
        code: Error code for categorization
        message: Human-readable error message
        suggestion: Actionable suggestion for fixing the error
        details: Additional context for debugging (never sent to API clients)

    Example:
        class RemoteJobError(ApplicationError):
            def __init__(self, message: str, **kwargs):
                super().__init__(message, code="REMOTE_JOB_ERROR", **kwargs)
    """

    def __init__(
        self,
        message: str,
        code: str = "APPLICATION_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion,
            "details": self.details,
        }
