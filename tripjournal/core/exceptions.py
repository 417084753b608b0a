"""
Custom exceptions for the trip journal core.

Logical invariant violations are raised as typed errors so that callers can
turn them into warnings instead of crashing an unattended session.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for the application."""

    # Lifecycle errors
    INVALID_TRANSITION = "INVALID_TRANSITION"

    # Lookup errors
    NOT_FOUND = "NOT_FOUND"

    # Intention rules
    USAGE_CAP_EXCEEDED = "USAGE_CAP_EXCEEDED"

    # Storage errors
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"

    # Generic errors
    VALIDATION_ERROR = "VALIDATION_ERROR"


class TripJournalException(Exception):
    """Base exception for the trip journal core."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Render the error as an envelope for UI consumers."""
        return {
            "status": "error",
            "error": {
                "code": self.error_code.value,
                "message": self.message,
                "details": self.details,
            },
        }


class InvalidTransitionError(TripJournalException):
    """Raised when a lifecycle operation is not allowed in the current state."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_TRANSITION,
            details=details,
        )


class NotFoundError(TripJournalException):
    """Raised when an intention, trip or sitter id is unknown."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(
            message=f"{kind} '{identifier}' not found",
            error_code=ErrorCode.NOT_FOUND,
            details={"kind": kind, "id": identifier},
        )


class UsageCapExceededError(TripJournalException):
    """Raised when an intention is attached to more trips than allowed."""

    def __init__(self, intention_id: str, cap: int):
        super().__init__(
            message=f"Intention '{intention_id}' is already linked to {cap} trips",
            error_code=ErrorCode.USAGE_CAP_EXCEEDED,
            details={"intention_id": intention_id, "usage_cap": cap},
        )


class PersistenceFailureError(TripJournalException):
    """
    Raised when the store adapter rejects a write.

    In-memory state is kept; the caller decides whether to retry or to warn
    the user that changes may not be saved.
    """

    def __init__(self, key: str, reason: str):
        super().__init__(
            message=f"Failed to persist '{key}': {reason}",
            error_code=ErrorCode.PERSISTENCE_FAILURE,
            details={"key": key, "reason": reason},
        )


class ValidationError(TripJournalException):
    """Raised when input is rejected at the boundary."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code=ErrorCode.VALIDATION_ERROR,
            details=details,
        )
