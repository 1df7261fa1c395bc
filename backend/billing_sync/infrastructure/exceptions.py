"""
Custom Exceptions for Billing Sync

Hierarchical exception classes for proper error handling across layers.
"""

from enum import Enum
from typing import Optional, Dict, Any


class BillingSyncError(Exception):
    """Base exception for all Billing Sync errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class DatabaseError(BillingSyncError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class SubscriptionWriteError(DatabaseError):
    """Raised when the merged subscription row could not be persisted."""
    pass


class InvalidEventError(BillingSyncError):
    """Raised when a verified event does not have the shape Stripe documents."""

    def __init__(
        self,
        message: str,
        event_id: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if event_id:
            details["event_id"] = event_id
        super().__init__(message, details, original_error)


class ResolutionFailure(str, Enum):
    """Machine-readable reasons a webhook could not be tied to a user."""
    NO_EMAIL = "no_email"
    LOOKUP_FAILED = "lookup_failed"
    PROFILE_NOT_FOUND = "profile_not_found"


class UserResolutionError(BillingSyncError):
    """Raised when no identity strategy yields a user ID."""

    def __init__(
        self,
        reason: ResolutionFailure,
        email: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details: Dict[str, Any] = {"reason": reason.value}
        if email:
            details["email"] = email
        super().__init__(
            f"Could not resolve user: {reason.value}",
            details,
            original_error,
        )
        self.reason = reason


class ConfigurationError(BillingSyncError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)
