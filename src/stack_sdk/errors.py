"""Closed set of error kinds surfaced to callers of the stack SDK."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    PENDING_USER_ACTION = "PendingUserAction"
    SESSION_EXPIRED = "SessionExpired"
    INSUFFICIENT_PERMISSIONS = "InsufficientPermissions"
    PROVIDER_ERROR = "ProviderError"
    UPLOAD_FAILED = "UploadFailed"
    VALIDATION_ERROR = "ValidationError"


# Recovery action offered to the user for each kind
RECOVERY_ACTIONS: dict[ErrorKind, str] = {
    ErrorKind.PENDING_USER_ACTION: "retry",
    ErrorKind.SESSION_EXPIRED: "sign_in",
    ErrorKind.INSUFFICIENT_PERMISSIONS: "fix_permissions",
    ErrorKind.PROVIDER_ERROR: "restart_selection",
    ErrorKind.UPLOAD_FAILED: "retry",
    ErrorKind.VALIDATION_ERROR: "fix_input",
}


class StackError(Exception):
    """Base error. Carries a string-coded kind instead of a transport exception."""
    kind: ErrorKind = ErrorKind.PROVIDER_ERROR

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value

    @property
    def recovery(self) -> str:
        return RECOVERY_ACTIONS[self.kind]

    @property
    def is_terminal(self) -> bool:
        return self.kind is not ErrorKind.PENDING_USER_ACTION

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "recovery": self.recovery,
        }


class ProviderError(StackError):
    """Generic upstream failure; the user must restart the session."""
    kind = ErrorKind.PROVIDER_ERROR


class PendingUserAction(ProviderError):
    """The user has not finished selecting in the provider UI yet."""
    kind = ErrorKind.PENDING_USER_ACTION


class SessionExpired(ProviderError):
    """Credential missing, expired or rejected (HTTP 401)."""
    kind = ErrorKind.SESSION_EXPIRED


class InsufficientPermissions(ProviderError):
    """Credential lacks a required scope (HTTP 403)."""
    kind = ErrorKind.INSUFFICIENT_PERMISSIONS


class UploadFailed(StackError):
    """A single file in an upload batch failed."""
    kind = ErrorKind.UPLOAD_FAILED

    def __init__(self, filename: str, message: str = ""):
        super().__init__(message or f"Failed to upload {filename}")
        self.filename = filename

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["filename"] = self.filename
        return data


class StackValidationError(StackError):
    """A stack is not eligible for persistence."""
    kind = ErrorKind.VALIDATION_ERROR

    def __init__(self, problems: list[str], message: Optional[str] = None):
        super().__init__(message or "; ".join(problems))
        self.problems = problems
