"""Custom exception hierarchy for the points economy engine."""

from __future__ import annotations


class AppError(Exception):
    """Base application error with a stable machine-readable code."""

    retryable = False

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        """Serialize the error in the API standard shape."""
        return {"error": self.message, "code": self.code}


class NotConfiguredError(AppError):
    """Raised when no backend is configured and the action needs one."""

    def __init__(self, feature: str = "This feature") -> None:
        super().__init__(
            message=f"{feature} is limited: the points backend is not configured",
            code="NOT_CONFIGURED",
            status_code=503,
        )


class RemoteTimeoutError(AppError):
    """Raised when a remote call exceeds its deadline. The outcome is unknown."""

    retryable = True

    def __init__(self, operation: str = "Remote request") -> None:
        super().__init__(
            message=f"{operation} timed out; refresh before retrying",
            code="REMOTE_TIMEOUT",
            status_code=504,
        )


class RemoteUnavailableError(AppError):
    """Raised when the remote store cannot be reached."""

    retryable = True

    def __init__(self, reason: str = "Points backend is unreachable") -> None:
        super().__init__(message=reason, code="REMOTE_UNAVAILABLE", status_code=503)


class InsufficientPointsError(AppError):
    """Raised when a user tries to spend more points than they have."""

    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            message=f"Insufficient points: need {required}, have {available}",
            code="INSUFFICIENT_POINTS",
        )


class QuotaExhaustedError(AppError):
    """Raised when the daily allowance for an activity is used up."""

    def __init__(self, activity: str) -> None:
        self.activity = activity
        super().__init__(
            message=f"No {activity} attempts remaining today",
            code="QUOTA_EXHAUSTED",
            status_code=429,
        )


class NotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    def __init__(self, resource: str) -> None:
        super().__init__(message=f"{resource} not found", code="NOT_FOUND", status_code=404)


class ForbiddenError(AppError):
    """Raised when the user lacks permission for the action."""

    def __init__(self, reason: str = "You don't have permission") -> None:
        super().__init__(message=reason, code="FORBIDDEN", status_code=403)


class VerificationFailedError(AppError):
    """Raised when a task's membership check does not pass."""

    def __init__(self, reason: str) -> None:
        super().__init__(message=reason, code="TASK_NOT_VERIFIED", status_code=403)


class ConflictError(AppError):
    """Raised on duplicate/conflicting operations."""

    def __init__(self, reason: str, code: str = "CONFLICT") -> None:
        super().__init__(message=reason, code=code, status_code=409)


class UnauthorizedError(AppError):
    """Raised when the caller is not authenticated."""

    def __init__(self, reason: str = "Unauthorized") -> None:
        super().__init__(message=reason, code="UNAUTHORIZED", status_code=401)


class InvalidInputError(AppError):
    """Raised for request payload or parameter validation issues."""

    def __init__(self, reason: str) -> None:
        super().__init__(message=reason, code="INVALID_INPUT", status_code=422)
