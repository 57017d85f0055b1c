"""Domain-specific exceptions.

Local-store and validation errors propagate to callers. Remote errors are
absorbed by the coordinators and turned into queued jobs.
"""


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize domain exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ResourceNotFoundError(DomainException):
    """Raised when a referenced entity or job does not exist locally."""

    pass


class RemoteServiceError(DomainException):
    """Raised by remote clients on any transport or server problem."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class StorageFaultError(DomainException):
    """Raised when the local store cannot persist or read data."""

    pass


class MaxAttemptsExceededError(DomainException):
    """A queued job exhausted its retry budget."""

    def __init__(self, job_id: str, attempts: int, last_error: str | None) -> None:
        super().__init__(
            f"Max attempts reached ({attempts}): {last_error or 'unknown error'}",
            {"job_id": job_id, "attempts": attempts},
        )
        self.job_id = job_id
        self.attempts = attempts
        self.last_error = last_error


class InvalidStateTransitionError(DomainException):
    """Raised when an invalid state transition is attempted."""

    pass


class ValidationError(DomainException):
    """Raised when caller input fails domain validation."""

    pass
