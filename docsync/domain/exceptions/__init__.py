from docsync.domain.exceptions.domain_exceptions import (
    DomainException,
    InvalidStateTransitionError,
    MaxAttemptsExceededError,
    RemoteServiceError,
    ResourceNotFoundError,
    StorageFaultError,
    ValidationError,
)

__all__ = [
    "DomainException",
    "InvalidStateTransitionError",
    "MaxAttemptsExceededError",
    "RemoteServiceError",
    "ResourceNotFoundError",
    "StorageFaultError",
    "ValidationError",
]
