"""Error taxonomy shared by the access, key and notification services.

Services raise these; ``filegate.main`` renders them into HTTP responses.
``Unauthorized`` is rendered exactly like ``NotFound`` so a caller probing
somebody else's resource cannot tell whether it exists.
"""

from __future__ import annotations


class FileGateError(RuntimeError):
    """Base error for filegate domain operations."""

    status_code = 400
    kind = "error"

    def __init__(self, message: str, *, resource: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.resource = resource

    @property
    def public_detail(self) -> str:
        return self.message

    @property
    def public_kind(self) -> str:
        return self.kind


class ValidationError(FileGateError):
    """Raised for malformed or missing input."""

    status_code = 400
    kind = "validation_error"


class NotFound(FileGateError):
    """Raised when a referenced entity is absent."""

    status_code = 404
    kind = "not_found"

    @property
    def public_detail(self) -> str:
        if self.resource:
            return f"{self.resource} not found"
        return self.message


class Unauthorized(FileGateError):
    """Raised when the caller lacks the role required for the operation."""

    status_code = 404
    kind = "unauthorized"

    @property
    def public_detail(self) -> str:
        return f"{self.resource or 'Resource'} not found"

    @property
    def public_kind(self) -> str:
        return NotFound.kind


class Conflict(FileGateError):
    """Raised when an operation would violate a state invariant."""

    status_code = 409
    kind = "conflict"


class StorageError(FileGateError):
    """Raised when the backing store or object storage fails."""

    status_code = 503
    kind = "storage_error"

    @property
    def public_detail(self) -> str:
        return "Storage backend unavailable"
