"""Domain exceptions raised by the service layer.

Routes never translate these themselves; ``core.exception_handlers`` maps each
one to its HTTP status in a single place.
"""

from typing import Iterable, Optional


class ProjectHubError(Exception):
    """Base exception for ProjectHub errors."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class Unauthenticated(ProjectHubError):
    """Raised when no valid credential resolves to an active user."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class Forbidden(ProjectHubError):
    """Raised when the user lacks the role or relationship an operation needs."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFound(ProjectHubError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str = "Resource"):
        super().__init__(f"{entity} not found")
        self.entity = entity


class ValidationFailed(ProjectHubError):
    """Raised for malformed or missing input.

    Carries every field failure, not just the first one found.
    """

    def __init__(self, errors: Iterable[str], message: Optional[str] = None):
        self.errors = list(dict.fromkeys(errors))
        if message is None:
            message = self.errors[0] if len(self.errors) == 1 else "Validation failed"
        super().__init__(message)


class InvalidTransition(ProjectHubError):
    """Raised when a workflow operation is not valid from the current state."""


class StorageFailure(ProjectHubError):
    """Raised when writing or deleting a stored file fails."""

    def __init__(self, filename: str, reason: str = "Storage operation failed", operation: str = "store"):
        super().__init__(f"Failed to {operation} '{filename}': {reason}")
        self.filename = filename
        self.reason = reason
        self.operation = operation
