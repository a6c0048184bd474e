class HistnavError(Exception):
    """Base exception for all expected histnav errors."""

    message: str
    exit_code: int

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class ConfigurationError(HistnavError):
    """Configuration related errors (env vars)."""


class CollaboratorUnavailableError(HistnavError):
    """Version control is not enabled for the project."""


class RequestFailedError(HistnavError):
    """A list/diff/tree/rollback/delete/create request failed."""


class GuardViolationError(HistnavError):
    """A mutation the current version or mode does not allow (e.g. deleting the head)."""


class OperationInProgressError(HistnavError):
    """A mutating operation is already in flight for the target version."""


class NavigationError(HistnavError):
    """Preview requested for a version that is not in the list."""


class InvalidInputError(HistnavError):
    """User input validation errors."""
