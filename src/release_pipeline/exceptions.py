"""Custom exceptions for the release pipeline."""


class ReleasePipelineError(Exception):
    """Base exception for release pipeline errors."""
    pass


class ConfigurationError(ReleasePipelineError):
    """Raised when there's an error in configuration."""

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class StorageError(ReleasePipelineError):
    """Raised when the release store cannot be read or written."""
    pass


class SchedulingError(ReleasePipelineError):
    """Raised when a processing run cannot be scheduled."""
    pass
