"""
Error types raised by tau.

Every failure is terminal for the operation that raised it; callers
report the error and stop.
"""


class TauError(Exception):
    """Base class for all tau errors."""
    pass


class NotFound(TauError):
    """Raised when a definition, source or referenced value does not exist."""
    pass


class ReadFailure(TauError):
    """Raised when a definition exists but cannot be read."""
    pass


class ParseFailure(TauError):
    """Raised for malformed configuration or malformed engine output."""
    pass


class MergeConflict(TauError):
    """Raised when a backend override cannot be merged into its target."""
    pass


class ProcessFailure(TauError):
    """Raised when an external process cannot start or exits non-zero."""

    def __init__(self, message: str, exit_code: int = -1):
        super().__init__(message)
        self.exit_code = exit_code


class FetchFailure(TauError):
    """Raised when a remote source cannot be downloaded."""
    pass


class FetchTimeout(FetchFailure):
    """Raised when downloading a remote source exceeds the fetch timeout."""
    pass


class ShapeConflict(TauError):
    """Raised when flat paths cannot form a tree (a path is both leaf and ancestor)."""
    pass


class ValidationFailure(TauError):
    """Raised when configuration is missing required fields or is inconsistent."""
    pass


class CycleDetected(TauError):
    """Raised when a module depends on itself, directly or transitively."""
    pass
