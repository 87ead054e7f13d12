"""ChainOps exception classes."""

from __future__ import annotations


class ChainOpsError(RuntimeError):
    """Base exception for ChainOps errors."""


class UserError(ChainOpsError):
    """Errors that should be shown to user without traceback."""

    def __init__(self, message: str, rc: int = 2):
        super().__init__(message)
        self.rc = rc


class CommandFailureError(ChainOpsError):
    """Command failed - error message already printed, just need to exit.

    This exception is for cases where a command has already printed
    its error message and just needs to signal failure without
    additional output from main().
    """

    def __init__(self, rc: int = 1):
        super().__init__("")
        self.rc = rc


class ApiError(ChainOpsError):
    """Transport-level failure talking to the backend API.

    Raised for connection errors, timeouts, non-2xx responses and bodies
    that are not JSON. A response with ``success: false`` is not an ApiError.
    """

    def __init__(self, message: str, *, endpoint: str, status_code: int | None = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
