"""Build lifecycle error types.

Each error carries a stable ``code`` for structured handling by the web
layer and the CLI.
"""


class BuildNotFoundError(Exception):
    """Raised when a token does not resolve to a live build.

    Unknown, expired and superseded tokens are indistinguishable to callers.
    """

    def __init__(self, token: str, code: str = "build_not_found") -> None:
        super().__init__("Temporary build not found or expired")
        self.token = token
        self.code = code


class InvalidStateError(Exception):
    """Raised when an operation is attempted in the wrong lifecycle state."""

    def __init__(
        self, message: str, status: str | None = None, code: str = "invalid_state"
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code


class TransportError(Exception):
    """Raised when the build API cannot be reached or answers unexpectedly."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str = "transport_error",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


__all__ = ["BuildNotFoundError", "InvalidStateError", "TransportError"]
