"""
Exceptions for the Communication Identity client.
"""


class IdentityClientError(Exception):
    """Base exception for Communication Identity client errors."""
    pass


class ConfigurationError(IdentityClientError):
    """Raised when client configuration or credentials are invalid."""
    pass


class SigningError(IdentityClientError):
    """Raised when a request cannot be signed."""
    pass


class TransportError(IdentityClientError):
    """Raised when the HTTP request fails before a response arrives."""
    pass


class RequestCancelledError(IdentityClientError):
    """Raised when a call is cancelled or its deadline expires."""
    pass


class ResponseDecodeError(IdentityClientError):
    """Raised when a success response body does not have the expected shape."""
    pass


class RemoteServiceError(IdentityClientError):
    """
    Raised when the service answers with a non-success status and a
    well-formed error envelope.

    The full error tree is available as ``error``; ``code`` is the
    top-level machine-readable code.
    """

    def __init__(self, status_code: int, error):
        self.status_code = status_code
        self.error = error
        super().__init__(
            f"service responded with non-success status ({status_code}), error: {error}"
        )

    @property
    def code(self) -> str:
        return self.error.code


class OpaqueRemoteError(IdentityClientError):
    """Raised when a non-success response body could not be parsed."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        status = f"{status_code} {reason}".strip()
        super().__init__(
            f"service responded with non-success status ({status}) "
            f"and response body was not parseable"
        )
