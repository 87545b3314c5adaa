"""Custom exceptions for the Elliptics proxy client."""

from typing import Optional


class EllipticsError(Exception):
    """Base exception for Elliptics client errors."""


class ConnectivityError(EllipticsError):
    """Raised when the proxy does not answer the monitoring ping."""

    def __init__(self, address: str, port: int) -> None:
        self.address = address
        self.port = port
        super().__init__(f"Cannot connect to Elliptics server at {address}:{port}")


class InvalidFileError(EllipticsError):
    """Raised when a local file cannot be used as an upload source."""

    def __init__(self, path: str, reason: str = "does not exist") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f'File "{path}" {reason}')


class TransportError(EllipticsError):
    """
    Raised when the HTTP transport fails before a response is received.

    Carries the underlying error code (when the transport exposes one) and the
    URL of the failed request.
    """

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        url: Optional[str] = None
    ) -> None:
        self.message = message
        self.code = code
        self.url = url
        msg = f"Elliptics transport error: {message}"
        if url:
            msg += f" ({url})"
        super().__init__(msg)


class ConfigurationError(EllipticsError):
    """Raised when client configuration is invalid or missing."""


class ClientClosedError(EllipticsError):
    """Raised when a closed client is used."""

    def __init__(self) -> None:
        super().__init__("Elliptics client is closed")
