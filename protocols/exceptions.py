from typing import Optional


class HTTPClientError(Exception):
    """Base exception for a failed request/response exchange."""
    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 host: Optional[str] = None, port: Optional[int] = None):
        super().__init__(message)
        self.cause = cause
        self.host = host
        self.port = port

    def __str__(self):
        message = super().__str__()
        if self.cause is not None:
            return f"{message}: {self.cause!r}"
        return message


class MalformedPathError(HTTPClientError, ValueError):
    """Raised when the path cannot be resolved against the host URL."""
    pass


class ConnectError(HTTPClientError):
    """Raised when the host cannot be resolved or the connection fails."""
    pass


class WriteError(HTTPClientError):
    """Raised when the request bytes cannot be written to the socket."""
    pass


class ReadError(HTTPClientError):
    """Raised when the connection breaks while reading the response."""
    pass
