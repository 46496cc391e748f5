import socket
from typing import TYPE_CHECKING, Callable, Tuple

if TYPE_CHECKING:
    from .connection import HTTPConnection

# Base Exceptions


class HTTPError(Exception):
    """Base exception used by this module."""

    pass


class HTTPWarning(Warning):
    """Base warning used by this module."""

    pass


_TYPE_REDUCE_RESULT = Tuple[Callable[..., object], Tuple[object, ...]]


class ProtocolError(HTTPError):
    """Raised when a connection is driven out of order mid-request."""

    pass


# Leaf Exceptions


class HeadersAlreadySentError(ProtocolError):
    """Raised when a request header is set after the request head went out."""

    def __init__(self, header: str) -> None:
        self.header = header
        super().__init__(
            f"Cannot set header {header!r}: request headers were already sent"
        )

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (self.header,)


class BodyAlreadySentError(ProtocolError):
    """Raised when a multipart encoder is asked to post a second time."""

    pass


class NewConnectionError(HTTPError, OSError):
    """Raised when we fail to establish a new connection. Usually ECONNREFUSED."""

    def __init__(self, conn: "HTTPConnection", message: str) -> None:
        self.conn = conn
        super().__init__(f"{conn}: {message}")

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (None, None)


class NameResolutionError(NewConnectionError):
    """Raised when host name resolution fails."""

    def __init__(self, host: str, conn: "HTTPConnection", reason: socket.gaierror):
        message = f"Failed to resolve '{host}' ({reason})"
        super().__init__(conn, message)

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        # For pickling purposes.
        return self.__class__, (None, None, None)


class LocationValueError(ValueError, HTTPError):
    """Raised when there is something wrong with a given URL input."""

    pass


class LocationParseError(LocationValueError):
    """Raised when parse_url fails to parse the URL input."""

    def __init__(self, location: str) -> None:
        message = f"Failed to parse: {location}"
        super().__init__(message)

        self.location = location

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        return self.__class__, (self.location,)


class URLSchemeUnknown(LocationValueError):
    """Raised when a URL input has an unsupported scheme."""

    def __init__(self, scheme: str):
        message = f"Not supported URL scheme {scheme}"
        super().__init__(message)

        self.scheme = scheme

    def __reduce__(self) -> _TYPE_REDUCE_RESULT:
        return self.__class__, (self.scheme,)


class UnpairedValueWarning(HTTPWarning):
    """
    Warned when a flat ``[name, value, name, value, ...]`` list has an odd
    length. The trailing unpaired element is ignored.
    """

    pass
