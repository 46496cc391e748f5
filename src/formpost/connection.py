import io
import logging
import re
import socket
import ssl
from http.client import HTTPConnection as _HTTPConnection
from http.client import HTTPResponse
from typing import Any, BinaryIO, Optional, Protocol, Tuple, Union

from ._collections import HTTPHeaderDict
from ._version import __version__
from .exceptions import (
    HeadersAlreadySentError,
    LocationValueError,
    NameResolutionError,
    NewConnectionError,
    ProtocolError,
    URLSchemeUnknown,
)
from .util.url import Url, parse_url

log = logging.getLogger(__name__)

port_by_scheme = {"http": 80, "https": 443}

#: Sentinel meaning "use the global socket default timeout".
_DEFAULT_TIMEOUT = socket._GLOBAL_DEFAULT_TIMEOUT  # type: ignore[attr-defined]

_TYPE_TIMEOUT = Union[float, None, object]

_CONTAINS_CONTROL_CHAR_RE = re.compile(r"[^-!#$%&'*+.^_`|~0-9a-zA-Z]")


class OutputConnection(Protocol):
    """
    What :class:`~formpost.filepost.MultipartEncoder` needs from a connection.

    Any object with these members can carry a multipart body; the classes in
    this module are the stock implementation on top of :mod:`http.client`.
    """

    #: Must be true before :meth:`get_output_stream` may be used.
    do_output: bool

    def set_request_header(self, name: str, value: str) -> None:
        ...

    def get_output_stream(self) -> BinaryIO:
        ...

    def get_response(self) -> Any:
        ...


class BodyWriter(io.RawIOBase):
    """
    Raw, write-only stream that sends every write to ``conn`` as one chunk
    of a ``Transfer-Encoding: chunked`` request body.

    The request head is sent right before the first chunk. Closing the
    writer sends the terminating zero-length chunk, unless it was aborted.
    """

    def __init__(self, conn: "HTTPConnection") -> None:
        self._conn = conn
        self._aborted = False

    def writable(self) -> bool:
        return True

    def abort(self) -> None:
        """Close without sending anything further. Unsent data is dropped."""
        self._aborted = True
        self.close()

    def write(self, b: Any) -> int:
        if self.closed:
            raise ValueError("write to closed request body")
        chunk = bytes(b)
        if not chunk:
            return 0
        self._conn._send_head()
        len_str = hex(len(chunk))[2:]
        to_send = bytearray(len_str.encode())
        to_send += b"\r\n"
        to_send += chunk
        to_send += b"\r\n"
        self._conn.send(to_send)
        return len(chunk)

    def close(self) -> None:
        if self.closed:
            return
        try:
            if not self._aborted:
                # A body that never saw a write still needs the head and terminator.
                self._conn._send_head()
                self._conn.send(b"0\r\n\r\n")
        finally:
            super().close()


class HTTPConnection(_HTTPConnection):
    """
    Based on :class:`http.client.HTTPConnection` but driven the way a
    form-posting client drives it: headers are collected up front, the body
    is written through a stream returned by :meth:`get_output_stream`, and
    the response is fetched with :meth:`get_response` once that stream is
    closed.

    Additional keyword parameters are used to configure the request:

    - ``method``: The HTTP method, ``POST`` unless specified.
    - ``request_uri``: Path and query string sent on the request line.
    - ``source_address``: Set the source address for the current connection.
    - ``blocksize``: Size of the write buffer in front of the chunked body.
    """

    default_port: int = port_by_scheme["http"]
    scheme = "http"

    source_address: Optional[Tuple[str, int]]

    def __init__(
        self,
        host: str,
        port: Optional[int] = None,
        timeout: _TYPE_TIMEOUT = _DEFAULT_TIMEOUT,
        *,
        method: str = "POST",
        request_uri: str = "/",
        source_address: Optional[Tuple[str, int]] = None,
        blocksize: int = 16384,
    ) -> None:
        match = _CONTAINS_CONTROL_CHAR_RE.search(method)
        if match:
            raise ValueError(
                f"Method cannot contain non-token characters {method!r} "
                f"(found at least {match.group()!r})"
            )

        super().__init__(
            host=host,
            port=port,
            timeout=timeout,  # type: ignore[arg-type]
            source_address=source_address,
            blocksize=blocksize,
        )

        self.method = method
        self.request_uri = request_uri
        self.request_headers = HTTPHeaderDict()
        #: Whether a request body will be written.
        self.do_output = False

        self._body_writer: Optional[BodyWriter] = None
        self._body_stream: Optional[io.BufferedWriter] = None
        self._head_sent = False

    def _new_conn(self) -> socket.socket:
        """Establish a socket connection.

        :return: New socket connection.
        """
        try:
            conn = socket.create_connection(
                (self.host, self.port),
                self.timeout,  # type: ignore[arg-type]
                source_address=self.source_address,
            )
        except socket.gaierror as e:
            raise NameResolutionError(self.host, self, e) from e
        except OSError as e:
            raise NewConnectionError(
                self, f"Failed to establish a new connection: {e}"
            ) from e

        return conn

    def connect(self) -> None:
        log.debug(
            "Starting new %s connection: %s:%s",
            self.scheme.upper(),
            self.host,
            self.port,
        )
        self.sock = self._new_conn()

    @property
    def head_sent(self) -> bool:
        """Whether the request line and headers went out already."""
        return self._head_sent

    def set_request_header(self, name: str, value: str) -> None:
        """Set (or replace) a request header."""
        if self._head_sent:
            raise HeadersAlreadySentError(name)
        self.request_headers[name] = value

    def get_output_stream(self) -> BinaryIO:
        """
        Return the stream the request body is written to.

        The same stream is returned on every call. Nothing is sent until the
        stream's write buffer is flushed; closing the stream ends the body.
        A connection carries one request; once its head was sent, no new body
        can be started.
        """
        if not self.do_output:
            raise ProtocolError(
                "Connection is not in output mode; set do_output = True first"
            )
        if self._body_stream is None:
            if self._head_sent:
                raise ProtocolError("Request was already sent on this connection")
            self._body_writer = BodyWriter(self)
            self._body_stream = io.BufferedWriter(
                self._body_writer, buffer_size=self.blocksize
            )
        return self._body_stream  # type: ignore[return-value]

    def _send_head(self) -> None:
        if self._head_sent:
            return
        self._head_sent = True

        header_keys = {k.lower() for k in self.request_headers}
        self.putrequest(
            self.method,
            self.request_uri,
            skip_host="host" in header_keys,
            skip_accept_encoding="accept-encoding" in header_keys,
        )
        if "user-agent" not in header_keys:
            self.putheader("User-Agent", _get_default_user_agent())
        for header, value in self.request_headers.itermerged():
            self.putheader(header, value)
        if self.do_output and "transfer-encoding" not in header_keys:
            self.putheader("Transfer-Encoding", "chunked")
        self.endheaders()

        log.debug(
            '%s://%s:%s "%s %s"',
            self.scheme,
            self.host,
            self.port,
            self.method,
            self.request_uri,
        )

    def get_response(self) -> HTTPResponse:
        """
        Finish the request and return the server's response.

        The output stream, if one was handed out, must be closed first.
        """
        if self._body_stream is not None and not self._body_stream.closed:
            raise ProtocolError("Request body is still open; close it first")
        if not self._head_sent:
            if self.do_output:
                # Output mode without a body: send an empty chunked body.
                self.get_output_stream().close()
            else:
                self._send_head()

        response = self.getresponse()
        log.debug(
            '%s://%s:%s "%s %s" %s',
            self.scheme,
            self.host,
            self.port,
            self.method,
            self.request_uri,
            response.status,
        )
        return response

    def close(self) -> None:
        """
        Close the socket. An unfinished request body is abandoned: neither
        its buffered data nor its terminating chunk is sent.

        The request is not reset, so the connection cannot send another one.
        """
        try:
            if self._body_writer is not None:
                self._body_writer.abort()
            super().close()
        finally:
            self._body_writer = None
            self._body_stream = None


class HTTPSConnection(HTTPConnection):
    """
    :class:`HTTPConnection` over TLS.

    :param ssl_context:
        The :class:`ssl.SSLContext` used to wrap the socket. Defaults to
        :func:`ssl.create_default_context`, which verifies certificates
        and host names.
    """

    default_port = port_by_scheme["https"]
    scheme = "https"

    def __init__(
        self,
        host: str,
        port: Optional[int] = None,
        timeout: _TYPE_TIMEOUT = _DEFAULT_TIMEOUT,
        *,
        ssl_context: Optional[ssl.SSLContext] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(host, port=port, timeout=timeout, **kwargs)
        self.ssl_context = ssl_context

    def connect(self) -> None:
        super().connect()
        context = self.ssl_context
        if context is None:
            context = ssl.create_default_context()
        self.sock = context.wrap_socket(self.sock, server_hostname=self.host)


def connection_from_url(url: Union[str, Url], **kw: Any) -> HTTPConnection:
    """
    Given a url, return an :class:`.HTTPConnection` (or
    :class:`.HTTPSConnection`) set up to send a request to it.

    :param url:
        Absolute URL string, or an already parsed :class:`~formpost.util.url.Url`.

    :param \\**kw:
        Passes additional parameters to the constructor of the appropriate
        connection class. ``request_uri`` defaults to the path and query of
        ``url``.

    Example::

        >>> conn = connection_from_url('http://example.com/upload')
        >>> conn.request_uri
        '/upload'
    """
    if isinstance(url, str):
        url = parse_url(url)

    scheme = url.scheme or "http"
    if scheme not in port_by_scheme:
        raise URLSchemeUnknown(scheme)
    if not url.host:
        raise LocationValueError(f"No host specified in {url.url!r}")

    # http.client brackets IPv6 literals itself when building the Host header.
    host = url.host.strip("[]")
    kw.setdefault("request_uri", url.request_uri)

    cls = HTTPSConnection if scheme == "https" else HTTPConnection
    return cls(host, port=url.port, **kw)


def _get_default_user_agent() -> str:
    return f"python-formpost/{__version__}"
