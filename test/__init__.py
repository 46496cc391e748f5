from __future__ import annotations

import io
import typing

from formpost.exceptions import ProtocolError

BOUNDARY = "!! test boundary !!"
BOUNDARY_BYTES = BOUNDARY.encode()


class RecordingSink(io.BytesIO):
    """A body sink that remembers its contents after being closed."""

    def __init__(self, conn: RecordingConnection) -> None:
        super().__init__()
        self._conn = conn
        self.value: bytes | None = None
        self.headers_at_first_write: dict[str, str] | None = None

    def write(self, b: typing.Any) -> int:
        if self.headers_at_first_write is None:
            self.headers_at_first_write = dict(self._conn.headers)
        return super().write(b)

    def close(self) -> None:
        if not self.closed:
            self.value = self.getvalue()
        super().close()


class FailingSink(io.RawIOBase):
    """A body sink whose writes fail once ``limit`` bytes were accepted."""

    def __init__(self, limit: int = 0) -> None:
        self.limit = limit
        self.written = 0

    def writable(self) -> bool:
        return True

    def write(self, b: typing.Any) -> int:
        if self.written + len(b) > self.limit:
            raise BrokenPipeError(32, "Broken pipe")
        self.written += len(b)
        return len(b)


class RecordingConnection:
    """
    In-memory stand-in for an open connection: collects request headers and
    the request body instead of sending them anywhere.
    """

    def __init__(self, sink: typing.IO[bytes] | None = None) -> None:
        self.do_output = False
        self.headers: dict[str, str] = {}
        self.sink = sink
        self.output_stream_requests = 0
        self.response = object()

    def set_request_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def get_output_stream(self) -> typing.IO[bytes]:
        if not self.do_output:
            raise ProtocolError("not in output mode")
        self.output_stream_requests += 1
        if self.sink is None:
            self.sink = RecordingSink(self)
        return self.sink

    def get_response(self) -> object:
        return self.response

    @property
    def body(self) -> bytes:
        assert isinstance(self.sink, RecordingSink)
        assert self.sink.value is not None, "body was not closed"
        return self.sink.value
