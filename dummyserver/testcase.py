from __future__ import annotations

import socket
import threading
import typing

from dummyserver.server import SocketServerThread


class ReceivedRequest(typing.NamedTuple):
    request_line: bytes
    headers: list[bytes]
    body: bytes

    def header(self, name: str) -> bytes | None:
        """Return the value of the first header called ``name``, if any."""
        wanted = name.lower().encode("ascii")
        for line in self.headers:
            key, _, value = line.partition(b": ")
            if key.lower() == wanted:
                return value
        return None


def read_request(sock: socket.socket, chunks: int = 65536) -> ReceivedRequest:
    """
    Read one complete request from ``sock``, de-chunking a
    ``Transfer-Encoding: chunked`` body.
    """
    buf = b""
    while b"\r\n\r\n" not in buf:
        data = sock.recv(chunks)
        if not data:
            raise ConnectionError("client closed the connection mid-head")
        buf += data

    head, _, rest = buf.partition(b"\r\n\r\n")
    request_line, *headers = head.split(b"\r\n")
    request = ReceivedRequest(request_line, headers, b"")

    if (request.header("Transfer-Encoding") or b"").lower() != b"chunked":
        length = int(request.header("Content-Length") or 0)
        while len(rest) < length:
            rest += sock.recv(chunks)
        return request._replace(body=rest[:length])

    body = bytearray()
    while True:
        while b"\r\n" not in rest:
            rest += sock.recv(chunks)
        size_line, _, rest = rest.partition(b"\r\n")
        size = int(size_line, 16)
        while len(rest) < size + 2:
            data = sock.recv(chunks)
            if not data:
                raise ConnectionError("client closed the connection mid-body")
            rest += data
        if size == 0:
            break
        body += rest[:size]
        rest = rest[size + 2 :]

    return request._replace(body=bytes(body))


class SocketDummyServerTestCase:
    """
    A simple socket-based server is created for this class that is good for
    exactly one request.
    """

    scheme = "http"
    host = "localhost"

    server_thread: typing.ClassVar[SocketServerThread]
    port: typing.ClassVar[int]

    @classmethod
    def _start_server(
        cls, socket_handler: typing.Callable[[socket.socket], None]
    ) -> None:
        ready_event = threading.Event()
        cls.server_thread = SocketServerThread(
            socket_handler=socket_handler, ready_event=ready_event, host=cls.host
        )
        cls.server_thread.start()
        ready_event.wait(5)
        if not ready_event.is_set():
            raise Exception("most likely failed to start server")
        cls.port = cls.server_thread.port

    @classmethod
    def start_recording_handler(
        cls,
        response: bytes = b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nok",
    ) -> list[ReceivedRequest]:
        """
        Serve one request, answering with ``response``. The returned list
        gets the :class:`ReceivedRequest` once it has been read.
        """
        received: list[ReceivedRequest] = []

        def socket_handler(listener: socket.socket) -> None:
            sock = listener.accept()[0]
            try:
                received.append(read_request(sock))
                sock.sendall(response)
            finally:
                sock.close()

        cls._start_server(socket_handler)
        return received

    @classmethod
    def teardown_class(cls) -> None:
        if hasattr(cls, "server_thread"):
            cls.server_thread.join(0.1)

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    def assert_header_received(
        self,
        received_headers: typing.Iterable[bytes],
        header_name: str,
        expected_value: str | None = None,
    ) -> None:
        header_name_bytes = header_name.encode("ascii")
        if expected_value is None:
            expected_value_bytes = None
        else:
            expected_value_bytes = expected_value.encode("ascii")
        header_titles = []
        for header in received_headers:
            key, value = header.split(b": ", 1)
            header_titles.append(key)
            if key == header_name_bytes and expected_value_bytes is not None:
                assert value == expected_value_bytes
        assert header_name_bytes in header_titles
