import logging
import random
import warnings
from http.client import HTTPResponse
from io import BytesIO
from typing import (
    IO,
    Any,
    Dict,
    Iterator,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .connection import OutputConnection, connection_from_url
from .exceptions import BodyAlreadySentError, UnpairedValueWarning
from .fields import FieldValue, FileField, make_field
from .util.url import Url
from .util.util import to_base36

log = logging.getLogger(__name__)

#: Literal start of every generated boundary.
BOUNDARY_PREFIX = "-" * 27

#: Bytes read from an upload per write to the request body.
DEFAULT_BLOCKSIZE = 50000

_TYPE_PAIRS = Union[Mapping[str, Any], Sequence[Any], None]


def choose_boundary(rng: Optional[random.Random] = None) -> str:
    """
    Generate a multipart boundary: :data:`BOUNDARY_PREFIX` followed by three
    random 64-bit numbers in base 36.

    :param rng:
        Random generator to draw from. A fresh, OS-seeded
        :class:`random.Random` is used when omitted, so the module-level
        generator is never touched.
    """
    if rng is None:
        rng = random.Random()
    return BOUNDARY_PREFIX + "".join(to_base36(rng.getrandbits(64)) for _ in range(3))


def _is_pair(item: Any) -> bool:
    return (
        isinstance(item, Sequence)
        and not isinstance(item, (str, bytes))
        and len(item) == 2
    )


def iter_pairs(values: _TYPE_PAIRS) -> Iterator[Tuple[str, Any]]:
    """
    Iterate over ``(name, value)`` pairs.

    Supports dicts, lists of ``(name, value)`` pairs (tuples, or any other
    two-item sequence such as a JSON decoded ``[name, value]``), and flat
    ``[name, value, name, value, ...]`` lists. ``None`` yields nothing. A flat
    list of odd length loses its last element, with an
    :class:`~formpost.exceptions.UnpairedValueWarning`.
    """
    if values is None:
        return

    if isinstance(values, Mapping):
        for name, value in values.items():
            yield name, value
        return

    items = list(values)
    if all(_is_pair(item) for item in items):
        for name, value in items:
            yield name, value
        return

    if len(items) % 2:
        warnings.warn(
            f"Ignoring unpaired trailing element {items[-1]!r} of a "
            f"{len(items)}-element name/value list",
            UnpairedValueWarning,
            stacklevel=3,
        )
    for i in range(0, len(items) - 1, 2):
        yield str(items[i]), items[i + 1]


def _pipe(source: IO[bytes], out: IO[bytes], blocksize: int) -> None:
    while True:
        chunk = source.read(blocksize)
        if not chunk:
            break
        out.write(chunk)
    out.flush()


def write_field(
    out: IO[bytes], boundary: str, name: str, field: FieldValue, blocksize: int
) -> None:
    """
    Write one boundary-delimited part for ``field`` to ``out``.

    Names and filenames are written verbatim, without quoting or escaping.
    """
    out.write(f"--{boundary}\r\n".encode("latin-1"))
    disposition = f'Content-Disposition: form-data; name="{name}"'

    if isinstance(field, FileField):
        out.write(
            f'{disposition}; filename="{field.filename}"\r\n'
            f"Content-Type: {field.content_type}\r\n"
            f"\r\n".encode("utf-8")
        )
        with field.open() as fp:
            _pipe(fp, out, blocksize)
    else:
        out.write(f"{disposition}\r\n\r\n".encode("utf-8"))
        out.write(field.encode())

    out.write(b"\r\n")


class MultipartEncoder:
    """
    Sends cookies and form parameters, including file uploads, as a single
    ``multipart/form-data`` request.

    :param connection:
        An open connection (see :class:`~formpost.connection.OutputConnection`),
        or a URL string or :class:`~formpost.util.url.Url` to open one for.

    :param boundary:
        Boundary to delimit parts with. If not specified, one is generated
        with :func:`choose_boundary`.

    :param blocksize:
        How many bytes of a file upload are read per write.

    :param rng:
        Random generator handed to :func:`choose_boundary`.

    :param \\**conn_kw:
        Passed to :func:`~formpost.connection.connection_from_url` when
        ``connection`` is a URL.

    The encoder serves one request. Register cookies and parameters in any
    order, then call :meth:`post` once::

        >>> encoder = MultipartEncoder('http://example.com/upload')
        >>> encoder.set_cookie('sid', 'abc')
        >>> encoder.set_parameter('title', 'Quarterly report')
        >>> encoder.set_parameter('doc', pathlib.Path('report.pdf'))
        >>> response = encoder.post_stream()
    """

    def __init__(
        self,
        connection: Union[OutputConnection, Url, str],
        *,
        boundary: Optional[str] = None,
        blocksize: int = DEFAULT_BLOCKSIZE,
        rng: Optional[random.Random] = None,
        **conn_kw: Any,
    ) -> None:
        if isinstance(connection, (str, Url)):
            connection = connection_from_url(connection, **conn_kw)
        elif conn_kw:
            raise TypeError(
                "Connection arguments given with an already open connection: "
                + ", ".join(sorted(conn_kw))
            )

        self.connection = connection
        self.blocksize = blocksize
        self._boundary = boundary or choose_boundary(rng)
        self._cookies: Dict[str, str] = {}
        self._parameters: Dict[str, FieldValue] = {}
        self._output: Optional[IO[bytes]] = None
        self._posted = False

        connection.do_output = True
        connection.set_request_header("Content-Type", self.content_type)

    @property
    def boundary(self) -> str:
        return self._boundary

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self._boundary}"

    @property
    def cookies(self) -> Dict[str, str]:
        """A copy of the registered cookies."""
        return dict(self._cookies)

    @property
    def parameters(self) -> Dict[str, FieldValue]:
        """A copy of the registered parameters, in body order."""
        return dict(self._parameters)

    def set_cookie(self, name: str, value: str) -> None:
        """Add a cookie, replacing any earlier cookie with the same name."""
        self._cookies[name] = str(value)

    def set_cookies(self, cookies: _TYPE_PAIRS) -> None:
        """
        Add several cookies, see :func:`iter_pairs` for the accepted forms.
        ``None`` is ignored.
        """
        for name, value in iter_pairs(cookies):
            self.set_cookie(name, value)

    def set_parameter(self, name: str, value: Any) -> None:
        """
        Add a form parameter, replacing the value of an earlier parameter with
        the same name while keeping its position in the body.

        ``value`` is converted with :func:`~formpost.fields.make_field`:
        paths, file tuples and binary file objects become file uploads,
        everything else is sent as text.
        """
        self._parameters[name] = make_field(name, value)

    def set_file(
        self,
        name: str,
        filename: str,
        fileobj: IO[bytes],
        content_type: Optional[str] = None,
    ) -> None:
        """
        Add a file upload read from ``fileobj``. The stream is not closed by
        the encoder.
        """
        self._parameters[name] = FileField(
            filename, fileobj, content_type=content_type
        )

    def set_parameters(self, parameters: _TYPE_PAIRS) -> None:
        """
        Add several form parameters, see :func:`iter_pairs` for the accepted
        forms. ``None`` is ignored.
        """
        for name, value in iter_pairs(parameters):
            self.set_parameter(name, value)

    def _post_cookies(self) -> None:
        if not self._cookies:
            return
        cookie_list = "; ".join(
            f"{name}={value}" for name, value in self._cookies.items()
        )
        self.connection.set_request_header("Cookie", cookie_list)

    def post(
        self, parameters: _TYPE_PAIRS = None, cookies: _TYPE_PAIRS = None
    ) -> OutputConnection:
        """
        Write the request body and close it.

        :param parameters:
            Extra parameters merged in before writing, as for :meth:`set_parameters`.
        :param cookies:
            Extra cookies merged in before writing, as for :meth:`set_cookies`.

        :return:
            The connection, ready for its response to be read.

        Errors raised while reading uploads or writing the body propagate;
        the connection cannot be reused after one.
        """
        if self._posted:
            raise BodyAlreadySentError("This request body was already posted")

        self.set_cookies(cookies)
        self.set_parameters(parameters)
        self._posted = True

        if self._output is None:
            self._output = self.connection.get_output_stream()
        self._post_cookies()

        log.debug(
            "Posting %d parameter(s) and %d cookie(s), boundary %s",
            len(self._parameters),
            len(self._cookies),
            self._boundary,
        )

        out = self._output
        for name, field in self._parameters.items():
            write_field(out, self._boundary, name, field, self.blocksize)
        out.write(f"--{self._boundary}--\r\n".encode("latin-1"))
        out.close()

        return self.connection

    def post_stream(
        self, parameters: _TYPE_PAIRS = None, cookies: _TYPE_PAIRS = None
    ) -> HTTPResponse:
        """
        Like :meth:`post`, but returns the server's response.
        """
        conn = self.post(parameters, cookies)
        return conn.get_response()  # type: ignore[no-any-return]


def post(
    url: Union[Url, str],
    parameters: _TYPE_PAIRS = None,
    cookies: _TYPE_PAIRS = None,
    **kw: Any,
) -> HTTPResponse:
    """
    Post ``parameters`` and ``cookies`` to ``url`` as a new
    ``multipart/form-data`` request and return the response.

    ``kw`` is passed to :class:`MultipartEncoder`.
    """
    return MultipartEncoder(url, **kw).post_stream(parameters, cookies)


def encode_multipart_formdata(
    fields: _TYPE_PAIRS, boundary: Optional[str] = None
) -> Tuple[bytes, str]:
    """
    Encode ``fields`` using the multipart/form-data MIME format, in memory.

    :param fields:
        Any form accepted by :meth:`MultipartEncoder.set_parameters`. Unlike
        the encoder, a list with a repeated name produces one part per entry.

    :param boundary:
        If not specified, then a random boundary will be generated using
        :func:`choose_boundary`.
    """
    body = BytesIO()
    if boundary is None:
        boundary = choose_boundary()

    for name, value in iter_pairs(fields):
        write_field(body, boundary, name, make_field(name, value), DEFAULT_BLOCKSIZE)

    body.write(f"--{boundary}--\r\n".encode("latin-1"))

    content_type = f"multipart/form-data; boundary={boundary}"

    return body.getvalue(), content_type
