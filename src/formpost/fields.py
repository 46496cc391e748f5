import contextlib
import io
import mimetypes
import os
from typing import (
    IO,
    Any,
    Iterator,
    NamedTuple,
    Optional,
    Tuple,
    Union,
    cast,
)

from .util.util import to_bytes

_TYPE_FIELD_VALUE = Union[str, bytes]
_TYPE_FILE_SOURCE = Union[str, "os.PathLike[str]", bytes, IO[bytes]]


def guess_content_type(
    filename: Optional[str], default: str = "application/octet-stream"
) -> str:
    """
    Guess the "Content-Type" of a file.

    :param filename:
        The filename to guess the "Content-Type" of using :mod:`mimetypes`.
    :param default:
        If no "Content-Type" can be guessed, default to `default`.
    """
    if filename:
        return mimetypes.guess_type(filename)[0] or default
    return default


class TextField(NamedTuple):
    """
    A plain form value. ``str`` values are sent UTF-8 encoded, ``bytes``
    values are sent as-is.
    """

    value: _TYPE_FIELD_VALUE

    def encode(self, encoding: str = "utf-8") -> bytes:
        return to_bytes(self.value, encoding)


class FileField:
    """
    A file upload form value.

    :param filename:
        The name sent in the part's ``filename`` parameter. Written verbatim.
    :param source:
        Where the content comes from. A path (``str`` or :class:`os.PathLike`)
        is opened in binary mode and closed again for every write. ``bytes``
        are sent as-is. A readable binary file object is read until
        exhausted but is never closed; its owner is responsible for that.
    :param content_type:
        An explicit "Content-Type" for the part. If omitted, it is guessed
        from ``filename`` with :func:`guess_content_type`.
    """

    def __init__(
        self,
        filename: str,
        source: _TYPE_FILE_SOURCE,
        content_type: Optional[str] = None,
    ) -> None:
        self.filename = filename
        self.source = source
        self._content_type = content_type

    @classmethod
    def from_path(
        cls, path: Union[str, "os.PathLike[str]"], content_type: Optional[str] = None
    ) -> "FileField":
        """Upload the file at ``path``, using the path as given as the filename."""
        return cls(os.fspath(path), path, content_type=content_type)

    @property
    def content_type(self) -> str:
        return self._content_type or guess_content_type(self.filename)

    @property
    def owns_stream(self) -> bool:
        """Whether :meth:`open` creates (and therefore closes) the stream."""
        return isinstance(self.source, (str, bytes, os.PathLike))

    @contextlib.contextmanager
    def open(self) -> Iterator[IO[bytes]]:
        """Yield a binary stream over the upload content."""
        if isinstance(self.source, (str, os.PathLike)):
            with open(self.source, "rb") as fp:
                yield fp
        elif isinstance(self.source, bytes):
            with io.BytesIO(self.source) as fp:
                yield fp
        else:
            yield self.source

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileField):
            return NotImplemented
        return (
            self.filename == other.filename
            and self.source is other.source
            and self.content_type == other.content_type
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(filename={self.filename!r}, "
            f"content_type={self.content_type!r})"
        )


FieldValue = Union[TextField, FileField]


def _is_file_object(value: Any) -> bool:
    return callable(getattr(value, "read", None))


def make_field(name: str, value: Any) -> FieldValue:
    """
    Turn a form value into a :class:`TextField` or a :class:`FileField`.

    The conversion happens once, at registration, so later changes to
    ``value`` are not seen by the request. Supports::

        'user': 'alice',
        'count': 3,
        'raw': b'\\x00\\x01',
        'avatar': pathlib.Path('avatar.png'),
        'notes': ('notes.txt', 'contents of notes'),
        'scan': ('scan.tiff', open('scan.tiff', 'rb'), 'image/tiff'),
        'log': open('build.log', 'rb'),

    Anything that is not a path, a file tuple, a binary file object or
    ``bytes`` is sent as its ``str()``.
    """
    if isinstance(value, (TextField, FileField)):
        return value

    if isinstance(value, os.PathLike):
        return FileField.from_path(value)

    if isinstance(value, tuple):
        content_type: Optional[str]
        if len(value) == 3:
            filename, data, content_type = cast(Tuple[str, Any, str], value)
        else:
            filename, data = cast(Tuple[str, Any], value)
            content_type = None
        if isinstance(data, str):
            data = data.encode("utf-8")
        return FileField(filename, data, content_type=content_type)

    if _is_file_object(value):
        filename = getattr(value, "name", None)
        if isinstance(filename, os.PathLike):
            filename = os.fspath(filename)
        if not isinstance(filename, str):
            filename = name
        return FileField(filename, value)

    if isinstance(value, bytes):
        return TextField(value)

    return TextField(str(value))
