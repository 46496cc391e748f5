from __future__ import annotations

import typing
from pathlib import Path

import pytest

from formpost.filepost import MultipartEncoder

from . import BOUNDARY, RecordingConnection

#: Deliberately not valid PDF; only the bytes matter.
REPORT_PDF_BYTES = b"%PDF-1.4\r\n\x00\x01\x02binary\r\n--not-a-boundary\r\n%%EOF"


@pytest.fixture
def conn() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture
def encoder(conn: RecordingConnection) -> MultipartEncoder:
    return MultipartEncoder(conn, boundary=BOUNDARY)


@pytest.fixture
def report_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "report.pdf"
    path.write_bytes(REPORT_PDF_BYTES)
    return path


@pytest.fixture
def big_file(tmp_path: Path) -> typing.Iterator[Path]:
    """A file spanning several read blocks, with a short last block."""
    path = tmp_path / "big.bin"
    path.write_bytes(bytes(range(256)) * 500)
    yield path
