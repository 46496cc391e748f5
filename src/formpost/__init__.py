"""
Python multipart/form-data client with file upload, cookie and streaming support
"""

# Set default logging handler to avoid "No handler found" warnings.
import logging
import warnings
from logging import NullHandler
from typing import TextIO, Type

from . import exceptions
from ._collections import HTTPHeaderDict
from ._version import __version__
from .connection import HTTPConnection, HTTPSConnection, connection_from_url
from .fields import FileField, TextField, guess_content_type
from .filepost import (
    MultipartEncoder,
    choose_boundary,
    encode_multipart_formdata,
    post,
)
from .util.url import Url, parse_url

__license__ = "MIT"
__version__ = __version__

__all__ = (
    "FileField",
    "HTTPConnection",
    "HTTPHeaderDict",
    "HTTPSConnection",
    "MultipartEncoder",
    "TextField",
    "Url",
    "add_stderr_logger",
    "choose_boundary",
    "connection_from_url",
    "disable_warnings",
    "encode_multipart_formdata",
    "guess_content_type",
    "parse_url",
    "post",
)

logging.getLogger(__name__).addHandler(NullHandler())


def add_stderr_logger(level: int = logging.DEBUG) -> "logging.StreamHandler[TextIO]":
    """
    Helper for quickly adding a StreamHandler to the logger. Useful for
    debugging.

    Returns the handler after adding it.
    """
    # This method needs to be in this __init__.py to get the __name__ correct
    # even if formpost is vendored within another package.
    logger = logging.getLogger(__name__)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug("Added a stderr logging handler to logger: %s", __name__)
    return handler


# ... Clean up.
del NullHandler


# All warning filters *must* be appended unless you're really certain that they
# shouldn't be: otherwise, it's very hard for users to use most Python
# mechanisms to silence them.
# UnpairedValueWarnings point at a caller bug, report each call site once.
warnings.simplefilter("default", exceptions.UnpairedValueWarning, append=True)


def disable_warnings(category: Type[Warning] = exceptions.HTTPWarning) -> None:
    """
    Helper for quickly disabling all formpost warnings.
    """
    warnings.simplefilter("ignore", category)
