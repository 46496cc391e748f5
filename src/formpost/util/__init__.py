from .url import Url, parse_url
from .util import to_base36, to_bytes

__all__ = (
    "Url",
    "parse_url",
    "to_base36",
    "to_bytes",
)
