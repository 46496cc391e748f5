from collections.abc import MutableMapping
from typing import Dict, Iterator, List, Tuple

__all__ = ["HTTPHeaderDict"]


class HTTPHeaderDict(MutableMapping):  # type: ignore[type-arg]
    """
    A ``dict`` like container for storing outgoing HTTP request headers.

    Field names are stored and compared case-insensitively in compliance with
    RFC 7230. Iteration provides the first case-sensitive key seen for each
    case-insensitive pair.

    >>> headers = HTTPHeaderDict()
    >>> headers['Content-Type'] = 'multipart/form-data; boundary=xyz'
    >>> headers['content-type']
    'multipart/form-data; boundary=xyz'
    """

    _container: Dict[str, List[str]]

    def __init__(self) -> None:
        super().__init__()
        self._container = {}

    def __setitem__(self, key: str, val: str) -> None:
        self._container[key.lower()] = [key, val]

    def __getitem__(self, key: str) -> str:
        val = self._container[key.lower()]
        return ", ".join(val[1:])

    def __delitem__(self, key: str) -> None:
        del self._container[key.lower()]

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            return key.lower() in self._container
        return False

    def __len__(self) -> int:
        return len(self._container)

    def __iter__(self) -> Iterator[str]:
        # Only provide the originally cased names
        for vals in self._container.values():
            yield vals[0]

    def itermerged(self) -> Iterator[Tuple[str, str]]:
        """Iterate over all headers, merging duplicate ones together."""
        for key in self:
            val = self._container[key.lower()]
            yield val[0], ", ".join(val[1:])
