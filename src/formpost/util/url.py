import re
from typing import NamedTuple, Optional

from ..exceptions import LocationParseError

# We only want to normalize urls with an HTTP(S) scheme.
# formpost infers URLs without a scheme (None) to be http.
NORMALIZABLE_SCHEMES = ("http", "https", None)

# Regex for detecting URLs with schemes. RFC 3986 Section 3.1
_SCHEME_RE = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+-]*:|/)")

_URI_RE = re.compile(
    r"^(?:([a-zA-Z][a-zA-Z0-9+.-]*):)?"
    r"(?://([^\\/?#]*))?"
    r"([^?#]*)"
    r"(?:\?([^#]*))?"
    r"(?:#(.*))?$",
    re.UNICODE | re.DOTALL,
)

_HOST_PORT_RE = re.compile(r"^(\[[^\]]*\]|[^\[\]:]*)(?::([0-9]{0,5}))?$", re.DOTALL)


class Url(
    NamedTuple(
        "Url",
        [
            ("scheme", Optional[str]),
            ("auth", Optional[str]),
            ("host", Optional[str]),
            ("port", Optional[int]),
            ("path", Optional[str]),
            ("query", Optional[str]),
            ("fragment", Optional[str]),
        ],
    )
):
    """
    Data structure for representing an HTTP URL. Used as a return value for
    :func:`parse_url`. Both the scheme and host are normalized as they are
    both case-insensitive according to RFC 3986.
    """

    def __new__(  # type: ignore[no-untyped-def]
        cls,
        scheme: Optional[str] = None,
        auth: Optional[str] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        path: Optional[str] = None,
        query: Optional[str] = None,
        fragment: Optional[str] = None,
    ):
        if path and not path.startswith("/"):
            path = "/" + path
        if scheme is not None:
            scheme = scheme.lower()
        if host and scheme in NORMALIZABLE_SCHEMES:
            host = host.lower()
        return super().__new__(cls, scheme, auth, host, port, path, query, fragment)

    @property
    def request_uri(self) -> str:
        """Absolute path including the query string."""
        uri = self.path or "/"

        if self.query is not None:
            uri += "?" + self.query

        return uri

    @property
    def url(self) -> str:
        """
        Convert self into a url

        This function should more or less round-trip with :func:`.parse_url`. The
        returned url may not be exactly the same as the url inputted to
        :func:`.parse_url`, but it should be equivalent by the RFC (e.g., urls
        with a blank port will have : removed).

        Example: ::

            >>> U = parse_url('http://example.com/upload/')
            >>> U.url
            'http://example.com/upload/'
        """
        scheme, auth, host, port, path, query, fragment = self
        url = ""

        # We use "is not None" we want things to happen with empty strings (or 0 port)
        if scheme is not None:
            url += scheme + "://"
        if auth is not None:
            url += auth + "@"
        if host is not None:
            url += host
        if port is not None:
            url += ":" + str(port)
        if path is not None:
            url += path
        if query is not None:
            url += "?" + query
        if fragment is not None:
            url += "#" + fragment

        return url


def parse_url(url: str) -> Url:
    """
    Given a url, return a parsed :class:`.Url` namedtuple. Best-effort is
    performed to parse incomplete urls. Fields not provided will be None.

    :param str url: URL to parse into a :class:`.Url` namedtuple.

    Example::

        >>> parse_url('http://example.com/upload/')
        Url(scheme='http', host='example.com', port=None, path='/upload/', ...)
        >>> parse_url('example.com:80')
        Url(scheme=None, host='example.com', port=80, path=None, ...)
        >>> parse_url('/upload?draft')
        Url(scheme=None, host=None, port=None, path='/upload', query='draft', ...)
    """
    if not url:
        # Empty
        return Url()

    source_url = url
    # We support URLs that have a host but don't start with a scheme
    # so we add an empty authority marker for them.
    if not _SCHEME_RE.search(url):
        url = "//" + url

    match = _URI_RE.match(url)
    if match is None:
        raise LocationParseError(source_url)
    scheme, authority, path, query, fragment = match.groups()

    auth: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    if authority is not None:
        auth, _, host_port = authority.rpartition("@")
        host_port_match = _HOST_PORT_RE.match(host_port)
        if host_port_match is None:
            raise LocationParseError(source_url)
        host, port_str = host_port_match.groups()
        if port_str:
            port = int(port_str)
            if not 0 <= port <= 65535:
                raise LocationParseError(source_url)
        if not auth:
            auth = None
        if not host:
            host = None

    # For the sake of backwards compatibility we put empty
    # string values for path if there are any defined values
    # beyond the path in the URL.
    if not path:
        if query is not None or fragment is not None:
            path = ""
        else:
            path = None

    return Url(
        scheme=scheme,
        auth=auth,
        host=host,
        port=port,
        path=path,
        query=query,
        fragment=fragment,
    )
