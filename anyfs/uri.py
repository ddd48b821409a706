"""Parsing of connection URIs.

Supported formats:
    - scheme://[user[:password]@][host[:port]]/path
    - file:///path
    - /path or relative/path (local filesystem, no scheme)
    - E:/path or E:\\path (Windows drive letter, local filesystem)
"""

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit, unquote

from anyfs.exceptions import InvalidArgumentError, InvalidURIError

LOCAL_SCHEME = "file"


@dataclass(frozen=True)
class URI:
    """Parsed components of a connection URI."""

    scheme: str
    host: str = ""
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    path: str = ""
    raw: str = field(default="", compare=False)

    def __str__(self) -> str:
        return self.redacted()

    def redacted(self) -> str:
        """Render the URI without its password, for log messages."""
        if self.scheme == LOCAL_SCHEME and not self.host:
            return f"{self.scheme}://{self.path}"
        userinfo = f"{self.username}@" if self.username else ""
        port = f":{self.port}" if self.port is not None else ""
        return f"{self.scheme}://{userinfo}{self.host}{port}{self.path}"


def split_scheme(uri: str) -> str:
    """Return the lower-cased scheme of ``uri``.

    A colon at index 1 marks a drive-letter path and a string without any
    colon is a plain path; both map to the local scheme.
    """
    i = uri.find(":")
    if i == -1 or i == 1:
        return LOCAL_SCHEME
    return uri[:i].lower()


def parse_uri(uri: Optional[str]) -> URI:
    """Parse a URI string into its components.

    Raises:
        InvalidArgumentError: If ``uri`` is None or empty
        InvalidURIError: If the authority part cannot be parsed
    """
    if not uri:
        raise InvalidArgumentError("uri cannot be empty")

    i = uri.find(":")
    if i == -1 or i == 1:
        return URI(scheme=LOCAL_SCHEME, path=uri, raw=uri)

    scheme = uri[:i].lower()
    rest = uri[i + 1 :]

    if not rest.startswith("//"):
        # scheme:path without an authority part
        return URI(scheme=scheme, path=rest, raw=uri)

    try:
        parsed = urlsplit(rest)
        port = parsed.port
    except ValueError as e:
        raise InvalidURIError(f"invalid uri '{uri}': {e}") from e

    # urlsplit splits userinfo on its first colon, so passwords containing
    # colons survive intact
    username = unquote(parsed.username) if parsed.username else None
    password = unquote(parsed.password) if parsed.password is not None else None

    return URI(
        scheme=scheme,
        host=parsed.hostname or "",
        port=port,
        username=username,
        password=password,
        path=unquote(parsed.path),
        raw=uri,
    )
