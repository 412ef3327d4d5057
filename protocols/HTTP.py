import re
from typing import Dict, Optional, Tuple
from urllib.parse import quote, urljoin, urlsplit

from protocols.exceptions import MalformedPathError
from utils.utils import Utils


# characters left as-is when normalizing the request target,
# everything else (space, quotes, <, >, non-ASCII...) gets percent-encoded
PATH_SAFE_CHARS = "!$%&'()*+,-./:;=@[\\]^_|~"
QUERY_SAFE_CHARS = "!$%&()*+,-./:;=?@[\\]^_`{|}~"


class HTTPRequest:
    """
    Raw HTTP/1.1 request

    Wire format:
    ------------------------------------------
    | METHOD PATH?QUERY HTTP/1.1\\r\\n        |
    | Host: hostname\\r\\n                     |
    | Name: value\\r\\n       (0 or more)      |
    | Content-Length: n\\r\\n (only with body) |
    | \\r\\n                                   |
    | body                 (only with body)  |
    ------------------------------------------

    * Host header never carries the port
    * body=None means no body, body="" is an empty body with Content-Length: 0
    """
    default_port = 80
    http_version = "HTTP/1.1"

    def __init__(self, hostname: str, method: str, path: str = "", port: Optional[int] = None,
                 headers: Optional[Dict[str, str]] = None, body: Optional[str] = None):
        if not hostname:
            raise ValueError("hostname must be a non-empty string")

        if not method:
            raise ValueError("method must be a non-empty string")

        # 0 or None -> default port
        port = port or self.default_port
        if not 0 < port <= 2**16 - 1:
            raise ValueError(f"Invalid port {port}")

        self._hostname = hostname
        self._method = method
        self._path = path or ""
        self._port = port
        # copied so later changes to the caller's dict don't leak in
        self._headers = dict(headers or {})
        self._body = body

    @property
    def hostname(self) -> str:
        return self._hostname

    @property
    def port(self) -> int:
        return self._port

    @property
    def path(self) -> str:
        return self._path

    @property
    def method(self) -> str:
        return self._method

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    @property
    def body(self) -> Optional[str]:
        return self._body

    @property
    def base_url(self) -> str:
        return f"http://{self._hostname}"

    @staticmethod
    def from_options(options: dict):
        """Build a request from a plain mapping, "data" is accepted as an alias of "body"."""
        body = options.get("body", options.get("data"))
        return HTTPRequest(hostname=options.get("hostname", ""),
                           method=options.get("method", ""),
                           path=options.get("path", ""),
                           port=options.get("port"),
                           headers=options.get("headers"),
                           body=body)

    def resolve_target(self) -> Tuple[str, str]:
        """Returns (pathname, search) of the path resolved against http://hostname"""
        # "\" counts as "/" before the query or fragment, as browsers do for http URLs
        end = len(re.match(r"[^?#]*", self._path).group(0))
        path = self._path[:end].replace("\\", "/") + self._path[end:]

        try:
            parts = urlsplit(path)
            authority = path[len(parts.scheme) + 1:] if parts.scheme else path
            if authority.startswith("//") and not parts.netloc:
                raise ValueError("empty host")

            resolved = urlsplit(urljoin(self.base_url, path))
            # raises on a non-numeric port in an absolute URL path
            resolved.port
        except ValueError as e:
            raise MalformedPathError(f"Invalid path {self._path!r}", cause=e,
                                     host=self._hostname, port=self._port) from e

        pathname = quote(resolved.path, safe=PATH_SAFE_CHARS) or "/"
        query = quote(resolved.query, safe=QUERY_SAFE_CHARS)
        search = f"?{query}" if query else ""

        return pathname, search

    @property
    def target(self) -> str:
        pathname, search = self.resolve_target()
        return pathname + search

    def build_request(self) -> bytes:
        request_text = f"{self._method} {self.target} {self.http_version}\r\n"
        request_text += f"Host: {self._hostname}\r\n"

        for key, value in self._headers.items():
            request_text += f"{key}: {value}\r\n"

        if self._body is not None:
            request_text += f"Content-Length: {Utils.byte_length(self._body)}\r\n"

        # end of header block
        request_text += "\r\n"

        if self._body is not None:
            request_text += self._body

        return request_text.encode("utf-8")

    def __repr__(self):
        return f"HTTPRequest({self._method} http://{self._hostname}:{self._port}{self._path})"
