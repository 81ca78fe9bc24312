"""In-process GraphQL client for exercising WSGI applications in tests."""

from __future__ import annotations

import base64
import io
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable
from wsgiref.util import setup_testing_defaults

Option = Callable[["Request"], None]
Handler = Callable[..., Iterable[bytes]]

_JSON = "application/json"
_GO_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class RawJSONError(Exception):
    """A JSON-formatted ``errors`` value returned by a GraphQL server.

    ``data`` holds whatever partial data came back alongside the errors.
    """

    def __init__(self, raw: str, data: Any = None) -> None:
        super().__init__(raw)
        self.raw = raw
        self.data = data

    def __str__(self) -> str:
        return self.raw


def _sort_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _sort_keys(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [_sort_keys(v) for v in value]
    return value


def _dump(value: Any) -> str:
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    for char, escaped in _GO_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


@dataclass
class Request:
    """An outgoing GraphQL request together with its HTTP details."""

    query: str
    variables: dict[str, Any] | None = None
    operation_name: str = ""
    path: str = "/"
    headers: list[tuple[str, str]] = field(
        default_factory=lambda: [("Content-Type", _JSON)]
    )

    def header(self, key: str) -> str:
        """Return the first value of header ``key``, or an empty string."""
        wanted = key.lower()
        return next((v for k, v in self.headers if k.lower() == wanted), "")

    def add_header(self, key: str, value: str) -> None:
        """Append a value to header ``key``."""
        self.headers.append((key, value))

    def set_header(self, key: str, value: str) -> None:
        """Replace every value of header ``key`` with ``value``."""
        wanted = key.lower()
        self.headers = [(k, v) for k, v in self.headers if k.lower() != wanted]
        self.headers.append((key, value))

    def body(self) -> bytes:
        """Encode the GraphQL part of the request as a JSON body."""
        payload: dict[str, Any] = {"query": self.query}
        if self.variables:
            payload["variables"] = _sort_keys(self.variables)
        if self.operation_name:
            payload["operationName"] = self.operation_name
        try:
            return _dump(payload).encode("utf-8")
        except (TypeError, ValueError) as err:
            raise ValueError(f"encode: {err}") from err

    def environ(self, body: bytes) -> dict[str, Any]:
        """Build a WSGI environment for a POST of ``body``."""
        env: dict[str, Any] = {
            "REQUEST_METHOD": "POST",
            "PATH_INFO": self.path,
            "QUERY_STRING": "",
            "HTTP_HOST": "example.com",
            "REMOTE_ADDR": "192.0.2.1",
            "CONTENT_LENGTH": str(len(body)),
            "wsgi.input": io.BytesIO(body),
        }
        grouped: dict[str, list[str]] = {}
        for key, value in self.headers:
            lowered = key.lower()
            if lowered == "content-length":
                continue
            if lowered == "content-type":
                env.setdefault("CONTENT_TYPE", value)
                continue
            grouped.setdefault(lowered, []).append(value)
        for key, values in grouped.items():
            separator = "; " if key == "cookie" else ", "
            env["HTTP_" + key.upper().replace("-", "_")] = separator.join(values)
        setup_testing_defaults(env)
        return env


@dataclass
class Response:
    """The GraphQL layer of a server's reply."""

    data: Any = None
    errors: str | None = None
    extensions: dict[str, Any] | None = None


def var(name: str, value: Any) -> Option:
    """Add a variable to the outgoing request."""

    def apply(request: Request) -> None:
        if request.variables is None:
            request.variables = {}
        request.variables[name] = value

    return apply


def operation(name: str) -> Option:
    """Set the operation name of the outgoing request."""

    def apply(request: Request) -> None:
        request.operation_name = name

    return apply


def path(url: str) -> Option:
    """Set the path the request is made against."""

    def apply(request: Request) -> None:
        request.path = url

    return apply


def add_header(key: str, value: str) -> Option:
    """Add a header to the outgoing request."""

    def apply(request: Request) -> None:
        request.add_header(key, value)

    return apply


def basic_auth(username: str, password: str) -> Option:
    """Authenticate the request with HTTP basic auth."""

    def apply(request: Request) -> None:
        credentials = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        request.set_header("Authorization", f"Basic {credentials}")

    return apply


def add_cookie(name: str, value: str) -> Option:
    """Add a cookie to the outgoing request."""

    def apply(request: Request) -> None:
        pair = f"{name}={value}"
        existing = request.header("Cookie")
        request.set_header("Cookie", f"{existing}; {pair}" if existing else pair)

    return apply


def _decode_response(raw: bytes) -> Response:
    try:
        decoded = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as err:
        raise RuntimeError(f"decode: {err}") from err
    response = Response()
    if decoded is None:
        return response
    if not isinstance(decoded, dict):
        raise RuntimeError(f"decode: cannot read {type(decoded).__name__} as a response")
    for key, value in decoded.items():
        lowered = key.lower()
        if lowered == "data":
            response.data = value
        elif lowered == "errors":
            response.errors = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        elif lowered == "extensions":
            if value is not None and not isinstance(value, dict):
                raise RuntimeError("decode: extensions must be an object")
            response.extensions = value
    return response


class Client:
    """Sends GraphQL requests straight to a WSGI application."""

    def __init__(self, handler: Handler, *args: Option) -> None:
        self._handler = handler
        self._options = args

    def _new_request(self, query: str, options: tuple[Option, ...]) -> Request:
        request = Request(query=query)
        for option in (*self._options, *options):
            option(request)
        content_type = request.header("Content-Type")
        if content_type != _JSON:
            raise ValueError(f"unsupported encoding {content_type}")
        return request

    def _serve(self, request: Request) -> tuple[int, bytes]:
        environ = request.environ(request.body())
        status_line = "200 OK"
        written: list[bytes] = []

        def start_response(status: str, headers: Any, exc_info: Any = None) -> Callable[[bytes], None]:
            nonlocal status_line
            status_line = status
            return written.append

        result = self._handler(environ, start_response)
        try:
            chunks = list(result)
        finally:
            close = getattr(result, "close", None)
            if close is not None:
                close()
        return int(status_line.split()[0]), b"".join(written + chunks)

    def raw_post(self, query: str, *args: Option) -> Response:
        """Post the query and return the undecoded GraphQL response."""
        request = self._new_request(query, args)
        status, body = self._serve(request)
        if status >= 400:
            raise RuntimeError(f"http {status}: {body.decode('utf-8', 'replace')}")
        return _decode_response(body)

    def post(self, query: str, *args: Option) -> Any:
        """Post the query and return its data; GraphQL errors raise RawJSONError."""
        response = self.raw_post(query, *args)
        if response.errors is not None:
            raise RawJSONError(response.errors, response.data)
        return response.data

    def must_post(self, query: str, *args: Option) -> Any:
        """Post the query for callers that treat every failure as fatal."""
        return self.post(query, *args)