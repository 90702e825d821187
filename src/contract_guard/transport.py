"""What the validation layer needs from an HTTP request, and two adapters providing it."""

from collections.abc import Iterator, Mapping
from typing import Any, Protocol

from pydantic import BaseModel

DEFAULT_CHUNK_SIZE = 64 * 1024


class Transport(Protocol):
    """A routed request: query string, headers, path bindings and a chunked body."""

    query_string: str
    headers: Mapping[str, str]
    bindings: Mapping[str, str]

    def iter_body(self) -> Iterator[bytes]: ...


class SimpleRequest(BaseModel):
    """In-memory request, e.g. for tests or the CLI.

    ``body_reads`` counts how many times the body stream was started.
    """

    query_string: str = ""
    headers: dict[str, str] = {}
    bindings: dict[str, str] = {}
    body: bytes = b""
    chunk_size: int = DEFAULT_CHUNK_SIZE
    body_reads: int = 0

    def iter_body(self) -> Iterator[bytes]:
        self.body_reads += 1
        for start in range(0, len(self.body), self.chunk_size):
            yield self.body[start : start + self.chunk_size]


class WsgiRequest:
    """Adapter over a WSGI ``environ``; ``bindings`` come from the caller's router."""

    def __init__(self, environ: dict[str, Any], bindings: Mapping[str, str] | None = None,
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.environ = environ
        self.bindings = dict(bindings or {})
        self.chunk_size = chunk_size
        self.query_string = environ.get("QUERY_STRING", "")
        self.headers = _wsgi_headers(environ)

    def iter_body(self) -> Iterator[bytes]:
        stream = self.environ.get("wsgi.input")
        if stream is None:
            return
        try:
            remaining = int(self.environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            remaining = 0
        while remaining > 0:
            chunk = stream.read(min(self.chunk_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk


def _wsgi_headers(environ: dict[str, Any]) -> dict[str, str]:
    headers = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            headers[key[5:].replace("_", "-").lower()] = value
        elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
            headers[key.replace("_", "-").lower()] = value
    return headers
