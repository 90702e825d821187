"""Value extraction: pull a parameter's raw value out of a request.

``RequestContext`` wraps the transport for the lifetime of one request and
caches everything that must not be computed twice, most importantly the
decoded body: the transport body is consumed at most once per request no
matter how many parameters read from it.
"""

import json
import logging
from typing import Any
from urllib.parse import parse_qsl

from contract_guard.catalog.base import Source
from contract_guard.errors import BodyDecodeError, CatalogError
from contract_guard.transport import Transport
from contract_guard.validation.outcome import ABSENT, EMPTY

logger = logging.getLogger(__name__)

_UNREAD = object()


class RequestContext:
    """Per-request view over a transport with cached query, headers and body."""

    def __init__(self, transport: Transport):
        self.transport = transport
        self._query: dict[str, str] | None = None
        self._headers: dict[str, str] | None = None
        self._body: Any = _UNREAD

    @property
    def query(self) -> dict[str, str]:
        if self._query is None:
            query = {}
            for key, value in parse_qsl(self.transport.query_string or "", keep_blank_values=True):
                query.setdefault(key, value)  # first occurrence wins
            self._query = query
        return self._query

    @property
    def headers(self) -> dict[str, str]:
        if self._headers is None:
            self._headers = {k.lower(): v for k, v in self.transport.headers.items()}
        return self._headers

    @property
    def body_consumed(self) -> bool:
        return self._body is not _UNREAD

    def body(self) -> Any:
        """Decoded JSON body, ``EMPTY`` for an empty body.

        Raises ``BodyDecodeError`` when the body is not valid JSON.
        """
        if self._body is _UNREAD:
            raw = b"".join(self.transport.iter_body())
            logger.debug("Read request body (%d bytes)", len(raw))
            self._body = decode_body(raw)
        if isinstance(self._body, BodyDecodeError):
            raise self._body
        return self._body


def decode_body(raw: bytes) -> Any:
    if not raw:
        return EMPTY
    try:
        return json.loads(raw)
    except ValueError as e:
        return BodyDecodeError(raw, str(e))


def extract(source: Source, name: str, request: RequestContext) -> Any:
    """Raw value of parameter ``name`` from ``source``, or ``ABSENT``."""
    try:
        source = Source(source)
    except ValueError:
        raise CatalogError(f"unknown parameter source {source!r}") from None

    if source is Source.QUERY:
        return request.query.get(name, ABSENT)
    if source is Source.HEADER:
        return request.headers.get(name.lower(), ABSENT)
    if source is Source.BINDING:
        value = request.transport.bindings.get(name)
        if value is None:
            logger.warning("No path binding %r captured by the router", name)
            return ABSENT
        return value
    if source is Source.BODY:
        return request.body()
