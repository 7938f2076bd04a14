"""Immutable HTTP request read from an ASGI scope.

Frozen metadata with async body access. ``sources()`` turns the request
into the ``RequestSources`` the router dispatches on.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from deputy._internal.asgi import Receive
from deputy.errors import HTTPError
from deputy.http.headers import Headers
from deputy.http.query import QueryParams

if TYPE_CHECKING:
    from deputy.context import RequestSources
    from deputy.http.forms import FormData


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is accessed asynchronously via ``.body()`` and ``.form()``.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None
    root_path: str = ""
    max_body_size: int | None = None

    # Private: ASGI receive callable for body streaming
    _receive: Receive | None = None

    # Private: body and parsed form, read once
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def has_form(self) -> bool:
        """True if the body is a URL-encoded or multipart form."""
        from deputy.http.forms import is_form_content_type

        return self.method not in ("GET", "HEAD") and is_form_content_type(self.content_type)

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body. Cached after the first call."""
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks.

        Raises ``HTTPError`` (413) once more than ``max_body_size`` bytes
        arrive, whatever the Content-Length header claimed.
        """
        if self._receive is None:
            return
        received = 0
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                received += len(body)
                if self.max_body_size is not None and received > self.max_body_size:
                    raise HTTPError(status=413, detail="Request body too large")
                yield body
            if not message.get("more_body", False):
                break

    async def form(self) -> FormData:
        """Parse the body as form data (URL-encoded or multipart).

        Cached after the first call. Multipart bodies need
        ``pip install deputy[forms]``.

        Raises:
            ValueError: If Content-Type is not a form encoding.
            ConfigurationError: If multipart is needed but
                ``python-multipart`` is not installed.
        """
        if "_form" in self._cache:
            return self._cache["_form"]

        from deputy.http.forms import parse_form_data

        ct = self.content_type or "application/x-www-form-urlencoded"
        raw = await self.body()
        result = parse_form_data(raw, ct)
        self._cache["_form"] = result
        return result

    # -- Dispatch sources --

    def environ(self) -> dict[str, Any]:
        """CGI-style server variables for the ``server`` accessor."""
        environ: dict[str, Any] = {
            "REQUEST_METHOD": self.method,
            "PATH_INFO": self.path,
            "SCRIPT_NAME": self.root_path,
            "QUERY_STRING": self.query.raw.decode("latin-1"),
            "SERVER_PROTOCOL": f"HTTP/{self.http_version}",
        }
        if self.server is not None:
            environ["SERVER_NAME"], environ["SERVER_PORT"] = self.server[0], str(self.server[1])
        if self.client is not None:
            environ["REMOTE_ADDR"], environ["REMOTE_PORT"] = self.client[0], str(self.client[1])
        environ.update(self.headers.environ())
        return environ

    async def sources(self, override_field: str = "_method") -> RequestSources:
        """Collect query, form and server data for dispatch.

        The body is only read when it holds a form.
        """
        from deputy.context import RequestSources

        form = await self.form() if self.has_form else {}
        return RequestSources(
            query=self.query,
            form=form,
            server=self.environ(),
            override_field=override_field,
        )

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: dict[str, Any],
        receive: Receive | None = None,
        *,
        max_body_size: int | None = None,
    ) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope.get("method", "GET").upper(),
            path=scope.get("path", "/"),
            headers=Headers(tuple(scope.get("headers", ()))),
            query=QueryParams(scope.get("query_string", b"")),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            root_path=scope.get("root_path", ""),
            max_body_size=max_body_size,
            _receive=receive,
        )
