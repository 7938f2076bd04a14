"""Request-scoped data handed to filters and handlers.

Provides:
- ``RequestSources``: the raw data the transport supplies (query, form,
  server/environment).
- ``RequestContext``: one dispatch attempt's view of the request (raw
  sources, route params, shared store, accumulated filter results)
  with one accessor per reserved handler parameter name.
- ``Accessor``: the callable wrapper behind ``post``, ``get``, ``param``,
  ``server``, ``store`` and ``filter``.

A ``RequestContext`` is built fresh for every route attempt and is never
shared between requests. No locks needed.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from kida import Environment

from deputy.errors import ConfigurationError
from deputy.http.response import Redirect, Response
from deputy.templating.integration import render_template

# Characters allowed in filter names but not in Python identifiers
_UNSAFE_KEY_CHARS = str.maketrans("", "", ": /")


def sanitize_key(name: str) -> str:
    """Strip the characters a parameter name cannot contain.

    ``"is:logged"`` -> ``"islogged"``, ``"api/v1 user"`` -> ``"apiv1user"``.
    """
    return name.translate(_UNSAFE_KEY_CHARS)


def _result_key(name: str) -> str:
    return sanitize_key(name).lower()


def sanitize_results(results: Mapping[str, Any]) -> dict[str, Any]:
    """Re-key filter results so handlers can ask for them by identifier.

    Every name is reachable under its sanitized, lowercased form. A
    namespaced name (``is:auth``) is also reachable under its last
    component (``auth``) as long as no other filter result claims that key.
    """
    table = {_result_key(name): value for name, value in results.items()}

    leaves: dict[str, list[Any]] = {}
    for name, value in results.items():
        if ":" in name:
            leaf = _result_key(name.rsplit(":", 1)[1])
            if leaf:
                leaves.setdefault(leaf, []).append(value)

    for leaf, values in leaves.items():
        if len(values) == 1 and leaf not in table:
            table[leaf] = values[0]
    return table


class Accessor:
    """Read-only view over one or more mappings, called like a function.

    Called with no arguments it returns the whole mapping; called with a
    key (and optional default) it returns that key's value::

        def show(post):
            everything = post()
            name = post("name", "anonymous")

    When several sources are given, earlier sources win on key collision.
    """

    __slots__ = ("_data", "_normalize")

    def __init__(
        self,
        *sources: Mapping[str, Any],
        normalize: Callable[[str], str] | None = None,
    ) -> None:
        combined: dict[str, Any] = {}
        for source in sources:
            for key, value in source.items():
                combined.setdefault(key, value)
        self._data: Mapping[str, Any] = MappingProxyType(combined)
        self._normalize = normalize

    def __call__(self, key: str | None = None, default: Any = None) -> Any:
        if key is None:
            return self._data
        if self._normalize is not None and key not in self._data:
            key = self._normalize(key)
        return self._data.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"Accessor({dict(self._data)!r})"


@dataclass(frozen=True, slots=True)
class RequestSources:
    """Raw request data supplied by the transport.

    ``server`` uses CGI-style keys (``REQUEST_METHOD``, ``PATH_INFO``,
    ``HTTP_X_REQUESTED_WITH``, ...), the same shape a WSGI environ has.
    """

    query: Mapping[str, Any] = field(default_factory=dict)
    form: Mapping[str, Any] = field(default_factory=dict)
    server: Mapping[str, Any] = field(default_factory=dict)
    override_field: str = "_method"

    @classmethod
    def build(
        cls,
        method: str = "GET",
        path: str = "/",
        *,
        query: Mapping[str, Any] | None = None,
        form: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        server: Mapping[str, Any] | None = None,
        override_field: str = "_method",
    ) -> RequestSources:
        """Assemble sources from plain values.

        Headers become ``HTTP_*`` server keys (``X-Requested-With`` ->
        ``HTTP_X_REQUESTED_WITH``). Explicit *server* entries win.
        """
        environ: dict[str, Any] = {
            "REQUEST_METHOD": method.upper(),
            "PATH_INFO": path,
        }
        for name, value in (headers or {}).items():
            environ["HTTP_" + name.upper().replace("-", "_")] = value
        environ.update(server or {})
        return cls(
            query=dict(query or {}),
            form=dict(form or {}),
            server=environ,
            override_field=override_field,
        )

    @property
    def method(self) -> str:
        """The request method as sent (``REQUEST_METHOD``)."""
        return str(self.server.get("REQUEST_METHOD", "GET")).upper()

    @property
    def effective_method(self) -> str:
        """The request method with the POST override field applied.

        HTML forms can only send GET and POST, so a POST carrying
        ``_method=PUT`` or ``_method=DELETE`` counts as that method.
        """
        method = self.method
        if method == "POST":
            override = self.form.get(self.override_field)
            if isinstance(override, str) and override.upper() in ("PUT", "DELETE"):
                return override.upper()
        return method

    @property
    def is_ajax(self) -> bool:
        """True if the request was sent by ``XMLHttpRequest``."""
        return self.server.get("HTTP_X_REQUESTED_WITH") == "XMLHttpRequest"

    @property
    def post_fields(self) -> dict[str, Any]:
        """Submitted form fields without the internal override field."""
        return {k: v for k, v in self.form.items() if k != self.override_field}


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Everything a filter or handler can ask for, by parameter name.

    Reserved parameter names map one-to-one onto the properties below
    (``post``, ``get``, ``param``, ``server``, ``store``, ``filter``,
    ``ajax``, ``json``, ``redirect``, ``render``). Any other name is
    looked up with ``lookup()``.
    """

    sources: RequestSources
    route_params: Mapping[str, str]
    shared_store: Mapping[str, Any]
    filter_results: Mapping[str, Any]
    env: Environment | None = None

    # Private: lazily built lookup tables for this attempt
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Accessors --

    @property
    def post(self) -> Accessor:
        return Accessor(self.sources.post_fields)

    @property
    def get(self) -> Accessor:
        return Accessor(self.sources.query)

    @property
    def param(self) -> Accessor:
        return Accessor(self.route_params)

    @property
    def server(self) -> Accessor:
        return Accessor(self.sources.server)

    @property
    def store(self) -> Accessor:
        return Accessor(self.shared_store)

    @property
    def filter(self) -> Accessor:
        """Filter results under sanitized keys; ``filter("is:auth")`` also works."""
        return Accessor(self._sanitized_results(), normalize=_result_key)

    @property
    def ajax(self) -> bool:
        return self.sources.is_ajax

    # -- Helpers --

    @property
    def json(self) -> Callable[..., Response]:
        """Helper building a JSON response: ``json(data, status=200)``."""

        def respond(data: Any, status: int = 200) -> Response:
            return Response(
                body=json_module.dumps(data, default=str),
                status=status,
                content_type="application/json; charset=utf-8",
            )

        return respond

    @property
    def redirect(self) -> Callable[..., Redirect]:
        """Helper building a redirect: ``redirect(url, status=302)``."""

        def to(url: str, status: int = 302) -> Redirect:
            return Redirect(url=url, status=status)

        return to

    @property
    def render(self) -> Callable[..., str]:
        """Helper rendering a kida template to a string.

        ``render("index.html", {"title": "Home"}, user=user)``
        """
        env = self.env

        def render(name: str, context: Mapping[str, Any] | None = None, /, **values: Any) -> str:
            if env is None:
                msg = (
                    "render() needs a template environment. Configure "
                    "AppConfig(template_dir=...) or pass env= to dispatch()."
                )
                raise ConfigurationError(msg)
            return render_template(env, name, {**(context or {}), **values})

        return render

    # -- Name lookup --

    def lookup(self, name: str, default: Any = None) -> Any:
        """Find *name* in route params, then store, then filter results.

        Case-insensitive; the first source holding the key wins.
        """
        table = self._cache.get("lookup")
        if table is None:
            table = {}
            for source in (
                self.route_params,
                self.shared_store,
                self._sanitized_results(),
            ):
                for key, value in source.items():
                    table.setdefault(str(key).lower(), value)
            self._cache["lookup"] = table
        return table.get(name.lower(), default)

    def _sanitized_results(self) -> dict[str, Any]:
        sanitized = self._cache.get("results")
        if sanitized is None:
            sanitized = sanitize_results(self.filter_results)
            self._cache["results"] = sanitized
        return sanitized
