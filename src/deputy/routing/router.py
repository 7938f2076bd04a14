"""Ordered router with filter chains and mountable sub-routers.

Routes are registered during setup and compiled into an immutable route
table when the router freezes. Matching walks the table in registration
order; the first route whose pattern matches *and* whose filter chain
passes wins. A sub-router mounted on a prefix is just a candidate: when
it has no match, the parent keeps trying its remaining routes.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from kida import Environment

from deputy._internal.types import Handler, Predicate
from deputy.context import RequestContext, RequestSources
from deputy.dispatch import Binding, bind, invoke
from deputy.errors import BadRouteError, ConfigurationError
from deputy.filters.builtin import BUILTIN_FILTERS, METHOD_FILTERS
from deputy.filters.chain import compile_chain, evaluate_chain, validate_registry
from deputy.filters.registry import FilterRegistry
from deputy.routing.pattern import compile_pattern, join_path, normalize_base_path
from deputy.routing.route import Matched, MatchOutcome, NoMatch, Route

logger = logging.getLogger("deputy.routing")


@dataclass(slots=True)
class _PendingRoute:
    """A route waiting to be compiled."""

    pattern: str
    filters: str
    target: Binding | Router


class Router:
    """Ordered route table with named filters and a shared store.

    Usage::

        app = Router("/", store={"site": "example"})
        app.register_filter("is:logged", current_user)

        @app.get("/items/<id>", "is:logged")
        def show(id, filter):
            return f"{filter('logged')} asked for item {id}"

        api = Router()
        app.mount("/api", api, "is:ajax")

        outcome = app.dispatch("/items/7", RequestSources.build("GET"))

    Thread safety:
        Registration is single-threaded (setup at import time). The
        freeze transition uses a Lock + double-check so exactly one
        thread compiles the route tree; afterwards everything is
        read-only and dispatch keeps all state on the stack.
    """

    __slots__ = (
        "_base_path",
        "_filters",
        "_freeze_lock",
        "_frozen",
        "_parent",
        "_pending",
        "_routes",
        "_store",
    )

    def __init__(self, base_path: str = "/", store: Mapping[str, Any] | None = None) -> None:
        self._base_path = normalize_base_path(base_path)
        self._store: Mapping[str, Any] = MappingProxyType(dict(store or {}))
        self._filters = FilterRegistry()
        self._pending: list[_PendingRoute] = []
        self._routes: tuple[Route, ...] = ()
        self._frozen = False
        self._freeze_lock = threading.Lock()
        self._parent: Router | None = None

        self.register_filters(BUILTIN_FILTERS)

    # -- Filters --

    def register_filter(
        self,
        name: str,
        predicate: Predicate,
        depends_on: str | Iterable[str] = (),
    ) -> Router:
        """Register a named filter. Returns the router for chaining.

        *depends_on* lists filters (``"a b"`` or ``["a", "b"]``) that must
        pass before *predicate* runs. The predicate receives injected
        parameters exactly like a handler does.

        Raises ``DuplicateFilterError`` if *name* is already registered
        on this router.
        """
        self._check_not_frozen()
        self._filters.register(name, predicate, depends_on)
        return self

    def register_filters(self, filters: Mapping[str, Predicate]) -> Router:
        """Register several dependency-free filters at once."""
        for name, predicate in filters.items():
            self.register_filter(name, predicate)
        return self

    def filter(
        self,
        name: str,
        *,
        depends_on: str | Iterable[str] = (),
    ) -> Callable[[Predicate], Predicate]:
        """Register a filter via decorator."""

        def decorator(func: Predicate) -> Predicate:
            self.register_filter(name, func, depends_on)
            return func

        return decorator

    # -- Routes --

    def add_route(self, pattern: str, filters: str, target: Handler | Router) -> Router:
        """Append a route. *target* is a handler or a ``Router`` to mount.

        Raises ``BadRouteError`` without a pattern and
        ``UninvocableTargetError`` if *target* cannot be introspected.
        """
        self._check_not_frozen()
        if not isinstance(pattern, str):
            msg = f"Route pattern is mandatory, got {pattern!r}"
            raise BadRouteError(msg)

        if isinstance(target, Router):
            self._adopt(target)
            resolved: Binding | Router = target
        else:
            resolved = bind(target)

        self._pending.append(_PendingRoute(pattern, (filters or "").strip(), resolved))
        return self

    def mount(self, pattern: str, router: Router, filters: str = "") -> Router:
        """Mount *router* on the *pattern* prefix.

        The sub-router sees the request path with the prefix replaced by
        ``/``, and inherits this router's params, store, filters and
        filter results.
        """
        if not isinstance(router, Router):
            msg = f"mount() expects a Router, got {type(router).__name__}"
            raise BadRouteError(msg)
        return self.add_route(pattern, filters, router)

    def route(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        """Register a handler for any method via decorator."""
        return self._decorator("route", pattern, filters)

    def get(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        """Register a GET handler (adds ``is:get``)."""
        return self._decorator("get", pattern, filters)

    def post(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        """Register a POST handler (adds ``is:post``)."""
        return self._decorator("post", pattern, filters)

    def put(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        """Register a PUT handler (adds ``is:put``)."""
        return self._decorator("put", pattern, filters)

    def delete(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        """Register a DELETE handler (adds ``is:delete``)."""
        return self._decorator("delete", pattern, filters)

    def ajax(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        """Register a handler for XMLHttpRequest requests (adds ``is:ajax``)."""
        return self._decorator("ajax", pattern, filters)

    def _decorator(self, helper: str, pattern: str, filters: str) -> Callable[[Handler], Handler]:
        combined = f"{METHOD_FILTERS[helper]} {filters or ''}".strip()

        def decorator(func: Handler) -> Handler:
            self.add_route(pattern, combined, func)
            return func

        return decorator

    # -- Introspection --

    @property
    def base_path(self) -> str:
        return self._base_path

    @property
    def store(self) -> Mapping[str, Any]:
        """This router's own store (inherited entries are merged per request)."""
        return self._store

    @property
    def filters(self) -> FilterRegistry:
        """Filters registered on this router."""
        return self._filters

    @property
    def parent(self) -> Router | None:
        return self._parent

    @property
    def root(self) -> Router:
        router = self
        while router._parent is not None:
            router = router._parent
        return router

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def routes(self) -> tuple[Route, ...]:
        """Compiled routes in match order. Freezes the router tree."""
        self.freeze()
        return self._routes

    # -- Freeze --

    def freeze(self) -> None:
        """Compile the whole router tree. No more registration afterwards.

        Thread-safe with double-check locking. A mounted router is always
        compiled by its root, against the root's filters.

        Raises ``ConfigurationError`` for unknown filters, dependency
        cycles and similar build-time mistakes.
        """
        root = self.root
        if root._frozen:
            return
        with root._freeze_lock:
            if root._frozen:
                return
            root._compile(None)

    def _compile(self, inherited: FilterRegistry | None) -> None:
        """Compile this router and its sub-routers.

        MUST only be called while holding the root's _freeze_lock.
        """
        self._filters.freeze()
        effective = self._filters.over(inherited)
        validate_registry(effective)

        routes: list[Route] = []
        for pending in self._pending:
            is_mount = isinstance(pending.target, Router)
            pattern = compile_pattern(
                join_path(self._base_path, pending.pattern),
                prefix=is_mount,
            )
            chain = compile_chain(pending.filters, effective)
            if isinstance(pending.target, Router):
                pending.target._compile(effective)
            routes.append(Route(pattern=pattern, chain=chain, target=pending.target))

        self._routes = tuple(routes)
        self._frozen = True
        logger.debug("Compiled %d routes under %s", len(routes), self._base_path)

    # -- Dispatch --

    def dispatch(
        self,
        path: str,
        sources: RequestSources | None = None,
        *,
        env: Environment | None = None,
    ) -> MatchOutcome:
        """Match *path* and run the first route whose filters pass.

        Call this on the root router. Returns ``Matched`` (the handler has
        run; its return value is ``outcome.value``) or ``NoMatch``.
        Exceptions raised by handlers and filter predicates propagate.
        """
        self.freeze()
        return self._run(
            path,
            sources or RequestSources(),
            env,
            params={},
            store=MappingProxyType({}),
            results={},
        )

    def _run(
        self,
        path: str,
        sources: RequestSources,
        env: Environment | None,
        *,
        params: Mapping[str, str],
        store: Mapping[str, Any],
        results: Mapping[str, Any],
    ) -> MatchOutcome:
        """Try every route in order against *path* with inherited context."""
        # Own store entries shadow inherited ones
        merged_store = MappingProxyType({**store, **self._store})

        for route in self._routes:
            remainder = path
            if isinstance(route.target, Router):
                split = route.pattern.split(path)
                if split is None:
                    continue
                captured, remainder = split
            else:
                captured = route.pattern.match(path)
                if captured is None:
                    continue

            route_params = {**params, **captured}
            context = RequestContext(
                sources=sources,
                route_params=MappingProxyType(route_params),
                shared_store=merged_store,
                filter_results=MappingProxyType(dict(results)),
                env=env,
            )
            passed, route_results = evaluate_chain(route.chain, context)
            if not passed:
                logger.debug("%s matched %r but its filters rejected it", route, path)
                continue

            if isinstance(route.target, Router):
                outcome = route.target._run(
                    remainder,
                    sources,
                    env,
                    params=route_params,
                    store=merged_store,
                    results=route_results,
                )
                if outcome:
                    return outcome
                logger.debug("%s had no match for %r, trying next route", route, remainder)
                continue

            handler_context = RequestContext(
                sources=sources,
                route_params=MappingProxyType(route_params),
                shared_store=merged_store,
                filter_results=MappingProxyType(route_results),
                env=env,
            )
            logger.debug("%s matched %r", route, path)
            value = invoke(route.target, handler_context)
            return Matched(route=route, value=value, params=route_params, results=route_results)

        return NoMatch(path=path)

    # -- Internal --

    def _adopt(self, child: Router) -> None:
        """Record *child* as mounted here, rejecting cycles and re-mounts."""
        if child is self:
            msg = "A router cannot be mounted on itself."
            raise ConfigurationError(msg)
        if child._parent is not None:
            msg = "This router is already mounted; a router can only be mounted once."
            raise ConfigurationError(msg)
        if child._frozen:
            msg = "Cannot mount a router that has already been frozen."
            raise ConfigurationError(msg)

        ancestor: Router | None = self._parent
        while ancestor is not None:
            if ancestor is child:
                msg = "Cannot mount a router inside one of its own sub-routers."
                raise ConfigurationError(msg)
            ancestor = ancestor._parent

        child._parent = self

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the router after it has started dispatching. "
                "Register routes and filters before the first request."
            )
            raise RuntimeError(msg)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else f"{len(self._pending)} pending"
        return f"Router({self._base_path!r}, {state})"
