"""Deputy application class.

Mutable during setup (routes, filters, sub-routers, lifecycle hooks).
Frozen at runtime when ``__call__()`` or ``dispatch()`` is first invoked.
"""

import inspect
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from kida import Environment

from deputy._internal.asgi import Receive, Scope, Send
from deputy._internal.types import Handler, Predicate
from deputy.config import AppConfig
from deputy.context import RequestSources
from deputy.routing.route import MatchOutcome
from deputy.routing.router import Router
from deputy.server.handler import handle_request
from deputy.templating.integration import create_environment


class App:
    """The deputy application: a root ``Router`` behind an ASGI entry point.

    Usage::

        app = App(AppConfig(base_path="/shop"), store={"title": "Shop"})

        @app.filter("is:auth")
        def current_user(server):
            return server("HTTP_X_USER")

        @app.get("/items/<id>", "is:auth")
        def show(id, filter):
            return f"{filter('auth')} asked for item {id}"

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check to ensure exactly
        one thread compiles the app, even when several ASGI workers call
        ``__call__()`` concurrently on first request.
    """

    __slots__ = (
        "_custom_kida_env",
        "_freeze_lock",
        "_frozen",
        "_kida_env",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        store: Mapping[str, Any] | None = None,
        kida_env: Environment | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._router: Router = Router(self.config.base_path, store)
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()
        self._custom_kida_env: Environment | None = kida_env

        # Compiled state, set during _freeze()
        self._kida_env: Environment | None = None

    # -- Registration (delegated to the root router) --

    def route(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        """Register a handler for any method via decorator."""
        self._check_not_frozen()
        return self._router.route(pattern, filters)

    def get(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        self._check_not_frozen()
        return self._router.get(pattern, filters)

    def post(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        self._check_not_frozen()
        return self._router.post(pattern, filters)

    def put(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        self._check_not_frozen()
        return self._router.put(pattern, filters)

    def delete(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        self._check_not_frozen()
        return self._router.delete(pattern, filters)

    def ajax(self, pattern: str, filters: str = "") -> Callable[[Handler], Handler]:
        self._check_not_frozen()
        return self._router.ajax(pattern, filters)

    def add_route(self, pattern: str, filters: str, target: Handler | Router) -> None:
        self._check_not_frozen()
        self._router.add_route(pattern, filters, target)

    def mount(self, pattern: str, router: Router, filters: str = "") -> None:
        """Mount a sub-router on the *pattern* prefix."""
        self._check_not_frozen()
        self._router.mount(pattern, router, filters)

    def filter(
        self,
        name: str,
        *,
        depends_on: str | Iterable[str] = (),
    ) -> Callable[[Predicate], Predicate]:
        """Register a named filter via decorator."""
        self._check_not_frozen()
        return self._router.filter(name, depends_on=depends_on)

    def register_filter(
        self,
        name: str,
        predicate: Predicate,
        depends_on: str | Iterable[str] = (),
    ) -> None:
        self._check_not_frozen()
        self._router.register_filter(name, predicate, depends_on)

    def register_filters(self, filters: Mapping[str, Predicate]) -> None:
        self._check_not_frozen()
        self._router.register_filters(filters)

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Introspection --

    @property
    def router(self) -> Router:
        """The root router."""
        return self._router

    @property
    def kida_env(self) -> Environment | None:
        """The template environment (available once the app is frozen)."""
        return self._kida_env

    @property
    def frozen(self) -> bool:
        return self._frozen

    # -- Dispatch --

    def freeze(self) -> None:
        """Compile routes and filters now instead of on first request.

        Raises ``ConfigurationError`` for unknown filters, dependency
        cycles and other build-time mistakes.
        """
        self._ensure_frozen()

    def dispatch(self, path: str, sources: RequestSources | None = None) -> MatchOutcome:
        """Dispatch *path* without going through ASGI."""
        self._ensure_frozen()
        sources = sources or RequestSources(override_field=self.config.method_override_field)
        return self._router.dispatch(path, sources, env=self._kida_env)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to
        the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            config=self.config,
            kida_env=self._kida_env,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before first HTTP request), then
        runs registered startup/shutdown hooks and signals completion
        back to the server. A configuration error fails startup.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        # 1. Compile the router tree (validates every filter expression)
        self._router.freeze()

        # 2. Template environment for the render helper
        if self._custom_kida_env is not None:
            self._kida_env = self._custom_kida_env
        else:
            self._kida_env = create_environment(self.config)

        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes and filters before the first request."
            )
            raise RuntimeError(msg)
