"""Route and dispatch-outcome frozen dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from deputy.dispatch import Binding
from deputy.filters.chain import FilterChain
from deputy.routing.pattern import CompiledPattern

if TYPE_CHECKING:
    from deputy.routing.router import Router


@dataclass(frozen=True, slots=True)
class Route:
    """A compiled route: pattern, filter chain and target.

    ``target`` is either a ``Binding`` (leaf handler) or a ``Router``
    (mounted sub-router, matched by prefix).
    """

    pattern: CompiledPattern
    chain: FilterChain
    target: Binding | Router

    @property
    def is_mount(self) -> bool:
        return not isinstance(self.target, Binding)

    @property
    def path(self) -> str:
        return self.pattern.pattern

    def __str__(self) -> str:
        kind = "mount" if self.is_mount else "route"
        filters = f" [{self.chain}]" if len(self.chain) else ""
        return f"{kind} {self.path}{filters}"


@dataclass(frozen=True, slots=True)
class Matched:
    """Outcome of a dispatch that reached a handler.

    The handler has already run; ``value`` is what it returned.
    ``params`` and ``results`` are the route params and filter results
    the handler was invoked with.
    """

    route: Route
    value: Any = None
    params: dict[str, str] | None = None
    results: dict[str, Any] | None = None

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class NoMatch:
    """Outcome of a dispatch where no route (or no filter chain) matched.

    Not an error: the transport turns it into a 404.
    """

    path: str = ""

    def __bool__(self) -> bool:
        return False


MatchOutcome = Matched | NoMatch
