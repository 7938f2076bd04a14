"""Deputy exception hierarchy.

Shared across Router, filter registry, dispatcher and the ASGI layer so
every module raises and catches the same types.

Build-time mistakes are ``ConfigurationError`` subclasses and abort
startup. A request that matches no route is *not* an error inside the
engine (``Router.dispatch`` returns ``NoMatch``); the ASGI layer turns it
into ``NotFound``.
"""

from dataclasses import dataclass


class DeputyError(Exception):
    """Base for all deputy-specific errors."""


class ConfigurationError(DeputyError):
    """Raised when the route table or filter registry is invalid.

    Raised during registration or ``Router.freeze()``. The one request-time
    case is a filter predicate that hands back an awaitable instead of a
    value, which the synchronous chain cannot use.
    """


class DuplicateFilterError(ConfigurationError):
    """A filter name was registered twice on the same router."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Filter already defined [{name}]")


class UnknownFilterError(ConfigurationError):
    """A filter expression or dependency names an unregistered filter."""

    def __init__(self, name: str, available: tuple[str, ...] = ()) -> None:
        self.name = name
        self.available = available
        msg = f"Unknown filter [{name}]"
        if available:
            msg += f". Registered filters: {', '.join(sorted(available))}"
        super().__init__(msg)


class FilterCycleError(ConfigurationError):
    """Filter dependencies form a cycle."""

    def __init__(self, cycle: tuple[str, ...]) -> None:
        self.cycle = cycle
        super().__init__(f"Filter dependency cycle: {' -> '.join(cycle)}")


class UninvocableTargetError(ConfigurationError):
    """A handler or predicate whose parameters cannot be introspected."""


class BadRouteError(ConfigurationError):
    """A route registration is missing its pattern or has no usable target."""


@dataclass(frozen=True, slots=True)
class HTTPError(DeputyError):
    """An error that maps directly to an HTTP status code.

    Raised by the ASGI layer or by handlers. The request handler catches
    these and turns them into a plain response with the given status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — no route (or no route whose filters passed) matched."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)
