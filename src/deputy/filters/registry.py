"""Named filter registry.

Each Router owns one ``FilterRegistry``. At freeze time the registry is
layered over the parent router's effective registry, so a sub-router sees
its own filters first and every inherited filter it does not shadow.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from deputy._internal.types import Predicate
from deputy.dispatch import Binding, bind
from deputy.errors import ConfigurationError, DuplicateFilterError, UnknownFilterError


@dataclass(frozen=True, slots=True)
class Filter:
    """A registered, named predicate.

    ``depends_on`` names filters that must pass before this one runs.
    They are looked up from the registry that registered this filter.
    """

    name: str
    predicate: Binding
    depends_on: tuple[str, ...] = ()

    @property
    def key(self) -> str:
        """Case-insensitive lookup key."""
        return self.name.lower()


def _validate_name(name: object) -> str:
    if not isinstance(name, str) or not name.strip():
        msg = f"Filter name must be a non-empty string, got {name!r}"
        raise ConfigurationError(msg)
    if any(ch.isspace() for ch in name):
        msg = f"Filter name {name!r} cannot contain whitespace"
        raise ConfigurationError(msg)
    if name.startswith("!"):
        msg = f"Filter name {name!r} cannot start with '!' (reserved for negation)"
        raise ConfigurationError(msg)
    return name


def _is_async(predicate: Predicate) -> bool:
    target = predicate.target if isinstance(predicate, Binding) else predicate
    if inspect.iscoroutinefunction(target):
        return True
    call = getattr(type(target), "__call__", None)
    return inspect.iscoroutinefunction(call)


def split_names(names: str | Iterable[str]) -> tuple[str, ...]:
    """Accept ``"a b"`` or ``["a", "b"]`` and return ``("a", "b")``."""
    if isinstance(names, str):
        return tuple(names.split())
    return tuple(names)


class FilterRegistry:
    """Filters registered on one router, optionally layered over a parent.

    Usage::

        registry = FilterRegistry()
        registry.register("is:logged", current_user)
        registry.register("is:admin", check_admin, depends_on=["is:logged"])
        registry.resolve(["IS:LOGGED"])  # -> [Filter("is:logged", ...)]
    """

    __slots__ = ("_filters", "_frozen", "_parent")

    def __init__(self, parent: FilterRegistry | None = None) -> None:
        self._filters: dict[str, Filter] = {}
        self._parent = parent
        self._frozen = False

    # -- Registration --

    def register(
        self,
        name: str,
        predicate: Predicate,
        depends_on: str | Iterable[str] = (),
    ) -> Filter:
        """Register *predicate* under *name*.

        Raises ``DuplicateFilterError`` if *name* (case-insensitive) is
        already registered here. Names inherited from a parent may be
        shadowed freely.
        Raises ``ConfigurationError`` for a coroutine function: chains
        run synchronously and cannot await a predicate.
        """
        if self._frozen:
            msg = "Cannot register filters after the router has been frozen."
            raise RuntimeError(msg)

        _validate_name(name)
        key = name.lower()
        if key in self._filters:
            raise DuplicateFilterError(name)

        deps = split_names(depends_on)
        for dep in deps:
            _validate_name(dep)

        if _is_async(predicate):
            msg = (
                f"Filter {name!r} is a coroutine function. Filter chains run "
                "synchronously; register a plain function instead."
            )
            raise ConfigurationError(msg)

        registered = Filter(name=name, predicate=bind(predicate), depends_on=deps)
        self._filters[key] = registered
        return registered

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # -- Layering --

    def over(self, parent: FilterRegistry | None) -> FilterRegistry:
        """Return a read-only view of this registry layered over *parent*."""
        view = FilterRegistry(parent)
        view._filters = self._filters
        view._frozen = True
        return view

    @property
    def parent(self) -> FilterRegistry | None:
        return self._parent

    # -- Lookup --

    def locate(self, name: str) -> tuple[Filter, FilterRegistry] | None:
        """Find *name* and the registry layer that owns it."""
        key = name.lower()
        registry: FilterRegistry | None = self
        while registry is not None:
            found = registry._filters.get(key)
            if found is not None:
                return found, registry
            registry = registry._parent
        return None

    def get(self, name: str) -> Filter | None:
        """Return the visible filter called *name*, or ``None``."""
        found = self.locate(name)
        return found[0] if found is not None else None

    def resolve(self, names: str | Iterable[str]) -> list[Filter]:
        """Look up each name, case-insensitively, in order.

        Raises ``UnknownFilterError`` for the first unregistered name.
        """
        resolved: list[Filter] = []
        for name in split_names(names):
            found = self.get(name)
            if found is None:
                raise UnknownFilterError(name, self.names())
            resolved.append(found)
        return resolved

    def names(self) -> tuple[str, ...]:
        """Names of every visible filter, own filters first."""
        return tuple(f.name for f in self)

    def own(self) -> tuple[Filter, ...]:
        """Filters registered on this layer only."""
        return tuple(self._filters.values())

    def __iter__(self) -> Iterator[Filter]:
        seen: set[str] = set()
        registry: FilterRegistry | None = self
        while registry is not None:
            for key, registered in registry._filters.items():
                if key not in seen:
                    seen.add(key)
                    yield registered
            registry = registry._parent

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.locate(name) is not None

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"FilterRegistry({list(self.names())!r})"
