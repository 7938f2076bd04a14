"""Filter expressions: parsing, build-time compilation, evaluation.

A filter expression is a whitespace-separated list of filter names, each
optionally negated with ``!``::

    "is:logged !is:ajax custom-filter"

``compile_chain()`` resolves an expression against a registry once, when
the router freezes, into a ``FilterChain``: the filters in the order the
author wrote them, each carrying its already-resolved dependency tree.
Unknown names and dependency cycles are ``ConfigurationError``s.

``evaluate_chain()`` runs a chain for one request. Dependencies run
depth-first before the filter that needs them; the first falsy result
stops the chain. Results (the predicates' actual return values) are only
handed back when the whole chain passes.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any

from deputy.context import RequestContext
from deputy.errors import ConfigurationError, FilterCycleError, UnknownFilterError
from deputy.filters.registry import Filter, FilterRegistry

logger = logging.getLogger("deputy.filters")


@dataclass(frozen=True, slots=True)
class ChainLink:
    """One filter in a compiled chain, with its resolved dependencies."""

    filter: Filter
    negated: bool = False
    dependencies: tuple[ChainLink, ...] = ()

    @property
    def name(self) -> str:
        return self.filter.name

    def __str__(self) -> str:
        return f"!{self.filter.name}" if self.negated else self.filter.name


@dataclass(frozen=True, slots=True)
class FilterChain:
    """A compiled filter expression."""

    expression: str
    links: tuple[ChainLink, ...] = ()

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(link.name for link in self.links)

    def __len__(self) -> int:
        return len(self.links)

    def __str__(self) -> str:
        return " ".join(str(link) for link in self.links)


EMPTY_CHAIN = FilterChain(expression="")


def parse_expression(expression: str) -> list[tuple[str, bool]]:
    """Split an expression into ``(name, negated)`` pairs.

    Order follows the text; a name that appears twice keeps its first
    occurrence (compared case-insensitively)::

        parse_expression("!b a B") -> [("b", True), ("a", False)]
    """
    tokens: list[tuple[str, bool]] = []
    seen: set[str] = set()
    for token in expression.split():
        negated = token.startswith("!")
        name = token[1:] if negated else token
        if not name:
            msg = f"Dangling '!' in filter expression {expression!r}"
            raise ConfigurationError(msg)
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        tokens.append((name, negated))
    return tokens


def compile_chain(expression: str, registry: FilterRegistry) -> FilterChain:
    """Resolve *expression* against *registry* into a ``FilterChain``."""
    links: list[ChainLink] = []
    for name, negated in parse_expression(expression):
        found = registry.locate(name)
        if found is None:
            raise UnknownFilterError(name, registry.names())
        registered, owner = found
        links.append(
            ChainLink(
                filter=registered,
                negated=negated,
                dependencies=resolve_dependencies(registered, owner),
            )
        )
    return FilterChain(expression=expression, links=tuple(links))


def resolve_dependencies(
    registered: Filter,
    owner: FilterRegistry,
    _path: tuple[Filter, ...] = (),
) -> tuple[ChainLink, ...]:
    """Build the dependency tree of *registered*, depth-first.

    Raises ``UnknownFilterError`` for a missing dependency and
    ``FilterCycleError`` when a filter (transitively) depends on itself.
    """
    path = (*_path, registered)
    links: list[ChainLink] = []
    for dep_name in registered.depends_on:
        found = owner.locate(dep_name)
        if found is None:
            raise UnknownFilterError(dep_name, owner.names())
        dependency, dep_owner = found
        if any(dependency is ancestor for ancestor in path):
            start = next(i for i, f in enumerate(path) if f is dependency)
            cycle = tuple(f.name for f in path[start:]) + (dependency.name,)
            raise FilterCycleError(cycle)
        links.append(
            ChainLink(
                filter=dependency,
                dependencies=resolve_dependencies(dependency, dep_owner, path),
            )
        )
    return tuple(links)


def validate_registry(registry: FilterRegistry) -> None:
    """Check every filter registered on *registry*'s own layer.

    Catches bad dependencies even on filters no route uses yet.
    """
    for registered in registry.own():
        resolve_dependencies(registered, registry)


def evaluate_chain(
    chain: FilterChain,
    context: RequestContext,
) -> tuple[bool, dict[str, Any]]:
    """Run *chain* for one request.

    *context* carries the results accumulated so far (from parent
    routers). Returns ``(True, results)`` with this chain's results merged
    in, or ``(False, unchanged results)`` on the first falsy filter.

    Exceptions raised by a predicate propagate; only a falsy return value
    counts as a rejection.
    """
    working: dict[str, Any] = dict(context.filter_results)
    memo: dict[int, Any] = {}

    for link in chain.links:
        if not _run_link(link, context, working, memo):
            logger.debug("Filter %s rejected (chain %r)", link, chain.expression)
            return False, dict(context.filter_results)

    return True, working


def _run_link(
    link: ChainLink,
    context: RequestContext,
    working: dict[str, Any],
    memo: dict[int, Any],
) -> bool:
    """Evaluate one link (dependencies first).

    A predicate runs at most once per chain run; *memo* keeps its raw
    return value and negation is applied on top. A chain that needs the
    same filter both plain and negated therefore always fails.
    """
    filter_id = id(link.filter)
    if filter_id in memo:
        raw = memo[filter_id]
    else:
        for dependency in link.dependencies:
            if not _run_link(dependency, context, working, memo):
                logger.debug("Dependency %s of %s rejected", dependency, link)
                return False

        # Predicates see the results of every filter that ran before them
        attempt = replace(
            context,
            filter_results=MappingProxyType(dict(working)),
            _cache={},
        )
        raw = link.filter.predicate(attempt)
        if inspect.isawaitable(raw):
            if inspect.iscoroutine(raw):
                raw.close()
            msg = (
                f"Filter {link.filter.name!r} returned an awaitable. Filter "
                "predicates must return their result directly."
            )
            raise ConfigurationError(msg)
        memo[filter_id] = raw

    value = not raw if link.negated else raw
    working[link.filter.name] = value
    return bool(value)
