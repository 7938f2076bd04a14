"""Parameter injection — call filters and handlers by parameter name.

A handler asks for request data simply by naming a parameter::

    def show_user(id, users, json):
        return json(users(id))

``bind()`` inspects the signature once, at registration time, and records
a ``Binding`` manifest. ``invoke()`` then resolves each parameter against
a ``RequestContext`` with plain table lookups.

Resolution order for each parameter (case-insensitive):

1. ``context`` — the ``RequestContext`` itself
2. Reserved accessors — ``post``, ``get``, ``param``, ``server``,
   ``store``, ``filter``, ``ajax``, ``json``, ``redirect``, ``render``
3. Route parameters, then store entries, then filter results
4. The parameter's default, or ``None``
"""

import inspect
from dataclasses import dataclass
from typing import Any

from deputy._internal.types import Handler
from deputy.context import RequestContext
from deputy.errors import UninvocableTargetError

RESERVED_NAMES: frozenset[str] = frozenset(
    {
        "post",
        "get",
        "param",
        "server",
        "store",
        "filter",
        "ajax",
        "json",
        "redirect",
        "render",
    }
)

CONTEXT_NAME = "context"

_NOT_FOUND: Any = object()


@dataclass(frozen=True, slots=True)
class BoundParameter:
    """One formal parameter of a bound callable."""

    name: str
    key: str
    keyword_only: bool = False
    default: Any = inspect.Parameter.empty

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


@dataclass(frozen=True, slots=True)
class Binding:
    """A callable plus the parameter manifest computed by ``bind()``."""

    target: Handler
    parameters: tuple[BoundParameter, ...]

    @property
    def names(self) -> tuple[str, ...]:
        """Declared parameter names, in order."""
        return tuple(p.name for p in self.parameters)

    def __call__(self, context: RequestContext) -> Any:
        return invoke(self, context)


def bind(target: Handler | Binding) -> Binding:
    """Inspect *target*'s signature and return its ``Binding``.

    Works uniformly for functions, bound methods and objects defining
    ``__call__``. ``*args`` and ``**kwargs`` are ignored.

    Raises ``UninvocableTargetError`` if *target* is not callable or its
    signature cannot be introspected (some C builtins).
    """
    if isinstance(target, Binding):
        return target

    if not callable(target):
        msg = f"Expected a callable, got {type(target).__name__}: {target!r}"
        raise UninvocableTargetError(msg)

    try:
        sig = inspect.signature(target)
    except (TypeError, ValueError) as exc:
        msg = f"Cannot introspect the parameters of {target!r}: {exc}"
        raise UninvocableTargetError(msg) from exc

    parameters: list[BoundParameter] = []
    for name, param in sig.parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        parameters.append(
            BoundParameter(
                name=name,
                key=name.lower(),
                keyword_only=param.kind is param.KEYWORD_ONLY,
                default=param.default,
            )
        )

    return Binding(target=target, parameters=tuple(parameters))


def resolve(parameter: BoundParameter, context: RequestContext) -> Any:
    """Find the value for one parameter in *context*."""
    key = parameter.key
    if key == CONTEXT_NAME:
        return context
    if key in RESERVED_NAMES:
        return getattr(context, key)

    value = context.lookup(key, _NOT_FOUND)
    if value is _NOT_FOUND:
        return parameter.default if parameter.has_default else None
    return value


def invoke(binding: Binding, context: RequestContext) -> Any:
    """Call the bound target with arguments resolved from *context*.

    Exceptions raised by the target propagate unchanged.
    """
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    for parameter in binding.parameters:
        value = resolve(parameter, context)
        if parameter.keyword_only:
            kwargs[parameter.name] = value
        else:
            args.append(value)
    return binding.target(*args, **kwargs)
