"""Shared type aliases used across deputy modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: a user-defined callable with variable signature
Handler: TypeAlias = Callable[..., Any]

# Filter predicate: same calling convention as a handler, truthy passes
Predicate: TypeAlias = Callable[..., Any]
