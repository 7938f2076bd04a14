"""Route pattern compilation.

A route pattern is literal path text plus ``<name>`` placeholders::

    "/users"             literal
    "/users/<id>"        captures "id" from one path segment
    "/ajax/"             mount point when compiled with ``prefix=True``

Placeholders match one or more of ``[A-Za-z0-9_-]``. Literal text is
matched verbatim and case-insensitively. A trailing ``/`` is optional on
both the pattern and the request path.
"""

import re
from dataclasses import dataclass

from deputy.errors import BadRouteError

PLACEHOLDER = re.compile(r"<([A-Za-z_][A-Za-z0-9_]*)>")

# Greedy on purpose: the class excludes "/", so a capture always ends on a
# segment boundary, which keeps prefix matches from truncating the value.
SEGMENT_REGEX = r"[A-Za-z0-9_-]+"


def normalize_base_path(base_path: str) -> str:
    """Return *base_path* with exactly one leading and one trailing slash.

    Examples::

        ""               -> "/"
        "/vice/example"  -> "/vice/example/"
        "vice//"         -> "/vice/"
    """
    stripped = base_path.strip().strip("/")
    if not stripped:
        return "/"
    return f"/{stripped}/"


def join_path(base_path: str, pattern: str) -> str:
    """Join a normalized base path and a route pattern."""
    return normalize_base_path(base_path) + pattern.strip().lstrip("/")


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """A compiled route pattern.

    ``prefix=False`` patterns must consume the whole path; ``prefix=True``
    patterns (mount points) only need to match a leading run of segments.
    """

    pattern: str
    prefix: bool
    regex: re.Pattern[str]
    param_names: tuple[str, ...]

    def match(self, path: str) -> dict[str, str] | None:
        """Return the named captures if *path* matches, else ``None``."""
        m = self.regex.match(path)
        if m is None:
            return None
        return m.groupdict()

    def split(self, path: str) -> tuple[dict[str, str], str] | None:
        """Match *path* and also return the remainder for a sub-router.

        The remainder is *path* with the matched prefix replaced by a
        single ``/``: mounting at ``/ajax`` turns ``/ajax/users/7`` into
        ``/users/7`` and ``/ajax`` into ``/``.
        """
        m = self.regex.match(path)
        if m is None:
            return None
        return m.groupdict(), "/" + path[m.end() :]


def compile_pattern(pattern: str, *, prefix: bool = False) -> CompiledPattern:
    """Compile a route pattern into a ``CompiledPattern``.

    A full pattern must match the whole path (trailing ``/`` optional).
    A *prefix* pattern, used for mounts, must end on a segment boundary:
    ``/ajax`` matches ``/ajax`` and ``/ajax/users`` but not ``/ajaxfoo``.

    Raises ``BadRouteError`` if a placeholder name is used twice.
    """
    source = pattern.strip()
    if not source.startswith("/"):
        source = "/" + source

    # re.split with one group alternates literal text and placeholder names
    parts = PLACEHOLDER.split(source)
    names: list[str] = []
    pieces: list[str] = []
    for index, part in enumerate(parts):
        if index % 2:
            if part in names:
                msg = f"Placeholder <{part}> appears twice in route {pattern!r}"
                raise BadRouteError(msg)
            names.append(part)
            pieces.append(f"(?P<{part}>{SEGMENT_REGEX})")
        else:
            pieces.append(re.escape(part))

    body = "".join(pieces)
    if body.endswith("/"):
        body = body[:-1]

    if prefix:
        regex = rf"^{body}(?:/|\Z)"
    else:
        regex = rf"^{body}/?\Z"

    return CompiledPattern(
        pattern=source,
        prefix=prefix,
        regex=re.compile(regex, re.IGNORECASE),
        param_names=tuple(names),
    )
