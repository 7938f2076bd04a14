"""Content negotiation — maps handler return values to Response objects.

isinstance-based dispatch, no magic, fully predictable.
"""

import json as json_module
from typing import Any

from deputy.http.response import Redirect, Response


def negotiate(value: Any) -> Response:
    """Convert a handler's return value to a Response.

    Dispatch order:
    1. ``Response``         -> pass through
    2. ``Redirect``         -> 302 (or its own status) with Location header
    3. ``None``             -> empty 200
    4. ``str``              -> text/html
    5. ``bytes``            -> application/octet-stream
    6. ``dict`` / ``list``  -> JSON
    7. ``(value, status)``  -> negotiate value, override status
    8. ``(value, status, headers)`` -> same, plus headers
    """
    match value:
        case Response():
            return value
        case Redirect():
            return Response(
                body="",
                status=value.status,
                headers=(("Location", value.url), *value.headers),
            )
        case None:
            return Response(body="")
        case str():
            return Response(body=value, content_type="text/html; charset=utf-8")
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case dict() | list():
            return Response(
                body=json_module.dumps(value, default=str),
                content_type="application/json; charset=utf-8",
            )
        case (inner, int() as status):
            return negotiate(inner).with_status(status)
        case (inner, int() as status, dict() as headers):
            return negotiate(inner).with_status(status).with_headers(headers)
        case _:
            msg = (
                f"Cannot convert {type(value).__name__} to a response. "
                f"Return str, bytes, dict, list, None, Response, or Redirect."
            )
            raise TypeError(msg)
