"""Built-in filters registered on every Router.

- ``is:ajax``   the request was sent by ``XMLHttpRequest``
- ``is:get``    GET request
- ``is:post``   POST request (without a method override)
- ``is:put``    PUT request, or POST with ``_method=PUT``
- ``is:delete`` DELETE request, or POST with ``_method=DELETE``
"""

from deputy._internal.types import Predicate
from deputy.context import RequestContext


def is_ajax(ajax: bool) -> bool:
    return ajax


def is_get(context: RequestContext) -> bool:
    return context.sources.effective_method == "GET"


def is_post(context: RequestContext) -> bool:
    return context.sources.effective_method == "POST"


def is_put(context: RequestContext) -> bool:
    return context.sources.effective_method == "PUT"


def is_delete(context: RequestContext) -> bool:
    return context.sources.effective_method == "DELETE"


BUILTIN_FILTERS: dict[str, Predicate] = {
    "is:ajax": is_ajax,
    "is:get": is_get,
    "is:post": is_post,
    "is:put": is_put,
    "is:delete": is_delete,
}

# Registration helpers and the filter each one implies
METHOD_FILTERS: dict[str, str] = {
    "route": "",
    "get": "is:get",
    "post": "is:post",
    "put": "is:put",
    "delete": "is:delete",
    "ajax": "is:ajax",
}
