"""Error handling for deputy requests.

Maps HTTPError exceptions and unexpected failures to Response objects.
"""

import html
import logging
import traceback

from deputy.errors import HTTPError
from deputy.http.request import Request
from deputy.http.response import Response

logger = logging.getLogger("deputy.server")


def handle_http_error(exc: HTTPError, request: Request, *, debug: bool = False) -> Response:
    """Map an HTTPError to a plain response with its status and headers."""
    logger.debug("%d %s %s — %s", exc.status, request.method, request.path, exc.detail)

    detail = exc.detail or f"Error {exc.status}"
    if debug and exc.detail:
        detail = f"{exc.status}: {exc.detail}"

    response = Response(body=html.escape(detail), status=exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


def handle_internal_error(exc: Exception, request: Request, *, debug: bool = False) -> Response:
    """Handle unexpected exceptions as 500 errors.

    In debug mode the traceback is included in the body.
    """
    logger.exception("500 %s %s", request.method, request.path)

    if debug:
        formatted = "".join(traceback.format_exception(exc))
        body = f"<h1>Internal Server Error</h1>\n<pre>{html.escape(formatted)}</pre>"
        return Response(body=body, status=500)

    return Response(body="Internal Server Error", status=500)
