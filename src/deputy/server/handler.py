"""ASGI handler — translates ASGI scope/messages to deputy types.

The only component that touches raw ASGI directly. Converts the scope to
a typed Request, dispatches it through the router and sends the
Response back through ASGI send().
"""

import inspect
import logging

from kida import Environment

from deputy._internal.asgi import Receive, Scope, Send
from deputy.config import AppConfig
from deputy.errors import HTTPError, NotFound
from deputy.http.request import Request
from deputy.http.response import Response
from deputy.routing.router import Router
from deputy.server.errors import handle_http_error, handle_internal_error
from deputy.server.negotiation import negotiate
from deputy.server.sender import send_response

logger = logging.getLogger("deputy.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    config: AppConfig,
    kida_env: Environment | None = None,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive, max_body_size=config.max_content_length)

    try:
        response = await _dispatch(request, router=router, config=config, kida_env=kida_env)
    except HTTPError as exc:
        response = handle_http_error(exc, request, debug=config.debug)
    except Exception as exc:
        response = handle_internal_error(exc, request, debug=config.debug)

    await send_response(response, send, head=request.method == "HEAD")


async def _dispatch(
    request: Request,
    *,
    router: Router,
    config: AppConfig,
    kida_env: Environment | None,
) -> Response:
    """Run the router for *request* and negotiate the handler's return value."""
    length = request.content_length
    if length is not None and length > config.max_content_length:
        raise HTTPError(status=413, detail="Request body too large")

    sources = await request.sources(config.method_override_field)
    outcome = router.dispatch(request.path, sources, env=kida_env)
    if not outcome:
        logger.debug("No route for %s %s", request.method, request.path)
        raise NotFound()

    value = outcome.value
    # Coroutine handlers are awaited here; the router itself stays synchronous
    if inspect.isawaitable(value):
        value = await value
    return negotiate(value)
