"""Deputy — route matching with named filter chains.

Routes are tried in registration order. A route wins when its path
pattern matches *and* every filter in its chain passes. Handlers and
filters receive request data by naming parameters.

Basic usage::

    from deputy import App

    app = App()

    @app.filter("is:auth")
    def current_user(server):
        return server("HTTP_X_USER")

    @app.get("/items/<id>", "is:auth")
    def show(id, filter):
        return f"{filter('auth')} asked for item {id}"

Sub-routers::

    from deputy import Router

    api = Router()

    @api.get("/status")
    def status(json):
        return json({"ok": True})

    app.mount("/api", api, "is:ajax")

Serve with any ASGI server: ``uvicorn module:app``.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "DeputyError",
    "DuplicateFilterError",
    "FilterCycleError",
    "HTTPError",
    "Matched",
    "NoMatch",
    "NotFound",
    "Redirect",
    "Request",
    "RequestContext",
    "RequestSources",
    "Response",
    "Router",
    "UnknownFilterError",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import deputy`` fast while providing a clean top-level API.
    """
    if name == "App":
        from deputy.app import App

        return App

    if name == "AppConfig":
        from deputy.config import AppConfig

        return AppConfig

    if name == "Router":
        from deputy.routing.router import Router

        return Router

    if name in ("Matched", "NoMatch"):
        from deputy.routing import route as _route

        return getattr(_route, name)

    if name in ("RequestContext", "RequestSources"):
        from deputy import context as _ctx

        return getattr(_ctx, name)

    if name == "Request":
        from deputy.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from deputy.http import response as _resp

        return getattr(_resp, name)

    if name in (
        "ConfigurationError",
        "DeputyError",
        "DuplicateFilterError",
        "FilterCycleError",
        "HTTPError",
        "NotFound",
        "UnknownFilterError",
    ):
        from deputy import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
