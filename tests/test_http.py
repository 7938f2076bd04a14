"""Tests for deputy.http — headers, query params, request and response."""

from typing import Any

import pytest

from deputy.errors import HTTPError
from deputy.http.headers import Headers
from deputy.http.query import QueryParams
from deputy.http.request import Request
from deputy.http.response import Redirect, Response


class TestHeaders:
    def _headers(self) -> Headers:
        return Headers(
            (
                (b"Content-Type", b"text/plain"),
                (b"X-Requested-With", b"XMLHttpRequest"),
                (b"accept", b"text/html"),
                (b"Accept", b"application/json"),
            )
        )

    def test_case_insensitive(self) -> None:
        headers = self._headers()
        assert headers["content-type"] == "text/plain"
        assert headers["CONTENT-TYPE"] == "text/plain"
        assert "x-requested-with" in headers
        assert 42 not in headers

    def test_first_value_and_list(self) -> None:
        headers = self._headers()
        assert headers["accept"] == "text/html"
        assert headers.get_list("accept") == ["text/html", "application/json"]
        assert headers.get("missing") is None

    def test_iteration_is_deduplicated(self) -> None:
        assert list(self._headers()) == ["content-type", "x-requested-with", "accept"]
        assert len(self._headers()) == 3

    def test_environ(self) -> None:
        environ = self._headers().environ()
        assert environ == {
            "CONTENT_TYPE": "text/plain",
            "HTTP_X_REQUESTED_WITH": "XMLHttpRequest",
            "HTTP_ACCEPT": "text/html, application/json",
        }


class TestQueryParams:
    def test_parse(self) -> None:
        query = QueryParams(b"q=boots&tag=a&tag=b&empty=")
        assert query["q"] == "boots"
        assert query.get_list("tag") == ["a", "b"]
        assert query["empty"] == ""
        assert query.get("missing", "x") == "x"
        assert query.raw == b"q=boots&tag=a&tag=b&empty="

    def test_empty(self) -> None:
        assert len(QueryParams()) == 0


def _scope(**overrides: Any) -> dict[str, Any]:
    scope: dict[str, Any] = {
        "type": "http",
        "method": "post",
        "path": "/users",
        "query_string": b"page=2",
        "headers": [
            (b"content-type", b"application/x-www-form-urlencoded"),
            (b"x-user", b"ann"),
        ],
        "server": ("example.org", 443),
        "client": ("10.0.0.1", 5000),
    }
    scope.update(overrides)
    return scope


def _receive(body: bytes):
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive() -> dict[str, Any]:
        return messages.pop(0)

    return receive


class TestRequest:
    def test_from_asgi(self) -> None:
        request = Request.from_asgi(_scope())
        assert request.method == "POST"
        assert request.query["page"] == "2"
        assert request.server == ("example.org", 443)
        assert request.has_form

    def test_get_never_has_form(self) -> None:
        assert not Request.from_asgi(_scope(method="GET")).has_form

    def test_environ(self) -> None:
        environ = Request.from_asgi(_scope()).environ()
        assert environ["REQUEST_METHOD"] == "POST"
        assert environ["PATH_INFO"] == "/users"
        assert environ["QUERY_STRING"] == "page=2"
        assert environ["SERVER_NAME"] == "example.org"
        assert environ["SERVER_PORT"] == "443"
        assert environ["REMOTE_ADDR"] == "10.0.0.1"
        assert environ["HTTP_X_USER"] == "ann"
        assert environ["CONTENT_TYPE"] == "application/x-www-form-urlencoded"

    async def test_body_is_cached(self) -> None:
        request = Request.from_asgi(_scope(), _receive(b"name=ann"))
        assert await request.body() == b"name=ann"
        assert await request.body() == b"name=ann"

    async def test_chunked_body(self) -> None:
        messages = [
            {"type": "http.request", "body": b"name=", "more_body": True},
            {"type": "http.request", "body": b"ann", "more_body": False},
        ]

        async def receive() -> dict[str, Any]:
            return messages.pop(0)

        request = Request.from_asgi(_scope(), receive)
        assert (await request.form())["name"] == "ann"

    async def test_sources(self) -> None:
        request = Request.from_asgi(_scope(), _receive(b"name=ann&_method=PUT"))
        sources = await request.sources()
        assert sources.method == "POST"
        assert sources.effective_method == "PUT"
        assert sources.post_fields == {"name": "ann"}
        assert sources.query["page"] == "2"

    async def test_body_over_limit(self) -> None:
        messages = [
            {"type": "http.request", "body": b"name=", "more_body": True},
            {"type": "http.request", "body": b"a long value", "more_body": False},
        ]

        async def receive() -> dict[str, Any]:
            return messages.pop(0)

        request = Request.from_asgi(_scope(), receive, max_body_size=8)
        with pytest.raises(HTTPError) as exc_info:
            await request.body()
        assert exc_info.value.status == 413

    async def test_body_within_limit(self) -> None:
        request = Request.from_asgi(_scope(), _receive(b"name=ann"), max_body_size=8)
        assert await request.body() == b"name=ann"

    async def test_sources_without_form(self) -> None:
        request = Request.from_asgi(_scope(method="GET"))
        sources = await request.sources("verb")
        assert dict(sources.form) == {}
        assert sources.override_field == "verb"


class TestResponse:
    def test_defaults(self) -> None:
        response = Response("hi")
        assert response.status == 200
        assert response.content_type.startswith("text/html")
        assert response.body_bytes == b"hi"

    def test_with_methods_return_new(self) -> None:
        response = Response("hi")
        changed = response.with_status(201).with_header("X-A", "1").with_headers({"X-B": "2"})
        assert response.status == 200
        assert changed.status == 201
        assert changed.headers == (("X-A", "1"), ("X-B", "2"))
        assert changed.header("x-b") == "2"
        assert changed.header("x-c", "none") == "none"

    def test_text_from_bytes(self) -> None:
        assert Response(b"caf\xc3\xa9").text == "café"

    def test_content_type(self) -> None:
        assert Response("{}").with_content_type("application/json").content_type == (
            "application/json"
        )

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            Response("hi").status = 500  # type: ignore[misc]

    def test_redirect_defaults(self) -> None:
        assert Redirect("/login").status == 302
