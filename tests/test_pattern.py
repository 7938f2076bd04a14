"""Tests for deputy.routing.pattern — placeholder patterns and base paths."""

import pytest

from deputy.errors import BadRouteError, ConfigurationError
from deputy.routing.pattern import compile_pattern, join_path, normalize_base_path


class TestNormalizeBasePath:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("", "/"),
            ("/", "/"),
            ("//", "/"),
            ("/vice/example", "/vice/example/"),
            ("vice/example/", "/vice/example/"),
            ("  /shop// ", "/shop/"),
        ],
    )
    def test_normalizes(self, raw: str, expected: str) -> None:
        assert normalize_base_path(raw) == expected

    def test_join(self) -> None:
        assert join_path("/", "/users") == "/users"
        assert join_path("/shop", "items/<id>") == "/shop/items/<id>"
        assert join_path("/shop/", "/") == "/shop/"


class TestFullPatterns:
    def test_literal(self) -> None:
        pattern = compile_pattern("/users")
        assert pattern.match("/users") == {}
        assert pattern.match("/users/") == {}
        assert pattern.match("/users/42") is None
        assert pattern.match("/user") is None

    def test_trailing_slash_on_pattern_is_optional(self) -> None:
        pattern = compile_pattern("/users/<id>/")
        assert pattern.match("/users/42") == {"id": "42"}
        assert pattern.match("/users/42/") == {"id": "42"}

    def test_extra_segment_does_not_match(self) -> None:
        pattern = compile_pattern("/users/<id>")
        assert pattern.match("/users/42/edit") is None

    def test_case_insensitive(self) -> None:
        assert compile_pattern("/Users").match("/USERS") == {}

    def test_placeholder_charset(self) -> None:
        pattern = compile_pattern("/tags/<slug>")
        assert pattern.match("/tags/my_tag-2") == {"slug": "my_tag-2"}
        assert pattern.match("/tags/a.b") is None
        assert pattern.match("/tags/") is None

    def test_several_placeholders(self) -> None:
        pattern = compile_pattern("/users/<user>/posts/<post>")
        assert pattern.param_names == ("user", "post")
        assert pattern.match("/users/ann/posts/3") == {"user": "ann", "post": "3"}

    def test_root(self) -> None:
        pattern = compile_pattern("/")
        assert pattern.match("/") == {}
        assert pattern.match("/x") is None

    def test_leading_slash_added(self) -> None:
        assert compile_pattern("users").pattern == "/users"

    def test_literal_text_is_escaped(self) -> None:
        pattern = compile_pattern("/feed.xml")
        assert pattern.match("/feed.xml") == {}
        assert pattern.match("/feedXxml") is None

    def test_duplicate_placeholder_rejected(self) -> None:
        with pytest.raises(BadRouteError, match="appears twice"):
            compile_pattern("/a/<id>/b/<id>")

    def test_bad_route_is_configuration_error(self) -> None:
        assert issubclass(BadRouteError, ConfigurationError)


class TestPrefixPatterns:
    def test_remainder(self) -> None:
        pattern = compile_pattern("/ajax", prefix=True)
        assert pattern.split("/ajax/users/7") == ({}, "/users/7")

    def test_exact_prefix_leaves_root(self) -> None:
        pattern = compile_pattern("/ajax/", prefix=True)
        assert pattern.split("/ajax") == ({}, "/")
        assert pattern.split("/ajax/") == ({}, "/")

    def test_prefix_respects_segment_boundary(self) -> None:
        pattern = compile_pattern("/ajax", prefix=True)
        assert pattern.split("/ajaxy/users") is None

    def test_prefix_captures_whole_segment(self) -> None:
        pattern = compile_pattern("/users/<id>", prefix=True)
        assert pattern.split("/users/42/posts") == ({"id": "42"}, "/posts")

    def test_root_prefix_matches_everything(self) -> None:
        pattern = compile_pattern("/", prefix=True)
        assert pattern.split("/anything/here") == ({}, "/anything/here")
        assert pattern.split("/") == ({}, "/")
