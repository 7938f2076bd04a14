"""Tests for deputy.http.forms — URL-encoded and multipart parsing."""

from pathlib import Path

import pytest

from deputy.app import App
from deputy.config import AppConfig
from deputy.http.forms import FormData, UploadFile, is_form_content_type, parse_form_data
from deputy.testing import TestClient


class TestFormData:
    def test_getitem_returns_first(self) -> None:
        form = FormData({"tag": ["a", "b"]})
        assert form["tag"] == "a"
        assert form.get_list("tag") == ["a", "b"]

    def test_missing(self) -> None:
        form = FormData()
        with pytest.raises(KeyError):
            form["nope"]
        assert form.get("nope", "dflt") == "dflt"
        assert form.get_list("nope") == []

    def test_mapping(self) -> None:
        form = FormData({"a": ["1"], "b": ["2"]})
        assert dict(form) == {"a": "1", "b": "2"}
        assert len(form) == 2
        assert "a" in form

    def test_files(self) -> None:
        upload = UploadFile("a.txt", "text/plain", 2, b"hi")
        form = FormData(files={"doc": upload})
        assert form.files["doc"].read() == b"hi"
        assert "doc" not in form


class TestUploadFile:
    def test_save(self, tmp_path: Path) -> None:
        upload = UploadFile("a.txt", "text/plain", 5, b"hello")
        target = tmp_path / "a.txt"
        upload.save(target)
        assert target.read_bytes() == b"hello"

    def test_repr(self) -> None:
        assert repr(UploadFile("a.txt", "text/plain", 5, b"hello")) == (
            "UploadFile('a.txt', 'text/plain', 5 bytes)"
        )


class TestParseUrlEncoded:
    def test_basic(self) -> None:
        form = parse_form_data(b"name=alice&age=30", "application/x-www-form-urlencoded")
        assert form["name"] == "alice"
        assert form["age"] == "30"

    def test_blank_values_kept(self) -> None:
        form = parse_form_data(b"name=&x=1", "application/x-www-form-urlencoded")
        assert form["name"] == ""

    def test_special_chars(self) -> None:
        form = parse_form_data(
            b"q=hello+world&email=a%40b.c",
            "application/x-www-form-urlencoded; charset=utf-8",
        )
        assert form["q"] == "hello world"
        assert form["email"] == "a@b.c"

    def test_unsupported(self) -> None:
        with pytest.raises(ValueError, match="Unsupported"):
            parse_form_data(b"{}", "application/json")


class TestParseMultipart:
    def test_fields_and_files(self) -> None:
        pytest.importorskip("multipart")
        body = (
            b"--XyZ\r\n"
            b'Content-Disposition: form-data; name="name"\r\n'
            b"\r\n"
            b"ann\r\n"
            b"--XyZ\r\n"
            b'Content-Disposition: form-data; name="doc"; filename="a.txt"\r\n'
            b"Content-Type: text/plain\r\n"
            b"\r\n"
            b"hello\r\n"
            b"--XyZ--\r\n"
        )
        form = parse_form_data(body, "multipart/form-data; boundary=XyZ")
        assert form["name"] == "ann"
        assert form.files["doc"].filename == "a.txt"
        assert form.files["doc"].content_type == "text/plain"
        assert form.files["doc"].read() == b"hello"

    def test_missing_boundary(self) -> None:
        pytest.importorskip("multipart")
        with pytest.raises(ValueError, match="boundary"):
            parse_form_data(b"", "multipart/form-data")


class TestContentType:
    @pytest.mark.parametrize(
        ("content_type", "expected"),
        [
            ("application/x-www-form-urlencoded", True),
            ("Multipart/Form-Data; boundary=x", True),
            ("application/json", False),
            (None, False),
        ],
    )
    def test_is_form(self, content_type: str | None, expected: bool) -> None:
        assert is_form_content_type(content_type) is expected


class TestPostAccessor:
    async def test_form_reaches_post(self) -> None:
        app = App(AppConfig(template_dir=None))

        @app.post("/")
        def submit(post):
            return f"{post('a')}-{post('b', 'none')}"

        async with TestClient(app) as client:
            response = await client.post("/", data={"a": "1"})
        assert response.text == "1-none"

    async def test_non_form_body_is_ignored(self) -> None:
        app = App(AppConfig(template_dir=None))

        @app.post("/")
        def submit(post):
            return dict(post())

        async with TestClient(app) as client:
            response = await client.post(
                "/",
                body=b'{"a": 1}',
                headers={"content-type": "application/json"},
            )
        assert response.text == "{}"
