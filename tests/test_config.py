"""Tests for deputy.config and template environment creation."""

import dataclasses
from pathlib import Path

import pytest
from kida import Environment

from deputy.config import AppConfig
from deputy.templating.integration import create_environment, render_template


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.base_path == "/"
        assert config.debug is False
        assert config.method_override_field == "_method"
        assert config.template_dir == "templates"

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            AppConfig().debug = True  # type: ignore[misc]


class TestEnvironment:
    def test_none_without_template_dir(self) -> None:
        assert create_environment(AppConfig(template_dir=None)) is None

    def test_renders_from_directory(self, tmp_path: Path) -> None:
        (tmp_path / "hello.html").write_text("Hello {{ name }}")
        env = create_environment(AppConfig(template_dir=tmp_path))
        assert isinstance(env, Environment)
        assert render_template(env, "hello.html", {"name": "ann"}) == "Hello ann"

    def test_autoescape(self, tmp_path: Path) -> None:
        (tmp_path / "x.html").write_text("{{ value }}")
        env = create_environment(AppConfig(template_dir=tmp_path))
        assert env is not None
        assert "&lt;b&gt;" in render_template(env, "x.html", {"value": "<b>"})
