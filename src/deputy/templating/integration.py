"""Kida environment setup for the ``render`` helper.

Creates a kida Environment from deputy's AppConfig. The environment is
created once during ``App.freeze()`` and threaded through every dispatch
so filters and handlers can render templates by name.
"""

from collections.abc import Mapping
from typing import Any

from kida import Environment, FileSystemLoader

from deputy.config import AppConfig


def create_environment(config: AppConfig) -> Environment | None:
    """Create a kida Environment from app configuration.

    Returns ``None`` when ``config.template_dir`` is ``None`` — the
    ``render`` helper then raises ``ConfigurationError`` when called.
    """
    if config.template_dir is None:
        return None

    return Environment(
        loader=FileSystemLoader(str(config.template_dir)),
        autoescape=config.autoescape,
        auto_reload=config.debug,
        trim_blocks=config.trim_blocks,
        lstrip_blocks=config.lstrip_blocks,
    )


def render_template(env: Environment, name: str, context: Mapping[str, Any]) -> str:
    """Render a full template to string."""
    template = env.get_template(name)
    return template.render(dict(context))
