"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(base_path="/vice/example", debug=True)
    """

    # Every route of the root router is relative to base_path
    base_path: str = "/"
    debug: bool = False

    # Hidden form field that turns a POST into PUT / DELETE
    method_override_field: str = "_method"

    # Templates (render helper)
    template_dir: str | Path | None = "templates"
    autoescape: bool = True
    trim_blocks: bool = True
    lstrip_blocks: bool = True

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB
