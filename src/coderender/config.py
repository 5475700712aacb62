"""Configuration system.

YAML configuration files validated by Pydantic models with type-safe schemas, validation,
sensible defaults, and clear error messages. Entry point: load_config().

RenderOptions is the process-wide set of code block defaults. It is layered:
built-in field defaults, then the ``options`` section of the configuration file,
then values persisted in the options store, then per-invocation shortcode attributes.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from coderender.exceptions import ConfigError

DEFAULT_TAGS = ["code_block", "acr_code"]


class RenderOptions(BaseModel):
    """Process-wide code block defaults.

    Loaded once per request from persisted storage and overridden per invocation
    by explicit shortcode attributes.
    """

    theme: str = Field(
        default="default",
        description="Highlighter color theme ('default' for light, 'dark' for dark)",
    )
    line_numbers: bool = Field(
        default=False,
        description="Show line numbers unless a shortcode says otherwise",
    )
    copy_button: bool = Field(
        default=True,
        description="Show a copy-to-clipboard button unless a shortcode says otherwise",
    )
    word_wrap: bool = Field(
        default=False,
        description="Wrap long lines unless a shortcode says otherwise",
    )
    font_size: int = Field(
        default=14,
        ge=0,
        description="Code font size in pixels",
    )
    tab_size: int = Field(
        default=4,
        ge=0,
        description="Rendered width of a tab character",
    )
    show_language: bool = Field(
        default=True,
        description="Show an uppercase language badge on highlighted blocks",
    )
    toolbar: bool = Field(
        default=True,
        description="Enable the block toolbar that hosts the copy button",
    )


def merge_options(
    defaults: RenderOptions,
    overrides: RenderOptions | Mapping[str, Any] | None = None,
) -> RenderOptions:
    """Layer overrides on top of defaults, field by field.

    Neither argument is modified. Keys in ``overrides`` that are not option
    fields are ignored.

    Args:
        defaults: Base options
        overrides: Partial mapping or full RenderOptions taking precedence

    Returns:
        New RenderOptions instance

    Examples:
        >>> base = RenderOptions(theme="dark")
        >>> merged = merge_options(base, {"line_numbers": True})
        >>> (merged.theme, merged.line_numbers, base.line_numbers)
        ('dark', True, False)
    """
    if overrides is None:
        return defaults.model_copy()

    if isinstance(overrides, RenderOptions):
        update = overrides.model_dump(exclude_unset=True)
    else:
        update = {k: v for k, v in overrides.items() if k in RenderOptions.model_fields}

    return RenderOptions.model_validate({**defaults.model_dump(), **update})


class ShortcodeConfig(BaseModel):
    """Shortcode recognition configuration."""

    tags: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TAGS),
        min_length=1,
        description="Shortcode tag names rendered as code blocks",
    )
    default_language: str = Field(
        default="text",
        min_length=1,
        description="Language used when a shortcode gives none",
    )

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        """Validate that tag names are usable inside brackets."""
        for tag in v:
            if not tag or any(ch in tag for ch in "[]/<>&\"' \t\n"):
                raise ValueError(
                    f"Invalid shortcode tag name: {tag!r}. "
                    "Use letters, digits, hyphens and underscores only."
                )
        return v


class OptionsStoreConfig(BaseModel):
    """Persisted options store configuration."""

    path: str = Field(
        default=".coderender_options.yaml",
        description="YAML file holding options saved through the settings form",
    )


class EnhancerConfig(BaseModel):
    """Settings for the markup enhancement applied after rendering."""

    enabled: bool = Field(
        default=False,
        description="Whether to run the built-in frontend enhancer on rendered HTML",
    )
    copy_text: str = Field(
        default="Copy",
        description="Label of the copy button",
    )
    copied_text: str = Field(
        default="Copied!",
        description="Label shown after a successful copy",
    )
    mobile_breakpoint: int = Field(
        default=768,
        ge=0,
        description="Viewport width in pixels below which blocks get the mobile class",
    )
    viewport_width: int | None = Field(
        default=None,
        ge=0,
        description="Known viewport width of the target client (None = unknown)",
    )


class PluginConfig(BaseModel):
    """Plugin system configuration."""

    enabled: bool = Field(
        default=False,
        description="Whether to enable plugin system",
    )
    plugins: list[str] = Field(
        default_factory=list,
        description="List of plugin module paths to load",
    )
    plugin_settings: dict[str, Any] = Field(
        default_factory=dict,
        description="Plugin-specific settings keyed by plugin path",
    )


class CodeRenderConfig(BaseModel):
    """Main configuration model.

    Root object for a site: render defaults, shortcode tags, where the options
    store lives, enhancer labels and plugins.
    """

    name: str = Field(
        default="site",
        min_length=1,
        description="Site/config name",
    )
    description: str = Field(
        default="",
        description="Human-readable description of this configuration",
    )
    options: RenderOptions = Field(
        default_factory=RenderOptions,
        description="Default render options (the options store layers over these)",
    )
    shortcodes: ShortcodeConfig = Field(
        default_factory=ShortcodeConfig,
        description="Shortcode recognition configuration",
    )
    store: OptionsStoreConfig = Field(
        default_factory=OptionsStoreConfig,
        description="Options store configuration",
    )
    enhancer: EnhancerConfig = Field(
        default_factory=EnhancerConfig,
        description="Markup enhancement configuration",
    )
    plugins: PluginConfig = Field(
        default_factory=PluginConfig,
        description="Plugin system configuration",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate that name has no surrounding whitespace."""
        if v != v.strip():
            raise ValueError(
                f"name cannot have leading/trailing whitespace: {v!r}. Use '{v.strip()}' instead."
            )
        return v


def load_config(path: Path) -> CodeRenderConfig:
    """Load and validate YAML configuration file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated CodeRenderConfig instance

    Raises:
        ConfigError: If config file is not found, invalid YAML, or validation fails
    """
    try:
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        if not path.is_file():
            raise ValueError(f"Configuration path is not a file: {path}")

        with path.open("r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)

        if config_dict is None:
            raise ValueError(f"Configuration file is empty: {path}")

        if not isinstance(config_dict, dict):
            raise ValueError(
                f"Configuration file must contain a YAML object/dict, "
                f"got {type(config_dict).__name__}"
            )

        return CodeRenderConfig(**config_dict)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed for {path}:\n{e}") from e
    except ValueError as e:
        raise ConfigError(str(e)) from e
