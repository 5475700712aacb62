"""Options store.

Persisted key/value storage for RenderOptions, written through a settings form.
The store is a YAML file; values saved there are layered over the configured
defaults on every load, so an unset store simply yields the defaults.
"""

import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from coderender.config import RenderOptions, merge_options
from coderender.exceptions import OptionsStoreError
from coderender.utils import absint, sanitize_text_field

logger = logging.getLogger(__name__)

# Checkbox fields: present in a submitted form means checked
BOOLEAN_FIELDS = (
    "line_numbers",
    "copy_button",
    "word_wrap",
    "show_language",
    "toolbar",
)


def sanitize_options(
    form: Mapping[str, Any], defaults: RenderOptions | None = None
) -> RenderOptions:
    """Sanitize a submitted settings form into RenderOptions.

    Checkbox fields are true exactly when present in the form. Font size and
    tab size are coerced to non-negative integers; a missing tab size keeps its
    default. The theme is sanitized as plain text and falls back to the default
    when nothing is left.

    Args:
        form: Submitted form fields
        defaults: Values used where the form has no usable value

    Returns:
        Sanitized RenderOptions

    Examples:
        >>> opts = sanitize_options({"theme": " <i>dark</i> ", "font_size": "-16", "toolbar": "1"})
        >>> opts.theme, opts.font_size, opts.toolbar, opts.copy_button
        ('dark', 16, True, False)
    """
    defaults = defaults or RenderOptions()

    theme = sanitize_text_field(form.get("theme")) or defaults.theme

    values: dict[str, Any] = {
        "theme": theme,
        "font_size": absint(form.get("font_size")),
        "tab_size": absint(form["tab_size"]) if "tab_size" in form else defaults.tab_size,
    }
    for field in BOOLEAN_FIELDS:
        values[field] = field in form

    return RenderOptions(**values)


class OptionsStore:
    """YAML-file backed store for render options.

    Attributes:
        path: Location of the YAML file
        defaults: Values returned for anything not stored
    """

    def __init__(self, path: Path | str, defaults: RenderOptions | None = None) -> None:
        self.path = Path(path)
        self.defaults = defaults or RenderOptions()

    def _read(self) -> dict[str, Any]:
        """Raw stored mapping, empty when nothing has been saved."""
        if not self.path.exists():
            return {}

        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise OptionsStoreError(f"Cannot read options store {self.path}: {e}") from e

        if data is None:
            return {}

        if not isinstance(data, dict):
            raise OptionsStoreError(
                f"Options store {self.path} must contain a YAML object/dict, "
                f"got {type(data).__name__}"
            )

        return data

    def load(self) -> RenderOptions:
        """Stored options layered over the defaults.

        Raises:
            OptionsStoreError: If the file is unreadable or holds invalid values
        """
        stored = self._read()
        try:
            return merge_options(self.defaults, stored)
        except ValidationError as e:
            raise OptionsStoreError(f"Invalid values in options store {self.path}:\n{e}") from e

    def save(self, options: RenderOptions) -> None:
        """Persist the full option set, replacing whatever was stored.

        The file is written to a temporary sibling first and then moved over
        the target.

        Raises:
            OptionsStoreError: If the file cannot be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path_str = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=".coderender_options_",
                suffix=".tmp",
            )
        except OSError as e:
            raise OptionsStoreError(f"Cannot write options store {self.path}: {e}") from e

        temp_path = Path(temp_path_str)
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(options.model_dump(), f, default_flow_style=False, sort_keys=False)
            temp_path.replace(self.path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise OptionsStoreError(f"Cannot write options store {self.path}: {e}") from e

        logger.debug(f"Saved options to {self.path}")

    def get(self, key: str) -> Any:
        """Current value of one option.

        Raises:
            KeyError: If ``key`` is not an option name
        """
        if key not in RenderOptions.model_fields:
            raise KeyError(key)
        return getattr(self.load(), key)

    def set(self, key: str, value: Any) -> RenderOptions:
        """Validate and persist a single option.

        Raises:
            KeyError: If ``key`` is not an option name
            OptionsStoreError: If the value is invalid or cannot be stored
        """
        if key not in RenderOptions.model_fields:
            raise KeyError(key)

        try:
            options = merge_options(self.load(), {key: value})
        except ValidationError as e:
            raise OptionsStoreError(f"Invalid value for {key}: {value!r}\n{e}") from e

        self.save(options)
        return options

    def update_from_form(self, form: Mapping[str, Any]) -> RenderOptions:
        """Sanitize a submitted settings form and persist the result.

        The last submission wins.
        """
        options = sanitize_options(form, self.defaults)
        self.save(options)
        logger.info(f"Options updated from settings form ({self.path})")
        return options

    def reset(self) -> RenderOptions:
        """Persist the defaults, discarding stored values."""
        self.save(self.defaults)
        return self.defaults.model_copy()

    def ensure_defaults(self) -> bool:
        """Store the defaults if nothing has been stored yet.

        Returns:
            True if defaults were written
        """
        if self._read():
            return False
        self.save(self.defaults)
        return True
