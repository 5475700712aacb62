"""Plugin system for coderender.

Hook-based extension points around rendering and the editor round-trip.
Plugins can rewrite content before shortcodes are expanded, post-process the
rendered HTML, and adjust content as it enters or leaves the editor.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class PluginHook(str, Enum):
    """Lifecycle hooks where plugins can execute."""

    SETUP = "setup"
    CONTENT = "content"
    POST_RENDER = "post_render"
    EDITOR_LOAD = "editor_load"
    EDITOR_SAVE = "editor_save"


class Plugin(ABC):
    """Base class for all coderender plugins.

    Plugins must implement the name and hooks properties, and can optionally
    implement hook methods corresponding to their declared hooks.

    Hook methods:
    - on_setup(config): Called once when a processor is created
    - on_content(content): Called before shortcodes are expanded (can modify)
    - on_post_render(html): Called on the rendered HTML (can modify)
    - on_editor_load(content): Called after protection, before editing (can modify)
    - on_editor_save(content): Called before placeholders are restored (can modify)

    SETUP is notification-only; every other hook returns the (possibly
    modified) content, which is passed on to the next plugin.
    """

    def __init__(self, settings: dict[str, Any] | None = None) -> None:
        """Initialize plugin with settings.

        Args:
            settings: Plugin-specific configuration from config.plugins.plugin_settings
        """
        self.settings = settings or {}

    @property
    @abstractmethod
    def name(self) -> str:
        """Plugin identifier (must be unique)."""
        ...

    @property
    @abstractmethod
    def hooks(self) -> list[PluginHook]:
        """Hooks this plugin subscribes to."""
        ...

    def on_setup(self, config: Any) -> None:
        """Called once when a processor is created (optional override).

        Args:
            config: CodeRenderConfig whose ``options`` are the effective render options
        """
        return

    def on_content(self, content: str) -> str:
        """Called on raw post content before shortcode expansion.

        Args:
            content: Post content with shortcodes

        Returns:
            Modified content
        """
        return content

    def on_post_render(self, html: str) -> str:
        """Called on the rendered HTML.

        Args:
            html: Content with code blocks rendered

        Returns:
            Modified HTML
        """
        return html

    def on_editor_load(self, content: str) -> str:
        """Called on protected content about to enter the editor.

        Args:
            content: Content with placeholders

        Returns:
            Modified content
        """
        return content

    def on_editor_save(self, content: str) -> str:
        """Called on editor content before placeholders are restored.

        Args:
            content: Content with placeholders

        Returns:
            Modified content
        """
        return content


__all__ = ["Plugin", "PluginHook"]
