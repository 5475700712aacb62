"""Content pipeline.

Ties the pieces together for one site configuration: shortcode expansion on
output, placeholder protection around the editor, and the plugin hooks that
wrap both.
"""

import logging
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from coderender.config import CodeRenderConfig, RenderOptions
from coderender.editor import EditorContext, paste, protect, restore
from coderender.options import OptionsStore
from coderender.plugins import PluginHook
from coderender.plugins.enhancer import FrontendEnhancerPlugin
from coderender.plugins.manager import PluginManager
from coderender.renderer import CodeBlockRenderer
from coderender.shortcode import do_shortcode, strip_shortcode_paragraphs

logger = logging.getLogger(__name__)

ENHANCER_PLUGIN_PATH = "coderender.plugins.enhancer"


class ContentProcessor:
    """Renders post content and moves it in and out of the editor.

    Attributes:
        config: Site configuration
        options: Effective render options
        renderer: Code block renderer bound to ``options``
        plugins: Plugin manager invoked around every operation
    """

    def __init__(
        self,
        config: CodeRenderConfig,
        options: RenderOptions | None = None,
        plugin_manager: PluginManager | None = None,
    ) -> None:
        """Initialize the processor and run the SETUP hook.

        Args:
            config: Site configuration
            options: Effective render options (defaults to ``config.options``)
            plugin_manager: Plugin manager (built from ``config.plugins`` if omitted)
        """
        self.config = config
        self.options = options or config.options
        self.tags = tuple(config.shortcodes.tags)
        self.renderer = CodeBlockRenderer(self.options, config.shortcodes.default_language)
        self.plugins = plugin_manager or PluginManager(config.plugins)

        if config.enhancer.enabled and not self.plugins.has_plugin("frontend_enhancer"):
            settings = config.plugins.plugin_settings.get(ENHANCER_PLUGIN_PATH, {})
            self.plugins.register(FrontendEnhancerPlugin(settings=settings))

        effective = config.model_copy(update={"options": self.options})
        self.plugins.invoke_hook(PluginHook.SETUP, config=effective)

    @classmethod
    def from_config(
        cls, config: CodeRenderConfig, base_dir: Path | None = None
    ) -> "ContentProcessor":
        """Processor whose options come from the configured options store.

        Args:
            config: Site configuration
            base_dir: Directory a relative store path is resolved against

        Raises:
            OptionsStoreError: If the store exists but cannot be read
        """
        store_path = Path(config.store.path)
        if base_dir is not None and not store_path.is_absolute():
            store_path = base_dir / store_path

        options = OptionsStore(store_path, config.options).load()
        return cls(config, options)

    def _run(self, hook: PluginHook, content: str) -> str:
        result = self.plugins.invoke_hook(hook, content=content)
        return content if result is None else result

    def render(self, content: str) -> str:
        """Render post content for display.

        Args:
            content: Post content containing code block shortcodes

        Returns:
            HTML with every code block shortcode expanded
        """
        content = self._run(PluginHook.CONTENT, content)
        content = strip_shortcode_paragraphs(content, self.tags)

        handlers = dict.fromkeys(self.tags, self.renderer.render_shortcode)
        html = do_shortcode(content, handlers)

        return self._run(PluginHook.POST_RENDER, html)

    def render_block(self, attributes: Mapping[str, Any]) -> str:
        """Render a block-editor code block and post-process it."""
        return self._run(PluginHook.POST_RENDER, self.renderer.render_block(attributes))

    def _with_content(self, ctx: EditorContext, content: str) -> EditorContext:
        if content == ctx.content:
            return ctx

        def clamp(offset: int | None) -> int | None:
            return None if offset is None else min(offset, len(content))

        return replace(
            ctx,
            content=content,
            cursor=clamp(ctx.cursor),
            selection_end=clamp(ctx.selection_end),
        )

    def load_into_editor(self, ctx: EditorContext) -> EditorContext:
        """Protect shortcodes before content is handed to the editor."""
        protected = protect(ctx, self.tags)
        return self._with_content(protected, self._run(PluginHook.EDITOR_LOAD, protected.content))

    def save_from_editor(self, ctx: EditorContext) -> EditorContext:
        """Restore shortcode text from editor content before it is saved."""
        saved = self._with_content(ctx, self._run(PluginHook.EDITOR_SAVE, ctx.content))
        return restore(saved, self.tags[0])

    def paste(self, ctx: EditorContext, pasted: str) -> EditorContext:
        """Paste into the editor, keeping code blocks plain text."""
        return paste(ctx, pasted, self.tags)
