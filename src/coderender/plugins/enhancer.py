"""Frontend enhancement plugin.

Adds the markup that the browser-side script otherwise attaches after page
load: per-language classes, keyboard focus on code, the mobile class and the
copy-to-clipboard button.
"""

import logging
import re
from typing import Any, cast

from lxml import etree as lxml_etree
from lxml import html as lxml_html
from lxml.html import HtmlElement

from coderender.config import EnhancerConfig, RenderOptions
from coderender.plugins import Plugin, PluginHook
from coderender.renderer import CONTAINER_CLASS, DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)

COPY_BUTTON_CLASS = "acr-copy-button"
COPY_SUCCESS_CLASS = "acr-copy-success"
MOBILE_CLASS = "acr-mobile"

_LANGUAGE_CLASS_RE = re.compile(r"\blanguage-(\w+)")

# Fragment emitted by CodeBlockRenderer.render; all text inside it is escaped
_RENDERED_BLOCK_RE = re.compile(
    rf'<div class="{CONTAINER_CLASS}(?: [^"]*)?"[^>]*>'
    r'(?:<div class="acr-(?:code-title|file-name)">[^<]*</div>)*'
    r'(?:<span class="acr-language-label">[^<]*</span>)?'
    r"<pre\b[^>]*><code>[^<]*</code></pre></div>"
)


def language_from_class(class_name: str | None) -> str:
    """Language named by a ``language-X`` class.

    Examples:
        >>> language_from_class("language-python line-numbers")
        'python'
        >>> language_from_class(None)
        'text'
    """
    match = _LANGUAGE_CLASS_RE.search(class_name or "")
    return match.group(1) if match else DEFAULT_LANGUAGE


class FrontendEnhancerPlugin(Plugin):
    """Post-render markup enhancement for code blocks.

    Settings (each overrides the ``enhancer`` section of the configuration):
        copy_text: Copy button label
        copied_text: Label shown after copying
        mobile_breakpoint: Width below which blocks are marked mobile
        viewport_width: Width of the client the page is rendered for
    """

    def __init__(self, settings: dict[str, Any] | None = None) -> None:
        super().__init__(settings)
        self.options = RenderOptions()
        self.enhancer = self._apply_settings(EnhancerConfig())

    @property
    def name(self) -> str:
        """Plugin identifier."""
        return "frontend_enhancer"

    @property
    def hooks(self) -> list[PluginHook]:
        """Subscribe to SETUP and POST_RENDER hooks."""
        return [PluginHook.SETUP, PluginHook.POST_RENDER]

    def _apply_settings(self, enhancer: EnhancerConfig) -> EnhancerConfig:
        overrides = {k: v for k, v in self.settings.items() if k in EnhancerConfig.model_fields}
        return EnhancerConfig.model_validate({**enhancer.model_dump(), **overrides})

    def on_setup(self, config: Any) -> None:
        """Pick up the effective render options and enhancer labels."""
        self.options = config.options
        self.enhancer = self._apply_settings(config.enhancer)

    @property
    def is_mobile(self) -> bool:
        """True when the target viewport is narrower than the breakpoint."""
        width = self.enhancer.viewport_width
        return width is not None and width < self.enhancer.mobile_breakpoint

    def _copy_button(self) -> HtmlElement:
        button = cast("HtmlElement", lxml_html.Element("button"))
        button.set("type", "button")
        button.set("class", COPY_BUTTON_CLASS)
        button.text = self.enhancer.copy_text

        success = lxml_etree.SubElement(button, "span")
        success.set("class", COPY_SUCCESS_CLASS)
        success.set("style", "display: none")
        success.text = self.enhancer.copied_text
        return button

    def enhance_block(self, block: HtmlElement) -> None:
        """Enhance one ``.acr-code-block`` element in place."""
        pres = block.cssselect("pre")
        pre = pres[0] if pres else None

        language = language_from_class(pre.get("class") if pre is not None else None)
        block.classes.add(f"acr-lang-{language}")

        if pre is not None:
            pre.set("tabindex", "0")

        if self.is_mobile:
            block.classes.add(MOBILE_CLASS)

        wants_copy = self.options.toolbar and block.get("data-copy") != "false"
        if wants_copy and not block.cssselect(f"button.{COPY_BUTTON_CLASS}"):
            block.append(self._copy_button())

    def _enhance_fragment(self, fragment: str) -> str:
        try:
            block = lxml_html.fragment_fromstring(fragment)
        except (lxml_etree.ParserError, ValueError) as e:
            logger.warning(f"Could not parse rendered code block for enhancement: {e}")
            return fragment

        self.enhance_block(block)
        return cast("str", lxml_html.tostring(block, encoding="unicode"))

    def on_post_render(self, html: str) -> str:
        """Enhance every rendered code block in ``html``.

        Only the block fragments produced by the renderer are parsed and
        re-serialized; everything around them is returned byte for byte.
        Blocks that were already enhanced no longer match and are skipped.
        """
        if CONTAINER_CLASS not in html:
            return html

        result, count = _RENDERED_BLOCK_RE.subn(lambda m: self._enhance_fragment(m.group(0)), html)
        if count:
            logger.debug(f"Enhanced {count} code block(s)")
        return result


__all__ = ["FrontendEnhancerPlugin"]
