"""Shortcode renderer.

Turns one code block invocation into the HTML fragment consumed by the
client-side highlighter (Prism.js). No highlighting happens here: the code body
is escaped and embedded as text, and the language, line-number and highlight
settings travel as CSS classes and data attributes.

Rendered structure::

    <div class="acr-code-block[ acr-word-wrap]"[ data-copy="false"]>
      [<div class="acr-code-title">..</div>]
      [<div class="acr-file-name">..</div>]
      [<span class="acr-language-label">..</span>]
      <pre class="language-X[ line-numbers]"[ style=..][ data-line=..]><code>..</code></pre>
    </div>
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from coderender.codec import escape_attr, escape_html
from coderender.config import RenderOptions
from coderender.shortcode import shortcode_atts

logger = logging.getLogger(__name__)

CONTAINER_CLASS = "acr-code-block"
WORD_WRAP_CLASS = "acr-word-wrap"
LINE_NUMBERS_CLASS = "line-numbers"
DEFAULT_LANGUAGE = "text"

TRUTHY_TOKENS = frozenset({"true"})

_ANY_TAG_RE = re.compile(r"<[^>]+>")
_P_OPEN_RE = re.compile(r"<p\s*>", re.IGNORECASE)
_P_CLOSE_RE = re.compile(r"</p>", re.IGNORECASE)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)

# Block editor attribute name -> shortcode attribute name
_BLOCK_ATTRIBUTE_MAP = {
    "language": "lang",
    "title": "title",
    "lineNumbers": "line_numbers",
    "copyButton": "copy",
    "wordWrap": "wrap",
    "fileName": "file",
    "highlightLines": "highlight",
    "height": "height",
}


def is_truthy(value: object) -> bool:
    """Interpret a shortcode flag; only the exact string ``true`` counts.

    Examples:
        >>> is_truthy("true"), is_truthy("1"), is_truthy("TRUE"), is_truthy("maybe")
        (True, False, False, False)
    """
    if isinstance(value, bool):
        return value
    return str(value) in TRUTHY_TOKENS


def _flag(value: bool) -> str:
    return "true" if value else "false"


def clean_code(text: str) -> str:
    """Normalise a code body that may have passed through a rich-text editor.

    The body is trimmed. When it contains markup, paragraph tags are dropped,
    ``</p>`` and ``<br>`` become newlines and ``&nbsp;`` becomes a space.
    Bodies without markup are used verbatim.

    Examples:
        >>> clean_code("  x = 1  ")
        'x = 1'
        >>> clean_code("<p>a&nbsp;=&nbsp;1</p><p>b = 2<br />c = 3</p>")
        'a = 1\\nb = 2\\nc = 3'
    """
    text = text.strip()

    if _ANY_TAG_RE.search(text):
        text = _P_OPEN_RE.sub("", text)
        text = _P_CLOSE_RE.sub("\n", text)
        text = _BR_RE.sub("\n", text)
        text = text.replace("&nbsp;", " ")
        text = text.strip()

    return text


@dataclass(frozen=True)
class CodeBlockRequest:
    """Attributes of one code block invocation.

    ``code`` is only ever escaped and embedded as text.
    """

    code: str
    language: str = DEFAULT_LANGUAGE
    title: str = ""
    filename: str = ""
    line_numbers: bool = False
    copy: bool = True
    wrap: bool = False
    height: str = ""
    highlight: str = ""

    @classmethod
    def shortcode_defaults(
        cls, options: RenderOptions, language: str = DEFAULT_LANGUAGE
    ) -> dict[str, str]:
        """Known shortcode attributes with their defaults under ``options``."""
        return {
            "lang": language,
            "language": "",
            "title": "",
            "line_numbers": _flag(options.line_numbers),
            "copy": _flag(options.copy_button),
            "wrap": _flag(options.word_wrap),
            "height": "",
            "file": "",
            "highlight": "",
        }

    @classmethod
    def from_shortcode(
        cls,
        attrs: Mapping[str, str],
        body: str | None,
        options: RenderOptions,
        default_language: str = DEFAULT_LANGUAGE,
    ) -> "CodeBlockRequest":
        """Build a request from parsed shortcode attributes.

        Unknown attributes are ignored and a non-empty ``language`` overrides
        ``lang``.

        Args:
            attrs: Parsed attributes
            body: Raw shortcode body (None for self-closing shortcodes)
            options: Process-wide defaults
            default_language: Language used when none is given

        Returns:
            CodeBlockRequest with a cleaned code body
        """
        atts = shortcode_atts(cls.shortcode_defaults(options, default_language), attrs)

        language = atts["language"] or atts["lang"] or default_language

        return cls(
            code=clean_code(body or ""),
            language=language,
            title=atts["title"],
            filename=atts["file"],
            line_numbers=is_truthy(atts["line_numbers"]),
            copy=is_truthy(atts["copy"]),
            wrap=is_truthy(atts["wrap"]),
            height=atts["height"],
            highlight=atts["highlight"],
        )


class CodeBlockRenderer:
    """Renders code block requests with a fixed set of render options.

    Attributes:
        options: Process-wide defaults applied to every block
        default_language: Language used when a shortcode gives none
    """

    def __init__(
        self,
        options: RenderOptions | None = None,
        default_language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self.options = options or RenderOptions()
        self.default_language = default_language

    def render(self, request: CodeBlockRequest) -> str:
        """Render a request into the code block HTML fragment.

        Args:
            request: Code block attributes and body

        Returns:
            HTML fragment, or an empty string when there is no code

        Examples:
            >>> CodeBlockRenderer().render(CodeBlockRequest(code='print("hi")', language="python"))
            '<div class="acr-code-block"><span class="acr-language-label">PYTHON</span><pre class="language-python"><code>print(&quot;hi&quot;)</code></pre></div>'
        """  # noqa: E501
        if not request.code:
            return ""

        classes = [CONTAINER_CLASS]
        if request.wrap:
            classes.append(WORD_WRAP_CLASS)

        pre_classes = [f"language-{request.language}"]
        if request.line_numbers:
            pre_classes.append(LINE_NUMBERS_CLASS)

        container_attrs = ""
        if not request.copy:
            container_attrs = ' data-copy="false"'

        title_html = ""
        if request.title:
            title_html = f'<div class="acr-code-title">{escape_html(request.title)}</div>'

        file_html = ""
        if request.filename:
            file_html = f'<div class="acr-file-name">{escape_html(request.filename)}</div>'

        label_html = ""
        if self.options.show_language and request.language != DEFAULT_LANGUAGE:
            label_html = (
                f'<span class="acr-language-label">{escape_html(request.language.upper())}</span>'
            )

        style = ""
        if request.height:
            style = f' style="max-height: {escape_attr(request.height)}; overflow-y: auto;"'

        data_attrs = ""
        if request.highlight:
            data_attrs = f' data-line="{escape_attr(request.highlight)}"'

        return (
            f'<div class="{escape_attr(" ".join(classes))}"{container_attrs}>'
            f"{title_html}{file_html}{label_html}"
            f'<pre class="{escape_attr(" ".join(pre_classes))}"{style}{data_attrs}>'
            f"<code>{escape_html(request.code)}</code></pre></div>"
        )

    def render_shortcode(self, attrs: Mapping[str, str], body: str | None, tag: str = "") -> str:
        """Shortcode handler: parsed attributes and body to HTML.

        Args:
            attrs: Parsed shortcode attributes
            body: Shortcode body (None when self-closing)
            tag: Tag name the shortcode was written with

        Returns:
            Rendered fragment, empty when the body is missing or blank
        """
        if not body:
            logger.debug(f"Skipping empty [{tag or 'code_block'}] shortcode")
            return ""

        request = CodeBlockRequest.from_shortcode(attrs, body, self.options, self.default_language)
        return self.render(request)

    def render_block(self, attributes: Mapping[str, Any]) -> str:
        """Render callback for the block-editor code block component.

        Maps the block's attribute names (``lineNumbers``, ``fileName``, ...)
        onto shortcode attributes and renders them like a shortcode.

        Args:
            attributes: Block attributes, including ``content``

        Returns:
            Rendered fragment
        """
        attrs: dict[str, str] = {}
        for key, value in attributes.items():
            name = _BLOCK_ATTRIBUTE_MAP.get(key)
            if name is None or value is None:
                continue
            attrs[name] = _flag(value) if isinstance(value, bool) else str(value)

        content = attributes.get("content")
        return self.render_shortcode(attrs, str(content) if content is not None else None)


def render_code(
    code: str,
    language: str = DEFAULT_LANGUAGE,
    args: Mapping[str, Any] | None = None,
    options: RenderOptions | None = None,
) -> str:
    """Render a code block without going through shortcode syntax.

    Args:
        code: Raw code text
        language: Language tag
        args: Shortcode-style attributes (``title``, ``line_numbers``, ``copy``, ...);
            boolean values are accepted as well as strings
        options: Render options (defaults when omitted)

    Returns:
        Rendered fragment, empty when ``code`` is empty

    Examples:
        >>> render_code("SELECT 1;", "sql", {"title": "Query"}).startswith(
        ...     '<div class="acr-code-block"><div class="acr-code-title">Query</div>'
        ... )
        True
    """
    attrs: dict[str, str] = {"title": "", "line_numbers": "false", "copy": "true"}
    for key, value in (args or {}).items():
        attrs[key] = _flag(value) if isinstance(value, bool) else str(value)
    attrs["lang"] = language

    return CodeBlockRenderer(options).render_shortcode(attrs, code)
