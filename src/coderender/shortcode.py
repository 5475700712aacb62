"""Shortcode syntax: parsing, scanning and expansion.

Implements the bracketed tag convention used by content management systems::

    [code_block lang="python" title="Demo"]print("hi")[/code_block]

Matching follows the conventional rules: a tag name must not be followed by a
word character or hyphen, the body ends at the nearest closing tag of the same
name, ``[tag /]`` is self-closing, and ``[[tag]]`` is an escaped literal.
"""

import re
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from functools import lru_cache

from coderender.codec import escape_attr, unescape

SHORTCODE_TAGS: tuple[str, ...] = ("code_block", "acr_code")

ShortcodeHandler = Callable[[dict[str, str], str | None, str], str]

_ATTR_RE = re.compile(
    r"""
    ([\w-]+)\s*=\s*"([^"]*)"(?:\s|$)
    |
    ([\w-]+)\s*=\s*'([^']*)'(?:\s|$)
    |
    ([\w-]+)\s*=\s*([^\s'"]+)(?:\s|$)
    |
    "([^"]*)"(?:\s|$)
    |
    '([^']*)'(?:\s|$)
    |
    (\S+)(?:\s|$)
    """,
    re.VERBOSE,
)

_SPACE_LIKE_RE = re.compile("[\u00a0\u200b]+")


@dataclass(frozen=True)
class ShortcodeMatch:
    """One shortcode occurrence found in a string.

    ``start``/``end`` delimit the shortcode itself; for escaped ``[[tag]]``
    forms they include the doubled brackets.
    """

    tag: str
    attrs_text: str
    body: str | None
    start: int
    end: int
    self_closing: bool = False
    escaped: bool = False

    @property
    def attributes(self) -> dict[str, str]:
        """Parsed attribute mapping."""
        return parse_attributes(self.attrs_text)

    @property
    def is_paired(self) -> bool:
        """True for a regular ``[tag]body[/tag]`` occurrence."""
        return self.body is not None and not self.escaped


def parse_attributes(text: str) -> dict[str, str]:
    """Parse a shortcode attribute string.

    Supports ``key="value"``, ``key='value'``, ``key=value`` and positional
    values; positional values are keyed by their index. Keys are lowercased and
    values are entity-decoded once.

    Args:
        text: Raw text between the tag name and the closing bracket

    Returns:
        Attribute mapping (empty when nothing parses)

    Examples:
        >>> parse_attributes(' lang="python" Title=\\'Demo\\' wrap=true')
        {'lang': 'python', 'title': 'Demo', 'wrap': 'true'}
        >>> parse_attributes(' "first" second')
        {'0': 'first', '1': 'second'}
        >>> parse_attributes(' title="say &quot;hi&quot;"')
        {'title': 'say "hi"'}
    """
    attrs: dict[str, str] = {}
    positional = 0
    text = _SPACE_LIKE_RE.sub(" ", text)

    for match in _ATTR_RE.finditer(text):
        if match.group(1) is not None:
            attrs[match.group(1).lower()] = unescape(match.group(2))
        elif match.group(3) is not None:
            attrs[match.group(3).lower()] = unescape(match.group(4))
        elif match.group(5) is not None:
            attrs[match.group(5).lower()] = unescape(match.group(6))
        else:
            value = next(
                group for group in (match.group(7), match.group(8), match.group(9))
                if group is not None
            )
            attrs[str(positional)] = unescape(value)
            positional += 1

    return attrs


def shortcode_atts(defaults: Mapping[str, str], attrs: Mapping[str, str]) -> dict[str, str]:
    """Combine user attributes with known attributes and fill in defaults.

    Keys absent from ``defaults`` are dropped.

    Examples:
        >>> shortcode_atts({"lang": "text", "title": ""}, {"lang": "go", "x": "1"})
        {'lang': 'go', 'title': ''}
    """
    return {key: attrs.get(key, default) for key, default in defaults.items()}


@lru_cache(maxsize=32)
def shortcode_regex(tags: tuple[str, ...] = SHORTCODE_TAGS) -> re.Pattern[str]:
    """Compile the pattern matching any of ``tags``.

    Groups: 1 optional escaping ``[``, 2 tag name, 3 attribute text,
    4 self-closing ``/``, 5 body, 6 optional escaping ``]``.
    """
    tag_alternation = "|".join(re.escape(tag) for tag in tags)
    return re.compile(
        r"\[(\[?)"
        rf"({tag_alternation})"
        r"(?![\w-])"
        r"([^\]/]*(?:/(?!\])[^\]/]*)*?)"
        r"(?:"
        r"(/)\]"
        r"|"
        r"\](?:([^\[]*+(?:\[(?!/\2\])[^\[]*+)*+)\[/\2\])?"
        r")"
        r"(\]?)"
    )


def find_shortcodes(
    content: str, tags: Iterable[str] = SHORTCODE_TAGS
) -> Iterator[ShortcodeMatch]:
    """Yield shortcode occurrences in document order.

    Args:
        content: Text to scan
        tags: Tag names to recognise

    Yields:
        ShortcodeMatch for every occurrence, escaped ones included

    Examples:
        >>> [m.tag for m in find_shortcodes('[code_block]a[/code_block] [acr_code /]')]
        ['code_block', 'acr_code']
    """
    pattern = shortcode_regex(tuple(tags))
    for match in pattern.finditer(content):
        escaped = match.group(1) == "[" and match.group(6) == "]"
        if escaped:
            start, end = match.start(), match.end()
        else:
            # A lone extra bracket on either side is ordinary text
            start = match.start(2) - 1
            end = match.end() - len(match.group(6))

        yield ShortcodeMatch(
            tag=match.group(2),
            attrs_text=match.group(3),
            body=match.group(5),
            start=start,
            end=end,
            self_closing=match.group(4) is not None,
            escaped=escaped,
        )


def do_shortcode(content: str, handlers: Mapping[str, ShortcodeHandler]) -> str:
    """Expand every shortcode that has a handler.

    Escaped ``[[tag]]`` forms are emitted literally without their outer
    brackets. Text outside shortcodes is copied unchanged.

    Args:
        content: Text containing shortcodes
        handlers: Handler per tag name, called as ``handler(attrs, body, tag)``

    Returns:
        Content with shortcodes replaced by handler output
    """
    if not handlers or "[" not in content:
        return content

    parts: list[str] = []
    position = 0
    for match in find_shortcodes(content, tuple(handlers)):
        parts.append(content[position:match.start])
        if match.escaped:
            parts.append(content[match.start + 1 : match.end - 1])
        else:
            handler = handlers[match.tag]
            parts.append(handler(match.attributes, match.body, match.tag))
        position = match.end
    parts.append(content[position:])

    return "".join(parts)


def strip_shortcode_paragraphs(content: str, tags: Iterable[str] = SHORTCODE_TAGS) -> str:
    """Remove ``<p>`` wrappers enclosing an entire shortcode occurrence.

    Examples:
        >>> strip_shortcode_paragraphs("<p> [code_block]x[/code_block] </p>")
        '[code_block]x[/code_block]'
    """
    tag_alternation = "|".join(re.escape(tag) for tag in tags)
    pattern = re.compile(
        rf"<p>\s*(\[({tag_alternation})(?![\w-])[^\]]*\][\s\S]*?\[/\2\])\s*</p>"
    )
    return pattern.sub(r"\1", content)


def build_shortcode(tag: str, attrs: Mapping[str, str], body: str) -> str:
    """Build the textual form of a shortcode invocation.

    Attribute values are escaped with the shared codec, which
    :func:`parse_attributes` reverses.

    Examples:
        >>> build_shortcode("code_block", {"lang": "js", "title": 'a "b"'}, "x")
        '[code_block lang="js" title="a &quot;b&quot;"]x[/code_block]'
    """
    attrs_text = "".join(f' {key}="{escape_attr(value)}"' for key, value in attrs.items())
    return f"[{tag}{attrs_text}]{body}[/{tag}]"
