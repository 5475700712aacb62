"""Shared escaping for rendered markup and editor placeholders.

Every module that embeds user text into HTML goes through these helpers so
that escaping happens exactly once and decoding is its exact inverse.
"""

import html
import re
from typing import cast

from lxml import etree as lxml_etree
from lxml import html as lxml_html

_TAG_RE = re.compile(r"<[^>]*>")


def escape_html(text: str) -> str:
    """Escape text for embedding as HTML text content.

    Examples:
        >>> escape_html('print("a<b")')
        'print(&quot;a&lt;b&quot;)'
        >>> escape_html("&amp;")
        '&amp;amp;'
    """
    return html.escape(text, quote=True)


def escape_attr(text: str) -> str:
    """Escape text for embedding inside a double-quoted attribute value."""
    return html.escape(text, quote=True)


def unescape(text: str) -> str:
    """Decode character references; exact inverse of :func:`escape_attr`.

    Examples:
        >>> unescape(escape_attr('a="1" & <b>'))
        'a="1" & <b>'
    """
    return html.unescape(text)


def strip_tags(markup: str) -> str:
    """Return the text content of an HTML fragment.

    Markup is parsed with lxml, so entities are decoded and nested tags never
    leak into the result. Input lxml refuses to parse falls back to dropping
    anything that looks like a tag.

    Examples:
        >>> strip_tags("<b>bold</b>")
        'bold'
        >>> strip_tags("plain text")
        'plain text'
    """
    if "<" not in markup and "&" not in markup:
        return markup

    try:
        wrapper = lxml_html.fragment_fromstring(markup, create_parent="div")
    except (lxml_etree.ParserError, ValueError):
        return html.unescape(_TAG_RE.sub("", markup))

    return cast("str", wrapper.text_content())
