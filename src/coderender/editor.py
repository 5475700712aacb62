"""Editor round-trip protection for shortcode markup.

A rich-text editor reformats whatever it is given: it wraps lines in
paragraphs, turns spaces into ``&nbsp;`` and interprets ``<`` as markup. Before
content enters the editor every code block shortcode is swapped for an inert
placeholder element that carries the shortcode in escaped data attributes;
when content leaves the editor the placeholders are swapped back.

All functions take an explicit :class:`EditorContext` (content plus cursor and
selection offsets) and return a new one; nothing here holds editor state.
"""

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace

from coderender.codec import escape_attr, strip_tags, unescape
from coderender.shortcode import SHORTCODE_TAGS, build_shortcode, find_shortcodes

logger = logging.getLogger(__name__)

PLACEHOLDER_CLASS = "acr-code-placeholder"
PLACEHOLDER_LABEL = "Code Block"

_PLACEHOLDER_RE = re.compile(
    r"<div\b(?P<attrs>[^>]*\bclass=\"[^\"]*\bacr-code-placeholder\b[^\"]*\"[^>]*)>"
    r"(?P<label>[^<]*)</div>"
)
_DATA_ATTR_RE = re.compile(r"\bdata-(?P<name>tag|attrs|code)=\"(?P<value>[^\"]*)\"")

_P_OPEN_RE = re.compile(r"<p(?:\s[^>]*)?>", re.IGNORECASE)
_P_CLOSE_RE = re.compile(r"</p>", re.IGNORECASE)
_BR_RE = re.compile(r"<br\b[^>]*>", re.IGNORECASE)
_NBSP_RE = re.compile(r"&nbsp;", re.IGNORECASE)
_BLANK_RUN_RE = re.compile(r"\n\s*\n\s*\n")
_ANY_TAG_RE = re.compile(r"<[^>]*>")


@dataclass(frozen=True)
class EditorContext:
    """Editor content together with the caret and selection.

    Offsets index into ``content``. ``selection_end`` is None for a collapsed
    selection.
    """

    content: str
    cursor: int | None = None
    selection_end: int | None = None


@dataclass(frozen=True)
class PlaceholderRecord:
    """A shortcode occurrence parked inside a placeholder element.

    Exists for one protect/restore cycle only.
    """

    tag: str
    attrs_text: str
    body: str

    def encode(self) -> str:
        """Placeholder element carrying this shortcode.

        Examples:
            >>> PlaceholderRecord("code_block", ' lang="js"', "a<b").encode()
            '<div class="acr-code-placeholder" data-tag="code_block" data-attrs=" lang=&quot;js&quot;" data-code="a&lt;b">Code Block</div>'
        """  # noqa: E501
        return (
            f'<div class="{PLACEHOLDER_CLASS}"'
            f' data-tag="{escape_attr(self.tag)}"'
            f' data-attrs="{escape_attr(self.attrs_text)}"'
            f' data-code="{escape_attr(self.body)}">'
            f"{PLACEHOLDER_LABEL}</div>"
        )

    @classmethod
    def decode(
        cls, attribute_text: str, default_tag: str = SHORTCODE_TAGS[0]
    ) -> "PlaceholderRecord":
        """Rebuild a record from the attribute text of a placeholder element.

        Attribute order does not matter. A missing ``data-tag`` falls back to
        ``default_tag``; missing ``data-attrs``/``data-code`` decode as empty.
        """
        values = {
            m.group("name"): unescape(m.group("value"))
            for m in _DATA_ATTR_RE.finditer(attribute_text)
        }
        return cls(
            tag=values.get("tag") or default_tag,
            attrs_text=values.get("attrs", ""),
            body=values.get("code", ""),
        )

    def to_shortcode(self) -> str:
        """Original shortcode text."""
        return f"[{self.tag}{self.attrs_text}]{self.body}[/{self.tag}]"


@dataclass
class CodeBlockDialog:
    """Values collected by the insert-code-block dialog."""

    code: str = ""
    language: str = "text"
    title: str = ""
    filename: str = ""
    line_numbers: bool = False
    copy_button: bool = True
    word_wrap: bool = False
    highlight: str = ""
    height: str = ""


def _remap(offset: int | None, spans: list[tuple[int, int, int, int]]) -> int | None:
    """Map an offset through a list of (old_start, old_end, new_start, new_end) spans.

    An offset strictly inside a replaced span lands strictly inside its
    replacement; offsets elsewhere shift by the accumulated length change.
    """
    if offset is None:
        return None

    delta = 0
    for old_start, old_end, new_start, new_end in spans:
        if offset <= old_start:
            break
        if offset < old_end:
            if new_end - new_start < 2:
                return new_start
            return new_start + max(1, min(offset - old_start, new_end - new_start - 1))
        delta = new_end - old_end
    return offset + delta


def _substitute(
    ctx: EditorContext,
    matches: Iterable[tuple[int, int, str]],
) -> EditorContext:
    """Apply non-overlapping (start, end, replacement) edits in document order."""
    parts: list[str] = []
    spans: list[tuple[int, int, int, int]] = []
    position = 0
    length = 0

    for start, end, replacement in matches:
        text = ctx.content[position:start]
        parts.append(text)
        length += len(text)
        parts.append(replacement)
        spans.append((start, end, length, length + len(replacement)))
        length += len(replacement)
        position = end

    if not spans:
        return ctx

    parts.append(ctx.content[position:])
    return EditorContext(
        content="".join(parts),
        cursor=_remap(ctx.cursor, spans),
        selection_end=_remap(ctx.selection_end, spans),
    )


def protect(ctx: EditorContext, tags: Iterable[str] = SHORTCODE_TAGS) -> EditorContext:
    """Replace every paired shortcode with a placeholder element.

    Self-closing, unclosed and escaped shortcodes are left as they are.

    Args:
        ctx: Content about to enter the editor
        tags: Shortcode tags to protect

    Returns:
        Context whose content holds placeholders instead of shortcodes
    """
    edits = [
        (
            match.start,
            match.end,
            PlaceholderRecord(match.tag, match.attrs_text, match.body).encode(),
        )
        for match in find_shortcodes(ctx.content, tuple(tags))
        if match.is_paired and match.body is not None
    ]
    if edits:
        logger.debug(f"Protected {len(edits)} code block(s)")
    return _substitute(ctx, edits)


def restore(ctx: EditorContext, default_tag: str = SHORTCODE_TAGS[0]) -> EditorContext:
    """Replace placeholder elements with the shortcodes they carry.

    Content without placeholders is returned unchanged.

    Args:
        ctx: Content leaving the editor
        default_tag: Tag used for placeholders that do not name one

    Returns:
        Context with shortcode text restored
    """
    edits = [
        (
            match.start(),
            match.end(),
            PlaceholderRecord.decode(match.group("attrs"), default_tag).to_shortcode(),
        )
        for match in _PLACEHOLDER_RE.finditer(ctx.content)
    ]
    if edits:
        logger.debug(f"Restored {len(edits)} code block(s)")
    return _substitute(ctx, edits)


def protected_spans(
    ctx: EditorContext, tags: Iterable[str] = SHORTCODE_TAGS
) -> list[tuple[int, int]]:
    """Offsets of placeholder elements and raw paired shortcodes in the content."""
    spans = [(m.start(), m.end()) for m in _PLACEHOLDER_RE.finditer(ctx.content)]
    spans.extend(
        (match.start, match.end)
        for match in find_shortcodes(ctx.content, tuple(tags))
        if match.is_paired
    )
    return sorted(spans)


def is_inside_code_block(ctx: EditorContext, tags: Iterable[str] = SHORTCODE_TAGS) -> bool:
    """True when the cursor sits strictly inside a protected region."""
    if ctx.cursor is None:
        return False
    return any(start < ctx.cursor < end for start, end in protected_spans(ctx, tags))


def sanitize_paste(ctx: EditorContext, pasted: str, tags: Iterable[str] = SHORTCODE_TAGS) -> str:
    """Reduce clipboard content to plain text when pasting into a code block.

    Examples:
        >>> ctx = EditorContext('[code_block]x[/code_block]', cursor=13)
        >>> sanitize_paste(ctx, "<b>bold</b>")
        'bold'
        >>> sanitize_paste(EditorContext("prose", cursor=2), "<b>bold</b>")
        '<b>bold</b>'
    """
    if is_inside_code_block(ctx, tags):
        return strip_tags(pasted)
    return pasted


def _clean_body(code: str) -> str:
    code = _P_OPEN_RE.sub("", code)
    code = _P_CLOSE_RE.sub("\n", code)
    code = _BR_RE.sub("\n", code)
    code = _NBSP_RE.sub(" ", code)
    code = _BLANK_RUN_RE.sub("\n\n", code)
    return code.strip()


def clean_pasted_content(
    ctx: EditorContext, tags: Iterable[str] = SHORTCODE_TAGS
) -> EditorContext:
    """Undo editor auto-formatting that leaked into shortcode bodies.

    Placeholders are restored first so their bodies can be inspected, then
    paragraphs wrapped around shortcode markers are unwrapped, paragraph and
    line-break markup inside bodies becomes newlines, runs of three or more
    line breaks collapse to one blank line, and the result is protected again.

    Args:
        ctx: Editor content after a paste
        tags: Shortcode tags to clean

    Returns:
        Cleaned and re-protected context
    """
    tag_names = tuple(tags)
    tag_alternation = "|".join(re.escape(tag) for tag in tag_names)

    restored = restore(ctx, tag_names[0])

    content = restored.content
    open_marker = re.compile(
        rf"<p(?:\s[^>]*)?>(\s*\[(?:{tag_alternation})(?![\w-])[^\]]*\])", re.IGNORECASE
    )
    close_marker = re.compile(rf"(\[/(?:{tag_alternation})\])(\s*</p>)", re.IGNORECASE)

    unwrapped = _substitute(
        restored,
        ((m.start(), m.end(), m.group(1)) for m in open_marker.finditer(content)),
    )
    unwrapped = _substitute(
        unwrapped,
        ((m.start(), m.end(), m.group(1)) for m in close_marker.finditer(unwrapped.content)),
    )

    cleaned = _substitute(
        unwrapped,
        (
            (
                match.start,
                match.end,
                f"[{match.tag}{match.attrs_text}]{_clean_body(match.body)}[/{match.tag}]",
            )
            for match in find_shortcodes(unwrapped.content, tag_names)
            if match.is_paired and match.body is not None
        ),
    )

    return protect(cleaned, tag_names)


def _clamp_to_body(ctx: EditorContext, tags: tuple[str, ...]) -> EditorContext:
    """Move a cursor that sits inside a paired shortcode into its code body.

    The selection end is clamped to the same body, so a paste never reaches
    into the shortcode's tags.
    """
    if ctx.cursor is None:
        return ctx

    for match in find_shortcodes(ctx.content, tags):
        if not match.is_paired or not match.start < ctx.cursor < match.end:
            continue

        body_start = match.start + len(f"[{match.tag}{match.attrs_text}]")
        body_end = body_start + len(match.body or "")

        def clamp(offset: int) -> int:
            return min(max(offset, body_start), body_end)

        return replace(
            ctx,
            cursor=clamp(ctx.cursor),
            selection_end=None if ctx.selection_end is None else clamp(ctx.selection_end),
        )

    return ctx


def paste(ctx: EditorContext, pasted: str, tags: Iterable[str] = SHORTCODE_TAGS) -> EditorContext:
    """Insert clipboard content at the cursor, then run the cleanup pass.

    The current selection, if any, is replaced. Without a cursor the content is
    appended. Placeholders are restored before inserting, so text pasted into a
    protected code block lands in its code body.

    Args:
        ctx: Editor state before the paste
        pasted: Raw clipboard content
        tags: Shortcode tags treated as protected regions

    Returns:
        Editor state after the paste and cleanup

    Examples:
        >>> ctx = protect(EditorContext("[code_block]x[/code_block]", cursor=13))
        >>> restore(paste(ctx, "<b>y</b>")).content
        '[code_block]xy[/code_block]'
    """
    tag_names = tuple(tags)
    text = sanitize_paste(ctx, pasted, tag_names)
    ctx = _clamp_to_body(restore(ctx, tag_names[0]), tag_names)

    start = len(ctx.content) if ctx.cursor is None else ctx.cursor
    end = start if ctx.selection_end is None else max(start, ctx.selection_end)

    inserted = EditorContext(
        content=ctx.content[:start] + text + ctx.content[end:],
        cursor=start + len(text),
    )
    return clean_pasted_content(inserted, tag_names)


def preserve_code_formatting(code: str) -> str:
    """Strip markup from dialog input and normalise line endings.

    Examples:
        >>> preserve_code_formatting("a<br>b\\r\\nc\\rd")
        'ab\\nc\\nd'
    """
    code = _ANY_TAG_RE.sub("", code)
    return code.replace("\r\n", "\n").replace("\r", "\n")


def build_code_block_shortcode(
    dialog: CodeBlockDialog,
    tag: str = SHORTCODE_TAGS[0],
    formatter: Callable[[str], str] = preserve_code_formatting,
) -> str:
    """Shortcode text for the values entered in the insert dialog.

    Attributes equal to their defaults are omitted.

    Examples:
        >>> build_code_block_shortcode(CodeBlockDialog(code="x = 1", language="python"))
        '[code_block lang="python"]x = 1[/code_block]'
        >>> build_code_block_shortcode(CodeBlockDialog(code="x", copy_button=False, title='a "b"'))
        '[code_block title="a &quot;b&quot;" copy="false"]x[/code_block]'
    """
    attrs: dict[str, str] = {}
    if dialog.language and dialog.language != "text":
        attrs["lang"] = dialog.language
    if dialog.title:
        attrs["title"] = dialog.title
    if dialog.filename:
        attrs["file"] = dialog.filename
    if dialog.line_numbers:
        attrs["line_numbers"] = "true"
    if not dialog.copy_button:
        attrs["copy"] = "false"
    if dialog.word_wrap:
        attrs["wrap"] = "true"
    if dialog.highlight:
        attrs["highlight"] = dialog.highlight
    if dialog.height:
        attrs["height"] = dialog.height

    return build_shortcode(tag, attrs, formatter(dialog.code))

