"""Tests for shortcode parsing, scanning and expansion."""

import pytest

from coderender.shortcode import (
    build_shortcode,
    do_shortcode,
    find_shortcodes,
    parse_attributes,
    shortcode_atts,
    strip_shortcode_paragraphs,
)


def echo_handler(attrs: dict[str, str], body: str | None, tag: str) -> str:
    """Handler that shows what it was called with."""
    return f"<{tag} {sorted(attrs.items())} {body!r}>"


class TestParseAttributes:
    """Attribute string parsing."""

    def test_double_quoted(self) -> None:
        assert parse_attributes(' lang="python" title="My Demo"') == {
            "lang": "python",
            "title": "My Demo",
        }

    def test_single_quoted_and_bare(self) -> None:
        assert parse_attributes(" lang='js' line_numbers=true") == {
            "lang": "js",
            "line_numbers": "true",
        }

    def test_keys_lowercased(self) -> None:
        assert parse_attributes(' LANG="go"') == {"lang": "go"}

    def test_spaces_around_equals(self) -> None:
        assert parse_attributes(' lang = "rust"') == {"lang": "rust"}

    def test_positional_values(self) -> None:
        assert parse_attributes(' "first" second') == {"0": "first", "1": "second"}

    def test_entities_decoded_once(self) -> None:
        """Values written by the insert dialog come back verbatim."""
        assert parse_attributes(' title="a &quot;b&quot; &amp;amp;"') == {"title": 'a "b" &amp;'}

    def test_non_breaking_space_separates(self) -> None:
        assert parse_attributes(' lang="c"\u00a0title="x"') == {"lang": "c", "title": "x"}

    def test_empty(self) -> None:
        assert parse_attributes("") == {}
        assert parse_attributes("   ") == {}

    def test_hyphenated_key(self) -> None:
        assert parse_attributes(' data-x="1"') == {"data-x": "1"}


class TestShortcodeAtts:
    """Default filling."""

    def test_unknown_dropped_and_defaults_filled(self) -> None:
        result = shortcode_atts({"lang": "text", "title": ""}, {"title": "T", "bogus": "1"})
        assert result == {"lang": "text", "title": "T"}


class TestFindShortcodes:
    """Scanning content for occurrences."""

    def test_paired(self) -> None:
        content = 'before [code_block lang="js"]a<b[/code_block] after'
        (match,) = find_shortcodes(content)

        assert match.tag == "code_block"
        assert match.attrs_text == ' lang="js"'
        assert match.body == "a<b"
        assert content[match.start : match.end] == '[code_block lang="js"]a<b[/code_block]'
        assert match.is_paired
        assert match.attributes == {"lang": "js"}

    def test_alias_tag(self) -> None:
        (match,) = find_shortcodes("[acr_code]x[/acr_code]")
        assert match.tag == "acr_code"
        assert match.body == "x"

    def test_self_closing(self) -> None:
        (match,) = find_shortcodes('[code_block lang="js" /]')
        assert match.self_closing
        assert match.body is None
        assert not match.is_paired

    def test_unclosed(self) -> None:
        (match,) = find_shortcodes("[code_block] never closed")
        assert match.body is None
        assert not match.self_closing

    def test_escaped(self) -> None:
        content = "[[code_block]x[/code_block]]"
        (match,) = find_shortcodes(content)
        assert match.escaped
        assert (match.start, match.end) == (0, len(content))
        assert not match.is_paired

    def test_longer_tag_name_not_matched(self) -> None:
        assert list(find_shortcodes("[code_blocks]x[/code_blocks]")) == []
        assert list(find_shortcodes("[code_block-x]x[/code_block-x]")) == []

    def test_nearest_closing_tag_wins(self) -> None:
        content = "[code_block]a[/code_block] mid [code_block]b[/code_block]"
        matches = list(find_shortcodes(content))
        assert [m.body for m in matches] == ["a", "b"]

    def test_body_containing_other_shortcode_tags(self) -> None:
        (match,) = find_shortcodes("[code_block][acr_code]inner[/code_block]")
        assert match.body == "[acr_code]inner"

    def test_multiline_body(self) -> None:
        (match,) = find_shortcodes("[code_block]\nline 1\nline 2\n[/code_block]")
        assert match.body == "\nline 1\nline 2\n"

    def test_lone_extra_bracket_excluded_from_span(self) -> None:
        content = "[[code_block]x[/code_block]"
        (match,) = find_shortcodes(content)
        assert not match.escaped
        assert content[match.start : match.end] == "[code_block]x[/code_block]"

    def test_custom_tags(self) -> None:
        matches = list(find_shortcodes("[code]x[/code] [code_block]y[/code_block]", ["code"]))
        assert [m.tag for m in matches] == ["code"]


class TestDoShortcode:
    """Expansion."""

    def test_text_outside_unchanged(self) -> None:
        result = do_shortcode(
            "A [code_block lang=js]x[/code_block] B",
            {"code_block": echo_handler},
        )
        assert result == "A <code_block [('lang', 'js')] 'x'> B"

    def test_handler_receives_tag(self) -> None:
        result = do_shortcode("[acr_code]y[/acr_code]", {"acr_code": echo_handler})
        assert result == "<acr_code [] 'y'>"

    def test_self_closing_passes_none(self) -> None:
        result = do_shortcode("[code_block /]", {"code_block": echo_handler})
        assert result == "<code_block [] None>"

    def test_escaped_emitted_literally(self) -> None:
        result = do_shortcode("[[code_block]x[/code_block]]", {"code_block": echo_handler})
        assert result == "[code_block]x[/code_block]"

    def test_tags_without_handler_untouched(self) -> None:
        content = "[acr_code]x[/acr_code]"
        assert do_shortcode(content, {"code_block": echo_handler}) == content

    @pytest.mark.parametrize("content", ["", "no brackets", "[other]x[/other]"])
    def test_nothing_to_expand(self, content: str) -> None:
        assert do_shortcode(content, {"code_block": echo_handler}) == content


class TestStripShortcodeParagraphs:
    """Removal of paragraph wrappers."""

    def test_wrapped_shortcode(self) -> None:
        content = "<p>[code_block]x[/code_block]</p>"
        assert strip_shortcode_paragraphs(content) == "[code_block]x[/code_block]"

    def test_whitespace_inside_wrapper(self) -> None:
        content = "<p>\n[acr_code lang=js]x\ny[/acr_code]\n</p>"
        assert strip_shortcode_paragraphs(content) == "[acr_code lang=js]x\ny[/acr_code]"

    def test_prose_paragraph_kept(self) -> None:
        content = "<p>text [code_block]x[/code_block]</p>"
        assert strip_shortcode_paragraphs(content) == content


class TestBuildShortcode:
    """Textual form of an invocation."""

    def test_no_attributes(self) -> None:
        assert build_shortcode("code_block", {}, "x") == "[code_block]x[/code_block]"

    def test_attributes_escaped_and_parse_back(self) -> None:
        text = build_shortcode("acr_code", {"title": 'a "b" & c'}, "body")
        (match,) = find_shortcodes(text)
        assert match.attributes == {"title": 'a "b" & c'}
        assert match.body == "body"
