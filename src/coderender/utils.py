"""Utility functions."""

import logging
import re

from rich.console import Console
from rich.logging import RichHandler

from coderender.codec import strip_tags

_PERCENT_OCTET_RE = re.compile(r"%[a-fA-F0-9]{2}")
_WHITESPACE_RE = re.compile(r"[\r\n\t ]+")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging with RichHandler for console output.

    Args:
        verbose: If True, sets logging to DEBUG level and shows file paths.
                If False, sets logging to INFO level and keeps lxml quiet.
                Log records go to stderr so rendered output on stdout stays clean.
    """
    level = logging.DEBUG if verbose else logging.INFO

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        markup=False,
        show_time=True,
        show_path=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )

    if not verbose:
        logging.getLogger("lxml").setLevel(logging.WARNING)


def sanitize_text_field(value: object) -> str:
    """Sanitize a single-line free-text value submitted through a form.

    Strips markup, removes percent-encoded octets, collapses whitespace runs
    to a single space and trims the result.

    Examples:
        >>> sanitize_text_field("  <b>dark</b>\\n theme ")
        'dark theme'
        >>> sanitize_text_field("a%20b")
        'ab'
        >>> sanitize_text_field(None)
        ''
    """
    if value is None:
        return ""

    text = str(value)
    if "<" in text:
        text = strip_tags(text)

    # Loop until stable: removing one octet can expose another ("%%2020")
    previous = None
    while previous != text:
        previous = text
        text = _PERCENT_OCTET_RE.sub("", text)

    return _WHITESPACE_RE.sub(" ", text).strip()


def absint(value: object) -> int:
    """Coerce a form value to a non-negative integer.

    Examples:
        >>> absint("14")
        14
        >>> absint("-3")
        3
        >>> absint("12px")
        12
        >>> absint("abc")
        0
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return abs(value)
    if isinstance(value, float):
        return abs(int(value))

    match = re.match(r"\s*([+-]?\d+)", str(value) if value is not None else "")
    if match is None:
        return 0
    return abs(int(match.group(1)))
