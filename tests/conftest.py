"""Pytest fixtures for coderender tests."""

from collections.abc import Generator
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from coderender.config import (
    CodeRenderConfig,
    EnhancerConfig,
    OptionsStoreConfig,
    RenderOptions,
    ShortcodeConfig,
)
from coderender.options import OptionsStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_config() -> CodeRenderConfig:
    """Create a sample CodeRenderConfig for testing.

    The frontend enhancer is disabled so rendered HTML can be compared
    against the exact markup produced by the renderer.
    """
    return CodeRenderConfig(
        name="test-site",
        description="Test configuration",
        options=RenderOptions(),
        shortcodes=ShortcodeConfig(tags=["code_block", "acr_code"]),
        store=OptionsStoreConfig(path="options.yaml"),
        enhancer=EnhancerConfig(enabled=False),
    )


@pytest.fixture
def temp_output_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for output files.

    Yields:
        Path to temporary directory
    """
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def options_store(temp_output_dir: Path) -> OptionsStore:
    """Empty options store in a temporary directory."""
    return OptionsStore(temp_output_dir / "options.yaml")


@pytest.fixture
def plugin_fixtures_dir() -> Path:
    """Directory holding the test plugins."""
    return FIXTURES_DIR / "plugins"


@pytest.fixture
def sample_content() -> str:
    """Post content as stored: prose, a paired code block and an alias block.

    Covers:
    - Attributes in double and single quotes
    - Markup-significant characters in the code body
    - The ``acr_code`` alias tag
    """
    return (
        "<p>Intro paragraph.</p>\n"
        '[code_block lang="python" title="Demo"]print("hi") if a < b else None[/code_block]\n'
        "<p>Between blocks.</p>\n"
        "[acr_code lang='js' line_numbers=\"true\"]const x = 1 && 2;[/acr_code]\n"
        "<p>Outro.</p>"
    )
