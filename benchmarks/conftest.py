"""Benchmark fixtures for deterministic, repeatable performance tests.

All fixtures generate content programmatically.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from coderender.config import CodeRenderConfig, EnhancerConfig

CODE_SAMPLE = '''def process(items: list[int]) -> int:
    """Sum items above a threshold."""
    total = 0
    for item in items:
        if item > 10 and item < 100:
            total += item
    return total'''


def _post(paragraphs: int, blocks: int) -> str:
    prose = [
        f"<p>Paragraph {i} explaining the example below with <em>inline</em> markup "
        f"&amp; entities. This text provides realistic content length.</p>"
        for i in range(paragraphs)
    ]
    code = [
        f'[code_block lang="python" title="Example {i}" line_numbers="true"]'
        f"{CODE_SAMPLE}[/code_block]"
        if i % 2 == 0
        else f"[acr_code lang='js']const value{i} = a < b && c > d;[/acr_code]"
        for i in range(blocks)
    ]
    parts: list[str] = []
    for i, paragraph in enumerate(prose):
        parts.append(paragraph)
        if i < len(code):
            parts.append(code[i])
    parts.extend(code[len(prose) :])
    return "\n".join(parts)


@pytest.fixture
def small_post() -> str:
    """Short post with a single code block."""
    return _post(paragraphs=3, blocks=1)


@pytest.fixture
def medium_post() -> str:
    """~15KB post with 20 code blocks."""
    return _post(paragraphs=50, blocks=20)


@pytest.fixture
def large_post() -> str:
    """~150KB post with 200 code blocks."""
    return _post(paragraphs=400, blocks=200)


@pytest.fixture
def plain_config() -> CodeRenderConfig:
    """Config without post-render enhancement."""
    return CodeRenderConfig(name="benchmark-test", enhancer=EnhancerConfig(enabled=False))


@pytest.fixture
def enhanced_config() -> CodeRenderConfig:
    """Config with the frontend enhancer enabled."""
    return CodeRenderConfig(
        name="benchmark-test",
        enhancer=EnhancerConfig(enabled=True, viewport_width=375),
    )
