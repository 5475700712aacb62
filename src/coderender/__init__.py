"""coderender - shortcode code blocks for content pipelines."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("coderender")
except PackageNotFoundError:
    __version__ = "dev"
