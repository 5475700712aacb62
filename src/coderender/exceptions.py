"""Custom exceptions for coderender."""


class CodeRenderError(Exception):
    """Base exception for all coderender errors."""


class ConfigError(CodeRenderError):
    """Raised when configuration is invalid or cannot be loaded."""


class OptionsStoreError(CodeRenderError):
    """Raised when the persisted options file cannot be read or written.

    Rendering and editor transforms never raise; only configuration and
    storage failures surface as exceptions.
    """
