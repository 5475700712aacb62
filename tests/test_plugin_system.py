"""Tests for plugin system.

Tests plugin loading, hook invocation, error handling, and manager lifecycle.
"""

import logging
import sys
from pathlib import Path
from typing import Any, cast

import pytest

from coderender.config import PluginConfig
from coderender.plugins import Plugin, PluginHook
from coderender.plugins.manager import PluginManager

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "plugins"
VALID_PLUGIN = str(FIXTURES_DIR / "valid_plugin.py")
CHAIN_PLUGIN = str(FIXTURES_DIR / "chain_plugin.py")
ERROR_PLUGIN = str(FIXTURES_DIR / "error_plugin.py")


class MockConfig:
    """Mock config for testing."""

    def __init__(
        self,
        enabled: bool = True,
        plugins: list[str] | None = None,
        settings: dict[str, Any] | None = None,
    ) -> None:
        self.enabled = enabled
        self.plugins = plugins or []
        self.plugin_settings = settings or {}


class UpperPlugin(Plugin):
    """In-test plugin registered directly."""

    @property
    def name(self) -> str:
        return "upper"

    @property
    def hooks(self) -> list[PluginHook]:
        return [PluginHook.EDITOR_SAVE]

    def on_editor_save(self, content: str) -> str:
        return content.upper()


def test_plugin_manager_initialization() -> None:
    """Test basic PluginManager initialization."""
    config = MockConfig()
    manager = PluginManager(config)
    assert manager.config == config
    assert manager.plugins == []
    assert manager.errors == []


def test_plugin_manager_disabled() -> None:
    """Test PluginManager with plugins disabled."""
    manager = PluginManager(MockConfig(enabled=False, plugins=["some.plugin"]))
    assert manager.plugins == []
    assert manager.errors == []


def test_load_valid_plugin_from_path() -> None:
    """Test loading plugin from file path."""
    manager = PluginManager(MockConfig(plugins=[VALID_PLUGIN]))

    assert len(manager.plugins) == 1
    assert manager.plugins[0].name == "valid_test_plugin"
    assert manager.errors == []


def test_load_plugin_from_module_path() -> None:
    """Test loading plugin from module path."""
    sys.path.insert(0, str(FIXTURES_DIR.parent))
    try:
        manager = PluginManager(MockConfig(plugins=["plugins.chain_plugin"]))

        assert len(manager.plugins) == 1
        assert manager.plugins[0].name == "chain_test_plugin"
    finally:
        sys.path.pop(0)


def test_load_builtin_plugin_by_module_path() -> None:
    """Test loading the bundled enhancer by its module path."""
    manager = PluginManager(MockConfig(plugins=["coderender.plugins.enhancer"]))

    assert [p.name for p in manager.plugins] == ["frontend_enhancer"]


def test_load_nonexistent_file() -> None:
    """Test loading plugin from nonexistent file."""
    manager = PluginManager(MockConfig(plugins=["/nonexistent/path/plugin.py"]))

    assert manager.plugins == []
    assert len(manager.errors) == 1
    assert manager.errors[0]["type"] == "FileNotFoundError"
    assert manager.errors[0]["plugin_path"] == "/nonexistent/path/plugin.py"


def test_load_invalid_module() -> None:
    """Test loading plugin from invalid module name."""
    manager = PluginManager(MockConfig(plugins=["nonexistent.module.plugin"]))

    assert manager.plugins == []
    assert manager.errors[0]["type"] == "ModuleNotFoundError"


def test_load_plugin_without_plugin_class() -> None:
    """Test loading module without Plugin class."""
    manager = PluginManager(MockConfig(plugins=["pytest"]))

    assert manager.plugins == []
    assert manager.errors[0]["type"] == "AttributeError"


def test_load_directory_path_fails() -> None:
    """Test loading plugin from directory path fails."""
    manager = PluginManager(MockConfig(plugins=[str(FIXTURES_DIR)]))

    assert manager.plugins == []
    assert len(manager.errors) == 1


def test_load_errors_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    """Test load failures are logged as warnings."""
    with caplog.at_level(logging.WARNING, logger="coderender.plugins.manager"):
        PluginManager(MockConfig(plugins=["/nonexistent.py"]))

    assert "/nonexistent.py" in caplog.text


def test_load_multiple_plugins_keeps_order() -> None:
    """Test loading multiple plugins."""
    manager = PluginManager(MockConfig(plugins=[VALID_PLUGIN, CHAIN_PLUGIN]))

    assert [p.name for p in manager.plugins] == ["valid_test_plugin", "chain_test_plugin"]


def test_load_plugins_with_partial_errors() -> None:
    """Test loading plugins with some failures."""
    manager = PluginManager(MockConfig(plugins=[VALID_PLUGIN, "/nonexistent.py"]))

    assert [p.name for p in manager.plugins] == ["valid_test_plugin"]
    assert len(manager.errors) == 1


def test_plugin_settings_passed_to_plugin() -> None:
    """Test plugin settings are passed to plugin constructor."""
    settings = {CHAIN_PLUGIN: {"prefix": "CUSTOM:"}}
    manager = PluginManager(MockConfig(plugins=[CHAIN_PLUGIN], settings=settings))

    assert manager.plugins[0].settings == {"prefix": "CUSTOM:"}


def test_plugin_default_settings() -> None:
    """Test plugin with no settings gets empty dict."""
    manager = PluginManager(MockConfig(plugins=[VALID_PLUGIN]))
    assert manager.plugins[0].settings == {}


def test_plugins_registered_by_hook() -> None:
    """Test plugins are registered to their declared hooks."""
    manager = PluginManager(MockConfig(plugins=[VALID_PLUGIN, CHAIN_PLUGIN]))

    assert len(manager.plugins_by_hook[PluginHook.SETUP]) == 1
    assert len(manager.plugins_by_hook[PluginHook.CONTENT]) == 2
    assert len(manager.plugins_by_hook[PluginHook.POST_RENDER]) == 2
    assert len(manager.plugins_by_hook[PluginHook.EDITOR_LOAD]) == 1
    assert len(manager.plugins_by_hook[PluginHook.EDITOR_SAVE]) == 1


def test_register_and_has_plugin() -> None:
    """Test registering an already constructed plugin."""
    manager = PluginManager(MockConfig())
    manager.register(UpperPlugin())

    assert manager.has_plugin("upper")
    assert not manager.has_plugin("other")
    assert manager.invoke_hook(PluginHook.EDITOR_SAVE, content="abc") == "ABC"


def test_invoke_setup_hook() -> None:
    """Test SETUP hook is notification-only."""
    manager = PluginManager(MockConfig(plugins=[VALID_PLUGIN]))
    sentinel = object()

    result = manager.invoke_hook(PluginHook.SETUP, config=sentinel)

    assert result is None
    assert cast("Any", manager.plugins[0]).setup_config is sentinel


def test_invoke_content_hooks() -> None:
    """Test each content hook reaches its method."""
    manager = PluginManager(MockConfig(plugins=[VALID_PLUGIN]))
    plugin = cast("Any", manager.plugins[0])

    manager.invoke_hook(PluginHook.CONTENT, content="raw")
    manager.invoke_hook(PluginHook.EDITOR_LOAD, content="loaded")
    manager.invoke_hook(PluginHook.EDITOR_SAVE, content="saved")
    result = manager.invoke_hook(PluginHook.POST_RENDER, content="<p>html</p>")

    assert plugin.content_calls == ["raw"]
    assert plugin.editor_load_calls == ["loaded"]
    assert plugin.editor_save_calls == ["saved"]
    assert plugin.post_render_calls == ["<p>html</p>"]
    assert result == "<p>html</p>\n<!-- Modified by valid_test_plugin -->"


def test_invoke_hook_no_plugins() -> None:
    """Test content passes through unchanged without plugins."""
    manager = PluginManager(MockConfig())

    assert manager.invoke_hook(PluginHook.CONTENT, content="unchanged") == "unchanged"
    assert manager.invoke_hook(PluginHook.SETUP, config={}) is None


def test_plugin_chaining() -> None:
    """Test content is chained through plugins in load order."""
    settings = {CHAIN_PLUGIN: {"prefix": "B:"}}
    manager = PluginManager(MockConfig(plugins=[CHAIN_PLUGIN, VALID_PLUGIN], settings=settings))

    assert manager.invoke_hook(PluginHook.CONTENT, content="text") == "B: text"
    assert manager.invoke_hook(PluginHook.POST_RENDER, content="x") == (
        "<section>x</section>\n<!-- Modified by valid_test_plugin -->"
    )


def test_plugin_error_isolation() -> None:
    """Test a failing plugin does not stop the others."""
    manager = PluginManager(MockConfig(plugins=[CHAIN_PLUGIN, ERROR_PLUGIN, VALID_PLUGIN]))

    result = manager.invoke_hook(PluginHook.CONTENT, content="text")

    assert result == "CHAIN: text"
    assert cast("Any", manager.plugins[2]).content_calls == ["CHAIN: text"]
    assert len(manager.errors) == 1


def test_error_info_includes_plugin_and_hook() -> None:
    """Test runtime error records."""
    manager = PluginManager(MockConfig(plugins=[ERROR_PLUGIN]))
    manager.invoke_hook(PluginHook.POST_RENDER, content="x")

    error = manager.errors[0]
    assert error["plugin"] == "error_test_plugin"
    assert error["hook"] == "post_render"
    assert error["type"] == "RuntimeError"
    assert "Intentional error" in error["error"]


def test_runtime_errors_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    """Test hook failures are logged as warnings."""
    manager = PluginManager(MockConfig(plugins=[ERROR_PLUGIN]))

    with caplog.at_level(logging.WARNING, logger="coderender.plugins.manager"):
        manager.invoke_hook(PluginHook.CONTENT, content="x")

    assert "error_test_plugin" in caplog.text


def test_plugin_config_default_values() -> None:
    """Test PluginConfig default values."""
    config = PluginConfig()
    assert config.enabled is False
    assert config.plugins == []
    assert config.plugin_settings == {}


def test_plugin_manager_with_plugin_config() -> None:
    """Test PluginManager initialized with PluginConfig."""
    config = PluginConfig(
        enabled=True,
        plugins=[VALID_PLUGIN, CHAIN_PLUGIN],
        plugin_settings={VALID_PLUGIN: {"setting1": "value1"}, CHAIN_PLUGIN: {"prefix": "X:"}},
    )
    manager = PluginManager(config)

    assert manager.plugins[0].settings == {"setting1": "value1"}
    assert manager.plugins[1].settings == {"prefix": "X:"}


def test_plugin_manager_disabled_via_config() -> None:
    """Test PluginManager respects enabled=False in config."""
    manager = PluginManager(PluginConfig(enabled=False, plugins=[VALID_PLUGIN]))
    assert manager.plugins == []
