"""Plugin manager for loading and invoking plugins."""

import importlib
import importlib.util
import inspect
import logging
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any

from coderender.plugins import Plugin, PluginHook

logger = logging.getLogger(__name__)

# Hooks whose plugins receive and return content, keyed to the method called
_CONTENT_HOOKS = {
    PluginHook.CONTENT: "on_content",
    PluginHook.POST_RENDER: "on_post_render",
    PluginHook.EDITOR_LOAD: "on_editor_load",
    PluginHook.EDITOR_SAVE: "on_editor_save",
}


class PluginManager:
    """Manages plugin lifecycle: loading, initialization, and hook invocation.

    Loads plugins from module paths, tracks them by hook, and provides
    error-isolated invocation. Failures are recorded in ``errors`` and
    logged; they never interrupt rendering.
    """

    def __init__(self, config: Any) -> None:
        """Initialize plugin manager with configuration.

        Args:
            config: PluginConfig instance containing plugin paths and settings
        """
        self.config = config
        self.plugins: list[Plugin] = []
        self.plugins_by_hook: dict[PluginHook, list[Plugin]] = defaultdict(list)
        self.errors: list[dict[str, Any]] = []

        if config.enabled and config.plugins:
            self._load_plugins(config.plugins)

    def register(self, plugin: Plugin) -> None:
        """Add an already constructed plugin after any loaded ones."""
        self.plugins.append(plugin)
        for hook in plugin.hooks:
            self.plugins_by_hook[hook].append(plugin)

    def has_plugin(self, name: str) -> bool:
        """True if a plugin with this name is loaded."""
        return any(plugin.name == name for plugin in self.plugins)

    def _record_error(self, error_info: dict[str, Any]) -> None:
        self.errors.append(error_info)
        source = error_info.get("plugin") or error_info.get("plugin_path")
        logger.warning(f"Plugin {source} failed: {error_info['type']}: {error_info['error']}")

    def _load_plugins(self, plugin_paths: list[str]) -> None:
        """Load plugins from module paths.

        Supports:
        - Built-in plugins: "coderender.plugins.enhancer"
        - Custom plugins: "/path/to/my_plugin.py"
        - Module names: "my_package.my_plugin"

        Args:
            plugin_paths: List of plugin module paths or file paths
        """
        for plugin_path in plugin_paths:
            try:
                plugin = self._load_single_plugin(plugin_path)
                self.register(plugin)
                logger.debug(f"Loaded plugin {plugin.name} from {plugin_path}")
            except Exception as e:
                self._record_error(
                    {
                        "plugin_path": plugin_path,
                        "error": str(e),
                        "type": type(e).__name__,
                    }
                )

    def _load_single_plugin(self, plugin_path: str) -> Plugin:
        """Load a single plugin from path.

        Args:
            plugin_path: Module path or file path to plugin

        Returns:
            Initialized Plugin instance

        Raises:
            ImportError: If module cannot be imported
            AttributeError: If module doesn't have a Plugin subclass
        """
        plugin_settings = self.config.plugin_settings.get(plugin_path, {})

        if plugin_path.endswith(".py"):
            module = self._load_plugin_from_file(plugin_path)
        else:
            module = importlib.import_module(plugin_path)

        plugin_class = self._find_plugin_class(module, plugin_path)

        plugin_instance: Plugin = plugin_class(settings=plugin_settings)
        return plugin_instance

    def _find_plugin_class(self, module: Any, plugin_path: str) -> type[Plugin]:
        """Find the plugin class in a module.

        ``__all__`` is consulted first, then the module's own classes.

        Raises:
            AttributeError: If no Plugin subclass found
        """
        for name in getattr(module, "__all__", []):
            obj = getattr(module, name, None)
            if inspect.isclass(obj) and issubclass(obj, Plugin) and obj is not Plugin:
                return obj

        for _name, obj in inspect.getmembers(module, inspect.isclass):
            if issubclass(obj, Plugin) and obj is not Plugin and obj.__module__ == module.__name__:
                return obj

        raise AttributeError(
            f"Plugin module {plugin_path} must define a class that inherits from "
            "coderender.plugins.Plugin"
        )

    def _load_plugin_from_file(self, file_path: str) -> Any:
        """Load plugin from Python file path.

        Raises:
            FileNotFoundError: If file doesn't exist
            ImportError: If module cannot be imported
        """
        path = Path(file_path).resolve()
        if not path.exists():
            raise FileNotFoundError(f"Plugin file not found: {file_path}")

        if not path.is_file():
            raise ValueError(f"Plugin path is not a file: {file_path}")

        module_name = f"coderender_custom_plugin_{path.stem}"

        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load plugin from {file_path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)

        return module

    def invoke_hook(self, hook: PluginHook, **kwargs: Any) -> str | None:
        """Invoke all plugins for a specific hook.

        Plugins are invoked in the order they were loaded. A failing plugin is
        recorded and skipped; the content it was given passes on unchanged.

        Args:
            hook: Hook to invoke
            **kwargs: ``config`` for SETUP, ``content`` for every other hook

        Returns:
            For SETUP: None (notification-only)
            For other hooks: content chained through all plugins

        Examples:
            # Notification hook
            manager.invoke_hook(PluginHook.SETUP, config=config)

            # Content modification hook
            html = manager.invoke_hook(PluginHook.POST_RENDER, content=html)
        """
        method_name = _CONTENT_HOOKS.get(hook)
        content: str | None = kwargs.get("content")

        for plugin in self.plugins_by_hook.get(hook, []):
            try:
                if method_name is None:
                    plugin.on_setup(config=kwargs["config"])
                else:
                    content = getattr(plugin, method_name)(content)
            except Exception as e:
                self._record_error(
                    {
                        "plugin": plugin.name,
                        "hook": hook.value,
                        "error": str(e),
                        "type": type(e).__name__,
                    }
                )

        return content if method_name is not None else None


__all__ = ["PluginManager"]
