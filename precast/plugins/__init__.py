"""Plugins that ship with precast."""

from precast.scaffolder.plugin_manager import Plugin, PluginManager

from .typescript import create_typescript_plugin

__all__ = ["builtin_plugins", "create_plugin_manager", "create_typescript_plugin"]


def builtin_plugins() -> list[Plugin]:
    return [create_typescript_plugin()]


def create_plugin_manager(logger=None) -> PluginManager:
    """A fresh manager with the built-in plugins registered."""
    manager = PluginManager(logger)
    for plugin in builtin_plugins():
        manager.register(plugin)
    return manager
