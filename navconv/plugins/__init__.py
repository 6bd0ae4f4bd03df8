"""
Plugin system for navconv.

Provides a pluggable extension architecture using Python entry_points
for third-party plugin discovery and a hook specification system for
defining extension points.

Usage:
    from navconv.plugins import contributed_formats, initialize_plugins

    # Initialize once at startup (discovers entry_point plugins)
    initialize_plugins()

    # Format descriptors of every plugin, and those to guard
    formats, guarded = contributed_formats()
"""

import logging
from typing import Optional

from .hooks import HookSpec, create_default_hooks
from .manager import PluginManager, PluginInfo

logger = logging.getLogger(__name__)

# Global singleton: the central plugin registry
plugin_manager = PluginManager()

_initialized = False


def initialize_plugins(disabled_plugins: Optional[set[str]] = None):
    """
    Initialize the plugin system.

    Call once at application startup. Registers the built-in formats, then
    discovers plugins from Python entry_points (group: navconv.plugins).

    Args:
        disabled_plugins: Set of plugin names to skip during discovery.
    """
    global _initialized

    if _initialized:
        return

    # Register built-in plugin first (lowest priority)
    from .builtin import register as register_builtin

    if disabled_plugins:
        for name in disabled_plugins:
            plugin_manager.disable_plugin(name)
    register_builtin(plugin_manager)

    plugin_manager.discover(disabled_plugins=disabled_plugins)

    _initialized = True
    logger.debug(
        f"Plugin system initialized: {len(plugin_manager.plugin_names)} plugins loaded"
    )


def contributed_formats() -> tuple[list, set[str]]:
    """
    Format descriptors from all plugins in priority order, and the names
    of those not shipped with navconv.
    """
    from .builtin import PLUGIN_NAME as BUILTIN_PLUGIN

    return plugin_manager.contributed_formats(trusted={BUILTIN_PLUGIN})


def reset_plugins():
    """Reset the plugin system. Primarily for testing."""
    global plugin_manager, _initialized
    plugin_manager = PluginManager()
    _initialized = False


__all__ = [
    "plugin_manager",
    "initialize_plugins",
    "contributed_formats",
    "reset_plugins",
    "PluginManager",
    "PluginInfo",
    "HookSpec",
    "create_default_hooks",
]
