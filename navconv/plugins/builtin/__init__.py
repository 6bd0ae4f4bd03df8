"""
Built-in plugin for navconv.

Registers the bundled format descriptors through the same hook system
that third-party plugins use.
"""

from .formats import register_format_hooks

PLUGIN_NAME = "builtin"
PLUGIN_VERSION = "1.0.0"


def register(manager):
    """Register all built-in hooks with the plugin manager."""
    manager.register_plugin(
        name=PLUGIN_NAME,
        version=PLUGIN_VERSION,
        description="Built-in navigation file formats",
    )
    register_format_hooks(manager, PLUGIN_NAME)
