"""Built-in format descriptors."""

# built-in formats come after plugin formats of default priority
BUILTIN_PRIORITY = 100


def register_format_hooks(manager, plugin_name: str):
    """Contribute the bundled descriptors in detection order."""
    from navconv.formats import BUILTIN_FORMATS

    manager.register_formats(plugin_name, BUILTIN_FORMATS, priority=BUILTIN_PRIORITY)
