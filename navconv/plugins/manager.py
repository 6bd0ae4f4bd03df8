"""
Plugin manager for navconv.

Plugins contribute format descriptors. They are found through the
``navconv.plugins`` entry point group and either call back into the
manager from a ``register(manager)`` function or ship a manifest.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from ..formats.base import NavigationFormat
from .hooks import HookSpec, create_default_hooks

logger = logging.getLogger(__name__)

FORMATS_HOOK = "get_navigation_formats"


@dataclass
class PluginInfo:
    """Metadata about a registered plugin."""

    name: str
    version: str = "0.0.0"
    description: str = ""
    module: Any = None
    enabled: bool = True
    hooks: list[str] = field(default_factory=list)


class PluginManager:
    """Registry of plugins and the format descriptors they contribute."""

    ENTRY_POINT_GROUP = "navconv.plugins"

    def __init__(self):
        self._plugins: dict[str, PluginInfo] = {}
        self._hooks: dict[str, HookSpec] = create_default_hooks()
        self._disabled: set[str] = set()

    def register_plugin(self, name: str, module: Any = None, version: str = "0.0.0",
                        description: str = "") -> Optional[PluginInfo]:
        """Register a plugin. Returns None if the plugin is disabled."""
        if name in self._disabled:
            logger.debug(f"Skipping disabled plugin: {name}")
            return None
        info = PluginInfo(name=name, version=version, description=description, module=module)
        self._plugins[name] = info
        logger.debug(f"Registered plugin: {name} v{version}")
        return info

    def register_hook_impl(self, hook_name: str, plugin_name: str, func: Callable,
                           priority: int = 100):
        if hook_name not in self._hooks:
            raise ValueError(f"Unknown hook: {hook_name}")
        if plugin_name in self._disabled:
            return
        self._hooks[hook_name].register(plugin_name, func, priority)
        info = self._plugins.get(plugin_name)
        if info is not None and hook_name not in info.hooks:
            info.hooks.append(hook_name)

    def register_formats(self, plugin_name: str, descriptors: Iterable[NavigationFormat],
                         priority: int = 100):
        """Contribute descriptor instances; anything else raises TypeError."""
        descriptors = tuple(descriptors)
        for descriptor in descriptors:
            if not isinstance(descriptor, NavigationFormat):
                raise TypeError(f"Plugin {plugin_name} contributed {descriptor!r}, "
                                f"not a NavigationFormat instance")
        self.register_hook_impl(FORMATS_HOOK, plugin_name, lambda: list(descriptors), priority)

    def call_hook(self, hook_name: str, **kwargs) -> list:
        return [result for _, result in self.call_hook_by_plugin(hook_name, **kwargs)]

    def call_hook_by_plugin(self, hook_name: str, **kwargs) -> list[tuple[str, Any]]:
        if hook_name not in self._hooks:
            raise ValueError(f"Unknown hook: {hook_name}")
        return self._hooks[hook_name].call_by_plugin(**kwargs)

    def contributed_formats(self, trusted: Iterable[str] = ()) -> tuple[list[NavigationFormat], set[str]]:
        """
        Descriptors of all plugins in priority order, plus the names of
        those not contributed by a trusted plugin. The first descriptor of
        a name wins; objects that are not descriptors are dropped.
        """
        trusted = set(trusted)
        formats, guarded, seen = [], set(), set()
        for plugin_name, descriptors in self.call_hook_by_plugin(FORMATS_HOOK):
            for descriptor in descriptors:
                if not isinstance(descriptor, NavigationFormat):
                    logger.warning(f"Plugin {plugin_name}: ignoring {descriptor!r}, not a NavigationFormat")
                    continue
                if descriptor.name in seen:
                    logger.debug(f"Plugin {plugin_name}: format {descriptor.name} already registered")
                    continue
                seen.add(descriptor.name)
                formats.append(descriptor)
                if plugin_name not in trusted:
                    guarded.add(descriptor.name)
        return formats, guarded

    def format_names(self, name: str) -> list[str]:
        """Names of the format descriptors a plugin contributes."""
        names = []
        for plugin_name, descriptors in self.call_hook_by_plugin(FORMATS_HOOK):
            if plugin_name == name:
                names.extend(getattr(descriptor, "name", repr(descriptor)) for descriptor in descriptors)
        return names

    def disable_plugin(self, name: str):
        """Disable a plugin, dropping the hooks it already registered."""
        self._disabled.add(name)
        for hook in self._hooks.values():
            hook.unregister(name)
        info = self._plugins.get(name)
        if info is not None:
            info.enabled = False
            info.hooks.clear()
        logger.debug(f"Disabled plugin: {name}")

    def is_disabled(self, name: str) -> bool:
        return name in self._disabled

    def discover(self, disabled_plugins: Optional[set[str]] = None):
        """
        Load plugins from entry points:

            [project.entry-points."navconv.plugins"]
            my_plugin = "my_package.plugin_module"

        The module either has a register(manager) function or ships a
        navconv-plugin.yaml manifest next to it.
        """
        if disabled_plugins:
            self._disabled.update(disabled_plugins)

        from importlib.metadata import entry_points

        for ep in entry_points(group=self.ENTRY_POINT_GROUP):
            if ep.name in self._disabled or ep.name in self._plugins:
                logger.debug(f"Skipping plugin {ep.name}: disabled or already loaded")
                continue
            try:
                module = ep.load()
                self.register_plugin(ep.name, module, getattr(module, "__version__", "0.0.0"),
                                     getattr(module, "__doc__", "") or "")
                if hasattr(module, "register"):
                    module.register(self)
                else:
                    self._register_manifest(ep.name, module)
            except Exception as e:
                logger.warning(f"Failed to load plugin {ep.name}: {e}")

    def _register_manifest(self, plugin_name: str, module):
        from .manifest import find_manifest_in_package, load_manifest, register_from_manifest

        yaml_text = find_manifest_in_package(module)
        if not yaml_text:
            logger.warning(f"Plugin {plugin_name} has no register() function or manifest")
            return
        register_from_manifest(self, load_manifest(yaml_text), plugin_name=plugin_name)
        logger.debug(f"Plugin {plugin_name} registered via manifest")

    def get_plugin(self, name: str) -> Optional[PluginInfo]:
        return self._plugins.get(name)

    def list_plugins(self) -> dict[str, PluginInfo]:
        return dict(self._plugins)

    @property
    def plugin_names(self) -> list[str]:
        return list(self._plugins)
