"""
Hook specifications for navconv plugins.

Every hook collects the non-None results of all implementations, ordered
by priority. A failing implementation is logged and skipped so one broken
plugin cannot take detection down with it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class HookImpl:
    """A single hook implementation from a plugin."""

    plugin_name: str
    func: Callable
    priority: int = 100  # lower = called first


class HookSpec:
    """An extension point; equal priorities keep their registration order."""

    def __init__(self, name: str):
        self.name = name
        self._impls: list[HookImpl] = []

    def register(self, plugin_name: str, func: Callable, priority: int = 100):
        self._impls.append(HookImpl(plugin_name, func, priority))
        self._impls.sort(key=lambda impl: impl.priority)

    def unregister(self, plugin_name: str):
        self._impls = [impl for impl in self._impls if impl.plugin_name != plugin_name]

    def call_by_plugin(self, **kwargs) -> list[tuple[str, Any]]:
        """Non-None results paired with the plugin that produced them."""
        results = []
        for impl in self._impls:
            try:
                result = impl.func(**kwargs)
            except Exception as e:
                logger.debug(f"Hook {self.name}: {impl.plugin_name} failed: {e}")
                continue
            if result is not None:
                results.append((impl.plugin_name, result))
        return results

    def call(self, **kwargs) -> list:
        return [result for _, result in self.call_by_plugin(**kwargs)]


def create_default_hooks() -> dict[str, HookSpec]:
    """The extension points of navconv."""
    return {
        # each plugin returns a list of NavigationFormat instances;
        # priority decides their place in the detection order
        "get_navigation_formats": HookSpec("get_navigation_formats"),
        # notification after detection with the ParserResult; return values are ignored
        "routes_parsed": HookSpec("routes_parsed"),
    }
