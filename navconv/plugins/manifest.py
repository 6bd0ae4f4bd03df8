"""
Plugin manifest parser.

Plugins can declare their format descriptors in a navconv-plugin.yaml
manifest instead of a register() function. The manifest format:

    name: my-navconv-plugin
    version: 1.0.0
    description: Adds support for FooBar logger files

    contributions:
      formats:
        - python_name: my_package.formats:FooBarFormat
          priority: 50
"""

import importlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

MANIFEST_FILE = "navconv-plugin.yaml"
# manifest formats are tried before the built-in ones
DEFAULT_PRIORITY = 50


@dataclass
class FormatContribution:
    """A format descriptor declared by a plugin manifest."""

    python_name: str  # "package.module:ClassName"
    priority: int = DEFAULT_PRIORITY


@dataclass
class PluginManifest:
    """Parsed plugin manifest."""

    name: str
    version: str = "0.0.0"
    description: str = ""
    formats: list[FormatContribution] = field(default_factory=list)


def load_manifest(yaml_text: str) -> PluginManifest:
    """Parse a navconv-plugin.yaml manifest string."""
    data = yaml.safe_load(yaml_text)
    if not isinstance(data, dict):
        raise ValueError("Manifest must be a YAML mapping")

    name = data.get("name")
    if not name:
        raise ValueError("Manifest must have a 'name' field")

    manifest = PluginManifest(
        name=name,
        version=str(data.get("version", "0.0.0")),
        description=data.get("description", ""),
    )

    contributions = data.get("contributions") or {}
    for fmt_data in contributions.get("formats", []):
        manifest.formats.append(FormatContribution(
            python_name=fmt_data["python_name"],
            priority=int(fmt_data.get("priority", DEFAULT_PRIORITY)),
        ))

    return manifest


def find_manifest_in_package(module) -> Optional[str]:
    """Look for navconv-plugin.yaml in a plugin module's directory."""
    try:
        manifest_path = Path(module.__file__).parent / MANIFEST_FILE
        if manifest_path.exists():
            return manifest_path.read_text()
    except (AttributeError, TypeError, OSError):
        pass
    return None


def _import_object(python_name: str):
    """
    Import an object from a 'module.path:ObjectName' string.

    Example: "my_package.formats:FooBarFormat" -> <class FooBarFormat>
    """
    if ":" not in python_name:
        raise ValueError(f"python_name must be 'module:name', got: {python_name}")

    module_path, obj_name = python_name.rsplit(":", 1)
    module = importlib.import_module(module_path)
    return getattr(module, obj_name)


def register_from_manifest(manager, manifest: PluginManifest, plugin_name: Optional[str] = None):
    """Register a plugin's format descriptors from its parsed manifest."""
    plugin_name = plugin_name or manifest.name
    if manager.get_plugin(plugin_name) is None:
        manager.register_plugin(plugin_name, version=manifest.version,
                                description=manifest.description)

    for contribution in manifest.formats:
        try:
            descriptor = _import_object(contribution.python_name)()
        except Exception as e:
            logger.warning(
                f"Plugin {plugin_name}: failed to load format {contribution.python_name}: {e}"
            )
            continue

        try:
            manager.register_formats(plugin_name, [descriptor], priority=contribution.priority)
        except TypeError as e:
            logger.warning(f"Plugin {plugin_name}: {e}")
