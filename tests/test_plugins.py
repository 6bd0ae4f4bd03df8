"""Tests for the plugin manager and hook specification system."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

import navconv.plugins as plugins
from navconv.errors import UnrecognizedFormat
from navconv.formats import BUILTIN_FORMATS, FormatRegistry, default_registry, detect_and_parse
from navconv.formats.base import NavigationFormat
from navconv.formats.itn import Tomtom5Format
from navconv.plugins import contributed_formats, initialize_plugins
from navconv.plugins.hooks import HookSpec, create_default_hooks
from navconv.plugins.manager import PluginManager
from navconv.plugins.manifest import load_manifest, register_from_manifest


class ExplodingFormat(NavigationFormat):
    name = "exploding"
    display_name = "Always fails"

    def parse(self, data, start_date):
        raise RuntimeError("boom")


class TestHookSpec:
    def test_collects_all_non_none(self):
        hook = HookSpec("test")
        hook.register("a", lambda: None)
        hook.register("b", lambda: ["x"])
        hook.register("c", lambda: ["y"])
        assert hook.call() == [["x"], ["y"]]

    def test_empty(self):
        assert HookSpec("test").call() == []

    def test_priority_ordering_is_stable(self):
        hook = HookSpec("test")
        hook.register("late", lambda: "late", priority=100)
        hook.register("first", lambda: "first", priority=100)
        hook.register("early", lambda: "early", priority=50)
        assert hook.call() == ["early", "late", "first"]

    def test_call_by_plugin(self):
        hook = HookSpec("test")
        hook.register("a", lambda: 1)
        hook.register("b", lambda: None)
        assert hook.call_by_plugin() == [("a", 1)]

    def test_unregister(self):
        hook = HookSpec("test")
        hook.register("a", lambda: "a_result")
        hook.register("b", lambda: "b_result")
        hook.unregister("a")
        assert hook.call() == ["b_result"]

    def test_kwargs_passed_through(self):
        hook = HookSpec("test")
        hook.register("a", lambda result=None: f"seen {result}")
        assert hook.call(result="r") == ["seen r"]

    def test_exception_in_impl_is_caught(self):
        hook = HookSpec("test")

        def bad_func():
            raise RuntimeError("boom")

        hook.register("bad", bad_func)
        hook.register("good", lambda: "ok")
        assert hook.call() == ["ok"]

    def test_default_hooks(self):
        hooks = create_default_hooks()
        assert set(hooks) == {"get_navigation_formats", "routes_parsed"}


class TestPluginManager:
    def test_register_plugin(self):
        pm = PluginManager()
        info = pm.register_plugin("extra", version="1.0", description="Extra formats")
        assert info.name == "extra"
        assert pm.get_plugin("extra") is info
        assert pm.plugin_names == ["extra"]

    def test_register_disabled_plugin_returns_none(self):
        pm = PluginManager()
        pm.disable_plugin("extra")
        assert pm.register_plugin("extra") is None
        assert pm.get_plugin("extra") is None

    def test_register_formats_records_hook_name(self):
        pm = PluginManager()
        pm.register_plugin("extra")
        pm.register_formats("extra", [Tomtom5Format()])
        assert pm.get_plugin("extra").hooks == ["get_navigation_formats"]
        assert pm.format_names("extra") == ["tomtom5"]

    def test_register_formats_rejects_classes(self):
        pm = PluginManager()
        pm.register_plugin("extra")
        with pytest.raises(TypeError):
            pm.register_formats("extra", [Tomtom5Format])
        with pytest.raises(TypeError):
            pm.register_formats("extra", [Tomtom5Format(), "tomtom8"])
        assert pm.call_hook("get_navigation_formats") == []
        assert pm.get_plugin("extra").hooks == []

    def test_unknown_hook(self):
        pm = PluginManager()
        with pytest.raises(ValueError):
            pm.register_hook_impl("nope", "extra", lambda: None)
        with pytest.raises(ValueError):
            pm.call_hook("nope")

    def test_disable_removes_hooks(self):
        pm = PluginManager()
        pm.register_plugin("extra")
        pm.register_formats("extra", [Tomtom5Format()])
        pm.disable_plugin("extra")
        assert pm.call_hook("get_navigation_formats") == []
        assert not pm.get_plugin("extra").enabled
        assert pm.is_disabled("extra")

    def test_disabled_plugin_cannot_register_formats(self):
        pm = PluginManager()
        pm.disable_plugin("extra")
        pm.register_formats("extra", [Tomtom5Format()])
        assert pm.format_names("extra") == []

    def test_format_names(self):
        pm = PluginManager()
        pm.register_plugin("extra")
        pm.register_formats("extra", [Tomtom5Format()])
        pm.register_formats("other", [ExplodingFormat()])
        assert pm.format_names("extra") == ["tomtom5"]
        assert pm.format_names("missing") == []

    def test_contributed_formats_first_name_wins(self):
        pm = PluginManager()
        pm.register_formats("late", [Tomtom5Format()], priority=100)
        pm.register_formats("early", [Tomtom5Format(), ExplodingFormat()], priority=50)
        formats, guarded = pm.contributed_formats(trusted={"late"})
        assert [fmt.name for fmt in formats] == ["tomtom5", "exploding"]
        assert guarded == {"tomtom5", "exploding"}

    def test_contributed_formats_skips_foreign_objects(self):
        pm = PluginManager()
        pm.register_hook_impl("get_navigation_formats", "sloppy",
                              lambda: [Tomtom5Format, "ov2", Tomtom5Format()])
        formats, guarded = pm.contributed_formats()
        assert [fmt.name for fmt in formats] == ["tomtom5"]
        assert guarded == {"tomtom5"}


class TestInitialization:
    def test_builtin_formats_in_order(self):
        initialize_plugins()
        formats, guarded = contributed_formats()
        assert [fmt.name for fmt in formats] == [fmt.name for fmt in BUILTIN_FORMATS]
        assert guarded == set()
        assert "builtin" in plugins.plugin_manager.plugin_names

    def test_initialize_is_idempotent(self):
        initialize_plugins()
        initialize_plugins()
        assert len(contributed_formats()[0]) == len(BUILTIN_FORMATS)

    def test_plugin_format_goes_first_and_is_guarded(self, itn_data):
        initialize_plugins()
        pm = plugins.plugin_manager
        pm.register_plugin("extra")
        pm.register_formats("extra", [Tomtom5Format()], priority=50)
        formats, guarded = contributed_formats()
        assert formats[0].name == "tomtom5"
        assert [fmt.name for fmt in formats].count("tomtom5") == 1
        assert guarded == {"tomtom5"}
        assert detect_and_parse(itn_data).format.name == "tomtom5"

    def test_failing_plugin_format_is_contained(self, itn_data):
        initialize_plugins()
        pm = plugins.plugin_manager
        pm.register_plugin("broken")
        pm.register_formats("broken", [ExplodingFormat()], priority=50)
        assert default_registry().formats[0].name == "exploding"
        assert detect_and_parse(itn_data).format.name == "tomtom8"

    def test_unguarded_failure_propagates(self, itn_data):
        registry = FormatRegistry([ExplodingFormat()])
        with pytest.raises(RuntimeError):
            registry.detect_and_parse(itn_data)

    def test_disabled_builtin_leaves_no_formats(self, itn_data):
        initialize_plugins({"builtin"})
        assert default_registry().formats == ()
        with pytest.raises(UnrecognizedFormat) as exc:
            detect_and_parse(itn_data)
        assert exc.value.tried == []

    def test_routes_parsed_hook(self, itn_data):
        initialize_plugins()
        seen = []
        pm = plugins.plugin_manager
        pm.register_plugin("observer")
        pm.register_hook_impl("routes_parsed", "observer", lambda result: seen.append(result.format.name))
        detect_and_parse(itn_data)
        assert seen == ["tomtom8"]

    def test_reset(self):
        initialize_plugins()
        old = plugins.plugin_manager
        plugins.reset_plugins()
        assert plugins.plugin_manager is not old
        assert not plugins._initialized


class TestManifest:
    def test_load_manifest(self):
        manifest = load_manifest(
            "name: extra\n"
            "version: 1.2\n"
            "contributions:\n"
            "  formats:\n"
            "    - python_name: navconv.formats.itn:Tomtom5Format\n"
            "    - python_name: navconv.formats.ov2:Ov2Format\n"
            "      priority: 10\n"
        )
        assert manifest.name == "extra"
        assert manifest.version == "1.2"
        assert [(f.python_name, f.priority) for f in manifest.formats] == [
            ("navconv.formats.itn:Tomtom5Format", 50),
            ("navconv.formats.ov2:Ov2Format", 10),
        ]

    def test_manifest_must_be_mapping(self):
        with pytest.raises(ValueError):
            load_manifest("- just\n- a list\n")

    def test_manifest_needs_name(self):
        with pytest.raises(ValueError):
            load_manifest("version: 1.0\n")

    def test_register_from_manifest(self):
        pm = PluginManager()
        manifest = load_manifest(
            "name: extra\n"
            "contributions:\n"
            "  formats:\n"
            "    - python_name: navconv.formats.itn:Tomtom5Format\n"
            "    - python_name: navconv.formats.itn:NoSuchFormat\n"
            "    - python_name: not_a_module_path\n"
        )
        register_from_manifest(pm, manifest)
        results = pm.call_hook("get_navigation_formats")
        assert len(results) == 1
        assert isinstance(results[0][0], Tomtom5Format)
        assert pm.get_plugin("extra") is not None

    def test_manifest_skips_objects_that_are_not_formats(self):
        pm = PluginManager()
        manifest = load_manifest(
            "name: extra\n"
            "contributions:\n"
            "  formats:\n"
            "    - python_name: navconv.errors:NavigationError\n"
            "    - python_name: navconv.formats.ov2:Ov2Format\n"
        )
        register_from_manifest(pm, manifest)
        assert pm.format_names("extra") == ["ov2"]


class TestDiscovery:
    def test_discover_calls_register(self):
        calls = []
        module = SimpleNamespace(__version__="2.0", __doc__="Fake plugin", register=calls.append)
        entry_point = SimpleNamespace(name="fake", load=lambda: module)
        pm = PluginManager()
        with patch("importlib.metadata.entry_points", return_value=[entry_point]):
            pm.discover()
        assert calls == [pm]
        assert pm.get_plugin("fake").version == "2.0"

    def test_discover_skips_disabled(self):
        entry_point = SimpleNamespace(name="fake", load=lambda: pytest.fail("loaded"))
        pm = PluginManager()
        with patch("importlib.metadata.entry_points", return_value=[entry_point]):
            pm.discover(disabled_plugins={"fake"})
        assert pm.get_plugin("fake") is None

    def test_discover_survives_load_failure(self):
        def fail():
            raise ImportError("missing dependency")

        pm = PluginManager()
        with patch("importlib.metadata.entry_points", return_value=[SimpleNamespace(name="bad", load=fail)]):
            pm.discover()
        assert pm.get_plugin("bad") is None

    def test_module_without_register_or_manifest(self):
        module = SimpleNamespace(__doc__=None)
        pm = PluginManager()
        with patch("importlib.metadata.entry_points",
                   return_value=[SimpleNamespace(name="bare", load=lambda: module)]):
            pm.discover()
        assert pm.get_plugin("bare").hooks == []
