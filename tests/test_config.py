"""Tests for configuration loading and saving."""

import json

from navconv.config import Config, CodecConfig, PluginConfig, DEFAULT_CONFIG_PATH


class TestCodecConfig:
    def test_defaults(self):
        c = CodecConfig()
        assert c.disabled_formats == []
        assert c.preferred_formats == []
        assert c.default_write_format == "gpx11"
        assert c.itn_max_positions == 0

    def test_lists_not_shared(self):
        a = CodecConfig()
        b = CodecConfig()
        a.disabled_formats.append("ov2")
        assert b.disabled_formats == []


class TestPluginConfig:
    def test_defaults(self):
        assert PluginConfig().disabled_plugins == []


class TestConfig:
    def test_defaults(self):
        c = Config()
        assert c.log_level == "INFO"
        assert c.log_file is None
        assert isinstance(c.codec, CodecConfig)

    def test_default_path(self):
        assert DEFAULT_CONFIG_PATH.name == "config.json"
        assert DEFAULT_CONFIG_PATH.parent.name == "navconv"

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        c = Config()
        c.codec.disabled_formats = ["tomtom5"]
        c.codec.itn_max_positions = 48
        c.plugins.disabled_plugins = ["extra"]
        c.log_level = "DEBUG"
        c.save(path)

        loaded = Config.load(path)
        assert loaded == c

    def test_saved_file_is_json(self, tmp_path):
        path = tmp_path / "config.json"
        Config().save(path)
        data = json.loads(path.read_text())
        assert data["codec"]["default_write_format"] == "gpx11"
        assert data["plugins"] == {"disabled_plugins": []}

    def test_load_missing_returns_defaults(self, tmp_path):
        assert Config.load(tmp_path / "missing.json") == Config()

    def test_load_partial(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"codec": {"preferred_formats": ["ov2"]}}))
        c = Config.load(path)
        assert c.codec.preferred_formats == ["ov2"]
        assert c.codec.default_write_format == "gpx11"
        assert c.log_level == "INFO"
