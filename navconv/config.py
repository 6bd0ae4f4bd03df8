"""
Configuration management for navconv.
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "navconv" / "config.json"


@dataclass
class CodecConfig:
    """Format detection and writing settings."""
    # Format names never tried during detection, e.g. ["tomtom5"]
    disabled_formats: list = field(default_factory=list)
    # Format names moved to the front of the detection order
    preferred_formats: list = field(default_factory=list)
    # Target used by `navconv convert` when --format is omitted
    default_write_format: str = "gpx11"
    # Split TomTom itineraries into files of at most this many positions (0 = no split)
    itn_max_positions: int = 0


@dataclass
class PluginConfig:
    """Plugin system settings."""
    disabled_plugins: list = field(default_factory=list)


@dataclass
class Config:
    """Top-level configuration."""
    codec: CodecConfig = field(default_factory=CodecConfig)
    plugins: PluginConfig = field(default_factory=PluginConfig)
    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def save(self, path: Optional[Path] = None):
        """Save configuration to JSON file."""
        path = Path(path or DEFAULT_CONFIG_PATH)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)
        logger.info(f"Configuration saved to {path}")

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """Load configuration from JSON file, or return defaults."""
        path = Path(path or DEFAULT_CONFIG_PATH)
        if not path.exists():
            logger.info(f"No config at {path}, using defaults")
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()
        if "codec" in data:
            config.codec = CodecConfig(**data["codec"])
        if "plugins" in data:
            config.plugins = PluginConfig(**data["plugins"])
        if "log_level" in data:
            config.log_level = data["log_level"]
        if "log_file" in data:
            config.log_file = data["log_file"]

        return config
