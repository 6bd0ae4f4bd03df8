#!/usr/bin/env python3
"""
navconv CLI - Main entry point.

Usage:
    navconv formats                              List formats and capabilities
    navconv detect FILE                          Show detected format and routes
    navconv convert IN OUT [--format NAME]       Convert a navigation file
    navconv config [--create]                    Show/create configuration
    navconv plugins list|info NAME               Inspect plugins
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .config import Config, DEFAULT_CONFIG_PATH
from .conversion import format_double, parse_iso8601
from .formats import default_registry, read_file
from .formats.itn import Tomtom8Format


def setup_logging(level: str = "INFO", log_file: str = None):
    """Configure logging."""
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=fmt,
        handlers=handlers,
    )


def _start_date(args):
    if not getattr(args, "start_date", None):
        return None
    value = parse_iso8601(args.start_date)
    if value is None:
        raise ValueError(f"Invalid start date: {args.start_date}")
    return value


# ---------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------

def cmd_formats(args, config: Config):
    """List format descriptors in detection order."""
    registry = default_registry(config)
    infos = registry.describe()

    if args.output == "json":
        from dataclasses import asdict
        print(json.dumps([asdict(info) for info in infos], indent=2))
        return

    print(f"{'Format':<10} {'Mode':<5} {'Multi':<6} {'Extensions':<12} {'Writes'}")
    print("-" * 70)
    for info in infos:
        mode = ("r" if info.supports_reading else "-") + ("w" if info.supports_writing else "-")
        multi = "yes" if info.supports_multiple_routes else "no"
        writes = ", ".join(info.write_characteristics) or "-"
        print(f"{info.name:<10} {mode:<5} {multi:<6} {' '.join(info.extensions):<12} {writes}")


def cmd_detect(args, config: Config):
    """Detect the format of a file and summarize its routes."""
    result = read_file(args.file, _start_date(args), config)

    if args.output == "json":
        print(json.dumps({
            "format": result.format.name,
            "routes": [
                {
                    "name": route.name,
                    "characteristics": route.characteristics.value,
                    "positions": route.position_count,
                    "length": route.get_length(),
                }
                for route in result.routes
            ],
        }, indent=2))
        return

    print(f"Format: {result.format.name} ({result.format.display_name})")
    print(f"Routes: {len(result.routes)}")
    for index, route in enumerate(result.routes, 1):
        length_km = format_double(route.get_length() / 1000.0, 3)
        print(f"  {index:>3}. {route.name or '-':<30} {route.characteristics.value:<10} "
              f"{route.position_count:>6} positions  {length_km} km")


def _numbered(path: Path, number: int) -> Path:
    return path.with_name(f"{path.stem}_{number}{path.suffix}")


def cmd_convert(args, config: Config):
    """Convert a navigation file to another format."""
    registry = default_registry(config)
    target_name = args.target_format or config.codec.default_write_format
    target = registry.get_format(target_name)
    if target is None:
        raise ValueError(f"Unknown format: {target_name}")

    result = read_file(args.input, _start_date(args), config)
    if args.all:
        routes = result.routes
    else:
        if not 1 <= args.route <= len(result.routes):
            raise ValueError(f"Route {args.route} out of range, file has {len(result.routes)}")
        routes = [result.routes[args.route - 1]]

    if isinstance(target, Tomtom8Format) and config.codec.itn_max_positions:
        parts = []
        for route in routes:
            parts.extend(target.split_route(route.as_format(target), config.codec.itn_max_positions))
        routes = parts

    output = Path(args.output)
    if len(routes) > 1 and not target.supports_multiple_routes:
        paths = [_numbered(output, number) for number in range(1, len(routes) + 1)]
        batches = [[route] for route in routes]
    else:
        paths = [output]
        batches = [routes]

    # serialize everything before the first file is written
    outputs = [registry.write_routes(batch, target, coerce=args.coerce) for batch in batches]
    for path, data in zip(paths, outputs):
        path.write_bytes(data)

    print(f"Read {result.format.name}, wrote {len(routes)} route(s) as {target.name}:")
    for path in paths:
        print(f"  {path}")


def cmd_config(args, config: Config):
    """Show or create configuration."""
    if args.create:
        config.save(args.path)
        print(f"Config written to {args.path or DEFAULT_CONFIG_PATH}")
    else:
        from dataclasses import asdict
        print(json.dumps(asdict(config), indent=2))


def cmd_plugins(args, config: Config):
    """List plugins or show plugin details."""
    from .plugins import plugin_manager, initialize_plugins

    initialize_plugins(disabled_plugins=set(config.plugins.disabled_plugins))

    if args.plugins_action == "list":
        plugins = plugin_manager.list_plugins()
        disabled = set(config.plugins.disabled_plugins)

        if not plugins and not disabled:
            print("No plugins registered.")
            return

        print(f"{'Plugin':<25} {'Version':<10} {'Status':<10} {'Hooks'}")
        print("-" * 70)
        for name, info in sorted(plugins.items()):
            status = "enabled" if info.enabled else "disabled"
            hooks = ", ".join(info.hooks) if info.hooks else "-"
            print(f"{name:<25} {info.version:<10} {status:<10} {hooks}")

        for name in sorted(disabled):
            if name not in plugins:
                print(f"{name:<25} {'?':<10} {'disabled':<10} -")

    elif args.plugins_action == "info":
        name = args.plugin_name
        info = plugin_manager.get_plugin(name)
        if not info:
            print(f"Plugin '{name}' not found.", file=sys.stderr)
            sys.exit(1)
        print(f"Name:        {info.name}")
        print(f"Version:     {info.version}")
        print(f"Description: {info.description}")
        print(f"Enabled:     {info.enabled}")
        print(f"Hooks:       {', '.join(info.hooks) if info.hooks else 'none'}")
        formats = plugin_manager.format_names(name)
        print(f"Formats:     {', '.join(formats) if formats else 'none'}")

    else:
        print("Usage: navconv plugins list|info NAME", file=sys.stderr)
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        prog="navconv",
        description="Read and convert GPS route, track and waypoint files",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", "-c", default=None, help="Config file path")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Quiet output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # formats
    p_formats = subparsers.add_parser("formats", help="List supported formats")
    p_formats.add_argument("--output", "-o", choices=["table", "json"],
                           default="table", help="Output format")

    # detect
    p_detect = subparsers.add_parser("detect", help="Detect the format of a file")
    p_detect.add_argument("file", help="Navigation file")
    p_detect.add_argument("--start-date", help="Date for formats storing only times (ISO 8601)")
    p_detect.add_argument("--output", "-o", choices=["table", "json"],
                          default="table", help="Output format")

    # convert
    p_convert = subparsers.add_parser("convert", help="Convert a navigation file")
    p_convert.add_argument("input", help="Input file")
    p_convert.add_argument("output", help="Output file")
    p_convert.add_argument("--format", "-f", dest="target_format",
                           help="Target format name (default from config)")
    p_convert.add_argument("--route", "-r", type=int, default=1,
                           help="Route number to convert, starting at 1 (default: 1)")
    p_convert.add_argument("--all", action="store_true",
                           help="Convert all routes of the input")
    p_convert.add_argument("--coerce", action="store_true",
                           help="Write routes whose kind the target cannot represent")
    p_convert.add_argument("--start-date", help="Date for formats storing only times (ISO 8601)")

    # config
    p_config = subparsers.add_parser("config", help="Show/create config")
    p_config.add_argument("--create", action="store_true",
                          help="Write default config file")
    p_config.add_argument("--path", help="Config file path")

    # plugins
    p_plugins = subparsers.add_parser("plugins", help="Inspect plugins")
    p_plugins_sub = p_plugins.add_subparsers(dest="plugins_action")
    p_plugins_sub.add_parser("list", help="List all registered plugins")
    p_plugins_info = p_plugins_sub.add_parser("info", help="Show plugin details")
    p_plugins_info.add_argument("plugin_name", help="Plugin name")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Load config
    config = Config.load(args.config)
    log_level = "DEBUG" if args.verbose else ("WARNING" if args.quiet else config.log_level)
    setup_logging(log_level, config.log_file)

    # Initialize plugin system
    from .plugins import initialize_plugins
    initialize_plugins(disabled_plugins=set(config.plugins.disabled_plugins))

    # Dispatch
    commands = {
        "formats": cmd_formats,
        "detect": cmd_detect,
        "convert": cmd_convert,
        "config": cmd_config,
        "plugins": cmd_plugins,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        try:
            cmd_func(args, config)
        except KeyboardInterrupt:
            print("\nInterrupted.", file=sys.stderr)
            sys.exit(130)
        except Exception as e:
            if args.verbose:
                import traceback
                traceback.print_exc()
            else:
                print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
