"""
Navigation format registry and detector.

Descriptors are tried in priority order against the input bytes; the
first one that yields routes wins. Stricter grammars come before more
permissive ones so a loose dialect cannot swallow input meant for a strict
one. A file extension only reorders the candidates, it never excludes one.

When the plugin system is initialized, the candidate list is assembled
through the plugin hook system. Otherwise the built-in descriptors are
used directly.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union

from ..errors import IncompatibleCharacteristic, UnrecognizedFormat, UnsupportedWrite
from ..route import NavigationRoute
from .base import FormatInfo, NavigationFormat, SimpleLineBasedFormat
from .bcr import BcrFormat
from .gpx import Gpx10Format, Gpx11Format
from .iblue747 import IBlue747Format
from .itn import Tomtom5Format, Tomtom8Format
from .nmea import NmeaFormat
from .ov2 import Ov2Format
from .ozi import OziExplorerFormat
from .pcx5 import Pcx5Format

logger = logging.getLogger(__name__)

# Built-in descriptors in detection order
BUILTIN_FORMATS: tuple[NavigationFormat, ...] = (
    Gpx11Format(),
    Gpx10Format(),
    BcrFormat(),
    NmeaFormat(),
    IBlue747Format(),
    Pcx5Format(),
    OziExplorerFormat(),
    Tomtom8Format(),
    Tomtom5Format(),
    Ov2Format(),
)


@dataclass
class ParserResult:
    """Outcome of a successful detection."""

    format: NavigationFormat
    routes: list[NavigationRoute]

    @property
    def first_route(self) -> NavigationRoute:
        return self.routes[0]


def _normalize_extension(extension: str) -> str:
    extension = extension.lower()
    return extension if extension.startswith(".") else f".{extension}"


class FormatRegistry:
    """Immutable, priority ordered set of format descriptors."""

    def __init__(self, formats: Iterable[NavigationFormat], guarded: Iterable[str] = ()):
        self._formats = tuple(formats)
        # formats contributed by third party plugins; their failures are contained
        self._guarded = frozenset(guarded)

    @property
    def formats(self) -> tuple[NavigationFormat, ...]:
        return self._formats

    def read_formats(self) -> list[NavigationFormat]:
        return [fmt for fmt in self._formats if fmt.supports_reading]

    def write_formats(self) -> list[NavigationFormat]:
        return [fmt for fmt in self._formats if fmt.supports_writing]

    def get_format(self, name: str) -> Optional[NavigationFormat]:
        for fmt in self._formats:
            if fmt.name == name:
                return fmt
        return None

    def formats_for_extension(self, extension: str) -> list[NavigationFormat]:
        extension = _normalize_extension(extension)
        return [fmt for fmt in self._formats if extension in fmt.extensions]

    def describe(self) -> list[FormatInfo]:
        return [fmt.describe() for fmt in self._formats]

    def candidates(self, extension: Optional[str] = None) -> list[NavigationFormat]:
        """Readable formats in trial order; an extension moves matches to the front."""
        readable = self.read_formats()
        if not extension:
            return readable
        extension = _normalize_extension(extension)
        preferred = [fmt for fmt in readable if extension in fmt.extensions]
        return preferred + [fmt for fmt in readable if extension not in fmt.extensions]

    def _read(self, fmt: NavigationFormat, data: bytes,
              start_date: Optional[datetime]) -> Optional[list[NavigationRoute]]:
        if fmt.name not in self._guarded:
            return fmt.read(data, start_date)
        try:
            return fmt.read(data, start_date)
        except OSError:
            raise
        except Exception as e:
            logger.debug(f"Plugin format {fmt.name} failed: {e}")
            return None

    def detect_and_parse(self, data: bytes, start_date: Optional[datetime] = None,
                         extension: Optional[str] = None) -> ParserResult:
        """
        Try each readable format in turn; first non-empty result wins.

        Raises UnrecognizedFormat when no candidate recognizes the data.
        """
        tried = []
        for fmt in self.candidates(extension):
            tried.append(fmt.name)
            routes = self._read(fmt, data, start_date)
            if routes:
                logger.debug(f"Detected {fmt.name} with {len(routes)} route(s)")
                return ParserResult(fmt, routes)
            logger.debug(f"{fmt.name} did not recognize input")
        raise UnrecognizedFormat(tried=tried)

    def _resolve(self, target: Union[str, NavigationFormat]) -> NavigationFormat:
        if isinstance(target, NavigationFormat):
            return target
        fmt = self.get_format(target)
        if fmt is None:
            raise ValueError(f"Unknown format: {target}")
        return fmt

    def _prepare(self, routes: list[NavigationRoute], fmt: NavigationFormat,
                 coerce: bool) -> list[NavigationRoute]:
        if not fmt.supports_writing:
            raise UnsupportedWrite(fmt.name)
        if len(routes) > 1 and not fmt.supports_multiple_routes:
            raise ValueError(f"Format {fmt.name} holds a single route, got {len(routes)}")
        prepared = []
        for route in routes:
            incompatible = route.characteristics not in fmt.write_characteristics
            if incompatible and not coerce:
                raise IncompatibleCharacteristic(fmt.name, route.characteristics)
            same_format = getattr(route.format, "name", None) == fmt.name
            converted = route if same_format and not incompatible else route.as_format(fmt)
            if incompatible:
                converted.characteristics = min(fmt.write_characteristics, key=lambda c: c.value)
                logger.debug(f"Coerced {route.characteristics.value} to "
                             f"{converted.characteristics.value} for {fmt.name}")
            prepared.append(converted)
        return prepared

    def write(self, route: NavigationRoute, target: Union[str, NavigationFormat],
              coerce: bool = False) -> bytes:
        """
        Serialize a route. With coerce, a characteristic the target cannot
        represent is replaced instead of raising IncompatibleCharacteristic.
        """
        fmt = self._resolve(target)
        return fmt.write(self._prepare([route], fmt, coerce)[0])

    def write_routes(self, routes: list[NavigationRoute], target: Union[str, NavigationFormat],
                     coerce: bool = False) -> bytes:
        fmt = self._resolve(target)
        return fmt.write_routes(self._prepare(routes, fmt, coerce))


def _ordered(formats: list[NavigationFormat], config) -> list[NavigationFormat]:
    if config is None:
        return formats
    disabled = set(config.codec.disabled_formats)
    formats = [fmt for fmt in formats if fmt.name not in disabled]
    preferred = [name for name in config.codec.preferred_formats if name not in disabled]
    front = [fmt for name in preferred for fmt in formats if fmt.name == name]
    return front + [fmt for fmt in formats if fmt not in front]


def default_registry(config=None) -> FormatRegistry:
    """
    Registry of built-in and plugin contributed formats.

    Dispatches through the plugin hook system if initialized, otherwise
    falls back to the built-in descriptors.
    """
    try:
        from navconv.plugins import contributed_formats, _initialized

        if _initialized:
            formats, guarded = contributed_formats()
            return FormatRegistry(_ordered(formats, config), guarded)
    except ImportError:
        pass

    return FormatRegistry(_ordered(list(BUILTIN_FORMATS), config))


def _notify(result: ParserResult) -> None:
    try:
        from navconv.plugins import plugin_manager, _initialized

        if _initialized:
            plugin_manager.call_hook("routes_parsed", result=result)
    except ImportError:
        pass


def detect_and_parse(data: bytes, start_date: Optional[datetime] = None,
                     extension: Optional[str] = None, config=None) -> ParserResult:
    result = default_registry(config).detect_and_parse(data, start_date, extension)
    _notify(result)
    return result


def write(route: NavigationRoute, target: Union[str, NavigationFormat], config=None,
          coerce: bool = False) -> bytes:
    return default_registry(config).write(route, target, coerce)


def read_file(path: Union[str, Path], start_date: Optional[datetime] = None,
              config=None) -> ParserResult:
    path = Path(path)
    return detect_and_parse(path.read_bytes(), start_date, path.suffix, config)


def write_file(path: Union[str, Path], routes: list[NavigationRoute],
               target: Union[str, NavigationFormat], config=None, coerce: bool = False) -> None:
    """Serialize fully in memory, then write; a failed conversion leaves no file."""
    data = default_registry(config).write_routes(routes, target, coerce)
    Path(path).write_bytes(data)


__all__ = [
    "BUILTIN_FORMATS",
    "FormatInfo",
    "FormatRegistry",
    "NavigationFormat",
    "ParserResult",
    "SimpleLineBasedFormat",
    "default_registry",
    "detect_and_parse",
    "read_file",
    "write",
    "write_file",
]
