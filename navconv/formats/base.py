"""Base classes for navigation format descriptors."""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..errors import UnsupportedWrite
from ..position import NavigationPosition, Wgs84Position
from ..route import NavigationRoute, RouteCharacteristics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormatInfo:
    """Queryable capability record of a format descriptor."""

    name: str
    display_name: str
    extensions: tuple[str, ...]
    supports_reading: bool
    supports_writing: bool
    supports_multiple_routes: bool
    streaming_capable: bool
    write_characteristics: tuple[str, ...]


class NavigationFormat(ABC):
    """
    Base class for format descriptors.

    Descriptors are stateless and shared: everything learned while reading
    a file lives in locals and in the routes returned, never on ``self``.
    """

    name: str = ""
    display_name: str = ""
    extensions: tuple[str, ...] = ()
    supports_reading: bool = True
    supports_writing: bool = True
    supports_multiple_routes: bool = False
    streaming_capable: bool = False
    # characteristics written without lossy coercion
    write_characteristics: frozenset = frozenset(RouteCharacteristics)
    # share of degenerate positions at which a parsed route is discarded
    degenerate_threshold: float = 1.0
    accepts_empty_routes: bool = False
    position_class: type = Wgs84Position

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    def describe(self) -> FormatInfo:
        return FormatInfo(
            name=self.name,
            display_name=self.display_name,
            extensions=tuple(self.extensions),
            supports_reading=self.supports_reading,
            supports_writing=self.supports_writing,
            supports_multiple_routes=self.supports_multiple_routes,
            streaming_capable=self.streaming_capable,
            write_characteristics=tuple(c.value for c in RouteCharacteristics
                                        if c in self.write_characteristics),
        )

    # --- Reading ------------------------------------------------------

    def read(self, data: bytes, start_date: Optional[datetime] = None) -> Optional[list[NavigationRoute]]:
        """
        Parse data into routes. Returns None if the data is not this
        format or if every parsed route is degenerate.
        """
        routes = self.parse(data, start_date)
        if routes is None:
            return None
        valid = [route for route in routes if self.is_valid_route(route)]
        if not valid:
            logger.debug(f"{self.name}: all {len(routes)} parsed routes are degenerate")
            return None
        return valid

    @abstractmethod
    def parse(self, data: bytes, start_date: Optional[datetime]) -> Optional[list[NavigationRoute]]:
        """Syntactic parse; None when the grammar does not match."""
        ...

    def is_degenerate(self, position: NavigationPosition) -> bool:
        return False

    def is_valid_route(self, route: NavigationRoute) -> bool:
        if not route.position_count:
            return self.accepts_empty_routes
        degenerate = sum(1 for position in route if self.is_degenerate(position))
        return degenerate < self.degenerate_threshold * route.position_count

    # --- Writing ------------------------------------------------------

    def write(self, route: NavigationRoute) -> bytes:
        return self.write_routes([route])

    def write_routes(self, routes: list[NavigationRoute]) -> bytes:
        raise UnsupportedWrite(self.name)

    # --- Factories ----------------------------------------------------

    def create_route(self, characteristics: RouteCharacteristics,
                     positions: Optional[list[NavigationPosition]] = None,
                     name: Optional[str] = None) -> NavigationRoute:
        return NavigationRoute(self, characteristics, positions, name)

    def create_position(self, longitude: Optional[float], latitude: Optional[float],
                        elevation: Optional[float] = None, speed: Optional[float] = None,
                        time: Optional[datetime] = None, comment: Optional[str] = None,
                        heading: Optional[float] = None) -> NavigationPosition:
        return Wgs84Position(longitude, latitude, elevation, speed, time, comment, heading)

    def create_position_from(self, position: NavigationPosition) -> NavigationPosition:
        """Rebuild a position of another format as one of this format."""
        if type(position) is self.position_class:
            return position.copy()
        return self.create_position(position.longitude, position.latitude, position.elevation,
                                    position.speed, position.time, position.comment,
                                    position.heading)


class SimpleLineBasedFormat(NavigationFormat):
    """
    Line oriented dialect: an optional header plus one record per line.

    The whole file is rejected as soon as one non-blank line is neither the
    header nor a full match of the record grammar.
    """

    encoding = "utf-8"
    header: Optional[str] = None
    line_pattern: re.Pattern = None
    line_separator = "\n"
    route_characteristics = RouteCharacteristics.TRACK
    accepts_empty_routes = True

    def decode(self, data: bytes) -> Optional[str]:
        try:
            return data.decode(self.encoding)
        except UnicodeDecodeError:
            logger.debug(f"{self.name}: input is not {self.encoding}")
            return None

    def is_header(self, line: str) -> bool:
        return self.header is not None and line.strip() == self.header

    def is_valid_line(self, line: str) -> bool:
        return self.is_header(line) or self.line_pattern.fullmatch(line) is not None

    def is_position(self, line: str) -> bool:
        return not self.is_header(line)

    def parse_position(self, line: str, start_date: Optional[datetime]) -> NavigationPosition:
        """One position per record line; dialects that override parse need not implement it."""
        raise NotImplementedError(f"{type(self).__name__} does not parse single lines")

    def parse(self, data: bytes, start_date: Optional[datetime]) -> Optional[list[NavigationRoute]]:
        text = self.decode(data)
        if text is None:
            return None
        positions = []
        line_count = 0
        for line in text.splitlines():
            if not line.strip():
                continue
            if not self.is_valid_line(line):
                logger.debug(f"{self.name}: rejecting line '{line[:80]}'")
                return None
            line_count += 1
            if self.is_position(line):
                positions.append(self.parse_position(line, start_date))
        if not line_count:
            return None
        return [self.create_route(self.route_characteristics, positions)]

    @abstractmethod
    def format_position(self, position: NavigationPosition, index: int,
                        previous: Optional[NavigationPosition]) -> Optional[str]:
        """One record line; None skips the position."""
        ...

    def write_routes(self, routes: list[NavigationRoute]) -> bytes:
        lines = [self.header] if self.header else []
        previous = None
        for index, position in enumerate(routes[0]):
            line = self.format_position(position, index, previous)
            if line is None:
                logger.debug(f"{self.name}: skipping position {index} without coordinates")
                continue
            lines.append(line)
            previous = position
        text = "".join(line + self.line_separator for line in lines)
        return text.encode(self.encoding, errors="replace")
