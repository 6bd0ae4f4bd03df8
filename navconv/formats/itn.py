"""
TomTom ITN itineraries.

One stop per line, coordinates in 1/100000 degree:

    883208|4853893|Stuttgart|4|
    1063862|4853271|Ulm|2|

The flag marks the start (4), intermediate stops (0) and the destination
(2). TomTom 8 and later write UTF-8, older devices ISO-8859-1.
"""

import logging
import re
from datetime import datetime
from typing import Optional

from ..conversion import round_half_away, trim
from ..position import NavigationPosition
from ..route import NavigationRoute, RouteCharacteristics
from .base import SimpleLineBasedFormat

logger = logging.getLogger(__name__)

LINE_PATTERN = re.compile(r"\s*([+-]?\d+)\|([+-]?\d+)\|([^|]*)\|(\d+)\|\s*")
COORDINATE_FACTOR = 100000.0

START_FLAG = 4
WAYPOINT_FLAG = 0
DESTINATION_FLAG = 2


def to_itn_coordinate(degrees: float, limit: float) -> int:
    return int(round_half_away(max(-limit, min(limit, degrees)) * COORDINATE_FACTOR))


class Tomtom8Format(SimpleLineBasedFormat):
    name = "tomtom8"
    display_name = "TomTom 8 Route (*.itn)"
    extensions = (".itn",)
    encoding = "utf-8"
    line_pattern = LINE_PATTERN
    line_separator = "\r\n"
    route_characteristics = RouteCharacteristics.ROUTE
    write_characteristics = frozenset({RouteCharacteristics.ROUTE})
    accepts_empty_routes = False

    def decode(self, data: bytes) -> Optional[str]:
        text = super().decode(data)
        if text is not None and text.startswith("\ufeff"):
            text = text[1:]
        return text

    def parse_position(self, line: str, start_date: Optional[datetime]) -> NavigationPosition:
        longitude, latitude, comment, _ = LINE_PATTERN.fullmatch(line).groups()
        return self.create_position(int(longitude) / COORDINATE_FACTOR,
                                    int(latitude) / COORDINATE_FACTOR,
                                    comment=trim(comment))

    def format_position(self, position: NavigationPosition, index: int,
                        previous: Optional[NavigationPosition]) -> Optional[str]:
        if not position.has_coordinates():
            return None
        comment = (position.comment or "").replace("|", ";").replace("\r", " ").replace("\n", " ")
        return (f"{to_itn_coordinate(position.longitude, 180.0)}|"
                f"{to_itn_coordinate(position.latitude, 90.0)}|{comment}|{WAYPOINT_FLAG}|")

    def write_routes(self, routes: list[NavigationRoute]) -> bytes:
        lines = []
        positions = [position for position in routes[0] if position.has_coordinates()]
        for index, position in enumerate(positions):
            line = self.format_position(position, index, None)
            if index == 0:
                line = line[:-2] + f"{START_FLAG}|"
            elif index == len(positions) - 1:
                line = line[:-2] + f"{DESTINATION_FLAG}|"
            lines.append(line)
        text = "".join(line + self.line_separator for line in lines)
        return text.encode(self.encoding, errors="replace")

    def split_route(self, route: NavigationRoute, max_positions: int) -> list[NavigationRoute]:
        """
        Split a route for devices limited to `max_positions` stops. Each part
        starts at the last stop of the previous one.
        """
        if max_positions < 2 or route.position_count <= max_positions:
            return [route]
        parts = []
        positions = route.positions
        start = 0
        while start < len(positions) - 1:
            chunk = positions[start:start + max_positions]
            name = f"{route.name or 'Route'} ({len(parts) + 1})"
            parts.append(self.create_route(route.characteristics, chunk, name))
            start += max_positions - 1
        logger.debug(f"Split {route.position_count} positions into {len(parts)} itineraries")
        return parts


class Tomtom5Format(Tomtom8Format):
    name = "tomtom5"
    display_name = "TomTom 5 Route (*.itn)"
    encoding = "iso-8859-1"
