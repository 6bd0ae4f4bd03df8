"""
OziExplorer track (.plt), route (.rte) and waypoint (.wpt) files.

The first line names the file kind. Altitudes are in feet with -777 for
"unknown", dates are Delphi day numbers. A track point with its break flag
set starts a new track segment, and every R record of a route file starts a
new route, so one file may hold several routes. Read only.
"""

import logging
from datetime import datetime
from typing import Optional

from ..conversion import delphi_days_to_datetime, feet_to_meters, is_empty, parse_double, parse_int, trim
from ..position import NavigationPosition
from ..route import NavigationRoute, RouteCharacteristics
from .base import NavigationFormat

logger = logging.getLogger(__name__)

TRACK_MARKER = "OziExplorer Track Point File Version"
ROUTE_MARKER = "OziExplorer Route File Version"
WAYPOINT_MARKER = "OziExplorer Waypoint File Version"

NO_ALTITUDE = -777
TRACK_HEADER_LINES = 6
WAYPOINT_HEADER_LINES = 4
ROUTE_HEADER_LINES = 4


def _altitude(value: str) -> Optional[float]:
    feet = parse_double(value)
    if feet is None or feet == NO_ALTITUDE:
        return None
    return feet_to_meters(feet)


def _text(value: str) -> Optional[str]:
    # Ozi stores commas inside text fields as character 209
    return trim(value.replace("\xd1", ","))


class OziExplorerFormat(NavigationFormat):
    name = "ozi"
    display_name = "OziExplorer (*.plt, *.rte, *.wpt)"
    extensions = (".plt", ".rte", ".wpt")
    supports_writing = False
    supports_multiple_routes = True
    write_characteristics = frozenset()

    def is_degenerate(self, position: NavigationPosition) -> bool:
        return (not position.has_coordinates()
                or (is_empty(position.longitude) and is_empty(position.latitude)
                    and is_empty(position.elevation)))

    def parse(self, data: bytes, start_date: Optional[datetime]) -> Optional[list[NavigationRoute]]:
        lines = data.decode("iso-8859-1").splitlines()
        if not lines:
            return None
        marker = lines[0].strip()
        if marker.startswith(TRACK_MARKER):
            return self._parse_track(lines)
        if marker.startswith(ROUTE_MARKER):
            return self._parse_routes(lines)
        if marker.startswith(WAYPOINT_MARKER):
            return self._parse_waypoints(lines)
        return None

    def _point(self, latitude: str, longitude: str, altitude: Optional[float], days: str,
               comment: Optional[str]) -> Optional[NavigationPosition]:
        latitude, longitude = parse_double(latitude), parse_double(longitude)
        if latitude is None or longitude is None:
            return None
        return self.create_position(longitude, latitude, altitude, None,
                                    delphi_days_to_datetime(parse_double(days)), comment)

    def _parse_track(self, lines: list[str]) -> Optional[list[NavigationRoute]]:
        if len(lines) < TRACK_HEADER_LINES:
            return None
        info = lines[4].split(",")
        name = _text(info[3]) if len(info) > 3 else None
        segments: list[list[NavigationPosition]] = [[]]
        for line in lines[TRACK_HEADER_LINES:]:
            if not line.strip():
                continue
            fields = line.split(",")
            if len(fields) < 5:
                logger.debug(f"{self.name}: rejecting track line '{line[:80]}'")
                return None
            position = self._point(fields[0], fields[1], _altitude(fields[3]), fields[4], None)
            if position is None:
                return None
            if parse_int(fields[2]) == 1 and segments[-1]:
                segments.append([])
            segments[-1].append(position)
        routes = [self.create_route(RouteCharacteristics.TRACK, segment, name)
                  for segment in segments if segment]
        for route in routes:
            route.origins[self.name] = lines[:TRACK_HEADER_LINES]
        return routes

    def _parse_routes(self, lines: list[str]) -> Optional[list[NavigationRoute]]:
        routes: list[tuple[str, list]] = []
        for line in lines[ROUTE_HEADER_LINES:]:
            if not line.strip():
                continue
            fields = line.split(",")
            kind = fields[0].strip()
            if kind == "R" and len(fields) >= 3:
                routes.append((line, []))
            elif kind == "W" and len(fields) >= 8 and routes:
                description = _text(fields[13]) if len(fields) > 13 else None
                position = self._point(fields[5], fields[6], None, fields[7],
                                       _text(fields[4]) or description)
                if position is None:
                    return None
                routes[-1][1].append(position)
            else:
                logger.debug(f"{self.name}: rejecting route line '{line[:80]}'")
                return None
        if not routes:
            return None
        result = []
        for record, positions in routes:
            route = self.create_route(RouteCharacteristics.ROUTE, positions, _text(record.split(",")[2]))
            route.origins[self.name] = record
            result.append(route)
        return result

    def _parse_waypoints(self, lines: list[str]) -> Optional[list[NavigationRoute]]:
        positions = []
        for line in lines[WAYPOINT_HEADER_LINES:]:
            if not line.strip():
                continue
            fields = line.split(",")
            if len(fields) < 5:
                logger.debug(f"{self.name}: rejecting waypoint line '{line[:80]}'")
                return None
            altitude = _altitude(fields[14]) if len(fields) > 14 else None
            description = _text(fields[10]) if len(fields) > 10 else None
            position = self._point(fields[2], fields[3], altitude, fields[4],
                                   _text(fields[1]) or description)
            if position is None:
                return None
            positions.append(position)
        return [self.create_route(RouteCharacteristics.WAYPOINTS, positions)]
