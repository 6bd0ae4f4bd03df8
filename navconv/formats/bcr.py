"""
Map&Guide Tourenplaner route files (.bcr).

An INI file with projected Mercator coordinates:

    [CLIENT]
    REQUEST=TRUE
    ROUTENAME=Weekend
    DESCRIPTIONLINES=0
    STATION1=Standort,999999999
    [COORDINATES]
    STATION1=1022185,6174453
    [DESCRIPTION]
    STATION1=72574 Bad Urach,Zentrum
    [ROUTE]

Station altitudes are offset-encoded; 999999999 means "no altitude".
Entries other than the stations are kept as route origin and written back.
"""

import configparser
import logging
import re
from datetime import datetime
from typing import Optional

from ..conversion import (
    clamp_mercator_latitude,
    parse_int,
    round_half_away,
    wgs84_to_mercator,
)
from ..position import BcrPosition, NavigationPosition
from ..route import NavigationRoute, RouteCharacteristics
from .base import NavigationFormat

logger = logging.getLogger(__name__)

CLIENT_SECTION = "CLIENT"
COORDINATES_SECTION = "COORDINATES"
DESCRIPTION_SECTION = "DESCRIPTION"
ROUTE_SECTION = "ROUTE"
ROUTE_NAME = "ROUTENAME"
STATION_PREFIX = "STATION"
DEFAULT_LOCATION = "Standort"

STATION_PATTERN = re.compile(r"STATION(\d+)")
COORDINATE_PATTERN = re.compile(r"(-?\d+)\s*,\s*(-?\d+)")
ENCODING = "iso-8859-1"
LINE_SEPARATOR = "\r\n"


def _parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        delimiters=("=",),
        comment_prefixes=(";",),
        interpolation=None,
        strict=False,
        empty_lines_in_values=False,
    )
    parser.optionxform = str
    return parser


def _stations(section) -> dict[int, str]:
    stations = {}
    for key, value in section.items():
        match = STATION_PATTERN.fullmatch(key)
        if match:
            stations[int(match.group(1))] = value
    return stations


class BcrFormat(NavigationFormat):
    name = "bcr"
    display_name = "Map&Guide Tourenplaner (*.bcr)"
    extensions = (".bcr",)
    write_characteristics = frozenset({RouteCharacteristics.ROUTE})
    position_class = BcrPosition

    def create_position(self, longitude: Optional[float], latitude: Optional[float],
                        elevation: Optional[float] = None, speed: Optional[float] = None,
                        time: Optional[datetime] = None, comment: Optional[str] = None,
                        heading: Optional[float] = None) -> NavigationPosition:
        position = BcrPosition(elevation=elevation, speed=speed, time=time, heading=heading)
        if longitude is not None and latitude is not None:
            x, y = wgs84_to_mercator(longitude, clamp_mercator_latitude(latitude))
            position.x, position.y = int(round_half_away(x)), int(round_half_away(y))
        position.comment = comment
        return position

    def parse(self, data: bytes, start_date: Optional[datetime]) -> Optional[list[NavigationRoute]]:
        parser = _parser()
        try:
            parser.read_string(data.decode(ENCODING))
        except configparser.Error as e:
            logger.debug(f"{self.name}: not an INI file: {e}")
            return None
        if not (parser.has_section(CLIENT_SECTION) and parser.has_section(COORDINATES_SECTION)):
            return None

        coordinates = _stations(parser[COORDINATES_SECTION])
        altitudes = _stations(parser[CLIENT_SECTION])
        descriptions = _stations(parser[DESCRIPTION_SECTION]) if parser.has_section(DESCRIPTION_SECTION) else {}

        positions = []
        for number in sorted(coordinates):
            match = COORDINATE_PATTERN.fullmatch(coordinates[number].strip())
            if not match:
                logger.debug(f"{self.name}: malformed station {number} '{coordinates[number]}'")
                return None
            altitude = None
            location = altitudes.get(number, "")
            if "," in location:
                altitude = parse_int(location.split(",", 1)[1])
            position = BcrPosition.from_altitude(int(match.group(1)), int(match.group(2)),
                                                 altitude, descriptions.get(number))
            positions.append(position)

        route = self.create_route(RouteCharacteristics.ROUTE, positions,
                                  parser[CLIENT_SECTION].get(ROUTE_NAME) or None)
        route.origins[self.name] = {
            section: [(key, value) for key, value in parser[section].items()
                      if not STATION_PATTERN.fullmatch(key)]
            for section in parser.sections()
        }
        return [route]

    def _section(self, lines: list[str], name: str, entries) -> None:
        lines.append(f"[{name}]")
        lines.extend(f"{key}={value}" for key, value in entries)

    def write_routes(self, routes: list[NavigationRoute]) -> bytes:
        route = routes[0]
        origin = route.origins.get(self.name) or {}
        positions = [self.create_position_from(position) for position in route]
        positions = [position for position in positions if position.has_coordinates()]

        client = [(key, value) for key, value in origin.get(CLIENT_SECTION, [("REQUEST", "TRUE")])]
        if not any(key == ROUTE_NAME for key, _ in client):
            client.insert(1, (ROUTE_NAME, ""))
        client = [(key, (route.name or "") if key == ROUTE_NAME else value) for key, value in client]
        if CLIENT_SECTION not in origin:
            client.append(("DESCRIPTIONLINES", "0"))

        stations = list(enumerate(positions, start=1))
        lines: list[str] = []
        self._section(lines, CLIENT_SECTION, client + [
            (f"{STATION_PREFIX}{number}", f"{DEFAULT_LOCATION},{position.altitude}")
            for number, position in stations])
        self._section(lines, COORDINATES_SECTION, [
            (f"{STATION_PREFIX}{number}", f"{position.x},{position.y}") for number, position in stations])
        self._section(lines, DESCRIPTION_SECTION, origin.get(DESCRIPTION_SECTION, []) + [
            (f"{STATION_PREFIX}{number}", position.format_description()) for number, position in stations])
        written = {CLIENT_SECTION, COORDINATES_SECTION, DESCRIPTION_SECTION}
        for section, entries in origin.items():
            if section not in written:
                self._section(lines, section, entries)
                written.add(section)
        if ROUTE_SECTION not in written:
            self._section(lines, ROUTE_SECTION, [])

        text = "".join(line + LINE_SEPARATOR for line in lines)
        return text.encode(ENCODING, errors="replace")
