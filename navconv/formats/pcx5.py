"""
Garmin PCX5 text exports.

Header lines start with H, I, M or U. Waypoints are W records, track points
T records:

    W  001    N49.8542100 E008.6413700 13-NOV-07 14:32:05    140 Home
    T  N49.8542100 E008.6413700 13-NOV-07 14:32:05    140

An altitude of -9999 means "unknown". Some TomTom POI files happen to parse
as PCX5 records carrying garbage coordinates, so routes consisting only of
degenerate positions are discarded.
"""

import logging
import re
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from ..conversion import format_double, is_empty, parse_double, round_half_away, to_utc, trim
from ..position import NavigationPosition
from ..route import NavigationRoute, RouteCharacteristics
from .base import SimpleLineBasedFormat

logger = logging.getLogger(__name__)

HEADER_PATTERN = re.compile(r"[HIMU](\s.*)?")
_COORDINATES = r"([NS])(\d+\.\d+)\s+([EW])(\d+\.\d+)\s+(\d{2}-[A-Z]{3}-\d{2})\s+(\d{2}:\d{2}:\d{2})\s+(-?\d+)"
WAYPOINT_PATTERN = re.compile(r"W\s+(\S+)\s+" + _COORDINATES + r"(.*)")
TRACKPOINT_PATTERN = re.compile(r"T\s+" + _COORDINATES + r"\s*")
WAYPOINT_TAIL_PATTERN = re.compile(r"(?:\s(.*?))?(?:\s+([-+]?\d+\.\d+e[-+]\d+)\s+(\d+))?\s*")

NO_ALTITUDE = -9999
NO_TIME = "31-DEC-89 00:00:00"
MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")
DESCRIPTION_LENGTH = 40

FILE_HEADER = [
    "H  SOFTWARE NAME & VERSION",
    "I  PCX5 2.09 by Garmin",
    "",
    "H  R DATUM                IDX DA            DF            DX            DY            DZ",
    "M  G WGS 84               121 +0.000000e+00 +0.000000e+00 +0.000000e+00 +0.000000e+00 +0.000000e+00",
    "",
    "H  COORDINATE SYSTEM",
    "U  LAT LON DEG",
    "",
]
WAYPOINT_HEADER = ("H  IDNT   LATITUDE    LONGITUDE    DATE      TIME     ALT   "
                   "DESCRIPTION                              PROXIMITY     SYMBOL ;waypts")
TRACK_HEADER = "H  LATITUDE    LONGITUDE    DATE      TIME     ALT    ;track"


class Pcx5Waypoint(NamedTuple):
    identifier: str
    proximity: Optional[str]
    symbol: Optional[str]


def parse_pcx5_time(date: str, clock: str) -> Optional[datetime]:
    """DD-MMM-YY HH:MM:SS with English month names, independent of locale."""
    if f"{date} {clock}" == NO_TIME:
        return None
    try:
        day, month, year = date.split("-")
        year = int(year)
        year += 2000 if year < 70 else 1900
        hours, minutes, seconds = (int(part) for part in clock.split(":"))
        return datetime(year, MONTHS.index(month) + 1, int(day), hours, minutes, seconds,
                        tzinfo=timezone.utc)
    except ValueError:
        logger.debug(f"Skipping malformed PCX5 time '{date} {clock}'")
        return None


def format_pcx5_time(time: Optional[datetime]) -> str:
    if time is None:
        return NO_TIME
    time = to_utc(time)
    return f"{time.day:02d}-{MONTHS[time.month - 1]}-{time.year % 100:02d} {time:%H:%M:%S}"


class Pcx5Format(SimpleLineBasedFormat):
    name = "pcx5"
    display_name = "Garmin PCX5 (*.wpt)"
    extensions = (".wpt", ".trk", ".rte")
    encoding = "iso-8859-1"
    line_separator = "\r\n"
    accepts_empty_routes = False

    def is_header(self, line: str) -> bool:
        return HEADER_PATTERN.fullmatch(line.strip()) is not None

    def is_valid_line(self, line: str) -> bool:
        line = line.strip()
        return (HEADER_PATTERN.fullmatch(line) is not None
                or WAYPOINT_PATTERN.fullmatch(line) is not None
                or TRACKPOINT_PATTERN.fullmatch(line) is not None)

    def is_degenerate(self, position: NavigationPosition) -> bool:
        if is_empty(position.longitude) and position.elevation is not None and position.elevation > 100000:
            return True
        return is_empty(position.longitude) and is_empty(position.latitude)

    def _position(self, groups, comment: Optional[str]) -> NavigationPosition:
        north_south, latitude, east_west, longitude, date, clock, altitude = groups
        latitude = parse_double(latitude)
        if latitude is not None and north_south == "S":
            latitude = -latitude
        longitude = parse_double(longitude)
        if longitude is not None and east_west == "W":
            longitude = -longitude
        elevation = parse_double(altitude)
        if elevation == NO_ALTITUDE:
            elevation = None
        return self.create_position(longitude, latitude, elevation, None,
                                    parse_pcx5_time(date, clock), comment)

    def parse_position(self, line: str, start_date: Optional[datetime]) -> NavigationPosition:
        line = line.strip()
        match = TRACKPOINT_PATTERN.fullmatch(line)
        if match:
            return self._position(match.groups(), None)

        match = WAYPOINT_PATTERN.fullmatch(line)
        identifier = match.group(1)
        tail = WAYPOINT_TAIL_PATTERN.fullmatch(match.group(9))
        description, proximity, symbol = tail.groups() if tail else (match.group(9), None, None)
        position = self._position(match.groups()[1:8], trim(description) or identifier)
        position.set_origin(self.name, Pcx5Waypoint(identifier, proximity, symbol))
        return position

    def parse(self, data: bytes, start_date: Optional[datetime]) -> Optional[list[NavigationRoute]]:
        text = self.decode(data)
        waypoints, trackpoints = [], []
        for line in text.splitlines():
            if not line.strip():
                continue
            if not self.is_valid_line(line):
                logger.debug(f"{self.name}: rejecting line '{line[:80]}'")
                return None
            if self.is_header(line):
                continue
            target = trackpoints if line.lstrip().startswith("T") else waypoints
            target.append(self.parse_position(line, start_date))
        if trackpoints:
            if waypoints:
                logger.debug(f"{self.name}: ignoring {len(waypoints)} waypoints of a track file")
            return [self.create_route(RouteCharacteristics.TRACK, trackpoints)]
        if waypoints:
            return [self.create_route(RouteCharacteristics.WAYPOINTS, waypoints)]
        return None

    def _coordinates(self, position: NavigationPosition) -> str:
        latitude = max(-90.0, min(90.0, position.latitude))
        longitude = max(-180.0, min(180.0, position.longitude))
        altitude = NO_ALTITUDE if position.elevation is None else int(round_half_away(position.elevation))
        return (f"{'S' if latitude < 0 else 'N'}{format_double(abs(latitude), 7).zfill(10)} "
                f"{'W' if longitude < 0 else 'E'}{format_double(abs(longitude), 7).zfill(11)} "
                f"{format_pcx5_time(position.time)} {altitude:6d}")

    def format_position(self, position: NavigationPosition, index: int,
                        previous: Optional[NavigationPosition]) -> Optional[str]:
        """Waypoint record; track records are written by write_routes."""
        if not position.has_coordinates():
            return None
        origin = position.get_origin(self.name)
        identifier = origin.identifier if origin else f"{index + 1:03d}"
        description = (position.comment or "").replace("\n", " ")[:DESCRIPTION_LENGTH]
        line = f"W  {identifier:<6} {self._coordinates(position)} {description:<{DESCRIPTION_LENGTH}}"
        if origin and origin.proximity is not None:
            line += f" {origin.proximity} {origin.symbol}"
        return line.rstrip()

    def write_routes(self, routes: list[NavigationRoute]) -> bytes:
        route = routes[0]
        track = route.characteristics is RouteCharacteristics.TRACK
        lines = list(FILE_HEADER)
        lines.append(TRACK_HEADER if track else WAYPOINT_HEADER)
        for index, position in enumerate(route):
            if not position.has_coordinates():
                logger.debug(f"{self.name}: skipping position {index} without coordinates")
                continue
            if track:
                lines.append(f"T  {self._coordinates(position)}")
            else:
                lines.append(self.format_position(position, index, None))
        text = "".join(line + self.line_separator for line in lines)
        return text.encode(self.encoding, errors="replace")
