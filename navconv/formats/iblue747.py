"""
i-Blue 747 CSV logs.

One header line followed by comma separated records:

    INDEX,RCR,DATE,TIME,VALID,LATITUDE,N/S,LONGITUDE,E/W,HEIGHT,SPEED,HEADING,DISTANCE,
    3656,T,2010/12/09,10:59:05,SPS,28.649061,N,17.896196,W,513.863 M,15.862 km/h,178.240250,34.60 M,

Only rows with an SPS or DGPS fix become positions; other rows are valid
lines without a position.
"""

import logging
import re
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from ..conversion import format_double, parse_double, to_utc, trim
from ..position import NavigationPosition
from ..route import RouteCharacteristics
from .base import SimpleLineBasedFormat

logger = logging.getLogger(__name__)

HEADER = "INDEX,RCR,DATE,TIME,VALID,LATITUDE,N/S,LONGITUDE,E/W,HEIGHT,SPEED,HEADING,DISTANCE,"

LINE_PATTERN = re.compile(
    r"\s*(\d+)\s*,"                   # index
    r"\s*([A-Z]+)\s*,"                # record reason
    r"\s*(\d{4}/\d{2}/\d{2})?\s*,"    # date
    r"\s*(\d{2}:\d{2}:\d{2})?\s*,"    # time
    r"\s*([^,]+?)\s*,"                # fix
    r"\s*([\d.]+)\s*,"
    r"\s*([NS])\s*,"
    r"\s*([\d.]+)\s*,"
    r"\s*([WE])\s*,"
    r"\s*(-?[\d.]+)[^,]*,"            # height with unit
    r"\s*(-?[\d.]+)[^,]*,"            # speed with unit
    r"\s*(-?[\d.]+)\s*,"              # heading
    r"\s*([\d.]+)[^,]*,"              # distance with unit
    r"\s*"
)

VALID_FIXES = ("SPS", "DGPS")
DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


class IBlueRecord(NamedTuple):
    """Raw fields the position model has no place for."""

    index: int
    reason: str
    fix: str


class IBlue747Format(SimpleLineBasedFormat):
    name = "iblue747"
    display_name = "i-Blue 747 (*.csv)"
    extensions = (".csv",)
    encoding = "ascii"
    header = HEADER
    line_pattern = LINE_PATTERN
    write_characteristics = frozenset({RouteCharacteristics.TRACK})

    def is_header(self, line: str) -> bool:
        return line.strip().startswith(HEADER)

    def is_position(self, line: str) -> bool:
        match = LINE_PATTERN.fullmatch(line)
        return match is not None and match.group(5) in VALID_FIXES

    def parse_position(self, line: str, start_date: Optional[datetime]) -> NavigationPosition:
        match = LINE_PATTERN.fullmatch(line)
        (index, reason, date, clock, fix, latitude, north_south, longitude, east_west,
         height, speed, heading, _) = match.groups()

        latitude = parse_double(latitude)
        if latitude is not None and north_south == "S":
            latitude = -latitude
        longitude = parse_double(longitude)
        if longitude is not None and east_west == "W":
            longitude = -longitude

        time = None
        if date and clock:
            try:
                time = datetime.strptime(f"{date} {clock}", DATE_FORMAT).replace(tzinfo=timezone.utc)
            except ValueError:
                logger.debug(f"Skipping malformed time '{date} {clock}'")

        position = self.create_position(longitude, latitude, parse_double(height),
                                        parse_double(speed), time, None, parse_double(heading))
        position.set_origin(self.name, IBlueRecord(int(index), reason, trim(fix)))
        return position

    def format_position(self, position: NavigationPosition, index: int,
                        previous: Optional[NavigationPosition]) -> Optional[str]:
        if not position.has_coordinates():
            return None
        record = position.get_origin(self.name)
        reason = record.reason if record else "T"
        fix = record.fix if record else "SPS"
        date = clock = ""
        if position.time is not None:
            time = to_utc(position.time)
            date = time.strftime("%Y/%m/%d")
            clock = time.strftime("%H:%M:%S")
        distance = previous.calculate_distance(position) if previous is not None else 0.0
        return ",".join([
            str(index + 1),
            reason,
            date,
            clock,
            fix,
            format_double(abs(position.latitude), 6),
            "S" if position.latitude < 0 else "N",
            format_double(abs(position.longitude), 6),
            "W" if position.longitude < 0 else "E",
            f"{format_double(position.elevation or 0.0, 3)} M",
            f"{format_double(position.speed or 0.0, 3)} km/h",
            format_double(position.heading or 0.0, 6),
            f"{format_double(distance or 0.0, 2)} M",
        ]) + ","
