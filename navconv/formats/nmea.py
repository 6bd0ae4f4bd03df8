"""
NMEA 0183 logs.

Reads GGA, RMC, GLL and ZDA sentences from any talker. Sentences reporting
the same time of day are merged into a single position, so a GGA/RMC pair
yields one position carrying elevation, speed and heading. Other sentence
types are valid lines that carry no position. Writing emits a GGA and an
RMC sentence per position.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time as clock_time, timezone
from typing import Optional

from ..conversion import (
    format_double,
    format_nmea_coordinate,
    kmh_to_knots,
    knots_to_kmh,
    parse_double,
    parse_int,
    parse_nmea_coordinate,
    to_utc,
)
from ..position import NavigationPosition
from ..route import NavigationRoute, RouteCharacteristics
from .base import SimpleLineBasedFormat

logger = logging.getLogger(__name__)

SENTENCE_PATTERN = re.compile(r"\s*\$([A-Z][A-Z0-9]+),([^*$]*)(?:\*([0-9A-Fa-f]{2}))?\s*")
CLOCK_PATTERN = re.compile(r"(\d{2})(\d{2})(\d{2})(?:\.(\d{1,6}))?")
DATE_PATTERN = re.compile(r"(\d{2})(\d{2})(\d{2})")
EPOCH_DATE = date(1970, 1, 1)


def checksum(body: str) -> int:
    """XOR of all characters between '$' and '*'."""
    result = 0
    for char in body:
        result ^= ord(char)
    return result


def parse_clock(value: str) -> Optional[clock_time]:
    match = CLOCK_PATTERN.fullmatch(value.strip())
    if not match:
        return None
    hours, minutes, seconds, fraction = match.groups()
    try:
        micros = int((fraction or "0").ljust(6, "0"))
        return clock_time(int(hours), int(minutes), int(seconds), micros)
    except ValueError:
        logger.debug(f"Skipping malformed NMEA time '{value}'")
        return None


def parse_date(value: str) -> Optional[date]:
    """ddmmyy; two digit years below 70 are 20xx."""
    match = DATE_PATTERN.fullmatch(value.strip())
    if not match:
        return None
    day, month, year = (int(group) for group in match.groups())
    year += 2000 if year < 70 else 1900
    try:
        return date(year, month, day)
    except ValueError:
        logger.debug(f"Skipping malformed NMEA date '{value}'")
        return None


@dataclass
class NmeaFix:
    """Content of one sentence, or of several merged sentences."""

    sentence_type: str
    clock: Optional[clock_time] = None
    day: Optional[date] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    elevation: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    valid: bool = True
    types: set = field(default_factory=set)

    def merge(self, other: "NmeaFix") -> None:
        for name in ("day", "latitude", "longitude", "elevation", "speed", "heading"):
            if getattr(self, name) is None:
                setattr(self, name, getattr(other, name))
        self.types.add(other.sentence_type)


def _field(fields: list[str], index: int) -> str:
    return fields[index] if index < len(fields) else ""


def parse_gga(fields: list[str]) -> NmeaFix:
    quality = _field(fields, 5).strip()
    return NmeaFix(
        "GGA",
        clock=parse_clock(_field(fields, 0)),
        latitude=parse_nmea_coordinate(_field(fields, 1), _field(fields, 2)),
        longitude=parse_nmea_coordinate(_field(fields, 3), _field(fields, 4)),
        elevation=parse_double(_field(fields, 8)),
        valid=quality not in ("", "0"),
    )


def parse_rmc(fields: list[str]) -> NmeaFix:
    return NmeaFix(
        "RMC",
        clock=parse_clock(_field(fields, 0)),
        latitude=parse_nmea_coordinate(_field(fields, 2), _field(fields, 3)),
        longitude=parse_nmea_coordinate(_field(fields, 4), _field(fields, 5)),
        speed=knots_to_kmh(parse_double(_field(fields, 6))),
        heading=parse_double(_field(fields, 7)),
        day=parse_date(_field(fields, 8)),
        valid=_field(fields, 1).strip() == "A",
    )


def parse_gll(fields: list[str]) -> NmeaFix:
    return NmeaFix(
        "GLL",
        latitude=parse_nmea_coordinate(_field(fields, 0), _field(fields, 1)),
        longitude=parse_nmea_coordinate(_field(fields, 2), _field(fields, 3)),
        clock=parse_clock(_field(fields, 4)),
        valid=_field(fields, 5).strip() != "V",
    )


def parse_zda(fields: list[str]) -> NmeaFix:
    day = parse_int(_field(fields, 1))
    month = parse_int(_field(fields, 2))
    year = parse_int(_field(fields, 3))
    result = NmeaFix("ZDA", clock=parse_clock(_field(fields, 0)), valid=False)
    if None not in (day, month, year):
        try:
            result.day = date(year, month, day)
        except ValueError:
            logger.debug(f"Skipping malformed ZDA date {day}.{month}.{year}")
    return result


# Map sentence type to parser
_PARSERS = {
    "GGA": parse_gga,
    "RMC": parse_rmc,
    "GLL": parse_gll,
    "ZDA": parse_zda,
}


def parse_nmea_sentence(sentence: str) -> Optional[NmeaFix]:
    """
    Parse a supported sentence of any talker ($GPGGA, $GNRMC, ...).

    Returns None for unsupported sentence types and checksum mismatches.
    """
    match = SENTENCE_PATTERN.fullmatch(sentence)
    if not match:
        return None
    tag, body, expected = match.groups()
    if expected is not None and checksum(f"{tag},{body}") != int(expected, 16):
        logger.debug(f"Checksum mismatch in '{sentence.strip()}'")
        return None
    parser = _PARSERS.get(tag[-3:])
    if parser is None:
        return None
    return parser(body.split(","))


class NmeaFormat(SimpleLineBasedFormat):
    name = "nmea"
    display_name = "NMEA 0183 Sentences (*.nmea)"
    extensions = (".nmea", ".nme", ".log")
    encoding = "ascii"
    line_pattern = SENTENCE_PATTERN
    line_separator = "\r\n"
    write_characteristics = frozenset({RouteCharacteristics.TRACK})

    def _create(self, fix: NmeaFix, day: date) -> NavigationPosition:
        time = None
        if fix.clock is not None:
            time = datetime.combine(day, fix.clock, tzinfo=timezone.utc)
        return self.create_position(fix.longitude, fix.latitude, fix.elevation,
                                    fix.speed, time, None, fix.heading)

    def parse(self, data: bytes, start_date: Optional[datetime]) -> Optional[list[NavigationRoute]]:
        text = self.decode(data)
        if text is None:
            return None
        fixes: list[NmeaFix] = []
        inherited: dict[int, Optional[date]] = {}
        last_day = start_date.date() if start_date else None
        line_count = 0
        for line in text.splitlines():
            if not line.strip():
                continue
            if not self.is_valid_line(line):
                logger.debug(f"{self.name}: rejecting line '{line[:80]}'")
                return None
            line_count += 1
            fix = parse_nmea_sentence(line)
            if fix is None:
                continue
            if fix.day is not None:
                last_day = fix.day
            if not fix.valid or fix.latitude is None or fix.longitude is None:
                continue
            current = fixes[-1] if fixes else None
            if (current is not None and current.clock == fix.clock
                    and fix.sentence_type not in current.types):
                current.merge(fix)
                continue
            fix.types.add(fix.sentence_type)
            inherited[len(fixes)] = last_day
            fixes.append(fix)
        if not line_count:
            return None

        positions = [self._create(fix, fix.day or inherited[index] or EPOCH_DATE)
                     for index, fix in enumerate(fixes)]
        return [self.create_route(RouteCharacteristics.TRACK, positions)]

    def _sentence(self, body: str) -> str:
        return f"${body}*{checksum(body):02X}"

    def format_position(self, position: NavigationPosition, index: int,
                        previous: Optional[NavigationPosition]) -> Optional[str]:
        if not position.has_coordinates():
            return None
        latitude, north_south = format_nmea_coordinate(position.latitude, longitude=False)
        longitude, east_west = format_nmea_coordinate(position.longitude, longitude=True)
        clock = day = ""
        if position.time is not None:
            time = to_utc(position.time)
            clock = time.strftime("%H%M%S")
            day = time.strftime("%d%m%y")
        elevation = format_double(position.elevation, 1)
        gga = ",".join(["GPGGA", clock, latitude, north_south, longitude, east_west,
                        "1", "", "", elevation, "M" if elevation else "", "", "", "", ""])
        rmc = ",".join(["GPRMC", clock, "A", latitude, north_south, longitude, east_west,
                        format_double(kmh_to_knots(position.speed), 1),
                        format_double(position.heading, 1), day, "", ""])
        return self._sentence(gga) + self.line_separator + self._sentence(rmc)
