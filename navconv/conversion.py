"""
Unit and coordinate conversions shared by the format descriptors.

Covers the spherical Mercator projection used by projected dialects, the
offset-encoded altitude of Map&Guide BCR files, unit conversions, NMEA
coordinate notation, timestamps and locale-independent number formatting.
"""

import logging
import math
import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional

import gpxpy.geo
from pyproj import Transformer

logger = logging.getLogger(__name__)

EARTH_RADIUS = 6371000.0

# Degrees are interpreted on the same sphere the projection uses, so the
# transformation is a pure projection without any datum shift.
SPHERE_CRS = f"+proj=longlat +a={EARTH_RADIUS:.0f} +b={EARTH_RADIUS:.0f} +no_defs +type=crs"
MERCATOR_CRS = (
    f"+proj=merc +a={EARTH_RADIUS:.0f} +b={EARTH_RADIUS:.0f} "
    "+lon_0=0 +x_0=0 +y_0=0 +k=1 +units=m +no_defs +type=crs"
)
MAX_MERCATOR_LATITUDE = 85.05112878

# BCR altitude: centimetres above an offset, 999999999 = undefined
NO_ALTITUDE_DEFINED = 999999999
BCR_ALTITUDE_OFFSET = 210945416
BCR_ALTITUDE_SCALE = 100

FEET_PER_METER = 1.0 / 0.3048
KMH_PER_KNOT = 1.852
KMH_PER_MS = 3.6

# OziExplorer stores dates as Delphi day numbers
DELPHI_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)

_transformers = threading.local()


def _get_transformers() -> tuple[Transformer, Transformer]:
    """Per-thread transformer pair; pyproj transformers are not shared."""
    if not hasattr(_transformers, "forward"):
        _transformers.forward = Transformer.from_crs(SPHERE_CRS, MERCATOR_CRS, always_xy=True)
        _transformers.inverse = Transformer.from_crs(MERCATOR_CRS, SPHERE_CRS, always_xy=True)
    return _transformers.forward, _transformers.inverse


# ---------------------------------------------------------------
# Projection
# ---------------------------------------------------------------

def wgs84_to_mercator(longitude: float, latitude: float) -> tuple[float, float]:
    """Project decimal degrees to spherical Mercator metres."""
    forward, _ = _get_transformers()
    return forward.transform(longitude, latitude)


def mercator_to_wgs84(x: float, y: float) -> tuple[float, float]:
    """Inverse of wgs84_to_mercator; returns (longitude, latitude)."""
    _, inverse = _get_transformers()
    return inverse.transform(x, y)


def clamp_mercator_latitude(latitude: float) -> float:
    return max(-MAX_MERCATOR_LATITUDE, min(MAX_MERCATOR_LATITUDE, latitude))


# ---------------------------------------------------------------
# Elevation encodings
# ---------------------------------------------------------------

def bcr_altitude_to_elevation(altitude: Optional[int]) -> Optional[float]:
    """Decode a BCR altitude to metres. The sentinel decodes to None."""
    if altitude is None or altitude == NO_ALTITUDE_DEFINED:
        return None
    return (altitude - BCR_ALTITUDE_OFFSET) / BCR_ALTITUDE_SCALE


def elevation_to_bcr_altitude(elevation: Optional[float]) -> int:
    """Encode metres as a BCR altitude. None encodes to the sentinel."""
    if elevation is None or not math.isfinite(elevation):
        return NO_ALTITUDE_DEFINED
    return BCR_ALTITUDE_OFFSET + int(round_half_away(elevation * BCR_ALTITUDE_SCALE))


def feet_to_meters(feet: Optional[float]) -> Optional[float]:
    return feet / FEET_PER_METER if feet is not None else None


def meters_to_feet(meters: Optional[float]) -> Optional[float]:
    return meters * FEET_PER_METER if meters is not None else None


# ---------------------------------------------------------------
# Speed
# ---------------------------------------------------------------

def knots_to_kmh(knots: Optional[float]) -> Optional[float]:
    return knots * KMH_PER_KNOT if knots is not None else None


def kmh_to_knots(kmh: Optional[float]) -> Optional[float]:
    return kmh / KMH_PER_KNOT if kmh is not None else None


def ms_to_kmh(ms: Optional[float]) -> Optional[float]:
    return ms * KMH_PER_MS if ms is not None else None


def kmh_to_ms(kmh: Optional[float]) -> Optional[float]:
    return kmh / KMH_PER_MS if kmh is not None else None


# ---------------------------------------------------------------
# Distance and bearing
# ---------------------------------------------------------------

def haversine_distance(latitude1: float, longitude1: float, latitude2: float, longitude2: float) -> float:
    """Great-circle distance in metres."""
    return gpxpy.geo.haversine_distance(latitude1, longitude1, latitude2, longitude2)


def planar_distance(x1: float, y1: float, x2: float, y2: float) -> float:
    return math.hypot(x2 - x1, y2 - y1)


def bearing(latitude1: float, longitude1: float, latitude2: float, longitude2: float) -> float:
    """Initial great-circle bearing in degrees, 0 <= result < 360."""
    phi1 = math.radians(latitude1)
    phi2 = math.radians(latitude2)
    delta = math.radians(longitude2 - longitude1)
    y = math.sin(delta) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(delta)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


# ---------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------

def is_empty(value) -> bool:
    """True for None, NaN and 0.0 - the values dialects use for 'no data'."""
    if value is None:
        return True
    try:
        return math.isnan(value) or value == 0.0
    except TypeError:
        return False


def trim(value: Optional[str]) -> Optional[str]:
    """Strip whitespace; empty strings become None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_double(value: Optional[str]) -> Optional[float]:
    """Parse a decimal number. Malformed input yields None, never an error."""
    value = trim(value)
    if value is None:
        return None
    try:
        result = float(value)
    except ValueError:
        logger.debug(f"Skipping malformed decimal '{value}'")
        return None
    return result if math.isfinite(result) else None


def parse_int(value: Optional[str]) -> Optional[int]:
    value = trim(value)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.debug(f"Skipping malformed integer '{value}'")
        return None


def _quantize(value: float, digits: int) -> Decimal:
    quantum = Decimal(1).scaleb(-digits)
    return Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)


def round_half_away(value: float, digits: int = 0) -> float:
    """Round to `digits` decimals, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    if not math.isfinite(value):
        return value
    try:
        return float(_quantize(value, digits))
    except InvalidOperation:
        return round(value, digits)


def format_double(value: Optional[float], digits: int) -> str:
    """Fixed-decimal string with '.' as separator regardless of locale."""
    if value is None or not math.isfinite(value):
        return ""
    text = format(_quantize(value, digits), "f")
    if text.startswith("-") and not text.strip("-0."):
        text = text[1:]
    return text


# ---------------------------------------------------------------
# NMEA coordinate notation
# ---------------------------------------------------------------

def parse_nmea_coordinate(value: str, direction: str) -> Optional[float]:
    """
    Parse NMEA coordinate (DDMM.MMMM or DDDMM.MMMM) to decimal degrees.

    Examples:
        "4807.038", "N" -> 48.1173
        "01131.000", "E" -> 11.5167
    """
    if not value or not direction:
        return None
    try:
        dot = value.index(".") if "." in value else len(value)
        deg_width = dot - 2
        degrees = float(value[:deg_width]) if deg_width > 0 else 0.0
        minutes = float(value[deg_width:])
    except ValueError:
        return None
    result = degrees + minutes / 60.0
    if direction in ("S", "W"):
        result = -result
    return result


def format_nmea_coordinate(degrees: float, longitude: bool) -> tuple[str, str]:
    """Decimal degrees to (DDMM.MMMM, hemisphere)."""
    if longitude:
        hemisphere = "W" if degrees < 0 else "E"
    else:
        hemisphere = "S" if degrees < 0 else "N"
    value = abs(degrees)
    whole = int(value)
    minutes = round_half_away((value - whole) * 60.0, 4)
    if minutes >= 60.0:
        whole += 1
        minutes -= 60.0
    width = 3 if longitude else 2
    return f"{whole:0{width}d}{format_double(minutes, 4).zfill(7)}", hemisphere


# ---------------------------------------------------------------
# Time
# ---------------------------------------------------------------

def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso8601(value: Optional[str]) -> Optional[datetime]:
    value = trim(value)
    if value is None:
        return None
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        return to_utc(datetime.fromisoformat(value))
    except ValueError:
        logger.debug(f"Skipping malformed timestamp '{value}'")
        return None


def format_iso8601(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return to_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


def delphi_days_to_datetime(days: Optional[float]) -> Optional[datetime]:
    """OziExplorer day number to UTC datetime; 0 means 'no date'."""
    if is_empty(days):
        return None
    try:
        return DELPHI_EPOCH + timedelta(days=days)
    except OverflowError:
        logger.debug(f"Skipping out of range day number {days}")
        return None


def datetime_to_delphi_days(value: Optional[datetime]) -> float:
    if value is None:
        return 0.0
    return (to_utc(value) - DELPHI_EPOCH) / timedelta(days=1)
