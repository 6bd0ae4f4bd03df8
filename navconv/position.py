"""
Position model: a single GPS sample in geographic or projected coordinates.

Positions are dataclasses so equality and hashing are structural over every
field, dialect extension fields included. The ``origins`` bag holds the raw
record a position was parsed from, keyed by format name, and takes no part
in equality.
"""

import copy
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from .conversion import (
    bcr_altitude_to_elevation,
    bearing,
    clamp_mercator_latitude,
    elevation_to_bcr_altitude,
    haversine_distance,
    mercator_to_wgs84,
    planar_distance,
    round_half_away,
    trim,
    wgs84_to_mercator,
)

logger = logging.getLogger(__name__)


class CoordinateKind(Enum):
    GEOGRAPHIC = "geographic"
    PROJECTED = "projected"


class NavigationPosition:
    """Behaviour shared by every position kind."""

    kind = CoordinateKind.GEOGRAPHIC

    def has_coordinates(self) -> bool:
        longitude, latitude = self.longitude, self.latitude
        return (longitude is not None and latitude is not None
                and math.isfinite(longitude) and math.isfinite(latitude))

    def is_within_range(self) -> bool:
        return (self.has_coordinates()
                and -180.0 <= self.longitude <= 180.0
                and -90.0 <= self.latitude <= 90.0)

    def calculate_distance(self, other: "NavigationPosition") -> Optional[float]:
        """Metres to another position; None if either lacks coordinates."""
        if self.kind is CoordinateKind.PROJECTED and other.kind is CoordinateKind.PROJECTED:
            if None in (self.x, self.y, other.x, other.y):
                return None
            return planar_distance(self.x, self.y, other.x, other.y)
        if not (self.has_coordinates() and other.has_coordinates()):
            return None
        return haversine_distance(self.latitude, self.longitude, other.latitude, other.longitude)

    def calculate_bearing(self, other: "NavigationPosition") -> Optional[float]:
        if not (self.has_coordinates() and other.has_coordinates()):
            return None
        return bearing(self.latitude, self.longitude, other.latitude, other.longitude)

    def get_origin(self, format_name: str) -> Any:
        return self.origins.get(format_name)

    def set_origin(self, format_name: str, raw: Any) -> None:
        self.origins[format_name] = raw

    def as_wgs84(self) -> "Wgs84Position":
        return Wgs84Position(
            longitude=self.longitude,
            latitude=self.latitude,
            elevation=self.elevation,
            speed=self.speed,
            time=self.time,
            comment=self.comment,
            heading=self.heading,
        )

    def copy(self):
        """Shallow copy with its own origin bag."""
        duplicate = copy.copy(self)
        duplicate.origins = dict(self.origins)
        return duplicate


@dataclass(unsafe_hash=True)
class Wgs84Position(NavigationPosition):
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    elevation: Optional[float] = None
    speed: Optional[float] = None
    time: Optional[datetime] = None
    comment: Optional[str] = None
    heading: Optional[float] = None
    origins: dict = field(default_factory=dict, compare=False, hash=False, repr=False)


def _finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def _projected(value: Optional[float], projected: Optional[float]) -> Optional[int]:
    if projected is None or not math.isfinite(projected):
        if value is not None:
            logger.debug(f"Cannot project coordinate {value}")
        return None
    return int(round_half_away(projected))


class _MercatorCoordinates:
    """Derived longitude/latitude over integer Mercator x/y."""

    kind = CoordinateKind.PROJECTED

    @property
    def longitude(self) -> Optional[float]:
        if self.x is None:
            return None
        return mercator_to_wgs84(self.x, 0)[0]

    @longitude.setter
    def longitude(self, value: Optional[float]) -> None:
        self.x = _projected(value, wgs84_to_mercator(value, 0)[0] if _finite(value) else None)

    @property
    def latitude(self) -> Optional[float]:
        if self.y is None:
            return None
        return mercator_to_wgs84(0, self.y)[1]

    @latitude.setter
    def latitude(self, value: Optional[float]) -> None:
        # out of range latitudes are kept at the Mercator limit
        y = wgs84_to_mercator(0, clamp_mercator_latitude(value))[1] if _finite(value) else None
        self.y = _projected(value, y)

    def has_coordinates(self) -> bool:
        return self.x is not None and self.y is not None


@dataclass(unsafe_hash=True)
class MercatorPosition(_MercatorCoordinates, NavigationPosition):
    x: Optional[int] = None
    y: Optional[int] = None
    elevation: Optional[float] = None
    speed: Optional[float] = None
    time: Optional[datetime] = None
    comment: Optional[str] = None
    heading: Optional[float] = None
    origins: dict = field(default_factory=dict, compare=False, hash=False, repr=False)


# [zip] city[, street[, type]] with an optional trailing comma
DESCRIPTION_PATTERN = re.compile(
    r"\s*(?:(\d+|WP)\s+)?([^,]*?)\s*(?:,\s*([^,]*?)\s*)?(?:,\s*([^,]*?)\s*)?,?\s*"
)
NO_ZIP_CODE = "WP"
CITY_CENTER_STREET = "@"
CITY_CENTER = "Zentrum"


@dataclass(unsafe_hash=True)
class BcrPosition(_MercatorCoordinates, NavigationPosition):
    """
    Map&Guide Tourenplaner station.

    The description of a station is structured as ``zip city, street, type``.
    ``comment`` composes and decomposes that structure; ``altitude`` is the
    offset-encoded elevation the file stores.
    """

    x: Optional[int] = None
    y: Optional[int] = None
    elevation: Optional[float] = None
    zip_code: Optional[str] = None
    city: Optional[str] = None
    street: Optional[str] = None
    type: Optional[str] = None
    speed: Optional[float] = None
    time: Optional[datetime] = None
    heading: Optional[float] = None
    origins: dict = field(default_factory=dict, compare=False, hash=False, repr=False)

    @classmethod
    def from_altitude(cls, x: Optional[int], y: Optional[int], altitude: Optional[int],
                      description: Optional[str]) -> "BcrPosition":
        position = cls(x=x, y=y, elevation=bcr_altitude_to_elevation(altitude))
        position.comment = description
        return position

    @property
    def altitude(self) -> int:
        return elevation_to_bcr_altitude(self.elevation)

    @altitude.setter
    def altitude(self, value: Optional[int]) -> None:
        self.elevation = bcr_altitude_to_elevation(value)

    @property
    def comment(self) -> Optional[str]:
        result = " ".join(part for part in (self.zip_code, self.city) if part) or None
        if self.street:
            result = f"{result}, {self.street}" if result else self.street
        return result

    @comment.setter
    def comment(self, description: Optional[str]) -> None:
        self.zip_code = self.city = self.street = self.type = None
        description = trim(description)
        if description is None:
            return
        match = DESCRIPTION_PATTERN.fullmatch(description)
        if not match:
            logger.debug(f"Unstructured station description '{description}'")
            self.city = description
            return
        zip_code, city, street, kind = (trim(group) for group in match.groups())
        if zip_code == NO_ZIP_CODE:
            zip_code = None
        if street == CITY_CENTER_STREET:
            street = CITY_CENTER
        if zip_code is not None and city is None:
            zip_code, city = None, zip_code
        self.zip_code, self.city, self.street, self.type = zip_code, city, street, kind

    def format_description(self) -> str:
        """Inverse of the ``comment`` setter as written to a BCR file."""
        head = " ".join(part for part in (self.zip_code, self.city) if part)
        if self.zip_code is None and head[:1].isdigit():
            head = f"{NO_ZIP_CODE} {head}"
        parts = [head, self.street or "", self.type or ""]
        while len(parts) > 1 and not parts[-1]:
            parts.pop()
        # one INI value per station
        return ",".join(parts).replace("\r", " ").replace("\n", " ")
