"""
TomTom OV2 point-of-interest files.

A sequence of little-endian records, each starting with a type byte and
the total record length:

    0  deleted record          <B I ...>
    1  skipper (bounding box)  <B I i i i i>, 21 bytes
    2  simple POI              <B I i i name\\0>
    3  extended POI            <B I i i name\\0 ...>

Coordinates are stored in 1/100000 degree. The layout is loose enough that
any deviation rejects the whole file.
"""

import logging
import struct
from datetime import datetime
from typing import Optional

from ..conversion import is_empty, round_half_away
from ..position import NavigationPosition
from ..route import NavigationRoute, RouteCharacteristics
from .base import NavigationFormat

logger = logging.getLogger(__name__)

RECORD_HEADER = struct.Struct("<BI")
POI_COORDINATES = struct.Struct("<ii")
SKIPPER_LENGTH = 21
POI_MINIMUM_LENGTH = RECORD_HEADER.size + POI_COORDINATES.size + 1

DELETED_RECORD = 0
SKIPPER_RECORD = 1
SIMPLE_POI_RECORD = 2
EXTENDED_POI_RECORD = 3

COORDINATE_FACTOR = 100000.0
ENCODING = "iso-8859-1"


class Ov2Format(NavigationFormat):
    name = "ov2"
    display_name = "TomTom POI (*.ov2)"
    extensions = (".ov2",)
    write_characteristics = frozenset({RouteCharacteristics.WAYPOINTS})

    def is_degenerate(self, position: NavigationPosition) -> bool:
        return is_empty(position.longitude) and is_empty(position.latitude)

    def parse(self, data: bytes, start_date: Optional[datetime]) -> Optional[list[NavigationRoute]]:
        positions = []
        offset = 0
        while offset < len(data):
            if len(data) - offset < RECORD_HEADER.size:
                logger.debug(f"{self.name}: truncated record at {offset}")
                return None
            record_type, length = RECORD_HEADER.unpack_from(data, offset)
            end = offset + length
            if length < RECORD_HEADER.size or end > len(data):
                logger.debug(f"{self.name}: bad record length {length} at {offset}")
                return None

            if record_type == SKIPPER_RECORD:
                if length != SKIPPER_LENGTH:
                    return None
            elif record_type in (SIMPLE_POI_RECORD, EXTENDED_POI_RECORD):
                position = self._parse_poi(data[offset:end])
                if position is None:
                    return None
                positions.append(position)
            elif record_type != DELETED_RECORD:
                logger.debug(f"{self.name}: unknown record type {record_type} at {offset}")
                return None
            offset = end

        if not positions:
            return None
        return [self.create_route(RouteCharacteristics.WAYPOINTS, positions)]

    def _parse_poi(self, record: bytes) -> Optional[NavigationPosition]:
        if len(record) < POI_MINIMUM_LENGTH:
            return None
        longitude, latitude = POI_COORDINATES.unpack_from(record, RECORD_HEADER.size)
        text = record[RECORD_HEADER.size + POI_COORDINATES.size:]
        terminator = text.find(b"\0")
        if terminator < 0:
            logger.debug(f"{self.name}: unterminated POI name")
            return None
        comment = text[:terminator].decode(ENCODING).strip() or None
        return self.create_position(longitude / COORDINATE_FACTOR, latitude / COORDINATE_FACTOR,
                                    comment=comment)

    def write_routes(self, routes: list[NavigationRoute]) -> bytes:
        records = []
        for index, position in enumerate(routes[0]):
            if not position.has_coordinates():
                logger.debug(f"{self.name}: skipping position {index} without coordinates")
                continue
            name = (position.comment or "").encode(ENCODING, errors="replace").replace(b"\0", b" ") + b"\0"
            longitude = int(round_half_away(max(-180.0, min(180.0, position.longitude)) * COORDINATE_FACTOR))
            latitude = int(round_half_away(max(-90.0, min(90.0, position.latitude)) * COORDINATE_FACTOR))
            length = RECORD_HEADER.size + POI_COORDINATES.size + len(name)
            records.append(RECORD_HEADER.pack(SIMPLE_POI_RECORD, length)
                           + POI_COORDINATES.pack(longitude, latitude) + name)
        return b"".join(records)
