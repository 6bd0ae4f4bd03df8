"""
GPS Exchange Format 1.0 and 1.1, read and written with gpxpy.

Waypoints become one Waypoints route, every <rte> a Route and every track
segment a Track. Positions keep the gpxpy point they were read from and
routes keep their gpxpy container, so elements the position model has no
field for survive a write back to the same GPX version.
"""

import copy
import logging
import re
from datetime import datetime
from typing import NamedTuple, Optional

import gpxpy
import gpxpy.gpx

from ..conversion import kmh_to_ms, ms_to_kmh, to_utc, trim
from ..position import NavigationPosition
from ..route import NavigationRoute, RouteCharacteristics
from .base import NavigationFormat

logger = logging.getLogger(__name__)

GPX_ROOT_PATTERN = re.compile(r"<(?:\w+:)?gpx[\s>]")
XML_ENCODING_PATTERN = re.compile(rb"<\?xml[^>]*?encoding\s*=\s*[\"']([A-Za-z0-9._:-]+)[\"']")
ENCODING_ATTRIBUTE_PATTERN = re.compile(r"(<\?xml[^>]*?)\s+encoding\s*=\s*[\"'][^\"']*[\"']")
INTEGER_ELEMENTS = {"sat", "dgpsid"}
NUMERIC_ELEMENT_PATTERN = re.compile(
    r"<((?:\w+:)?(ele|speed|course|magvar|geoidheight|hdop|vdop|pdop|ageofdgpsdata|sat|dgpsid))>"
    r"([^<]*)</\1>"
)
CREATOR = "navconv"
DOCUMENT_ATTRIBUTES = ("name", "description", "author_name", "author_email",
                       "link", "link_text", "keywords")
CONTAINER_ATTRIBUTES = ("comment", "description", "source", "link", "link_text", "number", "type")


class GpxOrigin(NamedTuple):
    """The parsed document and the route or track a route was read from."""

    document: gpxpy.gpx.GPX
    container: object = None


def _decode(data: bytes) -> Optional[str]:
    """Text in the charset the XML declaration names, without that declaration attribute."""
    match = XML_ENCODING_PATTERN.search(data[:1024])
    encoding = match.group(1).decode("ascii") if match else "utf-8"
    if encoding.lower().replace("_", "-") in ("utf-8", "utf8"):
        encoding = "utf-8-sig"
    try:
        text = data.decode(encoding)
    except (LookupError, UnicodeDecodeError) as e:
        logger.debug(f"Cannot decode GPX as {encoding}: {e}")
        return None
    return ENCODING_ATTRIBUTE_PATTERN.sub(r"\1", text, count=1)


def _drop_malformed_numbers(text: str) -> str:
    """Remove numeric elements gpxpy would reject so their point survives."""
    def check(match):
        convert = int if match.group(2) in INTEGER_ELEMENTS else float
        try:
            convert(match.group(3).strip())
        except ValueError:
            logger.debug(f"Skipping malformed <{match.group(1)}> value '{match.group(3)}'")
            return ""
        return match.group(0)

    return NUMERIC_ELEMENT_PATTERN.sub(check, text)


def _copy_attributes(source, target, names) -> None:
    for name in names:
        if hasattr(source, name) and hasattr(target, name):
            setattr(target, name, getattr(source, name))


class Gpx11Format(NavigationFormat):
    name = "gpx11"
    display_name = "GPS Exchange Format 1.1 (*.gpx)"
    extensions = (".gpx",)
    supports_multiple_routes = True
    version = "1.1"

    def accepts_version(self, version: Optional[str]) -> bool:
        return version in (None, self.version)

    def parse(self, data: bytes, start_date: Optional[datetime]) -> Optional[list[NavigationRoute]]:
        text = _decode(data)
        if text is None or not GPX_ROOT_PATTERN.search(text[:4096]):
            return None
        try:
            document = gpxpy.parse(_drop_malformed_numbers(text))
        except gpxpy.gpx.GPXException as e:
            logger.debug(f"{self.name}: {e}")
            return None
        if not self.accepts_version(document.version):
            logger.debug(f"{self.name}: document is GPX {document.version}")
            return None

        routes = []
        if document.waypoints:
            route = self.create_route(RouteCharacteristics.WAYPOINTS,
                                      [self._position(point) for point in document.waypoints],
                                      document.name)
            route.origins[self.name] = GpxOrigin(document)
            routes.append(route)
        for gpx_route in document.routes:
            route = self.create_route(RouteCharacteristics.ROUTE,
                                      [self._position(point) for point in gpx_route.points],
                                      gpx_route.name)
            route.origins[self.name] = GpxOrigin(document, gpx_route)
            routes.append(route)
        for track in document.tracks:
            for segment in track.segments:
                route = self.create_route(RouteCharacteristics.TRACK,
                                          [self._position(point) for point in segment.points],
                                          track.name)
                route.origins[self.name] = GpxOrigin(document, track)
                routes.append(route)
        return routes

    def _position(self, point) -> NavigationPosition:
        comment = trim(point.name) or trim(point.description) or trim(point.comment)
        position = self.create_position(
            point.longitude,
            point.latitude,
            point.elevation,
            ms_to_kmh(getattr(point, "speed", None)),
            to_utc(point.time),
            comment,
            getattr(point, "course", None),
        )
        position.set_origin(self.name, point)
        return position

    def _point(self, point_class, position: NavigationPosition):
        origin = position.get_origin(self.name)
        if isinstance(origin, point_class):
            point = copy.copy(origin)
            if origin.name is None and trim(origin.description):
                point.description = position.comment
            else:
                point.name = position.comment
        else:
            point = point_class()
            point.name = position.comment
        point.latitude = position.latitude
        point.longitude = position.longitude
        point.elevation = position.elevation
        point.time = to_utc(position.time)
        # keep the stored m/s value unless the speed was edited
        if hasattr(point, "speed") and ms_to_kmh(point.speed) != position.speed:
            point.speed = kmh_to_ms(position.speed)
        if hasattr(point, "course"):
            point.course = position.heading
        return point

    def _points(self, point_class, route: NavigationRoute) -> list:
        points = []
        for index, position in enumerate(route):
            if not position.has_coordinates():
                logger.debug(f"{self.name}: skipping position {index} without coordinates")
                continue
            points.append(self._point(point_class, position))
        return points

    def write_routes(self, routes: list[NavigationRoute]) -> bytes:
        document = gpxpy.gpx.GPX()
        document.creator = CREATOR
        origins = [route.origins.get(self.name) for route in routes]
        source = next((origin.document for origin in origins if origin is not None), None)
        if source is not None:
            _copy_attributes(source, document, DOCUMENT_ATTRIBUTES)
            document.creator = source.creator or CREATOR

        for route, origin in zip(routes, origins):
            container = origin.container if origin is not None else None
            if route.characteristics is RouteCharacteristics.WAYPOINTS:
                document.waypoints.extend(self._points(gpxpy.gpx.GPXWaypoint, route))
                if document.name is None:
                    document.name = route.name
            elif route.characteristics is RouteCharacteristics.ROUTE:
                gpx_route = gpxpy.gpx.GPXRoute()
                if isinstance(container, gpxpy.gpx.GPXRoute):
                    _copy_attributes(container, gpx_route, CONTAINER_ATTRIBUTES)
                gpx_route.name = route.name
                gpx_route.points.extend(self._points(gpxpy.gpx.GPXRoutePoint, route))
                document.routes.append(gpx_route)
            else:
                track = gpxpy.gpx.GPXTrack()
                if isinstance(container, gpxpy.gpx.GPXTrack):
                    _copy_attributes(container, track, CONTAINER_ATTRIBUTES)
                track.name = route.name
                segment = gpxpy.gpx.GPXTrackSegment()
                segment.points.extend(self._points(gpxpy.gpx.GPXTrackPoint, route))
                track.segments.append(segment)
                document.tracks.append(track)

        return document.to_xml(version=self.version).encode("utf-8")


class Gpx10Format(Gpx11Format):
    name = "gpx10"
    display_name = "GPS Exchange Format 1.0 (*.gpx)"
    version = "1.0"

    def accepts_version(self, version: Optional[str]) -> bool:
        return version == self.version
