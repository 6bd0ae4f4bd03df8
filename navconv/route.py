"""
Route model: an ordered, editable sequence of positions.

A route knows the format it was parsed from (or will be written to), its
characteristic and a bag of per-route origins keyed by format name. It keeps
a snapshot of its as-parsed positions so edits can be reverted.
"""

import logging
import math
from enum import Enum
from typing import Iterable, Iterator, Optional

from .conversion import EARTH_RADIUS
from .position import CoordinateKind, NavigationPosition
from .ranges import ContinuousRange, RangeOperation

logger = logging.getLogger(__name__)


class RouteCharacteristics(Enum):
    ROUTE = "Route"
    TRACK = "Track"
    WAYPOINTS = "Waypoints"


class _RemoveIndices(RangeOperation):
    def __init__(self, positions: list):
        self.positions = positions

    def perform_on_index(self, index: int) -> None:
        del self.positions[index]


class _MoveUp(RangeOperation):
    """Swaps each run with the position above it; a run at the top stays."""

    def __init__(self, positions: list):
        self.positions = positions
        self.moved: list[int] = []

    def perform_on_index(self, index: int) -> None:
        pass

    def perform_on_range(self, first_index: int, last_index: int) -> None:
        if first_index > 0:
            self.positions.insert(last_index, self.positions.pop(first_index - 1))
            first_index, last_index = first_index - 1, last_index - 1
        self.moved.extend(range(first_index, last_index + 1))


class _MoveDown(RangeOperation):
    """Swaps each run with the position below it; a run at the bottom stays."""

    def __init__(self, positions: list):
        self.positions = positions
        self.moved: list[int] = []

    def perform_on_index(self, index: int) -> None:
        pass

    def perform_on_range(self, first_index: int, last_index: int) -> None:
        if last_index < len(self.positions) - 1:
            self.positions.insert(first_index, self.positions.pop(last_index + 1))
            first_index, last_index = first_index + 1, last_index + 1
        self.moved.extend(range(first_index, last_index + 1))


class _CutRanges(RangeOperation):
    """Removes whole runs, collecting them for reinsertion elsewhere."""

    def __init__(self, positions: list):
        self.positions = positions
        self.cut: list = []

    def perform_on_index(self, index: int) -> None:
        pass

    def perform_on_range(self, first_index: int, last_index: int) -> None:
        self.cut[0:0] = self.positions[first_index:last_index + 1]
        del self.positions[first_index:last_index + 1]


class _InsertRuns(RangeOperation):
    """Inserts a block run by run so its members end up at the visited indices."""

    def __init__(self, positions: list, block: list):
        self.positions = positions
        self.block = block
        self.taken = 0

    def perform_on_index(self, index: int) -> None:
        pass

    def perform_on_range(self, first_index: int, last_index: int) -> None:
        count = last_index - first_index + 1
        self.positions[first_index:first_index] = self.block[self.taken:self.taken + count]
        self.taken += count


def _perpendicular_distance(position: NavigationPosition, start: NavigationPosition,
                            end: NavigationPosition) -> Optional[float]:
    """Metres from position to the chord start-end."""
    if all(p.kind is CoordinateKind.PROJECTED for p in (position, start, end)):
        if None in (position.x, position.y, start.x, start.y, end.x, end.y):
            return None
        px, py = position.x - start.x, position.y - start.y
        ex, ey = end.x - start.x, end.y - start.y
    else:
        if not all(p.has_coordinates() for p in (position, start, end)):
            return None
        # local equirectangular plane around the chord start
        scale = math.radians(1) * EARTH_RADIUS
        cos_latitude = math.cos(math.radians(start.latitude))
        px = (position.longitude - start.longitude) * cos_latitude * scale
        py = (position.latitude - start.latitude) * scale
        ex = (end.longitude - start.longitude) * cos_latitude * scale
        ey = (end.latitude - start.latitude) * scale

    length_squared = ex * ex + ey * ey
    if length_squared == 0:
        return math.hypot(px, py)
    t = max(0.0, min(1.0, (px * ex + py * ey) / length_squared))
    return math.hypot(px - t * ex, py - t * ey)


class NavigationRoute:
    """Ordered positions plus format, characteristic, name and origins."""

    def __init__(self, format, characteristics: RouteCharacteristics = RouteCharacteristics.ROUTE,
                 positions: Optional[Iterable[NavigationPosition]] = None, name: Optional[str] = None):
        self.format = format
        self.characteristics = characteristics
        self.name = name
        self.origins: dict = {}
        self._positions: list[NavigationPosition] = list(positions or [])
        self._snapshot = tuple(position.copy() for position in self._positions)

    def __repr__(self) -> str:
        format_name = getattr(self.format, "name", None)
        return (f"NavigationRoute(format={format_name!r}, characteristics={self.characteristics.value}, "
                f"name={self.name!r}, positions={len(self._positions)})")

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[NavigationPosition]:
        return iter(self._positions)

    # --- Sequence -----------------------------------------------------

    @property
    def position_count(self) -> int:
        return len(self._positions)

    @property
    def positions(self) -> list[NavigationPosition]:
        return list(self._positions)

    def get_position(self, index: int) -> NavigationPosition:
        return self._positions[index]

    def add(self, index: int, position: NavigationPosition) -> None:
        self._positions.insert(index, position)

    def append(self, position: NavigationPosition) -> None:
        self._positions.append(position)

    def remove(self, index: int) -> NavigationPosition:
        return self._positions.pop(index)

    def get_index(self, position: NavigationPosition) -> int:
        """Index of this very object, -1 if it is not part of the route."""
        for index, candidate in enumerate(self._positions):
            if candidate is position:
                return index
        return -1

    def get_predecessor(self, position: NavigationPosition) -> Optional[NavigationPosition]:
        index = self.get_index(position)
        return self._positions[index - 1] if index > 0 else None

    def get_successor(self, position: NavigationPosition) -> Optional[NavigationPosition]:
        index = self.get_index(position)
        if index < 0 or index + 1 >= len(self._positions):
            return None
        return self._positions[index + 1]

    # --- Geometry -----------------------------------------------------

    def get_distance(self, from_index: int, to_index: int) -> float:
        """Cumulative metres between consecutive positions from..to inclusive."""
        total = 0.0
        previous = None
        for position in self._positions[from_index:to_index + 1]:
            if not position.has_coordinates():
                continue
            if previous is not None:
                distance = previous.calculate_distance(position)
                if distance is not None:
                    total += distance
            previous = position
        return total

    def get_length(self) -> float:
        return self.get_distance(0, len(self._positions) - 1)

    def _elevation_deltas(self, from_index: int, to_index: int) -> Iterator[float]:
        previous = None
        for position in self._positions[from_index:to_index + 1]:
            if position.elevation is None:
                continue
            if previous is not None:
                yield position.elevation - previous
            previous = position.elevation

    def get_elevation_ascend(self, from_index: int, to_index: int) -> float:
        return sum(delta for delta in self._elevation_deltas(from_index, to_index) if delta > 0)

    def get_elevation_descend(self, from_index: int, to_index: int) -> float:
        return sum(-delta for delta in self._elevation_deltas(from_index, to_index) if delta < 0)

    def get_positions_within_distance_to_predecessor(self, distance: float) -> list[int]:
        """
        Indices of positions closer than `distance` metres to the last kept
        position. First and last positions are always kept.
        """
        result = []
        if len(self._positions) <= 2:
            return result
        previous = self._positions[0]
        for index in range(1, len(self._positions) - 1):
            position = self._positions[index]
            gap = previous.calculate_distance(position)
            if not position.has_coordinates() or (gap is not None and gap <= distance):
                result.append(index)
            else:
                previous = position
        return result

    def get_insignificant_positions(self, threshold: float) -> list[int]:
        """
        Douglas-Peucker: indices whose perpendicular distance to the chord of
        their enclosing kept segment stays below `threshold` metres.
        """
        count = len(self._positions)
        if count < 3:
            return []
        significant = {0, count - 1}
        segments = [(0, count - 1)]
        while segments:
            first, last = segments.pop()
            if last - first < 2:
                continue
            farthest, farthest_index = -1.0, None
            for index in range(first + 1, last):
                distance = _perpendicular_distance(self._positions[index],
                                                   self._positions[first], self._positions[last])
                if distance is not None and distance > farthest:
                    farthest, farthest_index = distance, index
            if farthest_index is not None and farthest >= threshold:
                significant.add(farthest_index)
                segments.append((first, farthest_index))
                segments.append((farthest_index, last))
        return [index for index in range(count) if index not in significant]

    # --- Edit history -------------------------------------------------

    def revert(self) -> None:
        """Restore the positions as they were parsed."""
        self._positions = [position.copy() for position in self._snapshot]

    def reverse(self) -> None:
        self._positions.reverse()

    # --- Bulk reordering ----------------------------------------------

    def _valid_indices(self, indices: Iterable[int]) -> list[int]:
        requested = set(indices)
        valid = sorted(index for index in requested if 0 <= index < len(self._positions))
        if len(valid) != len(requested):
            logger.debug(f"Ignoring out of range indices in {sorted(requested)}")
        return valid

    def top(self, indices: Iterable[int]) -> list[int]:
        """Move positions to the start, keeping their relative order."""
        operation = _CutRanges(self._positions)
        ContinuousRange(self._valid_indices(indices), operation).perform_monotonically_decreasing()
        self._positions[0:0] = operation.cut
        return list(range(len(operation.cut)))

    def bottom(self, indices: Iterable[int]) -> list[int]:
        """Move positions to the end, keeping their relative order."""
        operation = _CutRanges(self._positions)
        ContinuousRange(self._valid_indices(indices), operation).perform_monotonically_decreasing()
        start = len(self._positions)
        self._positions.extend(operation.cut)
        return list(range(start, len(self._positions)))

    def _place_block(self, block_start: int, indices: list[int]) -> list[int]:
        block = self._positions[block_start:block_start + len(indices)]
        del self._positions[block_start:block_start + len(indices)]
        ContinuousRange(indices, _InsertRuns(self._positions, block)).perform_monotonically_increasing()
        return indices

    def top_down(self, indices: Iterable[int]) -> list[int]:
        """Undo ``top``: the leading positions go back to the given indices."""
        return self._place_block(0, self._valid_indices(indices))

    def bottom_up(self, indices: Iterable[int]) -> list[int]:
        """Undo ``bottom``: the trailing positions go back to the given indices."""
        indices = self._valid_indices(indices)
        return self._place_block(len(self._positions) - len(indices), indices)

    def up(self, indices: Iterable[int]) -> list[int]:
        operation = _MoveUp(self._positions)
        ContinuousRange(self._valid_indices(indices), operation).perform_monotonically_increasing()
        return sorted(operation.moved)

    def down(self, indices: Iterable[int]) -> list[int]:
        operation = _MoveDown(self._positions)
        ContinuousRange(self._valid_indices(indices), operation).perform_monotonically_decreasing()
        return sorted(operation.moved)

    def remove_positions(self, indices: Iterable[int]) -> None:
        ContinuousRange(self._valid_indices(indices),
                        _RemoveIndices(self._positions)).perform_monotonically_decreasing()

    def remove_range(self, from_index: int, to_index: int) -> None:
        """Remove positions from_index..to_index inclusive."""
        self.remove_positions(range(from_index, to_index + 1))

    def remove_duplicates(self) -> list[int]:
        """Drop positions at the same coordinates as their predecessor."""
        duplicates = []
        for index in range(1, len(self._positions)):
            previous, position = self._positions[index - 1], self._positions[index]
            if (position.has_coordinates() and previous.has_coordinates()
                    and position.longitude == previous.longitude
                    and position.latitude == previous.latitude):
                duplicates.append(index)
        self.remove_positions(duplicates)
        return duplicates

    # --- Conversion ---------------------------------------------------

    def as_format(self, target) -> "NavigationRoute":
        """New route with every position rebuilt for the target format."""
        positions = [target.create_position_from(position) for position in self._positions]
        route = target.create_route(self.characteristics, positions, self.name)
        if target.name in self.origins:
            route.origins[target.name] = self.origins[target.name]
        return route

    def merge(self, other: "NavigationRoute", at: Optional[int] = None) -> None:
        """Insert the positions of another route, converted to this format."""
        at = len(self._positions) if at is None else at
        converted = [self.format.create_position_from(position) for position in other]
        self._positions[at:at] = converted

    def split(self, index: int) -> "NavigationRoute":
        """Cut the route at index; returns the tail as a new route."""
        tail = NavigationRoute(self.format, self.characteristics, self._positions[index:], self.name)
        del self._positions[index:]
        return tail
