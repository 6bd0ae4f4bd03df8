"""
Contiguous index ranges.

Bulk edits on a route (removal, moving to top or bottom, moving up or down)
work on sets of selected indices. Applying them one index at a time shifts
every later index after each step; grouping the indices into contiguous runs
and walking the runs in a fixed direction keeps the remaining indices valid.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional


class RangeOperation(ABC):
    """Callback interface driven by ContinuousRange."""

    @abstractmethod
    def perform_on_index(self, index: int) -> None:
        """Called once per index, in traversal order."""

    def perform_on_range(self, first_index: int, last_index: int) -> None:
        """Called once per contiguous run after its indices were visited."""


def revert(indices: Iterable[int]) -> list[int]:
    """Unique indices in descending order."""
    return sorted(set(indices), reverse=True)


def as_ranges(indices: Iterable[int], max_range_length: Optional[int] = None) -> list[tuple[int, int]]:
    """
    Merge indices into inclusive (first, last) runs.

    Example:
        [7, 2, 3, 4] -> [(2, 4), (7, 7)]
    """
    ranges = []
    for index in sorted(set(indices)):
        if ranges:
            first, last = ranges[-1]
            length = last - first + 1
            if index == last + 1 and (max_range_length is None or length < max_range_length):
                ranges[-1] = (first, index)
                continue
        ranges.append((index, index))
    return ranges


class ContinuousRange:
    """Applies a RangeOperation to the runs of an index set."""

    def __init__(self, indices: Iterable[int], operation: RangeOperation):
        self.indices = sorted(set(indices))
        self.operation = operation

    def perform_monotonically_increasing(self, max_range_length: Optional[int] = None) -> None:
        for first, last in as_ranges(self.indices, max_range_length):
            for index in range(first, last + 1):
                self.operation.perform_on_index(index)
            self.operation.perform_on_range(first, last)

    def perform_monotonically_decreasing(self) -> None:
        for first, last in reversed(as_ranges(self.indices)):
            for index in range(last, first - 1, -1):
                self.operation.perform_on_index(index)
            self.operation.perform_on_range(first, last)
