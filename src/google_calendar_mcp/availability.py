"""
Free/busy computation over a query window.

Turns an unordered list of possibly overlapping busy intervals into an ordered
sequence of free and busy time slots that exactly tiles the query window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List

from .errors import MalformedInterval
from .models import format_rfc3339

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Interval:
    """A time range between two timezone-aware instants."""

    start: datetime
    end: datetime


# Aliases naming the role an interval plays in a computation.
BusyInterval = Interval
QueryWindow = Interval


@dataclass(frozen=True, slots=True)
class TimeSlot:
    """A time range labelled free or busy."""

    start: datetime
    end: datetime
    free: bool

    def to_dict(self) -> dict[str, str | bool]:
        """Serialize to dictionary for API responses."""
        return {
            "start": format_rfc3339(self.start),
            "end": format_rfc3339(self.end),
            "free": self.free,
        }


class AvailabilityCalculator:
    """Derives free and busy slots from busy intervals.

    The output is sorted, contiguous and covers the whole window. Adjacent
    slots never share the same label: overlapping or abutting busy intervals
    collapse into a single busy slot.
    """

    def compute(
        self, window: QueryWindow, busy: Iterable[BusyInterval]
    ) -> List[TimeSlot]:
        """Computes the slot sequence for a window.

        Args:
            window: Query range. Callers must ensure start < end; an empty
                or inverted window yields no slots, whatever
                the busy input.
            busy: Busy intervals in any order.

        Returns:
            List[TimeSlot]: Slots tiling ``[window.start, window.end)``.

        Raises:
            MalformedInterval: if any busy interval ends before it starts.
        """
        if window.end <= window.start:
            return []

        busy = list(busy)
        for index, interval in enumerate(busy):
            if interval.start > interval.end:
                raise MalformedInterval(index, interval.start, interval.end)

        clipped = sorted(
            (max(interval.start, window.start), min(interval.end, window.end))
            for interval in busy
            if interval.end > window.start and interval.start < window.end
        )

        slots: List[TimeSlot] = []
        cursor = window.start

        for start, end in clipped:
            # Zero-length or already covered
            if end <= cursor or start == end:
                continue

            if start > cursor:
                slots.append(TimeSlot(start=cursor, end=start, free=True))

            busy_start = max(cursor, start)
            if slots and not slots[-1].free and slots[-1].end >= busy_start:
                slots[-1] = TimeSlot(start=slots[-1].start, end=end, free=False)
            else:
                slots.append(TimeSlot(start=busy_start, end=end, free=False))

            cursor = end

        if cursor < window.end:
            slots.append(TimeSlot(start=cursor, end=window.end, free=True))

        logger.debug(
            "Computed %d slots for %s - %s from %d busy intervals",
            len(slots),
            window.start,
            window.end,
            len(busy),
        )
        return slots


def compute_time_slots(
    window: QueryWindow, busy: Iterable[BusyInterval]
) -> List[TimeSlot]:
    """Shortcut for ``AvailabilityCalculator().compute``."""
    return AvailabilityCalculator().compute(window, busy)


__all__ = [
    "Interval",
    "BusyInterval",
    "QueryWindow",
    "TimeSlot",
    "AvailabilityCalculator",
    "compute_time_slots",
]
