# bikeshare/delays/scheduled.py
"""
Travel times from a timetable.

For each (src, dest) pair the table holds departure/arrival intervals
kept sorted by (ending_time, starting_time). A traveler ready at `time`
takes the interval with the earliest arrival among those departing at or
after `time`, preferring the latest departure when several arrive
together.
"""

from __future__ import annotations

import bisect
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from bikeshare.delays.table import DelayTable

if TYPE_CHECKING:
    from bikeshare.hubs.hub import Hub


# (ending_time, starting_time)
Interval = Tuple[float, float]


class ScheduledDelayTable(DelayTable):
    def __init__(self, sim, name):
        super().__init__(sim, name)
        self._entries: Dict[Tuple["Hub", "Hub"], List[Interval]] = {}

    def add_entry(self, src: "Hub", dest: "Hub", starting_time: float, ending_time: float) -> None:
        self._check(src, dest)
        intervals = self._entries.setdefault((src, dest), [])
        item = (float(ending_time), float(starting_time))
        idx = bisect.bisect_left(intervals, item)
        if idx < len(intervals) and intervals[idx] == item:
            return
        intervals.insert(idx, item)

    def add_entries(
        self,
        src: "Hub",
        dest: "Hub",
        initial_time: float,
        cutoff_time: float,
        period: float,
        duration: float,
    ) -> None:
        """Intervals starting at initial_time, then every `period` up to cutoff_time."""
        if period <= 0.0:
            raise ValueError(f"period must be > 0, got {period}")
        start = float(initial_time)
        while True:
            self.add_entry(src, dest, start, start + duration)
            start += period
            if start > cutoff_time:
                break

    def intervals(self, src: "Hub", dest: "Hub") -> List[Tuple[float, float]]:
        """(starting_time, ending_time) pairs in table order."""
        return [(s, e) for e, s in self._entries.get((src, dest), [])]

    def get_entry(self, src: "Hub", dest: "Hub", time: float) -> Optional[Tuple[float, float]]:
        """Returns (starting_time, ending_time) for a traveler ready at `time`, or None."""
        self._check(src, dest)
        intervals = self._entries.get((src, dest))
        if not intervals:
            return None

        i = bisect.bisect_right(intervals, (time, time))
        while i < len(intervals):
            end, start = intervals[i]
            if end <= time or start < time:
                i += 1
                continue
            while i + 1 < len(intervals) and intervals[i + 1][0] == end:
                i += 1
            end, start = intervals[i]
            return start, end
        return None

    def latest_starting_time(self, time: float, src: "Hub", dest: "Hub") -> float:
        entry = self.get_entry(src, dest, time)
        if entry is None:
            return float("-inf")
        return entry[0]

    def estimate_delay(self, time: float, src: "Hub", dest: "Hub", n: int) -> float:
        return self.get_delay(time, src, dest, n)

    def get_delay(self, time: float, src: "Hub", dest: "Hub", n: int) -> float:
        self._check(src, dest)
        if src is dest:
            return 0.0
        entry = self.get_entry(src, dest, time)
        if entry is None:
            return float("inf")
        return entry[1] - time
