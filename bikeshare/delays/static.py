# bikeshare/delays/static.py
"""
Travel times from distance and speed.

Each (src, dest) pair may have an explicit entry; otherwise one is
synthesized from the hub coordinates:

    dist  = (1 - f) * euclidean + f * manhattan
    stops = round(default.stops * dist / default.distance)

A realized delay is dist / speed plus, for every stop, a wait of
Uniform(0, max_wait) with probability stop_probability. A group of n
travels at the speed of its slowest member (min of n speed draws).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Tuple

import numpy as np

from bikeshare.delays.table import DelayTable
from bikeshare.sim.random_vars import RandomVariable, mph, rng
from bikeshare.sim.timebase import Simulation
from bikeshare.util.trace import LEVEL_CONFIG

if TYPE_CHECKING:
    from bikeshare.hubs.hub import Hub


# ----------------------------
# Defaults / knobs
# ----------------------------
DEFAULT_DIST_FRACTION = 0.5
SPEED_ESTIMATE_SAMPLES = 10_000
MIN_STATIC_DELAY_TABLE_SPEED = mph(0.5)


@dataclass
class StaticEntry:
    distance: float = 0.0
    stops: int = 0
    stop_probability: float = 0.0
    max_wait: float = 0.0


class StaticDelayTable(DelayTable):
    def __init__(
        self,
        sim: Simulation,
        name: str,
        *,
        speed: RandomVariable,
        distance: float = 0.0,
        stops: int = 0,
        stop_probability: float = 0.0,
        max_wait: float = 0.0,
        dist_fraction: float = DEFAULT_DIST_FRACTION,
    ):
        super().__init__(sim, name)
        self.speed = speed
        self.speed.tighten_minimum(MIN_STATIC_DELAY_TABLE_SPEED)
        self.default_entry = StaticEntry(float(distance), int(stops), float(stop_probability), float(max_wait))
        self.dist_fraction = float(dist_fraction)
        self._entries: Dict[Tuple["Hub", "Hub"], StaticEntry] = {}
        self._estimated_speed: Dict[int, float] = {}
        self.trace(LEVEL_CONFIG, "default entry %s, dist_fraction %g", self.default_entry, self.dist_fraction)

    def add_entry(
        self,
        src: "Hub",
        dest: "Hub",
        distance: float,
        stops: int = 0,
        stop_probability: float = 0.0,
        max_wait: float = 0.0,
    ) -> None:
        self._check(src, dest)
        self._entries[(src, dest)] = StaticEntry(float(distance), int(stops), float(stop_probability), float(max_wait))

    def get_entry(self, src: "Hub", dest: "Hub") -> StaticEntry:
        self._check(src, dest)
        entry = self._entries.get((src, dest))
        if entry is not None:
            return entry

        dx = src.x - dest.x
        dy = src.y - dest.y
        euclid = math.hypot(dx, dy)
        manhattan = abs(dx) + abs(dy)
        dist = euclid * (1.0 - self.dist_fraction) + manhattan * self.dist_fraction

        default = self.default_entry
        if default.distance > 0.0:
            stops = int(round(default.stops * (dist / default.distance)))
        else:
            stops = 0
        return StaticEntry(dist, stops, default.stop_probability, default.max_wait)

    # ---- speeds ----
    def speed_sample(self, n: int) -> float:
        """Speed of a group of n: the slowest of n draws."""
        return float(self.speed.sample(max(1, int(n))).min())

    def estimated_speed(self, n: int) -> float:
        n = max(1, int(n))
        speed = self._estimated_speed.get(n)
        if speed is None:
            draws = self.speed.sample((SPEED_ESTIMATE_SAMPLES, n))
            speed = float(draws.min(axis=1).mean())
            self._estimated_speed[n] = speed
        return speed

    # ---- DelayTable ----
    def latest_starting_time(self, time: float, src: "Hub", dest: "Hub") -> float:
        return time

    def estimate_delay(self, time: float, src: "Hub", dest: "Hub", n: int) -> float:
        entry = self.get_entry(src, dest)
        delay = entry.distance / self.estimated_speed(n)
        delay += entry.stops * (entry.max_wait / 2.0) * entry.stop_probability
        return delay

    def get_delay(self, time: float, src: "Hub", dest: "Hub", n: int) -> float:
        entry = self.get_entry(src, dest)
        delay = entry.distance / self.speed_sample(n)
        if entry.stops > 0:
            g = rng()
            stopped = g.random(entry.stops) < entry.stop_probability
            delay += float(np.sum(g.random(entry.stops)[stopped]) * entry.max_wait)
        return delay
