# bikeshare/sim/objects.py
from __future__ import annotations

from bikeshare.sim.timebase import Simulation
from bikeshare.util.trace import trace


class SimObject:
    """A named object living in a Simulation."""

    def __init__(self, sim: Simulation, name: str):
        self.sim = sim
        self.name = str(name)

    def trace(self, level: int, fmt: str, *args) -> None:
        trace(level, self.sim.now, self.name, fmt, *args)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
