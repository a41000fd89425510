# bikeshare/sim/timebase.py
"""
Simulated time base for the rebalancing engine.

Wraps a simpy Environment and exposes the small set of primitives the rest
of the package uses:

  - now                    current simulated time (seconds)
  - schedule_call(fn, d)   run fn after d seconds, returns a cancelable handle
  - schedule_init_call(fn) run fn once, right before the first run()
  - schedule_task(gen, d)  start a suspendable routine (a generator) after d
  - pause(d)               the event a routine yields to suspend for d seconds

Routines are plain generators that `yield sim.pause(delay)`; simpy drives
them, so a suspended routine never blocks any other one.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Callable, Generator, List, Optional

import simpy
from tqdm import tqdm


@dataclass
class ScheduledCall:
    """Handle for a call scheduled with Simulation.schedule_call."""
    time: float
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> bool:
        """
        Cancel the call. Returns False if it already ran or was cancelled.
        """
        if self.fired or self.cancelled:
            return False
        self.cancelled = True
        return True

    @property
    def pending(self) -> bool:
        return not (self.fired or self.cancelled)


class Simulation:
    def __init__(self, initial_time: float = 0.0):
        self.env = simpy.Environment(initial_time=initial_time)
        self._init_calls: List[Callable[[], None]] = []
        self._initialized = False
        # trip ids are unique within one simulation
        self.trip_ids = itertools.count(1)

    @property
    def now(self) -> float:
        return float(self.env.now)

    # ----------------------------
    # Scheduling
    # ----------------------------
    def _call_later(self, handle: ScheduledCall, fn: Callable[[], None], delay: float):
        if delay > 0.0:
            yield self.env.timeout(delay)
        if handle.cancelled:
            return
        handle.fired = True
        fn()

    def schedule_call(self, fn: Callable[[], None], delay: float = 0.0) -> ScheduledCall:
        if delay < 0.0:
            raise ValueError(f"negative delay: {delay}")
        handle = ScheduledCall(time=self.now + delay)
        self.env.process(self._call_later(handle, fn, delay))
        return handle

    def schedule_init_call(self, fn: Callable[[], None]) -> None:
        if self._initialized:
            fn()
        else:
            self._init_calls.append(fn)

    def _delayed(self, routine: Generator, delay: float):
        yield self.env.timeout(delay)
        yield from routine

    def schedule_task(self, routine: Generator, delay: float = 0.0) -> simpy.Process:
        if delay < 0.0:
            raise ValueError(f"negative delay: {delay}")
        if delay > 0.0:
            return self.env.process(self._delayed(routine, delay))
        return self.env.process(routine)

    def pause(self, duration: float) -> simpy.Timeout:
        if duration < 0.0:
            raise ValueError(f"negative pause: {duration}")
        return self.env.timeout(duration)

    # ----------------------------
    # Running
    # ----------------------------
    def initialize(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        calls = self._init_calls
        self._init_calls = []
        for fn in calls:
            fn()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def run(self, until: Optional[float] = None, *, progress: bool = False, steps: int = 100) -> None:
        """
        Run the simulation until the given time (or until no events remain).

        With progress=True (and a finite `until`), the run is split into
        `steps` chunks and reported with a tqdm bar.
        """
        self.initialize()

        if until is None:
            self.env.run()
            return

        until = float(until)
        if until <= self.now:
            return

        if not progress:
            self.env.run(until=until)
            return

        span = until - self.now
        chunk = span / max(1, int(steps))
        with tqdm(total=span, desc="Simulating", unit="s") as bar:
            t = self.now
            while t < until:
                nxt = min(until, t + chunk)
                self.env.run(until=nxt)
                bar.update(nxt - t)
                t = nxt
