# bikeshare/trips/generator.py
"""
Demand: trip generators create bicycle trips between hubs.

A generator calls action() at random intervals once the simulation has
started (after an optional initial delay). Every trip gets an id and is
reported to trip data listeners as it starts, pauses and ends.
"""

from __future__ import annotations

import bisect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from bikeshare.hubs.domain import HubDomain
from bikeshare.hubs.hub import Hub, ProbFunction
from bikeshare.hubs.listeners import TripDataListener
from bikeshare.sim.objects import SimObject
from bikeshare.sim.random_vars import ExponentialRV, next_double
from bikeshare.sim.timebase import ScheduledCall, Simulation
from bikeshare.util.trace import LEVEL_CONFIG, LEVEL_TRAFFIC


@dataclass
class Destination:
    hub: Hub
    cvalue: float            # cumulative probability
    overflow_prob: float     # chance riders use the overflow area


def build_destinations(
    hubs: Sequence[Hub],
    weights: Sequence[float],
    overflow_probs: Optional[Sequence[float]] = None,
) -> List[Destination]:
    if len(hubs) == 0:
        raise ValueError("at least one destination hub is required")
    if len(weights) != len(hubs):
        raise ValueError("one weight per destination hub is required")
    if overflow_probs is None:
        overflow_probs = [0.0] * len(hubs)
    elif len(overflow_probs) != len(hubs):
        raise ValueError("one overflow probability per destination hub is required")

    for w in weights:
        if w < 0.0:
            raise ValueError(f"negative weight {w}")
    total = float(sum(weights))
    if total <= 0.0:
        raise ValueError("weights must not all be zero")

    dests: List[Destination] = []
    acc = 0.0
    for hub, w, p in zip(hubs, weights, overflow_probs):
        acc += w / total
        dests.append(Destination(hub, acc, float(p)))
    return dests


def choose_destination(dests: List[Destination]) -> Destination:
    r = next_double()
    index = bisect.bisect_left([d.cvalue for d in dests], r)
    return dests[min(index, len(dests) - 1)]


class TripGenerator(SimObject, ABC):
    def __init__(self, sim: Simulation, name: str, *, initial_delay: float = 0.0):
        super().__init__(sim, name)
        self._initial_delay = 0.0
        self._initial_delay_frozen = False
        self.set_initial_delay(initial_delay)

        self.prob_function: Optional[ProbFunction] = None
        self._started = False
        self._start_call: Optional[ScheduledCall] = None
        self._event: Optional[ScheduledCall] = None
        self._listeners: List[TripDataListener] = []

        sim.schedule_init_call(self._init_call)

    def _init_call(self) -> None:
        self._start_call = self.sim.schedule_call(self.restart, self._initial_delay)
        self._initial_delay_frozen = True

    @property
    def initial_delay(self) -> float:
        return self._initial_delay

    def set_initial_delay(self, delay: float) -> None:
        if self._initial_delay_frozen:
            raise RuntimeError(f"{self.name}: initial delay cannot change once the simulation started")
        if delay < 0.0:
            raise ValueError(f"{self.name}: negative initial delay {delay}")
        self._initial_delay = float(delay)

    def create_trip_id(self) -> int:
        return next(self.sim.trip_ids)

    @abstractmethod
    def next_interval(self) -> float:
        """Seconds until the next action; negative stops the generator."""

    @abstractmethod
    def action(self) -> bool:
        """Create one trip. Returning False stops the generator."""

    # ----------------------------
    # Running
    # ----------------------------
    @property
    def running(self) -> bool:
        return self._event is not None

    def stop(self) -> None:
        if self._start_call is not None:
            # a stop before the initial delay ends also cancels the first start
            self._start_call.cancel()
            self._start_call = None
        if self._event is not None:
            self._event.cancel()
            self._event = None
            self._started = False
            self.trace(LEVEL_CONFIG, "trip generator stopped")

    def restart(self) -> None:
        if self._started:
            return
        self.trace(LEVEL_CONFIG, "trip generator started")
        self._started = True
        self._schedule_next()

    def _schedule_next(self) -> None:
        interval = self.next_interval()
        if interval >= 0.0:
            self._event = self.sim.schedule_call(self._fire_action, interval)
        else:
            self._event = None

    def _fire_action(self) -> None:
        if self.action():
            self._schedule_next()
        else:
            # still started, so restart() will not revive it
            self._event = None

    # ----------------------------
    # Listeners
    # ----------------------------
    def add_trip_data_listener(self, listener: TripDataListener) -> None:
        self._listeners.append(listener)

    def remove_trip_data_listener(self, listener: TripDataListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _fire(self, event: str, trip_id: int, *args) -> None:
        now = self.sim.now
        for listener in list(self._listeners):
            getattr(listener, event)(trip_id, now, *args)


class BasicTripGenerator(TripGenerator):
    """One-way trips from `hub`, Poisson arrivals with the given mean spacing."""

    def __init__(
        self,
        sim: Simulation,
        name: str,
        *,
        hub: Hub,
        mean: float,
        n_bikes: int = 1,
        dest_hubs: Sequence[Hub],
        weights: Sequence[float],
        overflow_probs: Optional[Sequence[float]] = None,
        initial_delay: float = 0.0,
    ):
        super().__init__(sim, name, initial_delay=initial_delay)
        if n_bikes < 0:
            raise ValueError(f"{name}: negative trip size {n_bikes}")
        if mean <= 0.0:
            raise ValueError(f"{name}: mean interarrival time must be > 0, got {mean}")
        self.hub = hub
        self.n_bikes = int(n_bikes)
        self.mean = float(mean)
        self._interarrival = ExponentialRV(self.mean)
        self.dests = build_destinations(dest_hubs, weights, overflow_probs)
        self.trace(LEVEL_CONFIG, "trip generator configured")

    def set_mean(self, mean: float) -> None:
        if mean <= 0.0:
            raise ValueError(f"{self.name}: mean interarrival time must be > 0, got {mean}")
        if mean == self.mean:
            return
        was_running = self.running
        if was_running:
            self.stop()
        self.mean = float(mean)
        self._interarrival = ExponentialRV(self.mean)
        if was_running:
            self.restart()

    def next_interval(self) -> float:
        return self._interarrival.next()

    def action(self) -> bool:
        dest = choose_destination(self.dests)
        trip_id = self.create_trip_id()
        will_overflow = next_double() < dest.overflow_prob
        self.trace(LEVEL_TRAFFIC, "sending %d users from %s to %s", self.n_bikes, self.hub.name, dest.hub.name)

        def arrived():
            self._fire("trip_ended", trip_id, dest.hub)

        d: Optional[HubDomain] = self.hub.send_users(
            dest.hub, self.n_bikes, will_overflow, arrived, self.prob_function
        )
        if d is not None:
            self._fire("trip_started", trip_id, self.hub, d)
        else:
            self._fire("trip_failed_at_start", trip_id, self.hub)
        return True
