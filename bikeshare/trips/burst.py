# bikeshare/trips/burst.py
"""
A single burst of demand at one hub.

Without fan-in, `n_bikes` riders leave `hub` together at the burst time,
each for a destination drawn from `other_hubs`. With fan-in the trips run
the other way: each rider leaves one of `other_hubs` early enough to reach
`hub` at about the burst time. The departure time comes from the user
domain's delay estimate for a group of `estimation_count`, scaled by
`estimation_factor` and shifted by `estimation_offset`.

Fan-in departures are individual scheduled calls. The generator keeps
their handles so stop() can cancel whatever has not left yet.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from bikeshare.hubs.hub import Hub
from bikeshare.sim.random_vars import next_double
from bikeshare.sim.timebase import ScheduledCall, Simulation
from bikeshare.trips.generator import TripGenerator, build_destinations, choose_destination
from bikeshare.util.trace import LEVEL_CONFIG, LEVEL_TRAFFIC


# ----------------------------
# Defaults / knobs
# ----------------------------
DEFAULT_ESTIMATION_COUNT = 25
DEFAULT_ESTIMATION_FACTOR = 1.0
DEFAULT_ESTIMATION_OFFSET = 0.0


class BurstTripGenerator(TripGenerator):
    def __init__(
        self,
        sim: Simulation,
        name: str,
        *,
        hub: Hub,
        time: float,
        n_bikes: int,
        other_hubs: Sequence[Hub],
        weights: Sequence[float],
        overflow_probs: Optional[Sequence[float]] = None,
        fan_in: bool = False,
        estimation_count: int = DEFAULT_ESTIMATION_COUNT,
        estimation_factor: float = DEFAULT_ESTIMATION_FACTOR,
        estimation_offset: float = DEFAULT_ESTIMATION_OFFSET,
    ):
        initial_time = sim.now
        if time < initial_time:
            raise ValueError(f"{name}: burst time {time} is before the current time {initial_time}")
        if n_bikes < 0:
            raise ValueError(f"{name}: negative burst size {n_bikes}")
        if fan_in and hub.usr_domain is None:
            raise ValueError(f"{name}: fan-in needs {hub.name} to have a user domain")
        super().__init__(sim, name, initial_delay=0.0 if fan_in else time - initial_time)

        self.hub = hub
        self.burst_time = float(time)
        self.n_bikes = int(n_bikes)
        self.fan_in = bool(fan_in)
        self.estimation_count = int(estimation_count)
        self.estimation_factor = float(estimation_factor)
        self.estimation_offset = float(estimation_offset)
        self.dests = build_destinations(other_hubs, weights, overflow_probs)

        self._pending: List[ScheduledCall] = []
        self.trips_tried = 0
        self.trips_in_progress = 0
        self.trips_failed = 0
        self.trace(LEVEL_CONFIG, "trip generator configured")

    @property
    def trips_pending(self) -> bool:
        return self.trips_tried != self.n_bikes

    @property
    def trips_completed(self) -> bool:
        return not self.trips_pending and self.trips_in_progress == 0

    @property
    def pending_departures(self) -> int:
        return sum(1 for handle in self._pending if handle.pending)

    # ----------------------------
    # Running
    # ----------------------------
    def next_interval(self) -> float:
        return self.burst_time - self.sim.now

    def restart(self) -> None:
        if self._started:
            return
        super().restart()
        if self.fan_in:
            self._schedule_departures()

    def stop(self) -> None:
        super().stop()
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()

    def _schedule_departures(self) -> None:
        d = self.hub.usr_domain
        for _ in range(self.n_bikes):
            other = choose_destination(self.dests).hub
            delay = d.estimate_delay(other, self.hub, self.estimation_count)
            delay = delay * self.estimation_factor + self.estimation_offset
            start = max(0.0, self.burst_time - delay - self.sim.now)
            handle = self.sim.schedule_call(
                lambda other=other: self._start_one_trip(other, False, reverse=True), start
            )
            self._pending.append(handle)

    def action(self) -> bool:
        if self.fan_in:
            self._pending = [handle for handle in self._pending if handle.pending]
        else:
            for _ in range(self.n_bikes):
                dest = choose_destination(self.dests)
                will_overflow = next_double() < dest.overflow_prob
                self._start_one_trip(dest.hub, will_overflow, reverse=False)
        return False

    def _start_one_trip(self, other: Hub, will_overflow: bool, *, reverse: bool) -> None:
        trip_id = self.create_trip_id()
        src, dest = (other, self.hub) if reverse else (self.hub, other)
        self.trace(LEVEL_TRAFFIC, "sending 1 bike-share user from %s to %s, intending to use the %s",
                   src.name, dest.name, "overflow area" if will_overflow else "preferred area")
        self.trips_tried += 1

        def arrived():
            self.trips_in_progress -= 1
            self._fire("trip_ended", trip_id, dest)

        d = src.send_users(dest, 1, will_overflow, arrived, self.prob_function)
        if d is not None:
            self.trips_in_progress += 1
            self._fire("trip_started", trip_id, src, d)
        else:
            self.trips_failed += 1
            self._fire("trip_failed_at_start", trip_id, src)
