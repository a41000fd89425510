# bikeshare/trips/round_trip.py
from __future__ import annotations

from typing import Optional, Sequence

from bikeshare.hubs.hub import Hub
from bikeshare.sim.random_vars import RandomVariable, next_double
from bikeshare.sim.timebase import Simulation
from bikeshare.trips.generator import BasicTripGenerator, choose_destination
from bikeshare.util.trace import LEVEL_TRAFFIC


class RoundTripGenerator(BasicTripGenerator):
    """
    Riders leave `hub`, stay at the destination for a `wait` drawn from
    its random variable, then ride back to `hub`.

    `return_overflow_prob` is the chance the returning riders leave their
    bicycles in the overflow area.
    """

    def __init__(
        self,
        sim: Simulation,
        name: str,
        *,
        hub: Hub,
        mean: float,
        n_bikes: int = 1,
        wait: RandomVariable,
        return_overflow_prob: float = 0.0,
        dest_hubs: Sequence[Hub],
        weights: Sequence[float],
        overflow_probs: Optional[Sequence[float]] = None,
        initial_delay: float = 0.0,
    ):
        super().__init__(
            sim,
            name,
            hub=hub,
            mean=mean,
            n_bikes=n_bikes,
            dest_hubs=dest_hubs,
            weights=weights,
            overflow_probs=overflow_probs,
            initial_delay=initial_delay,
        )
        self.wait = wait
        self.return_overflow_prob = float(return_overflow_prob)

    def action(self) -> bool:
        dest = choose_destination(self.dests)
        trip_id = self.create_trip_id()
        wait = max(0.0, self.wait.next())
        will_overflow = next_double() < dest.overflow_prob
        will_overflow_back = next_double() < self.return_overflow_prob
        self.trace(LEVEL_TRAFFIC, "sending %d bike-share users from %s to %s, intending to use the %s",
                   self.n_bikes, self.hub.name, dest.hub.name,
                   "overflow area" if will_overflow else "preferred area")

        def returned():
            self._fire("trip_ended", trip_id, self.hub)

        def ride_back():
            rd = dest.hub.send_users(self.hub, self.n_bikes, will_overflow_back, returned, self.prob_function)
            if rd is not None:
                self._fire("trip_pause_end", trip_id, dest.hub, rd)
            else:
                self._fire("trip_failed_midstream", trip_id, dest.hub)

        def arrived():
            self._fire("trip_pause_start", trip_id, dest.hub)
            self.sim.schedule_call(ride_back, wait)

        d = self.hub.send_users(dest.hub, self.n_bikes, will_overflow, arrived, self.prob_function)
        if d is not None:
            self._fire("trip_started", trip_id, self.hub, d)
        else:
            self._fire("trip_failed_at_start", trip_id, self.hub)
        return True
