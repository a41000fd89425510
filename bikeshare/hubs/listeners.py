# bikeshare/hubs/listeners.py
"""
Listener kinds used by hubs, workers and trip generators.

Each kind is a small class whose methods do nothing; subclass it and
override what you need. Hubs, workers and trip generators keep an ordered
list of listeners per kind and call them in registration order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bikeshare.hubs.domain import HubDomain
    from bikeshare.hubs.hub import Hub
    from bikeshare.workers.worker import HubWorker


class HubListener:
    """Told when a hub's need, excess or overflow may have changed."""

    def hub_changed(self, hub: "Hub", need: int, excess: int, overflow: int) -> None:
        pass


class HubDataListener:
    """Raw count changes, for instrumentation."""

    def hub_changed(
        self,
        hub: "Hub",
        bike_count: int,
        new_bike_count: bool,
        overflow: int,
        new_overflow: bool,
        time: float,
    ) -> None:
        pass


class HubWorkerListener:
    def dequeued(self, worker: "HubWorker", time: float, hub: "Hub") -> None:
        pass

    def entered_hub(self, worker: "HubWorker", time: float, hub: "Hub") -> None:
        pass

    def fixing_overflows(self, worker: "HubWorker", time: float, hub: "Hub") -> None:
        pass

    def fixing_preferred(self, worker: "HubWorker", time: float, hub: "Hub") -> None:
        pass

    def left_hub(self, worker: "HubWorker", time: float, hub: "Hub") -> None:
        pass

    def queued(self, worker: "HubWorker", time: float, hub: "Hub") -> None:
        pass

    def changed_count(
        self, worker: "HubWorker", time: float, hub: "Hub", old_count: int, new_count: int
    ) -> None:
        pass


class TripDataListener:
    def trip_started(self, trip_id: int, time: float, hub: "Hub", domain: "HubDomain") -> None:
        pass

    def trip_pause_start(self, trip_id: int, time: float, hub: "Hub") -> None:
        pass

    def trip_pause_end(self, trip_id: int, time: float, hub: "Hub", domain: "HubDomain") -> None:
        pass

    def trip_ended(self, trip_id: int, time: float, hub: "Hub") -> None:
        pass

    def trip_failed_at_start(self, trip_id: int, time: float, hub: "Hub") -> None:
        pass

    def trip_failed_midstream(self, trip_id: int, time: float, hub: "Hub") -> None:
        pass
