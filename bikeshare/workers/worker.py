# bikeshare/workers/worker.py
"""
Hub workers: mobile agents that move bicycles between hubs.

A worker belongs to one storage hub and runs one of six modes:

  LOOP / VISIT                         balance toward nominal
  LOOP_WITH_PICKUP / VISIT_WITH_PICKUP balance, also emptying overflow areas
  LOOP_TO_FIX_OVERFLOWS / VISIT_...    move overflow into the preferred area

LOOP modes repeat forever, paced to a period; VISIT modes run one pass and
re-queue the worker at its storage hub.

Each pass is a simpy routine (a generator). Travel and overflow pickup
suspend the routine with `yield sim.pause(...)`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Generator, List, Optional, Tuple

from bikeshare.hubs.hub import Hub
from bikeshare.hubs.listeners import HubWorkerListener
from bikeshare.hubs.storage import StorageHub
from bikeshare.sim.objects import SimObject
from bikeshare.sim.timebase import Simulation
from bikeshare.util.trace import LEVEL_ACTIONS, LEVEL_TRAFFIC, LEVEL_WORKERS
from bikeshare.workers.types import HubSorter, WorkerMode, WorkerMove

if TYPE_CHECKING:
    from bikeshare.hubs.domain import SysDomain


# mode -> (pass routine, loops forever)
_DISPATCH: Dict[WorkerMode, Tuple[str, bool]] = {
    WorkerMode.LOOP: ("_balance_pass", True),
    WorkerMode.VISIT: ("_balance_pass", False),
    WorkerMode.LOOP_WITH_PICKUP: ("_pickup_pass", True),
    WorkerMode.VISIT_WITH_PICKUP: ("_pickup_pass", False),
    WorkerMode.LOOP_TO_FIX_OVERFLOWS: ("_fix_overflows_pass", True),
    WorkerMode.VISIT_TO_FIX_OVERFLOWS: ("_fix_overflows_pass", False),
}


class HubWorker(SimObject):
    def __init__(
        self,
        sim: Simulation,
        name: str,
        *,
        capacity: int,
        storage_hub: StorageHub,
        domain: "SysDomain",
        current_hub: Optional[Hub] = None,
    ):
        super().__init__(sim, name)
        if capacity < 0:
            raise ValueError(f"{name}: negative capacity {capacity}")
        self.capacity = int(capacity)
        self.bike_count = 0
        self.domain = domain

        self.storage_hub: Optional[StorageHub] = None
        self.current_hub: Optional[Hub] = None
        self.running = False
        self.mode: Optional[WorkerMode] = None
        self.current_hubs: Optional[List[Hub]] = None

        # set by StorageHub while relocating between depots
        self.moving = False
        self.move_completion_time = 0.0

        self.moves: List[WorkerMove] = []
        self._listeners: List[HubWorkerListener] = []

        storage_hub.add_worker(self)
        self.current_hub = storage_hub if current_hub is None else current_hub

    # ----------------------------
    # Storage hub bookkeeping
    # ----------------------------
    def set_storage_hub(self, shub: Optional[StorageHub]) -> None:
        if self.current_hub is self.storage_hub and shub is None and self.storage_hub is not None:
            self._fire("left_hub", self.storage_hub)
        if self.current_hub is not None and shub is not None and isinstance(self.current_hub, StorageHub):
            self._fire("entered_hub", shub)
            self.current_hub = shub
        self.storage_hub = shub

    # ----------------------------
    # Listeners
    # ----------------------------
    def add_listener(self, listener: HubWorkerListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: HubWorkerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _fire(self, event: str, hub: Hub, *args) -> None:
        now = self.sim.now
        for listener in list(self._listeners):
            getattr(listener, event)(self, now, hub, *args)

    def fire_dequeued(self, hub: Hub) -> None:
        self._fire("dequeued", hub)

    def fire_queued(self, hub: Hub) -> None:
        self._fire("queued", hub)

    def _change_count(self, hub: Hub, delta: int) -> None:
        old = self.bike_count
        self.bike_count += delta
        self._fire("changed_count", hub, old, self.bike_count)

    # ----------------------------
    # Start
    # ----------------------------
    def start(
        self,
        mode: Optional[WorkerMode],
        sorter: HubSorter,
        period: float = 0.0,
        offset: float = 0.0,
    ) -> None:
        """
        Start the worker. LOOP modes begin after `period`, wait a further
        `offset`, then repeat their pass at most once per `period`.
        """
        if self.running:
            raise RuntimeError(f"{self.name}: already running")
        if self.storage_hub is None:
            raise RuntimeError(f"{self.name}: no storage hub")
        if mode is None:
            mode = WorkerMode.LOOP
        pass_name, looping = _DISPATCH[mode]
        if looping and period <= 0.0:
            raise ValueError(f"{self.name}: {mode.name} needs a positive period, got {period}")

        self.mode = mode
        self.running = True
        self.current_hubs = list(sorter.hubs)
        self.trace(LEVEL_WORKERS, "started %s, servicing %d hubs", mode.name, len(self.current_hubs))

        run_pass = getattr(self, pass_name)
        if looping:
            self.sim.schedule_task(self._loop(run_pass, sorter, period, offset), period)
        else:
            self.sim.schedule_task(self._visit(run_pass, sorter))

    def _loop(self, run_pass, sorter: HubSorter, period: float, offset: float) -> Generator:
        if offset > 0.0:
            yield self.sim.pause(offset)
        if self.current_hub is self.storage_hub:
            self._load_bikes(sorter)
        while True:
            started = self.sim.now
            yield from run_pass(sorter)
            yield from self._return_to_storage()
            interval = self.sim.now - started
            if period > interval:
                self._store_bikes()
                yield self.sim.pause(period - interval)
                self._load_bikes(sorter)

    def _visit(self, run_pass, sorter: HubSorter) -> Generator:
        if self.current_hub is self.storage_hub:
            self._load_bikes(sorter)
        yield from run_pass(sorter)
        yield from self._return_to_storage()
        self._store_bikes()

        shub = self.storage_hub
        self.running = False
        self.mode = None
        self.current_hubs = None
        self.trace(LEVEL_WORKERS, "finished, returning to queue")
        # may start this worker again right away
        shub.queue_worker(self)

    # ----------------------------
    # Storage hub loading
    # ----------------------------
    def _load_bikes(self, sorter: HubSorter) -> None:
        shub = self.storage_hub
        m = sorter.initial_count_estimate()
        n = max(0, shub.bike_count - shub.nominal)
        if m < 0:
            n = 0
        elif m < n:
            n = m
        n = min(n, self.capacity - self.bike_count)
        self._change_count(shub, shub.decr_bike_count(n))
        self.trace(LEVEL_ACTIONS, "took %d bicycles from storage hub %s, worker bicycle count = %d",
                   n, shub.name, self.bike_count)

    def _store_bikes(self) -> None:
        shub = self.storage_hub
        change = shub.incr_bike_count(self.bike_count)
        self._change_count(shub, -change)
        self.trace(LEVEL_ACTIONS, "added %d bicycles to storage hub %s, worker bicycle count = %d",
                   change, shub.name, self.bike_count)

    # ----------------------------
    # Travel
    # ----------------------------
    def _travel(self, hub: Hub, *, always: bool = False) -> Generator:
        origin = self.current_hub
        moving = origin is not hub
        if moving:
            self._fire("left_hub", origin)
        delay = self.domain.get_delay(origin, hub, 1)
        self.trace(LEVEL_ACTIONS, "moving from %s to %s, delay = %g", origin.name, hub.name, delay)
        if delay > 0.0 or always:
            yield self.sim.pause(delay)
        self.current_hub = hub
        if moving:
            self.moves.append(WorkerMove(
                time=self.sim.now,
                worker=self.name,
                from_hub=origin.name,
                to_hub=hub.name,
                bikes=self.bike_count,
                mode=self.mode.value if self.mode is not None else None,
            ))
            self._fire("entered_hub", hub)

    def _return_to_storage(self) -> Generator:
        shub = self.storage_hub
        if self.current_hub is shub:
            self.trace(LEVEL_ACTIONS, "already at storage hub %s", shub.name)
            return
        yield from self._travel(shub, always=True)
        self.trace(LEVEL_ACTIONS, "at storage hub %s", shub.name)

    def _clip_take(self, take: int) -> int:
        if take > 0:
            return min(take, self.capacity - self.bike_count)
        return max(take, -self.bike_count)

    def _pickup(self, hub: Hub, n: int) -> Generator:
        self._fire("fixing_overflows", hub)
        self._change_count(hub, n)
        self.trace(LEVEL_ACTIONS, "at hub %s, picking up %d bicycles from the overflow area", hub.name, n)
        yield self.sim.pause(hub.pickup_overflow(n))

    def _rebalance_at(self, hub: Hub) -> None:
        take = self._clip_take(hub.bike_count - hub.nominal)
        self._fire("fixing_preferred", hub)
        self._change_count(hub, take)
        self.trace(LEVEL_ACTIONS, "at hub %s, bikes before change = %d", hub.name, hub.bike_count)
        hub.decr_bike_count(take)
        self.trace(LEVEL_ACTIONS, "at hub %s after change, worker bikes = %d, hub bikes = %d",
                   hub.name, self.bike_count, hub.bike_count)

    # ----------------------------
    # Passes
    # ----------------------------
    def _balance_pass(self, sorter: HubSorter) -> Generator:
        yield from self._alternate(sorter, pickup=False)

    def _pickup_pass(self, sorter: HubSorter) -> Generator:
        yield from self._alternate(sorter, pickup=True)

    def _alternate(self, sorter: HubSorter, *, pickup: bool) -> Generator:
        """
        Alternate between hubs over nominal (take bicycles) and hubs under
        nominal (leave bicycles). The amount moved is recomputed on arrival
        since hubs keep changing while the worker travels.
        """
        self.trace(LEVEL_WORKERS, "started pass, nbikes = %d", self.bike_count)
        sorter.sort()
        over = list(sorter.over_nominal)
        under = list(sorter.under_nominal)
        index1 = index2 = 0
        tmode = True

        while index1 < len(over) or index2 < len(under):
            hub1 = over[index1] if index1 < len(over) else None
            hub2 = under[index2] if index2 < len(under) else None
            hub = hub1 if tmode else hub2
            if hub is None:
                tmode = not tmode
                continue

            take = hub.bike_count - hub.nominal
            if pickup and tmode:
                take += hub.overflow
            self.trace(LEVEL_TRAFFIC, "chose %s, take = %d, tmode = %s", hub.name, take, tmode)

            if tmode:
                if take <= 0:
                    index1 += 1
                    if index1 == len(over):
                        tmode = not tmode
                    continue
                if self.capacity - self.bike_count == 0:
                    # full: nothing more to take
                    if index2 == len(under):
                        return
                    tmode = not tmode
                    continue
            elif take >= 0:
                index2 += 1
                if index2 == len(under):
                    index1 = len(over)
                continue

            yield from self._travel(hub)

            remaining = 0
            if pickup:
                n = hub.overflow
                free = self.capacity - self.bike_count
                if n > free:
                    remaining = n - free
                    n = free
                if n > 0:
                    yield from self._pickup(hub, n)

            self._rebalance_at(hub)

            if remaining > 0:
                remaining = min(remaining, self.capacity - self.bike_count, hub.overflow)
                if remaining > 0:
                    yield from self._pickup(hub, remaining)

            if tmode:
                index1 += 1
                if index1 == len(over):
                    tmode = not tmode
            else:
                index2 += 1
                if index2 == len(under):
                    tmode = not tmode
            self.trace(LEVEL_TRAFFIC, "index1 = %d, index2 = %d, tmode = %s", index1, index2, tmode)

        self.trace(LEVEL_WORKERS, "completed pass, nbikes = %d", self.bike_count)

    def _fix_overflows_pass(self, sorter: HubSorter) -> Generator:
        """Move overflow bicycles into the preferred area, hub by hub."""
        self.trace(LEVEL_WORKERS, "started fixing overflows, nbikes = %d", self.bike_count)
        sorter.sort()
        for hub in list(sorter.hubs):
            if isinstance(hub, StorageHub):
                raise RuntimeError(f"{self.name}: storage hub {hub.name} in hub list")

            n = self._fixable(hub)
            if n <= 0:
                self.trace(LEVEL_ACTIONS, "nothing to do for hub %s, n = %d", hub.name, n)
                continue

            yield from self._travel(hub)

            n = self._fixable(hub)
            if n <= 0:
                continue
            self._fire("fixing_overflows", hub)
            hub.incr_bike_count(n)
            self._change_count(hub, n)
            self.trace(LEVEL_ACTIONS, "at hub %s, moving %d bicycles out of the overflow area", hub.name, n)
            yield self.sim.pause(hub.pickup_overflow(n))
            self._fire("fixing_preferred", hub)
            self._change_count(hub, -n)

        self.trace(LEVEL_WORKERS, "completed fixing overflows, nbikes = %d", self.bike_count)

    def _fixable(self, hub: Hub) -> int:
        return min(hub.overflow, self.capacity - self.bike_count, hub.capacity - hub.bike_count)
