# bikeshare/hubs/storage.py
"""
Storage hub: a depot with unbounded capacity that owns a pool of workers.

Besides its bicycle count, a storage hub keeps
  - workers        the pool (insertion ordered)
  - worker_queue   FIFO of idle workers that can be borrowed
  - a hub table    mode -> ordered list of hubs its workers visit
  - preallocation  number of permanently looping workers per loop mode
                   and the period of their loops
  - a FIFO of callables waiting for the next queued worker
"""

from __future__ import annotations

import sys
from collections import deque
from typing import TYPE_CHECKING, Callable, Deque, Dict, List, Optional

from bikeshare.hubs.hub import Hub
from bikeshare.sim.timebase import Simulation
from bikeshare.util.trace import LEVEL_WORKERS
from bikeshare.workers.types import LOOP_MODES, WorkerMode

if TYPE_CHECKING:
    from bikeshare.hubs.domain import SysDomain
    from bikeshare.workers.worker import HubWorker


UNBOUNDED = sys.maxsize


class StorageHub(Hub):
    def __init__(
        self,
        sim: Simulation,
        name: str,
        *,
        lower_trigger: int = 0,
        nominal: int = 0,
        upper_trigger: int = UNBOUNDED,
        count: Optional[int] = None,
        x: float = 0.0,
        y: float = 0.0,
        sys_domain: Optional["SysDomain"] = None,
    ):
        super().__init__(
            sim,
            name,
            capacity=UNBOUNDED,
            lower_trigger=lower_trigger,
            nominal=nominal,
            upper_trigger=upper_trigger,
            pickup_time=None,
            count=count,
            overflow=0,
            x=x,
            y=y,
            usr_domain=None,
            sys_domain=sys_domain,
        )

        self.workers: Dict["HubWorker", None] = {}
        self.worker_queue: Deque["HubWorker"] = deque()
        self._on_queue: Deque[Callable[[], None]] = deque()
        self._hub_table: Dict[WorkerMode, List[Hub]] = {}

        self._n_workers = {mode: 0 for mode in LOOP_MODES}
        self._intervals = {mode: 0.0 for mode in LOOP_MODES}
        self.total_preallocated_workers = 0

    def decr_bike_count(self, decr: int) -> int:
        """
        Storage hubs never overflow and never go below zero. Only data
        listeners are notified. Returns the amount actually removed.
        """
        decr = int(decr)
        old_count = self.bike_count
        if decr > self.bike_count:
            decr = self.bike_count
            self.bike_count = 0
        else:
            self.bike_count = min(UNBOUNDED, self.bike_count - decr)
            decr = old_count - self.bike_count
        if decr != 0:
            self.fire_hub_data_listeners(
                self.bike_count, old_count != self.bike_count, self.overflow, False
            )
        return decr

    # ----------------------------
    # Permanent (looping) workers
    # ----------------------------
    def set_initial_number_of_workers(
        self,
        n_loop: int = 0,
        n_loop_with_pickup: int = 0,
        n_loop_to_fix_overflows: int = 0,
        *,
        interval_loop: float = 0.0,
        interval_loop_with_pickup: float = 0.0,
        interval_loop_to_fix_overflows: float = 0.0,
    ) -> None:
        counts = (n_loop, n_loop_with_pickup, n_loop_to_fix_overflows)
        intervals = (interval_loop, interval_loop_with_pickup, interval_loop_to_fix_overflows)
        if any(n < 0 for n in counts) or any(t < 0 for t in intervals):
            raise ValueError(f"{self.name}: negative worker count or interval")
        for mode, n, interval in zip(LOOP_MODES, counts, intervals):
            self._n_workers[mode] = int(n)
            self._intervals[mode] = float(interval)
        self.total_preallocated_workers = sum(self._n_workers.values())

    def get_initial_number_of_workers(self, mode: WorkerMode) -> int:
        return self._n_workers.get(mode, 0)

    def get_interval(self, mode: WorkerMode) -> float:
        return self._intervals.get(mode, 0.0)

    # ----------------------------
    # Hub table
    # ----------------------------
    def add_hub(self, hub: Hub, mode: Optional[WorkerMode] = None) -> bool:
        """Add `hub` to the list for `mode` (every mode when mode is None)."""
        if isinstance(hub, StorageHub):
            return False
        if mode is None:
            for m in WorkerMode:
                self._hub_table.setdefault(m, []).append(hub)
            return True
        self._hub_table.setdefault(mode, []).append(hub)
        return True

    def remove_hub(self, hub: Hub, mode: Optional[WorkerMode] = None) -> bool:
        if isinstance(hub, StorageHub):
            return False
        modes = list(WorkerMode) if mode is None else [mode]
        result = False
        for m in modes:
            hubs = self._hub_table.get(m)
            if not hubs or hub not in hubs:
                continue
            # last occurrence
            idx = len(hubs) - 1 - hubs[::-1].index(hub)
            del hubs[idx]
            if not hubs:
                del self._hub_table[m]
            result = True
        return result

    def get_hubs(self, mode: WorkerMode) -> List[Hub]:
        return list(self._hub_table.get(mode, []))

    # ----------------------------
    # Worker pool
    # ----------------------------
    def add_worker(self, worker: "HubWorker") -> None:
        if worker is None:
            raise ValueError(f"{self.name}: worker is None")
        if worker.moving or worker.running:
            raise RuntimeError(f"{self.name}: cannot add {worker.name} while it is moving or running")

        old = worker.storage_hub
        if old is not None:
            old.remove_worker(worker)

        hub = worker.current_hub
        if hub is None or hub is self or not isinstance(hub, StorageHub):
            self._join(worker)
            self.trace(LEVEL_WORKERS, "worker %s added", worker.name)
            return

        # relocating from another depot takes time
        if self.sys_domain is None:
            raise RuntimeError(f"{self.name}: no system domain to move {worker.name} from {hub.name}")
        move_interval = self.sys_domain.get_delay(hub, self, 1)
        worker.moving = True
        worker.move_completion_time = self.sim.now + move_interval
        self.trace(LEVEL_WORKERS, "worker %s moving from %s", worker.name, hub.name)

        def arrive():
            self._join(worker)
            worker.moving = False
            self.trace(LEVEL_WORKERS, "worker %s arrived from %s", worker.name, hub.name)

        self.sim.schedule_call(arrive, move_interval)

    def _join(self, worker: "HubWorker") -> None:
        self.workers[worker] = None
        if not worker.running:
            self.worker_queue.append(worker)
        worker.set_storage_hub(self)

    def remove_worker(self, worker: "HubWorker") -> None:
        if worker.moving or worker.running:
            raise RuntimeError(f"{self.name}: cannot remove {worker.name} while it is moving or running")
        self.workers.pop(worker, None)
        while worker in self.worker_queue:
            self.worker_queue.remove(worker)
        worker.set_storage_hub(None)

    def worker_queue_not_useable(self) -> bool:
        """True when every worker in the pool is committed to a permanent loop."""
        return len(self.workers) - self.total_preallocated_workers <= 0

    def add_on_queue_callable(self, fn: Callable[[], None]) -> None:
        self.trace(LEVEL_WORKERS, "action queued until worker available")
        self._on_queue.append(fn)

    @property
    def pending_callables(self) -> int:
        return len(self._on_queue)

    def poll_workers(self) -> Optional["HubWorker"]:
        if not self.worker_queue:
            self.trace(LEVEL_WORKERS, "no workers available")
            return None
        worker = self.worker_queue.popleft()
        self.trace(LEVEL_WORKERS, "worker %s unqueued", worker.name)
        worker.fire_dequeued(self)
        return worker

    def queue_worker(self, worker: "HubWorker") -> None:
        if worker not in self.workers:
            return
        self.worker_queue.append(worker)
        self.trace(LEVEL_WORKERS, "worker %s queued", worker.name)
        worker.fire_queued(self)
        if self._on_queue:
            self._on_queue.popleft()()
