# bikeshare/balancer/basic.py
from __future__ import annotations

import math
from typing import List

from bikeshare.balancer.base import HubBalancer
from bikeshare.hubs.hub import Hub
from bikeshare.hubs.storage import StorageHub
from bikeshare.sim.timebase import Simulation
from bikeshare.util.trace import LEVEL_CONFIG, LEVEL_TRAFFIC, LEVEL_WORKERS
from bikeshare.workers.types import WorkerMode


# ----------------------------
# Defaults / knobs
# ----------------------------
DEFAULT_THRESHOLD = 0.25      # fraction of hubs that must be out of range
DEFAULT_QUIET_PERIOD = 0.0    # seconds between dispatch rounds


def _take(hub: Hub) -> int:
    return hub.bike_count - hub.nominal


class BasicHubSorter:
    """
    Over list: hubs with bicycles to spare, most excess first.
    Under list: hubs short of nominal, largest deficit first.

    In pickup modes a hub's overflow counts toward what can be taken from
    it. Fix-overflow modes use `hubs` as given and leave both lists empty.
    """

    def __init__(self, mode: WorkerMode, hubs: List[Hub]):
        self.mode = mode
        self.hubs: List[Hub] = list(hubs)
        self.over_nominal: List[Hub] = []
        self.under_nominal: List[Hub] = []

    def sort(self) -> None:
        over: List[Hub] = []
        under: List[Hub] = []
        if self.mode.fixes_overflows:
            self.over_nominal = over
            self.under_nominal = under
            return

        for hub in self.hubs:
            if isinstance(hub, StorageHub):
                raise RuntimeError(f"storage hub {hub.name} in hub list")
            take = _take(hub)
            if not self.mode.with_pickup:
                if take > 0:
                    over.append(hub)
                elif take < 0:
                    under.append(hub)
            elif take > 0:
                over.append(hub)
            elif take < 0:
                if take + hub.overflow > 0:
                    over.append(hub)
                else:
                    under.append(hub)
            elif hub.overflow > 0:
                over.append(hub)

        self.over_nominal = sorted(over, key=_take, reverse=True)
        self.under_nominal = sorted(under, key=_take)

    def initial_count_estimate(self) -> int:
        """Net number of bicycles the hubs are short (negative: surplus)."""
        if self.mode.fixes_overflows:
            return 0
        total = 0
        for hub in self.hubs:
            total -= _take(hub)
            if self.mode.with_pickup:
                total -= hub.overflow
        return total


class BasicHubBalancer(HubBalancer):
    def __init__(
        self,
        sim: Simulation,
        name: str,
        *,
        threshold: float = DEFAULT_THRESHOLD,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
    ):
        super().__init__(sim, name)
        self.threshold = DEFAULT_THRESHOLD
        self.quiet_period = DEFAULT_QUIET_PERIOD
        self.set_threshold(threshold)
        self.set_quiet_period(quiet_period)

        self.quiet = False
        self.need_start = False
        self.last_time = sim.now
        self.dispatch_count = 0

        # filled in at simulation start
        self.number_of_hubs = 0
        self.initial_bike_count = 0
        self.nominal_count = 0

    def set_threshold(self, value: float) -> None:
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"threshold must be in [0, 1], got {value}")
        self.threshold = float(value)

    def set_quiet_period(self, value: float) -> None:
        if value < 0.0:
            raise ValueError(f"quiet period must be >= 0, got {value}")
        self.quiet_period = float(value)

    def on_init(self) -> None:
        self.last_time = self.sim.now
        for hub in self.sys_domain.user_hubs:
            self.initial_bike_count += hub.initial_bike_count
            self.nominal_count += hub.nominal
            self.number_of_hubs += 1
        self.trace(LEVEL_CONFIG, "%d hubs, %d bicycles, %d nominal",
                   self.number_of_hubs, self.initial_bike_count, self.nominal_count)

    def get_hub_sorter(self, mode: WorkerMode, shub: StorageHub, hubs: List[Hub]) -> BasicHubSorter:
        return BasicHubSorter(mode, hubs)

    def choose_mode(self) -> WorkerMode:
        osz = len(self.over_set)
        usz = len(self.under_set)
        ofsz = len(self.overflow_set)
        if osz == 0:
            if ofsz == 0:
                return WorkerMode.VISIT
            if usz == 0:
                return WorkerMode.VISIT_TO_FIX_OVERFLOWS
            return WorkerMode.VISIT_WITH_PICKUP
        if ofsz == 0:
            return WorkerMode.VISIT
        return WorkerMode.VISIT_WITH_PICKUP

    def start_additional_workers(self) -> None:
        if self.quiet:
            self.trace(LEVEL_WORKERS, "start of additional workers delayed - in quiet period")
            self.need_start = True
            return
        self.trace(LEVEL_WORKERS, "additional workers starting as needed")

        limit = math.floor(self.threshold * self.number_of_hubs)
        sizes = (len(self.over_set), len(self.under_set), len(self.overflow_set))
        if not any(size >= limit for size in sizes):
            self.trace(LEVEL_TRAFFIC, "nothing to do (over %d, under %d, overflow %d), limit = %d",
                       *sizes, limit)
            return

        mode = self.choose_mode()
        self.trace(LEVEL_WORKERS, "will use mode %s", mode.name)

        have_additional_work = False
        for shub in list(self.sys_domain.storage_hubs):
            table = shub.get_hubs(mode)
            hublist = [h for h in table if h in self.over_set or h in self.overflow_set]
            hublist += [h for h in table if h in self.under_set]
            if not hublist:
                continue

            self.last_time = self.sim.now
            if shub.worker_queue_not_useable():
                self.trace(LEVEL_WORKERS, "insufficient workers for storage hub %s", shub.name)
                continue
            have_additional_work = True

            worker = shub.poll_workers()
            if worker is not None:
                self.trace(LEVEL_WORKERS, "starting worker %s for %d hubs, mode %s",
                           worker.name, len(hublist), mode.name)
                worker.start(mode, self.get_hub_sorter(mode, shub, hublist), 0.0, 0.0)
                self.dispatch_count += 1
            else:
                self.trace(LEVEL_WORKERS, "queuing request for a worker, n = %d, mode = %s",
                           len(hublist), mode.name)
                shub.add_on_queue_callable(self._deferred_start(shub, mode, hublist))

        if have_additional_work:
            self.sim.schedule_call(self._end_quiet_period, self.quiet_period)
            self.quiet = True

    def _deferred_start(self, shub: StorageHub, mode: WorkerMode, hublist: List[Hub]):
        def start():
            worker = shub.poll_workers()
            if worker is None:
                raise RuntimeError(f"{shub.name}: queued worker vanished")
            self.trace(LEVEL_WORKERS, "worker %s available: n = %d, mode = %s",
                       worker.name, len(hublist), mode.name)
            worker.start(mode, self.get_hub_sorter(mode, shub, hublist), 0.0, 0.0)
            self.dispatch_count += 1
        return start

    def _end_quiet_period(self) -> None:
        self.quiet = False
        if self.need_start:
            self.need_start = False
            self.start_additional_workers()
