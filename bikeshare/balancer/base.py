# bikeshare/balancer/base.py
"""
Hub balancer: the control loop that decides when workers go out.

The balancer watches the system domain's HubCondition and keeps its own
over / under / overflow sets. At simulation start it launches the
permanently looping workers each storage hub asks for; after that,
every condition change may start additional (visiting) workers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from bikeshare.hubs.condition import HubCondition
from bikeshare.hubs.domain import SysDomain
from bikeshare.hubs.hub import Hub
from bikeshare.hubs.storage import StorageHub
from bikeshare.sim.objects import SimObject
from bikeshare.sim.timebase import Simulation
from bikeshare.util.trace import LEVEL_CONFIG, LEVEL_WORKERS
from bikeshare.workers.types import LOOP_MODES, HubSorter, WorkerMode


class HubBalancer(SimObject, ABC):
    def __init__(self, sim: Simulation, name: str):
        super().__init__(sim, name)
        self.sys_domain: Optional[SysDomain] = None
        self.over_set: Dict[Hub, None] = {}
        self.under_set: Dict[Hub, None] = {}
        self.overflow_set: Dict[Hub, None] = {}
        self.initialized = False
        self._initial_workers_started = False
        # wait until everything is configured
        sim.schedule_init_call(self._init_call)

    def init_domain(self, sys_domain: SysDomain) -> None:
        self.sys_domain = sys_domain
        condition = sys_domain.condition
        self.over_set = dict.fromkeys(condition.over_set)
        self.under_set = dict.fromkeys(condition.under_set)
        self.overflow_set = dict.fromkeys(condition.overflow_set)
        condition.add_observer(self.on_condition_change)

    def _init_call(self) -> None:
        self.start_initial_workers()
        self.on_init()
        self.initialized = True
        self.start_additional_workers()

    def on_init(self) -> None:
        """Hook for subclasses, run once at simulation start."""

    def start_initial_workers(self) -> None:
        if self._initial_workers_started:
            return
        self._initial_workers_started = True
        if self.sys_domain is None:
            raise RuntimeError(f"{self.name}: init_domain was not called")

        self.trace(LEVEL_CONFIG, "starting initial workers")
        for shub in list(self.sys_domain.storage_hubs):
            for mode in LOOP_MODES:
                n = shub.get_initial_number_of_workers(mode)
                if n <= 0:
                    continue
                interval = shub.get_interval(mode)
                subinterval = interval / n
                offset = 0.0
                self.trace(LEVEL_WORKERS, "starting initial workers for storage hub %s, mode %s",
                           shub.name, mode.name)
                for _ in range(n):
                    worker = shub.poll_workers()
                    if worker is None:
                        self.trace(LEVEL_WORKERS, "could not find worker")
                        continue
                    self.trace(LEVEL_WORKERS, "starting worker %s", worker.name)
                    sorter = self.get_hub_sorter(mode, shub, shub.get_hubs(mode))
                    worker.start(mode, sorter, interval, offset)
                    offset += subinterval

    def on_condition_change(self, condition: HubCondition) -> None:
        hub = condition.changed_hub
        for members, present in (
            (self.over_set, condition.in_over_set),
            (self.under_set, condition.in_under_set),
            (self.overflow_set, condition.in_overflow_set),
        ):
            if present:
                members[hub] = None
            else:
                members.pop(hub, None)
        if not self.initialized:
            return
        self.trace(LEVEL_WORKERS, "trying to start additional workers")
        self.start_additional_workers()

    @abstractmethod
    def start_additional_workers(self) -> None:
        ...

    @abstractmethod
    def get_hub_sorter(self, mode: WorkerMode, shub: StorageHub, hubs: List[Hub]) -> HubSorter:
        ...
