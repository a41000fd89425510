# bikeshare/hubs/domain.py
"""
Hub domains: groups of hubs that share a delay table.

  UsrDomain  bicycle travel between user hubs
  SysDomain  worker travel between every hub, storage hubs included;
             owns the HubCondition the balancer watches

A domain also carries trip messages: send() delivers the message to the
destination hub after the table's realized delay.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

from bikeshare.delays.static import StaticDelayTable
from bikeshare.delays.table import DelayTable
from bikeshare.hubs.condition import HubCondition
from bikeshare.hubs.listeners import HubListener
from bikeshare.hubs.storage import StorageHub
from bikeshare.sim.objects import SimObject
from bikeshare.sim.random_vars import ConstantRV, mph
from bikeshare.sim.timebase import Simulation
from bikeshare.util.trace import LEVEL_CONFIG

if TYPE_CHECKING:
    from bikeshare.hubs.hub import Hub, TripMessage


# speed used by a domain that was not given a delay table
DEFAULT_DOMAIN_SPEED = mph(10.0)


class HubDomain(SimObject):
    def __init__(
        self,
        sim: Simulation,
        name: str,
        parent: Optional["HubDomain"] = None,
        delay_table: Optional[DelayTable] = None,
    ):
        super().__init__(sim, name)
        self.parent = parent
        self._original_table = StaticDelayTable(
            sim, f"{name}_delay_table", speed=ConstantRV(DEFAULT_DOMAIN_SPEED)
        )
        self.delay_table: DelayTable = self._original_table
        if delay_table is not None:
            delay_table.add_to_domain(self)
        self.members: List["Hub"] = []

    def set_delay_table(self, table: Optional[DelayTable]) -> None:
        self.delay_table = self._original_table if table is None else table
        self.trace(LEVEL_CONFIG, "delay table %s", self.delay_table.name)

    # ----------------------------
    # Membership
    # ----------------------------
    def join(self, hub: "Hub") -> None:
        if hub in self.members:
            return
        self.members.append(hub)
        hub._joined(self)
        self.on_joined(hub)

    def leave(self, hub: "Hub") -> None:
        if hub not in self.members:
            return
        self.members.remove(hub)
        hub._left(self)
        self.on_left(hub)

    def on_joined(self, hub: "Hub") -> None:
        pass

    def on_left(self, hub: "Hub") -> None:
        pass

    # ----------------------------
    # Delays
    # ----------------------------
    def estimate_delay(self, hub1: "Hub", hub2: "Hub", n: int, time: Optional[float] = None) -> float:
        if hub1 is hub2:
            return 0.0
        t = self.sim.now if time is None else time
        return self.delay_table.estimate_delay(t, hub1, hub2, n)

    def get_delay(self, hub1: "Hub", hub2: "Hub", n: int, time: Optional[float] = None) -> float:
        if hub1 is hub2:
            return 0.0
        t = self.sim.now if time is None else time
        return self.delay_table.get_delay(t, hub1, hub2, n)

    def send(self, msg: "TripMessage", src: "Hub", dest: "Hub") -> None:
        delay = self.get_delay(src, dest, msg.n)
        self.sim.schedule_call(lambda: dest.receive(msg), delay)


class UsrDomain(HubDomain):
    pass


class _ConditionListener(HubListener):
    def __init__(self, condition: HubCondition):
        self.condition = condition

    def hub_changed(self, hub, need, excess, overflow):
        self.condition.hub_changed(hub, need, excess, overflow)


class SysDomain(HubDomain):
    def __init__(self, sim, name, parent=None, delay_table=None):
        super().__init__(sim, name, parent, delay_table)
        self.condition = HubCondition(sim, f"{name}_condition")
        self._listener = _ConditionListener(self.condition)
        self.storage_hubs: Dict[StorageHub, None] = {}
        self.user_hubs: Dict["Hub", None] = {}

    def on_joined(self, hub):
        if isinstance(hub, StorageHub):
            self.storage_hubs[hub] = None
        else:
            self.user_hubs[hub] = None
            hub.add_hub_listener(self._listener)

    def on_left(self, hub):
        if isinstance(hub, StorageHub):
            self.storage_hubs.pop(hub, None)
        else:
            self.user_hubs.pop(hub, None)
            hub.remove_hub_listener(self._listener)
