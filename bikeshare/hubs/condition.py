# bikeshare/hubs/condition.py
"""
Aggregates hub listener callbacks into four sets:

  under     bike_count below the lower trigger
  over      bike_count above the upper trigger
  overflow  non-empty overflow area
  in_range  neither under nor over

Observers are called only when a hub's membership changed. During the
call `changed_hub` and the in_*_set flags describe that hub.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from bikeshare.hubs.storage import StorageHub
from bikeshare.sim.objects import SimObject

if TYPE_CHECKING:
    from bikeshare.hubs.hub import Hub


Observer = Callable[["HubCondition"], None]


def _update(members: Dict["Hub", None], hub: "Hub", present: bool) -> bool:
    if present:
        if hub in members:
            return False
        members[hub] = None
        return True
    return members.pop(hub, 0) is None


class HubCondition(SimObject):
    def __init__(self, sim, name):
        super().__init__(sim, name)
        # dicts keep insertion order
        self.over_set: Dict["Hub", None] = {}
        self.under_set: Dict["Hub", None] = {}
        self.overflow_set: Dict["Hub", None] = {}
        self.in_range_set: Dict["Hub", None] = {}

        self.changed_hub: Optional["Hub"] = None
        self.in_over_set = False
        self.in_under_set = False
        self.in_overflow_set = False

        self._observers: List[Observer] = []

    def add_observer(self, observer: Observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def hub_changed(self, hub: "Hub", need: int, excess: int, overflow: int) -> None:
        if isinstance(hub, StorageHub):
            return

        self.in_under_set = need > 0
        self.in_over_set = excess > 0
        self.in_overflow_set = overflow > 0

        changed = _update(self.under_set, hub, self.in_under_set)
        changed = _update(self.over_set, hub, self.in_over_set) or changed
        changed = _update(self.overflow_set, hub, self.in_overflow_set) or changed

        in_range = not (self.in_over_set or self.in_under_set)
        changed = _update(self.in_range_set, hub, in_range) or changed

        if changed:
            self.changed_hub = hub
            for observer in list(self._observers):
                observer(self)
            self.changed_hub = None
