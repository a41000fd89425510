# bikeshare/hubs/hub.py
"""
A hub stores bicycles in a capacity-limited preferred area plus an
unbounded overflow area.

Counts change through four mutators:
  - decr_bike_count / incr_bike_count   preferred area, clamped to 0..capacity
  - incr_overflow                       overflow area
  - pickup_overflow                     overflow -> worker, returns pickup time

Two listener lists are notified on change:
  - hub listeners   (need / excess / overflow), drive the balancer
  - data listeners  (raw counts), instrumentation only
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, List, Optional

from bikeshare.hubs.listeners import HubDataListener, HubListener
from bikeshare.sim.objects import SimObject
from bikeshare.sim.random_vars import RandomVariable, next_double
from bikeshare.sim.timebase import Simulation
from bikeshare.util.trace import LEVEL_TRAFFIC

if TYPE_CHECKING:
    from bikeshare.hubs.domain import HubDomain, SysDomain, UsrDomain


# (user-domain delay, parent-domain delay) -> probability of riding a bike
ProbFunction = Callable[[float, float], float]


@dataclass
class TripMessage:
    """A group of riders (or walkers) in transit between two hubs."""
    n: int
    bike_mode: bool
    will_overflow: bool
    continuation: Optional[Callable[[], None]] = None


class Hub(SimObject):
    def __init__(
        self,
        sim: Simulation,
        name: str,
        *,
        capacity: int,
        lower_trigger: int,
        nominal: int,
        upper_trigger: int,
        pickup_time: Optional[RandomVariable] = None,
        count: Optional[int] = None,
        overflow: int = 0,
        x: float = 0.0,
        y: float = 0.0,
        usr_domain: Optional["UsrDomain"] = None,
        sys_domain: Optional["SysDomain"] = None,
    ):
        super().__init__(sim, name)

        if count is None:
            count = nominal
        if capacity < 0:
            raise ValueError(f"{name}: negative capacity {capacity}")
        if not (lower_trigger <= nominal <= upper_trigger):
            raise ValueError(
                f"{name}: triggers out of order "
                f"(lower={lower_trigger}, nominal={nominal}, upper={upper_trigger})"
            )
        if not (0 <= count <= capacity):
            raise ValueError(f"{name}: count {count} not in 0..{capacity}")
        if overflow < 0:
            raise ValueError(f"{name}: negative overflow {overflow}")

        self.capacity = int(capacity)
        self.lower_trigger = int(lower_trigger)
        self.nominal = int(nominal)
        self.upper_trigger = int(upper_trigger)
        self.pickup_time = pickup_time
        self.bike_count = int(count)
        self.overflow = int(overflow)
        self.initial_bike_count = int(count)
        self.x = float(x)
        self.y = float(y)

        self._hub_listeners: List[HubListener] = []
        self._data_listeners: List[HubDataListener] = []
        self._domains: List["HubDomain"] = []

        self.usr_domain = usr_domain
        self.sys_domain = sys_domain
        if usr_domain is not None:
            usr_domain.join(self)
        if sys_domain is not None:
            sys_domain.join(self)

    # ----------------------------
    # Domains
    # ----------------------------
    def _joined(self, domain: "HubDomain") -> None:
        if domain not in self._domains:
            self._domains.append(domain)

    def _left(self, domain: "HubDomain") -> None:
        if domain in self._domains:
            self._domains.remove(domain)

    def in_domain(self, domain: Optional["HubDomain"]) -> bool:
        return domain is not None and domain in self._domains

    # ----------------------------
    # Thresholds
    # ----------------------------
    def need_bikes(self) -> int:
        return max(0, self.lower_trigger - self.bike_count)

    def excess_bikes(self) -> int:
        return max(0, self.bike_count - self.upper_trigger)

    # ----------------------------
    # Listeners
    # ----------------------------
    def add_hub_listener(self, listener: HubListener) -> None:
        self._hub_listeners.append(listener)
        listener.hub_changed(self, self.need_bikes(), self.excess_bikes(), self.overflow)

    def remove_hub_listener(self, listener: HubListener) -> None:
        if listener in self._hub_listeners:
            self._hub_listeners.remove(listener)

    def fire_hub_listeners(self, need: int, excess: int, overflow: int) -> None:
        for listener in list(self._hub_listeners):
            listener.hub_changed(self, need, excess, overflow)

    def add_hub_data_listener(self, listener: HubDataListener) -> None:
        self._data_listeners.append(listener)
        listener.hub_changed(self, self.bike_count, True, self.overflow, True, self.sim.now)

    def remove_hub_data_listener(self, listener: HubDataListener) -> None:
        if listener in self._data_listeners:
            self._data_listeners.remove(listener)

    def fire_hub_data_listeners(
        self, bike_count: int, new_bike_count: bool, overflow: int, new_overflow: bool
    ) -> None:
        now = self.sim.now
        for listener in list(self._data_listeners):
            listener.hub_changed(self, bike_count, new_bike_count, overflow, new_overflow, now)

    # ----------------------------
    # Mutators
    # ----------------------------
    def decr_bike_count(self, decr: int) -> int:
        """
        Remove `decr` bicycles from the preferred area (negative adds).

        The count is clamped to 0..capacity; anything added past capacity
        goes to the overflow area. Returns the amount actually removed.
        """
        decr = int(decr)
        old_count = self.bike_count
        old_overflow = self.overflow
        need0 = self.need_bikes()
        excess0 = self.excess_bikes()

        if self.bike_count - decr < 0:
            result = self.bike_count
            self.bike_count = 0
        else:
            self.bike_count -= decr
            if self.bike_count > self.capacity:
                self.overflow += self.bike_count - self.capacity
                self.bike_count = self.capacity
                result = old_count - self.capacity
            else:
                result = decr

        need = self.need_bikes()
        excess = self.excess_bikes()
        if need != need0 or excess != excess0 or self.overflow != old_overflow:
            self.fire_hub_listeners(need, excess, self.overflow)
        if decr != 0:
            self.fire_hub_data_listeners(
                self.bike_count,
                old_count != self.bike_count,
                self.overflow,
                old_overflow != self.overflow,
            )
        return result

    def incr_bike_count(self, incr: int) -> int:
        """Add bicycles to the preferred area; returns the amount actually added."""
        return -self.decr_bike_count(-int(incr))

    def incr_overflow(self, incr: int) -> None:
        incr = int(incr)
        if incr < 0:
            raise ValueError(f"{self.name}: negative overflow increment {incr}")
        if incr == 0:
            return
        self.overflow += incr
        self.fire_hub_listeners(self.need_bikes(), self.excess_bikes(), self.overflow)
        self.fire_hub_data_listeners(self.bike_count, False, self.overflow, True)

    def pickup_overflow(self, n: int) -> float:
        """
        Remove `n` bicycles from the overflow area. Returns the time (seconds)
        it takes to pick them up.
        """
        n = int(n)
        if n < 0 or n > self.overflow:
            raise ValueError(f"{self.name}: cannot pick up {n} of {self.overflow} overflow bicycles")
        if n == 0:
            return 0.0
        if self.pickup_time is None:
            interval = 0.0
        else:
            interval = float(self.pickup_time.sample(n).sum())
        self.overflow -= n
        self.fire_hub_listeners(self.need_bikes(), self.excess_bikes(), self.overflow)
        self.fire_hub_data_listeners(self.bike_count, False, self.overflow, True)
        return interval

    # ----------------------------
    # Trips
    # ----------------------------
    def send_users(
        self,
        dest: "Hub",
        m: int,
        will_overflow: bool = False,
        continuation: Optional[Callable[[], None]] = None,
        prob_function: Optional[ProbFunction] = None,
    ) -> Optional["HubDomain"]:
        """
        Send `m` users to `dest`.

        When both hubs also belong to the user domain's parent domain, the
        users either ride (user domain) or travel without shared bicycles
        (parent domain). With no `prob_function` they ride when that is
        estimated to be faster; otherwise `prob_function(d_usr, d_parent)`
        is the probability of riding.

        Riders take all `m` bicycles or none. Returns the domain used, or
        None when the trip could not start.
        """
        m = int(m)
        if m < 0:
            raise ValueError(f"{self.name}: negative trip size {m}")
        if self.usr_domain is None:
            return None

        domain = self.usr_domain.parent
        bike_mode = True
        if domain is not None and self.in_domain(domain) and dest.in_domain(domain):
            delay1 = self.usr_domain.estimate_delay(self, dest, m)
            delay2 = domain.estimate_delay(self, dest, m)
            if prob_function is None or delay2 == float("inf"):
                ride = delay1 < delay2
            else:
                p = prob_function(delay1, delay2)
                if p == 1.0:
                    ride = True
                elif p == 0.0:
                    ride = False
                else:
                    ride = p > next_double()
            if ride:
                domain = self.usr_domain
            else:
                bike_mode = False
                will_overflow = False
        else:
            domain = self.usr_domain

        if not dest.in_domain(domain):
            return None

        if bike_mode:
            n = self.decr_bike_count(m)
            if n != m:
                self.incr_bike_count(n)
                return None

        self.trace(LEVEL_TRAFFIC, "sending %d %s to %s",
                   m, "bicycles" if bike_mode else "users", dest.name)
        domain.send(TripMessage(m, bike_mode, will_overflow, continuation), self, dest)
        return domain

    def receive(self, msg: TripMessage) -> None:
        if msg.bike_mode:
            if msg.will_overflow:
                self.trace(LEVEL_TRAFFIC, "accepting %d bicycles into the overflow area", msg.n)
                self.incr_overflow(msg.n)
            else:
                nn = self.incr_bike_count(msg.n)
                self.trace(LEVEL_TRAFFIC, "accepting %d bicycles, %d added to the preferred area",
                           msg.n, nn)
        else:
            self.trace(LEVEL_TRAFFIC, "accepting %d users traveling without shared bicycles", msg.n)
        if msg.continuation is not None:
            msg.continuation()
