# bikeshare/delays/table.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from bikeshare.sim.objects import SimObject

if TYPE_CHECKING:
    from bikeshare.hubs.domain import HubDomain
    from bikeshare.hubs.hub import Hub


class DelayTable(SimObject, ABC):
    """
    Travel time between two hubs for a group of `n` travelers.

    estimate_delay is a planning value, get_delay the realized (possibly
    random) one. All times are in seconds.
    """

    def add_to_domain(self, domain: "HubDomain") -> None:
        domain.set_delay_table(self)

    @staticmethod
    def _check(src: "Hub", dest: "Hub") -> None:
        if src is None or dest is None:
            raise ValueError("src and dest hubs are required")

    @abstractmethod
    def latest_starting_time(self, time: float, src: "Hub", dest: "Hub") -> float:
        ...

    @abstractmethod
    def estimate_delay(self, time: float, src: "Hub", dest: "Hub", n: int) -> float:
        ...

    @abstractmethod
    def get_delay(self, time: float, src: "Hub", dest: "Hub", n: int) -> float:
        ...
