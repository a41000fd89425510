# bikeshare/workers/types.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Protocol

if TYPE_CHECKING:
    from bikeshare.hubs.hub import Hub


class WorkerMode(Enum):
    LOOP = "loop"
    VISIT = "visit"
    LOOP_WITH_PICKUP = "loop_with_pickup"
    VISIT_WITH_PICKUP = "visit_with_pickup"
    LOOP_TO_FIX_OVERFLOWS = "loop_to_fix_overflows"
    VISIT_TO_FIX_OVERFLOWS = "visit_to_fix_overflows"

    @property
    def looping(self) -> bool:
        return self in LOOP_MODES

    @property
    def with_pickup(self) -> bool:
        return self in (WorkerMode.LOOP_WITH_PICKUP, WorkerMode.VISIT_WITH_PICKUP)

    @property
    def fixes_overflows(self) -> bool:
        return self in (WorkerMode.LOOP_TO_FIX_OVERFLOWS, WorkerMode.VISIT_TO_FIX_OVERFLOWS)


# modes whose workers are preallocated by storage hubs
LOOP_MODES = (
    WorkerMode.LOOP,
    WorkerMode.LOOP_WITH_PICKUP,
    WorkerMode.LOOP_TO_FIX_OVERFLOWS,
)


class HubSorter(Protocol):
    """
    Orders the hubs for one worker pass.

    After sort(), `over_nominal` is sorted most-excess first and
    `under_nominal` most-deficit first.
    """
    hubs: List["Hub"]
    over_nominal: List["Hub"]
    under_nominal: List["Hub"]

    def sort(self) -> None: ...

    def initial_count_estimate(self) -> int: ...


@dataclass
class WorkerMove:
    """One hub-to-hub leg of a worker."""
    time: float
    worker: str
    from_hub: str
    to_hub: str
    bikes: int
    mode: str | None = None
