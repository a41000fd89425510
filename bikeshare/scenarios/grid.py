# bikeshare/scenarios/grid.py
"""
Demo network: a rectangular grid of hubs around one storage hub.

Riders make round trips from every hub. Trips favour the first row of the
grid ("downtown"), so bicycles pile up there while the outer rows run dry
and the balancer has to send workers out.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style

from bikeshare.balancer.basic import DEFAULT_QUIET_PERIOD, DEFAULT_THRESHOLD, BasicHubBalancer
from bikeshare.delays.static import StaticDelayTable
from bikeshare.hubs.domain import SysDomain, UsrDomain
from bikeshare.hubs.hub import Hub
from bikeshare.hubs.storage import StorageHub
from bikeshare.scenarios.base import Scenario
from bikeshare.sim.random_vars import (
    GaussianRV,
    UniformRV,
    hours,
    miles,
    minutes,
    mph,
    set_seed,
)
from bikeshare.sim.timebase import Simulation
from bikeshare.trips.round_trip import RoundTripGenerator
from bikeshare.util.recorder import StateRecorder
from bikeshare.util.trace import set_trace_level
from bikeshare.workers.worker import HubWorker


# ----------------------------
# Defaults / knobs
# ----------------------------
BIKE_SPEED_MPH = 10.0
BIKE_SPEED_SDEV_MPH = 2.0
TRUCK_SPEED_MPH = 15.0
TRUCK_SPEED_SDEV_MPH = 3.0
DOWNTOWN_BIAS = 3.0           # extra weight of first-row destinations


def grid_scenario(
    *,
    name: str = "Grid network",
    rows: int = 3,
    cols: int = 4,
    spacing: float = miles(0.5),
    hub_capacity: int = 20,
    fill_ratio: float = 0.60,
    trips_per_hour: float = 6.0,
    mean_wait: float = minutes(30),
    n_workers: int = 3,
    worker_capacity: int = 10,
    n_loop_workers: int = 0,
    loop_interval: float = hours(1),
    threshold: float = DEFAULT_THRESHOLD,
    quiet_period: float = DEFAULT_QUIET_PERIOD,
    sim_hours: float = 12.0,
    bucket_minutes: int = 15,
    seed: Optional[int] = None,
    trace_level: int = 0,
    progress: bool = True,
    out_csv: str | Path = "grid_state.csv",
) -> Scenario:
    if rows <= 0 or cols <= 0:
        raise ValueError("rows and cols must be > 0")
    if trips_per_hour <= 0:
        raise ValueError("trips_per_hour must be > 0")
    if n_loop_workers > n_workers:
        raise ValueError("n_loop_workers cannot exceed n_workers")

    set_seed(seed)
    set_trace_level(trace_level)
    sim = Simulation()

    print(f"{Fore.CYAN}Building {rows}x{cols} hub grid…{Style.RESET_ALL}")

    # ---- domains ----
    sys_domain = SysDomain(sim, "sys")
    usr_domain = UsrDomain(sim, "usr")
    StaticDelayTable(
        sim,
        "truck_delays",
        speed=GaussianRV(mph(TRUCK_SPEED_MPH), mph(TRUCK_SPEED_SDEV_MPH)),
        distance=miles(1.0),
        stops=4,
        stop_probability=0.5,
        max_wait=minutes(1),
    ).add_to_domain(sys_domain)
    StaticDelayTable(
        sim,
        "bike_delays",
        speed=GaussianRV(mph(BIKE_SPEED_MPH), mph(BIKE_SPEED_SDEV_MPH)),
        distance=miles(1.0),
        stops=4,
        stop_probability=0.5,
        max_wait=minutes(1),
    ).add_to_domain(usr_domain)

    # ---- hubs ----
    nominal = int(round(hub_capacity * 0.5))
    lower = int(round(hub_capacity * 0.2))
    upper = int(round(hub_capacity * 0.8))
    count = max(0, min(hub_capacity, int(round(hub_capacity * fill_ratio))))

    hubs: List[Hub] = []
    for r in range(rows):
        for c in range(cols):
            hubs.append(Hub(
                sim,
                f"H{r}{c}",
                capacity=hub_capacity,
                lower_trigger=lower,
                nominal=nominal,
                upper_trigger=upper,
                pickup_time=UniformRV(10.0, 30.0),
                count=count,
                x=c * spacing,
                y=r * spacing,
                usr_domain=usr_domain,
                sys_domain=sys_domain,
            ))

    stock = hub_capacity * max(1, n_workers)
    depot = StorageHub(
        sim,
        "depot",
        nominal=stock // 2,
        count=stock,
        x=(cols - 1) * spacing / 2.0,
        y=-spacing,
        sys_domain=sys_domain,
    )
    for hub in hubs:
        depot.add_hub(hub)
    depot.set_initial_number_of_workers(n_loop_workers, interval_loop=loop_interval)

    workers = [
        HubWorker(sim, f"worker{i + 1}", capacity=worker_capacity, storage_hub=depot, domain=sys_domain)
        for i in range(n_workers)
    ]

    balancer = BasicHubBalancer(sim, "balancer", threshold=threshold, quiet_period=quiet_period)
    balancer.init_domain(sys_domain)

    # ---- demand ----
    generators = []
    for hub in hubs:
        dests = [h for h in hubs if h is not hub]
        weights = [1.0 + (DOWNTOWN_BIAS if h.y == 0.0 else 0.0) for h in dests]
        generators.append(RoundTripGenerator(
            sim,
            f"trips_{hub.name}",
            hub=hub,
            mean=hours(1) / trips_per_hour,
            wait=UniformRV(0.0, 2.0 * mean_wait),
            return_overflow_prob=0.1,
            dest_hubs=dests,
            weights=weights,
        ))

    recorder = StateRecorder(sim, bucket_minutes=bucket_minutes)
    recorder.watch_hubs(hubs)
    recorder.watch_workers(workers)
    recorder.watch_trips(generators)

    # ---- run ----
    print(f"{Fore.CYAN}Simulating {sim_hours:g} hours…{Style.RESET_ALL}")
    sim.run(until=hours(sim_hours), progress=progress)

    out_csv = Path(out_csv)
    print(f"{Fore.CYAN}Writing {out_csv}…{Style.RESET_ALL}")
    recorder.write_state_csv(out_csv)

    moves = [m for w in workers for m in w.moves]
    moves.sort(key=lambda m: m.time)
    trips = recorder.trips()
    n_failed = int(trips["event"].isin(["failed_at_start", "failed_midstream"]).sum())

    print(f"{Fore.MAGENTA}Dispatched {balancer.dispatch_count} workers, {len(moves)} worker moves{Style.RESET_ALL}")
    if n_failed:
        print(f"{Fore.YELLOW}{n_failed} trips could not find a bicycle{Style.RESET_ALL}")
    print(f"{Fore.GREEN}Grid scenario complete.{Style.RESET_ALL}")

    return Scenario(
        name=name,
        state_csv=out_csv,
        bucket_minutes=bucket_minutes,
        meta={
            "hubs": [
                {"hub_id": h.name, "x": h.x, "y": h.y, "capacity": h.capacity}
                for h in hubs
            ],
            "storage_hubs": [{"hub_id": depot.name, "x": depot.x, "y": depot.y}],
            "worker_moves": moves,
            "dispatch_count": balancer.dispatch_count,
            "summary": recorder.summary(),
            "trips": trips,
        },
    )
