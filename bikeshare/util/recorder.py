# bikeshare/util/recorder.py
"""
Records what happens during a run and turns it into pandas tables.

  hub_state()     hub counts sampled every `bucket_minutes`
                  (hub_id, t_min, bikes, overflow, empty_docks, capacity, nominal)
  worker_moves()  one row per hub-to-hub worker leg
  worker_events() raw worker listener events
  trips()         one row per trip listener event

write_state_csv() writes hub_state() in the layout bikeshare.viz reads.
"""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Dict, Iterable, List

import numpy as np
import pandas as pd

from bikeshare.hubs.hub import Hub
from bikeshare.hubs.listeners import HubDataListener, HubWorkerListener, TripDataListener
from bikeshare.sim.timebase import Simulation
from bikeshare.trips.generator import TripGenerator
from bikeshare.workers.worker import HubWorker

STATE_COLUMNS = ["hub_id", "t_min", "bikes", "overflow", "empty_docks", "capacity", "nominal"]


class _HubRecorder(HubDataListener):
    def __init__(self, rows: List[dict]):
        self.rows = rows

    def hub_changed(self, hub, bike_count, new_bike_count, overflow, new_overflow, time):
        self.rows.append({"time": time, "hub_id": hub.name, "bikes": bike_count, "overflow": overflow})


class _WorkerRecorder(HubWorkerListener):
    def __init__(self, rows: List[dict]):
        self.rows = rows

    def _add(self, worker, time, hub, event, **extra):
        self.rows.append({
            "time": time,
            "worker": worker.name,
            "event": event,
            "hub_id": hub.name if hub is not None else None,
            "worker_bikes": worker.bike_count,
            **extra,
        })

    def dequeued(self, worker, time, hub):
        self._add(worker, time, hub, "dequeued")

    def queued(self, worker, time, hub):
        self._add(worker, time, hub, "queued")

    def entered_hub(self, worker, time, hub):
        self._add(worker, time, hub, "entered_hub")

    def left_hub(self, worker, time, hub):
        self._add(worker, time, hub, "left_hub")

    def fixing_overflows(self, worker, time, hub):
        self._add(worker, time, hub, "fixing_overflows")

    def fixing_preferred(self, worker, time, hub):
        self._add(worker, time, hub, "fixing_preferred")

    def changed_count(self, worker, time, hub, old_count, new_count):
        self._add(worker, time, hub, "changed_count", delta=new_count - old_count)


class _TripRecorder(TripDataListener):
    def __init__(self, rows: List[dict]):
        self.rows = rows

    def _add(self, trip_id, time, hub, event, domain=None):
        self.rows.append({
            "trip_id": trip_id,
            "time": time,
            "event": event,
            "hub_id": hub.name,
            "domain": domain.name if domain is not None else None,
        })

    def trip_started(self, trip_id, time, hub, domain):
        self._add(trip_id, time, hub, "started", domain)

    def trip_pause_start(self, trip_id, time, hub):
        self._add(trip_id, time, hub, "pause_start")

    def trip_pause_end(self, trip_id, time, hub, domain):
        self._add(trip_id, time, hub, "pause_end", domain)

    def trip_ended(self, trip_id, time, hub):
        self._add(trip_id, time, hub, "ended")

    def trip_failed_at_start(self, trip_id, time, hub):
        self._add(trip_id, time, hub, "failed_at_start")

    def trip_failed_midstream(self, trip_id, time, hub):
        self._add(trip_id, time, hub, "failed_midstream")


class StateRecorder:
    def __init__(self, sim: Simulation, *, bucket_minutes: int = 15):
        bucket_minutes = int(bucket_minutes)
        if bucket_minutes <= 0:
            raise ValueError("bucket_minutes must be > 0")
        self.sim = sim
        self.bucket_minutes = bucket_minutes
        self.start_time = sim.now

        self._hubs: Dict[str, Hub] = {}
        self._workers: List[HubWorker] = []
        self._hub_rows: List[dict] = []
        self._worker_rows: List[dict] = []
        self._trip_rows: List[dict] = []

        self._hub_listener = _HubRecorder(self._hub_rows)
        self._worker_listener = _WorkerRecorder(self._worker_rows)
        self._trip_listener = _TripRecorder(self._trip_rows)

    # ----------------------------
    # Subscriptions
    # ----------------------------
    def watch_hubs(self, hubs: Iterable[Hub]) -> None:
        for hub in hubs:
            if hub.name in self._hubs:
                continue
            self._hubs[hub.name] = hub
            hub.add_hub_data_listener(self._hub_listener)

    def watch_workers(self, workers: Iterable[HubWorker]) -> None:
        for worker in workers:
            if worker in self._workers:
                continue
            self._workers.append(worker)
            worker.add_listener(self._worker_listener)

    def watch_trips(self, generators: Iterable[TripGenerator]) -> None:
        for gen in generators:
            gen.add_trip_data_listener(self._trip_listener)

    # ----------------------------
    # Tables
    # ----------------------------
    def _sample(self, events: pd.DataFrame, column: str, grid: np.ndarray) -> pd.DataFrame:
        wide = events.pivot_table(index="time", columns="hub_id", values=column, aggfunc="last")
        wide = wide.reindex(wide.index.union(pd.Index(grid))).ffill().reindex(grid)
        wide.index.name = "time"
        long = wide.reset_index().melt(id_vars="time", var_name="hub_id", value_name=column)
        return long.dropna(subset=[column])

    def hub_state(self) -> pd.DataFrame:
        if not self._hub_rows:
            return pd.DataFrame(columns=STATE_COLUMNS)

        events = pd.DataFrame(self._hub_rows)
        step = self.bucket_minutes * 60.0
        n_steps = int(np.floor((self.sim.now - self.start_time) / step)) + 1
        grid = self.start_time + step * np.arange(n_steps)

        out = self._sample(events, "bikes", grid).merge(
            self._sample(events, "overflow", grid), on=["time", "hub_id"]
        )
        capacity = {name: hub.capacity for name, hub in self._hubs.items()}
        nominal = {name: hub.nominal for name, hub in self._hubs.items()}

        out["bikes"] = out["bikes"].astype(int)
        out["overflow"] = out["overflow"].astype(int)
        out["capacity"] = out["hub_id"].map(capacity)
        out["nominal"] = out["hub_id"].map(nominal)
        out["empty_docks"] = out["capacity"] - out["bikes"]
        out["t_min"] = ((out["time"] - self.start_time) // 60).astype(int)
        return out.sort_values(["t_min", "hub_id"]).reset_index(drop=True)[STATE_COLUMNS]

    def worker_moves(self) -> pd.DataFrame:
        rows = [asdict(m) for w in self._workers for m in w.moves]
        cols = ["time", "worker", "from_hub", "to_hub", "bikes", "mode"]
        if not rows:
            return pd.DataFrame(columns=cols + ["t_min"])
        df = pd.DataFrame(rows, columns=cols).sort_values("time", kind="stable")
        df["t_min"] = ((df["time"] - self.start_time) // 60).astype(int)
        return df.reset_index(drop=True)

    def worker_events(self) -> pd.DataFrame:
        return pd.DataFrame(self._worker_rows)

    def trips(self) -> pd.DataFrame:
        return pd.DataFrame(self._trip_rows, columns=["trip_id", "time", "event", "hub_id", "domain"])

    def summary(self) -> pd.DataFrame:
        """Per-hub statistics over the sampled state."""
        state = self.hub_state()
        if state.empty:
            return pd.DataFrame()
        state = state.assign(
            empty=state["bikes"] == 0,
            full=state["bikes"] >= state["capacity"],
        )
        return state.groupby("hub_id").agg(
            mean_bikes=("bikes", "mean"),
            min_bikes=("bikes", "min"),
            max_bikes=("bikes", "max"),
            max_overflow=("overflow", "max"),
            frac_empty=("empty", "mean"),
            frac_full=("full", "mean"),
        )

    # ----------------------------
    # CSV
    # ----------------------------
    def write_state_csv(self, path: str | Path) -> Path:
        path = Path(path)
        self.hub_state().to_csv(path, index=False)
        return path

    def write_moves_csv(self, path: str | Path) -> Path:
        path = Path(path)
        self.worker_moves().to_csv(path, index=False)
        return path

    def write_trips_csv(self, path: str | Path) -> Path:
        path = Path(path)
        self.trips().to_csv(path, index=False)
        return path
