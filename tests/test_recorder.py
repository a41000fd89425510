import pandas as pd
import pytest

from bikeshare.balancer.basic import BasicHubSorter
from bikeshare.util.recorder import STATE_COLUMNS, StateRecorder
from bikeshare.viz.state_loader import load_hub_state
from bikeshare.workers.types import WorkerMode
from bikeshare.workers.worker import HubWorker


@pytest.fixture
def recorded(sim, make_hub):
    a = make_hub("a", count=5)
    b = make_hub("b", count=2)
    recorder = StateRecorder(sim, bucket_minutes=1)
    recorder.watch_hubs([a, b])
    recorder.watch_hubs([a])
    sim.schedule_call(lambda: a.decr_bike_count(2), 30.0)
    sim.schedule_call(lambda: a.incr_bike_count(10), 90.0)
    sim.run(until=180.0)
    return recorder, a, b


def test_bucket_size_validated(sim):
    with pytest.raises(ValueError):
        StateRecorder(sim, bucket_minutes=0)


def test_hub_state_samples_every_bucket(recorded):
    recorder, a, b = recorded
    state = recorder.hub_state()
    assert list(state.columns) == STATE_COLUMNS
    assert sorted(state["t_min"].unique()) == [0, 1, 2, 3]

    rows = state[state["hub_id"] == "a"].set_index("t_min")
    assert rows["bikes"].tolist() == [5, 3, 10, 10]
    assert rows["overflow"].tolist() == [0, 0, 3, 3]
    assert rows["empty_docks"].tolist() == [5, 7, 0, 0]
    assert (state[state["hub_id"] == "b"]["bikes"] == 2).all()


def test_summary(recorded):
    recorder, a, b = recorded
    summary = recorder.summary()
    assert summary.loc["a", "max_overflow"] == 3
    assert summary.loc["a", "frac_full"] == pytest.approx(0.5)
    assert summary.loc["b", "min_bikes"] == 2


def test_state_csv_round_trip(recorded, tmp_path):
    recorder, a, b = recorded
    path = recorder.write_state_csv(tmp_path / "state.csv")
    df = pd.read_csv(path)
    assert len(df) == 8

    state, times = load_hub_state(path)
    assert times == [0, 1, 2, 3]
    assert state[("a", 2)] == {"bikes": 10, "overflow": 3, "capacity": 10}


def test_empty_recorder(sim, tmp_path):
    recorder = StateRecorder(sim)
    assert recorder.hub_state().empty
    assert recorder.worker_moves().empty
    assert list(recorder.trips().columns) == ["trip_id", "time", "event", "hub_id", "domain"]
    assert recorder.summary().empty
    recorder.write_moves_csv(tmp_path / "moves.csv")
    recorder.write_trips_csv(tmp_path / "trips.csv")
    assert (tmp_path / "moves.csv").exists()


def test_worker_moves_and_events(sim, sys_domain, depot, make_hub):
    full = make_hub("full", x=100.0, count=9)
    empty = make_hub("empty", x=200.0, count=1)
    worker = HubWorker(sim, "w1", capacity=10, storage_hub=depot, domain=sys_domain)

    recorder = StateRecorder(sim)
    recorder.watch_workers([worker])
    assert depot.poll_workers() is worker
    worker.start(WorkerMode.VISIT, BasicHubSorter(WorkerMode.VISIT, [full, empty]))
    sim.run()

    moves = recorder.worker_moves()
    assert moves[["from_hub", "to_hub", "bikes"]].values.tolist() == [
        ["depot", "full", 0],
        ["full", "empty", 4],
        ["empty", "depot", 0],
    ]
    assert (moves["mode"] == "visit").all()
    assert (moves["t_min"] == 0).all()

    events = recorder.worker_events()
    changes = events[events["event"] == "changed_count"]
    assert changes["delta"].tolist() == [0, 4, -4, 0]
    assert events["event"].iloc[-1] == "queued"
