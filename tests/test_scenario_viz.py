import pandas as pd
import pytest

from bikeshare.scenarios.base import Scenario
from bikeshare.scenarios.grid import grid_scenario
from bikeshare.viz.hub_map import build_map_document
from bikeshare.viz.hub_map_server import create_app
from bikeshare.viz.map_layer import move_bucket
from bikeshare.viz.state_loader import load_hub_state, snap_time
from bikeshare.workers.types import WorkerMove


@pytest.fixture
def small_scenario(tmp_path):
    path = tmp_path / "state.csv"
    pd.DataFrame(
        [
            {"hub_id": "H00", "t_min": 0, "bikes": 1, "overflow": 0, "empty_docks": 9, "capacity": 10, "nominal": 5},
            {"hub_id": "H01", "t_min": 0, "bikes": 10, "overflow": 2, "empty_docks": 0, "capacity": 10, "nominal": 5},
            {"hub_id": "H00", "t_min": 15, "bikes": 5, "overflow": 0, "empty_docks": 5, "capacity": 10, "nominal": 5},
            {"hub_id": "H01", "t_min": 15, "bikes": 6, "overflow": 0, "empty_docks": 4, "capacity": 10, "nominal": 5},
        ]
    ).to_csv(path, index=False)
    return Scenario(
        name="Two hubs",
        state_csv=path,
        bucket_minutes=15,
        meta={
            "hubs": [
                {"hub_id": "H00", "x": 0.0, "y": 0.0, "capacity": 10},
                {"hub_id": "H01", "x": 800.0, "y": 0.0, "capacity": 10},
            ],
            "storage_hubs": [{"hub_id": "depot", "x": 400.0, "y": -800.0}],
            "worker_moves": [
                WorkerMove(time=400.0, worker="w1", from_hub="depot", to_hub="H01", bikes=0),
                WorkerMove(time=1000.0, worker="w1", from_hub="H01", to_hub="H00", bikes=4),
            ],
        },
    )


def test_snap_time():
    assert snap_time(7, [0, 15, 30]) == 0
    assert snap_time(8, [0, 15, 30]) == 15
    assert snap_time(99, []) == 99


def test_move_bucket():
    move = WorkerMove(time=1000.0, worker="w", from_hub="a", to_hub="b", bikes=1)
    assert move_bucket(move, 15) == 15
    assert move_bucket(move, 60) == 0


def test_loader_requires_hub_columns(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("station_id,hour,bikes,capacity\n1,0,3,10\n")
    with pytest.raises(ValueError):
        load_hub_state(path)
    assert load_hub_state(None) == ({}, [])


def test_map_document(small_scenario):
    state, times = load_hub_state(small_scenario.state_csv)
    html = build_map_document(small_scenario, state, times, 15)
    assert "Two hubs" in html
    assert "H01" in html
    assert "Bikes on board: 4" in html
    assert "?t=0" in html


def test_server_snaps_requested_time(small_scenario):
    client = create_app(small_scenario, title="Viewer").test_client()
    resp = client.get("/?t=14")
    assert resp.status_code == 200
    body = resp.get_data(as_text=True)
    assert "Viewer" in body
    assert "Bikes: 5 / 10" in body
    assert client.get("/?t=oops").status_code == 200


def test_grid_scenario_runs(tmp_path):
    scenario = grid_scenario(
        rows=2,
        cols=2,
        n_workers=2,
        n_loop_workers=1,
        loop_interval=1800.0,
        quiet_period=300.0,
        sim_hours=2,
        seed=3,
        progress=False,
        out_csv=tmp_path / "grid.csv",
    )
    assert scenario.state_csv.exists()
    state = pd.read_csv(scenario.state_csv)
    assert set(state["hub_id"]) == {"H00", "H01", "H10", "H11"}
    assert state["t_min"].max() == 120
    assert ((state["bikes"] >= 0) & (state["bikes"] <= state["capacity"])).all()
    assert len(scenario.meta["hubs"]) == 4
    assert scenario.meta["storage_hubs"][0]["hub_id"] == "depot"
    assert not scenario.meta["trips"].empty


def test_grid_scenario_rejects_bad_sizes(tmp_path):
    with pytest.raises(ValueError):
        grid_scenario(rows=0, out_csv=tmp_path / "x.csv")
    with pytest.raises(ValueError):
        grid_scenario(n_workers=1, n_loop_workers=2, out_csv=tmp_path / "x.csv")
