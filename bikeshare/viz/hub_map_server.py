# bikeshare/viz/hub_map_server.py
from __future__ import annotations

from flask import Flask, request

from bikeshare.scenarios.base import Scenario
from bikeshare.viz.hub_map import build_map_document
from bikeshare.viz.state_loader import load_hub_state, snap_time


def create_app(scenario: Scenario, *, title: str | None = None) -> Flask:
    state, valid_times = load_hub_state(scenario.state_csv)

    app = Flask(__name__)

    @app.route("/")
    def index():
        t_raw = request.args.get("t", None)
        default_t = valid_times[0] if valid_times else 0

        if t_raw is None:
            t_cur = default_t
        else:
            try:
                t_cur = int(float(t_raw))
            except ValueError:
                t_cur = default_t

        t_cur = snap_time(t_cur, valid_times)
        return build_map_document(scenario, state, valid_times, t_cur, title=title)

    return app


def serve_hub_map(
    scenario: Scenario,
    host: str = "127.0.0.1",
    port: int = 8080,
    debug: bool = False,
    title: str | None = None,
):
    app = create_app(scenario, title=title)
    app.run(host=host, port=int(port), debug=debug)
