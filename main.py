# main.py

from bikeshare.scenarios.grid import grid_scenario
from bikeshare.viz.hub_map_server import serve_hub_map


def main():
    grid = grid_scenario(
        name="Grid network, threshold balancer",
        rows=3,
        cols=4,
        n_workers=3,
        n_loop_workers=1,
        quiet_period=300.0,
        sim_hours=12,
        seed=7,
        out_csv="grid_state.csv",
    )

    # ---- print worker moves ----
    moves = grid.meta.get("worker_moves", [])

    print(f"\nWorker moves for {grid.name}:\n")
    for i, m in enumerate(moves, 1):
        t_min = int(m.time // 60)
        print(
            f"{i:02d}. "
            f"t={t_min:4d} min | "
            f"{m.worker}: {m.from_hub} → {m.to_hub} "
            f"({m.bikes} bikes on board)"
        )

    print("\nPer-hub summary:")
    print(grid.meta["summary"])

    # ---- UI ----
    serve_hub_map(grid, port=8080, title="Bike Share Hub Rebalancing")


if __name__ == "__main__":
    main()
