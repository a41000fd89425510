import os

from bikeshare.scenarios.grid import grid_scenario
from bikeshare.viz.hub_map_server import serve_hub_map

SIM_HOURS = float(os.environ.get("SIM_HOURS", "12"))
TRACE_LEVEL = int(os.environ.get("TRACE_LEVEL", "0"))
SEED = os.environ.get("SEED")


def build_scenario():
  return grid_scenario(
      n_loop_workers=1,
      quiet_period=300.0,
      sim_hours=SIM_HOURS,
      seed=int(SEED) if SEED else None,
      trace_level=TRACE_LEVEL,
      progress=False,
      out_csv="grid_state.csv",
  )


def main():
  scenario = build_scenario()

  port = int(os.environ.get("PORT", "8080"))

  serve_hub_map(
      scenario,
      port=port,
      title="Bike Share Hub Rebalancing",
      host="0.0.0.0",
  )


if __name__ == "__main__":
  main()
