# bikeshare/viz/state_loader.py
import csv


def load_hub_state(state_csv_path):
    """
    Read a hub state CSV (see bikeshare.util.recorder.STATE_COLUMNS).

    Returns (state, valid_times) where state maps (hub_id, t_min) to
    {"bikes", "overflow", "capacity"}.
    """
    if state_csv_path is None:
        return {}, []

    state = {}
    times = set()

    with open(state_csv_path, newline="") as f:
        reader = csv.DictReader(f)
        cols = reader.fieldnames or []
        if "t_min" not in cols or "hub_id" not in cols:
            raise ValueError(f"{state_csv_path}: missing hub_id / t_min columns")

        for row in reader:
            hid = str(row["hub_id"])
            t = int(row["t_min"])
            state[(hid, t)] = {
                "bikes": int(row["bikes"]),
                "overflow": int(row.get("overflow") or 0),
                "capacity": int(row["capacity"]),
            }
            times.add(t)

    return state, sorted(times)


def snap_time(requested, valid_times):
    if not valid_times:
        return requested
    return min(valid_times, key=lambda t: abs(t - requested))
