# bikeshare/viz/map_layer.py
import folium
from folium import PolyLine, RegularPolygonMarker

from bikeshare.workers.types import WorkerMove

EMPTY_THRESHOLD = 0.1
FULL_THRESHOLD = 0.9


def move_bucket(move: WorkerMove, bucket_minutes: int) -> int:
    """t_min of the state bucket a worker move falls in."""
    t_min = int(move.time // 60)
    return (t_min // bucket_minutes) * bucket_minutes


def add_hub_markers(m, hubs, state, t_current):
    for h in hubs:
        hid = str(h["hub_id"])
        st = state.get((hid, t_current))

        fill_color = "#333333"
        popup = [
            f"<b>{hid}</b>",
            f"Capacity: {h['capacity']}",
        ]

        overflow = 0
        if st:
            bikes = st["bikes"]
            cap = st["capacity"]
            overflow = st["overflow"]
            ratio = bikes / cap if cap else 0

            if ratio <= EMPTY_THRESHOLD:
                fill_color = "#d73027"
            elif ratio >= FULL_THRESHOLD:
                fill_color = "#4575b4"
            else:
                fill_color = "#666666"

            popup.insert(1, f"Time: {t_current // 60:02d}:{t_current % 60:02d}")
            popup.insert(2, f"Bikes: {bikes} / {cap}")
            if overflow:
                popup.insert(3, f"Overflow: {overflow}")

        folium.CircleMarker(
            [h["y"], h["x"]],
            radius=6,
            fill=True,
            fill_color=fill_color,
            fill_opacity=0.9,
            weight=0,
            popup="<br>".join(popup),
        ).add_to(m)

        # bicycles parked outside the docks
        if overflow:
            folium.CircleMarker(
                [h["y"], h["x"]],
                radius=9 + min(overflow, 10) / 2,
                color="#fc8d59",
                weight=2,
                fill=False,
                tooltip=f"{overflow} bikes in overflow",
            ).add_to(m)


def add_storage_markers(m, storage_hubs):
    for s in storage_hubs:
        RegularPolygonMarker(
            location=[s["y"], s["x"]],
            number_of_sides=4,
            radius=8,
            color="#111111",
            fill_color="#ffffbf",
            fill_opacity=0.9,
            tooltip=f"<b>{s['hub_id']}</b><br>Storage hub",
        ).add_to(m)


def add_worker_moves(m, positions, worker_moves, t_cur, bucket_minutes):
    """
    Visual encoding:
      - BLACK line: worker leg, thickness ~ bikes carried
      - GREEN triangle: arrival hub
    """
    if not worker_moves:
        return

    for move in worker_moves:
        if move_bucket(move, bucket_minutes) != t_cur:
            continue

        src = positions.get(move.from_hub)
        dst = positions.get(move.to_hub)
        if not src or not dst:
            continue

        weight = min(2 + move.bikes / 4, 8)

        PolyLine(
            locations=[src, dst],
            color="#111111",
            weight=weight,
            opacity=0.9,
            tooltip=(
                f"<b>{move.worker}</b><br>"
                f"From: {move.from_hub}<br>"
                f"To: {move.to_hub}<br>"
                f"Bikes on board: {move.bikes}"
            ),
        ).add_to(m)

        RegularPolygonMarker(
            location=dst,
            number_of_sides=3,
            radius=6,
            rotation=0,
            color="#1a9850",
            fill_color="#1a9850",
            fill_opacity=0.9,
        ).add_to(m)
