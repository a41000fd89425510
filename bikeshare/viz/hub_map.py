# bikeshare/viz/hub_map.py
from __future__ import annotations

import folium

from bikeshare.scenarios.base import Scenario
from bikeshare.viz.map_layer import (
    FULL_THRESHOLD,
    add_hub_markers,
    add_storage_markers,
    add_worker_moves,
    move_bucket,
)


def _positions(scenario: Scenario):
    pos = {}
    for h in scenario.meta.get("hubs", []) + scenario.meta.get("storage_hubs", []):
        pos[str(h["hub_id"])] = (h["y"], h["x"])
    return pos


def _time_label(t):
    return f"{t // 60:02d}:{t % 60:02d}"


def build_time_bar(state, hubs, valid_times, t_current, *, move_times=()):
    """Bars = hubs at or above FULL_THRESHOLD; a dot marks buckets with worker moves."""
    full_counts = {}
    for t in valid_times:
        cnt = 0
        for h in hubs:
            st = state.get((str(h["hub_id"]), t))
            if st and st["capacity"] > 0 and st["bikes"] / st["capacity"] >= FULL_THRESHOLD:
                cnt += 1
        full_counts[t] = cnt

    max_count = max(full_counts.values(), default=0)
    moves_at = set(move_times)

    items = []
    for t in valid_times:
        height = int((full_counts[t] / max_count) * 48) if max_count > 0 else 0
        dot = '<div class="timebar-move"></div>' if t in moves_at else ""
        items.append(
            f"""<a class="timebar-item" href="?t={t}" title="{_time_label(t)}">
              {dot}
              <div class="timebar-bar" style="height:{height}px; opacity:{'1.0' if t == t_current else '0.55'};"></div>
            </a>"""
        )

    idx = valid_times.index(t_current) if t_current in valid_times else 0
    prev_t = valid_times[max(idx - 1, 0)] if valid_times else 0
    next_t = valid_times[min(idx + 1, len(valid_times) - 1)] if valid_times else 0

    return folium.Element(
        f"""
<style>
#timebar {{
  position: fixed; left: 12px; right: 12px; bottom: 12px; z-index: 9999;
  background: rgba(255,255,255,0.92); border-radius: 6px; padding: 6px 10px;
  font-family: sans-serif; font-size: 12px;
}}
#timebar .timebar-row {{ display: flex; align-items: flex-end; gap: 1px; height: 56px; }}
#timebar .timebar-item {{ flex: 1; display: flex; flex-direction: column; justify-content: flex-end; height: 100%; }}
#timebar .timebar-bar {{ background: #4575b4; min-height: 1px; }}
#timebar .timebar-move {{ width: 4px; height: 4px; border-radius: 2px; background: #111; margin: 0 auto 2px; }}
</style>
<div id="timebar">
  <a href="?t={prev_t}">&larr;</a>
  <b>{_time_label(t_current)}</b>
  <a href="?t={next_t}">&rarr;</a>
  <div class="timebar-row">{''.join(items)}</div>
</div>
"""
    )


def build_map_document(scenario: Scenario, state, valid_times, t_cur, *, title=None):
    hubs = scenario.meta.get("hubs", [])
    storage_hubs = scenario.meta.get("storage_hubs", [])
    worker_moves = scenario.meta.get("worker_moves", [])
    positions = _positions(scenario)

    # hub coordinates are meters on a flat plane, not lat/lon
    m = folium.Map(
        crs="Simple",
        tiles=None,
        zoom_start=0,
        min_zoom=-6,
        prefer_canvas=True,
    )
    if positions:
        ys = [p[0] for p in positions.values()]
        xs = [p[1] for p in positions.values()]
        pad = 0.05 * max(max(xs) - min(xs), max(ys) - min(ys), 1.0)
        m.fit_bounds([[min(ys) - pad, min(xs) - pad], [max(ys) + pad, max(xs) + pad]])

    add_hub_markers(m, hubs, state, t_cur)
    add_storage_markers(m, storage_hubs)
    add_worker_moves(m, positions, worker_moves, t_cur, scenario.bucket_minutes)

    if valid_times:
        move_times = [move_bucket(mv, scenario.bucket_minutes) for mv in worker_moves]
        m.get_root().html.add_child(
            build_time_bar(state, hubs, valid_times, t_cur, move_times=move_times)
        )

    heading = title or scenario.name
    m.get_root().html.add_child(
        folium.Element(
            f"""
<div style="position: fixed; top: 10px; left: 50px; z-index: 9999;
            background: rgba(255,255,255,0.92); padding: 4px 10px; border-radius: 6px;
            font-family: sans-serif; font-size: 14px;">
  <b>{heading}</b>
</div>
"""
        )
    )

    return m.get_root().render()
