import math

import pytest

from bikeshare.delays.scheduled import ScheduledDelayTable
from bikeshare.delays.static import MIN_STATIC_DELAY_TABLE_SPEED, StaticDelayTable
from bikeshare.sim.random_vars import ConstantRV, GaussianRV, miles, mph


@pytest.fixture
def hubs(make_hub):
    return make_hub("h1", x=0.0, y=0.0), make_hub("h2", x=3.0, y=4.0)


@pytest.fixture
def timetable(sim, hubs):
    h1, h2 = hubs
    table = ScheduledDelayTable(sim, "timetable")
    for start, end in [(20, 50), (25, 48), (50, 60), (55, 65), (100, 120), (110, 120)]:
        table.add_entry(h1, h2, start, end)
    return table


# ----------------------------
# Scheduled
# ----------------------------
def test_earliest_arrival_reachable_at_query_time(timetable, hubs):
    h1, h2 = hubs
    assert timetable.get_delay(24, h1, h2, 1) == 24
    assert timetable.latest_starting_time(24, h1, h2) == 25
    assert timetable.estimate_delay(24, h1, h2, 1) == 24


def test_departure_already_gone_is_skipped(timetable, hubs):
    h1, h2 = hubs
    # [20, 50] left at 20; the next reachable one is [50, 60]
    assert timetable.get_delay(49, h1, h2, 1) == 11
    assert timetable.latest_starting_time(49, h1, h2) == 50


def test_equal_arrivals_prefer_latest_departure(timetable, hubs):
    h1, h2 = hubs
    assert timetable.latest_starting_time(95, h1, h2) == 110
    assert timetable.get_delay(95, h1, h2, 1) == 25
    assert timetable.latest_starting_time(101, h1, h2) == 110


def test_past_the_last_interval(timetable, hubs):
    h1, h2 = hubs
    assert timetable.get_delay(121, h1, h2, 1) == math.inf
    assert timetable.latest_starting_time(121, h1, h2) == -math.inf
    assert timetable.get_delay(120, h1, h2, 1) == math.inf


def test_unknown_pair_and_same_hub(timetable, hubs):
    h1, h2 = hubs
    assert timetable.get_delay(0, h2, h1, 1) == math.inf
    assert timetable.get_delay(0, h1, h1, 1) == 0.0


def test_duplicates_rejected(timetable, hubs):
    h1, h2 = hubs
    before = len(timetable.intervals(h1, h2))
    timetable.add_entry(h1, h2, 20, 50)
    assert len(timetable.intervals(h1, h2)) == before
    # ordered by ending time, then starting time
    assert timetable.intervals(h1, h2)[:2] == [(25.0, 48.0), (20.0, 50.0)]


def test_periodic_entries(sim, hubs):
    h1, h2 = hubs
    table = ScheduledDelayTable(sim, "periodic")
    table.add_entries(h1, h2, 0.0, 30.0, 10.0, 5.0)
    assert table.intervals(h1, h2) == [(0.0, 5.0), (10.0, 15.0), (20.0, 25.0), (30.0, 35.0)]
    with pytest.raises(ValueError):
        table.add_entries(h1, h2, 0.0, 30.0, 0.0, 5.0)


def test_missing_hubs_rejected(timetable, hubs):
    h1, _ = hubs
    with pytest.raises(ValueError):
        timetable.add_entry(h1, None, 0, 1)
    with pytest.raises(ValueError):
        timetable.get_delay(0, None, h1, 1)


# ----------------------------
# Static
# ----------------------------
def test_distance_blends_euclidean_and_manhattan(sim, hubs):
    h1, h2 = hubs
    table = StaticDelayTable(sim, "static", speed=ConstantRV(2.0))
    # euclidean 5, manhattan 7
    assert table.get_entry(h1, h2).distance == pytest.approx(6.0)
    assert table.estimate_delay(0.0, h1, h2, 1) == pytest.approx(3.0)
    assert table.get_delay(0.0, h1, h2, 1) == pytest.approx(3.0)
    assert table.latest_starting_time(7.0, h1, h2) == 7.0


def test_full_manhattan_over_one_mile(sim, make_hub):
    a = make_hub("a", x=0.0, y=0.0)
    b = make_hub("b", x=miles(1), y=0.0)
    table = StaticDelayTable(sim, "static", speed=ConstantRV(mph(10)), dist_fraction=1.0)
    assert table.get_entry(a, b).distance == 1609.344
    assert table.get_delay(0.0, a, b, 1) == pytest.approx(360.0)


def test_explicit_entry_wins(sim, hubs):
    h1, h2 = hubs
    table = StaticDelayTable(sim, "static", speed=ConstantRV(2.0))
    table.add_entry(h1, h2, 100.0)
    assert table.get_delay(0.0, h1, h2, 1) == pytest.approx(50.0)
    # the reverse direction still uses coordinates
    assert table.get_delay(0.0, h2, h1, 1) == pytest.approx(3.0)


def test_stops_scale_with_distance(sim, hubs):
    h1, h2 = hubs
    table = StaticDelayTable(
        sim, "static", speed=ConstantRV(2.0),
        distance=10.0, stops=4, stop_probability=1.0, max_wait=10.0,
    )
    entry = table.get_entry(h1, h2)
    assert entry.stops == 2
    assert entry.max_wait == 10.0
    assert table.estimate_delay(0.0, h1, h2, 1) == pytest.approx(3.0 + 2 * 5.0)
    for _ in range(20):
        assert 3.0 <= table.get_delay(0.0, h1, h2, 1) <= 23.0


def test_zero_default_distance_means_no_stops(sim, hubs):
    h1, h2 = hubs
    table = StaticDelayTable(sim, "static", speed=ConstantRV(2.0), stops=4, stop_probability=1.0, max_wait=10.0)
    assert table.get_entry(h1, h2).stops == 0


def test_speed_has_a_floor(sim, hubs):
    h1, h2 = hubs
    table = StaticDelayTable(sim, "static", speed=ConstantRV(0.0))
    assert table.get_delay(0.0, h1, h2, 1) == pytest.approx(6.0 / MIN_STATIC_DELAY_TABLE_SPEED)


def test_groups_travel_at_slowest_speed(sim, hubs):
    h1, h2 = hubs
    table = StaticDelayTable(sim, "static", speed=GaussianRV(5.0, 1.0))
    assert table.estimated_speed(5) < table.estimated_speed(1)
    assert table.estimated_speed(1) == pytest.approx(5.0, abs=0.1)
    assert table.estimate_delay(0.0, h1, h2, 5) > table.estimate_delay(0.0, h1, h2, 1)


def test_added_to_domain(sim, sys_domain, hubs):
    h1, h2 = hubs
    table = StaticDelayTable(sim, "slow", speed=ConstantRV(1.0))
    table.add_to_domain(sys_domain)
    assert sys_domain.delay_table is table
    assert sys_domain.get_delay(h1, h2, 1) == pytest.approx(6.0)
    assert sys_domain.get_delay(h1, h1, 1) == 0.0
