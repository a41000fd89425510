import pytest

from bikeshare.hubs.domain import HubDomain, UsrDomain
from bikeshare.hubs.hub import Hub
from bikeshare.hubs.listeners import HubDataListener, HubListener
from bikeshare.sim.random_vars import ConstantRV


class Recorder(HubListener):
    def __init__(self):
        self.calls = []

    def hub_changed(self, hub, need, excess, overflow):
        self.calls.append((need, excess, overflow))


class DataRecorder(HubDataListener):
    def __init__(self):
        self.calls = []

    def hub_changed(self, hub, bike_count, new_bike_count, overflow, new_overflow, time):
        self.calls.append((bike_count, new_bike_count, overflow, new_overflow))


def test_constructor_validates(sim):
    with pytest.raises(ValueError):
        Hub(sim, "bad", capacity=10, lower_trigger=6, nominal=5, upper_trigger=8)
    with pytest.raises(ValueError):
        Hub(sim, "bad", capacity=10, lower_trigger=2, nominal=5, upper_trigger=8, count=11)
    with pytest.raises(ValueError):
        Hub(sim, "bad", capacity=10, lower_trigger=2, nominal=5, upper_trigger=8, overflow=-1)


def test_count_defaults_to_nominal(sim):
    hub = Hub(sim, "h", capacity=10, lower_trigger=2, nominal=4, upper_trigger=8)
    assert hub.bike_count == 4
    assert hub.overflow == 0


def test_thresholds(make_hub):
    assert make_hub("low", count=1).need_bikes() == 1
    assert make_hub("high", count=10).excess_bikes() == 2
    mid = make_hub("mid", count=5)
    assert mid.need_bikes() == 0 and mid.excess_bikes() == 0


def test_decrement_clamps_at_zero(make_hub):
    hub = make_hub("h", count=3)
    assert hub.decr_bike_count(5) == 3
    assert hub.bike_count == 0
    assert hub.overflow == 0


def test_increment_past_capacity_goes_to_overflow(make_hub):
    hub = make_hub("h", count=8)
    assert hub.incr_bike_count(5) == 2
    assert hub.bike_count == 10
    assert hub.overflow == 3


def test_decrement_then_increment_restores_count(make_hub):
    hub = make_hub("h", count=6)
    removed = hub.decr_bike_count(4)
    hub.incr_bike_count(removed)
    assert hub.bike_count == 6
    assert hub.overflow == 0


def test_counts_stay_in_range(make_hub):
    hub = make_hub("h", count=5)
    for delta in (7, -20, 3, 15, -4, 12):
        if delta > 0:
            hub.incr_bike_count(delta)
        else:
            hub.decr_bike_count(-delta)
        assert 0 <= hub.bike_count <= hub.capacity
        assert hub.overflow >= 0


def test_overflow_argument_errors(make_hub):
    hub = make_hub("h", overflow=2)
    with pytest.raises(ValueError):
        hub.incr_overflow(-1)
    with pytest.raises(ValueError):
        hub.pickup_overflow(3)
    with pytest.raises(ValueError):
        hub.pickup_overflow(-1)
    assert hub.overflow == 2


def test_pickup_overflow_takes_time_per_bicycle(make_hub):
    hub = make_hub("h", overflow=4, pickup_time=ConstantRV(10.0))
    assert hub.pickup_overflow(3) == pytest.approx(30.0)
    assert hub.overflow == 1
    assert hub.pickup_overflow(0) == 0.0


def test_hub_listener_fires_on_threshold_change_only(make_hub):
    hub = make_hub("h", count=5)
    rec = Recorder()
    hub.add_hub_listener(rec)
    assert rec.calls == [(0, 0, 0)]

    hub.decr_bike_count(1)            # 4: still in range
    assert len(rec.calls) == 1
    hub.decr_bike_count(3)            # 1: below the lower trigger
    assert rec.calls[-1] == (1, 0, 0)
    hub.incr_overflow(2)
    assert rec.calls[-1] == (1, 0, 2)

    hub.remove_hub_listener(rec)
    hub.incr_bike_count(5)
    assert rec.calls[-1] == (1, 0, 2)


def test_data_listener_sees_every_change(make_hub):
    hub = make_hub("h", count=5)
    rec = DataRecorder()
    hub.add_hub_data_listener(rec)
    hub.decr_bike_count(1)
    hub.incr_bike_count(7)
    assert rec.calls == [(5, True, 0, True), (4, True, 0, False), (10, True, 1, True)]


def test_send_users_rides_bicycles(sim, usr_domain, make_hub):
    a = make_hub("a", x=0.0, count=5, usr_domain=usr_domain)
    b = make_hub("b", x=100.0, count=5, usr_domain=usr_domain)
    arrived = []

    domain = a.send_users(b, 2, continuation=lambda: arrived.append(sim.now))
    assert domain is usr_domain
    assert a.bike_count == 3
    assert b.bike_count == 5

    sim.run()
    assert arrived == [pytest.approx(10.0)]
    assert b.bike_count == 7


def test_send_users_into_overflow(sim, usr_domain, make_hub):
    a = make_hub("a", usr_domain=usr_domain)
    b = make_hub("b", x=10.0, usr_domain=usr_domain)
    a.send_users(b, 1, will_overflow=True)
    sim.run()
    assert b.bike_count == 5
    assert b.overflow == 1


def test_send_users_is_all_or_nothing(usr_domain, make_hub):
    a = make_hub("a", count=2, usr_domain=usr_domain)
    b = make_hub("b", usr_domain=usr_domain)
    assert a.send_users(b, 3) is None
    assert a.bike_count == 2


def test_send_users_needs_a_user_domain(usr_domain, make_hub):
    a = make_hub("a")
    b = make_hub("b", usr_domain=usr_domain)
    assert a.send_users(b, 1) is None
    c = make_hub("c", usr_domain=usr_domain)
    outside = make_hub("outside")
    assert c.send_users(outside, 1) is None
    assert c.bike_count == 5
    with pytest.raises(ValueError):
        c.send_users(b, -1)


def test_send_users_may_travel_without_bicycles(sim, sys_domain, make_hub):
    usr = UsrDomain(sim, "usr", parent=sys_domain)
    a = make_hub("a", usr_domain=usr)
    b = make_hub("b", x=50.0, usr_domain=usr)
    arrived = []

    domain = a.send_users(b, 2, continuation=lambda: arrived.append(True),
                          prob_function=lambda d_usr, d_parent: 0.0)
    assert domain is sys_domain
    assert a.bike_count == 5
    sim.run()
    assert arrived == [True]
    assert b.bike_count == 5

    assert a.send_users(b, 2, prob_function=lambda d_usr, d_parent: 1.0) is usr
    assert a.bike_count == 3


def test_domain_membership(sim, make_hub):
    domain = HubDomain(sim, "d")
    hub = make_hub("h")
    assert not hub.in_domain(domain)
    domain.join(hub)
    domain.join(hub)
    assert domain.members == [hub]
    assert hub.in_domain(domain)
    domain.leave(hub)
    assert not hub.in_domain(domain)
    assert not hub.in_domain(None)
