# tests/conftest.py
import pytest

from bikeshare.delays.static import StaticDelayTable
from bikeshare.hubs.domain import SysDomain, UsrDomain
from bikeshare.hubs.hub import Hub
from bikeshare.hubs.storage import StorageHub
from bikeshare.sim.random_vars import ConstantRV, set_seed
from bikeshare.sim.timebase import Simulation
from bikeshare.util.trace import set_trace_level

# meters per second for both workers and riders in test networks
SPEED = 10.0


@pytest.fixture
def sim():
    set_seed(12345)
    set_trace_level(0)
    return Simulation()


@pytest.fixture
def sys_domain(sim):
    domain = SysDomain(sim, "sys")
    StaticDelayTable(sim, "truck_delays", speed=ConstantRV(SPEED)).add_to_domain(domain)
    return domain


@pytest.fixture
def usr_domain(sim):
    domain = UsrDomain(sim, "usr")
    StaticDelayTable(sim, "bike_delays", speed=ConstantRV(SPEED)).add_to_domain(domain)
    return domain


@pytest.fixture
def make_hub(sim, sys_domain):
    """Hub factory: capacity 10, triggers 2 / 5 / 8 unless overridden."""

    def make(name, *, x=0.0, y=0.0, count=5, overflow=0, capacity=10,
             lower=2, nominal=5, upper=8, pickup_time=None, usr_domain=None):
        return Hub(
            sim,
            name,
            capacity=capacity,
            lower_trigger=lower,
            nominal=nominal,
            upper_trigger=upper,
            pickup_time=pickup_time,
            count=count,
            overflow=overflow,
            x=x,
            y=y,
            usr_domain=usr_domain,
            sys_domain=sys_domain,
        )

    return make


@pytest.fixture
def depot(sim, sys_domain):
    return StorageHub(sim, "depot", count=0, x=0.0, y=0.0, sys_domain=sys_domain)
