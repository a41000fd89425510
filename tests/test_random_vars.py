import numpy as np
import pytest

from bikeshare.sim.random_vars import (
    METERS_PER_MILE,
    ConstantRV,
    ExponentialRV,
    GaussianRV,
    UniformRV,
    hours,
    miles,
    minutes,
    mph,
    set_seed,
)


def test_units():
    assert miles(1) == METERS_PER_MILE
    assert mph(1) == pytest.approx(METERS_PER_MILE / 3600.0)
    assert minutes(2) == 120.0
    assert hours(1.5) == 5400.0


def test_minimum_clamps_samples():
    rv = ConstantRV(1.0, minimum=3.0)
    assert rv.next() == 3.0
    rv = ConstantRV(5.0)
    rv.tighten_minimum(2.0)
    rv.tighten_minimum(1.0)
    assert rv.minimum == 2.0
    assert rv.next() == 5.0


def test_sample_shapes_and_ranges():
    set_seed(3)
    u = UniformRV(2.0, 4.0).sample((100, 3))
    assert u.shape == (100, 3)
    assert np.all((u >= 2.0) & (u < 4.0))
    g = GaussianRV(10.0, 1.0, minimum=9.0).sample(1000)
    assert g.min() >= 9.0


def test_exponential_mean():
    set_seed(4)
    assert ExponentialRV(0.0).next() == 0.0
    assert ExponentialRV(60.0).sample(20000).mean() == pytest.approx(60.0, rel=0.05)
    with pytest.raises(ValueError):
        ExponentialRV(-1.0)


def test_seed_makes_draws_repeatable():
    set_seed(11)
    a = UniformRV(0.0, 1.0).sample(5)
    set_seed(11)
    b = UniformRV(0.0, 1.0).sample(5)
    assert np.array_equal(a, b)
