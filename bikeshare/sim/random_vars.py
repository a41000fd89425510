# bikeshare/sim/random_vars.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np


# ----------------------------
# Shared generator
# ----------------------------
_RNG = np.random.default_rng()


def set_seed(seed: int | None) -> None:
    """Reseed the generator shared by every random variable and table."""
    global _RNG
    _RNG = np.random.default_rng(seed)


def rng() -> np.random.Generator:
    return _RNG


def next_double() -> float:
    """Uniform value in [0, 1)."""
    return float(_RNG.random())


# ----------------------------
# Units (MKS)
# ----------------------------
METERS_PER_MILE = 1609.344


def miles(x: float) -> float:
    return float(x) * METERS_PER_MILE


def mph(x: float) -> float:
    return float(x) * METERS_PER_MILE / 3600.0


def minutes(x: float) -> float:
    return float(x) * 60.0


def hours(x: float) -> float:
    return float(x) * 3600.0


# ----------------------------
# Random variables
# ----------------------------
@dataclass
class RandomVariable:
    """
    Base class for the real-valued random variables used by hubs (pickup
    times), delay tables (speeds) and trip generators (interarrival times).

    `minimum` is applied by clamping; `sample(size)` draws a numpy array.
    """
    minimum: Optional[float] = field(default=None, kw_only=True)

    def _draw(self, size) -> np.ndarray:
        raise NotImplementedError

    def sample(self, size) -> np.ndarray:
        values = np.asarray(self._draw(size), dtype=np.float64)
        if self.minimum is not None:
            values = np.maximum(values, self.minimum)
        return values

    def next(self) -> float:
        return float(self.sample(1)[0])

    def tighten_minimum(self, value: float) -> None:
        if self.minimum is None or value > self.minimum:
            self.minimum = float(value)


@dataclass
class ConstantRV(RandomVariable):
    value: float = 0.0

    def _draw(self, size) -> np.ndarray:
        return np.full(size, float(self.value))


@dataclass
class UniformRV(RandomVariable):
    low: float = 0.0
    high: float = 1.0

    def _draw(self, size) -> np.ndarray:
        return rng().uniform(self.low, self.high, size)


@dataclass
class GaussianRV(RandomVariable):
    mean: float = 0.0
    sdev: float = 1.0

    def _draw(self, size) -> np.ndarray:
        return rng().normal(self.mean, self.sdev, size)


@dataclass
class ExponentialRV(RandomVariable):
    mean: float = 1.0

    def __post_init__(self):
        if self.mean < 0.0 or math.isnan(self.mean):
            raise ValueError(f"mean must be >= 0, got {self.mean}")

    def _draw(self, size) -> np.ndarray:
        if self.mean == 0.0:
            return np.zeros(size)
        return rng().exponential(self.mean, size)
