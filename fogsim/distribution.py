#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""Distributions of the interval between consecutive sensor emissions."""

from abc import ABC, abstractmethod
from typing import Optional, Union

import numpy as np
from gymnasium.utils import seeding

__all__ = [
    "Distribution",
    "DeterministicDistribution",
    "UniformDistribution",
    "NormalDistribution",
    "ExponentialDistribution",
]


class Distribution(ABC):
    """An abstract source of emission intervals.

    Attributes:
        _np_random: the random generator, created on first use unless
            :meth:`reset` seeds it.
    """

    _np_random: Union[np.random.Generator, None] = None

    @abstractmethod
    def next_interval(self) -> float:
        """Returns the time until the next emission. Never negative."""

    @property
    @abstractmethod
    def mean_interval(self) -> float:
        """The expected interval between emissions."""

    def reset(self, *, seed: Optional[int] = None) -> None:
        """Re-seeds the distribution's random generator."""
        self._np_random, _ = seeding.np_random(seed)

    @property
    def is_seeded(self) -> bool:
        return self._np_random is not None

    @property
    def np_random(self) -> np.random.Generator:
        """Returns the distribution's internal _np_random attribute.
        If not already set, this attribute will be initialised with a random seed.

        Returns:
            Generator: An instance of `np.random.Generator`.
        """
        if self._np_random is None:
            self._np_random, _ = seeding.np_random()
        return self._np_random

    @np_random.setter
    def np_random(self, value: np.random.Generator):
        self._np_random = value


class DeterministicDistribution(Distribution):
    """Always returns the same interval."""

    def __init__(self, value: float):
        if value < 0:
            raise ValueError(f"Interval {value} must be non-negative")
        self.value = value

    def next_interval(self) -> float:
        return self.value

    @property
    def mean_interval(self) -> float:
        return self.value

    def __repr__(self):
        return f"DeterministicDistribution(value={self.value})"


class UniformDistribution(Distribution):

    def __init__(self, low: float, high: float):
        if not 0 <= low <= high:
            raise ValueError(f"Unsupported bounds {low} and {high}")
        self.low = low
        self.high = high

    def next_interval(self) -> float:
        return float(self.np_random.uniform(self.low, self.high))

    @property
    def mean_interval(self) -> float:
        return (self.low + self.high) / 2

    def __repr__(self):
        return f"UniformDistribution(low={self.low}, high={self.high})"


class NormalDistribution(Distribution):
    """Normally distributed intervals. Negative samples are clipped to zero."""

    def __init__(self, mean: float, stdev: float):
        if mean < 0 or stdev < 0:
            raise ValueError("Mean and standard deviation must be non-negative")
        self.mean = mean
        self.stdev = stdev

    def next_interval(self) -> float:
        return max(0.0, float(self.np_random.normal(self.mean, self.stdev)))

    @property
    def mean_interval(self) -> float:
        return self.mean

    def __repr__(self):
        return f"NormalDistribution(mean={self.mean}, stdev={self.stdev})"


class ExponentialDistribution(Distribution):
    """Exponential intervals, i.e. emissions following a Poisson process."""

    def __init__(self, mean: float):
        if mean <= 0:
            raise ValueError(f"Mean {mean} must be positive")
        self.mean = mean

    def next_interval(self) -> float:
        return float(self.np_random.exponential(self.mean))

    @property
    def mean_interval(self) -> float:
        return self.mean

    def __repr__(self):
        return f"ExponentialDistribution(mean={self.mean})"
