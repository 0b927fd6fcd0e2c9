#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Selectivity models decide how many output tuples a module produces for an
output edge each time it finishes processing an input tuple.

Models receive the random generator of the simulation and keep no state
of their own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Union

import numpy as np

if TYPE_CHECKING:
    from fogsim.tuples import DataTuple

__all__ = [
    "SelectivityModel",
    "FractionalSelectivity",
    "FixedCountSelectivity",
    "CustomSelectivity",
]


class SelectivityModel(ABC):

    @abstractmethod
    def select(self, input_tuple: "DataTuple", rng: np.random.Generator) -> int:
        """Returns the number of output tuples to emit for ``input_tuple``."""

    @property
    @abstractmethod
    def mean_rate(self) -> float:
        """Expected number of outputs per input."""


@dataclass(frozen=True)
class FractionalSelectivity(SelectivityModel):
    """Emits exactly one output tuple with probability ``selectivity``."""

    selectivity: float

    def __post_init__(self):
        if not 0.0 <= self.selectivity <= 1.0:
            raise ValueError(f"Selectivity {self.selectivity} is not within [0, 1]")

    def select(self, input_tuple: "DataTuple", rng: np.random.Generator) -> int:
        if self.selectivity >= 1.0:
            return 1
        if self.selectivity <= 0.0:
            return 0
        return int(rng.random() < self.selectivity)

    @property
    def mean_rate(self) -> float:
        return self.selectivity


@dataclass(frozen=True)
class FixedCountSelectivity(SelectivityModel):
    """Emits ``count`` output tuples for every input."""

    count: int

    def __post_init__(self):
        if self.count < 0:
            raise ValueError(f"Count {self.count} must be non-negative")

    def select(self, input_tuple: "DataTuple", rng: np.random.Generator) -> int:
        return self.count

    @property
    def mean_rate(self) -> float:
        return float(self.count)


@dataclass(frozen=True)
class CustomSelectivity(SelectivityModel):
    """
    Wraps a function of the input tuple and the random generator returning
    either a boolean (emit or not) or a number of outputs.
    """

    fn: Callable[["DataTuple", np.random.Generator], Union[bool, int]]
    expected_rate: float = 1.0

    def select(self, input_tuple: "DataTuple", rng: np.random.Generator) -> int:
        count = int(self.fn(input_tuple, rng))
        if count < 0:
            raise ValueError(f"Selectivity function returned a negative count: {count}")
        return count

    @property
    def mean_rate(self) -> float:
        return self.expected_rate
