#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""Models for computing the energy consumed by devices."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

__all__ = [
    "PowerModel",
    "LinearPowerModel",
    "PowerSample",
    "EnergyMeter",
]


class PowerModel(ABC):

    @abstractmethod
    def power(self, utilization: float) -> float:
        """Computes the power drawn by a device at the given utilization."""


@dataclass(frozen=True)
class LinearPowerModel(PowerModel):
    """
    Linear power model for fog devices.

    Attributes:
        busy_power (float): The power drawn when fully utilized.
        idle_power (float): The power drawn when idle.

    """

    busy_power: float
    idle_power: float

    def __post_init__(self):
        if self.busy_power < 0 or self.idle_power < 0:
            raise ValueError("Power coefficients must be non-negative")

    def power(self, utilization: float) -> float:
        return self.idle_power + (self.busy_power - self.idle_power) * utilization


class PowerSample(NamedTuple):
    time: float
    utilization: float
    power: float


class EnergyMeter:
    """
    Integrates the power drawn by a device over simulated time.

    The power is a step function: a sample recorded at a utilization change
    holds until the next change. The same integral of the utilization gives
    the execution cost, charged per MIPS in use.
    """

    power_model: PowerModel
    rate_per_mips: float
    total_mips: float
    samples: List[PowerSample]

    def __init__(
        self,
        power_model: PowerModel,
        rate_per_mips: float = 0.0,
        total_mips: float = 0.0,
        start_time: float = 0.0,
    ):
        self.power_model = power_model
        self.rate_per_mips = rate_per_mips
        self.total_mips = total_mips
        self._last_time = start_time
        self._utilization = 0.0
        self._energy = 0.0
        self._busy_time = 0.0
        self.samples = [PowerSample(start_time, 0.0, power_model.power(0.0))]

    @property
    def utilization(self) -> float:
        return self._utilization

    def record(self, time: float, utilization: float) -> PowerSample:
        """Closes the current step at ``time`` and starts a new one."""
        if time < self._last_time:
            raise ValueError(
                f"Power sample at {time} precedes the last sample at {self._last_time}"
            )
        if not 0.0 <= utilization <= 1.0:
            raise ValueError(f"Utilization {utilization} is not within [0, 1]")

        elapsed = time - self._last_time
        self._energy += elapsed * self.power_model.power(self._utilization)
        self._busy_time += elapsed * self._utilization
        self._last_time = time
        self._utilization = utilization

        sample = PowerSample(time, utilization, self.power_model.power(utilization))
        self.samples.append(sample)
        return sample

    def energy(self, until: Optional[float] = None) -> float:
        """Energy consumed from the start time until ``until``."""
        elapsed = self._elapsed(until)
        return self._energy + elapsed * self.power_model.power(self._utilization)

    def cost(self, until: Optional[float] = None) -> float:
        """Execution cost from the start time until ``until``."""
        busy_time = self._busy_time + self._elapsed(until) * self._utilization
        return self.rate_per_mips * self.total_mips * busy_time

    def _elapsed(self, until: Optional[float]) -> float:
        if until is None:
            return 0.0
        if until < self._last_time:
            raise ValueError(f"Time {until} precedes the last sample at {self._last_time}")
        return until - self._last_time
