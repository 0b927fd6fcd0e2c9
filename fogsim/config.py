#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Module containing the classes required for building
the topology of a fog simulation from configuration.

The default configuration describes a two-tier topology: a cloud data
center (level 0) and one fog node (level 1), with a sensor and an
actuator attached to the fog node.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

import gin

from fogsim.distribution import DeterministicDistribution, Distribution
from fogsim.simulation import (
    Actuator,
    Device,
    LinearPowerModel,
    ProcessingElement,
    ProcessorScheduler,
    Sensor,
    SimulationContext,
    SpaceSharedScheduler,
    TimeSharedScheduler,
)

__all__ = [
    "SchedulerType",
    "DeviceConfig",
    "SensorConfig",
    "ActuatorConfig",
    "TopologyConfig",
    "build_topology",
    "DEFAULT_TOPOLOGY",
]


class SchedulerType(Enum):
    TIME_SHARED = "time_shared"
    SPACE_SHARED = "space_shared"

    # Python < 3.11 does not have StrEnum
    def __str__(self):
        return self.value

    @property
    def scheduler_cls(self) -> Type[ProcessorScheduler]:
        return {
            SchedulerType.TIME_SHARED: TimeSharedScheduler,
            SchedulerType.SPACE_SHARED: SpaceSharedScheduler,
        }[self]


@dataclass(frozen=True)
class DeviceConfig:
    """Data type for the configuration of a fog device."""

    name: str
    level: int
    mips: float
    ram: int
    uplink_bandwidth: float
    downlink_bandwidth: float
    busy_power: float
    idle_power: float
    parent: Optional[str] = None
    uplink_latency: float = 0.0
    rate_per_mips: float = 0.0
    num_pes: int = 1
    scheduler: SchedulerType = SchedulerType.TIME_SHARED

    def processing_elements(self) -> List[ProcessingElement]:
        """All PEs of a device share the configured MIPS rating."""
        return [ProcessingElement(pe_id=i, mips=self.mips) for i in range(self.num_pes)]


@dataclass(frozen=True)
class SensorConfig:
    """
    Data type for the configuration of a sensor. The distribution is
    given as a class and the parameters to build it.
    """

    name: str
    tuple_type: str
    app_id: str
    gateway: str
    distribution: Tuple[Type[Distribution], Dict[str, Any]]
    latency: float = 0.0
    start_delay: float = 0.0


@dataclass(frozen=True)
class ActuatorConfig:
    name: str
    actuator_type: str
    app_id: str
    gateway: str
    latency: float = 0.0


@dataclass(frozen=True)
class TopologyConfig:
    """Data type for the configuration of a whole topology.

    Devices must be listed parents first.
    """

    devices: List[DeviceConfig]
    sensors: List[SensorConfig] = field(default_factory=list)
    actuators: List[ActuatorConfig] = field(default_factory=list)

    def num_devices(self) -> int:
        return len(self.devices)

    def max_level(self) -> int:
        """Returns the level of the device closest to the edge."""
        return max((device.level for device in self.devices), default=0)


@gin.configurable
def build_topology(
    context: SimulationContext,
    config: TopologyConfig,
    link_queueing: bool = False,
) -> SimulationContext:
    """
    Creates the devices, sensors and actuators described by ``config``
    in the given simulation context.

    Args:
        context: the context that will own the entities.
        config: the topology configuration.
        link_queueing: whether links transmit one tuple at a time.

    Returns:
        The simulation context.
    """
    for device_config in config.devices:
        device = Device(
            name=device_config.name,
            level=device_config.level,
            pes=device_config.processing_elements(),
            power_model=LinearPowerModel(
                busy_power=device_config.busy_power, idle_power=device_config.idle_power
            ),
            uplink_bandwidth=device_config.uplink_bandwidth,
            downlink_bandwidth=device_config.downlink_bandwidth,
            uplink_latency=device_config.uplink_latency,
            rate_per_mips=device_config.rate_per_mips,
            ram=device_config.ram,
            scheduler_cls=device_config.scheduler.scheduler_cls,
            link_queueing=link_queueing,
        )
        context.add_device(device, parent=device_config.parent)

    for sensor_config in config.sensors:
        distribution_cls, distribution_params = sensor_config.distribution
        context.add_sensor(
            Sensor(
                name=sensor_config.name,
                tuple_type=sensor_config.tuple_type,
                app_id=sensor_config.app_id,
                distribution=distribution_cls(**distribution_params),
                gateway=sensor_config.gateway,
                latency=sensor_config.latency,
                start_delay=sensor_config.start_delay,
            )
        )

    for actuator_config in config.actuators:
        context.add_actuator(
            Actuator(
                name=actuator_config.name,
                actuator_type=actuator_config.actuator_type,
                app_id=actuator_config.app_id,
                gateway=actuator_config.gateway,
                latency=actuator_config.latency,
            )
        )
    return context


DEFAULT_APP_ID = "MyApp"

DEFAULT_TOPOLOGY = TopologyConfig(
    devices=[
        DeviceConfig(
            name="cloud",
            level=0,
            mips=44800,
            ram=40000,
            uplink_bandwidth=10000,
            downlink_bandwidth=10000,
            rate_per_mips=0.01,
            busy_power=16 * 103,
            idle_power=16 * 83.25,
        ),
        DeviceConfig(
            name="fogNode",
            level=1,
            mips=2800,
            ram=4000,
            uplink_bandwidth=10000,
            downlink_bandwidth=10000,
            busy_power=107.339,
            idle_power=83.4333,
            parent="cloud",
            uplink_latency=20,
        ),
    ],
    sensors=[
        SensorConfig(
            name="sensor-1",
            tuple_type="SENSOR",
            app_id=DEFAULT_APP_ID,
            gateway="fogNode",
            distribution=(DeterministicDistribution, {"value": 5}),
            latency=1.0,
        ),
    ],
    actuators=[
        ActuatorConfig(
            name="actuator-1",
            actuator_type="ACTUATOR",
            app_id=DEFAULT_APP_ID,
            gateway="fogNode",
            latency=1.0,
        ),
    ],
)
