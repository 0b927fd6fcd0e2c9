#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
This module provides the classes required to build a discrete event
simulation of applications placed onto a fog topology.
"""

from .kernel import EventKind, EventQueue, SimEntity, SimEvent, TraceRecord
from .scheduler import (
    ProcessingElement,
    ProcessorScheduler,
    TimeSharedScheduler,
    SpaceSharedScheduler,
)
from .energy import EnergyMeter, LinearPowerModel, PowerModel
from .telemetry import RecordKind, Telemetry, TelemetryRecord
from .resources import Device, ModuleInstance, Topology
from .entities import Actuator, Sensor
from .controller import Controller, SimulationContext, SimulationReport

__all__ = [
    "Actuator",
    "Controller",
    "Device",
    "EnergyMeter",
    "EventKind",
    "EventQueue",
    "LinearPowerModel",
    "ModuleInstance",
    "PowerModel",
    "ProcessingElement",
    "ProcessorScheduler",
    "RecordKind",
    "Sensor",
    "SimEntity",
    "SimEvent",
    "SimulationContext",
    "SimulationReport",
    "SpaceSharedScheduler",
    "Telemetry",
    "TelemetryRecord",
    "TimeSharedScheduler",
    "Topology",
    "TraceRecord",
]
