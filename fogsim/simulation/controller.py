#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Submission and execution of applications on a fog topology.

A :class:`SimulationContext` owns everything one run needs (event queue,
topology, sensors, actuators, telemetry and random generator), so several
independent simulations can live in the same process. The
:class:`Controller` places the modules of submitted applications, binds
their sensors and actuators to gateway devices, and drives the clock.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import itertools
import math

import numpy as np
import pandas as pd
from absl import logging
from gymnasium.utils import seeding

from fogsim.application import Application
from fogsim.errors import ConfigurationError, UnknownDevice, UnplacedModule
from fogsim.placement import PlacementMapping
from fogsim.tuples import DataTuple

from .entities import Actuator, Sensor
from .kernel import EventKind, EventQueue, SimEntity, SimEvent
from .resources import Device, Topology
from .telemetry import RecordKind, Telemetry

__all__ = [
    "SimulationContext",
    "SimulationReport",
    "Controller",
]


class SimulationContext:
    """State of one simulation run."""

    queue: EventQueue
    topology: Topology
    telemetry: Telemetry
    sensors: List[Sensor]
    actuators: List[Actuator]
    applications: Dict[str, Application]
    seed: Optional[int]
    _np_random: np.random.Generator
    _placements: Dict[Tuple[str, str], int]
    _tuple_ids: itertools.count

    def __init__(self, seed: Optional[int] = None, keep_trace: bool = True):
        self.queue = EventQueue(keep_trace=keep_trace)
        self.topology = Topology()
        self.telemetry = Telemetry()
        self.sensors = []
        self.actuators = []
        self.applications = {}
        self._np_random, self.seed = seeding.np_random(seed)
        self._placements = {}
        self._tuple_ids = itertools.count(start=0)

    @property
    def np_random(self) -> np.random.Generator:
        return self._np_random

    @property
    def now(self) -> float:
        return self.queue.now

    def add_device(self, device: Device, parent: Optional[str] = None) -> Device:
        """Registers a device and attaches it below ``parent`` in the topology."""
        if device.name in self.topology:
            raise ConfigurationError(f"Duplicate device name {device.name}")
        if parent is not None and parent not in self.topology:
            raise UnknownDevice(parent)
        self.queue.register(device)
        device.attach(self)
        return self.topology.add(device, parent)

    def add_sensor(self, sensor: Sensor) -> Sensor:
        self.queue.register(sensor)
        sensor.attach(self)
        if not sensor.distribution.is_seeded:
            sensor.distribution.reset(seed=int(self._np_random.integers(2**31 - 1)))
        self.sensors.append(sensor)
        return sensor

    def add_actuator(self, actuator: Actuator) -> Actuator:
        self.queue.register(actuator)
        actuator.attach(self)
        self.actuators.append(actuator)
        return actuator

    def device(self, name: str) -> Device:
        device = self.topology.by_name(name)
        if device is None:
            raise UnknownDevice(name)
        return device

    def application(self, app_id: str) -> Application:
        return self.applications[app_id]

    def place(self, app_id: str, module: str, device: Device) -> None:
        self._placements[(app_id, module)] = device.entity_id

    def placement(self, app_id: str) -> Dict[str, str]:
        """Module name -> device name for a submitted application."""
        return {
            module: self.topology.device(device_id).name
            for (placed_app, module), device_id in self._placements.items()
            if placed_app == app_id
        }

    def locate(self, app_id: str, endpoint: str) -> Optional[int]:
        """
        Returns the id of the device that claims ``endpoint``: the host of the
        module, or the gateway of the first actuator of that type.
        """
        device_id = self._placements.get((app_id, endpoint))
        if device_id is not None:
            return device_id
        for actuator in self.actuators:
            if actuator.bound and actuator.app_id == app_id and actuator.actuator_type == endpoint:
                return actuator.gateway_id
        return None

    def actuators_at(self, device_id: int, app_id: str, actuator_type: str) -> List[Actuator]:
        return [
            actuator
            for actuator in self.actuators
            if actuator.gateway_id == device_id
            and actuator.app_id == app_id
            and actuator.actuator_type == actuator_type
        ]

    def next_tuple_id(self) -> int:
        return next(self._tuple_ids)

    def check_loops(self, tup: DataTuple, endpoint: str, entity: str) -> None:
        """Records the delay of every application loop ``tup`` closes at ``endpoint``."""
        application = self.applications.get(tup.app_id)
        if application is None:
            return
        names = [name for name, _ in tup.trail]
        for loop in application.loops:
            if loop.endpoints[-1] != endpoint:
                continue
            prefix = list(loop.endpoints[:-1])
            if names[-len(prefix):] != prefix:
                continue
            _, started_at = tup.trail[-len(prefix)]
            self.telemetry.emit(
                self.now,
                RecordKind.LOOP_COMPLETED,
                entity,
                app_id=tup.app_id,
                loop=str(loop),
                delay=self.now - started_at,
            )


@dataclass
class SimulationReport:
    """Figures collected at the end of a run."""

    end_time: float
    events: int
    energy: Dict[str, float] = field(default_factory=dict)
    cost: Dict[str, float] = field(default_factory=dict)
    network_usage: float = 0.0
    loop_delays: Dict[str, float] = field(default_factory=dict)
    tuple_execution_delays: Dict[str, float] = field(default_factory=dict)
    sensor_emissions: Dict[str, int] = field(default_factory=dict)
    actuator_deliveries: Dict[str, int] = field(default_factory=dict)
    routing_failures: int = 0

    @property
    def total_energy(self) -> float:
        return sum(self.energy.values())

    @property
    def total_cost(self) -> float:
        return sum(self.cost.values())

    @property
    def network_usage_rate(self) -> float:
        """Network usage per unit of simulated time."""
        if self.end_time <= 0:
            return 0.0
        return self.network_usage / self.end_time

    def devices_frame(self) -> pd.DataFrame:
        """Energy and cost per device as a DataFrame indexed by device name."""
        df = pd.DataFrame(
            {"energy": pd.Series(self.energy, dtype=float), "cost": pd.Series(self.cost, dtype=float)}
        )
        df.index.name = "device"
        return df

    @staticmethod
    def build(context: SimulationContext, end_time: float, events: int) -> SimulationReport:
        telemetry = context.telemetry

        loops = defaultdict(list)
        for record in telemetry.of_kind(RecordKind.LOOP_COMPLETED):
            loops[record.data["loop"]].append(record.data["delay"])

        executions = defaultdict(list)
        for record in telemetry.of_kind(RecordKind.MODULE_COMPLETED):
            executions[record.data["tuple_type"]].append(record.data["execution_delay"])

        return SimulationReport(
            end_time=end_time,
            events=events,
            energy={device.name: device.energy(end_time) for device in context.topology},
            cost={device.name: device.cost(end_time) for device in context.topology},
            network_usage=math.fsum(
                record.data["network_usage"]
                for record in telemetry.of_kind(RecordKind.TUPLE_FORWARDED)
            ),
            loop_delays={loop: float(np.mean(delays)) for loop, delays in loops.items()},
            tuple_execution_delays={
                tuple_type: float(np.mean(delays)) for tuple_type, delays in executions.items()
            },
            sensor_emissions={sensor.name: sensor.emitted for sensor in context.sensors},
            actuator_deliveries={
                actuator.name: len(actuator.received) for actuator in context.actuators
            },
            routing_failures=telemetry.count(RecordKind.ROUTING_FAILURE),
        )


class Controller(SimEntity):
    """Submits applications to a simulation context and runs it."""

    context: SimulationContext
    _started: bool

    def __init__(self, context: SimulationContext, name: str = "controller"):
        super().__init__(name)
        self.context = context
        self._started = False
        context.queue.register(self)

    def submit(self, application: Application, mapping: PlacementMapping) -> None:
        """
        Places every module of ``application`` on the device given by
        ``mapping`` and binds the application's sensors and actuators to
        their gateway devices.

        Raises:
            UnplacedModule: if a module has no device in the mapping.
            UnknownDevice: if the mapping or a gateway names a missing device.
            ConfigurationError: if the application was already submitted.
        """
        context = self.context
        app_id = application.app_id
        if app_id in context.applications:
            raise ConfigurationError(f"Application {app_id} was already submitted")

        placements = {}
        for module in application.modules:
            device_name = mapping.device_for(module)
            if device_name is None:
                raise UnplacedModule(module, app_id)
            placements[module] = context.device(device_name)

        for module, _ in mapping.items():
            if module not in placements:
                logging.warning("Module %s is placed but %s does not declare it", module, app_id)

        sensors = [sensor for sensor in context.sensors if sensor.app_id == app_id]
        actuators = [actuator for actuator in context.actuators if actuator.app_id == app_id]
        gateways = {entity.name: context.device(entity.gateway) for entity in sensors + actuators}

        for problem in application.validate(
            sensor_tags=[sensor.tuple_type for sensor in sensors],
            actuator_tags=[actuator.actuator_type for actuator in actuators],
        ):
            logging.warning("%s", problem)

        mapping.freeze()
        for module, device in placements.items():
            device.instantiate_module(app_id, module, application.nodes[module].ram)
            context.place(app_id, module, device)
            logging.info("Module %s of %s placed on %s", module, app_id, device.name)

        for entity in sensors + actuators:
            entity.gateway_id = gateways[entity.name].entity_id

        context.applications[app_id] = application
        logging.info(
            "Application %s submitted with %d modules, %d sensors and %d actuators",
            app_id, len(placements), len(sensors), len(actuators),
        )

    def run(self, until: Optional[float] = None, max_events: Optional[int] = None) -> SimulationReport:
        """
        Starts the sensors (on the first call) and dispatches events until
        the queue drains, :meth:`stop` is called, the time horizon ``until``
        is reached or ``max_events`` events were dispatched.
        """
        queue = self.context.queue
        if until is not None and until < queue.now:
            raise ValueError(f"Time horizon {until} precedes the current time {queue.now}")

        if not self._started:
            self._started = True
            for sensor in self.context.sensors:
                if sensor.bound:
                    sensor.start()

        logging.info("Simulation started at time %s", queue.now)
        executed = queue.run(until=until, max_events=max_events)

        horizon_reached = until is not None and not queue.stopped and queue.peek() > until
        end_time = until if horizon_reached else queue.now
        logging.info("Simulation finished at time %s after %d events", end_time, executed)
        return SimulationReport.build(self.context, end_time, executed)

    def stop(self, delay: Optional[float] = None) -> None:
        """Stops the run now, or ``delay`` time units from now.

        Without a delay and outside a run, the next :meth:`run` returns
        before dispatching any event.
        """
        if delay is None:
            self.context.queue.stop()
        else:
            self.send(self.entity_id, EventKind.STOP, delay=delay)

    def process_event(self, event: SimEvent) -> None:
        if event.kind != EventKind.STOP:
            raise ValueError(f"Controller cannot handle {event.kind} events")
        logging.info("Stop requested at time %s", self.now)
        self.context.queue.stop()
