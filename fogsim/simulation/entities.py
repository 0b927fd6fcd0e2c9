#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""Sensors and actuators, the boundary entities of an application."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from absl import logging

from fogsim.distribution import Distribution
from fogsim.tuples import DataTuple

from .kernel import EventKind, SimEntity, SimEvent
from .telemetry import RecordKind

if TYPE_CHECKING:
    from .controller import SimulationContext

__all__ = ["Sensor", "Actuator"]


class _GatewayEntity(SimEntity):
    """An entity attached to a gateway device of the topology."""

    app_id: str
    gateway: str
    gateway_id: Optional[int]
    latency: float
    _context: Optional[SimulationContext]

    def __init__(self, name: str, app_id: str, gateway: str, latency: float = 0.0):
        super().__init__(name)
        if latency < 0:
            raise ValueError(f"{name} has a negative latency")
        self.app_id = app_id
        self.gateway = gateway
        self.gateway_id = None
        self.latency = latency
        self._context = None

    @property
    def context(self) -> SimulationContext:
        if self._context is None:
            raise RuntimeError(f"{self.name} was not added to a simulation context")
        return self._context

    def attach(self, context: SimulationContext) -> None:
        self._context = context

    @property
    def bound(self) -> bool:
        return self.gateway_id is not None


class Sensor(_GatewayEntity):
    """
    Emits tuples of its tag into the application, one per emission,
    at intervals sampled from its distribution. The first emission
    happens ``start_delay`` after the simulation starts.
    """

    tuple_type: str
    distribution: Distribution
    start_delay: float
    emitted: int

    def __init__(
        self,
        name: str,
        tuple_type: str,
        app_id: str,
        distribution: Distribution,
        gateway: str,
        latency: float = 0.0,
        start_delay: float = 0.0,
    ):
        super().__init__(name, app_id, gateway, latency)
        self.tuple_type = tuple_type
        self.distribution = distribution
        self.start_delay = start_delay
        self.emitted = 0

    def start(self) -> None:
        self.send(self.entity_id, EventKind.SENSOR_EMIT, delay=self.start_delay)

    def process_event(self, event: SimEvent) -> None:
        if event.kind != EventKind.SENSOR_EMIT:
            raise ValueError(f"Sensor {self.name} cannot handle {event.kind} events")
        self.emit()
        self.send(
            self.entity_id,
            EventKind.SENSOR_EMIT,
            delay=self.distribution.next_interval(),
        )

    def emit(self) -> List[DataTuple]:
        """Sends one tuple along each sensor edge of the application."""
        context = self.context
        application = context.application(self.app_id)
        edges = application.sensor_edges(self.tuple_type)
        if not edges:
            logging.warning(
                "Application %s has no edge for sensor %s of type %s",
                self.app_id, self.name, self.tuple_type,
            )

        emitted = []
        for edge in edges:
            tup = DataTuple.from_edge(
                edge,
                tuple_id=context.next_tuple_id(),
                app_id=self.app_id,
                created_at=self.now,
                origin_time=self.now,
                trail=(),
                max_hops=application.trail_length,
            )
            context.telemetry.emit(
                self.now,
                RecordKind.TUPLE_CREATED,
                self.name,
                tuple_id=tup.tuple_id,
                tuple_type=tup.tuple_type,
                source=tup.source,
                destination=tup.destination,
            )
            self.send(
                self.gateway_id,
                EventKind.TUPLE_ARRIVAL,
                tup.forwarded(self.latency),
                delay=self.latency,
            )
            emitted.append(tup)

        self.emitted += 1
        return emitted


class Actuator(_GatewayEntity):
    """Terminates the flows addressed to its tag."""

    actuator_type: str
    received: List[DataTuple]

    def __init__(
        self,
        name: str,
        actuator_type: str,
        app_id: str,
        gateway: str,
        latency: float = 0.0,
    ):
        super().__init__(name, app_id, gateway, latency)
        self.actuator_type = actuator_type
        self.received = []

    def process_event(self, event: SimEvent) -> None:
        if event.kind != EventKind.TUPLE_ARRIVAL:
            raise ValueError(f"Actuator {self.name} cannot handle {event.kind} events")

        tup: DataTuple = event.payload
        self.received.append(tup)
        self.context.telemetry.emit(
            self.now,
            RecordKind.TUPLE_DELIVERED,
            self.name,
            tuple_id=tup.tuple_id,
            tuple_type=tup.tuple_type,
            destination=tup.destination,
            network_latency=tup.network_latency,
            end_to_end_delay=self.now - tup.origin_time,
        )
        self.context.check_loops(tup, self.actuator_type, self.name)
