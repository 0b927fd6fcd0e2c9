#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Module that provides the devices of a fog topology and the tree that
connects them.

Devices are stored in a flat arena (:class:`Topology`) keyed by their entity
id; a device refers to its parent and children by id only, so the tree holds
no reference cycles.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Sequence, Tuple, Type

import itertools

from fogsim.errors import RoutingFailure, TopologyError
from fogsim.tuples import DataTuple

from .energy import EnergyMeter, PowerModel
from .kernel import EventKind, SimEntity, SimEvent
from .scheduler import ProcessingElement, ProcessorScheduler, TimeSharedScheduler
from .telemetry import RecordKind

if TYPE_CHECKING:
    from .controller import SimulationContext

__all__ = [
    "ModuleInstance",
    "Device",
    "Topology",
]

UPLINK = "uplink"
DOWNLINK = "downlink"


@dataclass
class ModuleInstance:
    """A module of an application instantiated on a device."""

    app_id: str
    name: str
    ram: int = 0
    processed: int = 0

    @property
    def key(self) -> Tuple[str, str]:
        return self.app_id, self.name


class Device(SimEntity):
    """
    A node of the topology tree. It hosts module instances, routes tuples
    towards the modules and actuators they are addressed to, and accounts
    for the energy it consumes.
    """

    level: int
    parent_id: Optional[int]
    child_ids: List[int]
    scheduler: ProcessorScheduler
    uplink_bandwidth: float
    downlink_bandwidth: float
    uplink_latency: float
    meter: EnergyMeter
    modules: Dict[Tuple[str, str], ModuleInstance]
    link_queueing: bool
    _context: Optional[SimulationContext]

    def __init__(
        self,
        name: str,
        level: int,
        pes: Sequence[ProcessingElement],
        power_model: PowerModel,
        uplink_bandwidth: float,
        downlink_bandwidth: float,
        uplink_latency: float = 0.0,
        rate_per_mips: float = 0.0,
        ram: int = 0,
        scheduler_cls: Type[ProcessorScheduler] = TimeSharedScheduler,
        link_queueing: bool = False,
    ):
        super().__init__(name)
        if level < 0:
            raise ValueError(f"Device {name} has a negative level")
        if uplink_bandwidth <= 0 or downlink_bandwidth <= 0:
            raise ValueError(f"Device {name} must have positive link bandwidths")
        if uplink_latency < 0:
            raise ValueError(f"Device {name} has a negative uplink latency")

        self.level = level
        self.parent_id = None
        self.child_ids = []
        self.ram = ram
        self.scheduler = scheduler_cls(pes)
        self.uplink_bandwidth = uplink_bandwidth
        self.downlink_bandwidth = downlink_bandwidth
        self.uplink_latency = uplink_latency
        self.meter = EnergyMeter(
            power_model, rate_per_mips=rate_per_mips, total_mips=self.scheduler.total_mips
        )
        self.modules = {}
        self.link_queueing = link_queueing
        self._context = None

        self._requests: Dict[int, Tuple[ModuleInstance, DataTuple, float]] = {}
        self._request_ids = itertools.count(start=0)
        self._epoch = 0
        self._link_free_at = {UPLINK: 0.0, DOWNLINK: 0.0}

    @property
    def context(self) -> SimulationContext:
        if self._context is None:
            raise RuntimeError(f"Device {self.name} was not added to a simulation context")
        return self._context

    def attach(self, context: SimulationContext) -> None:
        self._context = context

    @property
    def total_mips(self) -> float:
        return self.scheduler.total_mips

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def instantiate_module(self, app_id: str, name: str, ram: int = 0) -> ModuleInstance:
        """Creates the bookkeeping state of a module hosted by this device."""
        instance = ModuleInstance(app_id=app_id, name=name, ram=ram)
        if instance.key in self.modules:
            raise ValueError(f"Module {name} of {app_id} already runs on {self.name}")
        self.modules[instance.key] = instance
        return instance

    def hosts(self, app_id: str, module: str) -> bool:
        return (app_id, module) in self.modules

    def energy(self, until: Optional[float] = None) -> float:
        return self.meter.energy(until)

    def cost(self, until: Optional[float] = None) -> float:
        return self.meter.cost(until)

    def process_event(self, event: SimEvent) -> None:
        if event.kind == EventKind.TUPLE_ARRIVAL:
            self.receive_tuple(event.payload)
        elif event.kind == EventKind.PROCESSING_UPDATE:
            self._update_processing(event.payload)
        else:
            raise ValueError(f"Device {self.name} cannot handle {event.kind} events")

    def receive_tuple(self, tup: DataTuple) -> None:
        """
        Executes the tuple if its destination module runs here, hands it to
        the actuators attached here, or forwards it one hop towards the
        device that claims its destination.
        """
        instance = self.modules.get((tup.app_id, tup.destination))
        if instance is not None:
            self._execute(instance, tup)
            return

        actuators = self.context.actuators_at(self.entity_id, tup.app_id, tup.destination)
        if actuators:
            for actuator in actuators:
                self.send(
                    actuator.entity_id,
                    EventKind.TUPLE_ARRIVAL,
                    tup.forwarded(actuator.latency),
                    delay=actuator.latency,
                )
            return

        target = self.context.locate(tup.app_id, tup.destination)
        if target is None:
            self._drop(tup, "no device claims the destination")
            return

        next_hop = self.context.topology.next_hop(self.entity_id, target)
        if next_hop is None:
            self._drop(tup, "the root device cannot forward the tuple upwards")
            return
        self._transmit(tup, next_hop)

    def on_module_instance_complete(self, module: str, input_tuple: DataTuple) -> List[DataTuple]:
        """
        Emits the outputs of ``module`` for the input it just processed, as
        decided by the application's tuple mappings and their selectivity.
        """
        context = self.context
        application = context.application(input_tuple.app_id)
        outputs = []
        for edge, selectivity in application.output_edges(module, input_tuple.tuple_type):
            for _ in range(selectivity.select(input_tuple, context.np_random)):
                output = DataTuple.from_edge(
                    edge,
                    tuple_id=context.next_tuple_id(),
                    app_id=input_tuple.app_id,
                    created_at=self.now,
                    origin_time=input_tuple.origin_time,
                    trail=input_tuple.trail,
                    max_hops=application.trail_length,
                )
                context.telemetry.emit(
                    self.now,
                    RecordKind.TUPLE_CREATED,
                    self.name,
                    tuple_id=output.tuple_id,
                    tuple_type=output.tuple_type,
                    source=output.source,
                    destination=output.destination,
                )
                outputs.append(output)

        for output in outputs:
            self.receive_tuple(output)
        return outputs

    def _execute(self, instance: ModuleInstance, tup: DataTuple) -> None:
        now = self.now
        request_id = next(self._request_ids)
        self._requests[request_id] = (instance, tup, now)
        self.scheduler.admit(request_id, tup.cpu_length, now)
        self.context.telemetry.emit(
            now,
            RecordKind.TUPLE_DELIVERED,
            self.name,
            tuple_id=tup.tuple_id,
            tuple_type=tup.tuple_type,
            destination=tup.destination,
            network_latency=tup.network_latency,
        )
        self._utilization_changed()
        self._schedule_update()

    def _update_processing(self, epoch: int) -> None:
        # Completion events made obsolete by later arrivals or departures
        if epoch != self._epoch:
            return

        now = self.now
        done = self.scheduler.finished(now)
        for request_id in done:
            self.scheduler.on_departure(request_id, now)
        self._utilization_changed()
        self._schedule_update()

        for request_id in done:
            instance, tup, admitted_at = self._requests.pop(request_id)
            instance.processed += 1
            self.context.telemetry.emit(
                now,
                RecordKind.MODULE_COMPLETED,
                self.name,
                module=instance.name,
                tuple_id=tup.tuple_id,
                tuple_type=tup.tuple_type,
                execution_delay=now - admitted_at,
            )
            self.context.check_loops(tup, instance.name, self.name)
            self.on_module_instance_complete(instance.name, tup)

    def _schedule_update(self) -> None:
        self._epoch += 1
        completion = self.scheduler.next_completion()
        if completion is not None:
            self.send(
                self.entity_id,
                EventKind.PROCESSING_UPDATE,
                self._epoch,
                delay=max(completion - self.now, 0.0),
            )

    def _utilization_changed(self) -> None:
        utilization = self.scheduler.utilization
        if utilization == self.meter.utilization:
            return
        sample = self.meter.record(self.now, utilization)
        self.context.telemetry.emit(
            self.now,
            RecordKind.ENERGY_SAMPLE,
            self.name,
            utilization=sample.utilization,
            power=sample.power,
        )

    def link_to(self, next_hop: Device) -> Tuple[str, float, float]:
        """Returns the link, latency and bandwidth used to reach an adjacent device."""
        if next_hop.entity_id == self.parent_id:
            return UPLINK, self.uplink_latency, self.uplink_bandwidth
        if next_hop.entity_id in self.child_ids:
            return DOWNLINK, next_hop.uplink_latency, self.downlink_bandwidth
        raise TopologyError(f"{next_hop.name} is not adjacent to {self.name}")

    def _transmit(self, tup: DataTuple, next_hop_id: int) -> None:
        now = self.now
        next_hop = self.context.topology.device(next_hop_id)
        link, latency, bandwidth = self.link_to(next_hop)
        transmission = tup.network_length / bandwidth

        start = now
        if self.link_queueing:
            start = max(now, self._link_free_at[link])
            self._link_free_at[link] = start + transmission
        delay = (start - now) + transmission + latency

        self.context.telemetry.emit(
            now,
            RecordKind.TUPLE_FORWARDED,
            self.name,
            tuple_id=tup.tuple_id,
            tuple_type=tup.tuple_type,
            next_hop=next_hop.name,
            link=link,
            delay=delay,
            network_usage=latency * tup.network_length,
        )
        self.send(next_hop_id, EventKind.TUPLE_ARRIVAL, tup.forwarded(delay), delay=delay)

    def _drop(self, tup: DataTuple, reason: str) -> None:
        failure = RoutingFailure(tup.tuple_id, tup.destination, self.name, reason)
        self.context.telemetry.emit(
            self.now,
            RecordKind.ROUTING_FAILURE,
            self.name,
            tuple_id=tup.tuple_id,
            destination=tup.destination,
            reason=str(failure),
            error=failure,
        )

    def __str__(self):
        return (
            f"Device<name={self.name}, level={self.level}, "
            f"total_mips={self.total_mips}, modules={sorted(self.modules)}>"
        )


class Topology:
    """A tree of devices stored in a flat table keyed by entity id."""

    _devices: Dict[int, Device]
    _by_name: Dict[str, int]
    _root_id: Optional[int]

    def __init__(self):
        self._devices = {}
        self._by_name = {}
        self._root_id = None

    def add(self, device: Device, parent: Optional[str] = None) -> Device:
        """Adds a registered device below ``parent`` (the root if None).

        Raises:
            TopologyError: for duplicate names, a second root, an unknown
                parent or a child whose level is not greater than its parent's.
        """
        if device.entity_id is None:
            raise TopologyError(f"Device {device.name} must be registered first")
        if device.name in self._by_name:
            raise TopologyError(f"Duplicate device name {device.name}")

        if parent is None:
            if self._root_id is not None:
                raise TopologyError(
                    f"Cannot add {device.name} as a second root; "
                    f"{self.root.name} is already the root"
                )
            self._root_id = device.entity_id
        else:
            parent_device = self.by_name(parent)
            if parent_device is None:
                raise TopologyError(f"Parent {parent} of {device.name} does not exist")
            if device.level <= parent_device.level:
                raise TopologyError(
                    f"Level of {device.name} ({device.level}) must be greater "
                    f"than the level of {parent} ({parent_device.level})"
                )
            device.parent_id = parent_device.entity_id
            parent_device.child_ids.append(device.entity_id)

        self._devices[device.entity_id] = device
        self._by_name[device.name] = device.entity_id
        return device

    @property
    def root(self) -> Optional[Device]:
        return None if self._root_id is None else self._devices[self._root_id]

    def device(self, device_id: int) -> Device:
        return self._devices[device_id]

    def by_name(self, name: str) -> Optional[Device]:
        device_id = self._by_name.get(name)
        return None if device_id is None else self._devices[device_id]

    def parent(self, device_id: int) -> Optional[Device]:
        parent_id = self._devices[device_id].parent_id
        return None if parent_id is None else self._devices[parent_id]

    def children(self, device_id: int) -> List[Device]:
        return [self._devices[child_id] for child_id in self._devices[device_id].child_ids]

    def ancestors(self, device_id: int) -> List[int]:
        """Ids of the devices from the parent of ``device_id`` up to the root."""
        ancestors = []
        parent_id = self._devices[device_id].parent_id
        while parent_id is not None:
            ancestors.append(parent_id)
            parent_id = self._devices[parent_id].parent_id
        return ancestors

    def next_hop(self, source_id: int, target_id: int) -> Optional[int]:
        """
        Returns the device adjacent to ``source_id`` on the path to
        ``target_id``: the child whose subtree holds the target, otherwise
        the parent. None if the source is the root and the target is not
        below it.
        """
        if source_id == target_id:
            return source_id
        node_id = target_id
        for ancestor_id in self.ancestors(target_id):
            if ancestor_id == source_id:
                return node_id
            node_id = ancestor_id
        return self._devices[source_id].parent_id

    def __iter__(self) -> Iterator[Device]:
        return iter(self._devices.values())

    def __len__(self):
        return len(self._devices)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name
