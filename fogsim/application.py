#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
A module for extending NetworkX's MultiDiGraph to describe applications.

An application is a static directed graph whose vertices are modules and
the tags of the sensors and actuators it is bound to. Edges describe the
tuples flowing between vertices, and tuple mappings describe which outputs
a module produces when it finishes processing an input of a given type.

Classes:
    EdgeKind: Kind of an application edge.
    EndpointKind: Kind of a vertex of the application graph.
    ModuleAttr: Represents the attributes (dict) of a vertex.
    EdgeAttr: Represents the attributes (dict) of an edge.
    AppLoop: A sequence of endpoints whose end-to-end delay is measured.
    Application: The application graph.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Dict, Iterable, List, NamedTuple, Tuple

from networkx import MultiDiGraph

from .selectivity import SelectivityModel

__all__ = [
    "EdgeKind",
    "EndpointKind",
    "ModuleAttr",
    "EdgeAttr",
    "AppLoop",
    "Application",
]


class EdgeKind(IntEnum):
    SENSOR = 1
    ACTUATOR = 2
    MODULE = 3


class EndpointKind(Enum):
    MODULE = "module"
    SENSOR = "sensor"
    ACTUATOR = "actuator"

    def __str__(self):
        return self.value


class ModuleAttr(dict):
    """Represents the attributes (dict) of a vertex of the application."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self['kind'] = kwargs.get('kind', EndpointKind.MODULE)
        self['ram'] = kwargs.get('ram', 0)

    @property
    def kind(self) -> EndpointKind:
        """Whether the vertex is a module or a sensor/actuator tag."""
        return self['kind']

    @property
    def ram(self) -> int:
        """RAM required by the module. Informational only."""
        return self['ram']


class EdgeAttr(dict):
    """Represents the attributes (dict) of an application edge."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self['source'] = kwargs.get('source', '')
        self['destination'] = kwargs.get('destination', '')
        self['cpu_length'] = kwargs.get('cpu_length', 0.0)
        self['network_length'] = kwargs.get('network_length', 0.0)
        self['tuple_type'] = kwargs.get('tuple_type', '')
        self['direction'] = kwargs.get('direction', 1)
        self['kind'] = kwargs.get('kind', EdgeKind.MODULE)

    @property
    def source(self) -> str:
        return self['source']

    @property
    def destination(self) -> str:
        return self['destination']

    @property
    def cpu_length(self) -> float:
        """Execution cost, in million instructions, of the tuples of this edge."""
        return self['cpu_length']

    @property
    def network_length(self) -> float:
        """Size in bytes of the tuples of this edge."""
        return self['network_length']

    @property
    def tuple_type(self) -> str:
        return self['tuple_type']

    @property
    def direction(self) -> int:
        """Logical direction index, used to tell loops and branches apart."""
        return self['direction']

    @property
    def kind(self) -> EdgeKind:
        return self['kind']


class AppLoop(NamedTuple):
    endpoints: Tuple[str, ...]

    def __str__(self):
        return " -> ".join(self.endpoints)


class Application(MultiDiGraph):
    """Represents an application as a NetworkX MultiDiGraph.

    Edges are keyed by tuple type, so two endpoints may exchange tuples of
    several types.
    """

    app_id: str
    _tuple_mappings: Dict[Tuple[str, str], Dict[str, SelectivityModel]]
    loops: List[AppLoop]

    node_attr_dict_factory = ModuleAttr
    edge_attr_dict_factory = EdgeAttr

    def __init__(self, app_id: str = "", **attr):
        super().__init__(**attr)
        self.app_id = app_id
        self._tuple_mappings = {}
        self.loops = []

    def add_app_module(self, name: str, ram: int = 0) -> None:
        if name in self and self.nodes[name].kind != EndpointKind.MODULE:
            raise ValueError(f"{name} is already a {self.nodes[name].kind} tag")
        self.add_node(name, kind=EndpointKind.MODULE, ram=ram)

    def add_app_edge(
        self,
        source: str,
        destination: str,
        cpu_length: float,
        network_length: float,
        tuple_type: str,
        direction: int = 1,
        kind: EdgeKind = EdgeKind.MODULE,
    ) -> EdgeAttr:
        """Adds an edge, creating the sensor or actuator tag it refers to.

        Raises:
            ValueError: if a module endpoint was not declared with
                :meth:`add_app_module`, or the edge already exists.
        """
        if cpu_length < 0 or network_length < 0:
            raise ValueError("Tuple lengths must be non-negative")
        if kind != EdgeKind.SENSOR and not self.is_module(source):
            raise ValueError(f"Source {source} of a {kind.name} edge is not a declared module")
        if kind != EdgeKind.ACTUATOR and not self.is_module(destination):
            raise ValueError(
                f"Destination {destination} of a {kind.name} edge is not a declared module"
            )
        if self.has_edge(source, destination, key=tuple_type):
            raise ValueError(
                f"Edge {source} -> {destination} of type {tuple_type} already exists"
            )
        if kind == EdgeKind.SENSOR and source not in self:
            self.add_node(source, kind=EndpointKind.SENSOR)
        if kind == EdgeKind.ACTUATOR and destination not in self:
            self.add_node(destination, kind=EndpointKind.ACTUATOR)

        self.add_edge(
            source,
            destination,
            key=tuple_type,
            source=source,
            destination=destination,
            cpu_length=cpu_length,
            network_length=network_length,
            tuple_type=tuple_type,
            direction=direction,
            kind=kind,
        )
        return self.edges[source, destination, tuple_type]

    def add_tuple_mapping(
        self,
        module: str,
        input_type: str,
        output_type: str,
        selectivity: SelectivityModel,
    ) -> None:
        """Declares that ``module`` emits ``output_type`` tuples when it
        processes ``input_type`` tuples, as decided by ``selectivity``."""
        self._tuple_mappings.setdefault((module, input_type), {})[output_type] = selectivity

    def add_loop(self, endpoints: Iterable[str]) -> AppLoop:
        loop = AppLoop(tuple(endpoints))
        if len(loop.endpoints) < 2:
            raise ValueError("A loop needs at least two endpoints")
        self.loops.append(loop)
        return loop

    @property
    def trail_length(self) -> int:
        """Number of trail hops a tuple must keep to measure every loop."""
        return max((len(loop.endpoints) - 1 for loop in self.loops), default=0)

    @property
    def modules(self) -> List[str]:
        return self._endpoints(EndpointKind.MODULE)

    @property
    def sensor_tags(self) -> List[str]:
        return self._endpoints(EndpointKind.SENSOR)

    @property
    def actuator_tags(self) -> List[str]:
        return self._endpoints(EndpointKind.ACTUATOR)

    def _endpoints(self, kind: EndpointKind) -> List[str]:
        return [name for name, attr in self.nodes(data=True) if attr.kind == kind]

    def is_module(self, name: str) -> bool:
        return name in self and self.nodes[name].kind == EndpointKind.MODULE

    def app_edges(self) -> List[EdgeAttr]:
        return [attr for _, _, attr in self.edges(data=True)]

    def sensor_edges(self, sensor_tag: str) -> List[EdgeAttr]:
        """Edges along which a sensor with the given tag sends its tuples."""
        if sensor_tag not in self:
            return []
        return [
            attr
            for _, _, attr in self.out_edges(sensor_tag, data=True)
            if attr.kind == EdgeKind.SENSOR
        ]

    def tuple_mapping(self, module: str, input_type: str) -> Dict[str, SelectivityModel]:
        return dict(self._tuple_mappings.get((module, input_type), {}))

    def output_edges(
        self, module: str, input_type: str
    ) -> List[Tuple[EdgeAttr, SelectivityModel]]:
        """
        Output edges of ``module`` that are mapped from ``input_type``,
        with the selectivity bound to each. An empty list means the module
        is a sink for that input type.
        """
        mapping = self._tuple_mappings.get((module, input_type))
        if not mapping or module not in self:
            return []
        return [
            (attr, mapping[attr.tuple_type])
            for _, _, attr in self.out_edges(module, data=True)
            if attr.tuple_type in mapping
        ]

    def validate(
        self, sensor_tags: Iterable[str] = (), actuator_tags: Iterable[str] = ()
    ) -> List[str]:
        """
        Checks that every edge endpoint is a module or the tag of a sensor or
        actuator bound to this application.

        Returns:
            A description of each problem found.
        """
        sensor_tags, actuator_tags = set(sensor_tags), set(actuator_tags)
        allowed = {
            EndpointKind.MODULE: lambda name: True,
            EndpointKind.SENSOR: lambda name: name in sensor_tags,
            EndpointKind.ACTUATOR: lambda name: name in actuator_tags,
        }
        problems = []
        for name, attr in self.nodes(data=True):
            if not allowed[attr.kind](name):
                problems.append(f"No {attr.kind} bound to application {self.app_id} uses tag {name}")
        for module, _ in self._tuple_mappings:
            if not self.is_module(module):
                problems.append(f"Tuple mapping refers to unknown module {module}")
        return problems

    def __str__(self):
        return (
            f"Application<app_id={self.app_id}, modules={len(self.modules)}, "
            f"edges={self.number_of_edges()}>"
        )
