#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""The unit of data and work flowing along application edges."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from fogsim.application import EdgeAttr

__all__ = ["DataTuple", "TrailHop"]

# (endpoint name, time the tuple left that endpoint)
TrailHop = Tuple[str, float]


@dataclass(frozen=True)
class DataTuple:
    """
    A tuple travelling from a source (module or sensor) to a destination
    (module or actuator). Tuples are never modified once emitted; forwarding
    or processing one yields a new tuple.

    Attributes:
        cpu_length: execution cost in million instructions.
        network_length: size in bytes, divided by link bandwidth to obtain the
            transmission delay.
        origin_time: creation time of the sensor tuple this one descends from.
        network_latency: network delay accumulated so far.
        trail: endpoints the tuple and its ancestors went through.
    """

    tuple_id: int
    app_id: str
    source: str
    destination: str
    tuple_type: str
    cpu_length: float
    network_length: float
    direction: int
    created_at: float
    origin_time: float
    network_latency: float = 0.0
    trail: Tuple[TrailHop, ...] = ()

    def forwarded(self, delay: float) -> DataTuple:
        """Returns a copy that accumulated ``delay`` of network latency."""
        return replace(self, network_latency=self.network_latency + delay)

    @classmethod
    def from_edge(
        cls,
        edge: EdgeAttr,
        tuple_id: int,
        app_id: str,
        created_at: float,
        origin_time: float,
        trail: Tuple[TrailHop, ...],
        max_hops: Optional[int] = None,
    ) -> DataTuple:
        """Creates a tuple as declared by an application edge.

        The trail is extended with the source of the edge and, when
        ``max_hops`` is given, cut down to its last ``max_hops`` entries.
        """
        trail = trail + ((edge.source, created_at),)
        if max_hops is not None:
            trail = trail[max(0, len(trail) - max_hops):]
        return cls(
            tuple_id=tuple_id,
            app_id=app_id,
            source=edge.source,
            destination=edge.destination,
            tuple_type=edge.tuple_type,
            cpu_length=edge.cpu_length,
            network_length=edge.network_length,
            direction=edge.direction,
            created_at=created_at,
            origin_time=origin_time,
            trail=trail,
        )
