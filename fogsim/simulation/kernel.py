#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Discrete event kernel of the fog simulation.

The kernel is a thin layer over a :class:`simpy.Environment`. SimPy keeps
its events in a heap ordered by ``(time, priority, event id)``; since all
the events created here share the same priority, events with the same
timestamp are dispatched in insertion order, which makes runs
reproducible for identical inputs.

Entities (devices, sensors, actuators and the controller) register with an
:class:`EventQueue` and receive the events targeted at them through
:meth:`SimEntity.process_event`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

import itertools

import simpy
from simpy.core import EmptySchedule
from absl import logging

from fogsim.errors import CausalityViolation, EmptyQueue

__all__ = [
    "EventKind",
    "SimEvent",
    "SimEntity",
    "EventQueue",
    "TraceRecord",
]


class EventKind(Enum):
    TUPLE_ARRIVAL = "tuple_arrival"
    PROCESSING_UPDATE = "processing_update"
    SENSOR_EMIT = "sensor_emit"
    STOP = "stop"

    def __str__(self):
        return self.value


class SimEvent(simpy.Timeout):
    """A timestamped event targeted at a registered entity.

    It is a SimPy timeout carrying the target, the event kind and the
    payload, plus the insertion sequence number used in the trace.
    """

    target: int
    kind: EventKind
    payload: Any
    sequence: int
    time: float

    def __init__(
        self,
        env: simpy.Environment,
        delay: float,
        target: int,
        kind: EventKind,
        payload: Any,
        sequence: int,
    ):
        self.target = target
        self.kind = kind
        self.payload = payload
        self.sequence = sequence
        self.time = env.now + delay
        super().__init__(env, delay, value=payload)

    def __str__(self):
        return (
            f"SimEvent<time={self.time}, sequence={self.sequence}, "
            f"target={self.target}, kind={self.kind}>"
        )


class TraceRecord(NamedTuple):
    """One dispatched event, as kept in the queue trace."""

    time: float
    sequence: int
    target: str
    kind: str
    payload: str


class SimEntity(ABC):
    """An entity that can send and receive simulation events."""

    name: str
    entity_id: Optional[int]
    _queue: Optional[EventQueue]

    def __init__(self, name: str):
        self.name = name
        self.entity_id = None
        self._queue = None

    @property
    def queue(self) -> EventQueue:
        if self._queue is None:
            raise RuntimeError(f"Entity {self.name} is not registered with an event queue")
        return self._queue

    @property
    def now(self) -> float:
        return self.queue.now

    def send(
        self, target: int, kind: EventKind, payload: Any = None, delay: float = 0.0
    ) -> SimEvent:
        """Schedules an event for ``target`` after ``delay`` time units."""
        return self.queue.schedule(target, kind, payload=payload, delay=delay)

    def start(self) -> None:
        """Called once when the simulation starts."""

    @abstractmethod
    def process_event(self, event: SimEvent) -> None:
        """Handles an event targeted at this entity."""

    def __str__(self):
        return f"{type(self).__name__}<name={self.name}, entity_id={self.entity_id}>"


class EventQueue:
    """Global ordered queue of timestamped events.

    It is the single source of simulated time progression. Events are
    scheduled with :meth:`schedule` and consumed one at a time with
    :meth:`advance`, or in bulk with :meth:`run`.
    """

    _env: simpy.Environment
    _entities: Dict[int, SimEntity]
    _entity_ids: itertools.count
    _sequence: itertools.count
    _last_event: Optional[SimEvent]
    _stopped: bool
    trace: List[TraceRecord]
    events_dispatched: int

    def __init__(self, initial_time: float = 0.0, keep_trace: bool = True):
        self._env = simpy.Environment(initial_time=initial_time)
        self._entities = {}
        self._entity_ids = itertools.count(start=0)
        self._sequence = itertools.count(start=0)
        self._last_event = None
        self._stopped = False
        self._stop_pending = False
        self._keep_trace = keep_trace
        self.trace = []
        self.events_dispatched = 0

    @property
    def now(self) -> float:
        """The current simulated time."""
        return self._env.now

    @property
    def env(self) -> simpy.Environment:
        return self._env

    @property
    def stopped(self) -> bool:
        return self._stopped

    def register(self, entity: SimEntity) -> int:
        """Registers an entity and returns the id events must target."""
        if entity.entity_id is not None:
            raise ValueError(f"Entity {entity.name} is already registered")
        entity.entity_id = next(self._entity_ids)
        entity._queue = self
        self._entities[entity.entity_id] = entity
        return entity.entity_id

    def entity(self, entity_id: int) -> SimEntity:
        return self._entities[entity_id]

    def entities(self) -> List[SimEntity]:
        return list(self._entities.values())

    def schedule(
        self, target: int, kind: EventKind, payload: Any = None, delay: float = 0.0
    ) -> SimEvent:
        """Inserts an event for ``target`` at ``now + delay``.

        Raises:
            CausalityViolation: if ``delay`` is negative (or not a number).
            KeyError: if no entity is registered under ``target``.
        """
        if not delay >= 0:
            raise CausalityViolation(self.now, delay)
        if target not in self._entities:
            raise KeyError(f"No entity registered with id {target}")

        event = SimEvent(self._env, delay, target, kind, payload, next(self._sequence))
        event.callbacks.append(self._dispatch)
        return event

    def peek(self) -> float:
        """Returns the time of the next event, or infinity if there is none."""
        return self._env.peek()

    def __len__(self):
        return len(self._env._queue)

    def advance(self) -> SimEvent:
        """Pops the earliest event, moves the clock to its time and dispatches it.

        Raises:
            EmptyQueue: when there are no events left.
        """
        try:
            self._env.step()
        except EmptySchedule:
            raise EmptyQueue(self.now) from None
        return self._last_event

    def stop(self) -> None:
        """Stops :meth:`run` after the event being dispatched.

        Outside a run, the next call to :meth:`run` returns without
        dispatching any event.
        """
        self._stop_pending = True

    def run(self, until: Optional[float] = None, max_events: Optional[int] = None) -> int:
        """Dispatches events until the queue drains or a limit is reached.

        Events whose timestamp equals ``until`` are still dispatched.

        Args:
            until: optional simulated time horizon.
            max_events: optional budget of events to dispatch, which bounds
                runs of applications whose module graph has cycles.

        Returns:
            The number of events dispatched by this call.
        """
        self._stopped = False
        executed = 0
        while True:
            if self._stop_pending:
                self._stop_pending = False
                self._stopped = True
                break
            if max_events is not None and executed >= max_events:
                logging.warning(
                    "Event budget of %d exhausted at time %s", max_events, self.now
                )
                break
            if until is not None and self.peek() > until:
                break
            try:
                self.advance()
            except EmptyQueue:
                break
            executed += 1
        return executed

    def _dispatch(self, event: SimEvent) -> None:
        self._last_event = event
        self.events_dispatched += 1
        entity = self._entities[event.target]
        if self._keep_trace:
            self.trace.append(
                TraceRecord(
                    time=event.time,
                    sequence=event.sequence,
                    target=entity.name,
                    kind=str(event.kind),
                    payload=repr(event.payload),
                )
            )
        entity.process_event(event)
