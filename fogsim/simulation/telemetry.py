#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Observability sink of the simulation.

Entities emit discrete, timestamped records (tuple created, forwarded and
delivered, module completions, energy samples, application loops and
routing failures). The sink keeps them in memory and logs them; formatting
and persistence are left to the caller, e.g. via :meth:`Telemetry.to_dataframe`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List

import pandas as pd
from absl import logging

__all__ = ["RecordKind", "TelemetryRecord", "Telemetry"]


class RecordKind(Enum):
    TUPLE_CREATED = "tuple_created"
    TUPLE_FORWARDED = "tuple_forwarded"
    TUPLE_DELIVERED = "tuple_delivered"
    MODULE_COMPLETED = "module_completed"
    ENERGY_SAMPLE = "energy_sample"
    LOOP_COMPLETED = "loop_completed"
    ROUTING_FAILURE = "routing_failure"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class TelemetryRecord:
    time: float
    kind: RecordKind
    entity: str
    data: Dict[str, Any] = field(default_factory=dict)


class Telemetry:
    """Collects the records emitted during one simulation run."""

    records: List[TelemetryRecord]
    _subscribers: List[Callable[[TelemetryRecord], None]]

    def __init__(self):
        self.records = []
        self._subscribers = []

    def subscribe(self, callback: Callable[[TelemetryRecord], None]) -> None:
        """Registers a callback invoked for every new record."""
        self._subscribers.append(callback)

    def emit(self, time: float, kind: RecordKind, entity: str, **data) -> TelemetryRecord:
        record = TelemetryRecord(time=time, kind=kind, entity=entity, data=data)
        self.records.append(record)
        if kind == RecordKind.ROUTING_FAILURE:
            logging.warning("[%.4f] %s: %s", time, entity, data.get("reason"))
        else:
            logging.debug("[%.4f] %s %s %s", time, kind, entity, data)
        for callback in self._subscribers:
            callback(record)
        return record

    def of_kind(self, kind: RecordKind) -> List[TelemetryRecord]:
        return [record for record in self.records if record.kind == kind]

    def count(self, kind: RecordKind) -> int:
        return sum(1 for record in self.records if record.kind == kind)

    def to_dataframe(self) -> pd.DataFrame:
        """Returns the records as a DataFrame, one column per data field."""
        rows = [
            {"time": record.time, "kind": str(record.kind), "entity": record.entity, **record.data}
            for record in self.records
        ]
        return pd.DataFrame(rows, columns=None if rows else ["time", "kind", "entity"])

    def __len__(self):
        return len(self.records)
