#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Schedulers that share the processing elements (PEs) of a device among the
tuples its modules execute.

A scheduler does not create events itself. The device admits a request,
asks for the next projected completion and schedules an event for it; when
the event fires the device collects the finished requests and reports their
departure, which makes the scheduler re-derive the completion times of the
requests still in progress.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from bisect import insort
from collections import deque
from typing import Deque, Dict, List, NamedTuple, Optional, Sequence, Tuple

import heapq

from fogsim.errors import CausalityViolation

__all__ = [
    "ProcessingElement",
    "ProcessorScheduler",
    "TimeSharedScheduler",
    "SpaceSharedScheduler",
]

# Requests whose remaining execution time falls below this are done
TIME_EPSILON = 1e-9


class ProcessingElement(NamedTuple):
    """One unit of CPU capacity of a device."""

    pe_id: int
    mips: float


class ProcessorScheduler(ABC):
    """Allocates the capacity of a device's PEs to execution requests."""

    _pes: List[ProcessingElement]
    _last_update: Optional[float]

    def __init__(self, pes: Sequence[ProcessingElement]):
        if not pes:
            raise ValueError("A scheduler requires at least one processing element")
        if any(pe.mips <= 0 for pe in pes):
            raise ValueError("The MIPS rating of processing elements must be positive")
        self._pes = list(pes)
        self._last_update = None

    @property
    def pes(self) -> List[ProcessingElement]:
        return list(self._pes)

    @property
    def total_mips(self) -> float:
        """Sum of the MIPS ratings of all PEs."""
        return sum(pe.mips for pe in self._pes)

    @property
    @abstractmethod
    def utilization(self) -> float:
        """Fraction of the total MIPS currently in use."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of requests admitted and not yet departed."""

    @abstractmethod
    def admit(self, request_id: int, length: float, arrival_time: float) -> float:
        """Admits a request and returns its projected completion time.

        The projection assumes no further requests arrive.
        """

    @abstractmethod
    def on_departure(self, request_id: int, time: float) -> None:
        """Removes a request, handing its capacity over to the others."""

    @abstractmethod
    def finished(self, time: float) -> List[int]:
        """Accounts for progress up to ``time`` and returns the finished requests."""

    @abstractmethod
    def projected_completions(self) -> Dict[int, float]:
        """Projected completion time of each request in the scheduler."""

    def next_completion(self) -> Optional[float]:
        """Earliest projected completion time, or None if there is no request."""
        completions = self.projected_completions()
        if not completions:
            return None
        return min(completions.values())

    def _check_request(self, request_id: int, length: float) -> None:
        if length < 0:
            raise ValueError(f"Request {request_id} has negative length {length}")
        if request_id in self.projected_completions():
            raise ValueError(f"Request {request_id} was already admitted")

    @staticmethod
    def _is_done(time: float, duration: float) -> bool:
        # Past the float resolution of the clock a request cannot progress further
        return duration <= TIME_EPSILON or time + duration <= time

    def _check_time(self, time: float) -> None:
        if self._last_update is not None and time < self._last_update:
            raise CausalityViolation(self._last_update, time - self._last_update)


class TimeSharedScheduler(ProcessorScheduler):
    """Divides the total capacity equally among all running requests.

    Whenever a request arrives or departs the share of every other request
    changes, so completion times are always derived from the remaining
    lengths at the moment of the last update.
    """

    _remaining: Dict[int, float]

    def __init__(self, pes: Sequence[ProcessingElement]):
        super().__init__(pes)
        self._remaining = {}

    def __len__(self):
        return len(self._remaining)

    @property
    def utilization(self) -> float:
        return 1.0 if self._remaining else 0.0

    @property
    def share(self) -> float:
        """MIPS currently given to each running request."""
        if not self._remaining:
            return self.total_mips
        return self.total_mips / len(self._remaining)

    def remaining(self, request_id: int) -> float:
        return self._remaining[request_id]

    def _advance(self, time: float) -> None:
        self._check_time(time)
        if self._remaining and self._last_update is not None:
            processed = self.share * (time - self._last_update)
            for request_id, remaining in self._remaining.items():
                self._remaining[request_id] = max(0.0, remaining - processed)
        self._last_update = time

    def admit(self, request_id: int, length: float, arrival_time: float) -> float:
        self._check_request(request_id, length)
        self._advance(arrival_time)
        self._remaining[request_id] = float(length)
        return self.projected_completions()[request_id]

    def on_departure(self, request_id: int, time: float) -> None:
        self._advance(time)
        del self._remaining[request_id]

    def finished(self, time: float) -> List[int]:
        self._advance(time)
        share = self.share
        return [
            request_id
            for request_id, remaining in self._remaining.items()
            if self._is_done(time, remaining / share)
        ]

    def projected_completions(self) -> Dict[int, float]:
        completions = {}
        if not self._remaining:
            return completions

        # Requests finish in order of remaining length; each departure
        # hands its share over to the requests still running
        clock = self._last_update
        processed = 0.0
        active = len(self._remaining)
        for request_id, remaining in sorted(
            self._remaining.items(), key=lambda item: item[1]
        ):
            clock += (remaining - processed) * active / self.total_mips
            processed = remaining
            active -= 1
            completions[request_id] = clock
        return completions


class SpaceSharedScheduler(ProcessorScheduler):
    """Dedicates whole PEs to requests and queues the excess FCFS."""

    _running: Dict[int, Tuple[int, float]]
    _waiting: Deque[Tuple[int, float]]
    _instant: List[int]
    _free_pes: List[int]

    def __init__(self, pes: Sequence[ProcessingElement]):
        super().__init__(pes)
        self._running = {}  # request id -> (PE index, remaining length)
        self._waiting = deque()
        self._instant = []
        self._free_pes = list(range(len(self._pes)))

    def __len__(self):
        return len(self._running) + len(self._waiting) + len(self._instant)

    @property
    def utilization(self) -> float:
        busy = sum(self._pes[pe_index].mips for pe_index, _ in self._running.values())
        return busy / self.total_mips

    @property
    def waiting(self) -> List[int]:
        return [request_id for request_id, _ in self._waiting]

    def _advance(self, time: float) -> None:
        self._check_time(time)
        if self._last_update is not None:
            elapsed = time - self._last_update
            for request_id, (pe_index, remaining) in self._running.items():
                processed = self._pes[pe_index].mips * elapsed
                self._running[request_id] = (pe_index, max(0.0, remaining - processed))
        self._last_update = time

    def _start(self, request_id: int, length: float) -> None:
        pe_index = self._free_pes.pop(0)
        self._running[request_id] = (pe_index, length)

    def admit(self, request_id: int, length: float, arrival_time: float) -> float:
        self._check_request(request_id, length)
        self._advance(arrival_time)
        if length == 0:
            self._instant.append(request_id)
        elif self._free_pes:
            self._start(request_id, float(length))
        else:
            self._waiting.append((request_id, float(length)))
        return self.projected_completions()[request_id]

    def on_departure(self, request_id: int, time: float) -> None:
        self._advance(time)
        if request_id in self._running:
            pe_index, _ = self._running.pop(request_id)
            insort(self._free_pes, pe_index)
            while self._free_pes and self._waiting:
                self._start(*self._waiting.popleft())
        elif request_id in self._instant:
            self._instant.remove(request_id)
        else:
            queued = [entry for entry in self._waiting if entry[0] == request_id]
            if not queued:
                raise KeyError(request_id)
            self._waiting.remove(queued[0])

    def finished(self, time: float) -> List[int]:
        self._advance(time)
        done = [
            request_id
            for request_id, (pe_index, remaining) in self._running.items()
            if self._is_done(time, remaining / self._pes[pe_index].mips)
        ]
        return list(self._instant) + done

    def projected_completions(self) -> Dict[int, float]:
        if self._last_update is None:
            return {}

        completions = {request_id: self._last_update for request_id in self._instant}
        free_at = {pe_index: self._last_update for pe_index in self._free_pes}
        for request_id, (pe_index, remaining) in self._running.items():
            done_at = self._last_update + remaining / self._pes[pe_index].mips
            completions[request_id] = done_at
            free_at[pe_index] = done_at

        # Queued requests take the PE that becomes free first
        heap = [(time, pe_index) for pe_index, time in free_at.items()]
        heapq.heapify(heap)
        for request_id, length in self._waiting:
            time, pe_index = heapq.heappop(heap)
            done_at = time + length / self._pes[pe_index].mips
            completions[request_id] = done_at
            heapq.heappush(heap, (done_at, pe_index))
        return completions
