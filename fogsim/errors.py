#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Errors raised or recorded by the fog simulation.

Kernel invariants (causality) are fatal and propagate to whoever drives the
event queue. Configuration errors are raised when an application is
submitted. Routing failures are never raised by the simulation itself: they
are recorded through the telemetry sink and the offending tuple is dropped.
"""

from typing import Optional

__all__ = [
    "FogSimError",
    "CausalityViolation",
    "EmptyQueue",
    "ConfigurationError",
    "DuplicatePlacement",
    "UnplacedModule",
    "UnknownDevice",
    "TopologyError",
    "RoutingFailure",
]


class FogSimError(Exception):
    """Base class of all the errors of the fog simulation."""


class CausalityViolation(FogSimError):
    """Raised when an event would be scheduled into the past."""

    def __init__(self, now: float, delay: float):
        self.now = now
        self.delay = delay
        super().__init__(
            f"Cannot schedule an event with delay {delay} at time {now}"
        )


class EmptyQueue(Exception):
    """Signals that there are no more events to process.

    This is the normal termination signal of a simulation run, not an
    error of the simulation.
    """

    def __init__(self, now: float):
        self.now = now
        super().__init__(f"No events left to process at time {now}")


class ConfigurationError(FogSimError):
    """An application, placement or topology is not properly configured."""


class DuplicatePlacement(ConfigurationError):
    """Raised when a module is placed onto a second device."""

    def __init__(self, module: str, current: str, requested: str):
        self.module = module
        self.current = current
        self.requested = requested
        super().__init__(
            f"Module {module} is already placed on {current}, "
            f"cannot place it on {requested}"
        )


class UnplacedModule(ConfigurationError):
    """Raised when a module of a submitted application has no device."""

    def __init__(self, module: str, app_id: str):
        self.module = module
        self.app_id = app_id
        super().__init__(f"Module {module} of application {app_id} is not placed")


class UnknownDevice(ConfigurationError):
    """Raised when a placement or a gateway names a device that does not exist."""

    def __init__(self, device_name: str):
        self.device_name = device_name
        super().__init__(f"Device {device_name} does not exist in the topology")


class TopologyError(ConfigurationError):
    """Raised when a device cannot be added to the topology tree."""


class RoutingFailure(FogSimError):
    """A tuple could not find its destination in the device tree."""

    def __init__(self, tuple_id: int, destination: str, device: Optional[str], reason: str):
        self.tuple_id = tuple_id
        self.destination = destination
        self.device = device
        self.reason = reason
        super().__init__(
            f"Tuple {tuple_id} to {destination} dropped at {device}: {reason}"
        )
