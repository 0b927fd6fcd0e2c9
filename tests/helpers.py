#!/usr/bin/env python
# -*- coding: utf-8 -*-
""" Builders shared by the simulation tests """

from fogsim import Application, DataTuple, PlacementMapping
from fogsim.simulation import (
    Controller,
    Device,
    EventKind,
    LinearPowerModel,
    ProcessingElement,
    SimulationContext,
)

APP_ID = "app"


def make_device(name, level, mips=1000, uplink_latency=0.0, bandwidth=1000, **kwargs):
    return Device(
        name=name,
        level=level,
        pes=[ProcessingElement(pe_id=0, mips=mips)],
        power_model=LinearPowerModel(busy_power=50, idle_power=10),
        uplink_bandwidth=bandwidth,
        downlink_bandwidth=bandwidth,
        uplink_latency=uplink_latency,
        **kwargs,
    )


def three_tier(context, **kwargs):
    """cloud <- fog <- edge, plus a second gateway below the cloud."""
    context.add_device(make_device("cloud", 0, **kwargs))
    context.add_device(make_device("fog", 1, uplink_latency=3.0, **kwargs), parent="cloud")
    context.add_device(make_device("edge", 2, uplink_latency=2.0, **kwargs), parent="fog")
    context.add_device(make_device("gateway", 1, uplink_latency=1.0, **kwargs), parent="cloud")
    return context


def single_module_app(module="M"):
    application = Application(APP_ID)
    application.add_app_module(module)
    return application


def submit(context, application, placements):
    controller = Controller(context)
    controller.submit(application, PlacementMapping(placements))
    return controller


def inject(
    context, device_name, destination, cpu_length, network_length=0, delay=0.0,
    app_id=APP_ID, tuple_type="DATA",
):
    """Schedules the arrival of a tuple at a device, bypassing sensors."""
    tup = DataTuple(
        tuple_id=context.next_tuple_id(),
        app_id=app_id,
        source="test",
        destination=destination,
        tuple_type=tuple_type,
        cpu_length=cpu_length,
        network_length=network_length,
        direction=1,
        created_at=delay,
        origin_time=delay,
    )
    context.queue.schedule(
        context.device(device_name).entity_id, EventKind.TUPLE_ARRIVAL, tup, delay=delay
    )
    return tup


def new_context(seed=42):
    return SimulationContext(seed=seed)
