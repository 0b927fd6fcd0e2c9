#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Two-tier example: a client module on a fog node processes sensor data and
sends it to a processing module in the cloud, whose results go back to an
actuator attached to the fog node.

Usage example:
    To simulate 100 time units, placing both modules on the fog node:

    $ python -m fogsim.scenarios.custom_example --until 100 \
        --processing_device fogNode

    Gin files and bindings configure :func:`run_custom_example` and
    :func:`fogsim.config.build_topology`. Command line options that are
    given take precedence over the bindings:

    $ python -m fogsim.scenarios.custom_example \
        --gin_binding "build_topology.link_queueing = True" \
        --gin_binding "run_custom_example.processing_device = 'fogNode'"
"""

from typing import List, Optional

import click
import gin
import pandas as pd
from absl import logging

from fogsim.application import Application, EdgeKind
from fogsim.config import DEFAULT_APP_ID, DEFAULT_TOPOLOGY, TopologyConfig, build_topology
from fogsim.placement import PlacementMapping
from fogsim.selectivity import FractionalSelectivity
from fogsim.simulation import Controller, SimulationContext, SimulationReport

__all__ = ["create_application", "run_custom_example", "main"]


def create_application(app_id: str = DEFAULT_APP_ID) -> Application:
    """Builds the client/processing application."""
    application = Application(app_id)

    application.add_app_module("ClientModule", ram=10)
    application.add_app_module("ProcessingModule", ram=20)

    application.add_app_edge(
        "SENSOR", "ClientModule", 1000, 500, "SENSOR", direction=1, kind=EdgeKind.SENSOR
    )
    application.add_app_edge(
        "ClientModule", "ProcessingModule", 2000, 1000, "DATA", direction=1, kind=EdgeKind.MODULE
    )
    application.add_app_edge(
        "ProcessingModule", "ACTUATOR", 500, 100, "RESULT", direction=2, kind=EdgeKind.ACTUATOR
    )

    application.add_tuple_mapping("ClientModule", "SENSOR", "DATA", FractionalSelectivity(1.0))
    application.add_tuple_mapping("ProcessingModule", "DATA", "RESULT", FractionalSelectivity(1.0))

    application.add_loop(["SENSOR", "ClientModule", "ProcessingModule", "ACTUATOR"])
    return application


@gin.configurable
def run_custom_example(
    until: float = 100.0,
    seed: Optional[int] = 42,
    client_device: str = "fogNode",
    processing_device: str = "cloud",
    max_events: Optional[int] = None,
    topology: TopologyConfig = DEFAULT_TOPOLOGY,
) -> SimulationReport:
    """Builds the topology and the application, places the modules and runs."""
    context = build_topology(SimulationContext(seed=seed), topology)
    application = create_application()

    mapping = PlacementMapping()
    mapping.add("ClientModule", client_device)
    mapping.add("ProcessingModule", processing_device)

    controller = Controller(context)
    controller.submit(application, mapping)
    return controller.run(until=until, max_events=max_events)


def print_report(report: SimulationReport) -> None:
    click.echo(f"Simulated time: {report.end_time} ({report.events} events)")
    click.echo("Application loop delays:")
    for loop, delay in report.loop_delays.items():
        click.echo(f"  {loop}: {delay:.4f}")
    click.echo("Tuple CPU execution delays:")
    for tuple_type, delay in report.tuple_execution_delays.items():
        click.echo(f"  {tuple_type}: {delay:.4f}")
    with pd.option_context("display.float_format", "{:.4f}".format):
        click.echo(report.devices_frame().to_string())
    click.echo(f"Network usage: {report.network_usage_rate:.4f}")
    if report.routing_failures:
        click.echo(f"Routing failures: {report.routing_failures}")


@click.command()
@click.option("--until", type=float, help="Simulated time horizon [default: 100]")
@click.option("--seed", type=int, help="Seed of the random generators [default: 42]")
@click.option("--client_device", help="Device that runs the client module [default: fogNode]")
@click.option(
    "--processing_device", help="Device that runs the processing module [default: cloud]"
)
@click.option("--gin_file", multiple=True, help="Paths to the gin-config files")
@click.option("--gin_binding", multiple=True, help="Gin binding parameters")
@click.option("--verbose", is_flag=True, help="Log every telemetry record")
def main(**options):
    """Entry point for executing this module."""
    gin_files: List[str] = list(options["gin_file"])
    gin_bindings: List[str] = list(options["gin_binding"])
    gin.parse_config_files_and_bindings(gin_files, gin_bindings)
    logging.set_verbosity(logging.DEBUG if options["verbose"] else logging.INFO)

    # Options left unset keep the values bound through gin
    overrides = {
        name: options[name]
        for name in ("until", "seed", "client_device", "processing_device")
        if options[name] is not None
    }
    report = run_custom_example(**overrides)
    print_report(report)


if __name__ == "__main__":
    main()
