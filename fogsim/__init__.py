#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""Discrete event simulation of applications placed onto fog topologies."""

from fogsim.application import Application, AppLoop, EdgeKind
from fogsim.selectivity import (
    CustomSelectivity,
    FixedCountSelectivity,
    FractionalSelectivity,
    SelectivityModel,
)
from fogsim.distribution import (
    DeterministicDistribution,
    Distribution,
    ExponentialDistribution,
    NormalDistribution,
    UniformDistribution,
)
from fogsim.placement import PlacementMapping
from fogsim.tuples import DataTuple
from fogsim.simulation import Controller, SimulationContext, SimulationReport

__version__ = "0.1.0"
