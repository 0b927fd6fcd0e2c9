#!/usr/bin/env python
# -*- coding: utf-8 -*-
""" Tests the application graph, selectivity models and placement mappings """

import unittest

import numpy as np

from fogsim import (
    Application,
    CustomSelectivity,
    EdgeKind,
    FixedCountSelectivity,
    FractionalSelectivity,
    PlacementMapping,
)
from fogsim.errors import ConfigurationError, DuplicatePlacement
from fogsim.scenarios.custom_example import create_application
from fogsim.tuples import DataTuple

RNG_SEED = 42


def make_tuple(tuple_type="DATA"):
    return DataTuple(
        tuple_id=0,
        app_id="app",
        source="A",
        destination="B",
        tuple_type=tuple_type,
        cpu_length=100,
        network_length=10,
        direction=1,
        created_at=0.0,
        origin_time=0.0,
    )


class TestApplication(unittest.TestCase):

    def setUp(self) -> None:
        self.app = create_application("app")

    def test_structure(self):
        self.assertEqual(sorted(self.app.modules), ["ClientModule", "ProcessingModule"])
        self.assertEqual(self.app.sensor_tags, ["SENSOR"])
        self.assertEqual(self.app.actuator_tags, ["ACTUATOR"])
        self.assertEqual(self.app.nodes["ProcessingModule"].ram, 20)
        self.assertEqual(len(self.app.app_edges()), 3)
        self.assertRegex(str(self.app), r"Application<app_id=app, modules=2, edges=3>")

    def test_sensor_edges(self):
        edges = self.app.sensor_edges("SENSOR")
        self.assertEqual(len(edges), 1)
        self.assertEqual(edges[0].destination, "ClientModule")
        self.assertEqual(edges[0].cpu_length, 1000)
        self.assertEqual(self.app.sensor_edges("CAMERA"), [])

    def test_output_edges(self):
        outputs = self.app.output_edges("ClientModule", "SENSOR")
        self.assertEqual(len(outputs), 1)
        edge, selectivity = outputs[0]
        self.assertEqual(edge.tuple_type, "DATA")
        self.assertEqual(edge.kind, EdgeKind.MODULE)
        self.assertEqual(selectivity.mean_rate, 1.0)

        # No mapping for the input type means the module is a sink for it
        self.assertEqual(self.app.output_edges("ClientModule", "DATA"), [])

    def test_several_tuple_types_between_modules(self):
        self.app.add_app_edge("ClientModule", "ProcessingModule", 10, 10, "CONTROL")
        self.assertEqual(self.app.number_of_edges("ClientModule", "ProcessingModule"), 2)

    def test_duplicate_edge(self):
        with self.assertRaises(ValueError):
            self.app.add_app_edge("ClientModule", "ProcessingModule", 1, 1, "DATA")

    def test_validate(self):
        self.assertEqual(self.app.validate(["SENSOR"], ["ACTUATOR"]), [])
        problems = self.app.validate(sensor_tags=[], actuator_tags=["ACTUATOR"])
        self.assertEqual(len(problems), 1)
        self.assertIn("SENSOR", problems[0])

        self.app.add_tuple_mapping("Ghost", "DATA", "RESULT", FractionalSelectivity(1.0))
        self.assertEqual(len(self.app.validate(["SENSOR"], ["ACTUATOR"])), 1)

    def test_loops(self):
        self.assertEqual(
            [str(loop) for loop in self.app.loops],
            ["SENSOR -> ClientModule -> ProcessingModule -> ACTUATOR"],
        )
        self.assertRaises(ValueError, self.app.add_loop, ["SENSOR"])

    def test_module_name_clash(self):
        self.assertRaises(ValueError, self.app.add_app_module, "SENSOR")

    def test_undeclared_module_endpoint(self):
        with self.assertRaises(ValueError):
            self.app.add_app_edge("ClientModule", "ProcesingModule", 10, 10, "TYPO")
        with self.assertRaises(ValueError):
            self.app.add_app_edge("CAMERA", "Ghost", 10, 10, "IMAGE", kind=EdgeKind.SENSOR)
        with self.assertRaises(ValueError):
            self.app.add_app_edge("Ghost", "DISPLAY", 10, 10, "VIEW", kind=EdgeKind.ACTUATOR)
        self.assertNotIn("ProcesingModule", self.app)
        self.assertNotIn("CAMERA", self.app)
        self.assertEqual(sorted(self.app.modules), ["ClientModule", "ProcessingModule"])

    def test_trail_length(self):
        self.assertEqual(self.app.trail_length, 3)
        self.assertEqual(Application("empty").trail_length, 0)

        self.app.add_loop(["ClientModule", "ProcessingModule"])
        self.assertEqual(self.app.trail_length, 3)


class TestDataTuple(unittest.TestCase):

    def setUp(self) -> None:
        self.app = create_application("app")
        self.edge = self.app.edges["ClientModule", "ProcessingModule", "DATA"]

    def chain(self, hops, max_hops):
        tup = make_tuple()
        for hop in range(hops):
            tup = DataTuple.from_edge(
                self.edge, tuple_id=hop, app_id="app", created_at=float(hop),
                origin_time=0.0, trail=tup.trail, max_hops=max_hops,
            )
        return tup

    def test_from_edge(self):
        tup = self.chain(1, max_hops=None)
        self.assertEqual(tup.destination, "ProcessingModule")
        self.assertEqual(tup.cpu_length, 2000)
        self.assertEqual(tup.trail, (("ClientModule", 0.0),))

    def test_bounded_trail(self):
        tup = self.chain(1000, max_hops=3)
        self.assertEqual(
            tup.trail,
            (("ClientModule", 997.0), ("ClientModule", 998.0), ("ClientModule", 999.0)),
        )
        self.assertEqual(self.chain(10, max_hops=0).trail, ())
        self.assertEqual(len(self.chain(10, max_hops=None).trail), 10)

    def test_forwarded(self):
        tup = make_tuple().forwarded(1.5).forwarded(2.0)
        self.assertEqual(tup.network_latency, 3.5)


class TestSelectivity(unittest.TestCase):

    def setUp(self) -> None:
        self.rng = np.random.default_rng(RNG_SEED)
        self.tup = make_tuple()

    def test_fractional_bounds(self):
        always, never = FractionalSelectivity(1.0), FractionalSelectivity(0.0)
        for _ in range(100):
            self.assertEqual(always.select(self.tup, self.rng), 1)
            self.assertEqual(never.select(self.tup, self.rng), 0)

    def test_fractional_rate(self):
        selectivity = FractionalSelectivity(0.3)
        emitted = sum(selectivity.select(self.tup, self.rng) for _ in range(10000))
        self.assertAlmostEqual(emitted / 10000, 0.3, delta=0.03)

    def test_invalid_fraction(self):
        self.assertRaises(ValueError, FractionalSelectivity, 1.5)

    def test_fixed_count(self):
        self.assertEqual(FixedCountSelectivity(3).select(self.tup, self.rng), 3)
        self.assertRaises(ValueError, FixedCountSelectivity, -1)

    def test_custom(self):
        selectivity = CustomSelectivity(lambda tup, rng: tup.tuple_type == "DATA", 0.5)
        self.assertEqual(selectivity.select(self.tup, self.rng), 1)
        self.assertEqual(selectivity.select(make_tuple("RESULT"), self.rng), 0)
        self.assertEqual(selectivity.mean_rate, 0.5)

        negative = CustomSelectivity(lambda tup, rng: -2)
        self.assertRaises(ValueError, negative.select, self.tup, self.rng)


class TestPlacement(unittest.TestCase):

    def test_duplicate_placement(self):
        mapping = PlacementMapping({"ClientModule": "fogNode"})
        with self.assertRaises(DuplicatePlacement) as ctx:
            mapping.add("ClientModule", "cloud")
        self.assertEqual(ctx.exception.current, "fogNode")
        self.assertEqual(ctx.exception.requested, "cloud")
        self.assertEqual(mapping.device_for("ClientModule"), "fogNode")

    def test_lookup(self):
        mapping = PlacementMapping()
        mapping.add("A", "cloud")
        mapping.add("B", "cloud")
        mapping.add("C", "fogNode")
        self.assertEqual(mapping.modules_on("cloud"), ["A", "B"])
        self.assertIsNone(mapping.device_for("D"))
        self.assertIn("C", mapping)
        self.assertEqual(len(mapping), 3)

    def test_frozen(self):
        mapping = PlacementMapping({"A": "cloud"})
        mapping.freeze()
        self.assertTrue(mapping.frozen)
        self.assertRaises(ConfigurationError, mapping.add, "B", "cloud")


if __name__ == "__main__":
    unittest.main()
