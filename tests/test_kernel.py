#!/usr/bin/env python
# -*- coding: utf-8 -*-
""" Tests the discrete event kernel """

import math
import unittest

from fogsim.errors import CausalityViolation, EmptyQueue
from fogsim.simulation import EventKind, EventQueue, SimEntity


class Recorder(SimEntity):
    """Entity that keeps the time and payload of every event it receives."""

    def __init__(self, name="recorder"):
        super().__init__(name)
        self.events = []

    def process_event(self, event):
        self.events.append((self.now, event.payload))


class Echo(Recorder):
    """Reschedules each event it receives once, one time unit later."""

    def process_event(self, event):
        super().process_event(event)
        if event.payload == "ping":
            self.send(self.entity_id, EventKind.TUPLE_ARRIVAL, "pong", delay=1.0)


class TestEventQueue(unittest.TestCase):

    def setUp(self) -> None:
        self.queue = EventQueue()
        self.recorder = Recorder()
        self.queue.register(self.recorder)

    def schedule(self, payload, delay):
        return self.queue.schedule(
            self.recorder.entity_id, EventKind.TUPLE_ARRIVAL, payload, delay=delay
        )

    def test_events_in_time_order(self):
        for payload, delay in [("c", 3.0), ("a", 1.0), ("b", 2.0)]:
            self.schedule(payload, delay)
        self.queue.run()
        self.assertEqual(
            self.recorder.events, [(1.0, "a"), (2.0, "b"), (3.0, "c")]
        )
        self.assertEqual(self.queue.now, 3.0)

    def test_ties_in_insertion_order(self):
        """Events with the same timestamp are dispatched in insertion order"""
        for payload in ["first", "second", "third"]:
            self.schedule(payload, 5.0)
        self.queue.run()
        self.assertEqual([p for _, p in self.recorder.events], ["first", "second", "third"])

    def test_clock_is_monotonic(self):
        for delay in [4.0, 0.0, 2.5, 2.5, 7.0, 1.0]:
            self.schedule(delay, delay)
        times = []
        while len(self.queue) > 0:
            event = self.queue.advance()
            self.assertEqual(event.time, self.queue.now)
            times.append(self.queue.now)
        self.assertEqual(times, sorted(times))

    def test_negative_delay(self):
        with self.assertRaises(CausalityViolation):
            self.schedule("past", -1.0)
        with self.assertRaises(CausalityViolation):
            self.schedule("nan", math.nan)
        self.assertEqual(len(self.queue), 0)

    def test_unknown_target(self):
        with self.assertRaises(KeyError):
            self.queue.schedule(99, EventKind.TUPLE_ARRIVAL)

    def test_empty_queue(self):
        self.assertEqual(self.queue.peek(), math.inf)
        self.assertRaises(EmptyQueue, self.queue.advance)

        self.schedule("only", 2.0)
        self.queue.advance()
        with self.assertRaises(EmptyQueue) as ctx:
            self.queue.advance()
        self.assertEqual(ctx.exception.now, 2.0)

    def test_run_until_is_inclusive(self):
        for delay in [1.0, 2.0, 3.0]:
            self.schedule(delay, delay)
        executed = self.queue.run(until=2.0)
        self.assertEqual(executed, 2)
        self.assertEqual([p for _, p in self.recorder.events], [1.0, 2.0])
        self.assertEqual(self.queue.peek(), 3.0)

        # Resuming dispatches the rest
        self.assertEqual(self.queue.run(), 1)

    def test_max_events(self):
        echo = Echo("echo")
        self.queue.register(echo)
        for i in range(5):
            self.queue.schedule(echo.entity_id, EventKind.TUPLE_ARRIVAL, "ping", delay=i)
        self.assertEqual(self.queue.run(max_events=3), 3)
        self.assertEqual(len(echo.events), 3)
        self.assertEqual(self.queue.run(), 7)
        self.assertEqual(self.queue.events_dispatched, 10)

    def test_stop(self):
        class Stopper(Recorder):
            def process_event(self, event):
                super().process_event(event)
                self.queue.stop()

        stopper = Stopper("stopper")
        self.queue.register(stopper)
        self.schedule("before", 1.0)
        self.queue.schedule(stopper.entity_id, EventKind.STOP, delay=2.0)
        self.schedule("after", 3.0)

        self.assertEqual(self.queue.run(), 2)
        self.assertTrue(self.queue.stopped)
        self.assertEqual(self.queue.now, 2.0)
        self.assertEqual(len(self.queue), 1)

    def test_trace(self):
        self.schedule("x", 1.0)
        self.schedule("y", 1.0)
        self.queue.run()
        self.assertEqual(len(self.queue.trace), 2)
        first, second = self.queue.trace
        self.assertEqual(first.target, "recorder")
        self.assertEqual(first.kind, "tuple_arrival")
        self.assertLess(first.sequence, second.sequence)
        self.assertEqual(second.payload, repr("y"))

    def test_stop_before_run(self):
        for delay in [1.0, 2.0]:
            self.schedule(delay, delay)
        self.queue.stop()
        self.assertEqual(self.queue.run(), 0)
        self.assertTrue(self.queue.stopped)
        self.assertEqual(self.queue.now, 0.0)

        # The stop request is consumed by the run it ended
        self.assertEqual(self.queue.run(), 2)
        self.assertFalse(self.queue.stopped)

    def test_register_twice(self):
        self.assertRaises(ValueError, self.queue.register, self.recorder)

    def test_unregistered_entity(self):
        self.assertRaises(RuntimeError, lambda: Recorder("lonely").now)


if __name__ == "__main__":
    unittest.main()
