"""
Unit tests for the contagion step engine.
Compatible with both pytest and unittest.
"""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

import numpy as np
from numpy.random import default_rng

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from contagion_engine.propagation import (
    AbsorptionViolation,
    _check_absorption,
    clamp01,
    collapsed_flux,
    neighbor_flux,
    propagation_step,
    run_steps,
    sigmoid,
)
from contagion_engine.graph import build_adjacency
from contagion_engine.state import (
    STATE_COLLAPSED,
    STATE_STABLE,
    STATE_STRESSED,
    SystemState,
    Unit,
    replace_unit,
    unit_index,
)


def _seq(*draws):
    """Deterministic sampler yielding ``draws`` in order."""
    return iter(draws).__next__


def _always(value):
    return lambda: value


NEVER = _always(0.999999)   # no collapse unless probability ~1
ALWAYS = _always(0.0)       # collapse whenever probability > 0


def _random_state(seed: int, n: int = 20, tau: float = 0.5) -> SystemState:
    rng = default_rng(seed)
    units = [
        Unit(id=f"U{i}", resilience=float(rng.random()), stress=float(rng.random()))
        for i in range(n)
    ]
    edges = [
        (f"U{i}", f"U{j}")
        for i in range(n) for j in range(i + 1, n)
        if rng.random() < 0.2
    ]
    return SystemState(units=units, connections=edges, global_transmission_factor=tau)


class TestNumericHelpers(unittest.TestCase):

    def test_sigmoid_zero_is_half(self):
        self.assertAlmostEqual(sigmoid(0.0), 0.5, places=12)

    def test_sigmoid_extremes_do_not_overflow(self):
        self.assertAlmostEqual(sigmoid(1000.0), 1.0, places=12)
        self.assertAlmostEqual(sigmoid(-1000.0), 0.0, places=12)

    def test_sigmoid_matches_closed_form(self):
        for x in (-3.0, -0.5, 0.25, 2.0):
            self.assertAlmostEqual(sigmoid(x), 1.0 / (1.0 + np.exp(-x)), places=12)

    def test_clamp01(self):
        self.assertEqual(clamp01(-0.2), 0.0)
        self.assertEqual(clamp01(1.7), 1.0)
        self.assertEqual(clamp01(0.4), 0.4)


class TestCollapsedFlux(unittest.TestCase):

    def test_fraction_of_collapsed_neighbors(self):
        units = [
            Unit("A", 0.5),
            Unit("B", 0.5, state=STATE_COLLAPSED),
            Unit("C", 0.5),
        ]
        adj = build_adjacency([("A", "B"), ("A", "C")])
        self.assertAlmostEqual(collapsed_flux("A", adj, unit_index(units)), 0.5)

    def test_duplicate_edges_weight_flux(self):
        units = [Unit("A", 0.5), Unit("B", 0.5, state=STATE_COLLAPSED), Unit("C", 0.5)]
        adj = build_adjacency([("A", "B"), ("A", "B"), ("A", "C")])
        self.assertAlmostEqual(collapsed_flux("A", adj, unit_index(units)), 2.0 / 3.0)

    def test_unknown_neighbor_is_inert(self):
        units = [Unit("A", 0.5), Unit("B", 0.5, state=STATE_COLLAPSED)]
        adj = build_adjacency([("A", "B"), ("A", "GHOST")])
        # GHOST counts toward the total weight but never as collapsed.
        self.assertAlmostEqual(collapsed_flux("A", adj, unit_index(units)), 0.5)

    def test_isolated_unit_has_zero_flux(self):
        self.assertEqual(collapsed_flux("A", build_adjacency([]), {}), 0.0)

    def test_explicit_weights(self):
        units = [Unit("A", 0.5), Unit("B", 0.5, state=STATE_COLLAPSED), Unit("C", 0.5)]
        adj = build_adjacency([("A", "B", 3.0), ("A", "C", 1.0)])
        self.assertAlmostEqual(collapsed_flux("A", adj, unit_index(units)), 0.75)

    def test_neighbor_flux_reads_state(self):
        state = SystemState(
            units=[Unit("A", 0.5, state=STATE_COLLAPSED), Unit("B", 0.5)],
            connections=[("A", "B")],
        )
        self.assertEqual(neighbor_flux(state, "B"), 1.0)


class TestAbsorption(unittest.TestCase):

    def test_collapsed_units_unchanged(self):
        dead = Unit("A", 0.9, stress=0.3, state=STATE_COLLAPSED)
        state = SystemState(
            units=[dead, Unit("B", 0.5, 0.2)],
            connections=[("A", "B")],
            global_transmission_factor=1.0,
        )
        nxt = propagation_step(state, default_rng(0))
        self.assertEqual(nxt.units[0], dead)

    def test_collapsed_units_consume_no_draw(self):
        state = SystemState(units=[
            Unit("A", 0.5, 0.2, state=STATE_COLLAPSED),
            Unit("B", 0.9, 0.1),
            Unit("C", 0.5, 0.5, state=STATE_COLLAPSED),
        ])
        # Exactly one draw available; a second would raise StopIteration.
        nxt = propagation_step(state, _seq(0.999))
        self.assertEqual(nxt.units[1].state, STATE_STABLE)

    def test_collapse_sticky_over_many_steps(self):
        state = _random_state(3)
        rng = default_rng(11)
        for _ in range(25):
            nxt = propagation_step(state, rng)
            for before, after in zip(state.units, nxt.units):
                if before.state == STATE_COLLAPSED:
                    self.assertEqual(after, before)
            state = nxt

    def test_check_absorption_detects_revival(self):
        before = SystemState(units=[Unit("A", 0.5, 0.6, state=STATE_COLLAPSED)])
        after = SystemState(units=[Unit("A", 0.5, 0.6, state=STATE_STRESSED)])
        with self.assertRaises(AbsorptionViolation):
            _check_absorption(before, after, step=1)


class TestBoundedness(unittest.TestCase):

    def test_stress_stays_in_unit_interval(self):
        for seed in range(5):
            state = _random_state(seed, tau=1.0)
            rng = default_rng(seed + 100)
            for _ in range(20):
                state = propagation_step(state, rng)
                for u in state.units:
                    self.assertGreaterEqual(u.stress, 0.0)
                    self.assertLessEqual(u.stress, 1.0)

    def test_saturated_stress_is_clamped(self):
        state = SystemState(
            units=[Unit("A", 0.5, state=STATE_COLLAPSED), Unit("B", 1.0, stress=1.0)],
            connections=[("A", "B")],
            global_transmission_factor=1.0,
        )
        nxt = propagation_step(state, NEVER)
        self.assertEqual(nxt.units[1].stress, 1.0)


class TestDecay(unittest.TestCase):

    def test_decay_only_without_contagion(self):
        state = SystemState(
            units=[Unit("A", 0.9, 0.4), Unit("B", 0.9, 0.2)],
            connections=[("A", "B")],
            global_transmission_factor=0.0,
        )
        nxt = propagation_step(state, NEVER)
        self.assertAlmostEqual(nxt.units[0].stress, 0.95 * 0.4, places=12)
        self.assertAlmostEqual(nxt.units[1].stress, 0.95 * 0.2, places=12)
        self.assertLess(nxt.units[0].stress, 0.4)

    def test_zero_degree_unit(self):
        state = SystemState(
            units=[
                Unit("LONER", 0.9, 0.6),
                Unit("A", 0.5, state=STATE_COLLAPSED),
                Unit("B", 0.5, 0.1),
            ],
            connections=[("A", "B")],
            global_transmission_factor=0.15,
            decay_rate=0.05,
        )
        nxt = propagation_step(state, NEVER)
        self.assertAlmostEqual(nxt.units[0].stress, 0.95 * 0.6, places=12)

    def test_none_parameters_use_defaults(self):
        state = SystemState(
            units=[Unit("A", 0.9, 0.4)],
            decay_rate=None,
            collapse_sharpness=None,
        )
        nxt = propagation_step(state, NEVER)
        self.assertAlmostEqual(nxt.units[0].stress, 0.95 * 0.4, places=12)


class TestStateLabels(unittest.TestCase):

    def _two_unit(self, state_a=STATE_COLLAPSED):
        return SystemState(
            units=[
                Unit("A", 0.9, 0.1, state=state_a),
                Unit("B", 0.5, 0.1),
            ],
            connections=[("A", "B")],
            global_transmission_factor=0.5,
            decay_rate=0.0,
        )

    def test_collapsed_neighbor_scenario_stressed(self):
        nxt = propagation_step(self._two_unit(), NEVER)
        b = nxt.units[1]
        self.assertAlmostEqual(b.stress, 0.6, places=12)
        self.assertEqual(b.state, STATE_STRESSED)

    def test_collapsed_neighbor_scenario_collapses_on_low_draw(self):
        # P(collapse) = sigmoid(10 * (0.6 - 0.5)) ~ 0.731
        nxt = propagation_step(self._two_unit(), _seq(0.7))
        self.assertEqual(nxt.units[1].state, STATE_COLLAPSED)
        nxt = propagation_step(self._two_unit(), _seq(0.75))
        self.assertEqual(nxt.units[1].state, STATE_STRESSED)

    def test_stable_below_half_resilience(self):
        state = SystemState(units=[Unit("A", 0.8, 0.3)])
        nxt = propagation_step(state, NEVER)
        self.assertEqual(nxt.units[0].state, STATE_STABLE)

    def test_stressed_label_can_relax_to_stable(self):
        state = SystemState(
            units=[Unit("A", 0.8, 0.41, state=STATE_STRESSED)],
            decay_rate=0.1,
        )
        nxt = propagation_step(state, NEVER)
        self.assertEqual(nxt.units[0].state, STATE_STABLE)


class TestSynchronousPass(unittest.TestCase):

    def test_same_step_collapse_not_visible_to_neighbors(self):
        state = SystemState(
            units=[
                Unit("A", 0.5, 0.1, state=STATE_COLLAPSED),
                Unit("B", 0.5, 0.1),
                Unit("C", 0.9, 0.2),
            ],
            connections=[("A", "B"), ("B", "C")],
            global_transmission_factor=0.5,
        )
        nxt = propagation_step(state, _seq(0.0, 0.999999))
        self.assertEqual(nxt.units[1].state, STATE_COLLAPSED)
        # C only sees B's pre-step state, so it gets pure decay.
        self.assertAlmostEqual(nxt.units[2].stress, 0.95 * 0.2, places=12)

    def test_unit_order_does_not_change_stress(self):
        state = _random_state(8)
        seeded = [u if i % 3 else Unit(u.id, u.resilience, u.stress, STATE_COLLAPSED)
                  for i, u in enumerate(state.units)]
        forward = SystemState(units=seeded, connections=state.connections,
                              global_transmission_factor=0.5)
        backward = SystemState(units=seeded[::-1], connections=state.connections,
                               global_transmission_factor=0.5)
        f = {u.id: u.stress for u in propagation_step(forward, NEVER).units}
        b = {u.id: u.stress for u in propagation_step(backward, NEVER).units}
        self.assertEqual(f, b)


class TestDeterminism(unittest.TestCase):

    def test_identical_rng_identical_output(self):
        state = _random_state(21)
        out1 = propagation_step(state, default_rng(123))
        out2 = propagation_step(state, default_rng(123))
        self.assertEqual(out1, out2)

    def test_callable_and_generator_agree(self):
        state = _random_state(5)
        out1 = propagation_step(state, default_rng(9))
        out2 = propagation_step(state, default_rng(9).random)
        self.assertEqual(out1, out2)

    def test_input_snapshot_not_mutated(self):
        state = _random_state(4)
        before = [(u.id, u.stress, u.state) for u in state.units]
        propagation_step(state, default_rng(0))
        after = [(u.id, u.stress, u.state) for u in state.units]
        self.assertEqual(before, after)

    def test_invalid_rng_raises(self):
        with self.assertRaises(TypeError):
            propagation_step(_random_state(1), rng=42)


class TestRunSteps(unittest.TestCase):

    def test_zero_steps_returns_input(self):
        state = _random_state(2)
        self.assertIs(run_steps(state, 0, default_rng(0)), state)

    def test_negative_steps_raises(self):
        with self.assertRaises(ValueError):
            run_steps(_random_state(2), -1)

    def test_matches_manual_loop(self):
        state = _random_state(6)
        manual = state
        rng = default_rng(77)
        for _ in range(10):
            manual = propagation_step(manual, rng)
        self.assertEqual(run_steps(state, 10, default_rng(77)), manual)

    def test_collapse_spreads_down_chain(self):
        units = [Unit("U0", 0.5, 0.5, state=STATE_COLLAPSED)] + [
            Unit(f"U{i}", 0.3, 0.0) for i in range(1, 5)
        ]
        edges = [(f"U{i}", f"U{i + 1}") for i in range(4)]
        state = SystemState(units=units, connections=edges,
                            global_transmission_factor=1.0, collapse_sharpness=100.0)
        final = run_steps(state, 10, default_rng(0))
        self.assertTrue(all(u.state == STATE_COLLAPSED for u in final.units))


class TestReplaceUnit(unittest.TestCase):

    def test_relabels_target_by_state_keyword(self):
        snapshot = SystemState(units=[Unit("A", 0.5, 0.2), Unit("B", 0.5, 0.1)])
        out = replace_unit(snapshot, "A", stress=0.6, state=STATE_COLLAPSED)
        self.assertEqual(out.unit("A").state, STATE_COLLAPSED)
        self.assertEqual(out.unit("A").stress, 0.6)
        self.assertIs(out.unit("B"), snapshot.unit("B"))
        self.assertEqual(snapshot.unit("A").state, STATE_STABLE)

    def test_unknown_unit_gives_equal_snapshot(self):
        snapshot = SystemState(units=[Unit("A", 0.5, 0.2)])
        self.assertEqual(replace_unit(snapshot, "GHOST", state=STATE_STRESSED), snapshot)


if __name__ == "__main__":
    unittest.main()
