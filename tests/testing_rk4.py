## Checks for the RK4 stepper: step scaling on the default configuration,
## exactness on free motion, accuracy on a circular two-body orbit, and the
## in-place commit of a step.

import sys
from pathlib import Path
# Go up to the parent directory (..), then down into "src"
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import math
import unittest

import numpy as np

from orbitsweep import integrators
from orbitsweep.bodies import Body, SimulationState, parse_configuration
from orbitsweep.dynamics import DynamicsParams, total_momentum
from orbitsweep.runge_kutta_integrators import classical_rk4, rk_step
from orbitsweep.stepper import rk4_step
from orbitsweep.vector import Vector3

DEFAULT = [
    {"position": [-100, 0, 0], "velocity": [0, 5, 0.5], "mass": 20},
    {"position": [100, 0, 0], "velocity": [0, -5, -0.5], "mass": 20},
    {"position": [0, -150, 50], "velocity": [4, 0, 0], "mass": 15},
]


class TestRKTableau(unittest.TestCase):

    def test_classical_weights(self):
        print("\n--- Test: Classical Weights ---")
        tab = classical_rk4()
        self.assertEqual(tab.order, 4)
        self.assertAlmostEqual(float(np.sum(tab.b)), 1.0)
        # Row sums of a equal c for a consistent method.
        np.testing.assert_allclose(np.sum(tab.a, axis=1), tab.c)

    def test_exponential_convergence_order(self):
        """
        y' = y from t=0; local error of one step is O(h^5).
        """
        print("\n--- Test: Exponential Convergence Order ---")
        tab = classical_rk4()
        errors = []
        hs = [0.2, 0.1, 0.05]
        for h in hs:
            y1 = rk_step(lambda t, y: y, 0.0, np.array([1.0]), h, tab)
            errors.append(abs(y1[0] - math.exp(h)))
        slope = np.polyfit(np.log(hs), np.log(errors), 1)[0]
        self.assertTrue(4.7 < slope < 5.3, f"slope={slope:.3f}")

    def test_rejects_non_vector_state(self):
        print("\n--- Test: Non-Vector State Rejected ---")
        with self.assertRaises(ValueError):
            rk_step(lambda t, y: y, 0.0, np.zeros((2, 2)), 0.1, classical_rk4())


class TestRK4Step(unittest.TestCase):

    def test_default_configuration_single_step_scale(self):
        """
        One 0.01 step moves body 1 by about |v| h.
        """
        print("\n--- Test: One Step On The Default Configuration ---")
        state = parse_configuration(DEFAULT)
        start = state[0].position
        rk4_step(state, 0.01, params=DynamicsParams(G=1000.0, softening=5.0))

        moved = state[0].position.distance_to(start)
        # Dominated by |v| h = sqrt(25.25) * 0.01 ~ 0.0502
        self.assertAlmostEqual(moved, math.sqrt(25.25) * 0.01, delta=1e-3)

    def test_free_particles_move_linearly(self):
        """
        With G = 0 RK4 is exact: x(t) = x0 + v t.
        """
        print("\n--- Test: Free Particles Move Linearly ---")
        state = SimulationState([
            Body(Vector3(0.0, 0.0, 0.0), Vector3(1.0, 2.0, 3.0), 1.0),
            Body(Vector3(10.0, 0.0, 0.0), Vector3(0.0, 0.0, 0.0), 1.0),
            Body(Vector3(0.0, 10.0, 0.0), Vector3(-1.0, 0.0, 0.0), 1.0),
        ])
        for _ in range(10):
            rk4_step(state, 0.1, params=DynamicsParams(G=0.0))

        np.testing.assert_allclose(state[0].position.as_array(), [1.0, 2.0, 3.0], rtol=1e-12)
        np.testing.assert_allclose(state[2].position.as_array(), [-1.0, 10.0, 0.0], rtol=1e-12)
        self.assertEqual(state[0].velocity, Vector3(1.0, 2.0, 3.0))

    def test_circular_orbit_keeps_separation(self):
        """
        Equal masses at +-R, G=1, m=1, R=1, no softening: v = sqrt(G m / 4R) = 0.5
        """
        print("\n--- Test: Circular Orbit Keeps Separation ---")
        state = SimulationState([
            Body(Vector3(-1.0, 0.0, 0.0), Vector3(0.0, -0.5, 0.0), 1.0),
            Body(Vector3(1.0, 0.0, 0.0), Vector3(0.0, 0.5, 0.0), 1.0),
        ])
        params = DynamicsParams(G=1.0, softening=0.0)
        for _ in range(500):
            rk4_step(state, 0.01, params=params)

        self.assertAlmostEqual(state[0].position.distance_to(state[1].position), 2.0, places=8)
        # Centre of mass stays at the origin.
        com = (state[0].position + state[1].position).scale(0.5)
        self.assertLess(com.magnitude(), 1e-10)

    def test_step_commits_in_place_and_preserves_identity(self):
        """
        The same Body objects are updated; a clone taken before the
        step keeps the old values.
        """
        print("\n--- Test: In-Place Commit ---")
        state = parse_configuration(DEFAULT)
        bodies_before = state.bodies
        masses_before = state.masses.copy()
        snapshot = state.clone()

        rk4_step(state, 0.01)

        for b_before, b_after in zip(bodies_before, state.bodies):
            self.assertIs(b_before, b_after)
        np.testing.assert_array_equal(state.masses, masses_before)
        self.assertNotEqual(state[0].position, snapshot[0].position)
        # The clone is independent of the stepped state.
        self.assertEqual(snapshot[0].position, Vector3(-100.0, 0.0, 0.0))

    def test_momentum_conserved(self):
        print("\n--- Test: Momentum Conserved ---")
        state = parse_configuration(DEFAULT)
        p0 = total_momentum(state)
        for _ in range(200):
            rk4_step(state, 0.01)
        self.assertLess(total_momentum(state).distance_to(p0), 1e-9)

    def test_facade_exports_stepper(self):
        print("\n--- Test: Facade Exports Stepper ---")
        self.assertIs(integrators.rk4_step, rk4_step)
        self.assertEqual(integrators.classical_rk4().order, 4)

    def test_non_finite_values_propagate_silently(self):
        """
        NaN input is carried through the step without raising.
        """
        print("\n--- Test: Non-Finite Values Propagate ---")
        state = SimulationState([
            Body(Vector3(float("nan"), 0.0, 0.0), Vector3(0.0, 0.0, 0.0), 1.0),
            Body(Vector3(100.0, 0.0, 0.0), Vector3(0.0, 0.0, 0.0), 1.0),
            Body(Vector3(0.0, 100.0, 0.0), Vector3(0.0, 0.0, 0.0), 1.0),
        ])
        with np.errstate(invalid="ignore"):
            rk4_step(state, 0.01)
        self.assertTrue(math.isnan(state[0].position.x))


if __name__ == "__main__":
    unittest.main()
