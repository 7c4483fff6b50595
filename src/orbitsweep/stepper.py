"""Fixed sub-step RK4 advance of a SimulationState.

The stepper packs the bodies into a flat state vector, takes one classical RK4
step with the gravity right-hand side, and writes the result back into the same
bodies. All four stages are evaluated on copies; the bodies are only touched
after the final combination, so a reader never sees a half-applied step.
"""

from __future__ import annotations

import numpy as np

from .bodies import SimulationState
from .dynamics import DynamicsParams, rhs
from .runge_kutta_integrators import classical_rk4, rk_step

_RK4 = classical_rk4()


def rk4_step(state: SimulationState, dt: float, *, params: DynamicsParams | None = None) -> None:
    """Advance every body of `state` in place by one RK4 step of size `dt`.

    Non-finite results (a body flung to infinity) are written back as-is; callers
    detect divergence through the escape check, not through an exception here.
    """
    if params is None:
        params = DynamicsParams()

    masses = state.masses

    def f(t: float, y: np.ndarray) -> np.ndarray:
        return rhs(t, y, masses, params=params)

    y_next = rk_step(f, 0.0, state.to_flat(), float(dt), _RK4)
    state.assign_flat(y_next)
