"""Live simulation driver and fixed-step trajectory recording.

`Simulation` owns exactly one SimulationState. A host loads a configuration,
then calls `advance(dt_visual)` once per frame; the accumulator turns the frame
time into whole RK4 sub-steps. Stability evaluation never touches the live
state: each call works on its own copy of the configuration it is given.

Recorded diagnostics (`simulate_fixed`):
- time points
- states
- number of sub-steps
- energy + drift from initial value
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import numpy as np

from .accumulator import FixedStepAccumulator
from .bodies import SimulationState, parse_configuration
from .dynamics import DynamicsParams, total_energy
from .stability import StabilityConfig, evaluate_stability
from .stepper import rk4_step

log = logging.getLogger(__name__)


class Simulation:
    """Live three-body simulation with a fixed physics sub-step."""

    def __init__(
        self,
        config: Sequence[Mapping[str, Any]] | None = None,
        *,
        params: DynamicsParams | None = None,
        fixed_step: float = 0.01,
        stability: StabilityConfig | None = None,
    ):
        self.params = params if params is not None else DynamicsParams()
        self.stability = stability if stability is not None else StabilityConfig()
        self._accumulator = FixedStepAccumulator(fixed_step)
        self._state: SimulationState | None = None
        if config is not None:
            self.load_config(config)

    @property
    def fixed_step(self) -> float:
        return self._accumulator.fixed_step

    @property
    def accumulator(self) -> FixedStepAccumulator:
        return self._accumulator

    @property
    def steps_taken(self) -> int:
        return self._accumulator.steps_taken

    def load_config(self, config: Sequence[Mapping[str, Any]]) -> None:
        """Replace the live state. The old state is discarded, never patched.

        Raises:
            ValueError: wrong body count, non-positive mass or malformed vectors.
        """
        self._state = parse_configuration(config)
        self._accumulator.reset()
        if log.isEnabledFor(logging.DEBUG):
            log.debug("loaded configuration, E0=%.6g", self.total_energy())

    def _require_state(self) -> SimulationState:
        if self._state is None:
            raise RuntimeError("No configuration loaded; call load_config first")
        return self._state

    def integrate(self, dt: float) -> None:
        """One RK4 sub-step of size `dt` on the live state."""
        rk4_step(self._require_state(), dt, params=self.params)

    def advance(self, dt_visual: float) -> int:
        """Consume `dt_visual` seconds of frame time; returns sub-steps run."""
        self._require_state()
        return self._accumulator.advance(dt_visual, self.integrate)

    def current_state(self) -> SimulationState:
        """Copy of the live state for rendering; changes to it are not seen here."""
        return self._require_state().clone()

    def total_energy(self) -> float:
        return total_energy(self._require_state(), params=self.params)

    def evaluate_stability(
        self,
        base_config: Sequence[Mapping[str, Any]],
        x_param: str,
        x_value: float,
        y_param: str,
        y_value: float,
    ) -> float:
        return evaluate_stability(base_config, x_param, x_value, y_param, y_value, config=self.stability)


@dataclass(frozen=True)
class SimulationResult:
    t: np.ndarray
    y: np.ndarray
    nsteps: int
    energy: np.ndarray
    energy_drift: np.ndarray


def simulate_fixed(
    config: Sequence[Mapping[str, Any]],
    t_end: float,
    *,
    h: float = 0.01,
    params: DynamicsParams | None = None,
    record_every: int = 1,
) -> SimulationResult:
    """Integrate a configuration from t=0 to `t_end` with fixed RK4 sub-steps.

    The step count comes from the same integer accumulator the live simulation
    uses, so `simulate_fixed(cfg, T)` reaches the same state as a `Simulation`
    advanced by any slicing of T.

    Args:
        config: Initial conditions.
        t_end: Total simulated time (non-negative).
        h: Fixed sub-step.
        params: Dynamics parameters.
        record_every: Record one sample every this many sub-steps (the initial
            and final states are always recorded).

    Returns:
        SimulationResult with recorded trajectory and diagnostics.
    """
    if t_end < 0.0:
        raise ValueError("t_end must be non-negative")
    if record_every <= 0:
        raise ValueError("record_every must be positive")

    sim = Simulation(config, params=params, fixed_step=h)
    state = sim.current_state()

    t_hist: list[float] = [0.0]
    y_hist: list[np.ndarray] = [state.to_flat()]
    e_hist: list[float] = [sim.total_energy()]

    n_total = sim.accumulator.to_ticks(t_end) // sim.accumulator.step_ticks
    for n in range(1, n_total + 1):
        sim.advance(sim.fixed_step)
        if n % record_every == 0 or n == n_total:
            t_hist.append(n * sim.fixed_step)
            y_hist.append(sim.current_state().to_flat())
            e_hist.append(sim.total_energy())

    energy_arr = np.asarray(e_hist, dtype=float)
    log.info("simulated %d sub-steps, final drift %.3e", n_total, energy_arr[-1] - energy_arr[0])
    return SimulationResult(
        t=np.asarray(t_hist, dtype=float),
        y=np.vstack([yi.reshape(1, -1) for yi in y_hist]),
        nsteps=int(n_total),
        energy=energy_arr,
        energy_drift=energy_arr - energy_arr[0],
    )
