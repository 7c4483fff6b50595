"""Stability sweep over perturbed initial conditions.

A sweep cell takes a base configuration, adds two scalar offsets to named
fields of named bodies, and runs a private RK4 simulation at a coarse step. The
result is the fraction of the step budget survived before any body leaves the
escape radius:

    score = k / steps   if the first escape is seen after the step with index k
    score = 1.0         if no body escapes within the budget

Parameter names:
    mass_<n>          adds to body n's mass
    pos_<axis>_<n>    adds to body n's position component
    vel_<axis>_<n>    adds to body n's velocity component
with n in {1, 2, 3} (1-based) and axis in {x, y, z}.

Known gap: a body whose position becomes NaN never compares greater than the
escape radius, so such a cell reports 1.0.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple

import numpy as np

from .bodies import N_BODIES, SimulationState, parse_configuration, split_state, state_to_config
from .dynamics import DynamicsParams, rhs
from .runge_kutta_integrators import classical_rk4, rk_step
from .vector import Vector3

log = logging.getLogger(__name__)

ConfigLike = Sequence[Mapping[str, Any]] | SimulationState

_COMPONENTS = {"mass": "mass", "pos": "position", "vel": "velocity"}
_AXES = ("x", "y", "z")
_RK4 = classical_rk4()


class InvalidPerturbation(ValueError):
    """An offset that leaves a body with an unphysical value (non-positive mass)."""


@dataclass(frozen=True)
class StabilityConfig:
    """Settings for one sweep cell.

    The step is deliberately coarser than the live fixed step; throughput over
    accuracy.
    """

    steps: int = 1000
    dt: float = 0.2
    escape_radius: float = 6000.0
    G: float = 1000.0
    softening: float = 5.0
    min_distance: float = 1e-12

    def __post_init__(self):
        if self.steps <= 0:
            raise ValueError("steps must be positive")
        if self.dt <= 0.0:
            raise ValueError("dt must be positive")
        if self.escape_radius <= 0.0:
            raise ValueError("escape_radius must be positive")

    @property
    def dynamics(self) -> DynamicsParams:
        return DynamicsParams(G=self.G, softening=self.softening, min_distance=self.min_distance)


# Quick stable/unstable preview used by the coarse velocity matrix.
PREVIEW_CONFIG = StabilityConfig(steps=800, dt=0.1, escape_radius=3000.0)


@dataclass(frozen=True)
class Perturbation:
    """A parsed parameter name. `body` is 1-based; `axis` is None for mass."""

    name: str
    component: str
    body: int
    axis: str | None = None

    @property
    def index(self) -> int:
        return self.body - 1


def parse_parameter(name: str, *, n_bodies: int = N_BODIES) -> Perturbation:
    """Parse `mass_<n>`, `pos_<axis>_<n>` or `vel_<axis>_<n>`.

    Raises:
        ValueError: for any other shape, unknown axis, or body out of range.
    """
    if not isinstance(name, str) or not name:
        raise ValueError("parameter name must be a non-empty string")

    parts = name.split("_")
    kind = parts[0]
    if kind not in _COMPONENTS:
        raise ValueError(f"Unknown parameter '{name}': expected mass_<n>, pos_<axis>_<n> or vel_<axis>_<n>")

    if kind == "mass":
        if len(parts) != 2:
            raise ValueError(f"Malformed parameter '{name}': expected mass_<n>")
        axis = None
        body_raw = parts[1]
    else:
        if len(parts) != 3:
            raise ValueError(f"Malformed parameter '{name}': expected {kind}_<axis>_<n>")
        axis = parts[1]
        body_raw = parts[2]
        if axis not in _AXES:
            raise ValueError(f"Unknown axis '{axis}' in parameter '{name}'")

    if not body_raw.isdigit():
        raise ValueError(f"Body index must be an integer in parameter '{name}'")
    body = int(body_raw)
    if not 1 <= body <= n_bodies:
        raise ValueError(f"Body index {body} out of range 1..{n_bodies} in parameter '{name}'")

    return Perturbation(name=name, component=_COMPONENTS[kind], body=body, axis=axis)


def _apply(state: SimulationState, p: Perturbation, value: float) -> None:
    body = state[p.index]
    value = float(value)
    if p.component == "mass":
        mass = body.mass + value
        if not math.isfinite(mass) or mass <= 0.0:
            raise InvalidPerturbation(f"{p.name}{value:+g} leaves body {p.body} with non-positive mass {mass}")
        body.mass = mass
        return

    offset = Vector3(**{p.axis: value})
    if p.component == "position":
        body.position = body.position + offset
    else:
        body.velocity = body.velocity + offset


def perturbed_state(base: ConfigLike, perturbations: Sequence[Tuple[str, float]]) -> SimulationState:
    """Fresh state built from `base` with every (name, value) offset applied.
    The base configuration is never modified."""
    state = parse_configuration(base)
    for name, value in perturbations:
        _apply(state, parse_parameter(name, n_bodies=len(state)), value)
    return state


def apply_perturbation(base: ConfigLike, name: str, value: float) -> List[Dict[str, Any]]:
    """Return a new configuration (plain dicts) with one offset applied."""
    return state_to_config(perturbed_state(base, [(name, value)]))


def escaped(y: np.ndarray, escape_radius_sq: float, *, n_bodies: int = N_BODIES) -> bool:
    # NaN compares False, so a NaN body is never counted as escaped.
    r, _v = split_state(y, n_bodies=n_bodies)
    return bool(np.any(np.sum(r * r, axis=1) > escape_radius_sq))


def is_unstable(state: SimulationState, threshold: float = 5000.0) -> bool:
    """True if any body is farther than `threshold` from the origin."""
    return any(b.position.magnitude() > threshold for b in state)


def run_stability(state: SimulationState, *, config: StabilityConfig | None = None) -> float:
    """Step `state` for the budget and return its stability score.

    The loop runs on the flat state vector; the bodies receive the last
    evaluated positions and velocities once, on return.
    """
    if config is None:
        config = StabilityConfig()

    params = config.dynamics
    masses = state.masses
    n_bodies = len(state)
    dt = float(config.dt)
    escape_sq = float(config.escape_radius) ** 2

    def f(t: float, y: np.ndarray) -> np.ndarray:
        return rhs(t, y, masses, params=params)

    y = state.to_flat()
    score = 1.0
    for k in range(config.steps):
        y = rk_step(f, 0.0, y, dt, _RK4)
        if escaped(y, escape_sq, n_bodies=n_bodies):
            score = k / config.steps
            break

    state.assign_flat(y)
    return score


def evaluate_stability(
    base: ConfigLike,
    x_param: str,
    x_value: float,
    y_param: str,
    y_value: float,
    *,
    config: StabilityConfig | None = None,
) -> float:
    """Score one sweep cell in [0, 1]; runs on a private copy of `base`."""
    state = perturbed_state(base, [(x_param, x_value), (y_param, y_value)])
    return run_stability(state, config=config)


@dataclass(frozen=True)
class SweepWindow:
    """Square window of parameter offsets sampled on a resolution x resolution grid.

    Grid index g maps to center + (g / resolution - 0.5) * 2 * (base_range / zoom).
    """

    center_x: float = 0.0
    center_y: float = 0.0
    zoom: float = 1.0
    base_range: float = 8.0
    resolution: int = 200

    def __post_init__(self):
        if self.zoom <= 0.0:
            raise ValueError("zoom must be positive")
        if self.resolution <= 0:
            raise ValueError("resolution must be positive")

    @property
    def half_width(self) -> float:
        return self.base_range / self.zoom

    def x_at(self, fraction: float) -> float:
        return self.center_x + (fraction - 0.5) * 2 * self.half_width

    def y_at(self, fraction: float) -> float:
        return self.center_y + (fraction - 0.5) * 2 * self.half_width

    def x_values(self) -> np.ndarray:
        return np.array([self.x_at(g / self.resolution) for g in range(self.resolution)], dtype=float)

    def y_values(self) -> np.ndarray:
        return np.array([self.y_at(g / self.resolution) for g in range(self.resolution)], dtype=float)

    def zoomed(self, factor: float) -> SweepWindow:
        return replace(self, zoom=self.zoom * factor)

    def panned(self, dx: float, dy: float) -> SweepWindow:
        return replace(self, center_x=self.center_x + dx, center_y=self.center_y + dy)


def iter_stability_columns(
    base: ConfigLike,
    x_param: str,
    y_param: str,
    *,
    window: SweepWindow | None = None,
    config: StabilityConfig | None = None,
) -> Iterator[Tuple[int, np.ndarray]]:
    """Yield `(gx, scores)` one grid column at a time, `scores[gy]` for every row.

    Stopping iteration is how a host cancels a sweep; no work is done past the
    last column consumed. Cells whose perturbed mass is non-positive are NaN.
    """
    if window is None:
        window = SweepWindow()
    if config is None:
        config = StabilityConfig()
    parse_parameter(x_param)
    parse_parameter(y_param)
    # Validate once so a bad base fails before the first column.
    parse_configuration(base)

    ys = window.y_values()
    for gx, x_value in enumerate(window.x_values()):
        column = np.full(window.resolution, np.nan, dtype=float)
        for gy, y_value in enumerate(ys):
            try:
                column[gy] = evaluate_stability(base, x_param, x_value, y_param, y_value, config=config)
            except InvalidPerturbation as e:
                log.debug("cell (%d, %d) skipped: %s", gx, gy, e)
        log.debug("column %d/%d done (%s=%.4f)", gx + 1, window.resolution, x_param, x_value)
        yield gx, column


def stability_map(
    base: ConfigLike,
    x_param: str,
    y_param: str,
    *,
    window: SweepWindow | None = None,
    config: StabilityConfig | None = None,
) -> np.ndarray:
    """Full sweep. Returns scores with shape (resolution, resolution), indexed [gy, gx]."""
    if window is None:
        window = SweepWindow()
    scores = np.full((window.resolution, window.resolution), np.nan, dtype=float)
    for gx, column in iter_stability_columns(base, x_param, y_param, window=window, config=config):
        scores[:, gx] = column
    log.info("stability map %s x %s finished (%d cells)", x_param, y_param, scores.size)
    return scores


def config_at(
    base: ConfigLike,
    x_param: str,
    y_param: str,
    fx: float,
    fy: float,
    *,
    window: SweepWindow | None = None,
) -> List[Dict[str, Any]]:
    """Configuration at fractional window coordinates (fx, fy) in [0, 1]."""
    if window is None:
        window = SweepWindow()
    state = perturbed_state(base, [(x_param, window.x_at(fx)), (y_param, window.y_at(fy))])
    return state_to_config(state)


@dataclass(frozen=True)
class Variation:
    index: int
    dvx: float
    dvy: float
    label: str
    config: List[Dict[str, Any]]


def velocity_variations(
    base: ConfigLike,
    *,
    rows: int = 3,
    cols: int = 5,
    spacing: float = 0.4,
    body: int = 3,
) -> List[Variation]:
    """Row-major grid of x/y velocity offsets for one body, centred on the base."""
    variations: List[Variation] = []
    for r in range(rows):
        for c in range(cols):
            dvx = (c - cols // 2) * spacing
            dvy = (r - rows // 2) * spacing
            state = perturbed_state(base, [(f"vel_x_{body}", dvx), (f"vel_y_{body}", dvy)])
            variations.append(
                Variation(
                    index=len(variations),
                    dvx=dvx,
                    dvy=dvy,
                    label=f"dV: [{dvx:.1f}, {dvy:.1f}]",
                    config=state_to_config(state),
                )
            )
    return variations


def classify_variations(
    variations: Sequence[Variation],
    *,
    config: StabilityConfig = PREVIEW_CONFIG,
) -> List[Tuple[Variation, bool]]:
    """Stable/unstable verdict for each variation (stable means full budget survived)."""
    return [(v, run_stability(parse_configuration(v.config), config=config) == 1.0) for v in variations]
