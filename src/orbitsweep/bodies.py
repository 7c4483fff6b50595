"""Point-mass bodies and the ordered simulation state.

A configuration is a list of plain dicts, one per body:

    {"position": [x, y, z], "velocity": [vx, vy, vz], "mass": m}

Vectors may also be given as {"x": .., "y": .., "z": ..}, and the short keys
`pos` / `vel` are accepted. Rendering hints (`color`, `radius`, ...) are ignored;
they never reach the physics.

State vector convention used by the integrator (flat np array, length 6n):
    y = [x1,y1,z1, ..., xn,yn,zn, vx1,vy1,vz1, ..., vxn,vyn,vzn]
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple

import numpy as np

from .vector import Vector3

log = logging.getLogger(__name__)

N_BODIES = 3
_DIM = 3
_AXES = ("x", "y", "z")


@dataclass
class Body:
    """A single point mass. Position and velocity are replaced in place by the
    stepper; mass is fixed at load time."""

    position: Vector3
    velocity: Vector3
    mass: float

    def clone(self) -> Body:
        return Body(self.position.clone(), self.velocity.clone(), float(self.mass))


class SimulationState:
    """Ordered sequence of bodies. Index is identity: body i is always the same
    physical object, across clones and across RK stages."""

    def __init__(self, bodies: Sequence[Body]):
        self._bodies: List[Body] = list(bodies)

    def __len__(self) -> int:
        return len(self._bodies)

    def __iter__(self) -> Iterator[Body]:
        return iter(self._bodies)

    def __getitem__(self, i: int) -> Body:
        return self._bodies[i]

    @property
    def bodies(self) -> Tuple[Body, ...]:
        return tuple(self._bodies)

    @property
    def masses(self) -> np.ndarray:
        return np.array([b.mass for b in self._bodies], dtype=float)

    def clone(self) -> SimulationState:
        return SimulationState([b.clone() for b in self._bodies])

    def to_flat(self) -> np.ndarray:
        """Pack positions and velocities into the flat 6n state vector."""
        r = np.array([b.position.as_array() for b in self._bodies], dtype=float)
        v = np.array([b.velocity.as_array() for b in self._bodies], dtype=float)
        return pack_state(r, v)

    def assign_flat(self, y: np.ndarray) -> None:
        """Overwrite every body's position and velocity from a flat state vector."""
        r, v = split_state(y, n_bodies=len(self._bodies))
        for i, body in enumerate(self._bodies):
            body.position = Vector3.from_array(r[i])
            body.velocity = Vector3.from_array(v[i])


def split_state(y: np.ndarray, *, n_bodies: int = N_BODIES) -> Tuple[np.ndarray, np.ndarray]:
    """Helper function to split flat state into positions and velocities.

    Args:
        y: Array of shape (6n,) representing the flat state.
        n_bodies: Number of bodies n.
    Returns:
        r: 3D positions of each body, shape (n,3)
        v: 3D velocities of each body, shape (n,3)
    """
    y = np.asarray(y, dtype=float)
    state_dim = 2 * _DIM * n_bodies
    if y.shape != (state_dim,):
        raise ValueError(f"Expected y.shape == ({state_dim},), got {y.shape}")

    r = y[: _DIM * n_bodies].reshape(n_bodies, _DIM)
    v = y[_DIM * n_bodies :].reshape(n_bodies, _DIM)
    return r, v


def pack_state(r: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Helper function to pack position and velocity matrices into the flat state vector."""
    r = np.asarray(r, dtype=float)
    v = np.asarray(v, dtype=float)

    if r.ndim != 2 or r.shape[1] != _DIM:
        raise ValueError(f"Expected r.shape == (n,{_DIM}), got {r.shape}")
    if v.shape != r.shape:
        raise ValueError(f"Expected v.shape == {r.shape}, got {v.shape}")

    return np.concatenate([r.reshape(-1), v.reshape(-1)])


def _parse_vector(raw: Any, *, name: str) -> Vector3:
    if isinstance(raw, Vector3):
        return raw.clone()
    if isinstance(raw, Mapping):
        raw = [raw.get(axis, 0.0) for axis in _AXES]
    try:
        arr = np.asarray(raw, dtype=float)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be array-like of numbers") from e
    if arr.shape != (_DIM,):
        raise ValueError(f"{name} must have 3 components, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} must be finite, got {arr.tolist()}")
    return Vector3.from_array(arr)


def parse_body(d: Mapping[str, Any] | Body, *, index: int = 0) -> Body:
    """Build a validated Body from a config dict (or copy an existing Body)."""
    if isinstance(d, Body):
        d = body_to_dict(d)
    if not isinstance(d, Mapping):
        raise ValueError(f"body {index + 1}: expected a mapping, got {type(d).__name__}")

    position_raw = d.get("position", d.get("pos"))
    velocity_raw = d.get("velocity", d.get("vel"))
    if position_raw is None:
        raise ValueError(f"body {index + 1}: missing 'position'")
    if velocity_raw is None:
        raise ValueError(f"body {index + 1}: missing 'velocity'")

    try:
        mass = float(d.get("mass"))
    except (TypeError, ValueError) as e:
        raise ValueError(f"body {index + 1}: 'mass' must be a number") from e
    if not math.isfinite(mass) or mass <= 0.0:
        raise ValueError(f"body {index + 1}: mass must be finite and positive, got {mass}")

    return Body(
        position=_parse_vector(position_raw, name=f"body {index + 1} position"),
        velocity=_parse_vector(velocity_raw, name=f"body {index + 1} velocity"),
        mass=mass,
    )


def parse_configuration(config: Sequence[Mapping[str, Any] | Body], *, n_bodies: int | None = N_BODIES) -> SimulationState:
    """Validate an initial-condition list and build a fresh SimulationState.

    Args:
        config: One entry per body.
        n_bodies: Required body count; None accepts any non-empty list.

    Raises:
        ValueError: wrong body count, non-positive mass or malformed vectors.
    """
    if isinstance(config, SimulationState):
        config = list(config.bodies)
    if isinstance(config, (str, bytes)) or not isinstance(config, Sequence):
        raise ValueError("configuration must be a sequence of bodies")
    if n_bodies is not None and len(config) != n_bodies:
        raise ValueError(f"Expected {n_bodies} bodies, got {len(config)}")
    if len(config) == 0:
        raise ValueError("configuration must contain at least one body")

    state = SimulationState([parse_body(d, index=i) for i, d in enumerate(config)])
    log.debug("parsed configuration with %d bodies, masses=%s", len(state), state.masses.tolist())
    return state


def body_to_dict(body: Body) -> Dict[str, Any]:
    return {
        "position": [body.position.x, body.position.y, body.position.z],
        "velocity": [body.velocity.x, body.velocity.y, body.velocity.z],
        "mass": float(body.mass),
    }


def state_to_config(state: SimulationState) -> List[Dict[str, Any]]:
    """Inverse of `parse_configuration`: plain dicts safe to mutate."""
    return [body_to_dict(b) for b in state]

