"""Softened Newtonian gravity for a small set of point masses.

Force law for the pair (i, j), with r = r_j - r_i and d = |r|:

    F = G m_i m_j / (d^2 + eps^2)
    F_vec = F * r / d

The magnitude uses the softened squared distance, the direction uses the plain
distance d. The energy diagnostic uses the plain distance for the potential.
Both asymmetries are kept as-is; changing either changes the trajectories.

Arrays follow the flat state convention of `orbitsweep.bodies`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import numpy as np

from .bodies import SimulationState, pack_state, split_state
from .vector import Vector3

_DIM = 3


@dataclass(frozen=True)
class DynamicsParams:
    """Parameters for the softened gravity model."""

    G: float = 1000.0
    softening: float = 5.0
    # Lower bound on the pair distance used for the direction and the potential.
    min_distance: float = 1e-12


def accelerations(r: np.ndarray, masses: np.ndarray, *, params: DynamicsParams | None = None) -> np.ndarray:
    """Compute gravitational accelerations for each body.

    Args:
        r: 3D positions of each body, shape (n,3)
        masses: Body masses, shape (n,)
        params: Dynamics parameters (G, softening, min_distance).

    Returns:
        a: Accelerations, shape (n,3)

    Notes:
        One pass over unordered pairs. The pair force is added to body i and
        subtracted from body j (each divided by its own mass), so internal forces
        cancel exactly and total momentum is unchanged.
    """
    if params is None:
        params = DynamicsParams()

    r = np.asarray(r, dtype=float)
    masses = np.asarray(masses, dtype=float)
    if r.ndim != 2 or r.shape[1] != _DIM:
        raise ValueError(f"Expected r.shape == (n,{_DIM}), got {r.shape}")
    n = r.shape[0]
    if masses.shape != (n,):
        raise ValueError(f"Expected masses.shape == ({n},), got {masses.shape}")

    a = np.zeros_like(r)
    eps2 = float(params.softening) ** 2
    G = float(params.G)
    d_min = float(params.min_distance)

    for i in range(n):
        for j in range(i + 1, n):
            dr = r[j] - r[i]
            d = float(np.sqrt(dr[0] * dr[0] + dr[1] * dr[1] + dr[2] * dr[2]))
            dist2_soft = d * d + eps2
            f_mag = G * masses[i] * masses[j] / dist2_soft
            f_vec = dr * (f_mag / max(d, d_min))
            a[i] += f_vec / masses[i]
            a[j] -= f_vec / masses[j]

    return a


def rhs(t: float, y: np.ndarray, masses: np.ndarray, *, params: DynamicsParams | None = None) -> np.ndarray:
    """Right-hand side for the ODE y' = f(t, y): positions derive from velocities,
    velocities from accelerations."""
    masses = np.asarray(masses, dtype=float)
    r, v = split_state(y, n_bodies=masses.shape[0])
    a = accelerations(r, masses, params=params)
    return pack_state(v, a)


def energy(y: np.ndarray, masses: np.ndarray, *, params: DynamicsParams | None = None) -> float:
    """Compute total (kinetic + potential) energy for the state.

    Args:
        y: Flat state, shape (6n,)
        masses: Body masses, shape (n,)
        params: Dynamics parameters (G, min_distance). Softening is not used.

    Returns:
        Total energy as a float.

    Notes:
        T = 1/2 * sum_i m_i * ||v_i||^2
        U = -G * sum_{i<j} m_i * m_j / ||r_i-r_j||
    """
    if params is None:
        params = DynamicsParams()

    masses = np.asarray(masses, dtype=float)
    n = masses.shape[0]
    r, v = split_state(y, n_bodies=n)
    G = float(params.G)
    d_min = float(params.min_distance)

    kinetic = 0.5 * float(np.sum(masses * np.sum(v * v, axis=1)))

    potential = 0.0
    for i in range(n):
        for j in range(i + 1, n):
            dr = r[j] - r[i]
            d = float(np.sqrt(dr[0] * dr[0] + dr[1] * dr[1] + dr[2] * dr[2]))
            potential += -G * masses[i] * masses[j] / max(d, d_min)

    return kinetic + float(potential)


def body_accelerations(state: SimulationState, *, params: DynamicsParams | None = None) -> List[Vector3]:
    """Accelerations for every body of a state, as vectors in body order."""
    r = np.array([b.position.as_array() for b in state], dtype=float)
    a = accelerations(r, state.masses, params=params)
    return [Vector3.from_array(row) for row in a]


def total_energy(state: SimulationState, *, params: DynamicsParams | None = None) -> float:
    """Total energy of a state. Pure read; used for drift monitoring only."""
    return energy(state.to_flat(), state.masses, params=params)


def total_momentum(state: SimulationState) -> Vector3:
    p = Vector3()
    for b in state:
        p = p + b.velocity * b.mass
    return p
