"""Integrator facade.

Re-exports the integration algorithms so the rest of the project can depend on
a stable import path:

	from orbitsweep import integrators
"""

from __future__ import annotations

from .runge_kutta_integrators import (
	RKTableau,
	VectorField,
	classical_rk4,
	rk_step,
)

from .stepper import rk4_step

__all__ = [
	"VectorField",
	"RKTableau",
	"classical_rk4",
	"rk_step",
	"rk4_step",
]
