"""Explicit Runge-Kutta IVP integration.
This module implements a general fixed-step explicit Runge-Kutta step driven by
a Butcher tableau, and provides the classical 4th order tableau used by the
stepper.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

# Define type for forcing function f(t, y) -> dy/dt
VectorField = Callable[[float, np.ndarray], np.ndarray]

@dataclass(frozen=True)
class RKTableau:
    """Butcher tableau for an explicit RK method.

    Attributes:
        a: Coefficients for the intermediate stages (strictly lower triangular).
        b: Weights for the final combination of stages.
        c: Coefficients for the intermediate time steps.
        order: Order of the method.
    """
    c: np.ndarray # [s,]
    a: np.ndarray # [s, s]
    b: np.ndarray # [s,]
    order: int

def classical_rk4() -> RKTableau:
    """Classical 4-stage, 4th order Runge-Kutta method.
    Coefficients from https://en.wikipedia.org/wiki/Runge%E2%80%93Kutta_methods

    Returns:
        RKTableau configured for RK4.
    """
    a_coeffs = np.array([
    [0, 0, 0, 0],
    [1/2, 0, 0, 0],
    [0, 1/2, 0, 0],
    [0, 0, 1, 0],
    ], dtype=float)
    b_coeffs = np.array([1/6, 1/3, 1/3, 1/6])
    c_coeffs = np.array([0, 1/2, 1/2, 1])

    return RKTableau(c=c_coeffs, a=a_coeffs, b=b_coeffs, order=4)

def rk_step(f: VectorField, t: float, y: np.ndarray, h: float, tableau: RKTableau) -> np.ndarray:
    """General method for taking a single step with an explicit Runge-Kutta method.
    The method computes:

    y_{n+1} = y_n + h * sum_{i=1}^s b_i * k_i

    where
      k_1 = f(t_n, y_n)
      k_2 = f(t_n + c_2*h, y_n + h*(a_21*k_1))
      ...
      k_s = f(t_n + c_s*h, y_n + h*sum_{j<s} a_sj*k_j)

    Every stage is evaluated on a fresh copy of y, and the input array is never
    written to.

    Parameters:
        f: Vector field f(t, y) -> dy/dt.
        t: Current time.
        y: Current state, 1D array.
        h: Step size.
        tableau: RK tableau.

    Returns:
        y_next: Solution at t+h.
    """
    y = np.asarray(y, dtype=float)
    if y.ndim != 1:
        raise ValueError("y must be a 1D array")

    c = tableau.c
    a = tableau.a
    b = tableau.b
    n_stages = c.shape[0]

    k = np.zeros((n_stages, y.shape[0]), dtype=float)
    k[0] = f(t, y)

    for ii in range(1, n_stages):
        t_stage = t + c[ii] * h
        y_stage = y.copy()
        for jj in range(ii):
            if a[ii, jj] != 0.0:
                y_stage += h * a[ii, jj] * k[jj]

        k[ii] = f(t_stage, y_stage)

    return y + h * (b @ k)
