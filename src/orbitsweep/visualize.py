"""Lightweight figures for sweep results and energy drift.

- Stability map: one pixel per sweep cell, red (escaped early) through yellow to
  green (survived the whole budget); NaN cells are drawn dark grey.
- Energy drift: E(t) - E(0) from a `SimulationResult`.

Matplotlib is imported inside the functions so the numerical modules never pull
in a plotting backend.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np

from .stability import SweepWindow

_NAN_RGB = np.array([17, 17, 17], dtype=np.uint8)


def stability_rgb(scores: np.ndarray) -> np.ndarray:
    """Map scores in [0, 1] to RGB bytes, shape (..., 3).

    score < 0.5: (255, 510*s, 0)
    score >= 0.5: (510*(1-s), 255, 0)
    """
    s = np.asarray(scores, dtype=float)
    finite = np.isfinite(s)
    sc = np.clip(np.where(finite, s, 0.0), 0.0, 1.0)

    r = np.where(sc < 0.5, 255.0, np.floor((1.0 - sc) * 510.0))
    g = np.where(sc < 0.5, np.floor(sc * 510.0), 255.0)
    rgb = np.stack([r, g, np.zeros_like(sc)], axis=-1)
    rgb = np.clip(rgb, 0, 255).astype(np.uint8)
    rgb[~finite] = _NAN_RGB
    return rgb


def plot_stability_map(
    scores: np.ndarray,
    *,
    window: SweepWindow | None = None,
    x_param: str = "x",
    y_param: str = "y",
    ax=None,
    title: Optional[str] = None,
):
    """Draw a stability map (indexed [gy, gx]) on `ax`; returns the axes."""
    import matplotlib.pyplot as plt

    if window is None:
        window = SweepWindow(resolution=int(np.asarray(scores).shape[1]))

    if ax is None:
        _fig, ax = plt.subplots(figsize=(6, 6))

    x0, x1 = window.x_at(0.0), window.x_at(1.0)
    y0, y1 = window.y_at(0.0), window.y_at(1.0)
    # Row 0 is the smallest y offset and is drawn at the top.
    ax.imshow(stability_rgb(scores), origin="upper", extent=(x0, x1, y1, y0), interpolation="nearest")
    ax.set_xlabel(x_param)
    ax.set_ylabel(y_param)
    ax.set_title(title or f"Stability: {x_param} vs {y_param} (zoom {window.zoom:.2f})")
    return ax


def plot_energy_drift(result, *, ax=None):
    """Plot E(t) - E(0) against time for a `SimulationResult`."""
    import matplotlib.pyplot as plt

    if ax is None:
        _fig, ax = plt.subplots(figsize=(7, 3))

    ax.plot(result.t, result.energy_drift, lw=1.0)
    ax.axhline(0.0, color="k", lw=0.5, alpha=0.5)
    ax.set_xlabel("t")
    ax.set_ylabel("E(t) - E(0)")
    ax.grid(True, alpha=0.3)
    return ax


def save_figure(ax, path: Path | str, dpi: int = 150) -> Path:
    """Save the figure owning `ax` and close it."""
    import matplotlib.pyplot as plt

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    fig = ax.figure
    fig.tight_layout()
    fig.savefig(out, dpi=dpi)
    plt.close(fig)
    return out


def use_headless_backend() -> None:
    """Switch to Agg for rendering without a display."""
    import matplotlib

    if matplotlib.get_backend().lower() != "agg":
        matplotlib.use("Agg", force=True)
