"""Run a stability sweep over one named configuration (thin CLI glue).

Usage:
  python scripts/run_sweep.py default --x-param vel_x_3 --y-param vel_y_3 --resolution 50 --save out/sweep

Writes `<save>.npz` (scores + axis values), `<save>.csv` (one row per cell) and,
with --plot, `<save>.png`.

Policy:
- No numerics here: no RHS/integrators/accumulators.
- Orchestration only.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import logging
from pathlib import Path
import sys
import time

# Allow running directly from a src-layout repo without installation.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import numpy as np
import pandas as pd

from orbitsweep.configurations import load_configuration
from orbitsweep.stability import StabilityConfig, SweepWindow, iter_stability_columns

log = logging.getLogger("run_sweep")


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Sweep a 2D grid of perturbations and score stability")
    p.add_argument("config_name", nargs="?", default="default", help="Configuration key (JSON filename stem)")
    p.add_argument("--x-param", default="vel_x_3", help="Horizontal parameter (default: vel_x_3)")
    p.add_argument("--y-param", default="vel_y_3", help="Vertical parameter (default: vel_y_3)")
    p.add_argument("--center-x", type=float, default=0.0, help="Window center on x (default: 0.0)")
    p.add_argument("--center-y", type=float, default=0.0, help="Window center on y (default: 0.0)")
    p.add_argument("--zoom", type=float, default=1.0, help="Zoom factor (default: 1.0)")
    p.add_argument("--range", dest="base_range", type=float, default=8.0, help="Half-width at zoom 1 (default: 8.0)")
    p.add_argument("--resolution", type=int, default=200, help="Cells per axis (default: 200)")
    p.add_argument("--steps", type=int, default=1000, help="Step budget per cell (default: 1000)")
    p.add_argument("--dt", type=float, default=0.2, help="Sweep step size (default: 0.2)")
    p.add_argument("--escape-radius", type=float, default=6000.0, help="Escape radius (default: 6000)")
    p.add_argument("--save", type=str, default=None, help="Output path stem for .npz/.csv/.png")
    p.add_argument("--plot", action="store_true", help="Also render the map to PNG")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def stability_for(named, stability: StabilityConfig) -> StabilityConfig:
    """The configuration supplies G and softening; every other field of `stability` is kept."""
    return replace(stability, G=named.params.G, softening=named.params.softening)


def run(
    config_name: str,
    x_param: str,
    y_param: str,
    window: SweepWindow,
    stability: StabilityConfig,
    save=None,
    plot: bool = False,
) -> np.ndarray:
    named = load_configuration(config_name)
    stability = stability_for(named, stability)

    t0 = time.perf_counter()
    scores = np.full((window.resolution, window.resolution), np.nan, dtype=float)
    try:
        for gx, column in iter_stability_columns(named.bodies, x_param, y_param, window=window, config=stability):
            scores[:, gx] = column
            print(f"\rcolumn {gx + 1}/{window.resolution}", end="", flush=True)
    except KeyboardInterrupt:
        print()
        log.warning("sweep interrupted; unfinished columns are NaN")
    print()
    elapsed = time.perf_counter() - t0
    print(f"Swept {named.name}: {x_param} x {y_param}, {window.resolution}^2 cells in {elapsed:.2f} s")
    print(f"Stable cells: {int(np.sum(scores == 1.0))} / {scores.size}")

    if save is not None:
        out = Path(save)
        out.parent.mkdir(parents=True, exist_ok=True)
        xs = window.x_values()
        ys = window.y_values()
        np.savez(out.with_suffix(".npz"), scores=scores, x=xs, y=ys, x_param=x_param, y_param=y_param)

        gy, gx = np.meshgrid(np.arange(window.resolution), np.arange(window.resolution), indexing="ij")
        frame = pd.DataFrame(
            {
                "gx": gx.ravel(),
                "gy": gy.ravel(),
                x_param: xs[gx.ravel()],
                y_param: ys[gy.ravel()],
                "score": scores.ravel(),
            }
        )
        frame.to_csv(out.with_suffix(".csv"), index=False)
        print(f"Saved: {out.with_suffix('.npz')}, {out.with_suffix('.csv')}")

        if plot:
            from orbitsweep.visualize import plot_stability_map, save_figure, use_headless_backend

            use_headless_backend()
            ax = plot_stability_map(scores, window=window, x_param=x_param, y_param=y_param)
            print(f"Saved: {save_figure(ax, out.with_suffix('.png'))}")

    return scores


def main(argv=None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    window = SweepWindow(
        center_x=args.center_x,
        center_y=args.center_y,
        zoom=args.zoom,
        base_range=args.base_range,
        resolution=args.resolution,
    )
    stability = StabilityConfig(steps=args.steps, dt=args.dt, escape_radius=args.escape_radius)

    run(
        config_name=args.config_name,
        x_param=args.x_param,
        y_param=args.y_param,
        window=window,
        stability=stability,
        save=args.save,
        plot=args.plot,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
