"""Energy drift and frame-rate determinism check (thin CLI glue).

Usage:
  python scripts/check_drift.py default --frame-dt 0.45 --frames 2000
  python scripts/check_drift.py default --frame-dt 0.15 --frames 100 --compare-dt 0.30

Drives a live `Simulation` with a constant frame increment and reports the energy
before and after. With --compare-dt, a second simulation covers the same total
time in increments of that size and the final states are compared.

Policy:
- No numerics here: no RHS/integrators/accumulators.
- Orchestration only.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

# Allow running directly from a src-layout repo without installation.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import numpy as np

from orbitsweep.configurations import load_configuration
from orbitsweep.simulate import Simulation, simulate_fixed

log = logging.getLogger("check_drift")


def _parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Check energy drift and slicing determinism")
    p.add_argument("config_name", nargs="?", default="default", help="Configuration key (JSON filename stem)")
    p.add_argument("--frame-dt", type=float, default=0.45, help="Visual time per frame (default: 0.45)")
    p.add_argument("--frames", type=int, default=2000, help="Number of frames (default: 2000)")
    p.add_argument("--fixed-step", type=float, default=0.01, help="Physics sub-step (default: 0.01)")
    p.add_argument("--compare-dt", type=float, default=None, help="Second frame increment covering the same total time")
    p.add_argument("--plot", type=str, default=None, help="Save an energy drift plot to this PNG path")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def run(config_name: str, frame_dt: float, frames: int, fixed_step: float = 0.01, compare_dt=None, plot=None) -> float:
    named = load_configuration(config_name)
    sim = Simulation(named.bodies, params=named.params, fixed_step=fixed_step)

    e0 = sim.total_energy()
    print(f"Initial Energy: {e0:.2f}")
    for _ in range(frames):
        sim.advance(frame_dt)
    e1 = sim.total_energy()
    print(f"Final Energy: {e1:.2f}")
    print(f"Energy Drift: {abs(e1 - e0):.2f} over {sim.steps_taken} sub-steps")

    if compare_dt is not None:
        total = frames * frame_dt
        other_frames = int(round(total / compare_dt))
        if not np.isclose(other_frames * compare_dt, total):
            log.warning("--compare-dt %.6g does not divide the total time %.6g evenly", compare_dt, total)
        other = Simulation(named.bodies, params=named.params, fixed_step=fixed_step)
        for _ in range(other_frames):
            other.advance(compare_dt)

        y_a = sim.current_state().to_flat()
        y_b = other.current_state().to_flat()
        diff = float(np.max(np.abs(y_a - y_b)))
        print(f"Sub-steps: {sim.steps_taken} vs {other.steps_taken}")
        print(f"Max state difference: {diff:.4e}")
        print("SUCCESS: Determinism Confirmed" if diff < 1e-5 else "FAILURE: Physics diverge at different speeds")

    if plot is not None:
        from orbitsweep.visualize import plot_energy_drift, save_figure, use_headless_backend

        use_headless_backend()
        result = simulate_fixed(named.bodies, frames * frame_dt, h=fixed_step, params=named.params, record_every=10)
        print(f"Saved: {save_figure(plot_energy_drift(result), plot)}")

    return e1 - e0


def main(argv=None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    run(
        config_name=args.config_name,
        frame_dt=args.frame_dt,
        frames=args.frames,
        fixed_step=args.fixed_step,
        compare_dt=args.compare_dt,
        plot=args.plot,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
