"""Fixed-timestep accumulator.

Converts variable "visual" time increments into a whole number of constant
physics sub-steps. Elapsed time is rounded to integer ticks (microseconds by
default) before it is accumulated, so the residual is exact integer arithmetic:
the number of sub-steps depends only on the sum of the rounded increments, not
on how that time was sliced into calls.

Example:
    30 calls of 0.1 s and 10 calls of 0.3 s both add 3_000_000 us and both run
    exactly 300 sub-steps of 0.01 s.
"""

from __future__ import annotations

import logging
import math
from typing import Callable

log = logging.getLogger(__name__)

IntegrateFn = Callable[[float], None]


def _round_half_up(x: float) -> int:
    # Exact halves go up (2.5 -> 3), not to the even neighbour.
    return int(math.floor(x + 0.5))


class FixedStepAccumulator:
    """Integer-tick residual accumulator driving a fixed-step integrate callback.

    Invariant: 0 <= residual_ticks < step_ticks between calls.
    """

    def __init__(self, fixed_step: float = 0.01, *, ticks_per_second: int = 1_000_000):
        if ticks_per_second <= 0:
            raise ValueError("ticks_per_second must be positive")
        step_ticks = _round_half_up(float(fixed_step) * ticks_per_second)
        if step_ticks <= 0:
            raise ValueError(f"fixed_step={fixed_step} rounds to zero ticks at {ticks_per_second} ticks/s")

        self.fixed_step = float(fixed_step)
        self.ticks_per_second = int(ticks_per_second)
        self.step_ticks = int(step_ticks)
        self._residual_ticks = 0
        self._steps_taken = 0

    @property
    def residual_ticks(self) -> int:
        return self._residual_ticks

    @property
    def residual(self) -> float:
        """Leftover time in seconds, always in [0, fixed_step)."""
        return self._residual_ticks / self.ticks_per_second

    @property
    def steps_taken(self) -> int:
        return self._steps_taken

    def to_ticks(self, dt: float) -> int:
        return _round_half_up(float(dt) * self.ticks_per_second)

    def advance(self, dt_visual: float, integrate: IntegrateFn) -> int:
        """Add `dt_visual` seconds and run every whole sub-step now due.

        There is no cap on the number of sub-steps; a very large increment runs a
        long (but finite) loop.

        Returns:
            Number of sub-steps executed by this call.
        """
        if dt_visual < 0:
            raise ValueError(f"dt_visual must be non-negative, got {dt_visual}")

        self._residual_ticks += self.to_ticks(dt_visual)
        n = 0
        while self._residual_ticks >= self.step_ticks:
            integrate(self.fixed_step)
            self._residual_ticks -= self.step_ticks
            n += 1

        self._steps_taken += n
        if n:
            log.debug("advanced %d sub-steps, residual=%d ticks", n, self._residual_ticks)
        return n

    def reset(self) -> None:
        self._residual_ticks = 0
        self._steps_taken = 0
