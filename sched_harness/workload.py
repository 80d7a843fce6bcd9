"""
Calibrated CPU-bound workload.

`work(n)` performs exactly `n` steps of a multiply-and-wrap recurrence. The
accumulator is masked to 64 bits so each step costs the same, which keeps the
elapsed time linear in `n`. The result is returned only so the loop has an
observable value; callers discard it.
"""

from __future__ import annotations

import time
from typing import Callable

from .constants import CALIBRATION_SAMPLE_ITERS, WORK_MASK, WORK_MULTIPLIER


def work(num_iters: int) -> int:
    """Run `num_iters` steps of the recurrence and return the accumulator."""
    if num_iters < 0:
        raise ValueError("num_iters must be >= 0")
    a = 1
    for _ in range(num_iters):
        a = (a * WORK_MULTIPLIER) & WORK_MASK
    return a


def measure_work(
    num_iters: int,
    clock: Callable[[], float] = time.perf_counter,
) -> float:
    """Return the elapsed seconds of a single `work(num_iters)` call."""
    start = clock()
    work(num_iters)
    return clock() - start


def iterations_per_second(
    sample_iters: int = CALIBRATION_SAMPLE_ITERS,
    clock: Callable[[], float] = time.perf_counter,
) -> float:
    """Estimate workload throughput on this host."""
    if sample_iters <= 0:
        raise ValueError("sample_iters must be > 0")
    elapsed = measure_work(sample_iters, clock=clock)
    if elapsed <= 0:
        raise ValueError("clock did not advance while measuring work")
    return sample_iters / elapsed


def iterations_for_seconds(seconds: float, rate: float) -> int:
    """Convert a target duration into an iteration count at `rate` iter/s."""
    if seconds <= 0:
        raise ValueError("seconds must be > 0")
    if rate <= 0:
        raise ValueError("rate must be > 0")
    return max(1, int(round(seconds * rate)))
