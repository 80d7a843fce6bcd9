"""Entry point executed by every spawned worker process."""

from __future__ import annotations

import os
import time
from typing import Callable

from .constants import DEFAULT_CALIBRATION_ITERS, DEFAULT_SETTLE_SECONDS
from .workload import work


def run_worker(
    num_iters: int,
    calibration_iters: int = DEFAULT_CALIBRATION_ITERS,
    settle_seconds: float = DEFAULT_SETTLE_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    exit_fn: Callable[[int], None] = os._exit,
) -> None:
    """Warm up, settle, run the real workload, then terminate.

    Must be called after the process has been bound to its bucket. The small
    warm-up run pulls the loop's code paths into the working set, and the
    settle sleep lines every sibling up to start the real workload at roughly
    the same wall-clock instant.

    `exit_fn` defaults to `os._exit`: interpreter shutdown (atexit handlers,
    buffer flushing, module teardown) is skipped on purpose, since it burns
    a variable amount of CPU after the measured work is done.
    """
    work(calibration_iters)
    sleep(settle_seconds)

    work(num_iters)
    exit_fn(0)
