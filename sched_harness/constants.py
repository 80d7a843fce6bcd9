"""
Constants for the bucket fairness trials.

The experiment shape is fixed: one heavy worker alone in bucket 1 and four
light workers sharing bucket 2.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Workload sizing
# ---------------------------------------------------------------------------
# Accumulator width. Wrapping keeps every step constant-cost.
WORK_MASK: int = (1 << 64) - 1
WORK_MULTIPLIER: int = 3

DEFAULT_BASE_NUM_ITERS: int = 2_000_000
DEFAULT_CALIBRATION_ITERS: int = 2_000
DEFAULT_SETTLE_SECONDS: float = 1.0

# Sample size used when estimating iterations per second.
CALIBRATION_SAMPLE_ITERS: int = 200_000

# ---------------------------------------------------------------------------
# Trial shape
# ---------------------------------------------------------------------------
NUM_JOBS: int = 5
HEAVY_WORKER: int = 0
HEAVY_BUCKET: int = 1
LIGHT_BUCKET: int = 2

# Subtest 1: heavy worker gets 15x base, light workers base/2 each.
SUBTEST1_HEAVY_FACTOR: int = 15
SUBTEST1_LIGHT_DIVISOR: int = 2
# Subtest 2: heavy worker gets 3x base, light workers 2x base each.
SUBTEST2_HEAVY_FACTOR: int = 3
SUBTEST2_LIGHT_FACTOR: int = 2

# ---------------------------------------------------------------------------
# Bucket assigners
# ---------------------------------------------------------------------------
ASSIGNER_NONE: str = "none"
ASSIGNER_SYSCALL: str = "syscall"
ASSIGNER_CGROUP: str = "cgroup"
ASSIGNER_NAMES: tuple[str, ...] = (ASSIGNER_NONE, ASSIGNER_SYSCALL, ASSIGNER_CGROUP)

DEFAULT_CGROUP_ROOT: str = "/sys/fs/cgroup/sched_harness"
DEFAULT_CGROUP_PREFIX: str = "bucket"

# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------
SIM_POLICY_BUCKET: str = "bucket"
SIM_POLICY_PROCESS: str = "process"
SIM_POLICIES: tuple[str, ...] = (SIM_POLICY_BUCKET, SIM_POLICY_PROCESS)
DEFAULT_SIM_QUANTUM_ITERS: int = 10_000


def worker_label(index: int) -> str:
    """Single-letter progress label: 0 -> 'A', 1 -> 'B', ..."""
    if 0 <= index < 26:
        return chr(ord("A") + index)
    return str(index)
