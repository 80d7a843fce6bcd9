"""
Deterministic stand-in for a bucket scheduler.

`SimulatedScheduler` plays three roles at once so the real orchestrator can
run against a scheduler with a known policy:

- process host: `spawn()` runs the child body in-process and returns a
  `SimulatedProcess` handle; `wait_any()` hands back terminations in the
  order the simulation produced them,
- bucket assigner: `assign()` records the bucket of the context being spawned,
- worker runner: `run()` records the context's CPU demand instead of burning it.

Time is virtual and counted in workload iterations on a single CPU. Under the
`bucket` policy every bucket with runnable work gets `weight` quanta per round
and its workers take turns within those quanta, so each bucket receives an
equal (or weighted) aggregate share no matter how many workers it holds.
The `process` policy ignores buckets and round-robins over all workers.
"""

from __future__ import annotations

import errno
import heapq
import sys
import traceback
from collections import deque
from dataclasses import dataclass, field

from sched_harness.constants import (
    DEFAULT_SIM_QUANTUM_ITERS,
    SIM_POLICIES,
    SIM_POLICY_BUCKET,
)
from sched_harness.ports.bucket import BucketAssigner
from sched_harness.ports.process_host import ChildMain, ProcessHost

from .events import Event
from .stats import SimulationStats

# Bucket used for contexts that never called assign().
UNASSIGNED_BUCKET = 0


@dataclass(eq=False)
class SimulatedProcess:
    """Handle for one simulated context; hashed by identity."""

    context_id: int
    bucket: int | None = None
    demand: int | None = None
    remaining: int = 0
    exit_status: int = 0
    finished_at: int | None = None
    # Ordered record of port calls made by the child body.
    journal: list[str] = field(default_factory=list)

    @property
    def effective_bucket(self) -> int:
        return UNASSIGNED_BUCKET if self.bucket is None else self.bucket

    def __repr__(self) -> str:
        return (
            f"SimulatedProcess(ctx={self.context_id}, bucket={self.bucket}, "
            f"demand={self.demand}, finished_at={self.finished_at})"
        )


class SimulatedScheduler(ProcessHost, BucketAssigner):
    """Single-CPU round-robin bucket scheduler in virtual time."""

    __slots__ = (
        "policy",
        "quantum",
        "bucket_weights",
        "stats",
        "clock",
        "contexts",
        "_current",
        "_unsimulated",
        "_exits",
        "_seq",
    )

    def __init__(
        self,
        policy: str = SIM_POLICY_BUCKET,
        quantum: int = DEFAULT_SIM_QUANTUM_ITERS,
        bucket_weights: dict[int, int] | None = None,
        stats: SimulationStats | None = None,
    ) -> None:
        if policy not in SIM_POLICIES:
            raise ValueError(f"Unknown policy {policy!r}; valid: {', '.join(SIM_POLICIES)}")
        if quantum <= 0:
            raise ValueError("quantum must be > 0")
        weights = dict(bucket_weights or {})
        if any(w <= 0 for w in weights.values()):
            raise ValueError("bucket weights must be > 0")

        self.policy = policy
        self.quantum = quantum
        self.bucket_weights = weights
        self.stats = stats if stats is not None else SimulationStats()
        self.clock: int = 0
        self.contexts: list[SimulatedProcess] = []
        self._current: SimulatedProcess | None = None
        self._unsimulated: list[SimulatedProcess] = []
        self._exits: list[Event] = []
        self._seq: int = 0

    # -- ProcessHost --------------------------------------------------------

    def spawn(self, child_main: ChildMain) -> SimulatedProcess:
        ctx = SimulatedProcess(context_id=len(self.contexts))
        self.contexts.append(ctx)
        self._current = ctx
        try:
            child_main()
        except Exception:
            # Same outcome as a forked child dying: a non-zero exit status.
            traceback.print_exc()
            sys.stderr.flush()
            ctx.exit_status = 1
        finally:
            self._current = None
        self._unsimulated.append(ctx)
        return ctx

    def wait_any(self) -> tuple[SimulatedProcess, int]:
        if self._unsimulated:
            batch, self._unsimulated = self._unsimulated, []
            self._simulate(batch)
        if not self._exits:
            raise ChildProcessError(errno.ECHILD, "No child processes")
        event = heapq.heappop(self._exits)
        ctx = self.contexts[event.context_id]
        return ctx, event.exit_status

    def terminate(self, ctx: SimulatedProcess) -> None:
        """Drop an unreaped context so `wait_any()` never reports it."""
        if ctx in self._unsimulated:
            self._unsimulated.remove(ctx)
            return
        remaining = [e for e in self._exits if e.context_id != ctx.context_id]
        if len(remaining) != len(self._exits):
            self._exits = remaining
            heapq.heapify(self._exits)

    # -- BucketAssigner -----------------------------------------------------

    def assign(self, bucket: int) -> None:
        ctx = self._require_current("assign")
        ctx.bucket = bucket
        ctx.journal.append(f"assign:{bucket}")

    # -- Worker runner ------------------------------------------------------

    def run(self, num_iters: int) -> None:
        """Record the calling context's CPU demand."""
        if num_iters < 0:
            raise ValueError("num_iters must be >= 0")
        ctx = self._require_current("run")
        ctx.demand = num_iters
        ctx.remaining = num_iters
        ctx.journal.append(f"run:{num_iters}")

    # -- Simulation ---------------------------------------------------------

    def _require_current(self, op: str) -> SimulatedProcess:
        if self._current is None:
            raise RuntimeError(f"{op}() called outside a spawned context")
        return self._current

    def _simulate(self, batch: list[SimulatedProcess]) -> None:
        """Run a batch of contexts to completion, starting at the current clock."""
        self.stats.begin_batch()
        runnable: list[SimulatedProcess] = []
        for ctx in batch:
            if ctx.exit_status != 0 or not ctx.remaining:
                self._exit(ctx)
                continue
            self.stats.register_worker(ctx.context_id, ctx.effective_bucket, ctx.remaining)
            runnable.append(ctx)

        if self.policy == SIM_POLICY_BUCKET:
            self._run_bucket_rounds(runnable)
        else:
            self._run_process_rounds(runnable)

    def _run_bucket_rounds(self, runnable: list[SimulatedProcess]) -> None:
        queues: dict[int, deque[SimulatedProcess]] = {}
        for ctx in runnable:
            queues.setdefault(ctx.effective_bucket, deque()).append(ctx)

        while queues:
            for bucket in list(queues):
                queue = queues[bucket]
                for _ in range(self.bucket_weights.get(bucket, 1)):
                    if not queue:
                        break
                    self._run_slice(queue)
                if not queue:
                    del queues[bucket]

    def _run_process_rounds(self, runnable: list[SimulatedProcess]) -> None:
        queue = deque(runnable)
        while queue:
            self._run_slice(queue)

    def _run_slice(self, queue: deque[SimulatedProcess]) -> None:
        """Give the head of `queue` one quantum; requeue it at the tail if unfinished."""
        ctx = queue.popleft()
        used = min(self.quantum, ctx.remaining)
        ctx.remaining -= used
        self.clock += used
        self.stats.record_slice(ctx.context_id, used)
        if ctx.remaining:
            queue.append(ctx)
        else:
            self._exit(ctx)

    def _exit(self, ctx: SimulatedProcess) -> None:
        ctx.finished_at = self.clock
        self.stats.record_exit(ctx.context_id, self.clock)
        heapq.heappush(self._exits, Event(
            timestamp=self.clock,
            _seq=self._seq,
            context_id=ctx.context_id,
            exit_status=ctx.exit_status,
        ))
        self._seq += 1
