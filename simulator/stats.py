"""
CPU accounting and reporting for the simulated scheduler.

One `SimulationStats` lives as long as its scheduler. Every trial the
scheduler simulates is a batch, and bucket totals add up across batches, so
a multi-trial run reports cumulative figures with each worker tagged by the
batch it ran in.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TextIO


@dataclass
class WorkerStats:
    """Per-context accounting."""

    context_id: int = 0
    batch: int = 0
    bucket: int = 0
    demand: int = 0
    cpu_iters: int = 0
    slices: int = 0
    finished_at: int | None = None


@dataclass
class BucketStats:
    """Per-bucket aggregate, summed over every batch."""

    bucket: int = 0
    worker_count: int = 0
    cpu_iters: int = 0
    slices: int = 0


class SimulationStats:
    """Collects slice-level accounting from a `SimulatedScheduler`."""

    __slots__ = ("worker_stats", "bucket_stats", "total_slices", "clock", "batches")

    def __init__(self) -> None:
        self.worker_stats: dict[int, WorkerStats] = {}
        self.bucket_stats: dict[int, BucketStats] = {}
        self.total_slices: int = 0
        self.clock: int = 0
        self.batches: int = 0

    def begin_batch(self) -> None:
        """Start accounting for the next trial's workers."""
        self.batches += 1

    def register_worker(self, context_id: int, bucket: int, demand: int) -> None:
        self.worker_stats[context_id] = WorkerStats(
            context_id=context_id, batch=self.batches, bucket=bucket, demand=demand
        )
        bs = self.bucket_stats.setdefault(bucket, BucketStats(bucket=bucket))
        bs.worker_count += 1

    def record_slice(self, context_id: int, iters: int) -> None:
        ws = self.worker_stats[context_id]
        ws.cpu_iters += iters
        ws.slices += 1
        bs = self.bucket_stats[ws.bucket]
        bs.cpu_iters += iters
        bs.slices += 1
        self.total_slices += 1
        self.clock += iters

    def record_exit(self, context_id: int, timestamp: int) -> None:
        ws = self.worker_stats.get(context_id)
        if ws is not None:
            ws.finished_at = timestamp

    def print_summary(self, out: TextIO | None = None) -> None:
        """Print a formatted summary of simulated CPU consumption."""
        out = out if out is not None else sys.stdout
        total = self.clock

        print("=" * 64, file=out)
        print("Simulated Bucket Scheduler", file=out)
        print("=" * 64, file=out)
        print(
            f"Virtual time: {total} iters | Slices: {self.total_slices} | "
            f"Batches: {self.batches}",
            file=out,
        )
        print(file=out)

        label = "cumulative over all batches" if self.batches > 1 else "single batch"
        print(f"Per-Bucket Summary ({label}):", file=out)
        print(f"  {'Bucket':>6} {'Workers':>7} {'CPU(iters)':>12} {'CPU%':>6}", file=out)
        print("  " + "-" * 34, file=out)
        for bucket in sorted(self.bucket_stats):
            bs = self.bucket_stats[bucket]
            pct = (bs.cpu_iters / total * 100) if total else 0.0
            print(
                f"  {bs.bucket:>6} {bs.worker_count:>7} {bs.cpu_iters:>12} {pct:>5.1f}%",
                file=out,
            )
        print(file=out)

        print("Per-Worker Detail:", file=out)
        print(
            f"  {'Batch':>5} {'Ctx':>4} {'Bucket':>6} {'Demand':>12} {'Slices':>7} "
            f"{'Finished':>12}",
            file=out,
        )
        print("  " + "-" * 51, file=out)
        for ws in sorted(
            self.worker_stats.values(),
            key=lambda w: (w.batch, w.finished_at is None, w.finished_at or 0, w.context_id),
        ):
            finished = "-" if ws.finished_at is None else str(ws.finished_at)
            print(
                f"  {ws.batch:>5} {ws.context_id:>4} {ws.bucket:>6} {ws.demand:>12} "
                f"{ws.slices:>7} {finished:>12}",
                file=out,
            )
        print("=" * 64, file=out)
