"""
Trial driver: builds the standard trial sequence, runs it through an
orchestrator and prints one verdict line per trial.

Verdicts are informational. A WRONG verdict is printed and counted but never
turns into an exception or a failing exit status; only harness errors do.
"""

from __future__ import annotations

import sys
from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence, TextIO

from .constants import (
    HEAVY_BUCKET,
    HEAVY_WORKER,
    LIGHT_BUCKET,
    NUM_JOBS,
    SUBTEST1_HEAVY_FACTOR,
    SUBTEST1_LIGHT_DIVISOR,
    SUBTEST2_HEAVY_FACTOR,
    SUBTEST2_LIGHT_FACTOR,
    worker_label,
)
from .orchestrator import TrialOrchestrator
from .trial import Expectation, FinishesFirst, FinishesLast, Trial, Verdict, WorkerSpec
from .verdict import evaluate


def build_trial(
    label: str,
    heavy_iters: int,
    light_iters: int,
    expectation: Expectation,
    num_jobs: int = NUM_JOBS,
) -> Trial:
    """Worker 0 alone in the heavy bucket, the rest sharing the light bucket."""
    if num_jobs < 2:
        raise ValueError("num_jobs must be >= 2")
    workers = tuple(
        WorkerSpec(
            index=i,
            bucket=HEAVY_BUCKET if i == HEAVY_WORKER else LIGHT_BUCKET,
            num_iters=heavy_iters if i == HEAVY_WORKER else light_iters,
        )
        for i in range(num_jobs)
    )
    return Trial(label=label, workers=workers, expectation=expectation)


def standard_trials(base_iters: int) -> list[Trial]:
    """The two subtests straddling the equal-share-per-bucket threshold.

    With equal bucket shares the heavy worker runs four times faster than
    each light worker, so:
      - at 15x vs 0.5x it still needs far more CPU and must finish last;
      - at 3x vs 2x it is done before any light worker and must finish first.
    """
    if base_iters <= 0:
        raise ValueError("base_iters must be > 0")
    return [
        build_trial(
            "Subtest 1",
            heavy_iters=base_iters * SUBTEST1_HEAVY_FACTOR,
            light_iters=base_iters // SUBTEST1_LIGHT_DIVISOR,
            expectation=FinishesLast(HEAVY_WORKER),
        ),
        build_trial(
            "Subtest 2",
            heavy_iters=base_iters * SUBTEST2_HEAVY_FACTOR,
            light_iters=base_iters * SUBTEST2_LIGHT_FACTOR,
            expectation=FinishesFirst(HEAVY_WORKER),
        ),
    ]


@dataclass
class TrialReport:
    """Aggregate of verdicts over one or more rounds."""

    verdicts: list[Verdict] = field(default_factory=list)

    def add(self, verdict: Verdict) -> None:
        self.verdicts.append(verdict)

    @property
    def total(self) -> int:
        return len(self.verdicts)

    @property
    def passed(self) -> int:
        return sum(1 for v in self.verdicts if v.passed)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def all_passed(self) -> bool:
        return self.failed == 0

    def passed_by_label(self) -> dict[str, tuple[int, int]]:
        """label -> (passed, total), in first-seen order."""
        totals: Counter[str] = Counter()
        passes: Counter[str] = Counter()
        for v in self.verdicts:
            totals[v.label] += 1
            if v.passed:
                passes[v.label] += 1
        return {label: (passes[label], totals[label]) for label in totals}

    def print_summary(self, out: TextIO | None = None) -> None:
        out = out if out is not None else sys.stdout
        print(f"Summary: {self.passed}/{self.total} trials OK", file=out)
        for label, (ok, total) in self.passed_by_label().items():
            print(f"  {label:<12} {ok}/{total}", file=out)


def run_trials(
    orchestrator: TrialOrchestrator,
    trials: Sequence[Trial],
    out: TextIO | None = None,
    rounds: int = 1,
) -> TrialReport:
    """Run every trial `rounds` times, printing a verdict line per trial."""
    if rounds < 1:
        raise ValueError("rounds must be >= 1")
    out = out if out is not None else sys.stdout

    report = TrialReport()
    for round_no in range(1, rounds + 1):
        if rounds > 1:
            print(f"Round {round_no}/{rounds}", file=out, flush=True)
        for trial in trials:
            out.write(f"{trial.label}: ")
            out.flush()
            record = orchestrator.run(trial)
            verdict = evaluate(trial, record)
            print(f" => {verdict.status}", file=out, flush=True)
            for index in record.failed_workers:
                print(
                    f"Warning: worker {worker_label(index)} exited with status "
                    f"{record.exit_statuses[index]}",
                    file=sys.stderr,
                )
            report.add(verdict)

    if rounds > 1:
        report.print_summary(out)
    return report
