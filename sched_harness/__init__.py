"""Completion-order trials for proportional-share bucket schedulers."""

from sched_harness.driver import TrialReport, build_trial, run_trials, standard_trials
from sched_harness.errors import (
    HarnessError,
    IncompleteRecordError,
    ReapError,
    SpawnError,
    StrayWorkerError,
)
from sched_harness.orchestrator import TrialOrchestrator
from sched_harness.trial import (
    CompletionRecord,
    FinishesFirst,
    FinishesLast,
    Trial,
    Verdict,
    WorkerSpec,
)
from sched_harness.verdict import evaluate
from sched_harness.worker import run_worker
from sched_harness.workload import work

__all__ = [
    "CompletionRecord",
    "FinishesFirst",
    "FinishesLast",
    "HarnessError",
    "IncompleteRecordError",
    "ReapError",
    "SpawnError",
    "StrayWorkerError",
    "Trial",
    "TrialOrchestrator",
    "TrialReport",
    "Verdict",
    "WorkerSpec",
    "build_trial",
    "evaluate",
    "run_trials",
    "run_worker",
    "standard_trials",
    "work",
]
