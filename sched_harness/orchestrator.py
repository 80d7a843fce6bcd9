"""
Trial orchestrator: spawn one process per worker, bind it to its bucket,
then reap the workers one by one and record the order they finish in.

The orchestrator imposes no ordering of its own. Whatever order the host
reports from `wait_any()` is, by definition, the scheduler's answer.
"""

from __future__ import annotations

import sys
from functools import partial
from typing import Callable, Hashable, TextIO

from .errors import HarnessError, ReapError, SpawnError, StrayWorkerError
from .ports.bucket import BucketAssigner
from .ports.process_host import ProcessHost
from .trial import CompletionRecord, Trial, WorkerSpec
from .worker import run_worker

WorkerRunner = Callable[[int], None]


class TrialOrchestrator:
    """Runs a single trial end to end.

    `runner` is what each child executes after bucket binding; in production
    it is `run_worker`, which terminates the child itself.
    """

    __slots__ = ("_host", "_assigner", "_runner", "_out")

    def __init__(
        self,
        host: ProcessHost,
        assigner: BucketAssigner,
        runner: WorkerRunner = run_worker,
        out: TextIO | None = None,
    ) -> None:
        self._host = host
        self._assigner = assigner
        self._runner = runner
        self._out = out

    def run(self, trial: Trial) -> CompletionRecord:
        # handle -> index for every worker spawned and not yet reaped.
        pending: dict[Hashable, int] = {}
        try:
            self._spawn_all(trial, pending)
            return self._reap_all(trial, pending)
        except HarnessError:
            self._abort(pending)
            raise

    def _child_main(self, spec: WorkerSpec) -> None:
        # Bind first so warm-up, settle and workload all run in the bucket.
        self._assigner.assign(spec.bucket)
        self._runner(spec.num_iters)

    def _spawn_all(self, trial: Trial, pending: dict[Hashable, int]) -> None:
        for spec in trial.workers:
            try:
                handle = self._host.spawn(partial(self._child_main, spec))
            except OSError as exc:
                raise SpawnError(
                    f"{trial.label}: could not spawn worker {spec.label}: {exc}"
                ) from exc
            if handle in pending:
                raise StrayWorkerError(
                    f"{trial.label}: host returned duplicate handle {handle!r}"
                )
            pending[handle] = spec.index

    def _reap_all(self, trial: Trial, pending: dict[Hashable, int]) -> CompletionRecord:
        record = CompletionRecord(worker_count=trial.worker_count)
        while not record.is_complete:
            try:
                handle, exit_status = self._host.wait_any()
            except OSError as exc:
                raise ReapError(
                    f"{trial.label}: wait failed after {len(record.order)} of "
                    f"{trial.worker_count} workers: {exc}"
                ) from exc

            index = pending.pop(handle, None)
            if index is None:
                raise StrayWorkerError(
                    f"{trial.label}: reaped unknown context {handle!r}"
                )
            record.append(index, exit_status)
            self._progress(trial.workers[index])
        return record

    def _abort(self, pending: dict[Hashable, int]) -> None:
        """Kill and reap the workers left behind by an aborted trial."""
        for handle in list(pending):
            try:
                self._host.terminate(handle)
            except OSError as exc:
                print(f"Warning: could not terminate {handle!r}: {exc}", file=sys.stderr)
            del pending[handle]

    def _progress(self, spec: WorkerSpec) -> None:
        out = self._out if self._out is not None else sys.stdout
        out.write(f"{spec.label} ")
        out.flush()
