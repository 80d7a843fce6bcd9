"""Turns a completion order into an OK/WRONG verdict."""

from __future__ import annotations

from .errors import IncompleteRecordError
from .trial import CompletionRecord, Trial, Verdict


def evaluate(trial: Trial, record: CompletionRecord) -> Verdict:
    """Apply the trial's expected-order predicate to a finished record.

    Scheduling behaviour is measured once; a failing predicate is a verdict,
    never a reason to retry.
    """
    if not record.is_complete:
        raise IncompleteRecordError(
            f"{trial.label}: only {len(record.order)} of "
            f"{record.worker_count} workers reaped"
        )
    order = tuple(record.order)
    return Verdict(
        label=trial.label,
        passed=trial.expectation(order),
        order=order,
        expectation=trial.expectation.describe(),
    )
