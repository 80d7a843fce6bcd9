from __future__ import annotations

import unittest

from sched_harness.errors import IncompleteRecordError, StrayWorkerError
from sched_harness.trial import (
    CompletionRecord,
    FinishesFirst,
    FinishesLast,
    Trial,
    WorkerSpec,
)
from sched_harness.verdict import evaluate


def _trial(expectation, count: int = 3) -> Trial:
    return Trial(
        label="Subtest X",
        workers=tuple(WorkerSpec(index=i, bucket=1 if i == 0 else 2, num_iters=10) for i in range(count)),
        expectation=expectation,
    )


def _record(order: list[int], count: int = 3) -> CompletionRecord:
    record = CompletionRecord(worker_count=count)
    for index in order:
        record.append(index)
    return record


class ExpectationTests(unittest.TestCase):
    def test_finishes_first(self) -> None:
        self.assertTrue(FinishesFirst(0)([0, 2, 1]))
        self.assertFalse(FinishesFirst(0)([2, 0, 1]))
        self.assertFalse(FinishesFirst(0)([]))
        self.assertEqual(FinishesFirst(0).describe(), "A finishes first")

    def test_finishes_last(self) -> None:
        self.assertTrue(FinishesLast(0)([1, 2, 0]))
        self.assertFalse(FinishesLast(0)([0, 1, 2]))
        self.assertFalse(FinishesLast(0)([]))
        self.assertEqual(FinishesLast(2).describe(), "C finishes last")


class DataModelTests(unittest.TestCase):
    def test_worker_spec_validation(self) -> None:
        with self.assertRaises(ValueError):
            WorkerSpec(index=-1, bucket=1, num_iters=1)
        with self.assertRaises(ValueError):
            WorkerSpec(index=0, bucket=0, num_iters=1)
        with self.assertRaises(ValueError):
            WorkerSpec(index=0, bucket=1, num_iters=-5)

    def test_trial_requires_contiguous_indices(self) -> None:
        with self.assertRaises(ValueError):
            Trial(
                label="bad",
                workers=(WorkerSpec(0, 1, 1), WorkerSpec(2, 2, 1)),
                expectation=FinishesLast(0),
            )

    def test_record_rejects_duplicates_and_out_of_range(self) -> None:
        record = CompletionRecord(worker_count=2)
        record.append(1)
        with self.assertRaises(StrayWorkerError):
            record.append(1)
        with self.assertRaises(StrayWorkerError):
            record.append(2)
        self.assertFalse(record.is_complete)
        record.append(0)
        self.assertTrue(record.is_complete)
        self.assertEqual(record.format_order(), "B A")


class EvaluateTests(unittest.TestCase):
    def test_passing_verdict(self) -> None:
        verdict = evaluate(_trial(FinishesLast(0)), _record([2, 1, 0]))

        self.assertTrue(verdict.passed)
        self.assertEqual(verdict.status, "OK")
        self.assertEqual(verdict.label, "Subtest X")
        self.assertEqual(verdict.order, (2, 1, 0))
        self.assertEqual(verdict.expectation, "A finishes last")

    def test_failing_verdict_is_not_an_error(self) -> None:
        verdict = evaluate(_trial(FinishesFirst(0)), _record([1, 0, 2]))

        self.assertFalse(verdict.passed)
        self.assertEqual(verdict.status, "WRONG")

    def test_incomplete_record_rejected(self) -> None:
        with self.assertRaises(IncompleteRecordError):
            evaluate(_trial(FinishesLast(0)), _record([1, 2]))


if __name__ == "__main__":
    unittest.main()
