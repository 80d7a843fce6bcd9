"""
Trial data model: worker specs, expected-order predicates, completion
records and verdicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence

from .constants import worker_label
from .errors import StrayWorkerError


@dataclass(frozen=True, slots=True)
class WorkerSpec:
    """One worker of a trial."""

    index: int
    bucket: int
    num_iters: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError("index must be >= 0")
        if self.bucket <= 0:
            raise ValueError("bucket must be > 0")
        if self.num_iters < 0:
            raise ValueError("num_iters must be >= 0")

    @property
    def label(self) -> str:
        return worker_label(self.index)


class Expectation(Protocol):
    """Predicate over a final completion order."""

    def __call__(self, order: Sequence[int]) -> bool:
        """Return True when the order satisfies the expectation."""

    def describe(self) -> str:
        """Human-readable form, e.g. 'A finishes last'."""


@dataclass(frozen=True, slots=True)
class FinishesFirst:
    index: int

    def __call__(self, order: Sequence[int]) -> bool:
        return bool(order) and order[0] == self.index

    def describe(self) -> str:
        return f"{worker_label(self.index)} finishes first"


@dataclass(frozen=True, slots=True)
class FinishesLast:
    index: int

    def __call__(self, order: Sequence[int]) -> bool:
        return bool(order) and order[-1] == self.index

    def describe(self) -> str:
        return f"{worker_label(self.index)} finishes last"


@dataclass(frozen=True, slots=True)
class Trial:
    """A worker set plus the order it is expected to finish in."""

    label: str
    workers: tuple[WorkerSpec, ...]
    expectation: Expectation

    def __post_init__(self) -> None:
        indices = [spec.index for spec in self.workers]
        if indices != list(range(len(indices))):
            raise ValueError(
                f"worker indices must be 0..{len(indices) - 1} in order, got {indices}"
            )

    @property
    def worker_count(self) -> int:
        return len(self.workers)


@dataclass(slots=True)
class CompletionRecord:
    """Logical worker indices in the order their processes were reaped."""

    worker_count: int
    order: list[int] = field(default_factory=list)
    exit_statuses: dict[int, int] = field(default_factory=dict)

    def append(self, index: int, exit_status: int = 0) -> None:
        if not 0 <= index < self.worker_count:
            raise StrayWorkerError(
                f"worker index {index} outside [0, {self.worker_count})"
            )
        if index in self.exit_statuses:
            raise StrayWorkerError(f"worker {worker_label(index)} reaped twice")
        self.order.append(index)
        self.exit_statuses[index] = exit_status

    @property
    def is_complete(self) -> bool:
        return len(self.order) == self.worker_count

    @property
    def failed_workers(self) -> list[int]:
        """Indices of workers that exited with a non-zero status."""
        return [index for index in self.order if self.exit_statuses[index] != 0]

    def format_order(self) -> str:
        return " ".join(worker_label(index) for index in self.order)


@dataclass(frozen=True, slots=True)
class Verdict:
    label: str
    passed: bool
    order: tuple[int, ...]
    expectation: str

    @property
    def status(self) -> str:
        return "OK" if self.passed else "WRONG"
