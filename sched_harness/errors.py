"""Harness-fatal errors.

These mean the harness lost its grip on the host (or has a bug); a trial that
merely finishes in the wrong order is reported as a failed verdict instead.
"""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for errors that abort the whole trial run."""


class SpawnError(HarnessError):
    """The process host could not create a worker context."""


class ReapError(HarnessError):
    """Waiting for a worker to terminate failed."""


class StrayWorkerError(HarnessError, AssertionError):
    """A reaped handle does not map to exactly one pending worker."""


class IncompleteRecordError(HarnessError):
    """A verdict was requested before every worker was reaped."""
