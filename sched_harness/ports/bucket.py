"""Bucket-assignment port."""

from __future__ import annotations

from typing import Protocol


class BucketAssigner(Protocol):
    """Binds the calling execution context to a scheduling bucket.

    Called once, first thing in a freshly spawned worker. The binding lasts
    for the rest of the context's lifetime. Failures are not handled by the
    harness: an exception here terminates the worker with a non-zero status.
    """

    def assign(self, bucket: int) -> None:
        """Move the calling context into `bucket`."""
