"""Capabilities the harness consumes from its environment."""

from sched_harness.ports.bucket import BucketAssigner
from sched_harness.ports.process_host import ChildMain, ProcessHost

__all__ = [
    "BucketAssigner",
    "ChildMain",
    "ProcessHost",
]
