"""Host adapters for the harness ports."""

from sched_harness.adapters.bucket_assigners import (
    CgroupBucketAssigner,
    NullBucketAssigner,
    PinnedBucketAssigner,
    SyscallBucketAssigner,
    create_bucket_assigner,
)
from sched_harness.adapters.posix_host import PosixProcessHost

__all__ = [
    "CgroupBucketAssigner",
    "NullBucketAssigner",
    "PinnedBucketAssigner",
    "PosixProcessHost",
    "SyscallBucketAssigner",
    "create_bucket_assigner",
]
