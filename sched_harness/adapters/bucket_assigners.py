"""Bucket-assignment adapters.

- `NullBucketAssigner`: no bucket scheduler present; every worker stays in
  the host's default class.
- `SyscallBucketAssigner`: a kernel exposing `set_bucket` as a raw syscall.
- `CgroupBucketAssigner`: Linux cgroup v2, one child group per bucket with
  equal `cpu.weight`, which gives each bucket an equal aggregate share.
- `PinnedBucketAssigner`: wraps another assigner and pins the caller to one
  CPU once it is in its bucket, so every worker contends for the same core.
"""

from __future__ import annotations

import ctypes
import os
from pathlib import Path
from typing import Callable, Iterable

from sched_harness.constants import (
    ASSIGNER_CGROUP,
    ASSIGNER_NAMES,
    ASSIGNER_NONE,
    ASSIGNER_SYSCALL,
    DEFAULT_CGROUP_PREFIX,
    DEFAULT_CGROUP_ROOT,
)
from sched_harness.ports.bucket import BucketAssigner


class NullBucketAssigner(BucketAssigner):
    """Leaves the caller where it is."""

    def assign(self, bucket: int) -> None:
        return None


class SyscallBucketAssigner(BucketAssigner):
    """Calls `syscall(syscall_nr, bucket)` through libc."""

    __slots__ = ("_syscall_nr", "_libc")

    def __init__(self, syscall_nr: int, libc: object | None = None) -> None:
        if syscall_nr < 0:
            raise ValueError("syscall_nr must be >= 0")
        self._syscall_nr = syscall_nr
        self._libc = libc

    @property
    def syscall_nr(self) -> int:
        return self._syscall_nr

    def assign(self, bucket: int) -> None:
        if self._libc is None:
            self._libc = ctypes.CDLL(None, use_errno=True)
        ret = self._libc.syscall(self._syscall_nr, ctypes.c_long(bucket))
        if ret == -1:
            err = ctypes.get_errno()
            raise OSError(err, f"set_bucket({bucket}) failed: {os.strerror(err)}")


class CgroupBucketAssigner(BucketAssigner):
    """Moves the caller into `<root>/<prefix><bucket>`."""

    __slots__ = ("_root", "_prefix", "_pid_provider")

    def __init__(
        self,
        root: str | Path = DEFAULT_CGROUP_ROOT,
        prefix: str = DEFAULT_CGROUP_PREFIX,
        pid_provider: Callable[[], int] = os.getpid,
    ) -> None:
        self._root = Path(root)
        self._prefix = prefix
        self._pid_provider = pid_provider

    @property
    def root(self) -> Path:
        return self._root

    def bucket_path(self, bucket: int) -> Path:
        return self._root / f"{self._prefix}{bucket}"

    def prepare(self, buckets: Iterable[int], weight: int = 100) -> None:
        """Create one group per bucket, all with the same cpu.weight.

        Needs write access to the cgroup hierarchy (usually root). Raises
        OSError when the hierarchy cannot be set up.
        """
        self._root.mkdir(parents=True, exist_ok=True)
        subtree = self._root / "cgroup.subtree_control"
        if subtree.exists():
            subtree.write_text("+cpu\n")
        for bucket in sorted(set(buckets)):
            path = self.bucket_path(bucket)
            path.mkdir(exist_ok=True)
            weight_file = path / "cpu.weight"
            if weight_file.exists():
                weight_file.write_text(f"{weight}\n")

    def assign(self, bucket: int) -> None:
        procs = self.bucket_path(bucket) / "cgroup.procs"
        procs.write_text(f"{self._pid_provider()}\n")


class PinnedBucketAssigner(BucketAssigner):
    """Binds through `inner`, then restricts the caller to a single CPU.

    Pinning follows the bucket change because moving between cgroups can
    reset the affinity mask to the new group's cpuset.
    """

    __slots__ = ("_inner", "_cpu", "_setaffinity")

    def __init__(
        self,
        inner: BucketAssigner,
        cpu: int,
        setaffinity: Callable[[int, set[int]], None] | None = None,
    ) -> None:
        if cpu < 0:
            raise ValueError("cpu must be >= 0")
        self._inner = inner
        self._cpu = cpu
        self._setaffinity = setaffinity if setaffinity is not None else os.sched_setaffinity

    @property
    def cpu(self) -> int:
        return self._cpu

    @property
    def inner(self) -> BucketAssigner:
        return self._inner

    def assign(self, bucket: int) -> None:
        self._inner.assign(bucket)
        self._setaffinity(0, {self._cpu})


def create_bucket_assigner(
    name: str,
    syscall_nr: int | None = None,
    cgroup_root: str = DEFAULT_CGROUP_ROOT,
    cgroup_prefix: str = DEFAULT_CGROUP_PREFIX,
) -> BucketAssigner:
    """Build the assigner selected by name (see ASSIGNER_NAMES)."""
    if name == ASSIGNER_NONE:
        return NullBucketAssigner()
    if name == ASSIGNER_SYSCALL:
        if syscall_nr is None:
            raise ValueError("the syscall assigner needs a syscall number")
        return SyscallBucketAssigner(syscall_nr)
    if name == ASSIGNER_CGROUP:
        return CgroupBucketAssigner(root=cgroup_root, prefix=cgroup_prefix)
    raise ValueError(f"Unknown bucket assigner {name!r}; valid: {', '.join(ASSIGNER_NAMES)}")
