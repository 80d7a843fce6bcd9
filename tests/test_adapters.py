from __future__ import annotations

import io
import os
import tempfile
import time
import unittest
from functools import partial
from pathlib import Path

from sched_harness.adapters import (
    CgroupBucketAssigner,
    NullBucketAssigner,
    PinnedBucketAssigner,
    PosixProcessHost,
    SyscallBucketAssigner,
    create_bucket_assigner,
)
from sched_harness.driver import build_trial
from sched_harness.orchestrator import TrialOrchestrator
from sched_harness.trial import FinishesFirst
from sched_harness.worker import run_worker


class FakeLibc:
    def __init__(self, ret: int = 0) -> None:
        self.ret = ret
        self.calls: list[tuple[int, int]] = []

    def syscall(self, nr: int, arg) -> int:
        self.calls.append((nr, arg.value))
        return self.ret


class BucketAssignerTests(unittest.TestCase):
    def test_null_assigner_is_noop(self) -> None:
        self.assertIsNone(NullBucketAssigner().assign(3))

    def test_syscall_assigner_passes_bucket(self) -> None:
        libc = FakeLibc()
        SyscallBucketAssigner(451, libc=libc).assign(2)
        self.assertEqual(libc.calls, [(451, 2)])

    def test_syscall_failure_raises_oserror(self) -> None:
        with self.assertRaises(OSError):
            SyscallBucketAssigner(451, libc=FakeLibc(ret=-1)).assign(2)

    def test_cgroup_assigner_writes_pid(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp) / "harness"
            assigner = CgroupBucketAssigner(root=root, prefix="b", pid_provider=lambda: 4242)
            assigner.prepare([2, 1, 2])

            self.assertTrue((root / "b1").is_dir())
            self.assertTrue((root / "b2").is_dir())

            assigner.assign(2)
            self.assertEqual((root / "b2" / "cgroup.procs").read_text(), "4242\n")

    def test_cgroup_prepare_sets_existing_weight_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "bucket1").mkdir()
            (root / "bucket1" / "cpu.weight").write_text("50\n")
            (root / "cgroup.subtree_control").write_text("")

            CgroupBucketAssigner(root=root).prepare([1], weight=200)

            self.assertEqual((root / "bucket1" / "cpu.weight").read_text(), "200\n")
            self.assertEqual((root / "cgroup.subtree_control").read_text(), "+cpu\n")

    def test_pinned_assigner_pins_after_binding(self) -> None:
        journal: list[tuple] = []

        class RecordingAssigner:
            def assign(self, bucket: int) -> None:
                journal.append(("assign", bucket))

        pinned = PinnedBucketAssigner(
            RecordingAssigner(),
            cpu=3,
            setaffinity=lambda pid, cpus: journal.append(("pin", pid, cpus)),
        )
        pinned.assign(2)

        self.assertEqual(journal, [("assign", 2), ("pin", 0, {3})])

    def test_pinned_assigner_skips_pin_when_binding_fails(self) -> None:
        pins: list[int] = []
        pinned = PinnedBucketAssigner(
            SyscallBucketAssigner(451, libc=FakeLibc(ret=-1)),
            cpu=0,
            setaffinity=lambda pid, cpus: pins.append(pid),
        )
        with self.assertRaises(OSError):
            pinned.assign(1)
        self.assertEqual(pins, [])

    def test_pinned_assigner_rejects_negative_cpu(self) -> None:
        with self.assertRaises(ValueError):
            PinnedBucketAssigner(NullBucketAssigner(), cpu=-1)

    def test_factory(self) -> None:
        self.assertIsInstance(create_bucket_assigner("none"), NullBucketAssigner)
        self.assertIsInstance(create_bucket_assigner("cgroup"), CgroupBucketAssigner)
        assigner = create_bucket_assigner("syscall", syscall_nr=7)
        self.assertIsInstance(assigner, SyscallBucketAssigner)
        self.assertEqual(assigner.syscall_nr, 7)
        with self.assertRaises(ValueError):
            create_bucket_assigner("syscall")
        with self.assertRaises(ValueError):
            create_bucket_assigner("magic")


@unittest.skipUnless(hasattr(os, "fork"), "requires os.fork")
class PosixProcessHostTests(unittest.TestCase):
    def test_spawn_and_reap_every_child(self) -> None:
        host = PosixProcessHost()
        pids = {host.spawn(lambda: None) for _ in range(3)}

        reaped = {}
        for _ in range(3):
            pid, status = host.wait_any()
            reaped[pid] = status

        self.assertEqual(set(reaped), pids)
        self.assertEqual(set(reaped.values()), {0})

    def test_child_exception_becomes_exit_status(self) -> None:
        def failing_child() -> None:
            devnull = os.open(os.devnull, os.O_WRONLY)
            os.dup2(devnull, 2)
            raise RuntimeError("boom")

        host = PosixProcessHost()
        pid = host.spawn(failing_child)
        self.assertEqual(host.wait_any(), (pid, 1))

    def test_explicit_exit_code_is_reported(self) -> None:
        host = PosixProcessHost()
        pid = host.spawn(partial(os._exit, 7))
        self.assertEqual(host.wait_any(), (pid, 7))

    def test_nothing_to_reap(self) -> None:
        with self.assertRaises(ChildProcessError):
            PosixProcessHost().wait_any()

    def test_terminate_kills_and_reaps_child(self) -> None:
        host = PosixProcessHost()
        pid = host.spawn(partial(time.sleep, 60))

        host.terminate(pid)

        with self.assertRaises(ChildProcessError):
            os.waitpid(pid, os.WNOHANG)

    def test_terminate_already_reaped_child_is_noop(self) -> None:
        host = PosixProcessHost()
        pid = host.spawn(lambda: None)
        host.wait_any()

        host.terminate(pid)

    def test_real_trial_produces_complete_record(self) -> None:
        out = io.StringIO()
        runner = partial(run_worker, calibration_iters=10, settle_seconds=0.0)
        orchestrator = TrialOrchestrator(PosixProcessHost(), NullBucketAssigner(), runner=runner, out=out)
        trial = build_trial("real", heavy_iters=2000, light_iters=1000, expectation=FinishesFirst(0))

        record = orchestrator.run(trial)

        self.assertEqual(sorted(record.order), [0, 1, 2, 3, 4])
        self.assertEqual(record.failed_workers, [])
        self.assertEqual(len(out.getvalue().split()), 5)


if __name__ == "__main__":
    unittest.main()
