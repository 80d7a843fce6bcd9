"""fork/_exit/wait process host."""

from __future__ import annotations

import os
import signal
import sys
import traceback

from sched_harness.ports.process_host import ChildMain, ProcessHost


class PosixProcessHost(ProcessHost):
    """Runs each worker in a forked child and reaps with `os.wait()`.

    Handles are child pids. A pid cannot be recycled until its child has been
    reaped, so it is a stable key for the lifetime of a trial.
    """

    def spawn(self, child_main: ChildMain) -> int:
        # Anything still buffered would otherwise be written once per child.
        sys.stdout.flush()
        sys.stderr.flush()

        pid = os.fork()
        if pid == 0:
            self._run_child(child_main)
        return pid

    def wait_any(self) -> tuple[int, int]:
        pid, status = os.wait()
        return pid, os.waitstatus_to_exitcode(status)

    def terminate(self, pid: int) -> None:
        try:
            os.kill(pid, signal.SIGKILL)
            os.waitpid(pid, 0)
        except (ProcessLookupError, ChildProcessError):
            pass

    def _run_child(self, child_main: ChildMain) -> None:
        """Never returns: the child must not unwind into the parent's loop."""
        status = 0
        try:
            child_main()
        except BaseException:
            traceback.print_exc()
            sys.stderr.flush()
            status = 1
        os._exit(status)
