"""Process creation and reaping port."""

from __future__ import annotations

from typing import Callable, Hashable, Protocol

ChildMain = Callable[[], None]


class ProcessHost(Protocol):
    """Creates independently scheduled contexts and reports their termination."""

    def spawn(self, child_main: ChildMain) -> Hashable:
        """Start a new context running `child_main` and return its handle.

        The handle is the identity the parent uses to map terminations back
        to workers; it must stay unique while the context is unreaped.
        """

    def wait_any(self) -> tuple[Hashable, int]:
        """Block until some spawned context terminates.

        Returns `(handle, exit_status)`. Raises `ChildProcessError` when no
        unreaped context is left and `OSError` on any other failure.
        """

    def terminate(self, handle: Hashable) -> None:
        """Kill an unreaped context and reap it, discarding its status.

        Used only when a trial is aborted. A context that is already gone is
        not an error; any other failure raises `OSError`.
        """
