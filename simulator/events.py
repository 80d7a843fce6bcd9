"""
Termination events produced by the simulated scheduler.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(order=True)
class Event:
    """A worker termination, ordered by virtual time then by insertion."""

    timestamp: int  # iterations executed on the simulated CPU so far
    _seq: int = field(compare=True, default=0)
    context_id: int = field(compare=False, default=-1)
    exit_status: int = field(compare=False, default=0)

    def __repr__(self) -> str:
        return (
            f"Event(exit, t={self.timestamp}, "
            f"ctx={self.context_id}, status={self.exit_status})"
        )
