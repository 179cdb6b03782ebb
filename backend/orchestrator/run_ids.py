"""
Generation counters for the two runs a session can have in flight.

The reducer bumps a counter whenever it starts a new run; events carry
the counter they were started under and stale ones are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RunIds:
    """
    Latest run per service. 0 means nothing has started yet; values only grow.

    recognition:
        Bumped on every engine start, auto-restarts included.
    speech:
        Bumped on every accepted speak(); only this run's completion
        may clear the speaking flag.
    """

    recognition: int = 0
    speech: int = 0
