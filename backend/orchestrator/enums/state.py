"""
Authoritative session state enumeration.

Rules:
- This enum defines ONLY the control-plane states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class State(str, Enum):
    """
    High-level control states for a single voice session.

    These states represent orchestration intent, NOT provider connection
    status and NOT adapter lifecycles.

    IDLE:
        Not listening and not muted. The always-listening check may
        bring the session back to LISTENING.

    LISTENING:
        One recognition run and one audio meter are live.

    MUTED:
        Caller muted the session. No listening run may start.
    """

    IDLE = "IDLE"
    LISTENING = "LISTENING"
    MUTED = "MUTED"
