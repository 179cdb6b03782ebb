"""
Authoritative session state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from orchestrator.enums.state import State
from orchestrator.enums.tone import Tone
from orchestrator.run_ids import RunIds
from orchestrator.retry import RetryAttempt


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of all orchestrator-owned session state."""

    # ------------------------------------------------------------------
    # Configuration (fixed at construction)
    # ------------------------------------------------------------------
    wake_word: str
    tone: Tone = Tone.NEUTRAL
    always_listening: bool = False

    # False when the platform has no recognition capability.
    # Listening never starts and the always-listening check never arms.
    recognition_available: bool = True

    # ------------------------------------------------------------------
    # Control state
    # ------------------------------------------------------------------
    state: State = State.IDLE
    closed: bool = False

    # ------------------------------------------------------------------
    # Caller-observable fields
    # ------------------------------------------------------------------
    speaking: bool = False
    last_transcript: str = ""
    audio_level: float = 0.0

    # ------------------------------------------------------------------
    # Run/version tracking
    # ------------------------------------------------------------------
    active_runs: RunIds = field(default_factory=RunIds)

    # ------------------------------------------------------------------
    # Auto-restart bookkeeping
    # ------------------------------------------------------------------
    restart_attempt: RetryAttempt = RetryAttempt(attempt=0)

    # True while a backoff timer is pending for the current run
    restart_pending: bool = False

    # Set when the backoff budget ran out; disarms the always-listening
    # check until the caller starts listening or toggles mute.
    restarts_exhausted: bool = False
