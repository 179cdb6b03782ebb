"""
Recognition auto-restart policy.

Purpose:
- Bound the engine "end -> restart" loop so a platform that keeps
  dropping sessions cannot cause a restart storm
- Keep reducer pure
- Allow runtime to make deterministic restart decisions

This module contains NO timers, NO async, NO side effects.
"""
from __future__ import annotations

from dataclasses import dataclass

from spec import (
    RECOGNITION_MAX_RESTARTS,
    RECOGNITION_RESTART_DELAYS_MS,
)


@dataclass(frozen=True)
class RetryAttempt:
    """
    Immutable restart attempt counter.

    Semantics:
    - attempt == 0: no restart performed since the session last proved
      alive (delivered a result) or the caller started listening.
    - attempt >= 1: that many consecutive auto-restarts have been issued.
    """
    attempt: int


def next_attempt(current: RetryAttempt) -> RetryAttempt:
    """Return a new RetryAttempt with attempt incremented by 1."""
    return RetryAttempt(attempt=current.attempt + 1)


def reset_attempt() -> RetryAttempt:
    """Returns a fresh restart attempt counter."""
    return RetryAttempt(attempt=0)


def should_restart(attempt: RetryAttempt) -> bool:
    """
    Returns True if another auto-restart is allowed.

    attempt = number of consecutive restarts already performed
    """
    return attempt.attempt < RECOGNITION_MAX_RESTARTS


def get_restart_delay_ms(attempt: RetryAttempt) -> int:
    """
    Returns delay before restart attempt N.

    The first restart is immediate; later ones back off exponentially,
    clamped to the last slot.
    """
    idx = min(attempt.attempt, len(RECOGNITION_RESTART_DELAYS_MS) - 1)
    return RECOGNITION_RESTART_DELAYS_MS[idx]
