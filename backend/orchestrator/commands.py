"""
Side-effect command definitions for the session orchestrator.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.events import EventType
from orchestrator.enums.tone import Tone

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Recognition
    START_RECOGNITION = "START_RECOGNITION"
    STOP_RECOGNITION = "STOP_RECOGNITION"

    # Audio meter
    START_METER = "START_METER"
    STOP_METER = "STOP_METER"

    # Speech output
    START_SPEECH = "START_SPEECH"

    # Caller notifications
    NOTIFY_WAKE = "NOTIFY_WAKE"
    DELIVER_TRANSCRIPT = "DELIVER_TRANSCRIPT"

    # Timers
    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Recognition Commands
# =============================================================================

@dataclass(frozen=True)
class StartRecognition(Command):
    """Request to start (or restart) the recognition session under run_id."""
    run_id: int
    command_type: CommandType = CommandType.START_RECOGNITION


@dataclass(frozen=True)
class StopRecognition(Command):
    """Request to stop the recognition session for run_id."""
    run_id: int
    command_type: CommandType = CommandType.STOP_RECOGNITION


# =============================================================================
# Audio Meter Commands
# =============================================================================

@dataclass(frozen=True)
class StartMeter(Command):
    """Acquire the microphone and start publishing levels."""
    command_type: CommandType = CommandType.START_METER


@dataclass(frozen=True)
class StopMeter(Command):
    """Cancel sampling and release the microphone."""
    command_type: CommandType = CommandType.STOP_METER


# =============================================================================
# Speech Commands
# =============================================================================

@dataclass(frozen=True)
class StartSpeech(Command):
    """
    Request synthesis + playback of one utterance.

    text is guaranteed non-blank by the reducer.
    """
    run_id: int
    text: str
    tone: Tone
    command_type: CommandType = CommandType.START_SPEECH


# =============================================================================
# Caller Notification Commands
# =============================================================================

@dataclass(frozen=True)
class NotifyWake(Command):
    """Invoke the caller's wake callback (once per matching final result)."""
    transcript: str
    command_type: CommandType = CommandType.NOTIFY_WAKE


@dataclass(frozen=True)
class DeliverTranscript(Command):
    """Invoke the caller's transcript callback with wake-word-stripped text."""
    text: str
    command_type: CommandType = CommandType.DELIVER_TRANSCRIPT


# =============================================================================
# Timer Commands
# =============================================================================

@dataclass(frozen=True)
class StartTimer(Command):
    """
    Start (or replace) a named timer that re-enters the runtime with
    timeout_event_type on expiry.

    run_id is copied onto the timeout event for stale gating (0 if unused).
    """
    timer_id: str
    duration_ms: int
    timeout_event_type: EventType
    run_id: int = 0
    command_type: CommandType = CommandType.START_TIMER


@dataclass(frozen=True)
class CancelTimer(Command):
    """Cancel a named timer. Idempotent."""
    timer_id: str
    command_type: CommandType = CommandType.CANCEL_TIMER


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Structured log record; runtime enriches with session metadata."""
    event: dict[str, Any]
    level: str = "INFO"
    command_type: CommandType = CommandType.LOG_EVENT
