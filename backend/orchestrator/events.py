"""
Unified event definitions for the session reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Timer events are not caller events, but carry run_id for stale gating
where a run is involved.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from orchestrator.enums.service import Service
from orchestrator.enums.tone import Tone


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    SESSION_STARTED = "SESSION_STARTED"
    SESSION_CLOSED = "SESSION_CLOSED"

    # ------------------------------------------------------------------
    # Caller control
    # ------------------------------------------------------------------
    START_LISTENING = "START_LISTENING"
    STOP_LISTENING = "STOP_LISTENING"
    SET_MUTED = "SET_MUTED"
    SPEAK = "SPEAK"

    # ------------------------------------------------------------------
    # Recognition engine
    # ------------------------------------------------------------------
    RECOGNITION_RESULT = "RECOGNITION_RESULT"
    RECOGNITION_ENDED = "RECOGNITION_ENDED"

    # ------------------------------------------------------------------
    # Audio meter
    # ------------------------------------------------------------------
    METER_LEVEL = "METER_LEVEL"

    # ------------------------------------------------------------------
    # Speech output
    # ------------------------------------------------------------------
    SPEECH_FINISHED = "SPEECH_FINISHED"

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    ALWAYS_LISTENING_CHECK = "ALWAYS_LISTENING_CHECK"
    RESTART_READY = "RESTART_READY"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


@dataclass(frozen=True)
class ServiceEvent(Event):
    """
    Base class for events scoped to a versioned subsystem.

    The reducer MUST ignore events whose run_id does not match the
    currently active run for that service.
    """

    service: Service
    run_id: int


# =============================================================================
# Session Events
# =============================================================================

@dataclass(frozen=True)
class SessionStarted(Event):
    """Session constructed; arms the always-listening check."""
    session_id: str


@dataclass(frozen=True)
class SessionClosed(Event):
    """Session torn down (unmount). No further listening runs start."""
    session_id: str


# =============================================================================
# Caller Control Events
# =============================================================================

@dataclass(frozen=True)
class StartListening(Event):
    """Caller asked to start listening."""


@dataclass(frozen=True)
class StopListening(Event):
    """Caller asked to stop listening."""


@dataclass(frozen=True)
class SetMuted(Event):
    """Caller toggled mute."""
    muted: bool


@dataclass(frozen=True)
class SpeakRequested(Event):
    """
    Caller asked for a spoken reply.

    tone=None means "use the session's configured tone".
    """
    text: str
    tone: Tone | None = None


# =============================================================================
# Recognition Events
# =============================================================================

@dataclass(frozen=True)
class RecognitionAlternative:
    """
    One result slot of a recognition event (best alternative only).

    is_final=True means the engine will not revise this text.
    """
    transcript: str
    is_final: bool = False


@dataclass(frozen=True)
class RecognitionResult(ServiceEvent):
    """
    Incremental recognition output.

    results holds every result slot of the current engine session;
    result_index is the first slot that changed in this event.
    """
    results: tuple[RecognitionAlternative, ...]
    result_index: int = 0


@dataclass(frozen=True)
class RecognitionEnded(ServiceEvent):
    """
    The engine session ended without a caller stop
    (provider timeout, network drop, start failure).
    """
    reason: str | None = None


# =============================================================================
# Audio Meter Events
# =============================================================================

@dataclass(frozen=True)
class MeterLevel(Event):
    """Normalized microphone level in [0, 1]."""
    level: float


# =============================================================================
# Speech Output Events
# =============================================================================

@dataclass(frozen=True)
class SpeechFinished(ServiceEvent):
    """
    Speech request completed.

    path:
        "remote"  - remote playback initiated
        "local"   - on-device utterance ended
        "none"    - no synthesis path was available
    """
    path: str


# =============================================================================
# Timer Events
# =============================================================================

@dataclass(frozen=True)
class AlwaysListeningCheck(Event):
    """Always-listening debounce expired."""


@dataclass(frozen=True)
class RestartReady(ServiceEvent):
    """Backoff delay before a recognition auto-restart expired."""
