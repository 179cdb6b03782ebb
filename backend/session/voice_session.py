"""
Voice session container and caller-facing controller.

- Owns the runtime (which owns the immutable session state)
- Owns the recognition engine, audio meter and speech pipeline
- Exposes read-only observables and async control calls
- Contains no orchestration logic: every control call is one event
  into Runtime.handle_event
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable

from observability.logger import log_event
from orchestrator.enums.state import State
from orchestrator.enums.tone import Tone, parse_tone
from orchestrator.events import (
    Event,
    EventType,
    SessionClosed,
    SetMuted,
    SpeakRequested,
    StartListening,
    StopListening,
)
from orchestrator.runtime import Runtime
from orchestrator.state_dataclass import SessionState
from session.session_config import VoiceSessionConfig


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


# ---------------------------------------------------------------------
# VoiceSession
# ---------------------------------------------------------------------


@dataclass
class VoiceSession:
    """Mutable runtime container for a single voice session."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    config: VoiceSessionConfig
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Runtime (executes commands + owns authoritative state)
    # ------------------------------------------------------------------

    runtime: Runtime | None = None

    # ------------------------------------------------------------------
    # Subsystems (concrete, side-effectful)
    # ------------------------------------------------------------------

    recognition_engine: Any = None
    audio_meter: Any = None
    speech_pipeline: Any = None

    # ------------------------------------------------------------------
    # Wiring helpers (called by create_voice_session)
    # ------------------------------------------------------------------

    def attach_recognition_engine(self, engine: Any) -> None:
        """Attach a recognition engine (RecognitionEngineProtocol)."""
        self.recognition_engine = engine

    def attach_audio_meter(self, meter: Any) -> None:
        self.audio_meter = meter

    def attach_speech_pipeline(self, pipeline: Any) -> None:
        self.speech_pipeline = pipeline

    def attach_runtime(self, runtime: Runtime) -> None:
        """
        Attach the runtime executor.

        Must be called after subsystems are attached.
        """
        self.runtime = runtime

    async def emit_event(self, event: Event) -> None:
        """
        Event sink handed to subsystems.

        Late-bound so subsystems can be built before the runtime exists.
        Events arriving before attach_runtime() are dropped.
        """
        if self.runtime is None:
            return
        await self.runtime.handle_event(event)

    # ------------------------------------------------------------------
    # Observables (read-only)
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        assert self.runtime is not None, "runtime not attached"
        return self.runtime.state

    @property
    def listening(self) -> bool:
        return self.state.state is State.LISTENING

    @property
    def muted(self) -> bool:
        return self.state.state is State.MUTED

    @property
    def speaking(self) -> bool:
        return self.state.speaking

    @property
    def audio_level(self) -> float:
        return self.state.audio_level

    @property
    def last_transcript(self) -> str:
        return self.state.last_transcript

    @property
    def closed(self) -> bool:
        return self.state.closed

    def subscribe(self, listener: Callable[[SessionState], None]) -> None:
        """Register a callback invoked with the new state after every change."""
        assert self.runtime is not None, "runtime not attached"
        self.runtime.add_listener(listener)

    # ------------------------------------------------------------------
    # Control calls
    # ------------------------------------------------------------------

    async def start_listening(self) -> None:
        await self.emit_event(
            StartListening(event_type=EventType.START_LISTENING, ts_ms=_now_ms())
        )

    async def stop_listening(self) -> None:
        await self.emit_event(
            StopListening(event_type=EventType.STOP_LISTENING, ts_ms=_now_ms())
        )

    async def set_muted(self, muted: bool) -> None:
        await self.emit_event(
            SetMuted(event_type=EventType.SET_MUTED, ts_ms=_now_ms(), muted=bool(muted))
        )

    async def speak(self, text: str, tone: Tone | str | None = None) -> None:
        """
        Speak text in tone (default: the session tone).

        Blank text is ignored. Raises ValueError for an unknown tone.
        """
        resolved = parse_tone(tone) if tone is not None else None
        await self.emit_event(
            SpeakRequested(
                event_type=EventType.SPEAK,
                ts_ms=_now_ms(),
                text=text,
                tone=resolved,
            )
        )

    async def close(self) -> None:
        """
        Tear the session down: stop listening, release the meter, cancel
        timers and stop any on-device speech. Idempotent.
        """
        if self.runtime is None or self.runtime.state.closed:
            return

        await self.emit_event(
            SessionClosed(
                event_type=EventType.SESSION_CLOSED,
                ts_ms=_now_ms(),
                session_id=self.session_id,
            )
        )
        await self.runtime.shutdown()

        if self.audio_meter is not None:
            self.audio_meter.cleanup()
        if self.recognition_engine is not None and hasattr(self.recognition_engine, "close"):
            await self.recognition_engine.close()
        if self.speech_pipeline is not None and hasattr(self.speech_pipeline, "close"):
            await self.speech_pipeline.close()

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "SESSION_TORN_DOWN",
            "session_id": self.session_id,
            "lifetime_s": round(time.time() - self.created_at, 3),
        })

    def log_context(self) -> dict[str, Any]:
        """Standard logging context for this session."""
        return {
            "session_id": self.session_id,
            "wake_word": self.config.wake_word,
            "always_listening": self.config.always_listening,
        }
