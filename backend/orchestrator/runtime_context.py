"""
Runtime execution context.

Provides Runtime with live access to the session-owned imperative
resources needed for command execution (engines, meter, callbacks).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

from orchestrator.enums.tone import Tone

if TYPE_CHECKING:
    from session.voice_session import VoiceSession


# ---------------------------------------------------------------------
# Capability Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class RecognitionEngineProtocol(Protocol):
    @property
    def available(self) -> bool: ...

    async def start(self, run_id: int) -> None: ...

    async def stop(self, run_id: int) -> None: ...


@runtime_checkable
class AudioMeterProtocol(Protocol):
    async def setup(self) -> None: ...

    def cleanup(self) -> None: ...


@runtime_checkable
class SpeechPipelineProtocol(Protocol):
    """
    Speech output protocol.

    Contract:
    - speak() must eventually emit exactly one SpeechFinished(run_id, path)
    - speak() returns once playback has been initiated (or has failed)
    """

    async def speak(self, *, run_id: int, text: str, tone: Tone) -> None: ...


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    This object provides *live views* into session-owned resources
    so Runtime does not need to synchronize or cache anything.

    Runtime is allowed to:
    - Call engines and the meter
    - Invoke caller callbacks

    Runtime is NOT allowed to:
    - Mutate session state directly
    - Perform orchestration decisions
    """

    def __init__(self, session: VoiceSession) -> None:
        self.session = session

    # ----------------------------
    # Session metadata
    # ----------------------------

    @property
    def session_id(self) -> str:
        return self.session.session_id

    # ----------------------------
    # Subsystems
    # ----------------------------

    @property
    def recognition(self) -> RecognitionEngineProtocol | None:
        return self.session.recognition_engine

    @property
    def meter(self) -> AudioMeterProtocol | None:
        return self.session.audio_meter

    @property
    def speech(self) -> SpeechPipelineProtocol | None:
        return self.session.speech_pipeline

    # ----------------------------
    # Caller callbacks
    # ----------------------------

    @property
    def on_wake(self) -> Callable[[], None] | None:
        return self.session.config.on_wake

    @property
    def on_final_transcript(self) -> Callable[[str], None] | None:
        return self.session.config.on_final_transcript
