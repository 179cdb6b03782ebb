"""
Session bootstrap.

Builds one VoiceSession:
1. Create the session container
2. Build subsystems with the session's late-bound event sink
3. Build the runtime with the initial state
4. Deliver SessionStarted (arms the always-listening check)

Default subsystems come from AppConfig; tests pass factories for fakes.
Missing credentials degrade to unavailable subsystems, never errors.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable
from uuid import uuid4

from adapters.recognition.base import RecognitionEngine, UnavailableRecognitionEngine
from adapters.recognition.deepgram import DeepgramRecognitionEngine
from adapters.tts.elevenlabs_adapter import ElevenLabsSynthesizer
from adapters.tts.local import Pyttsx3Synthesizer
from audio.meter import AudioMeter
from audio.playback import AudioPlayer
from config import AppConfig
from observability.logger import log_event
from orchestrator.events import Event, EventType, SessionStarted
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import RuntimeExecutionContext
from orchestrator.state_dataclass import SessionState
from session.session_config import VoiceSessionConfig
from session.voice_session import VoiceSession
from speech.pipeline import SpeechOutputPipeline

if TYPE_CHECKING:
    from orchestrator.enums.tone import Tone

EmitEvent = Callable[[Event], Awaitable[None]]
SubsystemFactory = Callable[[EmitEvent], Any]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


# ------------------------------------------------------------------
# Default subsystem builders
# ------------------------------------------------------------------

def default_engine(app_config: AppConfig) -> SubsystemFactory:
    def _build(emit_event: EmitEvent) -> RecognitionEngine:
        if not app_config.recognition_configured:
            return UnavailableRecognitionEngine()
        assert app_config.deepgram_api_key is not None
        return DeepgramRecognitionEngine(
            emit_event=emit_event,
            api_key=app_config.deepgram_api_key,
            model=app_config.deepgram_model,
        )
    return _build


def default_meter() -> SubsystemFactory:
    def _build(emit_event: EmitEvent) -> AudioMeter:
        return AudioMeter(emit_event=emit_event)
    return _build


def default_pipeline(app_config: AppConfig, session_id: str) -> SubsystemFactory:
    def _build(emit_event: EmitEvent) -> SpeechOutputPipeline:
        remote = None
        if app_config.remote_tts_configured:
            remote = ElevenLabsSynthesizer(
                api_key=app_config.elevenlabs_api_key,
                voice_id=app_config.elevenlabs_voice_id,
                model_id=app_config.elevenlabs_model_id,
            )
        local = Pyttsx3Synthesizer() if app_config.local_tts_enabled else None
        return SpeechOutputPipeline(
            emit_event=emit_event,
            remote=remote,
            local=local,
            player=AudioPlayer(),
            session_id=session_id,
        )
    return _build


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

async def create_voice_session(
    config: VoiceSessionConfig,
    *,
    app_config: AppConfig | None = None,
    engine_factory: SubsystemFactory | None = None,
    meter_factory: SubsystemFactory | None = None,
    pipeline_factory: SubsystemFactory | None = None,
    session_id: str | None = None,
) -> VoiceSession:
    """
    Create and start a voice session. Must run inside an event loop.

    The returned session is IDLE; with always_listening it moves to
    LISTENING after the debounce delay.
    """
    if app_config is None and None in (engine_factory, meter_factory, pipeline_factory):
        app_config = AppConfig.load_from_env()

    session = VoiceSession(session_id=session_id or _new_session_id(), config=config)

    if engine_factory is None:
        assert app_config is not None
        engine_factory = default_engine(app_config)
    if meter_factory is None:
        meter_factory = default_meter()
    if pipeline_factory is None:
        assert app_config is not None
        pipeline_factory = default_pipeline(app_config, session.session_id)

    engine = engine_factory(session.emit_event)
    session.attach_recognition_engine(engine)
    session.attach_audio_meter(meter_factory(session.emit_event))
    session.attach_speech_pipeline(pipeline_factory(session.emit_event))

    tone: Tone = config.tone  # type: ignore[assignment]
    initial_state = SessionState(
        wake_word=config.wake_word,
        tone=tone,
        always_listening=config.always_listening,
        recognition_available=engine is not None and bool(engine.available),
    )

    runtime = Runtime(
        initial_state=initial_state,
        context=RuntimeExecutionContext(session),
    )
    session.attach_runtime(runtime)

    log_event({
        "ts_ms": _now_ms(),
        "event_type": "SESSION_CREATED",
        **session.log_context(),
    })

    await runtime.handle_event(
        SessionStarted(
            event_type=EventType.SESSION_STARTED,
            ts_ms=_now_ms(),
            session_id=session.session_id,
        )
    )
    return session
