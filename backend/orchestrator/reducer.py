"""
Pure session reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable

from orchestrator.commands import (
    CancelTimer,
    Command,
    DeliverTranscript,
    LogEvent,
    NotifyWake,
    StartMeter,
    StartRecognition,
    StartSpeech,
    StartTimer,
    StopMeter,
    StopRecognition,
)
from orchestrator.enums.service import Service
from orchestrator.enums.state import State
from orchestrator.events import (
    AlwaysListeningCheck,
    Event,
    EventType,
    MeterLevel,
    RecognitionEnded,
    RecognitionResult,
    RestartReady,
    SessionClosed,
    SessionStarted,
    SetMuted,
    SpeakRequested,
    SpeechFinished,
    StartListening,
    StopListening,
)
from orchestrator.retry import (
    get_restart_delay_ms,
    next_attempt,
    reset_attempt,
    should_restart,
)
from orchestrator.run_ids import RunIds
from orchestrator.state_dataclass import SessionState
from orchestrator.wake_word import contains_wake_word, strip_wake_word
from spec import ALWAYS_LISTENING_DEBOUNCE_MS

# =============================================================================
# Timer IDs
# =============================================================================

TIMER_ALWAYS_LISTENING = "always_listening_debounce"
TIMER_RECOGNITION_RESTART = "recognition_restart"

Result = tuple[SessionState, tuple[Command, ...]]


# =============================================================================
# Small helpers
# =============================================================================

def _bump_run_id(active_runs: RunIds, service: Service) -> RunIds:
    if service is Service.RECOGNITION:
        return replace(active_runs, recognition=active_runs.recognition + 1)
    if service is Service.SPEECH:
        return replace(active_runs, speech=active_runs.speech + 1)
    raise ValueError(service)


def _log(
    state: SessionState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
    *,
    level: str = "INFO",
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "state": state.state.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "run_ids": {
                "recognition": state.active_runs.recognition,
                "speech": state.active_runs.speech,
            },
            "flags": {
                "speaking": state.speaking,
                "always_listening": state.always_listening,
                "restart_attempt": state.restart_attempt.attempt,
            },
            "details": details or {},
        },
        level=level,
    )


def _log_state_change(
    old: SessionState,
    new: SessionState,
    event: Event,
    source: str,
) -> LogEvent:
    return _log(
        new,
        event,
        "state_changed",
        {
            "from_state": old.state.value,
            "to_state": new.state.value,
            "source": source,
        },
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _ignore(state: SessionState, event: Event, reason: str) -> Result:
    return state, (_log(state, event, "ignore", {"reason": reason}, level="DEBUG"),)


def _should_arm_always_listening(state: SessionState) -> bool:
    """
    The always-listening check fires whenever the session is idle,
    always-listening is on, and nothing forbids a new run.
    """
    return (
        state.state is State.IDLE
        and state.always_listening
        and state.recognition_available
        and not state.closed
        and not state.restarts_exhausted
    )


def _leave_listening(
    state: SessionState,
    *,
    to: State,
    stop_recognition: bool,
) -> tuple[SessionState, list[Command]]:
    """
    Tear down one listening period: recognition (optionally, if it has not
    already ended on its own), meter, and any pending restart.
    """
    cmds: list[Command] = []
    if stop_recognition:
        cmds.append(StopRecognition(run_id=state.active_runs.recognition))
    cmds.append(StopMeter())
    if state.restart_pending:
        cmds.append(CancelTimer(timer_id=TIMER_RECOGNITION_RESTART))

    new_state = replace(
        state,
        state=to,
        audio_level=0.0,
        restart_pending=False,
    )
    return new_state, cmds


# =============================================================================
# Session lifecycle
# =============================================================================

def _on_session_started(state: SessionState, event: SessionStarted) -> Result:
    return state, (
        _log(
            state,
            event,
            "session_started",
            {
                "session_id": event.session_id,
                "recognition_available": state.recognition_available,
            },
        ),
    )


def _on_session_closed(state: SessionState, event: SessionClosed) -> Result:
    if state.closed:
        return _ignore(state, event, "already_closed")

    cmds: list[Command] = [
        CancelTimer(timer_id=TIMER_ALWAYS_LISTENING),
    ]
    new_state = replace(state, closed=True)

    if state.state is State.LISTENING:
        new_state, teardown = _leave_listening(
            new_state, to=State.IDLE, stop_recognition=True,
        )
        cmds.extend(teardown)
        cmds.append(_log_state_change(state, new_state, event, "session_closed"))

    cmds.append(_log(new_state, event, "session_closed", {"session_id": event.session_id}))
    return new_state, _logs_last(tuple(cmds))


# =============================================================================
# Listening control
# =============================================================================

def _enter_listening(state: SessionState, event: Event, source: str) -> Result:
    if state.closed:
        return _ignore(state, event, "session_closed")
    if state.state is State.MUTED:
        return _ignore(state, event, "muted")
    if state.state is State.LISTENING:
        return _ignore(state, event, "already_listening")
    if not state.recognition_available:
        return _ignore(state, event, "recognition_unavailable")

    new_runs = _bump_run_id(state.active_runs, Service.RECOGNITION)
    new_state = replace(
        state,
        state=State.LISTENING,
        active_runs=new_runs,
        restart_attempt=reset_attempt(),
        restart_pending=False,
        restarts_exhausted=False,
    )

    return new_state, _logs_last((
        CancelTimer(timer_id=TIMER_ALWAYS_LISTENING),
        StartRecognition(run_id=new_runs.recognition),
        # Metering is best-effort; its failure never reverts LISTENING.
        StartMeter(),
        _log_state_change(state, new_state, event, source),
        _log(
            new_state,
            event,
            "idle_to_listening",
            {"recognition_run_id": new_runs.recognition, "source": source},
        ),
    ))


def _on_start_listening(state: SessionState, event: StartListening) -> Result:
    return _enter_listening(state, event, "caller")


def _on_always_listening_check(state: SessionState, event: AlwaysListeningCheck) -> Result:
    if not _should_arm_always_listening(state):
        return _ignore(state, event, "always_listening_not_eligible")
    return _enter_listening(state, event, "always_listening")


def _on_stop_listening(state: SessionState, event: StopListening) -> Result:
    if state.state is not State.LISTENING:
        return _ignore(state, event, "not_listening")

    new_state, cmds = _leave_listening(state, to=State.IDLE, stop_recognition=True)
    cmds.append(_log_state_change(state, new_state, event, "caller_stop"))
    cmds.append(
        _log(
            new_state,
            event,
            "listening_to_idle",
            {"recognition_run_id": state.active_runs.recognition, "source": "caller"},
        )
    )
    return new_state, _logs_last(tuple(cmds))


def _on_set_muted(state: SessionState, event: SetMuted) -> Result:
    if event.muted:
        if state.state is State.MUTED:
            return _ignore(state, event, "already_muted")

        cmds: list[Command] = [CancelTimer(timer_id=TIMER_ALWAYS_LISTENING)]
        if state.state is State.LISTENING:
            new_state, teardown = _leave_listening(
                state, to=State.MUTED, stop_recognition=True,
            )
            cmds.extend(teardown)
        else:
            new_state = replace(state, state=State.MUTED)

        cmds.append(_log_state_change(state, new_state, event, "mute"))
        cmds.append(_log(new_state, event, "muted"))
        return new_state, _logs_last(tuple(cmds))

    if state.state is not State.MUTED:
        return _ignore(state, event, "not_muted")

    # Unmute clears an exhausted restart budget; the always-listening
    # check (armed after this transition) brings LISTENING back.
    new_state = replace(state, state=State.IDLE, restarts_exhausted=False)
    return new_state, _logs_last((
        _log_state_change(state, new_state, event, "unmute"),
        _log(new_state, event, "unmuted"),
    ))


# =============================================================================
# Recognition engine events
# =============================================================================

def _on_recognition_result(state: SessionState, event: RecognitionResult) -> Result:
    if state.state is not State.LISTENING:
        return _ignore(state, event, "not_listening")
    if event.run_id != state.active_runs.recognition:
        return _ignore(state, event, "stale_recognition_run")

    cmds: list[Command] = []
    running = ""
    last_transcript = state.last_transcript
    finals = 0

    for result in event.results[event.result_index:]:
        running += result.transcript
        if not result.is_final:
            continue

        finals += 1
        final = result.transcript.strip()
        last_transcript = final

        remainder = strip_wake_word(final, state.wake_word)
        if remainder:
            cmds.append(DeliverTranscript(text=remainder))
        woke = contains_wake_word(final, state.wake_word)
        if woke:
            cmds.append(NotifyWake(transcript=final))

        cmds.append(
            _log(
                state,
                event,
                "final_transcript",
                {
                    "chars": len(final),
                    "wake_word_detected": woke,
                    "forwarded": bool(remainder),
                },
            )
        )

    if running.strip():
        last_transcript = running.strip()

    new_state = replace(
        state,
        last_transcript=last_transcript,
        # A delivered result proves the session is alive.
        restart_attempt=reset_attempt(),
    )

    if not finals:
        cmds.append(
            _log(new_state, event, "partial_transcript", {"chars": len(running)}, level="DEBUG")
        )

    return new_state, _logs_last(tuple(cmds))


def _on_recognition_ended(state: SessionState, event: RecognitionEnded) -> Result:
    if state.state is not State.LISTENING:
        return _ignore(state, event, "not_listening")
    if event.run_id != state.active_runs.recognition:
        return _ignore(state, event, "stale_recognition_run")

    # MUTED is a separate state, so LISTENING already implies not muted.
    if state.always_listening:
        if not should_restart(state.restart_attempt):
            new_state, cmds = _leave_listening(state, to=State.IDLE, stop_recognition=False)
            new_state = replace(new_state, restarts_exhausted=True)
            cmds.append(_log_state_change(state, new_state, event, "restart_exhausted"))
            cmds.append(
                _log(
                    new_state,
                    event,
                    "auto_restart_exhausted",
                    {"reason": event.reason, "attempts": state.restart_attempt.attempt},
                    level="WARNING",
                )
            )
            return new_state, _logs_last(tuple(cmds))

        delay_ms = get_restart_delay_ms(state.restart_attempt)
        attempt = next_attempt(state.restart_attempt)

        if delay_ms <= 0:
            new_runs = _bump_run_id(state.active_runs, Service.RECOGNITION)
            new_state = replace(state, active_runs=new_runs, restart_attempt=attempt)
            return new_state, _logs_last((
                StartRecognition(run_id=new_runs.recognition),
                _log(
                    new_state,
                    event,
                    "auto_restart",
                    {"reason": event.reason, "attempt": attempt.attempt},
                ),
            ))

        new_state = replace(state, restart_attempt=attempt, restart_pending=True)
        return new_state, _logs_last((
            StartTimer(
                timer_id=TIMER_RECOGNITION_RESTART,
                duration_ms=delay_ms,
                timeout_event_type=EventType.RESTART_READY,
                run_id=event.run_id,
            ),
            _log(
                new_state,
                event,
                "auto_restart_scheduled",
                {"reason": event.reason, "attempt": attempt.attempt, "delay_ms": delay_ms},
            ),
        ))

    new_state, cmds = _leave_listening(state, to=State.IDLE, stop_recognition=False)
    cmds.append(_log_state_change(state, new_state, event, "recognition_ended"))
    cmds.append(
        _log(
            new_state,
            event,
            "listening_to_idle",
            {"reason": event.reason, "source": "engine"},
        )
    )
    return new_state, _logs_last(tuple(cmds))


def _on_restart_ready(state: SessionState, event: RestartReady) -> Result:
    if state.state is not State.LISTENING or not state.restart_pending:
        return _ignore(state, event, "no_restart_pending")
    if event.run_id != state.active_runs.recognition:
        return _ignore(state, event, "stale_recognition_run")

    new_runs = _bump_run_id(state.active_runs, Service.RECOGNITION)
    new_state = replace(state, active_runs=new_runs, restart_pending=False)
    return new_state, _logs_last((
        StartRecognition(run_id=new_runs.recognition),
        _log(
            new_state,
            event,
            "auto_restart",
            {"attempt": state.restart_attempt.attempt, "after_backoff": True},
        ),
    ))


# =============================================================================
# Audio meter
# =============================================================================

def _on_meter_level(state: SessionState, event: MeterLevel) -> Result:
    # Hot path (~60 Hz): no log records.
    if state.state is not State.LISTENING:
        return state, ()
    level = min(1.0, max(0.0, float(event.level)))
    if level == state.audio_level:
        return state, ()
    return replace(state, audio_level=level), ()


# =============================================================================
# Speech output
# =============================================================================

def _on_speak(state: SessionState, event: SpeakRequested) -> Result:
    if state.closed:
        return _ignore(state, event, "session_closed")
    if not event.text.strip():
        return _ignore(state, event, "blank_text")

    tone = event.tone if event.tone is not None else state.tone
    new_runs = _bump_run_id(state.active_runs, Service.SPEECH)
    new_state = replace(state, speaking=True, active_runs=new_runs)

    return new_state, _logs_last((
        StartSpeech(run_id=new_runs.speech, text=event.text, tone=tone),
        _log(
            new_state,
            event,
            "speak_started",
            {
                "speech_run_id": new_runs.speech,
                "tone": tone.value,
                "chars": len(event.text),
                "superseded": state.speaking,
            },
        ),
    ))


def _on_speech_finished(state: SessionState, event: SpeechFinished) -> Result:
    if event.run_id != state.active_runs.speech:
        return _ignore(state, event, "superseded_speech_run")
    if not state.speaking:
        return _ignore(state, event, "not_speaking")

    new_state = replace(state, speaking=False)
    return new_state, (
        _log(
            new_state,
            event,
            "speak_finished",
            {"speech_run_id": event.run_id, "path": event.path},
        ),
    )


# =============================================================================
# Dispatch
# =============================================================================

_HANDLERS: dict[EventType, Callable[[SessionState, Any], Result]] = {
    EventType.SESSION_STARTED: _on_session_started,
    EventType.SESSION_CLOSED: _on_session_closed,
    EventType.START_LISTENING: _on_start_listening,
    EventType.STOP_LISTENING: _on_stop_listening,
    EventType.SET_MUTED: _on_set_muted,
    EventType.SPEAK: _on_speak,
    EventType.RECOGNITION_RESULT: _on_recognition_result,
    EventType.RECOGNITION_ENDED: _on_recognition_ended,
    EventType.METER_LEVEL: _on_meter_level,
    EventType.SPEECH_FINISHED: _on_speech_finished,
    EventType.ALWAYS_LISTENING_CHECK: _on_always_listening_check,
    EventType.RESTART_READY: _on_restart_ready,
}


def reduce(state: SessionState, event: Event) -> Result:
    """
    Apply one event.

    After the event-specific transition, the always-listening check is
    (re)armed whenever the session becomes eligible for it, or on session
    start if it already is.
    """
    handler = _HANDLERS.get(event.event_type)
    if handler is None:
        return _ignore(state, event, "unhandled_event_type")

    new_state, commands = handler(state, event)

    if _should_arm_always_listening(new_state) and (
        isinstance(event, SessionStarted)
        or not _should_arm_always_listening(state)
    ):
        commands = commands + (
            StartTimer(
                timer_id=TIMER_ALWAYS_LISTENING,
                duration_ms=ALWAYS_LISTENING_DEBOUNCE_MS,
                timeout_event_type=EventType.ALWAYS_LISTENING_CHECK,
            ),
        )

    return new_state, commands
