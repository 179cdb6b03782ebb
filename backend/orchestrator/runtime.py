"""
Runtime execution shell for a single voice session.

Responsibilities:
- Own session state
- Call pure reducer
- Execute commands with side effects (recognition, meter, speech, callbacks)
- Schedule and cancel timers
- Convert timer expiry into events
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Callable

from orchestrator.reducer import reduce
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
    RecognitionEnded,
    RestartReady,
    SpeechFinished,
)
from orchestrator.state_dataclass import SessionState

from observability.logger import log_event


if TYPE_CHECKING:
    from orchestrator.runtime_context import AudioMeterProtocol, RuntimeExecutionContext


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Runtime:
    """
    Runtime execution boundary for a single voice session.

    Responsibilities:
    - Own the authoritative session state
    - Act as the universal event sink for the session
      (caller events, engine events, meter levels, timer events)
    - Invoke the pure reducer deterministically
    - Execute emitted commands with side effects
    - Schedule and cancel timers

    Guarantees:
    - Reducer is always called exactly once per incoming event
    - State transitions are serialized and deterministic
    - All side effects occur *after* state has been updated
    - Runtime never performs orchestration logic itself
    - Timers emit events back into handle_event (single entry point)
    """

    def __init__(
        self,
        *,
        initial_state: SessionState,
        context: RuntimeExecutionContext,
    ) -> None:
        self._state = initial_state
        self._ctx = context
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._meter_setup: asyncio.Task[None] | None = None
        self._listeners: list[Callable[[SessionState], None]] = []

    @property
    def state(self) -> SessionState:
        """
        Return the current immutable session state.

        State is only replaced internally by Runtime via the reducer;
        consumers must treat it as read-only.
        """
        return self._state

    def add_listener(self, listener: Callable[[SessionState], None]) -> None:
        """Register a callback invoked with the new state after each change."""
        self._listeners.append(listener)

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the orchestration pipeline.

        Processing steps:
        1. Pass the current state and event to the pure reducer
        2. Swap in the new state
        3. Notify state listeners if the state object changed
        4. Execute all emitted commands sequentially

        This method is the *only* entry point for events affecting
        session state. All event sources converge here:
        - VoiceSession (caller controls, lifecycle)
        - Recognition engine (results, session end)
        - Audio meter (levels)
        - Speech pipeline (finished)
        - Timers (debounce, restart backoff)
        """
        prev = self._state
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        if new_state is not prev:
            for listener in self._listeners:
                try:
                    listener(new_state)
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    log_event({
                        "ts_ms": _now_ms(),
                        "event_type": "STATE_LISTENER_FAILED",
                        "session_id": self._ctx.session_id,
                        "error": f"{type(exc).__name__}: {exc}",
                    }, level="ERROR")

        for cmd in commands:
            await self._execute_command(cmd)

    async def shutdown(self) -> None:
        """
        Cancel all in-flight timers and wait for them to finish.

        Called by VoiceSession.close() after the SessionClosed event.
        """
        timers = list(self._timers.values())
        for timer_id in list(self._timers.keys()):
            self._cancel_timer(timer_id)

        setup = self._cancel_meter_setup()
        if setup is not None:
            timers.append(setup)

        if timers:
            await asyncio.gather(*timers, return_exceptions=True)

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._ctx.session_id,
            }, level=cmd.level)

        elif isinstance(cmd, StartRecognition):
            if not self._recognition_run_current(cmd.run_id):
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "RECOGNITION_START_DROPPED",
                    "session_id": self._ctx.session_id,
                    "recognition_run_id": cmd.run_id,
                    "active_run_id": self._state.active_runs.recognition,
                    "state": self._state.state.value,
                }, level="DEBUG")
                return
            engine = self._ctx.recognition
            if engine is None:
                await self._report_start_failure(cmd.run_id, "recognition_engine_missing")
                return
            try:
                await engine.start(cmd.run_id)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                await self._report_start_failure(cmd.run_id, f"{type(exc).__name__}: {exc}")
                return
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "RECOGNITION_START_EXECUTED",
                "session_id": self._ctx.session_id,
                "recognition_run_id": cmd.run_id,
            }, level="DEBUG")

        elif isinstance(cmd, StopRecognition):
            engine = self._ctx.recognition
            if engine is None:
                return
            try:
                await engine.stop(cmd.run_id)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "RECOGNITION_STOP_FAILED",
                    "session_id": self._ctx.session_id,
                    "recognition_run_id": cmd.run_id,
                    "error": f"{type(exc).__name__}: {exc}",
                }, level="WARNING")

        elif isinstance(cmd, StartMeter):
            meter = self._ctx.meter
            if meter is None or self._state.state is not State.LISTENING:
                return
            if self._meter_setup is None or self._meter_setup.done():
                self._meter_setup = asyncio.create_task(self._run_meter_setup(meter))

        elif isinstance(cmd, StopMeter):
            self._cancel_meter_setup()
            meter = self._ctx.meter
            if meter is not None:
                meter.cleanup()

        elif isinstance(cmd, StartSpeech):
            speech = self._ctx.speech
            if speech is None:
                await self.handle_event(
                    SpeechFinished(
                        event_type=EventType.SPEECH_FINISHED,
                        ts_ms=_now_ms(),
                        service=Service.SPEECH,
                        run_id=cmd.run_id,
                        path="none",
                    )
                )
                return
            await speech.speak(run_id=cmd.run_id, text=cmd.text, tone=cmd.tone)

        elif isinstance(cmd, NotifyWake):
            self._invoke_callback("on_wake", self._ctx.on_wake)

        elif isinstance(cmd, DeliverTranscript):
            self._invoke_callback(
                "on_final_transcript", self._ctx.on_final_transcript, cmd.text,
            )

        elif isinstance(cmd, StartTimer):
            self._start_timer(
                timer_id=cmd.timer_id,
                duration_ms=cmd.duration_ms,
                timeout_event_type=cmd.timeout_event_type,
                run_id=cmd.run_id,
            )

        elif isinstance(cmd, CancelTimer):
            self._cancel_timer(cmd.timer_id)

        else:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "COMMAND_UNKNOWN",
                "session_id": self._ctx.session_id,
                "command_type": type(cmd).__name__,
            }, level="ERROR")

    async def _report_start_failure(self, run_id: int, reason: str) -> None:
        """A start that throws is reported as the end of that run."""
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "RECOGNITION_START_FAILED",
            "session_id": self._ctx.session_id,
            "recognition_run_id": run_id,
            "error": reason,
        }, level="WARNING")
        await self.handle_event(
            RecognitionEnded(
                event_type=EventType.RECOGNITION_ENDED,
                ts_ms=_now_ms(),
                service=Service.RECOGNITION,
                run_id=run_id,
                reason=reason,
            )
        )

    def _recognition_run_current(self, run_id: int) -> bool:
        """A start is only executed for the live run of a LISTENING session."""
        return (
            self._state.state is State.LISTENING
            and run_id == self._state.active_runs.recognition
        )

    async def _run_meter_setup(self, meter: AudioMeterProtocol) -> None:
        """
        Meter acquisition runs beside the event loop, never inside
        handle_event(); StopMeter cancels it.
        """
        try:
            await meter.setup()
        except asyncio.CancelledError:
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "METER_SETUP_FAILED",
                "session_id": self._ctx.session_id,
                "error": f"{type(exc).__name__}: {exc}",
            }, level="ERROR")

    def _cancel_meter_setup(self) -> asyncio.Task[None] | None:
        task, self._meter_setup = self._meter_setup, None
        if task is None or task.done():
            return None
        task.cancel()
        return task

    def _invoke_callback(
        self,
        name: str,
        callback: Callable[..., None] | None,
        *args: str,
    ) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CALLBACK_FAILED",
                "session_id": self._ctx.session_id,
                "callback": name,
                "error": f"{type(exc).__name__}: {exc}",
            }, level="ERROR")

    # ------------------------------------------------------------------
    # Timer management
    # ------------------------------------------------------------------

    def _start_timer(
        self,
        *,
        timer_id: str,
        duration_ms: int,
        timeout_event_type: EventType,
        run_id: int,
    ) -> None:
        """
        Start or replace a timer that emits a timeout event.

        Timer tasks re-enter handle_event() when they expire,
        maintaining the single event entry point invariant.

        Timers are the mechanism for all temporal behavior:
        - Always-listening debounce
        - Recognition restart backoff
        """
        self._cancel_timer(timer_id)

        async def _timer_task() -> None:
            try:
                await asyncio.sleep(duration_ms / 1000.0)
            except asyncio.CancelledError:
                return

            # Expired: drop the handle before re-entering so a command
            # emitted for this event can start a fresh timer under the same id.
            if self._timers.get(timer_id) is asyncio.current_task():
                del self._timers[timer_id]

            event = self._construct_timeout_event(
                timeout_event_type=timeout_event_type,
                run_id=run_id,
            )
            await self.handle_event(event)

        self._timers[timer_id] = asyncio.create_task(_timer_task())

    def _cancel_timer(self, timer_id: str) -> None:
        """
        Cancel an in-flight timer if it exists.

        Idempotent: safe to call even if timer doesn't exist.
        """
        task = self._timers.pop(timer_id, None)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _construct_timeout_event(
        self,
        *,
        timeout_event_type: EventType,
        run_id: int,
    ) -> Event:
        """
        Construct the timeout event for an expired timer.

        The reducer emits timer commands with just EventType and run_id;
        runtime constructs the full event with a timestamp.
        """
        ts = _now_ms()

        if timeout_event_type is EventType.ALWAYS_LISTENING_CHECK:
            return AlwaysListeningCheck(
                event_type=EventType.ALWAYS_LISTENING_CHECK,
                ts_ms=ts,
            )

        if timeout_event_type is EventType.RESTART_READY:
            return RestartReady(
                event_type=EventType.RESTART_READY,
                ts_ms=ts,
                service=Service.RECOGNITION,
                run_id=run_id,
            )

        # This should never happen if reducer is correct
        raise ValueError(f"Unknown timeout event type: {timeout_event_type}")
