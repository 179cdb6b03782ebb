# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
from dataclasses import replace
from types import SimpleNamespace
from typing import Any

from orchestrator.commands import StartMeter, StartRecognition
from orchestrator.runtime import Runtime
from orchestrator.state_dataclass import SessionState
from orchestrator.enums.service import Service
from orchestrator.enums.state import State
from orchestrator.enums.tone import Tone
from orchestrator.events import (
    EventType,
    RecognitionAlternative,
    RecognitionEnded,
    RecognitionResult,
    SessionStarted,
    SpeakRequested,
    StartListening,
    StopListening,
)


class FakeEngine:
    available = True

    def __init__(self, fail_start: bool = False) -> None:
        self.fail_start = fail_start
        self.starts: list[int] = []
        self.stops: list[int] = []

    async def start(self, run_id: int) -> None:
        self.starts.append(run_id)
        if self.fail_start:
            raise RuntimeError("no microphone")

    async def stop(self, run_id: int) -> None:
        self.stops.append(run_id)


class FakeMeter:
    def __init__(self) -> None:
        self.setups = 0
        self.cleanups = 0

    async def setup(self) -> None:
        self.setups += 1

    def cleanup(self) -> None:
        self.cleanups += 1


def make_runtime(
    *,
    engine: Any = None,
    speech: Any = None,
    on_wake: Any = None,
    on_final_transcript: Any = None,
    **state_overrides: Any,
) -> tuple[Runtime, FakeMeter]:
    meter = FakeMeter()
    ctx = SimpleNamespace(
        session_id="sess_test",
        recognition=engine if engine is not None else FakeEngine(),
        meter=meter,
        speech=speech,
        on_wake=on_wake,
        on_final_transcript=on_final_transcript,
    )
    state = replace(SessionState(wake_word="hey jarvis"), **state_overrides)
    return Runtime(initial_state=state, context=ctx), meter  # type: ignore[arg-type]


def start_listening() -> StartListening:
    return StartListening(event_type=EventType.START_LISTENING, ts_ms=0)


def final(run_id: int, text: str) -> RecognitionResult:
    return RecognitionResult(
        event_type=EventType.RECOGNITION_RESULT,
        ts_ms=0,
        service=Service.RECOGNITION,
        run_id=run_id,
        results=(RecognitionAlternative(transcript=text, is_final=True),),
    )


def test_start_listening_drives_engine_and_meter():
    async def scenario() -> None:
        engine = FakeEngine()
        runtime, meter = make_runtime(engine=engine)

        await runtime.handle_event(start_listening())

        assert runtime.state.state is State.LISTENING
        assert engine.starts == [1]

        await asyncio.sleep(0.01)
        assert meter.setups == 1

    asyncio.run(scenario())


def test_log_commands_carry_session_id(captured_logs: list[dict]):
    async def scenario() -> None:
        runtime, _ = make_runtime()
        await runtime.handle_event(start_listening())

    asyncio.run(scenario())

    decisions = [r for r in captured_logs if "decision" in r]
    assert decisions
    assert all(r["session_id"] == "sess_test" for r in decisions)


def test_start_failure_is_reported_as_run_end(captured_logs: list[dict]):
    async def scenario() -> None:
        runtime, meter = make_runtime(engine=FakeEngine(fail_start=True))

        await runtime.handle_event(start_listening())

        assert runtime.state.state is State.IDLE
        await asyncio.sleep(0.01)
        # The failed run ends before metering is requested.
        assert meter.setups == 0
        assert meter.cleanups == 1

    asyncio.run(scenario())

    assert any(r.get("event_type") == "RECOGNITION_START_FAILED" for r in captured_logs)


def test_callbacks_receive_transcript_and_wake():
    calls: list[tuple[str, ...]] = []

    async def scenario() -> None:
        runtime, _ = make_runtime(
            on_wake=lambda: calls.append(("wake",)),
            on_final_transcript=lambda t: calls.append(("final", t)),
        )
        await runtime.handle_event(start_listening())
        await runtime.handle_event(final(1, "hey jarvis what's the weather"))

    asyncio.run(scenario())

    assert calls == [
        ("final", "what's the weather"),
        ("wake",),
    ]


def test_callback_exception_is_logged_not_raised(captured_logs: list[dict]):
    def boom() -> None:
        raise ValueError("caller bug")

    async def scenario() -> None:
        runtime, _ = make_runtime(on_wake=boom)
        await runtime.handle_event(start_listening())
        await runtime.handle_event(final(1, "hey jarvis"))
        assert runtime.state.last_transcript == "hey jarvis"

    asyncio.run(scenario())

    failures = [r for r in captured_logs if r.get("event_type") == "CALLBACK_FAILED"]
    assert len(failures) == 1
    assert failures[0]["callback"] == "on_wake"


def test_listeners_see_each_new_state():
    seen: list[State] = []

    async def scenario() -> None:
        runtime, _ = make_runtime()
        runtime.add_listener(lambda s: seen.append(s.state))
        await runtime.handle_event(start_listening())
        # Ignored event: same state object, no notification.
        await runtime.handle_event(start_listening())

    asyncio.run(scenario())

    assert seen == [State.LISTENING]


def test_always_listening_timer_starts_recognition():
    async def scenario() -> None:
        engine = FakeEngine()
        runtime, _ = make_runtime(engine=engine, always_listening=True)

        await runtime.handle_event(
            SessionStarted(event_type=EventType.SESSION_STARTED, ts_ms=0, session_id="sess_test")
        )
        assert runtime.state.state is State.IDLE

        await asyncio.sleep(0.2)

        assert runtime.state.state is State.LISTENING
        assert engine.starts == [1]
        await runtime.shutdown()

    asyncio.run(scenario())


def test_backoff_timer_restarts_with_new_run():
    async def scenario() -> None:
        engine = FakeEngine()
        runtime, _ = make_runtime(engine=engine, always_listening=True)
        await runtime.handle_event(start_listening())

        for run_id in (1, 2):
            await runtime.handle_event(
                RecognitionEnded(
                    event_type=EventType.RECOGNITION_ENDED,
                    ts_ms=0,
                    service=Service.RECOGNITION,
                    run_id=run_id,
                    reason="provider_closed",
                )
            )

        # Second end is delayed; nothing new yet.
        assert engine.starts == [1, 2]
        assert runtime.state.restart_pending is True

        await asyncio.sleep(0.5)

        assert engine.starts == [1, 2, 3]
        assert runtime.state.restart_pending is False
        await runtime.shutdown()

    asyncio.run(scenario())


def test_shutdown_cancels_pending_timers():
    async def scenario() -> None:
        engine = FakeEngine()
        runtime, _ = make_runtime(engine=engine, always_listening=True)
        await runtime.handle_event(
            SessionStarted(event_type=EventType.SESSION_STARTED, ts_ms=0, session_id="sess_test")
        )

        await runtime.shutdown()
        await asyncio.sleep(0.2)

        assert engine.starts == []

    asyncio.run(scenario())


def test_speak_without_pipeline_finishes_immediately():
    async def scenario() -> None:
        runtime, _ = make_runtime(speech=None)

        await runtime.handle_event(
            SpeakRequested(event_type=EventType.SPEAK, ts_ms=0, text="hello", tone=Tone.CALM)
        )

        assert runtime.state.speaking is False
        assert runtime.state.active_runs.speech == 1

    asyncio.run(scenario())


def test_stale_start_recognition_is_dropped(captured_logs: list[dict]):
    async def scenario() -> None:
        engine = FakeEngine()
        runtime, _ = make_runtime(engine=engine)

        # Issued for run 1, but the session is no longer listening.
        await runtime._execute_command(StartRecognition(run_id=1))  # pylint: disable=protected-access

        assert engine.starts == []

    asyncio.run(scenario())

    assert any(r.get("event_type") == "RECOGNITION_START_DROPPED" for r in captured_logs)


def test_start_meter_outside_listening_is_dropped():
    async def scenario() -> None:
        runtime, meter = make_runtime()

        await runtime._execute_command(StartMeter())  # pylint: disable=protected-access
        await asyncio.sleep(0.01)

        assert meter.setups == 0

    asyncio.run(scenario())


def test_stop_meter_cancels_pending_setup():
    class SlowMeter(FakeMeter):
        def __init__(self) -> None:
            super().__init__()
            self.finished = False

        async def setup(self) -> None:
            self.setups += 1
            await asyncio.sleep(10)
            self.finished = True

    async def scenario() -> None:
        runtime, _ = make_runtime()
        meter = SlowMeter()
        runtime._ctx.meter = meter  # pylint: disable=protected-access

        await asyncio.wait_for(runtime.handle_event(start_listening()), timeout=1.0)
        await asyncio.sleep(0.01)
        assert meter.setups == 1

        await runtime.handle_event(
            StopListening(event_type=EventType.STOP_LISTENING, ts_ms=0)
        )
        await runtime.shutdown()

        assert meter.cleanups == 1
        assert meter.finished is False

    asyncio.run(scenario())
