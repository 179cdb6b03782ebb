# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
import json
import urllib.parse
from typing import Any, Callable

from adapters.recognition.deepgram import DeepgramRecognitionEngine, parse_results_message
from orchestrator.events import Event, RecognitionEnded, RecognitionResult


def results(transcript: str, is_final: bool) -> dict[str, Any]:
    return {
        "type": "Results",
        "is_final": is_final,
        "channel": {"alternatives": [{"transcript": transcript, "confidence": 0.9}]},
    }


class FakeSocket:
    def __init__(self, messages: list[Any], hold_open: bool = False) -> None:
        self.messages = messages
        self.hold_open = hold_open
        self.sent: list[Any] = []
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message
        if self.hold_open:
            await asyncio.Event().wait()

    async def send(self, data: Any) -> None:
        self.sent.append(data)

    async def close(self) -> None:
        self.closed = True


class FakeMic:
    def __init__(self, *, on_block: Callable[[bytes], None]) -> None:
        self.on_block = on_block
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True


def make_engine(socket: FakeSocket | None = None, connect_error: Exception | None = None):
    events: list[Event] = []
    mics: list[FakeMic] = []
    connects: list[tuple[str, dict[str, Any]]] = []

    async def emit(event: Event) -> None:
        events.append(event)

    async def connect(url: str, **kwargs: Any) -> FakeSocket:
        connects.append((url, kwargs))
        if connect_error is not None:
            raise connect_error
        assert socket is not None
        return socket

    def open_microphone(*, on_block: Callable[[bytes], None]) -> FakeMic:
        mic = FakeMic(on_block=on_block)
        mics.append(mic)
        return mic

    engine = DeepgramRecognitionEngine(
        emit_event=emit,
        api_key="dg_test",
        open_microphone=open_microphone,
        connect=connect,
    )
    return engine, events, mics, connects


def test_parse_results_message():
    assert parse_results_message(results("hey jarvis", True)).transcript == "hey jarvis"
    assert parse_results_message(results("hey", False)).is_final is False
    assert parse_results_message(results("   ", True)) is None
    assert parse_results_message({"type": "Metadata"}) is None
    assert parse_results_message({"type": "Results", "channel": {"alternatives": []}}) is None


def test_url_requests_interim_linear16_16k():
    engine, _, _, _ = make_engine()

    query = urllib.parse.parse_qs(urllib.parse.urlparse(engine.build_url()).query)

    assert query["encoding"] == ["linear16"]
    assert query["sample_rate"] == ["16000"]
    assert query["channels"] == ["1"]
    assert query["interim_results"] == ["true"]
    assert query["model"] == ["nova-2"]


def test_session_emits_results_then_ended():
    socket = FakeSocket([
        json.dumps({"type": "Metadata"}),
        json.dumps(results("hey", False)),
        "not json",
        b"\x00\x01",
        json.dumps(results("hey jarvis", True)),
        json.dumps(results("", True)),
    ])

    async def scenario():
        engine, events, mics, connects = make_engine(socket)
        await engine.start(4)
        await asyncio.sleep(0.05)
        return events, mics, connects

    events, mics, connects = asyncio.run(scenario())

    recognized = [e for e in events if isinstance(e, RecognitionResult)]
    assert [(e.run_id, e.results[0].transcript, e.results[0].is_final) for e in recognized] == [
        (4, "hey", False),
        (4, "hey jarvis", True),
    ]
    assert isinstance(events[-1], RecognitionEnded)
    assert events[-1].run_id == 4
    assert events[-1].reason == "provider_closed"

    assert connects[0][1]["additional_headers"] == {"Authorization": "Token dg_test"}
    assert mics[0].started and mics[0].stopped
    assert socket.closed
    assert json.loads(socket.sent[-1]) == {"type": "CloseStream"}


def test_microphone_audio_is_streamed():
    socket = FakeSocket([], hold_open=True)

    async def scenario() -> None:
        engine, _, mics, _ = make_engine(socket)
        await engine.start(1)
        await asyncio.sleep(0.02)

        mics[0].on_block(b"\x01\x02" * 320)
        await asyncio.sleep(0.02)
        await engine.stop(1)

    asyncio.run(scenario())

    assert b"\x01\x02" * 320 in socket.sent


def test_stop_is_quiet_and_ignores_other_runs():
    socket = FakeSocket([], hold_open=True)

    async def scenario():
        engine, events, mics, _ = make_engine(socket)
        await engine.start(2)
        await asyncio.sleep(0.02)

        await engine.stop(1)
        assert not mics[0].stopped

        await engine.stop(2)
        await asyncio.sleep(0.01)
        return events, mics

    events, mics = asyncio.run(scenario())

    assert events == []
    assert mics[0].stopped
    assert socket.closed


def test_connect_failure_ends_the_run():
    async def scenario():
        engine, events, mics, _ = make_engine(connect_error=OSError("network unreachable"))
        await engine.start(1)
        await asyncio.sleep(0.02)
        return events, mics

    events, mics = asyncio.run(scenario())

    assert len(events) == 1
    assert isinstance(events[0], RecognitionEnded)
    assert events[0].reason.startswith("deepgram_session_failed")
    assert mics == []


class SlowClosingSocket(FakeSocket):
    def __init__(self) -> None:
        super().__init__([], hold_open=True)
        self.release = asyncio.Event()

    async def close(self) -> None:
        await self.release.wait()
        await super().close()


def test_stop_during_restart_targets_the_new_run():
    socket = SlowClosingSocket()

    async def scenario():
        engine, events, mics, _ = make_engine(socket)
        await engine.start(1)
        await asyncio.sleep(0.02)

        # Run 2 is still waiting for run 1 to close when the stop arrives.
        restart = asyncio.create_task(engine.start(2))
        await asyncio.sleep(0.02)
        stop = asyncio.create_task(engine.stop(2))
        await asyncio.sleep(0.02)

        socket.release.set()
        await asyncio.gather(restart, stop)
        await asyncio.sleep(0.02)
        return events, mics

    events, mics = asyncio.run(scenario())

    assert events == []
    assert mics
    assert all(mic.stopped for mic in mics)
