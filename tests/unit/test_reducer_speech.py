# pylint: disable=missing-module-docstring,missing-function-docstring
from dataclasses import replace

from orchestrator.reducer import reduce
from orchestrator.state_dataclass import SessionState
from orchestrator.run_ids import RunIds
from orchestrator.enums.service import Service
from orchestrator.enums.state import State
from orchestrator.enums.tone import Tone

from orchestrator.events import EventType, SpeakRequested, SpeechFinished
from orchestrator.commands import Command, LogEvent, StartSpeech


def speak(text: str, tone: Tone | None = None) -> SpeakRequested:
    return SpeakRequested(event_type=EventType.SPEAK, ts_ms=0, text=text, tone=tone)


def finished(run_id: int, path: str = "local") -> SpeechFinished:
    return SpeechFinished(
        event_type=EventType.SPEECH_FINISHED,
        ts_ms=0,
        service=Service.SPEECH,
        run_id=run_id,
        path=path,
    )


def base(**overrides) -> SessionState:
    return replace(SessionState(wake_word="hey jarvis"), **overrides)


def non_log(commands: tuple[Command, ...]) -> list[Command]:
    return [c for c in commands if not isinstance(c, LogEvent)]


def test_blank_text_is_a_noop():
    state = base()

    for text in ("", "   ", "\n\t"):
        new_state, commands = reduce(state, speak(text))
        assert new_state is state
        assert non_log(commands) == []


def test_speak_sets_speaking_and_uses_session_tone():
    state = base(tone=Tone.CALM)

    new_state, commands = reduce(state, speak("Good evening"))

    assert new_state.speaking is True
    assert non_log(commands) == [StartSpeech(run_id=1, text="Good evening", tone=Tone.CALM)]


def test_per_call_tone_overrides_session_tone():
    _, commands = reduce(base(tone=Tone.CALM), speak("Alert", Tone.SERIOUS))

    assert non_log(commands) == [StartSpeech(run_id=1, text="Alert", tone=Tone.SERIOUS)]


def test_speaking_does_not_touch_listening():
    state = base(state=State.LISTENING, active_runs=RunIds(recognition=3))

    new_state, _ = reduce(state, speak("hello"))

    assert new_state.state is State.LISTENING
    assert new_state.active_runs.recognition == 3


def test_finish_clears_speaking():
    state, _ = reduce(base(), speak("hello"))

    new_state, _ = reduce(state, finished(1, "remote"))

    assert new_state.speaking is False


def test_superseded_finish_does_not_clear_speaking():
    state, _ = reduce(base(), speak("first"))
    state, _ = reduce(state, speak("second"))

    after_first, commands = reduce(state, finished(1))

    assert after_first.speaking is True
    assert [c.event["decision"] for c in commands if isinstance(c, LogEvent)] == ["ignore"]

    after_second, _ = reduce(after_first, finished(2))
    assert after_second.speaking is False


def test_speak_after_close_is_ignored():
    state = base(closed=True)

    new_state, commands = reduce(state, speak("hello"))

    assert new_state is state
    assert non_log(commands) == []
