# pylint: disable=missing-module-docstring,missing-function-docstring

from orchestrator.reducer import reduce
from orchestrator.state_dataclass import SessionState
from orchestrator.events import EventType, StartListening, StopListening
from orchestrator.commands import LogEvent
from orchestrator.enums.state import State


def test_reducer_emits_logevent_with_required_fields():
    state = SessionState(wake_word="hey jarvis", state=State.IDLE)

    event = StartListening(
        event_type=EventType.START_LISTENING,
        ts_ms=123,
    )

    _, commands = reduce(state, event)

    log_events = [c for c in commands if isinstance(c, LogEvent)]
    assert log_events, "Reducer must emit at least one LogEvent"

    payload = log_events[0].event

    assert payload["ts_ms"] == 123
    assert payload["event_type"] == "START_LISTENING"
    assert "state" in payload
    assert "decision" in payload
    assert set(payload["run_ids"]) == {"recognition", "speech"}
    assert set(payload["flags"]) == {"speaking", "always_listening", "restart_attempt"}
    assert isinstance(payload["details"], dict)


def test_state_change_log_names_both_states():
    state = SessionState(wake_word="hey jarvis")

    new_state, commands = reduce(
        state, StartListening(event_type=EventType.START_LISTENING, ts_ms=0)
    )

    changes = [
        c.event for c in commands
        if isinstance(c, LogEvent) and c.event["decision"] == "state_changed"
    ]
    assert len(changes) == 1
    assert changes[0]["details"]["from_state"] == "IDLE"
    assert changes[0]["details"]["to_state"] == new_state.state.value


def test_ignored_events_log_at_debug():
    state = SessionState(wake_word="hey jarvis")

    _, commands = reduce(state, StopListening(event_type=EventType.STOP_LISTENING, ts_ms=0))

    assert len(commands) == 1
    assert isinstance(commands[0], LogEvent)
    assert commands[0].level == "DEBUG"
    assert commands[0].event["details"]["reason"] == "not_listening"
