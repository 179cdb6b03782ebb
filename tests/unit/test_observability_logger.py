# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger


def _capture(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)
    return captured


def test_log_event_emits_valid_jsonl(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """
    - log_event emits exactly one JSONL line
    - payload is serialized as-is
    - output sink is patchable
    """
    captured = _capture(monkeypatch)

    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    assert len(captured) == 1
    assert json.loads(captured[0]) == payload


def test_log_event_drops_records_below_threshold(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured = _capture(monkeypatch)
    logger.configure(level="WARNING")

    logger.log_event({"event_type": "QUIET"}, level="INFO")
    logger.log_event({"event_type": "LOUD"}, level="ERROR")

    assert [json.loads(line)["event_type"] for line in captured] == ["LOUD"]


def test_disabled_logger_writes_nothing(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _capture(monkeypatch)
    logger.configure(level="DEBUG", enabled=False)

    logger.log_event({"event_type": "ANY"}, level="ERROR")

    assert captured == []


def test_unknown_level_name_falls_back_to_info(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _capture(monkeypatch)
    logger.configure(level="verbose")

    logger.log_event({"event_type": "DEBUG_ONLY"}, level="DEBUG")
    logger.log_event({"event_type": "INFO_RECORD"})

    assert [json.loads(line)["event_type"] for line in captured] == ["INFO_RECORD"]


def test_unserializable_payload_falls_back_without_raising(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured = _capture(monkeypatch)

    logger.log_event({"ts_ms": 7, "event_type": "BAD", "obj": object()})

    assert len(captured) == 1
    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert decoded["ts_ms"] == 7
    assert "BAD" in decoded["original_event_repr"]
