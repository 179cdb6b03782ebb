# pylint: disable=missing-module-docstring,missing-function-docstring
import pytest

from orchestrator.wake_word import contains_wake_word, strip_wake_word


@pytest.mark.parametrize(
    "transcript",
    ["hey jarvis", "Hey Jarvis, lights", "ok HEY JARVIS", "they jarvis"],
)
def test_contains_is_case_insensitive_substring(transcript: str):
    assert contains_wake_word(transcript, "hey jarvis")


def test_contains_rejects_partial_phrase():
    assert not contains_wake_word("hey jar", "hey jarvis")


@pytest.mark.parametrize(
    ("transcript", "expected"),
    [
        ("hey jarvis what's the weather", "what's the weather"),
        ("Hey Jarvis, turn off the lights.", "turn off the lights."),
        ("hey jarvis", ""),
        ("Hey Jarvis!", ""),
        ("play music hey jarvis", "play music"),
        ("no wake word here", "no wake word here"),
    ],
)
def test_strip_removes_phrase_and_leading_separators(transcript: str, expected: str):
    assert strip_wake_word(transcript, "hey jarvis") == expected


def test_strip_escapes_regex_metacharacters():
    assert strip_wake_word("ok (bot) go", "(bot)") == "ok go"
