# pylint: disable=missing-module-docstring,missing-function-docstring
from orchestrator.retry import (
    RetryAttempt,
    get_restart_delay_ms,
    next_attempt,
    reset_attempt,
    should_restart,
)
from spec import RECOGNITION_MAX_RESTARTS, RECOGNITION_RESTART_DELAYS_MS


def test_first_restart_is_immediate():
    assert get_restart_delay_ms(reset_attempt()) == 0


def test_delays_follow_schedule_then_clamp():
    delays = [get_restart_delay_ms(RetryAttempt(attempt=i)) for i in range(8)]

    assert delays[: len(RECOGNITION_RESTART_DELAYS_MS)] == list(RECOGNITION_RESTART_DELAYS_MS)
    assert set(delays[len(RECOGNITION_RESTART_DELAYS_MS):]) == {RECOGNITION_RESTART_DELAYS_MS[-1]}


def test_budget_is_bounded():
    attempt = reset_attempt()
    allowed = 0
    while should_restart(attempt):
        allowed += 1
        attempt = next_attempt(attempt)

    assert allowed == RECOGNITION_MAX_RESTARTS
