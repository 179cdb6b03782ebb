# pylint: disable=missing-module-docstring,missing-function-docstring
import json
from typing import Any

import pytest

from observability import logger


@pytest.fixture(autouse=True)
def captured_logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Route log_event output into a list instead of stdout."""
    records: list[dict[str, Any]] = []
    monkeypatch.setattr(logger, "_print", lambda line: records.append(json.loads(line)))
    logger.configure(level="DEBUG", enabled=True)
    yield records
    logger.configure(level="INFO", enabled=True)
