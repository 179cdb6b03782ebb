"""
Subsystems whose events are tagged with a run id.
"""

from __future__ import annotations

from enum import Enum


class Service(str, Enum):
    """Which RunIds counter a ServiceEvent is checked against."""

    RECOGNITION = "RECOGNITION"
    SPEECH = "SPEECH"
