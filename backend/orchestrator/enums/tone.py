"""
Voice tone enumeration.

Tone selects the remote provider style and the on-device pitch.
The mappings themselves live in spec.py.
"""

from __future__ import annotations

from enum import Enum


class Tone(str, Enum):
    """Caller-selectable speaking tone."""

    CHEERFUL = "cheerful"
    CALM = "calm"
    SERIOUS = "serious"
    NEUTRAL = "neutral"


def parse_tone(value: str | Tone) -> Tone:
    """
    Coerce a caller-supplied tone.

    Raises:
        ValueError for unknown tone names.
    """
    if isinstance(value, Tone):
        return value
    try:
        return Tone(value.strip().lower())
    except ValueError:
        raise ValueError(f"Unknown voice tone: {value!r}") from None
