"""
Per-session configuration supplied by the caller.

Immutable. Validated once at construction; an invalid wake word or tone
is a caller error and raises ValueError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from orchestrator.enums.tone import Tone, parse_tone


@dataclass(frozen=True)
class VoiceSessionConfig:
    """
    wake_word:
        Phrase whose presence in a finalized transcript triggers on_wake.
    tone:
        Default speaking tone; speak() may override per call.
    always_listening:
        Restart capture after every stop the caller did not ask for.
    on_wake:
        Called with no arguments when a finalized transcript contains the
        wake word.
    on_final_transcript:
        Called with each finalized transcript, wake word removed.
    """

    wake_word: str
    tone: Tone | str = Tone.NEUTRAL
    always_listening: bool = False
    on_wake: Callable[[], None] | None = None
    on_final_transcript: Callable[[str], None] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.wake_word, str) or not self.wake_word.strip():
            raise ValueError("wake_word must be a non-empty string")
        object.__setattr__(self, "wake_word", self.wake_word.strip())
        object.__setattr__(self, "tone", parse_tone(self.tone))
