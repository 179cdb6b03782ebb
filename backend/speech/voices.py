"""
Tone and voice selection for speech output.

Pure mapping helpers shared by the pipeline and the HTTP voice route.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from orchestrator.enums.tone import Tone
from spec import (
    LOCAL_TTS_PITCH_MAP,
    LOCAL_TTS_PREFERRED_VOICE_LABEL,
    LOCAL_TTS_RATE,
    REMOTE_TTS_STABILITY_DEFAULT,
    REMOTE_TTS_STABILITY_NARRATION,
    REMOTE_TTS_STYLE_EXAGGERATION,
    TONE_STYLE_MAP,
)


@dataclass(frozen=True)
class ToneStyle:
    """Remote provider style for a tone."""
    name: str
    stability: float
    exaggeration: float = 0.0


@dataclass(frozen=True)
class VoiceInfo:
    """One on-device voice as reported by the local engine."""
    id: str
    name: str
    gender: str | None = None


@dataclass(frozen=True)
class Utterance:
    """A fully parameterized on-device utterance."""
    text: str
    voice_id: str | None
    pitch: float
    rate: float


def style_for_tone(tone: Tone) -> ToneStyle:
    name = TONE_STYLE_MAP[tone.value]
    stability = (
        REMOTE_TTS_STABILITY_NARRATION if name == "narration"
        else REMOTE_TTS_STABILITY_DEFAULT
    )
    return ToneStyle(
        name=name,
        stability=stability,
        exaggeration=REMOTE_TTS_STYLE_EXAGGERATION[name],
    )


def pitch_for_tone(tone: Tone) -> float:
    return LOCAL_TTS_PITCH_MAP[tone.value]


def select_voice(voices: Sequence[VoiceInfo]) -> VoiceInfo | None:
    """
    First voice labeled female (by name or gender), else the first voice.

    None when the engine reports no voices; the engine default is used.
    """
    label = LOCAL_TTS_PREFERRED_VOICE_LABEL
    for voice in voices:
        if label in voice.name.lower() or label == (voice.gender or "").lower():
            return voice
    return voices[0] if voices else None


def build_utterance(text: str, tone: Tone, voices: Sequence[VoiceInfo]) -> Utterance:
    voice = select_voice(voices)
    return Utterance(
        text=text,
        voice_id=voice.id if voice is not None else None,
        pitch=pitch_for_tone(tone),
        rate=LOCAL_TTS_RATE,
    )
