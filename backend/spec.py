"""
SPEC-AS-CONSTANTS
-----------------
Single source of truth for all behavioral invariants in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Mapping, Tuple

# =============================================================================
# Microphone capture (PCM16 mono @ 16kHz, 20ms blocks)
# =============================================================================

AUDIO_SAMPLE_RATE_HZ: Final[int] = 16_000
AUDIO_CHANNELS: Final[int] = 1
AUDIO_FRAME_MS: Final[int] = 20

AUDIO_SAMPLES_PER_FRAME: Final[int] = (AUDIO_SAMPLE_RATE_HZ * AUDIO_FRAME_MS) // 1000
AUDIO_FRAME_DURATION_S: Final[float] = AUDIO_FRAME_MS / 1000.0

# =============================================================================
# Speech recognition
# =============================================================================

RECOGNITION_LANGUAGE: Final[str] = "en-US"
RECOGNITION_INTERIM_RESULTS: Final[bool] = True


# Auto-restart backoff (consecutive restarts without an intervening result).
# Attempt 0 restarts immediately (the common provider idle-timeout case).
RECOGNITION_RESTART_DELAYS_MS: Final[Tuple[int, ...]] = (0, 250, 1_000, 4_000)
RECOGNITION_MAX_RESTARTS: Final[int] = 5

# =============================================================================
# Always-listening
# =============================================================================

ALWAYS_LISTENING_DEBOUNCE_MS: Final[int] = 60

# =============================================================================
# Audio meter (browser AnalyserNode semantics)
# =============================================================================

METER_FFT_SIZE: Final[int] = 2048
METER_MIN_DECIBELS: Final[float] = -100.0
METER_MAX_DECIBELS: Final[float] = -30.0
METER_LEVEL_DIVISOR: Final[float] = 180.0
METER_SMOOTHING_TIME_CONSTANT: Final[float] = 0.8

# One sample per display frame (~60 Hz)
METER_FRAME_INTERVAL_S: Final[float] = 1.0 / 60.0

# =============================================================================
# Speech output
# =============================================================================

# Tone -> remote provider style name
TONE_STYLE_MAP: Final[Mapping[str, str]] = {
    "cheerful": "cheerful",
    "calm": "soothing",
    "serious": "narration",
    "neutral": "default",
}

# Remote provider voice settings
REMOTE_TTS_OUTPUT_FORMAT: Final[str] = "mp3_44100_128"
REMOTE_TTS_STABILITY_NARRATION: Final[float] = 0.4
REMOTE_TTS_STABILITY_DEFAULT: Final[float] = 0.65
REMOTE_TTS_SIMILARITY_BOOST: Final[float] = 0.75
REMOTE_TTS_USE_SPEAKER_BOOST: Final[bool] = True

# Provider style name -> VoiceSettings.style (0 = no exaggeration)
REMOTE_TTS_STYLE_EXAGGERATION: Final[Mapping[str, float]] = {
    "cheerful": 0.6,
    "soothing": 0.15,
    "narration": 0.3,
    "default": 0.0,
}

# On-device synthesis (pitch / rate are multipliers of the engine default)
LOCAL_TTS_PITCH_MAP: Final[Mapping[str, float]] = {
    "cheerful": 1.2,
    "serious": 0.8,
    "calm": 1.0,
    "neutral": 1.0,
}
LOCAL_TTS_RATE: Final[float] = 1.0
LOCAL_TTS_PREFERRED_VOICE_LABEL: Final[str] = "female"

# pyttsx3 reports rate in words per minute
LOCAL_TTS_BASE_RATE_WPM: Final[int] = 200

