"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No protocol constants
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the session factory and the HTTP app.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool

    # ------------------------------------------------------------------
    # Speech recognition
    # ------------------------------------------------------------------

    deepgram_api_key: str | None
    deepgram_model: str

    # ------------------------------------------------------------------
    # TTS
    # ------------------------------------------------------------------

    elevenlabs_api_key: str | None
    elevenlabs_voice_id: str | None
    elevenlabs_model_id: str
    local_tts_enabled: bool

    # ------------------------------------------------------------------
    # Session defaults
    # ------------------------------------------------------------------

    wake_word: str
    voice_tone: str
    always_listening: bool

    @property
    def remote_tts_configured(self) -> bool:
        """True when both ElevenLabs credentials are present."""
        return bool(self.elevenlabs_api_key) and bool(self.elevenlabs_voice_id)

    @property
    def recognition_configured(self) -> bool:
        return bool(self.deepgram_api_key)

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Missing provider credentials are not an error: the matching
        capability is reported unavailable and the session degrades.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",

            deepgram_api_key=os.environ.get("DEEPGRAM_API_KEY") or None,
            deepgram_model=os.environ.get("DEEPGRAM_MODEL", "nova-2"),

            elevenlabs_api_key=os.environ.get("ELEVENLABS_API_KEY") or None,
            elevenlabs_voice_id=os.environ.get("ELEVENLABS_VOICE_ID") or None,
            elevenlabs_model_id=os.environ.get("ELEVENLABS_MODEL_ID", "eleven_multilingual_v2"),
            local_tts_enabled=_env_flag("LOCAL_TTS_ENABLED", "1"),

            wake_word=os.environ.get("WAKE_WORD", "hey jarvis"),
            voice_tone=os.environ.get("VOICE_TONE", "neutral"),
            always_listening=_env_flag("ALWAYS_LISTENING", "1"),
        )
