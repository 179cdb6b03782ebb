"""
ElevenLabs remote synthesis adapter.

One request per utterance:
- model from config (eleven_multilingual_v2 by default)
- MP3 output
- voice settings derived from the tone style
"""

from __future__ import annotations

import time
from typing import Any

from elevenlabs import VoiceSettings
from elevenlabs.client import AsyncElevenLabs

from adapters.tts.base import RemoteSynthesizer, SynthesisError
from observability.logger import log_event
from speech.voices import ToneStyle
from spec import (
    REMOTE_TTS_OUTPUT_FORMAT,
    REMOTE_TTS_SIMILARITY_BOOST,
    REMOTE_TTS_USE_SPEAKER_BOOST,
)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class ElevenLabsSynthesizer(RemoteSynthesizer):
    def __init__(
        self,
        *,
        api_key: str | None,
        voice_id: str | None,
        model_id: str,
        client: Any | None = None,
    ) -> None:
        self._api_key = api_key
        self._voice_id = voice_id
        self._model_id = model_id
        self._client = client
        if self._client is None and api_key:
            self._client = AsyncElevenLabs(api_key=api_key)

    @property
    def configured(self) -> bool:
        return self._client is not None and bool(self._voice_id)

    @property
    def model_id(self) -> str:
        return self._model_id

    def voice_settings(self, style: ToneStyle) -> VoiceSettings:
        return VoiceSettings(
            stability=style.stability,
            similarity_boost=REMOTE_TTS_SIMILARITY_BOOST,
            style=style.exaggeration,
            use_speaker_boost=REMOTE_TTS_USE_SPEAKER_BOOST,
        )

    async def synthesize(self, *, text: str, style: ToneStyle) -> bytes:
        if not self.configured:
            raise SynthesisError("remote synthesis not configured")

        start_ms = _now_ms()
        chunks: list[bytes] = []
        try:
            audio_stream = self._client.text_to_speech.convert(
                voice_id=self._voice_id,
                text=text,
                model_id=self._model_id,
                output_format=REMOTE_TTS_OUTPUT_FORMAT,
                voice_settings=self.voice_settings(style),
            )
            async for chunk in audio_stream:
                if chunk:
                    chunks.append(chunk)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise SynthesisError(f"{type(exc).__name__}: {exc}") from exc

        audio = b"".join(chunks)
        if not audio:
            raise SynthesisError("empty audio payload")

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "REMOTE_TTS_COMPLETE",
            "provider": "elevenlabs",
            "style": style.name,
            "bytes": len(audio),
            "latency_ms": _now_ms() - start_ms,
        }, level="DEBUG")
        return audio
