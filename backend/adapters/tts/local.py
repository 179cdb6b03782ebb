"""
On-device speech via pyttsx3.

pyttsx3 engines are not thread-safe and runAndWait() blocks, so every
engine call runs on one dedicated worker thread. The engine is created
lazily on that thread; a failed init marks the synthesizer unavailable.
"""

from __future__ import annotations

import asyncio
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pyttsx3

from adapters.tts.base import LocalSynthesizer, SynthesisError
from observability.logger import log_event
from speech.voices import Utterance, VoiceInfo
from spec import LOCAL_TTS_BASE_RATE_WPM

# espeak pitch is 0..100 with 50 as the voice default
_ESPEAK_DEFAULT_PITCH = 50


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Pyttsx3Synthesizer(LocalSynthesizer):
    def __init__(self, *, base_rate_wpm: int = LOCAL_TTS_BASE_RATE_WPM) -> None:
        self._base_rate_wpm = base_rate_wpm
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pyttsx3")
        self._engine: Any = None
        self._init_failed = False
        self._voices: tuple[VoiceInfo, ...] | None = None

    @property
    def available(self) -> bool:
        return not self._init_failed

    async def list_voices(self) -> tuple[VoiceInfo, ...]:
        # Installed voices do not change while the engine lives; once listed
        # they are served without queueing behind a running utterance.
        if self._voices is not None:
            return self._voices
        loop = asyncio.get_running_loop()
        voices = await loop.run_in_executor(self._executor, self._list_voices_blocking)
        if self._engine is not None:
            self._voices = voices
        return voices

    async def speak(self, utterance: Utterance) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self._speak_blocking, utterance)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    # ------------------------------------------------------------------
    # Worker thread
    # ------------------------------------------------------------------

    def _ensure_engine(self) -> Any:
        if self._engine is not None:
            return self._engine
        if self._init_failed:
            raise SynthesisError("on-device engine unavailable")
        try:
            self._engine = pyttsx3.init()
        except (ImportError, OSError, RuntimeError) as exc:
            self._init_failed = True
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "LOCAL_TTS_INIT_FAILED",
                "error": f"{type(exc).__name__}: {exc}",
            }, level="WARNING")
            raise SynthesisError(f"{type(exc).__name__}: {exc}") from exc
        return self._engine

    def _list_voices_blocking(self) -> tuple[VoiceInfo, ...]:
        try:
            engine = self._ensure_engine()
        except SynthesisError:
            return ()
        voices = engine.getProperty("voices") or []
        return tuple(
            VoiceInfo(
                id=str(v.id),
                name=str(v.name or ""),
                gender=v.gender if isinstance(v.gender, str) else None,
            )
            for v in voices
        )

    def _speak_blocking(self, utterance: Utterance) -> None:
        engine = self._ensure_engine()
        try:
            if utterance.voice_id is not None:
                engine.setProperty("voice", utterance.voice_id)
            engine.setProperty("rate", int(self._base_rate_wpm * utterance.rate))
            # Only the espeak driver understands pitch; sapi5/nsss reject
            # unknown properties when the command queue runs.
            if sys.platform.startswith("linux"):
                pitch = int(round(_ESPEAK_DEFAULT_PITCH * utterance.pitch))
                engine.setProperty("pitch", max(0, min(100, pitch)))
            engine.say(utterance.text)
            engine.runAndWait()
        except (KeyError, OSError, RuntimeError) as exc:
            raise SynthesisError(f"{type(exc).__name__}: {exc}") from exc
