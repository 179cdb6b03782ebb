"""
Speech output pipeline.

One speak() per StartSpeech command:

1. Remote synthesis (if configured) -> decode -> start playback.
   SpeechFinished(path="remote") is emitted as soon as playback starts.
2. Any remote failure (provider error, empty payload, undecodable audio,
   no output device) falls through to the on-device engine.
   SpeechFinished(path="local") is emitted when the utterance ends.
3. With neither path available, SpeechFinished(path="none").

Exactly one SpeechFinished is emitted per run_id, unless the pipeline is
closed while an on-device utterance is still running.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import numpy as np

from adapters.tts.base import LocalSynthesizer, RemoteSynthesizer, SynthesisError
from audio.playback import AudioDecodeError, AudioPlayer, PlaybackUnavailable, decode_audio
from observability.logger import log_event
from orchestrator.enums.service import Service
from orchestrator.enums.tone import Tone
from orchestrator.events import EventType, SpeechFinished
from speech.voices import build_utterance, style_for_tone

PATH_REMOTE = "remote"
PATH_LOCAL = "local"
PATH_NONE = "none"


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class SpeechOutputPipeline:
    def __init__(
        self,
        *,
        emit_event: Callable[[SpeechFinished], Awaitable[None]],
        remote: RemoteSynthesizer | None,
        local: LocalSynthesizer | None,
        player: AudioPlayer | None,
        decode: Callable[[bytes], tuple[np.ndarray, int]] = decode_audio,
        session_id: str = "",
    ) -> None:
        self._emit_event = emit_event
        self._remote = remote
        self._local = local
        self._player = player
        self._decode = decode
        self._session_id = session_id
        self._local_tasks: set[asyncio.Task[None]] = set()

    @property
    def remote_available(self) -> bool:
        return self._remote is not None and self._remote.configured and self._player is not None

    @property
    def local_available(self) -> bool:
        return self._local is not None and self._local.available

    async def speak(self, *, run_id: int, text: str, tone: Tone) -> None:
        if self.remote_available and await self._speak_remote(run_id, text, tone):
            await self._finish(run_id, PATH_REMOTE)
            return

        if self.local_available:
            task = asyncio.create_task(self._run_local(run_id, text, tone))
            self._local_tasks.add(task)
            task.add_done_callback(self._local_tasks.discard)
            return

        self._log("SPEECH_UNAVAILABLE", run_id, level="WARNING")
        await self._finish(run_id, PATH_NONE)

    async def close(self) -> None:
        tasks = list(self._local_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._player is not None:
            self._player.stop_all()
        if self._remote is not None:
            await self._remote.close()
        if self._local is not None:
            self._local.close()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    async def _speak_remote(self, run_id: int, text: str, tone: Tone) -> bool:
        """True if remote playback started; failures are logged, not raised."""
        assert self._remote is not None and self._player is not None
        style = style_for_tone(tone)
        try:
            payload = await self._remote.synthesize(text=text, style=style)
            samples, sample_rate = self._decode(payload)
            self._player.start(samples, sample_rate)
        except (SynthesisError, AudioDecodeError, PlaybackUnavailable) as exc:
            self._log(
                "REMOTE_TTS_FAILED",
                run_id,
                level="WARNING",
                error=f"{type(exc).__name__}: {exc}",
                style=style.name,
            )
            return False
        return True

    async def _run_local(self, run_id: int, text: str, tone: Tone) -> None:
        assert self._local is not None
        try:
            voices = await self._local.list_voices()
            await self._local.speak(build_utterance(text, tone, voices))
        except asyncio.CancelledError:
            return
        except SynthesisError as exc:
            self._log(
                "LOCAL_TTS_FAILED",
                run_id,
                level="WARNING",
                error=str(exc),
            )
        await self._finish(run_id, PATH_LOCAL)

    async def _finish(self, run_id: int, path: str) -> None:
        await self._emit_event(
            SpeechFinished(
                event_type=EventType.SPEECH_FINISHED,
                ts_ms=_now_ms(),
                service=Service.SPEECH,
                run_id=run_id,
                path=path,
            )
        )

    def _log(self, event_type: str, run_id: int, *, level: str = "INFO", **details) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "event_type": event_type,
            "session_id": self._session_id,
            "speech_run_id": run_id,
            **details,
        }, level=level)
