"""
Deepgram live recognition engine.

Session model:
- One WebSocket connection per recognition run (start(run_id) .. stop/end).
- Microphone PCM16 16 kHz mono blocks are streamed as binary frames.
- Interim results are enabled; every non-empty "Results" message becomes one
  RecognitionResult carrying a single slot (result_index 0).
- When Deepgram closes the socket (idle timeout, network drop) or the
  connection cannot be opened, RecognitionEnded is emitted for that run.
- stop(run_id) closes the stream quietly; no RecognitionEnded.

Events are awaited in order from the receive loop so results are reduced in
the order Deepgram produced them.
"""

from __future__ import annotations

import asyncio
import json
import time
import urllib.parse
from typing import Any, Awaitable, Callable

from websockets.asyncio.client import connect as ws_connect

from adapters.recognition.base import RecognitionEngine
from audio.microphone import MicrophoneStream, MicrophoneUnavailable
from observability.logger import log_event
from orchestrator.enums.service import Service
from orchestrator.events import (
    Event,
    EventType,
    RecognitionAlternative,
    RecognitionEnded,
    RecognitionResult,
)
from spec import (
    AUDIO_CHANNELS,
    AUDIO_SAMPLE_RATE_HZ,
    RECOGNITION_INTERIM_RESULTS,
    RECOGNITION_LANGUAGE,
)

DEEPGRAM_LISTEN_URL = "wss://api.deepgram.com/v1/listen"

# ~2 s of 20 ms blocks; older audio is dropped if the socket stalls
_AUDIO_QUEUE_MAXSIZE = 100


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def parse_results_message(data: dict[str, Any]) -> RecognitionAlternative | None:
    """
    Extract the best alternative from a Deepgram "Results" message.

    Returns None for other message types and for empty transcripts
    (Deepgram finalizes silence as an empty final).
    """
    if data.get("type") != "Results":
        return None
    alternatives = (data.get("channel") or {}).get("alternatives") or []
    if not alternatives:
        return None
    transcript = alternatives[0].get("transcript")
    if not isinstance(transcript, str):
        return None
    if not transcript.strip():
        return None
    return RecognitionAlternative(transcript=transcript, is_final=bool(data.get("is_final")))


class DeepgramRecognitionEngine(RecognitionEngine):
    def __init__(
        self,
        *,
        emit_event: Callable[[Event], Awaitable[None]],
        api_key: str,
        model: str = "nova-2",
        language: str = RECOGNITION_LANGUAGE,
        interim_results: bool = RECOGNITION_INTERIM_RESULTS,
        open_microphone: Callable[..., Any] = MicrophoneStream,
        connect: Callable[..., Any] = ws_connect,
    ) -> None:
        self._emit = emit_event
        self._api_key = api_key
        self._model = model
        self._language = language
        self._interim_results = interim_results
        self._open_microphone = open_microphone
        self._connect = connect

        self._run_id: int | None = None
        self._task: asyncio.Task[None] | None = None

    # -------------------------------------------------------------------------
    # RecognitionEngine
    # -------------------------------------------------------------------------

    async def start(self, run_id: int) -> None:
        # The new run owns the slot before the old one is awaited, so a
        # stop(run_id) arriving meanwhile targets it.
        previous = self._task
        self._run_id = run_id
        self._task = asyncio.create_task(self._run_session(run_id))
        await self._cancel_task(previous)

    async def stop(self, run_id: int) -> None:
        if run_id != self._run_id:
            return
        await self._cancel_current()

    async def close(self) -> None:
        await self._cancel_current()

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    def build_url(self) -> str:
        params: dict[str, str] = {
            "model": self._model,
            "language": self._language,
            "encoding": "linear16",
            "sample_rate": str(AUDIO_SAMPLE_RATE_HZ),
            "channels": str(AUDIO_CHANNELS),
            "interim_results": "true" if self._interim_results else "false",
            "punctuate": "true",
        }
        return f"{DEEPGRAM_LISTEN_URL}?{urllib.parse.urlencode(params)}"

    async def _cancel_current(self) -> None:
        task, self._task = self._task, None
        self._run_id = None
        await self._cancel_task(task)

    @staticmethod
    async def _cancel_task(task: asyncio.Task[None] | None) -> None:
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _run_session(self, run_id: int) -> None:
        loop = asyncio.get_running_loop()
        audio_q: asyncio.Queue[bytes] = asyncio.Queue(maxsize=_AUDIO_QUEUE_MAXSIZE)

        def _offer(block: bytes) -> None:
            if audio_q.full():
                audio_q.get_nowait()
            audio_q.put_nowait(block)

        def _on_block(block: bytes) -> None:
            loop.call_soon_threadsafe(_offer, block)

        ws: Any = None
        mic: Any = None
        sender: asyncio.Task[None] | None = None
        reason: str | None = None

        try:
            ws = await self._connect(
                self.build_url(),
                additional_headers={"Authorization": f"Token {self._api_key}"},
                max_size=2**22,
            )
            mic = self._open_microphone(on_block=_on_block)
            await asyncio.to_thread(mic.start)
            sender = asyncio.create_task(self._send_audio(ws, audio_q))

            log_event({
                "ts_ms": _now_ms(),
                "event_type": "RECOGNITION_CONNECTED",
                "provider": "deepgram",
                "recognition_run_id": run_id,
            }, level="DEBUG")

            async for raw in ws:
                if isinstance(raw, bytes):
                    continue
                try:
                    data = json.loads(raw)
                except ValueError:
                    continue
                await self._handle_message(run_id, data)

            reason = "provider_closed"
        except asyncio.CancelledError:
            # stop() / replacement: quiet exit
            reason = None
        except MicrophoneUnavailable as exc:
            reason = f"microphone_unavailable: {exc}"
        except Exception as exc:  # pylint: disable=broad-exception-caught
            reason = f"deepgram_session_failed: {exc!r}"
        finally:
            if sender is not None and not sender.done():
                sender.cancel()
            if mic is not None:
                mic.stop()
            if ws is not None:
                await self._close_socket(ws)

        if reason is None:
            return

        # Ended sessions release the slot first: the reducer may restart
        # recognition synchronously from inside emit.
        if self._task is asyncio.current_task():
            self._task = None
            self._run_id = None

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "RECOGNITION_SESSION_ENDED",
            "provider": "deepgram",
            "recognition_run_id": run_id,
            "reason": reason,
        })
        await self._emit(
            RecognitionEnded(
                event_type=EventType.RECOGNITION_ENDED,
                ts_ms=_now_ms(),
                service=Service.RECOGNITION,
                run_id=run_id,
                reason=reason,
            )
        )

    async def _close_socket(self, ws: Any) -> None:
        try:
            await ws.send(json.dumps({"type": "CloseStream"}))
            await ws.close()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "RECOGNITION_CLOSE_FAILED",
                "provider": "deepgram",
                "error": f"{type(exc).__name__}: {exc}",
            }, level="DEBUG")

    async def _send_audio(self, ws: Any, audio_q: asyncio.Queue[bytes]) -> None:
        while True:
            block = await audio_q.get()
            await ws.send(block)

    async def _handle_message(self, run_id: int, data: dict[str, Any]) -> None:
        if data.get("type") == "Error":
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "RECOGNITION_PROVIDER_ERROR",
                "provider": "deepgram",
                "recognition_run_id": run_id,
                "description": data.get("description"),
            }, level="WARNING")
            return

        alternative = parse_results_message(data)
        if alternative is None:
            return

        await self._emit(
            RecognitionResult(
                event_type=EventType.RECOGNITION_RESULT,
                ts_ms=_now_ms(),
                service=Service.RECOGNITION,
                run_id=run_id,
                results=(alternative,),
                result_index=0,
            )
        )
