"""
Microphone level meter.

Acquires its own capture stream, feeds a FrequencyAnalyser and publishes
one normalized level per display frame (~60 Hz) while active.

Lifecycle:
- setup() is idempotent: a second call while an analyser exists is a no-op
- cleanup() cancels sampling, disconnects the analyser and releases the
  stream; safe to call at any time, including during setup()
- acquisition failure (no device, permission denied) is logged and
  swallowed; recognition is unaffected
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

from audio.analysis import FrequencyAnalyser, level_from_bins
from audio.microphone import MicrophoneStream, MicrophoneUnavailable
from observability.logger import log_event
from orchestrator.events import EventType, MeterLevel
from spec import METER_FRAME_INTERVAL_S


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class AudioMeter:
    def __init__(
        self,
        *,
        emit_event: Callable[[MeterLevel], Awaitable[None]],
        open_stream: Callable[..., Any] = MicrophoneStream,
        frame_interval_s: float = METER_FRAME_INTERVAL_S,
    ) -> None:
        self._emit_event = emit_event
        self._open_stream = open_stream
        self._frame_interval_s = frame_interval_s

        self._analyser: FrequencyAnalyser | None = None
        self._stream: Any = None
        self._task: asyncio.Task[None] | None = None

        # Bumped by cleanup(); a setup() that resumes under a newer
        # generation releases what it acquired.
        self._generation = 0

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def setup(self) -> None:
        if self._analyser is not None:
            return

        generation = self._generation
        analyser = FrequencyAnalyser()
        self._analyser = analyser
        stream = self._open_stream(on_block=analyser.push)
        self._stream = stream

        try:
            await asyncio.to_thread(stream.start)
        except MicrophoneUnavailable as exc:
            if generation == self._generation:
                self._analyser = None
                self._stream = None
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "METER_SETUP_FAILED",
                "error": str(exc),
            }, level="WARNING")
            return

        if generation != self._generation:
            stream.stop()
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "METER_SETUP_ABANDONED",
            }, level="DEBUG")
            return

        self._task = asyncio.create_task(self._sample_loop(analyser))

    def cleanup(self) -> None:
        self._generation += 1

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

        analyser, self._analyser = self._analyser, None
        if analyser is not None:
            analyser.disconnect()

        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()

    async def _sample_loop(self, analyser: FrequencyAnalyser) -> None:
        try:
            while analyser.connected:
                level = level_from_bins(analyser.byte_frequency_data())
                await self._emit_event(
                    MeterLevel(
                        event_type=EventType.METER_LEVEL,
                        ts_ms=_now_ms(),
                        level=level,
                    )
                )
                await asyncio.sleep(self._frame_interval_s)
        except asyncio.CancelledError:
            return
