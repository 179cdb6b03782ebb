"""
Encoded-audio decoding and fire-and-forget playback.

decode_audio() turns a provider payload (MP3/WAV/OGG bytes) into float32
samples via soundfile. AudioPlayer.start() opens one sounddevice output
stream per payload; the stream is closed once it has played out. Two
payloads started back to back overlap.
"""

from __future__ import annotations

import asyncio
import io
from typing import Any

import numpy as np
import soundfile as sf


class AudioDecodeError(ValueError):
    """Payload could not be decoded as audio."""


class PlaybackUnavailable(RuntimeError):
    """No output device, or PortAudio missing."""


def decode_audio(payload: bytes) -> tuple[np.ndarray, int]:
    """
    Decode an encoded audio payload.

    Returns:
        (samples, sample_rate) with samples shaped (frames, channels), float32.
    """
    if not payload:
        raise AudioDecodeError("empty payload")
    try:
        samples, sample_rate = sf.read(io.BytesIO(payload), dtype="float32", always_2d=True)
    except (sf.LibsndfileError, RuntimeError, TypeError) as exc:
        raise AudioDecodeError(f"{type(exc).__name__}: {exc}") from exc
    if samples.size == 0:
        raise AudioDecodeError("payload decoded to zero frames")
    return samples, int(sample_rate)


class _Playback:
    """Cursor over one decoded payload, consumed by the output callback."""

    def __init__(self, samples: np.ndarray) -> None:
        self.samples = samples
        self.position = 0
        self.stream: Any = None

    def fill(self, outdata: np.ndarray, frames: int) -> bool:
        """Copy the next block into outdata. Returns False once exhausted."""
        chunk = self.samples[self.position:self.position + frames]
        n = len(chunk)
        outdata[:n] = chunk
        if n < frames:
            outdata[n:] = 0
        self.position += n
        return self.position < len(self.samples)


class AudioPlayer:
    def __init__(self, *, device: int | str | None = None) -> None:
        self._device = device
        self._active: set[_Playback] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def active_count(self) -> int:
        return len(self._active)

    def start(self, samples: np.ndarray, sample_rate: int) -> None:
        """
        Start playing samples and return immediately.

        Must be called from the event loop thread.

        Raises:
            PlaybackUnavailable if no output stream can be opened.
        """
        try:
            import sounddevice as sd  # pylint: disable=import-outside-toplevel
        except OSError as exc:
            raise PlaybackUnavailable(f"PortAudio not found: {exc}") from exc

        self._loop = asyncio.get_running_loop()
        playback = _Playback(samples)

        def _callback(outdata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
            del time_info, status
            if not playback.fill(outdata, frames):
                raise sd.CallbackStop

        def _finished() -> None:
            # PortAudio forbids closing a stream from its own callback thread
            loop = self._loop
            if loop is not None and not loop.is_closed():
                loop.call_soon_threadsafe(self._release, playback)

        try:
            stream = sd.OutputStream(
                samplerate=sample_rate,
                channels=samples.shape[1],
                dtype="float32",
                device=self._device,
                callback=_callback,
                finished_callback=_finished,
            )
            playback.stream = stream
            self._active.add(playback)
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            self._active.discard(playback)
            raise PlaybackUnavailable(f"{type(exc).__name__}: {exc}") from exc

    def stop_all(self) -> None:
        for playback in list(self._active):
            self._release(playback)

    def _release(self, playback: _Playback) -> None:
        if playback not in self._active:
            return
        self._active.discard(playback)
        stream, playback.stream = playback.stream, None
        if stream is not None:
            stream.close(ignore_errors=True)
