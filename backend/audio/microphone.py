"""
Microphone capture.

Thin wrapper over a sounddevice raw input stream delivering PCM16 mono
blocks to a callback. The callback runs on the PortAudio thread; callers
that need the event loop must marshal with call_soon_threadsafe.

sounddevice is imported lazily: loading it requires the PortAudio shared
library, which is absent on headless hosts. That absence surfaces as
MicrophoneUnavailable on start(), not as an import failure of this
package.
"""

from __future__ import annotations

import threading
from typing import Any, Callable

from spec import AUDIO_CHANNELS, AUDIO_SAMPLE_RATE_HZ, AUDIO_SAMPLES_PER_FRAME


class MicrophoneUnavailable(RuntimeError):
    """No capture device, no PortAudio, or permission denied."""


class MicrophoneStream:
    def __init__(
        self,
        *,
        on_block: Callable[[bytes], None],
        sample_rate: int = AUDIO_SAMPLE_RATE_HZ,
        block_frames: int = AUDIO_SAMPLES_PER_FRAME,
        device: int | str | None = None,
    ) -> None:
        self._on_block = on_block
        self._sample_rate = sample_rate
        self._block_frames = block_frames
        self._device = device
        self._stream: Any = None
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def active(self) -> bool:
        return self._stream is not None

    def start(self) -> None:
        """
        Open and start the input stream. Blocking; call via to_thread.

        Raises:
            MicrophoneUnavailable if the device cannot be opened.
        """
        with self._lock:
            if self._stream is not None or self._stopped:
                return
        try:
            import sounddevice as sd  # pylint: disable=import-outside-toplevel
        except OSError as exc:
            raise MicrophoneUnavailable(f"PortAudio not found: {exc}") from exc

        try:
            stream = sd.RawInputStream(
                samplerate=self._sample_rate,
                channels=AUDIO_CHANNELS,
                dtype="int16",
                blocksize=self._block_frames,
                device=self._device,
                callback=self._callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            raise MicrophoneUnavailable(f"{type(exc).__name__}: {exc}") from exc

        with self._lock:
            # stop() may have run on the loop thread while we were opening
            if not self._stopped:
                self._stream = stream
                return
        stream.stop()
        stream.close()

    def stop(self) -> None:
        """Stop and close the stream. Idempotent; a stopped stream never restarts."""
        with self._lock:
            self._stopped = True
            stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()

    def _callback(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        del frames, time_info, status
        self._on_block(bytes(indata))
