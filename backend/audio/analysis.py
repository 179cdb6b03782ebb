"""
Frequency analysis for the microphone level meter.

Reproduces the byte frequency data of a Web Audio AnalyserNode so the
level published to callers has the same scale as a browser meter:

1. Blackman window over the last fft_size samples
2. Magnitude spectrum, normalized by fft_size
3. Exponential smoothing across frames
4. Conversion to dB and linear mapping of [min_db, max_db] onto 0..255

The level is the mean bin value divided by METER_LEVEL_DIVISOR, clamped
to [0, 1].
"""

from __future__ import annotations

import numpy as np

from spec import (
    METER_FFT_SIZE,
    METER_LEVEL_DIVISOR,
    METER_MAX_DECIBELS,
    METER_MIN_DECIBELS,
    METER_SMOOTHING_TIME_CONSTANT,
)


def blackman_window(size: int) -> np.ndarray:
    """Blackman window with the AnalyserNode coefficients (a = 0.16)."""
    n = np.arange(size, dtype=np.float64)
    return (
        0.42
        - 0.5 * np.cos(2.0 * np.pi * n / size)
        + 0.08 * np.cos(4.0 * np.pi * n / size)
    )


def magnitude_spectrum(samples: np.ndarray, window: np.ndarray) -> np.ndarray:
    """
    Normalized magnitude of the first len(samples) // 2 FFT bins.

    samples must already be exactly len(window) long.
    """
    size = len(window)
    spectrum = np.fft.rfft(samples * window)
    return np.abs(spectrum[: size // 2]) / size


def to_byte_frequency_data(
    magnitudes: np.ndarray,
    *,
    min_db: float = METER_MIN_DECIBELS,
    max_db: float = METER_MAX_DECIBELS,
) -> np.ndarray:
    """Map linear magnitudes onto unsigned bytes over [min_db, max_db]."""
    with np.errstate(divide="ignore"):
        db = 20.0 * np.log10(magnitudes)
    scaled = np.floor((255.0 / (max_db - min_db)) * (db - min_db))
    # log10(0) = -inf lands below min_db and clamps to 0
    scaled = np.nan_to_num(scaled, nan=0.0, neginf=0.0, posinf=255.0)
    return np.clip(scaled, 0, 255).astype(np.uint8)


def level_from_bins(bins: np.ndarray) -> float:
    """Normalized meter level for one frame of byte frequency data."""
    if bins.size == 0:
        return 0.0
    avg = float(np.mean(bins))
    return min(1.0, max(0.0, avg / METER_LEVEL_DIVISOR))


class FrequencyAnalyser:
    """
    Rolling analyser fed from the capture callback.

    push() may be called from the audio device thread; it only replaces
    the sample buffer reference. byte_frequency_data() is called from the
    event loop and owns the smoothing state.
    """

    def __init__(
        self,
        *,
        fft_size: int = METER_FFT_SIZE,
        smoothing: float = METER_SMOOTHING_TIME_CONSTANT,
    ) -> None:
        self._fft_size = fft_size
        self._smoothing = smoothing
        self._window = blackman_window(fft_size)
        self._samples = np.zeros(fft_size, dtype=np.float32)
        self._smoothed = np.zeros(fft_size // 2, dtype=np.float64)
        self._connected = True

    @property
    def frequency_bin_count(self) -> int:
        return self._fft_size // 2

    @property
    def connected(self) -> bool:
        return self._connected

    def push(self, pcm_bytes: bytes) -> None:
        """Append a PCM16 block; keeps the most recent fft_size samples."""
        if not self._connected:
            return
        usable = len(pcm_bytes) - (len(pcm_bytes) % 2)
        block = np.frombuffer(pcm_bytes[:usable], dtype="<i2").astype(np.float32) / 32768.0
        if block.size == 0:
            return
        self._samples = np.concatenate((self._samples, block))[-self._fft_size:]

    def byte_frequency_data(self) -> np.ndarray:
        magnitudes = magnitude_spectrum(self._samples, self._window)
        self._smoothed = (
            self._smoothing * self._smoothed
            + (1.0 - self._smoothing) * magnitudes
        )
        return to_byte_frequency_data(self._smoothed)

    def disconnect(self) -> None:
        self._connected = False
        self._samples = np.zeros(self._fft_size, dtype=np.float32)
        self._smoothed = np.zeros(self._fft_size // 2, dtype=np.float64)
