# pylint: disable=missing-module-docstring,missing-function-docstring
import numpy as np

from audio.analysis import (
    FrequencyAnalyser,
    blackman_window,
    level_from_bins,
    to_byte_frequency_data,
)


def pcm16(samples: np.ndarray) -> bytes:
    return (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2").tobytes()


def test_window_starts_at_zero_and_peaks_mid():
    window = blackman_window(2048)

    assert abs(window[0]) < 1e-9
    assert abs(window[1024] - 1.0) < 1e-9


def test_byte_mapping_clamps_to_range():
    # -100 dB -> 0, -30 dB -> 255, beyond either end clamps
    mags = np.array([0.0, 1e-6, 10 ** (-65 / 20), 10 ** (-20 / 20), 1.0])

    out = to_byte_frequency_data(mags)

    assert out.dtype == np.uint8
    assert out[0] == 0
    assert out[1] == 0
    assert 126 <= out[2] <= 128
    assert out[3] == 255
    assert out[4] == 255


def test_level_is_mean_over_180_clamped():
    assert level_from_bins(np.full(1024, 90, dtype=np.uint8)) == 0.5
    assert level_from_bins(np.full(1024, 255, dtype=np.uint8)) == 1.0
    assert level_from_bins(np.array([], dtype=np.uint8)) == 0.0


def test_silence_reads_zero():
    analyser = FrequencyAnalyser()
    analyser.push(bytes(4096))

    assert level_from_bins(analyser.byte_frequency_data()) == 0.0


def test_loud_noise_reads_high_and_smooths_in():
    rng = np.random.default_rng(7)
    analyser = FrequencyAnalyser()
    analyser.push(pcm16(rng.uniform(-0.8, 0.8, 2048)))

    levels = [level_from_bins(analyser.byte_frequency_data()) for _ in range(10)]

    assert analyser.frequency_bin_count == 1024
    assert levels[-1] > 0.3
    assert levels[0] <= levels[-1]


def test_disconnect_drops_further_input():
    rng = np.random.default_rng(1)
    analyser = FrequencyAnalyser()
    analyser.disconnect()
    analyser.push(pcm16(rng.uniform(-0.8, 0.8, 2048)))

    assert not analyser.connected
    assert level_from_bins(analyser.byte_frequency_data()) == 0.0
