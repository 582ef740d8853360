import numpy as np
import pytest
import sys
sys.path.insert(0, '.')
from scipy import fft as scipy_fft
from scipy.signal.windows import hann

from eegviewer.dsp import fft, ifft, hann_window, compute_spectrogram, next_power_of_two


def test_fft_matches_scipy():
    rng = np.random.default_rng(0)
    x = rng.standard_normal(64) + 1j * rng.standard_normal(64)
    assert np.allclose(fft(x), scipy_fft.fft(x))


@pytest.mark.parametrize("n", [1, 2, 8, 256])
def test_fft_round_trip(n):
    rng = np.random.default_rng(n)
    x = rng.standard_normal(n)
    assert np.allclose(ifft(fft(x)), x)


def test_fft_rejects_non_power_of_two():
    with pytest.raises(ValueError):
        fft(np.ones(6))


def test_next_power_of_two():
    assert next_power_of_two(1) == 1
    assert next_power_of_two(200) == 256
    assert next_power_of_two(256) == 256


def test_hann_window_matches_symmetric_hann():
    assert np.allclose(hann_window(256), hann(256, sym=True))
    with pytest.raises(ValueError):
        hann_window(1)


def test_spectrogram_of_silence_is_constant_floor():
    result = compute_spectrogram(np.zeros(1024), 256)
    floor = 20 * np.log10(1e-6)
    assert not result.empty
    assert np.all(result.magnitudes == floor)
    assert result.min_mag == result.max_mag == floor


def test_spectrogram_peak_at_sinusoid_frequency():
    fs, f = 256, 10
    t = np.arange(2048) / fs
    result = compute_spectrogram(np.sin(2 * np.pi * f * t), fs, window_size=256)
    peaks = result.freqs[result.magnitudes.argmax(axis=1)]
    assert np.all(np.abs(peaks - f) <= fs / 256)


def test_spectrogram_drops_trailing_partial_window():
    result = compute_spectrogram(np.random.default_rng(1).standard_normal(1000), 256)
    # window starts 0, 128, ..., 640; 768 + 256 > 1000
    assert len(result) == 6
    assert result.magnitudes.shape == (6, 128)
    assert np.allclose(result.times, np.arange(6) * 0.5)
    assert np.allclose(result.freqs, np.arange(128))


def test_spectrogram_shorter_than_window_is_empty():
    result = compute_spectrogram(np.ones(100), 256)
    assert result.empty
    assert len(result.times) == 0
    assert len(result.freqs) == 128


def test_spectrogram_invalid_overlap_is_empty():
    result = compute_spectrogram(np.ones(1024), 256, window_size=128, overlap=128)
    assert result.empty
