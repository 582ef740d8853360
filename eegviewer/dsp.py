import logging

import numpy as np

logger = logging.getLogger(__name__)

# Offset added to every magnitude before the log so silent bins stay finite.
MAGNITUDE_FLOOR = 1e-6
DEFAULT_WINDOW_SIZE = 256
DEFAULT_OVERLAP = 128


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def next_power_of_two(n: int) -> int:
    """Smallest power of two that is >= n (1 for n <= 1)."""
    return 1 if n <= 1 else 1 << (int(n) - 1).bit_length()


def _bit_reversed(n: int) -> np.ndarray:
    bits = n.bit_length() - 1
    indices = np.arange(n)
    reversed_indices = np.zeros(n, dtype=np.intp)
    for _ in range(bits):
        reversed_indices = (reversed_indices << 1) | (indices & 1)
        indices = indices >> 1
    return reversed_indices


def fft(samples) -> np.ndarray:
    """
    Radix-2 Cooley-Tukey transform of a complex sequence.

    Works bottom-up: samples are permuted into bit-reversed order and then
    combined stage by stage, which gives the same ordering and values as
    splitting into even/odd halves recursively.

    :param samples: sequence of complex (or real) samples, length a power of two
    :return: np.ndarray of complex128, same length as the input
    """
    x = np.array(samples, dtype=np.complex128).ravel()
    n = x.shape[0]
    if n <= 1:
        return x
    if not _is_power_of_two(n):
        raise ValueError(f"FFT length must be a power of two, got {n}")

    x = x[_bit_reversed(n)]
    size = 2
    while size <= n:
        half = size // 2
        twiddle = np.exp(-2j * np.pi * np.arange(half) / size)
        blocks = x.reshape(-1, size)
        even = blocks[:, :half].copy()
        odd = blocks[:, half:] * twiddle
        blocks[:, :half] = even + odd
        blocks[:, half:] = even - odd
        size *= 2
    return x


def ifft(spectrum) -> np.ndarray:
    """Inverse transform via conjugation: conj(fft(conj(X))) / n."""
    X = np.array(spectrum, dtype=np.complex128).ravel()
    n = X.shape[0]
    if n == 0:
        return X
    return np.conj(fft(np.conj(X))) / n


def hann_window(n: int) -> np.ndarray:
    """Hann coefficients w[i] = 0.5 * (1 - cos(2*pi*i / (n - 1)))."""
    if n < 2:
        raise ValueError(f"Hann window needs at least 2 points, got {n}")
    i = np.arange(n)
    return 0.5 * (1 - np.cos((2 * np.pi * i) / (n - 1)))


def magnitude_spectrum(chunk) -> np.ndarray:
    """Zero-pad to a power of two and return the magnitudes below Nyquist."""
    chunk = np.asarray(chunk, dtype=np.float64)
    padded_length = next_power_of_two(len(chunk))
    padded = np.zeros(padded_length, dtype=np.float64)
    padded[:len(chunk)] = chunk
    spectrum = fft(padded)[:padded_length // 2]
    return np.sqrt(spectrum.real ** 2 + spectrum.imag ** 2)


class SpectrogramResult:
    __slots__ = ('magnitudes', 'freqs', 'times', 'min_mag', 'max_mag',
                 'sample_rate', 'window_size', 'overlap')

    def __init__(self, magnitudes, freqs, times, min_mag, max_mag,
                 sample_rate, window_size, overlap):
        """Read-only STFT output; magnitudes are indexed [time_bin][freq_bin]."""
        self.magnitudes = magnitudes
        self.freqs = freqs
        self.times = times
        self.min_mag = min_mag
        self.max_mag = max_mag
        self.sample_rate = sample_rate
        self.window_size = window_size
        self.overlap = overlap

    def __len__(self):
        """Number of time bins."""
        return self.magnitudes.shape[0]

    def __repr__(self):
        return (
            f"SpectrogramResult(shape: {self.magnitudes.shape},"
            f" range: {self.min_mag:.1f}..{self.max_mag:.1f} dB)"
        )

    @property
    def empty(self) -> bool:
        return self.magnitudes.shape[0] == 0 or self.magnitudes.shape[1] == 0

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2

    def normalized(self) -> np.ndarray:
        """Magnitudes scaled to [0, 1] by the global min/max."""
        span = self.max_mag - self.min_mag
        return (self.magnitudes - self.min_mag) / (span or 1)


def _empty_result(sample_rate, window_size, overlap, freqs=None):
    freqs = np.array([]) if freqs is None else freqs
    return SpectrogramResult(
        magnitudes=np.empty((0, 0)),
        freqs=freqs,
        times=np.array([]),
        min_mag=np.inf,
        max_mag=-np.inf,
        sample_rate=sample_rate,
        window_size=window_size,
        overlap=overlap,
    )


def compute_spectrogram(signal,
                        sample_rate: float,
                        window_size: int = DEFAULT_WINDOW_SIZE,
                        overlap: int = DEFAULT_OVERLAP) -> SpectrogramResult:
    """
    Short-Time Fourier Transform of a single-channel signal.

    Windows of ``window_size`` samples advance by ``window_size - overlap``;
    a trailing remainder shorter than one window is dropped. Each window is
    Hann-weighted, zero-padded to a power of two, transformed, and converted
    to pseudo-dB (20*log10(|X| + 1e-6)).

    :param signal: 1-D sequence of samples
    :param sample_rate: sampling rate in Hz
    :param window_size: samples per analysis window
    :param overlap: samples shared by consecutive windows
    :return: SpectrogramResult; empty when the signal is shorter than a window
    """
    signal = np.asarray(signal, dtype=np.float64).ravel()
    step = window_size - overlap

    if window_size < 2 or step <= 0:
        logger.warning(
            f"Invalid spectrogram parameters (window_size={window_size}, overlap={overlap})"
        )
        return _empty_result(sample_rate, window_size, overlap)

    window = hann_window(window_size)
    rows = []
    max_mag = -np.inf
    min_mag = np.inf

    start = 0
    while start + window_size <= signal.shape[0]:
        chunk = signal[start:start + window_size] * window
        log_mags = 20 * np.log10(magnitude_spectrum(chunk) + MAGNITUDE_FLOOR)
        max_mag = max(max_mag, float(log_mags.max()))
        min_mag = min(min_mag, float(log_mags.min()))
        rows.append(log_mags)
        start += step

    freqs = np.arange(window_size // 2) * sample_rate / window_size
    if not rows:
        return _empty_result(sample_rate, window_size, overlap, freqs=freqs)

    times = np.arange(len(rows)) * step / sample_rate
    return SpectrogramResult(
        magnitudes=np.vstack(rows),
        freqs=freqs,
        times=times,
        min_mag=min_mag,
        max_mag=max_mag,
        sample_rate=sample_rate,
        window_size=window_size,
        overlap=overlap,
    )
