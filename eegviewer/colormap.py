import math

import numpy as np
from matplotlib.colors import ListedColormap

from .dsp import SpectrogramResult


def heatmap_color(value: float) -> tuple:
    """
    Map a normalised value to RGB on a black -> blue -> red -> yellow -> white ramp.

    Values outside [0, 1] are clamped. Each quarter of the range is a
    straight ramp on one or two channels.
    """
    clamped = max(0.0, min(1.0, float(value)))

    if clamped < 0.25:
        r = 0
        g = 0
        b = math.floor(clamped * 4 * 255)
    elif clamped < 0.5:
        r = math.floor((clamped - 0.25) * 4 * 255)
        g = 0
        b = 255 - math.floor((clamped - 0.25) * 4 * 200)
    elif clamped < 0.75:
        r = 255
        g = math.floor((clamped - 0.5) * 4 * 255)
        b = 0
    else:
        r = 255
        g = 255
        b = math.floor((clamped - 0.75) * 4 * 255)

    return r, g, b


def hex_color(color) -> str:
    r, g, b = color
    return f"#{r:02x}{g:02x}{b:02x}"


def heatmap_rgb(values) -> np.ndarray:
    """Vectorised heatmap_color; returns uint8 array of shape values.shape + (3,)."""
    x = np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0)
    rgb = np.zeros(x.shape + (3,), dtype=np.int64)

    s1 = x < 0.25
    s2 = (x >= 0.25) & (x < 0.5)
    s3 = (x >= 0.5) & (x < 0.75)
    s4 = x >= 0.75

    rgb[..., 2][s1] = np.floor(x[s1] * 4 * 255)

    rgb[..., 0][s2] = np.floor((x[s2] - 0.25) * 4 * 255)
    rgb[..., 2][s2] = 255 - np.floor((x[s2] - 0.25) * 4 * 200)

    rgb[..., 0][s3] = 255
    rgb[..., 1][s3] = np.floor((x[s3] - 0.5) * 4 * 255)

    rgb[..., 0][s4] = 255
    rgb[..., 1][s4] = 255
    rgb[..., 2][s4] = np.floor((x[s4] - 0.75) * 4 * 255)

    return rgb.astype(np.uint8)


def heatmap_image(result: SpectrogramResult) -> np.ndarray:
    """RGB image (freq, time, 3) of a spectrogram, 0 Hz in the bottom row."""
    if result.empty:
        return np.zeros((0, 0, 3), dtype=np.uint8)
    image = heatmap_rgb(result.normalized().T)
    return image[::-1]


def heatmap_colormap(n: int = 256) -> ListedColormap:
    """The same ramp as a matplotlib colormap, for colorbars and imshow."""
    samples = np.linspace(0, 1, n)
    return ListedColormap(heatmap_rgb(samples) / 255.0, name='eeg_heatmap')
