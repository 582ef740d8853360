from functools import cached_property
import numpy as np


def as_matrix(data, channel_count: int) -> np.ndarray:
    """
    Coerce a [time][channel] matrix to a float array of shape (time, channel_count).

    Rows may be ragged; missing or non-finite cells become 0 and surplus
    columns are dropped.
    """
    if isinstance(data, np.ndarray) and data.ndim == 2:
        matrix = np.zeros((data.shape[0], channel_count), dtype=np.float64)
        width = min(channel_count, data.shape[1])
        matrix[:, :width] = data[:, :width]
    else:
        rows = list(data) if data is not None else []
        matrix = np.zeros((len(rows), channel_count), dtype=np.float64)
        for t, row in enumerate(rows):
            values = np.asarray(row, dtype=np.float64).ravel()[:channel_count]
            matrix[t, :values.shape[0]] = values
    matrix[~np.isfinite(matrix)] = 0.0
    return matrix


class Trial:
    __slots__ = (
        'trial', 'data', 'start', 'stop', 'sampling_rate',
        'start_offset', '__dict__'
    )

    def __init__(self, trial, data, start=0, sampling_rate=256,
                 start_offset=0.0):
        """A contiguous window of rows [start, stop) cut from the full matrix."""
        self.trial = trial
        self.data = data  # shape: samples x channels
        self.start = start
        self.stop = start + data.shape[0]
        self.sampling_rate = sampling_rate
        self.start_offset = start_offset

    def __len__(self):
        """Number of samples."""
        return self.data.shape[0]

    def __getitem__(self, key):
        """Row or slice access delegated to data array."""
        return self.data[key]

    def __repr__(self):
        return (
            f"Trial(#: {self.trial}, rows: [{self.start}, {self.stop}),"
            f" offset: {self.start_offset}s)"
        )

    @property
    def empty(self) -> bool:
        return self.data.shape[0] == 0

    @property
    def channel_count(self) -> int:
        return self.data.shape[1]

    @cached_property
    def duration(self) -> float:
        """Total time of trial in seconds."""
        return self.data.shape[0] / self.sampling_rate

    @cached_property
    def times(self) -> np.ndarray:
        """Absolute time of each sample, in seconds."""
        return self.start_offset + np.arange(self.data.shape[0]) / self.sampling_rate

    def channel(self, index: int) -> np.ndarray:
        """Single-channel series; a channel outside the matrix reads as zeros."""
        if 0 <= index < self.data.shape[1]:
            return self.data[:, index]
        return np.zeros(self.data.shape[0])
