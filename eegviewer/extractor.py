import os
import csv
import gzip
import logging

import numpy as np
import pandas as pd

from .debounce import parse_float
from .session import FileConfig, Session
from .trial import as_matrix
from .utilities import TqdmProgressBar

logger = logging.getLogger(__name__)

DELIMITED_SUFFIXES = ('.csv', '.tsv', '.txt', '.dat')
WHITESPACE = r'\s+'


def _delimiter_for(name: str) -> str:
    name = name.lower()
    if name.endswith('.gz'):
        name = name[:-3]
    if name.endswith('.tsv'):
        return '\t'
    if name.endswith(('.txt', '.dat')):
        return WHITESPACE
    return ','


def _read_rows(source, name: str, delimiter: str):
    """Split the recording into ragged lists of cell strings, blank lines dropped."""
    if name:
        opener = gzip.open if name.lower().endswith('.gz') else open
        with opener(name, 'rt', newline='') as f:
            lines = f.read().splitlines()
    else:
        lines = source.read().splitlines()

    if delimiter == WHITESPACE:
        rows = [line.split() for line in lines]
    else:
        rows = list(csv.reader(lines, delimiter=delimiter))
    return [row for row in rows if row and row != ['']]


def _parse_cell(cell) -> float:
    # leading-number rule: '12uV' reads as 12, text or padding reads as 0
    if cell is None:
        return 0.0
    value = parse_float(cell)
    return 0.0 if value is None else value


def read_delimited(source, config: FileConfig, delimiter=None) -> np.ndarray:
    """
    Parse a delimited text recording into a (time, channel) matrix.

    Rows may be ragged. ``skip_rows`` non-blank lines and the first
    ``skip_cols`` columns are dropped, and at most ``channel_count`` channels
    are kept. Cells are read by their leading number, so anything without one
    reads as 0. A row with no cells past ``skip_cols`` is skipped; every other
    row is kept, so sample positions never shift. With ``rows-are-channels``
    the first ``channel_count`` rows are taken as channels and transposed,
    and the first channel row sets the number of samples.

    :param source: path (optionally .gz) or text buffer
    :param config: FileConfig describing the layout
    :param delimiter: overrides the delimiter guessed from the file name
    :return: np.ndarray of shape (samples, channel_count)
    """
    name = str(source) if isinstance(source, (str, os.PathLike)) else ''
    if name and not os.path.exists(name):
        raise FileNotFoundError(f"Path does not exist: {name}")
    if delimiter is None:
        delimiter = _delimiter_for(name)

    rows = _read_rows(source, name, delimiter)[config.skip_rows:]
    frame = pd.DataFrame(rows)
    first, last = config.skip_cols, config.skip_cols + config.channel_count

    if config.orientation == 'rows-are-time':
        lengths = frame.notna().sum(axis=1)
        frame = frame[lengths > config.skip_cols]
        if frame.empty:
            raise ValueError(f"No data columns left after skipping {config.skip_cols} columns")
        values = frame.iloc[:, first:last].apply(lambda column: column.map(_parse_cell))
        matrix = values.to_numpy(dtype=np.float64)
    else:
        channels = frame.iloc[:config.channel_count]
        samples = len(rows[0]) - config.skip_cols if rows else 0
        if samples <= 0:
            raise ValueError(f"No data columns left after skipping {config.skip_cols} columns")
        values = channels.iloc[:, first:first + samples].apply(lambda column: column.map(_parse_cell))
        matrix = values.to_numpy(dtype=np.float64).T

    if matrix.shape[1] != config.channel_count:
        logger.warning(f"Expected {config.channel_count} channels, got {matrix.shape[1]}; padding with zeros")
    return as_matrix(matrix, config.channel_count)


class Extractor:
    def __init__(self, source, config: FileConfig, stores=None):
        self.source = source
        if not os.path.isdir(source):
            raise FileNotFoundError(f"Path does not exist: {source}")
        self.files = sorted(
            f for f in os.listdir(source)
            if f.lower().endswith(DELIMITED_SUFFIXES)
            or f.lower().endswith(tuple(s + '.gz' for s in DELIMITED_SUFFIXES))
        )
        self.config = config
        self.stores = stores

        # storage for output sessions
        self.sessions = []

    def extractify(self, n=None):
        """
        Reads every delimited recording in the source folder into a Session.
        """
        if not self.files:
            raise FileNotFoundError("No delimited files found in the specified source directory.")
        if n is None:
            n = len(self.files)

        self.sessions = []

        def process_file(file):
            path = os.path.join(self.source, file)
            data = read_delimited(path, self.config)
            session = Session(
                config=self.config,
                filename=file,
                data=data,
                stores=self.stores,
            )
            self.sessions.append(session)

        progress = TqdmProgressBar()
        progress.run(self.files[:n], label="Reading Recordings", func=process_file)

        return self.sessions
