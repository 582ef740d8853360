#!/usr/bin/env python3
"""
Render every trial of a delimited EEG recording to PNG.

Writes one waveform figure per trial and, with --spectrogram, one
time-frequency figure per trial for the chosen channel.

use example: python scripts/render_recording.py recording.csv.gz -o out --fs 256 --channels 8
"""
import argparse
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

from eegviewer import FileConfig, Session, DirectoryStore, read_delimited
from eegviewer.plot import plotify_trial, plotify_spectrogram


# ---------------------Input parser----------------------
parser = argparse.ArgumentParser(description="Render a delimited EEG recording trial by trial")
parser.add_argument("recording", type=Path, help="Path to the .csv/.tsv/.txt file (optionally .gz)")
parser.add_argument("-o", "--output", type=Path, default=Path.cwd() / "eeg_output")
parser.add_argument("--fs", type=float, default=256, help="Sampling rate (Hz)")
parser.add_argument("--channels", type=int, default=8)
parser.add_argument("--duration", type=int, default=5, help="Trial duration (s)")
parser.add_argument("--skip-rows", type=int, default=0)
parser.add_argument("--skip-cols", type=int, default=0)
parser.add_argument("--transposed", action="store_true", help="Rows are channels")
parser.add_argument("--gain", type=float, default=None)
parser.add_argument("--spectrogram", type=int, default=None, metavar="CHANNEL",
                    help="Also render the spectrogram of this channel (1-based)")


def main():
    args = parser.parse_args()

    if not args.recording.is_file():
        raise ValueError(f"{args.recording} is not a valid file")

    config = FileConfig(
        sampling_rate=args.fs,
        channel_count=args.channels,
        skip_rows=args.skip_rows,
        skip_cols=args.skip_cols,
        trial_duration_sec=args.duration,
        orientation='rows-are-channels' if args.transposed else 'rows-are-time',
    )
    print(f"processing recording: {args.recording}")

    session = Session(
        config=config,
        filename=args.recording.name,
        data=read_delimited(args.recording, config),
        stores=[DirectoryStore(args.output)],
    ).load()
    if args.gain is not None:
        session.update_gain(args.gain)

    viewer = session.viewer()
    if args.spectrogram is not None:
        viewer.select_channel(args.spectrogram - 1)

    for index in range(viewer.total_trials):
        viewer.jump(index)
        plotify_trial(viewer.current, gain=viewer.gain, destination=args.output)
        if args.spectrogram is not None:
            plotify_spectrogram(
                viewer.spectrogram(),
                title=f"trial{index + 1}_ch{viewer.spectrogram_channel + 1}",
                destination=args.output,
            )


if __name__ == "__main__":
    main()
