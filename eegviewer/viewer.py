import math
import time
import logging
from typing import Callable, List, Optional

from .annotation import Annotation, sort_by_trial
from .debounce import Debouncer, SETTLE_INTERVAL, parse_float, parse_int
from .dsp import compute_spectrogram, DEFAULT_WINDOW_SIZE, SpectrogramResult
from .plot import CHANNEL_COLORS, SpectrogramRenderer, WaveformRenderer, apply
from .session import FileConfig
from .surface import Surface
from .trial import Trial, as_matrix

# Configure logging for viewer state changes
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

VIEW_MODES = ('raw', 'spectrogram')
SPECTROGRAM_HEIGHT = 500
SCROLL_PX_PER_SECOND = 100
SCROLL_MIN_WIDTH = 1000
SCROLL_MAX_WIDTH = 32000


class Viewer:
    """
    Pages through a recording trial by trial and keeps the annotation list.

    The viewer is the single writer of its annotations and view state; the
    owning session hears about changes only through the callbacks, which
    always receive copies.

    Usage:
        viewer = Viewer(data, FileConfig(sampling_rate=256, channel_count=8))
        viewer.next()
        viewer.add_annotation("spike at onset", "seizure")
        viewer.render(surface, width=1200, height=600)
    """
    def __init__(self,
                 data,
                 config: FileConfig,
                 gain: float = 1.0,
                 annotations=(),
                 on_annotations: Optional[Callable[[List[Annotation]], None]] = None,
                 on_gain: Optional[Callable[[float], None]] = None,
                 on_config: Optional[Callable[[FileConfig], None]] = None,
                 palette=CHANNEL_COLORS,
                 settle: float = SETTLE_INTERVAL,
                 clock: Callable[[], float] = time.monotonic):
        self.data = as_matrix(data, config.channel_count)
        self.config = config
        self.annotations = list(annotations)
        self.on_annotations = on_annotations
        self.on_gain = on_gain
        self.on_config = on_config

        # view state
        self.current_trial = 0
        self.view_mode = 'raw'
        self.scrolling = False
        self.spectrogram_channel = 0

        # committed values vs. free-text inputs
        self.gain = gain if gain else 1.0
        self.gain_input = Debouncer(
            parse_float, on_commit=self._commit_gain,
            validate=math.isfinite, initial=self.gain, settle=settle, clock=clock
        )
        self.duration_input = Debouncer(
            parse_int, on_commit=self._commit_duration,
            validate=lambda v: v > 0, initial=config.trial_duration_sec,
            settle=settle, clock=clock
        )

        self.waveform = WaveformRenderer(config.sampling_rate, config.channel_count, palette)
        self.spectrogram_view = SpectrogramRenderer()

        self._trial_key = None
        self._trial = None
        self._spectrogram_key = None
        self._spectrogram = None

    def __repr__(self):
        return (
            f"Viewer(trial: {self.current_trial + 1}/{self.total_trials},"
            f" mode: {self.view_mode}, scrolling: {self.scrolling})"
        )

    # --- trial geometry ---
    @property
    def points_per_trial(self) -> int:
        return int(self.config.sampling_rate * self.config.trial_duration_sec)

    @property
    def total_trials(self) -> int:
        if self.points_per_trial <= 0:
            return 0
        return math.ceil(self.data.shape[0] / self.points_per_trial)

    def trial_bounds(self, index: int):
        """Half-open row range [start, stop) of trial ``index``."""
        start = index * self.points_per_trial
        stop = min(start + self.points_per_trial, self.data.shape[0])
        return start, max(start, stop)

    @property
    def start_offset(self) -> float:
        if self.scrolling:
            return 0
        return self.current_trial * self.config.trial_duration_sec

    @property
    def current(self) -> Trial:
        """The slice on screen; rebuilt only when trial, paging mode or duration changes."""
        if self.scrolling:
            key = ('scroll', 0, self.data.shape[0])
        else:
            key = ('paged',) + self.trial_bounds(self.current_trial)

        if key != self._trial_key:
            start, stop = key[1], key[2]
            self._trial = Trial(
                trial=None if self.scrolling else self.current_trial,
                data=self.data[start:stop],
                start=start,
                sampling_rate=self.config.sampling_rate,
                start_offset=self.start_offset,
            )
            self._trial_key = key
            self._spectrogram_key = None
        return self._trial

    def spectrogram(self) -> SpectrogramResult:
        """STFT of the selected channel of the current slice, memoised per input."""
        trial = self.current
        key = (trial.start, trial.stop, self.spectrogram_channel, self.config.sampling_rate)
        if key != self._spectrogram_key:
            self._spectrogram = compute_spectrogram(
                trial.channel(self.spectrogram_channel),
                self.config.sampling_rate,
                DEFAULT_WINDOW_SIZE,
                DEFAULT_WINDOW_SIZE // 2,
            )
            self._spectrogram_key = key
        return self._spectrogram

    def canvas_width(self, host_width) -> float:
        """Scroll mode widens the canvas by 100 px per second, within 1000..32000 px."""
        if not self.scrolling:
            return host_width
        seconds = self.current.duration
        return min(max(SCROLL_MIN_WIDTH, seconds * SCROLL_PX_PER_SECOND), SCROLL_MAX_WIDTH)

    # --- navigation ---
    # paging moves are ignored while scrolling; the whole recording is on screen
    def next(self):
        if self.scrolling:
            return self.current_trial
        self.current_trial = min(self.total_trials - 1, self.current_trial + 1)
        self.current_trial = max(0, self.current_trial)
        return self.current_trial

    def previous(self):
        if self.scrolling:
            return self.current_trial
        self.current_trial = max(0, self.current_trial - 1)
        return self.current_trial

    def jump(self, trial_index: int):
        """Focus a trial directly, e.g. from the annotation history; paged mode only."""
        if self.scrolling:
            logger.info(f"Ignoring jump to trial {trial_index} while scrolling")
            return self.current_trial
        self.current_trial = max(0, min(self.total_trials - 1, int(trial_index)))
        return self.current_trial

    def on_key(self, key: str):
        if key == 'ArrowRight':
            return self.next()
        if key == 'ArrowLeft':
            return self.previous()
        return self.current_trial

    def set_view_mode(self, mode: str):
        if mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode: {mode}")
        self.view_mode = mode

    def toggle_scrolling(self):
        self.scrolling = not self.scrolling
        return self.scrolling

    def select_channel(self, channel: int):
        self.spectrogram_channel = max(0, min(self.config.channel_count - 1, int(channel)))

    # --- debounced inputs ---
    def edit_gain(self, text):
        self.gain_input.edit(text)

    def edit_duration(self, text):
        self.duration_input.edit(text)

    def tick(self):
        """Settle any debounced input whose interval has elapsed."""
        self.gain_input.poll()
        self.duration_input.poll()

    def _commit_gain(self, value: float):
        self.gain = value
        logger.info(f"Gain set to {value}")
        if self.on_gain is not None:
            self.on_gain(value)

    def _commit_duration(self, value: int):
        if value == self.config.trial_duration_sec:
            return
        self.config = self.config.replace(trial_duration_sec=value)
        self.current_trial = max(0, min(self.current_trial, self.total_trials - 1))
        logger.info(f"Trial duration set to {value}s ({self.total_trials} trials)")
        if self.on_config is not None:
            self.on_config(self.config)

    # --- annotations ---
    def add_annotation(self, note: str, type: str = 'normal') -> Optional[Annotation]:
        """Attach a note to the current trial; blank notes are ignored."""
        if not note or not note.strip():
            return None
        annotation = Annotation(
            trial_index=self.current_trial,
            timestamp=self.current_trial * self.config.trial_duration_sec,
            note=note,
            type=type,
        )
        self.annotations.append(annotation)
        self._emit_annotations()
        return annotation

    def delete_annotation(self, annotation_id: str):
        self.annotations = [a for a in self.annotations if a.id != annotation_id]
        self._emit_annotations()

    def history(self) -> List[Annotation]:
        return sort_by_trial(self.annotations)

    def _emit_annotations(self):
        if self.on_annotations is not None:
            self.on_annotations(list(self.annotations))

    def snapshot(self) -> dict:
        return {
            'config': self.config.to_dict(),
            'annotations': [a.to_dict() for a in self.annotations],
            'gain': self.gain,
            'currentTrial': self.current_trial,
            'viewMode': self.view_mode,
        }

    # --- drawing ---
    def render(self, surface: Surface, width, height=None):
        """Draw the active view; returns the command list that was applied."""
        trial = self.current
        if self.view_mode == 'raw':
            commands = self.waveform.render_trial(trial, self.gain, self.canvas_width(width), height)
        else:
            commands = self.spectrogram_view.render(
                self.spectrogram(), width, height or SPECTROGRAM_HEIGHT
            )
        apply(commands, surface)
        return commands

    def pointer(self, pixel_x, surface: Optional[Surface] = None):
        """Read values under the pointer; draws only the cursor overlay."""
        if self.view_mode != 'raw':
            return None
        reading = self.waveform.lookup(pixel_x)
        if surface is not None:
            apply(self.waveform.overlay(reading), surface)
        return reading

