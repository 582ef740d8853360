import math

import numpy as np
import matplotlib.pyplot as plt

from .colormap import heatmap_color, heatmap_colormap, heatmap_image, hex_color
from .dsp import SpectrogramResult
from .surface import FigureSurface, Surface
from .trial import Trial, as_matrix
from .utilities import savify

# Set consistent plot style defaults
plt.rc('figure', titlesize=33, figsize=(21, 7), dpi=210)
plt.rc('axes', titlesize=27, labelsize=21, titlepad=21)
plt.rc('xtick', labelsize=17)
plt.rc('ytick', labelsize=17)

# Per-channel trace colours, cycled when there are more channels than entries
CHANNEL_COLORS = (
    '#0ea5e9', '#22c55e', '#eab308', '#f97316',
    '#ef4444', '#8b5cf6', '#d946ef', '#64748b',
)
MARGINS = {'top': 20, 'bottom': 30, 'left': 50, 'right': 20}
LANE_MIN_HEIGHT = 40
AXIS_COLOR = '#cbd5e1'
TICK_LABEL_COLOR = '#64748b'
CURSOR_COLOR = '#94a3b8'
EMPTY_COLOR = '#94a3b8'
TOOLTIP_WIDTH = 150
TOOLTIP_LINE_HEIGHT = 14


def _format_seconds(value) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def minimum_height(channel_count: int) -> int:
    """Smallest canvas height that still gives every lane 40 px."""
    return channel_count * LANE_MIN_HEIGHT + MARGINS['top'] + MARGINS['bottom']


def tick_interval(total_time: float) -> int:
    """Seconds between time-axis ticks for a slice of the given length."""
    interval = 1
    if total_time > 10:
        interval = 2
    if total_time > 30:
        interval = 5
    return interval


def apply(commands, surface: Surface):
    """Replay draw commands onto a surface in one pass."""
    for command in commands:
        kind = command[0]
        if kind == 'clear_rect':
            surface.clear_rect(*command[1:])
        elif kind == 'polyline':
            _, xs, ys, color, width = command
            if len(xs) == 0:
                continue
            surface.begin_path()
            surface.move_to(xs[0], ys[0])
            for x, y in zip(xs[1:], ys[1:]):
                surface.line_to(x, y)
            surface.stroke(color, width)
        elif kind == 'fill_rect':
            surface.fill_rect(*command[1:])
        elif kind == 'text':
            _, text, x, y, color, font, align = command
            surface.fill_text(text, x, y, color, font=font, align=align)
        else:
            raise ValueError(f"Unknown draw command: {kind}")


class WaveformLayout:
    __slots__ = ('width', 'height', 'samples', 'channel_count',
                 'usable_width', 'usable_height', 'x_step', 'lane_height')

    def __init__(self, width, height, samples, channel_count):
        """Pixel geometry of the stacked-lane waveform view."""
        self.width = width
        self.height = height
        self.samples = samples
        self.channel_count = channel_count
        self.usable_width = width - MARGINS['left'] - MARGINS['right']
        self.usable_height = height - MARGINS['top'] - MARGINS['bottom']
        # a single sample has no spacing; it sits on the left edge
        self.x_step = self.usable_width / (samples - 1) if samples > 1 else 0.0
        self.lane_height = self.usable_height / channel_count if channel_count else 0.0

    def lane_center(self, channel: int) -> float:
        return MARGINS['top'] + channel * self.lane_height + self.lane_height / 2

    def x_at(self, index):
        return MARGINS['left'] + index * self.x_step

    @property
    def axis_y(self) -> float:
        return self.height - MARGINS['bottom'] + 5

    def in_plot(self, pixel_x) -> bool:
        return MARGINS['left'] <= pixel_x <= self.width - MARGINS['right']


class PointerReading:
    __slots__ = ('index', 'time', 'values', 'line_x', 'tooltip_left')

    def __init__(self, index, time, values, line_x, tooltip_left):
        self.index = index
        self.time = time
        self.values = values
        self.line_x = line_x
        self.tooltip_left = tooltip_left

    def __repr__(self):
        return f"PointerReading(index: {self.index}, time: {self.time:.3f}s)"

    def lines(self):
        """Tooltip text, header first then one line per channel."""
        return [f"Time: {self.time:.3f}s"] + [
            f"CH{i + 1}: {v:.2f}" for i, v in enumerate(self.values)
        ]


def empty_commands(width, height, message, background=None, color=EMPTY_COLOR):
    commands = [('clear_rect', 0, 0, width, height)]
    if background is not None:
        commands.append(('fill_rect', 0, 0, width, height, background))
    commands.append(('text', message, width / 2, height / 2, color, '12px sans-serif', 'center'))
    return commands


def waveform_commands(data: np.ndarray, layout: WaveformLayout, gain: float,
                      sampling_rate: float, start_offset: float = 0.0,
                      palette=CHANNEL_COLORS):
    """
    Geometry of one waveform frame as a list of draw commands.

    One polyline per channel around its lane centre, a right-aligned
    channel label in the left margin, then the time axis with ticks.
    """
    width, height = layout.width, layout.height
    samples = data.shape[0]
    commands = [('clear_rect', 0, 0, width, height)]

    xs = layout.x_at(np.arange(samples))
    for ch in range(layout.channel_count):
        color = palette[ch % len(palette)]
        center = layout.lane_center(ch)
        ys = center - data[:, ch] * gain
        commands.append(('polyline', xs, ys, color, 1.5))
        commands.append(('text', f"CH {ch + 1}", MARGINS['left'] - 10, center + 3,
                         color, 'bold 10px monospace', 'right'))

    total_time = samples / sampling_rate
    if total_time > 0:
        axis_y = layout.axis_y
        commands.append(('polyline',
                         np.array([MARGINS['left'], MARGINS['left'] + layout.usable_width]),
                         np.array([axis_y, axis_y]), AXIS_COLOR, 1))

        interval = tick_interval(total_time)
        for sec in range(0, math.ceil(total_time) + 1, interval):
            sample_index = sec * sampling_rate
            if sample_index >= samples and sec < total_time:
                continue
            x = layout.x_at(min(sample_index, samples - 1))
            commands.append(('polyline', np.array([x, x]), np.array([axis_y, axis_y + 4]),
                             AXIS_COLOR, 1))
            commands.append(('text', f"{_format_seconds(sec + start_offset)}s", x, axis_y + 14,
                             TICK_LABEL_COLOR, '10px monospace', 'center'))

    return commands


class WaveformRenderer:
    """
    Stacked multi-channel trace view with pointer read-out.

    ``render`` caches its command list and only rebuilds it when the slice,
    gain, start offset, palette or canvas size changes; ``lookup`` and
    ``overlay`` work off the cached layout.
    """
    def __init__(self, sampling_rate, channel_count, palette=CHANNEL_COLORS):
        self.sampling_rate = sampling_rate
        self.channel_count = channel_count
        self.palette = tuple(palette)
        self.render_count = 0
        self.layout = None
        self.commands = []
        self._source = None
        self._data = np.empty((0, channel_count))
        self._key = None
        self._start_offset = 0.0

    def canvas_height(self, host_height) -> int:
        """Host height, grown to the lane minimum when it is too small."""
        return max(host_height or 0, minimum_height(self.channel_count))

    def render(self, data, gain, width, height, start_offset=0.0):
        final_height = self.canvas_height(height)
        key = (gain, width, final_height, start_offset, self.channel_count, self.palette)
        if data is self._source and key == self._key:
            return self.commands

        matrix = data if (isinstance(data, np.ndarray) and data.ndim == 2
                          and data.shape[1] == self.channel_count) \
            else as_matrix(data, self.channel_count)
        self._source = data
        self._data = matrix
        self._key = key
        self._start_offset = start_offset
        self.layout = WaveformLayout(width, final_height, matrix.shape[0], self.channel_count)

        if matrix.shape[0] == 0:
            self.commands = empty_commands(width, final_height,
                                           'No Data available for this trial range')
        else:
            self.commands = waveform_commands(matrix, self.layout, gain, self.sampling_rate,
                                              start_offset, self.palette)
        self.render_count += 1
        return self.commands

    def render_trial(self, trial: Trial, gain, width, height):
        return self.render(trial.data, gain, width, height, start_offset=trial.start_offset)

    def draw(self, surface: Surface, data, gain, width, height, start_offset=0.0):
        apply(self.render(data, gain, width, height, start_offset), surface)

    def lookup(self, pixel_x):
        """Sample under the pointer, or None inside the margins or past the data."""
        layout = self.layout
        samples = self._data.shape[0]
        if layout is None or samples == 0 or not layout.in_plot(pixel_x):
            return None

        relative = pixel_x - MARGINS['left']
        index = _round_half_up(relative / layout.x_step) if layout.x_step else 0
        if index < 0 or index >= samples:
            return None

        line_x = layout.x_at(index)
        tooltip_left = line_x + 10
        if tooltip_left > layout.width - TOOLTIP_WIDTH:
            tooltip_left = line_x - 160
        return PointerReading(
            index=index,
            time=self._start_offset + index / self.sampling_rate,
            values=self._data[index].copy(),
            line_x=line_x,
            tooltip_left=tooltip_left,
        )

    def overlay(self, reading):
        """Cursor line and tooltip box for a reading; empty list for None."""
        if reading is None or self.layout is None:
            return []
        lines = reading.lines()
        box_height = TOOLTIP_LINE_HEIGHT * len(lines) + 8
        commands = [
            ('polyline', np.array([reading.line_x, reading.line_x]),
             np.array([0, self.layout.height]), CURSOR_COLOR, 1),
            ('fill_rect', reading.tooltip_left, 10, TOOLTIP_WIDTH, box_height, '#ffffff'),
        ]
        for i, line in enumerate(lines):
            color = '#334155' if i == 0 else self.palette[(i - 1) % len(self.palette)]
            commands.append(('text', line, reading.tooltip_left + 8,
                             10 + TOOLTIP_LINE_HEIGHT * (i + 1), color,
                             'bold 10px monospace' if i == 0 else '10px monospace', 'left'))
        return commands


def spectrogram_commands(result: SpectrogramResult, width, height):
    """One filled cell per (time, freq) bin, 0 Hz at the bottom, plus axis captions."""
    if result.empty:
        return empty_commands(width, height, 'No Data', background='#000000', color='#ffffff')

    normalized = result.normalized()
    time_bins, freq_bins = normalized.shape
    cell_width = width / time_bins
    cell_height = height / freq_bins

    commands = [('clear_rect', 0, 0, width, height)]
    for t in range(time_bins):
        for f in range(freq_bins):
            y = height - (f + 1) * cell_height
            commands.append(('fill_rect',
                             math.floor(t * cell_width), math.floor(y),
                             math.ceil(cell_width) + 1, math.ceil(cell_height) + 1,
                             hex_color(heatmap_color(normalized[t, f]))))

    labels = legend_labels(result)
    commands.append(('text', labels['low'], 8, height - 6, '#ffffff', '10px sans-serif', 'left'))
    commands.append(('text', labels['high'], 8, 14, '#ffffff', '10px sans-serif', 'left'))
    commands.append(('text', 'Time →', width - 8, height - 6, '#ffffff', '10px sans-serif', 'right'))
    return commands


def legend_labels(result: SpectrogramResult) -> dict:
    """Colorbar and frequency-axis captions."""
    labels = {'low': '0 Hz', 'high': f"{result.nyquist:.0f} Hz"}
    if not result.empty:
        labels['max'] = f"{result.max_mag:.0f} dB"
        labels['min'] = f"{result.min_mag:.0f} dB"
    return labels


class SpectrogramRenderer:
    """Heatmap view of a SpectrogramResult; rebuilt only for a new result or size."""
    def __init__(self):
        self.render_count = 0
        self.commands = []
        self._result = None
        self._key = None

    def render(self, result: SpectrogramResult, width, height):
        key = (width, height)
        if result is self._result and key == self._key:
            return self.commands
        self._key = key
        self._result = result
        self.commands = spectrogram_commands(result, width, height)
        self.render_count += 1
        return self.commands

    def draw(self, surface: Surface, result, width, height):
        apply(self.render(result, width, height), surface)


def plotify_trial(trial: Trial, gain=1.0, width=1200, height=None, palette=CHANNEL_COLORS,
                  pixel_ratio=1.0, destination=None, show=False):
    """Render a trial to a standalone matplotlib figure."""
    renderer = WaveformRenderer(trial.sampling_rate, trial.channel_count, palette)
    height = renderer.canvas_height(height)
    surface = FigureSurface(width, height, pixel_ratio=pixel_ratio)
    renderer.draw(surface, trial.data, gain, width, height, start_offset=trial.start_offset)
    fig = surface.figure
    if destination:
        savify(fig, f"trial_{trial.trial}.png", destination)
    if show:
        plt.show()
    return fig


def plotify_spectrogram(result: SpectrogramResult, title=None, destination=None, show=False):
    """Spectrogram image with labelled axes and a dB colorbar."""
    fig, ax = plt.subplots(figsize=(21, 7), dpi=210)
    if result.empty:
        ax.text(0.5, 0.5, 'No Data', ha='center', va='center', transform=ax.transAxes)
        ax.set_axis_off()
    else:
        image = heatmap_image(result)
        step = (result.window_size - result.overlap) / result.sample_rate
        extent = [result.times[0], result.times[-1] + step, 0, result.nyquist]
        ax.imshow(image, aspect='auto', extent=extent)
        ax.set(xlabel='Time (s)', ylabel='Frequency (Hz)')

        mappable = plt.cm.ScalarMappable(
            norm=plt.Normalize(result.min_mag, result.max_mag), cmap=heatmap_colormap()
        )
        fig.colorbar(mappable, ax=ax, pad=0.02).set_label('Magnitude (dB)')
    ax.set_title(title or 'Time–Frequency (dB)')
    ax.title.set_y(1.01)

    plt.tight_layout()
    if destination:
        savify(fig, f"spectrogram_{title or 'channel'}.png", destination)
    if show:
        plt.show()
    return fig
