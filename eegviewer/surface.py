from abc import ABC, abstractmethod

import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle

# canvas-style alignment -> matplotlib horizontal alignment
_ALIGN = {'left': 'left', 'start': 'left', 'right': 'right', 'end': 'right', 'center': 'center'}


class Surface(ABC):
    """A 2-D raster target in CSS pixels, origin top-left, y growing down."""

    @property
    def pixel_ratio(self) -> float:
        return 1.0

    @abstractmethod
    def clear_rect(self, x, y, width, height):
        pass

    @abstractmethod
    def begin_path(self):
        pass

    @abstractmethod
    def move_to(self, x, y):
        pass

    @abstractmethod
    def line_to(self, x, y):
        pass

    @abstractmethod
    def stroke(self, color, width=1.0):
        pass

    @abstractmethod
    def fill_rect(self, x, y, width, height, color):
        pass

    @abstractmethod
    def fill_text(self, text, x, y, color, font='10px monospace', align='start'):
        pass


class RecordingSurface(Surface):
    """Keeps every call as a tuple; stroked paths are stored as point lists."""

    def __init__(self, pixel_ratio=1.0):
        self._pixel_ratio = pixel_ratio
        self.calls = []
        self._path = []

    @property
    def pixel_ratio(self) -> float:
        return self._pixel_ratio

    def clear_rect(self, x, y, width, height):
        self.calls.append(('clear_rect', x, y, width, height))

    def begin_path(self):
        self._path = []

    def move_to(self, x, y):
        self._path.append([(x, y)])

    def line_to(self, x, y):
        if not self._path:
            self._path.append([])
        self._path[-1].append((x, y))

    def stroke(self, color, width=1.0):
        self.calls.append(('stroke', [list(p) for p in self._path], color, width))

    def fill_rect(self, x, y, width, height, color):
        self.calls.append(('fill_rect', x, y, width, height, color))

    def fill_text(self, text, x, y, color, font='10px monospace', align='start'):
        self.calls.append(('fill_text', text, x, y, color, font, align))

    def named(self, name):
        return [call for call in self.calls if call[0] == name]


def _font_size(font: str) -> float:
    for token in font.split():
        if token.endswith('px'):
            return float(token[:-2])
    return 10.0


class FigureSurface(Surface):
    """
    Draws onto a borderless matplotlib figure sized width x height CSS pixels.

    The backing figure holds width * pixel_ratio device pixels; drawing
    coordinates stay in CSS pixels.
    """
    def __init__(self, width, height, pixel_ratio=1.0, background='white', dpi=100):
        self.width = width
        self.height = height
        self._pixel_ratio = pixel_ratio
        self.background = background
        self.figure = plt.figure(
            figsize=(width * pixel_ratio / dpi, height * pixel_ratio / dpi), dpi=dpi
        )
        self.ax = self.figure.add_axes([0, 0, 1, 1])
        self.ax.set_xlim(0, width)
        self.ax.set_ylim(height, 0)
        self.ax.set_axis_off()
        self._path = []

    @property
    def pixel_ratio(self) -> float:
        return self._pixel_ratio

    def clear_rect(self, x, y, width, height):
        self.ax.add_patch(Rectangle((x, y), width, height, color=self.background, linewidth=0))

    def begin_path(self):
        self._path = []

    def move_to(self, x, y):
        self._path.append(([x], [y]))

    def line_to(self, x, y):
        if not self._path:
            self._path.append(([], []))
        xs, ys = self._path[-1]
        xs.append(x)
        ys.append(y)

    def stroke(self, color, width=1.0):
        # canvas widths are CSS px, matplotlib wants points
        linewidth = width * 72 / self.figure.dpi * self._pixel_ratio
        for xs, ys in self._path:
            self.ax.plot(xs, ys, color=color, linewidth=linewidth, solid_capstyle='butt')

    def fill_rect(self, x, y, width, height, color):
        self.ax.add_patch(Rectangle((x, y), width, height, color=color, linewidth=0))

    def fill_text(self, text, x, y, color, font='10px monospace', align='start'):
        size = _font_size(font) * 72 / self.figure.dpi * self._pixel_ratio
        self.ax.text(
            x, y, text, color=color, fontsize=size,
            fontweight='bold' if 'bold' in font.split() else 'normal',
            family='monospace', ha=_ALIGN.get(align, 'left'), va='baseline'
        )

    def close(self):
        plt.close(self.figure)
