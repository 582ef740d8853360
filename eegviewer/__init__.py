from .session import Session, FileConfig, PatientInfo
from .trial import Trial, as_matrix
from .annotation import Annotation, ANNOTATION_TYPES
from .utilities import savify, loadify, DirectoryStore, MemoryStore
from .dsp import (
    fft,
    ifft,
    hann_window,
    compute_spectrogram,
    SpectrogramResult,
)
from .colormap import heatmap_color, heatmap_image, heatmap_colormap
from .debounce import Debouncer
from .surface import Surface, RecordingSurface, FigureSurface
from .plot import (
    WaveformRenderer,
    SpectrogramRenderer,
    PointerReading,
    plotify_trial,
    plotify_spectrogram,
)
from .extractor import Extractor, read_delimited
from .viewer import Viewer
__all__ = [
    "Session",
    "FileConfig",
    "PatientInfo",
    "Trial",
    "Annotation",
    "Viewer",
    "Extractor",
    "read_delimited",
    "compute_spectrogram",
    "heatmap_color",
    "WaveformRenderer",
    "SpectrogramRenderer",
    "Debouncer",
    "DirectoryStore",
    "MemoryStore",
]
