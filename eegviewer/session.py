import copy
import logging
import time

from .annotation import Annotation

logger = logging.getLogger(__name__)

ORIENTATIONS = ('rows-are-time', 'rows-are-channels')


class FileConfig:
    __slots__ = (
        'sampling_rate', 'channel_count', 'skip_rows', 'skip_cols',
        'trial_duration_sec', 'orientation'
    )

    def __init__(self,
                 sampling_rate=256,
                 channel_count=8,
                 skip_rows=0,
                 skip_cols=0,
                 trial_duration_sec=5,
                 orientation='rows-are-time'):
        """How to read a recording and how long one trial lasts."""
        if orientation not in ORIENTATIONS:
            raise ValueError(f"Unknown orientation: {orientation}")
        self.sampling_rate = sampling_rate
        self.channel_count = channel_count
        self.skip_rows = skip_rows
        self.skip_cols = skip_cols
        self.trial_duration_sec = trial_duration_sec
        self.orientation = orientation

    def __repr__(self):
        return (
            f"FileConfig({self.channel_count} ch @ {self.sampling_rate}Hz,"
            f" trial: {self.trial_duration_sec}s, {self.orientation})"
        )

    def __eq__(self, other):
        if not isinstance(other, FileConfig):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def replace(self, **changes):
        fields = {name: getattr(self, name) for name in self.__slots__}
        fields.update(changes)
        return FileConfig(**fields)

    def to_dict(self) -> dict:
        return {
            'samplingRate': self.sampling_rate,
            'channelCount': self.channel_count,
            'skipRows': self.skip_rows,
            'skipCols': self.skip_cols,
            'trialDurationSec': self.trial_duration_sec,
            'orientation': self.orientation,
        }

    @classmethod
    def from_dict(cls, record: dict):
        defaults = cls()
        return cls(
            sampling_rate=record.get('samplingRate', defaults.sampling_rate),
            channel_count=record.get('channelCount', defaults.channel_count),
            skip_rows=record.get('skipRows', defaults.skip_rows),
            skip_cols=record.get('skipCols', defaults.skip_cols),
            trial_duration_sec=record.get('trialDurationSec', defaults.trial_duration_sec),
            orientation=record.get('orientation', defaults.orientation),
        )


class PatientInfo:
    __slots__ = ('id', 'name', 'age', 'dob', 'gender', 'height', 'weight')

    def __init__(self, id='', name='', age='', dob='', gender='', height='', weight=''):
        """Demographics as handed over by the record server; all plain strings."""
        self.id = id
        self.name = name
        self.age = age
        self.dob = dob
        self.gender = gender
        self.height = height
        self.weight = weight

    def __repr__(self):
        return f"PatientInfo(id: {self.id!r}, name: {self.name!r})"

    def badge(self) -> str:
        """'Name (45yo • Male)' style summary; empty when nothing is known."""
        if not (self.id or self.name):
            return ''
        details = ' • '.join(part for part in (
            f"{self.age}yo" if self.age else '', self.gender) if part)
        name = self.name or 'Unknown Patient'
        return f"{name} ({details})" if details else name


class Session:
    __slots__ = (
        'patient', 'config', 'filename', 'data', 'annotations',
        'gain', 'status', 'stores'
    )

    def __init__(self,
                 patient=None,
                 config=None,
                 filename='',
                 data=None,
                 annotations=None,
                 gain=None,
                 status='viewing',
                 stores=None):
        """
        Application state for one loaded recording.

        Owns the configuration, annotations and gain, and writes a lightweight
        snapshot (no sample data) to every store after each update.
        """
        self.patient = patient if patient is not None else PatientInfo()
        self.config = config if config is not None else FileConfig()
        self.filename = filename
        self.data = data  # shape: samples x channels
        self.annotations = list(annotations) if annotations else []
        self.gain = gain
        self.status = status
        self.stores = list(stores) if stores else []

    def __len__(self):
        return self.data.shape[0] if self.data is not None else 0

    def __repr__(self):
        return (
            f"Session(patient: {self.patient.id!r}, file: {self.filename!r},"
            f" rows: {len(self)}, annotations: {len(self.annotations)})"
        )

    @property
    def key(self) -> str:
        return self.patient.id or self.filename or 'default'

    # --- updates pushed from the viewer ---
    def update_config(self, config: FileConfig):
        self.config = config
        self.persist()

    def update_annotations(self, annotations):
        self.annotations = list(annotations)
        self.persist()

    def update_gain(self, gain: float):
        self.gain = gain
        self.persist()

    def snapshot(self) -> dict:
        """Serialisable state without the sample matrix."""
        return {
            'patientId': self.patient.id,
            'filename': self.filename,
            'config': self.config.to_dict(),
            'annotations': [a.to_dict() for a in self.annotations],
            'status': self.status,
            'gain': self.gain,
            'timestamp': int(time.time() * 1000),
        }

    def persist(self):
        """Write the snapshot to each store; a failing store is logged, not raised."""
        snapshot = self.snapshot()
        for store in self.stores:
            try:
                store.save(self.key, copy.deepcopy(snapshot))
            except Exception as e:
                logger.error(f"Failed to save session state to {type(store).__name__}: {e}")

    def restore(self, snapshot: dict):
        """Apply a stored snapshot (config, annotations, gain) to this session."""
        if not snapshot:
            return self
        if 'config' in snapshot:
            self.config = FileConfig.from_dict(snapshot['config'])
        self.annotations = [Annotation.from_dict(a) for a in snapshot.get('annotations', [])]
        self.gain = snapshot.get('gain', self.gain)
        self.filename = snapshot.get('filename', self.filename)
        return self

    def load(self):
        """Restore from the first store holding a snapshot for this session's key."""
        for store in self.stores:
            snapshot = store.load(self.key)
            if snapshot:
                logger.info(f"Restored session {self.key} from {type(store).__name__}")
                return self.restore(snapshot)
        return self

    def viewer(self, **kwargs):
        """Build a Viewer over this session's data, wired back to its update methods."""
        from .viewer import Viewer
        return Viewer(
            self.data,
            self.config,
            gain=self.gain if self.gain is not None else 1.0,
            annotations=self.annotations,
            on_annotations=self.update_annotations,
            on_gain=self.update_gain,
            on_config=self.update_config,
            **kwargs
        )
