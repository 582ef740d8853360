import math
import uuid

ANNOTATION_TYPES = ('normal', 'artifact', 'seizure', 'other')


class Annotation:
    __slots__ = ('id', 'trial_index', 'timestamp', 'note', 'type')

    def __init__(self, trial_index, timestamp, note, type='normal', id=None):
        """A note pinned to a trial; timestamp is seconds from recording start."""
        if type not in ANNOTATION_TYPES:
            raise ValueError(f"Unknown annotation type: {type}")
        self.id = id if id is not None else uuid.uuid4().hex
        self.trial_index = trial_index
        self.timestamp = timestamp
        self.note = note
        self.type = type

    def __repr__(self):
        return (
            f"Annotation(trial: {self.trial_index}, t: {self.timestamp}s,"
            f" type: {self.type}, note: {self.note!r})"
        )

    def __eq__(self, other):
        if not isinstance(other, Annotation):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def label(self) -> str:
        """History line header, e.g. 'Trial 3  T+10s'."""
        return f"Trial {self.trial_index + 1}  T+{math.floor(self.timestamp + 0.5)}s"

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'trialIndex': self.trial_index,
            'timestamp': self.timestamp,
            'note': self.note,
            'type': self.type,
        }

    @classmethod
    def from_dict(cls, record: dict):
        return cls(
            trial_index=int(record['trialIndex']),
            timestamp=record['timestamp'],
            note=record['note'],
            type=record.get('type', 'other'),
            id=str(record['id']),
        )


def sort_by_trial(annotations):
    """Display order: ascending trial index, stable for ties."""
    return sorted(annotations, key=lambda a: a.trial_index)
