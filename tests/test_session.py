import json
import logging
import numpy as np
import matplotlib
matplotlib.use('Agg')
import sys
sys.path.insert(0, '.')

from eegviewer.annotation import Annotation
from eegviewer.session import Session, FileConfig, PatientInfo
from eegviewer.utilities import DirectoryStore, MemoryStore


class BrokenStore:
    def save(self, key, snapshot):
        raise OSError("disk full")

    def load(self, key):
        return None


def make_session(stores):
    return Session(
        patient=PatientInfo(id='P12345', name='James Thompson', age='45', gender='Male'),
        config=FileConfig(sampling_rate=100, channel_count=2, trial_duration_sec=5),
        filename='recording.csv',
        data=np.zeros((1000, 2)),
        stores=stores,
    )


def test_snapshot_is_lightweight():
    snapshot = make_session([]).snapshot()
    assert 'data' not in snapshot
    assert snapshot['patientId'] == 'P12345'
    assert snapshot['config']['samplingRate'] == 100
    json.dumps(snapshot)


def test_viewer_changes_are_persisted(tmp_path):
    memory = MemoryStore()
    session = make_session([memory, DirectoryStore(tmp_path)])
    viewer = session.viewer()
    viewer.next()
    viewer.add_annotation('eyes closed', 'normal')

    assert memory.load('P12345')['annotations'][0]['timestamp'] == 5
    on_disk = json.loads((tmp_path / 'settings' / 'P12345.json').read_text())
    assert on_disk['annotations'][0]['note'] == 'eyes closed'
    assert session.annotations == viewer.annotations


def test_failing_store_is_logged_not_raised(caplog):
    memory = MemoryStore()
    session = make_session([BrokenStore(), memory])
    with caplog.at_level(logging.ERROR):
        session.update_gain(2.5)
    assert 'disk full' in caplog.text
    assert memory.load('P12345')['gain'] == 2.5


def test_restore_round_trip(tmp_path):
    store = DirectoryStore(tmp_path)
    session = make_session([store])
    session.update_annotations([Annotation(1, 5, 'artifact here', 'artifact', id='a1')])
    session.update_config(session.config.replace(trial_duration_sec=10))

    fresh = Session(patient=PatientInfo(id='P12345'), stores=[store]).load()
    assert fresh.config.trial_duration_sec == 10
    assert fresh.annotations[0].id == 'a1'
    assert fresh.annotations[0].label() == 'Trial 2  T+5s'


def test_patient_badge():
    assert make_session([]).patient.badge() == 'James Thompson (45yo • Male)'
    assert PatientInfo().badge() == ''
