import numpy as np
import matplotlib
matplotlib.use('Agg')
import pytest
import sys
sys.path.insert(0, '.')

from eegviewer.session import FileConfig
from eegviewer.surface import RecordingSurface
from eegviewer.viewer import Viewer


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_viewer(n_samples=1000, sampling_rate=100, duration=5, channels=2, **kwargs):
    data = np.random.default_rng(0).standard_normal((n_samples, channels))
    config = FileConfig(sampling_rate=sampling_rate, channel_count=channels,
                        trial_duration_sec=duration)
    return Viewer(data, config, **kwargs)


def test_trial_windowing():
    viewer = make_viewer()
    assert viewer.points_per_trial == 500
    assert viewer.total_trials == 2
    assert viewer.trial_bounds(0) == (0, 500)
    assert viewer.trial_bounds(1) == (500, 1000)
    viewer.next()
    assert viewer.current.start == 500 and viewer.current.stop == 1000
    assert viewer.current.start_offset == 5


def test_partial_last_trial():
    viewer = make_viewer(n_samples=1200)
    assert viewer.total_trials == 3
    assert viewer.trial_bounds(2) == (1000, 1200)


def test_navigation_is_clamped():
    viewer = make_viewer()
    assert viewer.previous() == 0
    assert viewer.next() == 1
    assert viewer.next() == 1
    assert viewer.on_key('ArrowLeft') == 0
    assert viewer.on_key('ArrowRight') == 1


def test_scrolling_shows_whole_recording():
    viewer = make_viewer()
    viewer.next()
    viewer.toggle_scrolling()
    assert len(viewer.current) == 1000
    assert viewer.start_offset == 0
    assert viewer.jump(0) == 1
    assert viewer.canvas_width(800) == 1000
    viewer.toggle_scrolling()
    assert viewer.canvas_width(800) == 800


def test_add_annotation():
    received = []
    viewer = make_viewer(n_samples=2000, on_annotations=received.append)
    assert viewer.add_annotation('   ') is None
    assert viewer.annotations == [] and received == []

    viewer.jump(2)
    annotation = viewer.add_annotation('spike train', 'seizure')
    assert annotation.timestamp == 10
    assert annotation.trial_index == 2
    assert len(received) == 1 and received[0] == viewer.annotations
    assert received[0] is not viewer.annotations


def test_delete_and_history():
    received = []
    viewer = make_viewer(n_samples=2000, on_annotations=received.append)
    viewer.jump(3)
    late = viewer.add_annotation('late')
    viewer.jump(1)
    early = viewer.add_annotation('early', 'artifact')
    assert [a.note for a in viewer.history()] == ['early', 'late']
    viewer.delete_annotation(late.id)
    assert viewer.annotations == [early]
    assert received[-1] == [early]


def test_unknown_annotation_type():
    viewer = make_viewer()
    with pytest.raises(ValueError):
        viewer.add_annotation('x', 'bogus')


def test_gain_debounce():
    clock = FakeClock()
    gains = []
    viewer = make_viewer(on_gain=gains.append, clock=clock)
    for text in ['3', '30', '3']:
        viewer.edit_gain(text)
        clock.now += 0.1
        viewer.tick()
    assert viewer.gain == 1.0
    clock.now += 0.5
    viewer.tick()
    viewer.tick()
    assert viewer.gain == 3.0
    assert gains == [3.0]

    viewer.edit_gain('nope')
    clock.now += 1
    viewer.tick()
    assert viewer.gain == 3.0


def test_duration_commit():
    clock = FakeClock()
    configs = []
    viewer = make_viewer(on_config=configs.append, clock=clock)
    viewer.next()
    viewer.edit_duration('0')
    clock.now += 1
    viewer.tick()
    assert configs == []

    viewer.edit_duration('10')
    clock.now += 1
    viewer.tick()
    assert configs[-1].trial_duration_sec == 10
    assert viewer.total_trials == 1
    assert viewer.current_trial == 0


def test_spectrogram_is_memoised_per_slice():
    viewer = make_viewer(n_samples=2000, sampling_rate=256, duration=2)
    viewer.set_view_mode('spectrogram')
    first = viewer.spectrogram()
    assert viewer.spectrogram() is first
    viewer.next()
    second = viewer.spectrogram()
    assert second is not first
    viewer.select_channel(1)
    assert viewer.spectrogram() is not second
    assert len(first) == 3


def test_paging_is_ignored_while_scrolling():
    viewer = make_viewer(n_samples=2000)
    viewer.jump(1)
    viewer.toggle_scrolling()
    assert viewer.next() == 1
    assert viewer.previous() == 1
    assert viewer.on_key('ArrowRight') == 1
    annotation = viewer.add_annotation('blink')
    assert annotation.trial_index == 1 and annotation.timestamp == 5
    viewer.toggle_scrolling()
    assert viewer.next() == 2


def test_spectrogram_follows_paging_mode():
    viewer = make_viewer(n_samples=2000, sampling_rate=256, duration=2)
    viewer.set_view_mode('spectrogram')
    paged = viewer.spectrogram()
    assert len(paged) == 3

    viewer.toggle_scrolling()
    full = viewer.spectrogram()
    assert full is not paged
    assert len(full) == (2000 - 256) // 128 + 1
    assert viewer.spectrogram() is full

    viewer.toggle_scrolling()
    again = viewer.spectrogram()
    assert again is not full
    assert len(again) == 3


def test_render_modes():
    viewer = make_viewer()
    surface = RecordingSurface()
    viewer.render(surface, 1070, 300)
    assert len(surface.named('stroke')) > 2

    reading = viewer.pointer(viewer.waveform.layout.x_at(250), surface)
    assert np.isclose(reading.time, 2.5)
    assert viewer.waveform.render_count == 1

    viewer.set_view_mode('spectrogram')
    surface = RecordingSurface()
    viewer.render(surface, 800, 400)
    assert surface.named('fill_rect')
    assert viewer.pointer(100) is None


def test_snapshot():
    viewer = make_viewer()
    viewer.add_annotation('note')
    snapshot = viewer.snapshot()
    assert snapshot['config']['trialDurationSec'] == 5
    assert snapshot['annotations'][0]['note'] == 'note'
    assert snapshot['currentTrial'] == 0 and snapshot['viewMode'] == 'raw'
