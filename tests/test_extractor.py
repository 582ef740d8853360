import gzip
import io
import numpy as np
import pytest
import sys
sys.path.insert(0, '.')

from eegviewer.extractor import Extractor, read_delimited
from eegviewer.session import FileConfig


def test_rows_are_time_with_header_and_index_column():
    text = "time,a,b,c\n0,1,2,3\n1,4,x,6\n"
    config = FileConfig(channel_count=2, skip_rows=1, skip_cols=1)
    matrix = read_delimited(io.StringIO(text), config)
    assert np.array_equal(matrix, [[1, 2], [4, 0]])


def test_rows_are_channels_is_transposed():
    text = "1,2,3\n4,5,6\n7,8,9\n"
    config = FileConfig(channel_count=2, orientation='rows-are-channels')
    matrix = read_delimited(io.StringIO(text), config)
    assert np.array_equal(matrix, [[1, 4], [2, 5], [3, 6]])


def test_missing_channels_are_padded():
    config = FileConfig(channel_count=3)
    matrix = read_delimited(io.StringIO("1,2\n3,4\n"), config)
    assert matrix.shape == (2, 3)
    assert np.all(matrix[:, 2] == 0)


def test_gzip_and_whitespace_files(tmp_path):
    path = tmp_path / 'rec.txt.gz'
    with gzip.open(path, 'wt') as f:
        f.write("1.5 2.5\n3.5 4.5\n")
    matrix = read_delimited(path, FileConfig(channel_count=2))
    assert np.allclose(matrix, [[1.5, 2.5], [3.5, 4.5]])


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        read_delimited('/nonexistent/recording.csv', FileConfig())


def test_extractor_reads_folder(tmp_path):
    for name in ['a.csv', 'b.csv']:
        (tmp_path / name).write_text("1,2\n3,4\n5,6\n")
    (tmp_path / 'notes.md').write_text("ignored")
    sessions = Extractor(str(tmp_path), FileConfig(channel_count=2)).extractify()
    assert [s.filename for s in sessions] == ['a.csv', 'b.csv']
    assert sessions[0].data.shape == (3, 2)


def test_extractor_empty_folder(tmp_path):
    with pytest.raises(FileNotFoundError):
        Extractor(str(tmp_path), FileConfig()).extractify()


def test_ragged_rows_are_padded_and_truncated():
    config = FileConfig(channel_count=2)
    matrix = read_delimited(io.StringIO("1,2\n3,4,5\n6\n"), config)
    assert np.array_equal(matrix, [[1, 2], [3, 4], [6, 0]])


def test_text_only_rows_keep_their_position():
    config = FileConfig(channel_count=2)
    matrix = read_delimited(io.StringIO("1,2\nNaN?,x\n3,4\n"), config)
    assert np.array_equal(matrix, [[1, 2], [0, 0], [3, 4]])


def test_cells_read_by_leading_number():
    config = FileConfig(channel_count=2)
    matrix = read_delimited(io.StringIO("12uV,3\n4,-.5e1mV\n"), config)
    assert np.array_equal(matrix, [[12, 3], [4, -5]])


def test_rows_without_data_columns_are_skipped():
    config = FileConfig(channel_count=2, skip_cols=1)
    matrix = read_delimited(io.StringIO("0,1,2\nmarker\n1,3,4\n"), config)
    assert np.array_equal(matrix, [[1, 2], [3, 4]])


def test_ragged_channel_rows():
    text = "1,2,3\n4,5\n7,8,9,10\n"
    config = FileConfig(channel_count=3, orientation='rows-are-channels')
    matrix = read_delimited(io.StringIO(text), config)
    assert np.array_equal(matrix, [[1, 4, 7], [2, 5, 8], [3, 0, 9]])


def test_nothing_left_after_skipping_columns():
    with pytest.raises(ValueError):
        read_delimited(io.StringIO("1,2\n3,4\n"), FileConfig(channel_count=2, skip_cols=2))
