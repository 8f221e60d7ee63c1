import json

import pytest

from scale_loader.models import ResultRecord
from scale_loader.sink import ResultSink


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def _names(directory):
    return sorted(p.name for p in directory.iterdir())


def test_close_without_rotate_is_noop(tmp_path):
    sink = ResultSink(tmp_path / "results")
    sink.close()
    sink.close()
    assert not (tmp_path / "results").exists()


def test_write_without_open_file_is_noop(tmp_path):
    sink = ResultSink(tmp_path)
    sink.write(ResultRecord(seq=1))
    assert _names(tmp_path) == []


def test_file_is_temporary_until_closed(tmp_path):
    sink = ResultSink(tmp_path, clock=FakeClock(1700000000.4))
    final = sink.rotate()
    sink.write(ResultRecord(seq=1, code=200))

    assert final.name == "results-1700000000.json"
    assert _names(tmp_path) == ["results-1700000000.json.tmp"]
    assert sink.current_path == final

    sink.close()
    assert _names(tmp_path) == ["results-1700000000.json"]
    assert not sink.is_open
    assert sink.current_path is None


def test_rotate_finalizes_previous_before_opening_next(tmp_path):
    clock = FakeClock(1700000000)
    sink = ResultSink(tmp_path, clock=clock)
    sink.rotate()
    sink.write(ResultRecord(seq=1))

    clock.now = 1700000010
    sink.rotate()
    assert _names(tmp_path) == ["results-1700000000.json", "results-1700000010.json.tmp"]

    sink.write(ResultRecord(seq=2))
    sink.close()
    assert _names(tmp_path) == ["results-1700000000.json", "results-1700000010.json"]
    assert json.loads((tmp_path / "results-1700000000.json").read_text())["seq"] == 1
    assert json.loads((tmp_path / "results-1700000010.json").read_text())["seq"] == 2


def test_rotations_within_one_second_do_not_collide(tmp_path):
    sink = ResultSink(tmp_path, clock=FakeClock(1700000000.1))
    sink.rotate()
    sink.rotate()
    sink.rotate()
    sink.close()
    assert _names(tmp_path) == [
        "results-1700000000.json",
        "results-1700000001.json",
        "results-1700000002.json",
    ]


def test_records_written_as_json_lines_in_order(tmp_path):
    sink = ResultSink(tmp_path, clock=FakeClock(5))
    final = sink.rotate()
    for seq in range(3):
        sink.write(ResultRecord(seq=seq, code=200, url="http://10.0.0.1/"))
    sink.close()

    lines = final.read_text().splitlines()
    assert [json.loads(line)["seq"] for line in lines] == [0, 1, 2]
    assert ResultRecord.model_validate_json(lines[0]).url == "http://10.0.0.1/"


def test_rotate_failure_leaves_no_file_open(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    sink = ResultSink(blocker)

    with pytest.raises(OSError):
        sink.rotate()
    assert not sink.is_open
    sink.close()
