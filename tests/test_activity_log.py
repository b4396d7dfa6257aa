import json
import os

import pytest

from reactors import activity_log
from reactors.activity_log import OperationLog, log_event, read_events


def test_entries_are_appended_as_json_lines(tmp_path):
    path = str(tmp_path / "events.jsonl")
    log = OperationLog(log_file=path, operation_id="op")

    log.info("first")
    size_after_first = os.path.getsize(path)
    log.error("second", {"category": "rate_limited"})

    with open(path, encoding="utf-8") as f:
        lines = [json.loads(line) for line in f]
    assert [line["message"] for line in lines] == ["first", "second"]
    assert lines[1]["level"] == "ERROR"
    assert lines[1]["operation"] == "op"
    assert lines[1]["data"] == {"category": "rate_limited"}
    # the first line is untouched by the second write
    with open(path, encoding="utf-8") as f:
        assert len(f.readline().encode("utf-8")) == size_after_first


def test_read_events_returns_the_newest_entries(tmp_path):
    path = str(tmp_path / "events.jsonl")
    for i in range(5):
        log_event(path, "INFO", f"event {i}")

    assert [e["message"] for e in read_events(path, 2)] == ["event 3", "event 4"]
    assert read_events(path, 0) == []
    assert read_events(str(tmp_path / "missing.jsonl")) == []
    assert read_events(None) == []


def test_log_file_is_rotated_at_size_cap(tmp_path, monkeypatch):
    monkeypatch.setattr(activity_log, "LOG_FILE_MAX_BYTES", 400)
    monkeypatch.setattr(activity_log, "LOG_FILE_BACKUPS", 2)
    path = str(tmp_path / "events.jsonl")

    for i in range(50):
        log_event(path, "INFO", f"event {i}", payload="x" * 40)

    assert os.path.getsize(path) <= 400
    assert os.path.exists(path + ".1")
    assert not os.path.exists(path + ".3")
    assert read_events(path, 1)[0]["message"] == "event 49"


def test_unreadable_lines_are_skipped(tmp_path):
    path = tmp_path / "events.jsonl"
    path.write_text('{"message": "ok"}\nnot json\n')

    assert read_events(str(path)) == [{"message": "ok"}]


def test_unknown_log_type_is_rejected():
    with pytest.raises(ValueError):
        OperationLog().add("debug", "nope")
