"""Persistent event log."""

import json
from datetime import timedelta

import pytest

from conftest import BASE_TIME
from otp_insight.storage import JsonFileEventLog, NullEventLog


@pytest.fixture
def log_path(tmp_path):
    return str(tmp_path / "otp_events.json")


def test_null_log_stores_nothing():
    log = NullEventLog()
    log.save_otp_event(BASE_TIME)
    log.save_last_interaction(BASE_TIME)
    assert log.load_otp_events() == []
    assert log.load_last_interaction() is None
    assert log.delete_otp_events_before(BASE_TIME) == 0


def test_missing_file_loads_empty(log_path):
    log = JsonFileEventLog(log_path)
    assert log.load_otp_events() == []
    assert log.load_last_interaction() is None


def test_events_round_trip_through_file(log_path):
    log = JsonFileEventLog(log_path)
    log.save_otp_event(BASE_TIME + timedelta(minutes=1))
    log.save_otp_event(BASE_TIME)
    log.save_last_interaction(BASE_TIME)

    reopened = JsonFileEventLog(log_path)
    assert reopened.load_otp_events() == [BASE_TIME, BASE_TIME + timedelta(minutes=1)]
    assert reopened.load_last_interaction() == BASE_TIME


def test_load_since_filters(log_path):
    log = JsonFileEventLog(log_path)
    for minute in range(5):
        log.save_otp_event(BASE_TIME + timedelta(minutes=minute))
    assert len(log.load_otp_events(since=BASE_TIME + timedelta(minutes=3))) == 2


def test_delete_before_cutoff(log_path):
    log = JsonFileEventLog(log_path)
    for minute in range(5):
        log.save_otp_event(BASE_TIME + timedelta(minutes=minute))
    assert log.delete_otp_events_before(BASE_TIME + timedelta(minutes=2)) == 2
    assert log.load_otp_events()[0] == BASE_TIME + timedelta(minutes=2)


def test_event_count_is_bounded(log_path):
    log = JsonFileEventLog(log_path, max_events=3)
    for minute in range(5):
        log.save_otp_event(BASE_TIME + timedelta(minutes=minute))
    events = log.load_otp_events()
    assert len(events) == 3
    assert events[0] == BASE_TIME + timedelta(minutes=2)


def test_clear(log_path):
    log = JsonFileEventLog(log_path)
    log.save_otp_event(BASE_TIME)
    log.save_last_interaction(BASE_TIME)
    log.clear()
    assert log.load_otp_events() == []
    assert log.load_last_interaction() is None


def test_corrupt_file_is_treated_as_empty(log_path):
    with open(log_path, "w", encoding="utf-8") as fh:
        fh.write("{not json")
    log = JsonFileEventLog(log_path)
    assert log.load_otp_events() == []
    log.save_otp_event(BASE_TIME)
    with open(log_path, "r", encoding="utf-8") as fh:
        assert json.load(fh)["otpEvents"] == [BASE_TIME.isoformat()]


def test_unparsable_entries_skipped(log_path):
    with open(log_path, "w", encoding="utf-8") as fh:
        json.dump({"otpEvents": ["yesterday", BASE_TIME.isoformat(), 42]}, fh)
    assert JsonFileEventLog(log_path).load_otp_events() == [BASE_TIME]
