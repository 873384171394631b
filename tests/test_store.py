import logging
import shutil
import threading
from datetime import timedelta

import pytest

from ketchup_tracker.models import DiaryEntry, DoseEvent, InvalidDoseEvent
from ketchup_tracker.store import DiaryStore, MemoryDoseLogStore, SqliteDoseLogStore, StoreError

from helpers import FailingStore


def test_append_then_list_newest_first(sqlite_store, sample_events):
    for event in sample_events:
        assert sqlite_store.append(event) is True

    listed = sqlite_store.list_all()
    assert len(listed) == 3
    assert [e.cycle_day for e in listed] == [3, 2, 1]
    assert [e.timestamp for e in listed] == sorted((e.timestamp for e in sample_events), reverse=True)
    assert all(e.id is not None for e in listed)


def test_sqlite_keeps_missing_timestamp_last(sqlite_store, sample_events):
    sqlite_store.append(DoseEvent(None, 4))
    sqlite_store.append(sample_events[0])
    listed = sqlite_store.list_all()
    assert listed[0].timestamp == sample_events[0].timestamp
    assert listed[-1].timestamp is None


def test_sqlite_logs_are_per_user(tmp_path, sample_events):
    db = tmp_path / "shared.db"
    bella = SqliteDoseLogStore(db, user_id="bella")
    other = SqliteDoseLogStore(db, user_id="other")
    bella.append(sample_events[0])
    assert len(bella.list_all()) == 1
    assert other.list_all() == []


def test_invalid_event_is_not_stored(sqlite_store):
    with pytest.raises(InvalidDoseEvent):
        sqlite_store.append(DoseEvent(None, 0))
    assert sqlite_store.list_all() == []


def test_failing_write_returns_false_and_keeps_list(failing_store, base_time, caplog):
    before = failing_store.list_all()

    with caplog.at_level(logging.ERROR, logger="ketchup_tracker.store"):
        ok = failing_store.append(DoseEvent(base_time + timedelta(days=5), 4))

    assert ok is False
    assert failing_store.list_all() == before
    assert "Write error" in caplog.text


def test_sqlite_write_failure_is_reported(sqlite_store, base_time, monkeypatch):
    import sqlite3
    from ketchup_tracker import store as store_module

    def broken_connection(db_path=None):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(store_module, "get_connection", broken_connection)
    assert sqlite_store.append(DoseEvent(base_time, 1)) is False
    with pytest.raises(StoreError):
        sqlite_store.list_all()


def test_sqlite_filesystem_failure_is_reported(tmp_path, base_time, caplog):
    data_dir = tmp_path / "data"
    store = SqliteDoseLogStore(data_dir / "k.db")

    # The data directory turns into a plain file after start-up
    shutil.rmtree(data_dir)
    data_dir.write_text("not a directory")

    with caplog.at_level(logging.ERROR, logger="ketchup_tracker.store"):
        assert store.append(DoseEvent(base_time, 1)) is False
    assert "Write error" in caplog.text
    with pytest.raises(StoreError):
        store.list_all()


def test_save_returns_event_with_storage_id(sqlite_store, sample_events):
    first = sqlite_store.save(sample_events[0])
    second = sqlite_store.save(sample_events[1])
    assert first.id is not None
    assert second.id != first.id
    assert sqlite_store.list_all()[0].id == second.id


def test_save_returns_none_when_write_fails(failing_store, base_time):
    assert failing_store.save(DoseEvent(base_time, 1)) is None


def test_subscriber_gets_full_list_on_subscribe_and_after_append(memory_store, base_time):
    received = []
    memory_store.on_change(received.append)

    assert len(received) == 1
    assert len(received[0]) == 3

    memory_store.append(DoseEvent(base_time + timedelta(days=10), 4))
    assert len(received) == 2
    assert len(received[1]) == 4
    assert received[1][0].cycle_day == 4


def test_unsubscribe_stops_updates(memory_store, base_time):
    received = []
    unsubscribe = memory_store.on_change(received.append)
    unsubscribe()
    unsubscribe()  # second call is harmless

    memory_store.append(DoseEvent(base_time, 1))
    assert len(received) == 1


def test_failed_write_does_not_notify(failing_store, base_time):
    received = []
    failing_store.on_change(received.append)
    failing_store.append(DoseEvent(base_time, 1))
    assert len(received) == 1


def test_read_failure_keeps_subscriber_stale(sample_events, base_time, caplog):
    store = FailingStore(sample_events)
    store.fail_writes = False
    received = []
    store.on_change(received.append)

    store.fail_reads = True
    with caplog.at_level(logging.ERROR, logger="ketchup_tracker.store"):
        assert store.append(DoseEvent(base_time, 1)) is True

    assert len(received) == 1
    assert "Sync error" in caplog.text


def test_broken_listener_does_not_break_append(memory_store, base_time, caplog):
    def explode(events):
        raise RuntimeError("render failed")

    good = []
    with caplog.at_level(logging.ERROR, logger="ketchup_tracker.store"):
        memory_store.on_change(explode)
        memory_store.on_change(good.append)
        assert memory_store.append(DoseEvent(base_time, 1)) is True

    assert len(good) == 2
    assert "listener failed" in caplog.text


def test_subscribers_from_many_threads_all_get_updates(memory_store, base_time):
    received = [[] for _ in range(8)]
    start = threading.Barrier(len(received))

    def subscribe(inbox):
        start.wait()
        memory_store.on_change(inbox.append)

    threads = [threading.Thread(target=subscribe, args=(inbox,)) for inbox in received]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    memory_store.append(DoseEvent(base_time + timedelta(days=10), 4))
    assert all(len(inbox[-1]) == 4 for inbox in received)


# ============================================================
# DIARY
# ============================================================

def test_diary_starts_empty(tmp_path):
    assert DiaryStore(tmp_path / "dagbok.xlsx").list_all() == []


def test_diary_append_and_list_newest_first(tmp_path):
    diary = DiaryStore(tmp_path / "dagbok.xlsx")
    older = DiaryEntry("2026-03-01", "08:00", "Aktiv", "Trött", "", "Nej")
    newer = DiaryEntry("2026-03-02", "07:30", "Aktiv", "Glad", "Torr", "")

    assert diary.append(older) is True
    assert diary.append(newer) is True

    assert diary.list_all() == [newer, older]


def test_diary_write_failure_returns_false(tmp_path):
    # A directory where the workbook should be
    blocked = tmp_path / "dagbok.xlsx"
    blocked.mkdir()
    diary = DiaryStore(blocked)
    assert diary.append(DiaryEntry("2026-03-01", "08:00")) is False
