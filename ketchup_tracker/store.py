"""
Dose log storage for Ketchup Tracker.

The dose log is append-only. Every store offers:
- append(event)       -> True if saved, False if the write failed
- save(event)         -> the stored event (with its id), None if the write failed
- list_all()          -> all events, newest first
- on_change(listener) -> subscribe to full-list updates, returns unsubscribe

A failed write never raises to the caller: it is logged and reported as
False so the user can simply try again. Subscribers always get the whole
list (no incremental diffs); if a read fails they keep what they had.
"""

import logging
import sqlite3
import threading
import zipfile
from pathlib import Path
from typing import Callable, List, Optional

import pandas as pd

from .database import get_connection, init_database
from .models import (
    DoseEvent,
    DoseStatus,
    DiaryEntry,
    DIARY_COLUMNS,
    InvalidDoseEvent,
    diary_entry_from_row,
    diary_entry_to_row,
    sort_events,
    validate_event,
    parse_timestamp,
)


logger = logging.getLogger(__name__)

Listener = Callable[[List[DoseEvent]], None]


class StoreError(Exception):
    """A store operation failed."""


# ============================================================
# BASE STORE
# ============================================================

class DoseLogStore:
    """
    Base class for dose log backends.

    Subclasses implement _insert() and _fetch_all() and raise StoreError
    when the backend fails.
    """

    def __init__(self):
        self._listeners = []
        self._listeners_lock = threading.Lock()

    def _insert(self, event: DoseEvent) -> DoseEvent:
        raise NotImplementedError

    def _fetch_all(self) -> List[DoseEvent]:
        raise NotImplementedError

    def save(self, event: DoseEvent) -> Optional[DoseEvent]:
        """
        Save a dose event.

        Returns:
            The stored event (with its storage id, if the backend has one),
            or None if the store failed.
            Invalid events raise InvalidDoseEvent, they are a caller bug.
        """
        validate_event(event)
        try:
            saved = self._insert(event)
        except StoreError as e:
            logger.error("Write error: %s", e)
            return None

        self._notify()
        return saved

    def append(self, event: DoseEvent) -> bool:
        """Save a dose event. Returns True if saved, False if the store failed."""
        return self.save(event) is not None

    def list_all(self) -> List[DoseEvent]:
        """
        Get every event, newest first.

        Raises:
            StoreError: if the backend can't be read
        """
        return sort_events(self._fetch_all())

    def on_change(self, listener: Listener) -> Callable[[], None]:
        """
        Subscribe to the dose log.

        The listener is called right away with the current list and again
        after every successful append, each time with the full list.

        Returns:
            A function that removes the subscription
        """
        with self._listeners_lock:
            self._listeners.append(listener)
        self._deliver(listener, self._snapshot())

        def unsubscribe():
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _snapshot(self):
        try:
            return self.list_all()
        except StoreError as e:
            logger.error("Sync error: %s", e)
            return None

    def _deliver(self, listener: Listener, events):
        if events is None:
            return
        try:
            listener(list(events))
        except Exception:
            logger.exception("Dose log listener failed")

    def _notify(self):
        with self._listeners_lock:
            listeners = list(self._listeners)
        if not listeners:
            return
        events = self._snapshot()
        for listener in listeners:
            self._deliver(listener, events)


# ============================================================
# BACKENDS
# ============================================================

class MemoryDoseLogStore(DoseLogStore):
    """Keeps events in a list. Used for demos and tests."""

    def __init__(self, events: List[DoseEvent] = None):
        super().__init__()
        self._events = list(events or [])

    def _insert(self, event):
        self._events.append(event)
        return event

    def _fetch_all(self):
        return list(self._events)


class SqliteDoseLogStore(DoseLogStore):
    """
    Dose log in the local SQLite database, one log per user_id.

    Example:
        store = SqliteDoseLogStore(user_id="bella")
        store.append(DoseEvent.create(cycle_day=1))
        latest = store.list_all()[0]
    """

    def __init__(self, db_path: Path = None, user_id: str = "local"):
        super().__init__()
        self.db_path = db_path
        self.user_id = user_id
        init_database(db_path)

    def _insert(self, event):
        try:
            conn = get_connection(self.db_path)
            try:
                cursor = conn.execute(
                    """INSERT INTO dose_logs (user_id, timestamp, cycle_day, status)
                       VALUES (?, ?, ?, ?)""",
                    (
                        self.user_id,
                        event.timestamp.isoformat() if event.timestamp else None,
                        event.cycle_day,
                        event.status.value,
                    )
                )
                conn.commit()
                event_id = cursor.lastrowid
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Could not save dose: {e}") from e

        return DoseEvent(event.timestamp, event.cycle_day, event.status, id=event_id)

    def _fetch_all(self):
        try:
            conn = get_connection(self.db_path)
            try:
                # Insertion order; list_all() then sorts newest first
                rows = conn.execute(
                    "SELECT * FROM dose_logs WHERE user_id = ? ORDER BY id",
                    (self.user_id,)
                ).fetchall()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Could not read dose log: {e}") from e

        events = []
        for row in rows:
            try:
                events.append(DoseEvent(
                    timestamp=parse_timestamp(row['timestamp']),
                    cycle_day=row['cycle_day'],
                    status=DoseStatus(row['status']),
                    id=row['id'],
                ))
            except (InvalidDoseEvent, ValueError) as e:
                logger.warning("Skipping unreadable dose_logs row %s: %s", row['id'], e)
        return events


# ============================================================
# DIARY (SPREADSHEET VARIANT)
# ============================================================

class DiaryStore:
    """
    Diary rows kept in an Excel workbook with the columns
    Datum, Tid, Typ, Humör, Hud, Spotting.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_frame(self) -> pd.DataFrame:
        if not self.path.exists():
            return pd.DataFrame(columns=DIARY_COLUMNS)
        try:
            return pd.read_excel(self.path, dtype=str)
        except (OSError, ValueError, zipfile.BadZipFile) as e:
            raise StoreError(f"Could not read diary {self.path}: {e}") from e

    def append(self, entry: DiaryEntry) -> bool:
        """Add a row to the workbook. Returns False if the write failed."""
        try:
            frame = self._read_frame()
            row = pd.DataFrame([diary_entry_to_row(entry)], columns=DIARY_COLUMNS)
            frame = row if frame.empty else pd.concat([frame, row], ignore_index=True)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            frame.to_excel(self.path, index=False, engine="openpyxl")
        except StoreError as e:
            logger.error("Write error: %s", e)
            return False
        except OSError as e:
            logger.error("Write error: could not save diary %s: %s", self.path, e)
            return False
        return True

    def list_all(self) -> List[DiaryEntry]:
        """
        Get all diary rows, newest first.

        Rows with an unreadable Datum sort last.

        Raises:
            StoreError: if the workbook can't be read
        """
        frame = self._read_frame()
        entries = [diary_entry_from_row(r) for r in frame.to_dict(orient="records")]
        return sorted(
            entries,
            key=lambda e: e.taken_at.timestamp() if e.taken_at else 0,
            reverse=True,
        )
