"""
Data models for Ketchup Tracker.

This module provides:
- DoseEvent, one immutable record of a taken dose
- Validation of the event shape
- Ordering of the dose log (newest first)
- Mapping between DoseEvent and the two stored record shapes:
    web log:  {timestamp, cycleDay, status}
    diary:    {Datum, Tid, Typ, Humör, Hud, Spotting}  (all strings)
"""

from dataclasses import dataclass, field
from datetime import datetime, date, time, timezone
from enum import Enum
from typing import Optional, List

from .config import CYCLE_LENGTH
from .cycle import compute_date_state


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class DoseStatus(str, Enum):
    CONFIRMED = "confirmed"


class InvalidDoseEvent(ValueError):
    """Raised when a record does not have the shape of a dose event."""


@dataclass(frozen=True)
class DoseEvent:
    """
    A single logged dose.

    timestamp is a timezone-aware UTC datetime, or None when the stored
    record has none. cycle_day is fixed at logging time.
    """
    timestamp: Optional[datetime]
    cycle_day: int
    status: DoseStatus = DoseStatus.CONFIRMED
    id: Optional[int] = field(default=None, compare=False)

    @classmethod
    def create(cls, cycle_day: int, now: datetime = None) -> "DoseEvent":
        """Create a confirmed dose stamped with the current UTC time."""
        if now is None:
            now = datetime.now(timezone.utc)
        event = cls(timestamp=to_utc(now), cycle_day=cycle_day)
        validate_event(event)
        return event

    @property
    def sort_key(self) -> datetime:
        """Timestamp used for ordering; missing timestamps count as the epoch."""
        return self.timestamp if self.timestamp is not None else EPOCH


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_event(event: DoseEvent) -> DoseEvent:
    """
    Check that an event has a valid shape.

    Raises:
        InvalidDoseEvent: if cycle_day is outside 1..28, the status is
            unknown or the timestamp has no timezone
    """
    day = event.cycle_day
    if isinstance(day, bool) or not isinstance(day, int):
        raise InvalidDoseEvent(f"cycle_day must be an integer, got {day!r}")
    if not 1 <= day <= CYCLE_LENGTH:
        raise InvalidDoseEvent(f"cycle_day must be between 1 and {CYCLE_LENGTH}, got {day}")
    if not isinstance(event.status, DoseStatus):
        raise InvalidDoseEvent(f"Unknown status: {event.status!r}")
    if event.timestamp is not None and event.timestamp.tzinfo is None:
        raise InvalidDoseEvent("timestamp must be timezone-aware")
    return event


def sort_events(events: List[DoseEvent]) -> List[DoseEvent]:
    """
    Order events newest first.

    Events without a timestamp sort as the oldest. sorted() is stable even
    with reverse=True, so events with equal timestamps keep the order they
    were inserted in.
    """
    return sorted(events, key=lambda e: e.sort_key, reverse=True)


# ============================================================
# WEB LOG RECORDS  {timestamp, cycleDay, status}
# ============================================================

def parse_timestamp(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, dict) and 'seconds' in value:
        return datetime.fromtimestamp(value['seconds'], tz=timezone.utc)
    try:
        return to_utc(datetime.fromisoformat(str(value)))
    except ValueError:
        raise InvalidDoseEvent(f"Unreadable timestamp: {value!r}")


def event_to_record(event: DoseEvent) -> dict:
    """Convert an event to the web log record shape."""
    return {
        'timestamp': event.timestamp.isoformat() if event.timestamp else None,
        'cycleDay': event.cycle_day,
        'status': event.status.value,
    }


def event_from_record(record: dict, record_id: int = None) -> DoseEvent:
    """
    Build an event from a web log record.

    Args:
        record: Dict with 'timestamp' (ISO string, datetime, epoch seconds,
            {'seconds': n} or missing), 'cycleDay' and 'status'
        record_id: Optional storage ID

    Raises:
        InvalidDoseEvent: if the record doesn't describe a valid event
    """
    if 'cycleDay' not in record:
        raise InvalidDoseEvent("Record has no cycleDay")
    try:
        status = DoseStatus(record.get('status', DoseStatus.CONFIRMED.value))
    except ValueError:
        raise InvalidDoseEvent(f"Unknown status: {record.get('status')!r}")

    event = DoseEvent(
        timestamp=parse_timestamp(record.get('timestamp')),
        cycle_day=record['cycleDay'],
        status=status,
        id=record_id,
    )
    return validate_event(event)


# ============================================================
# DIARY RECORDS  {Datum, Tid, Typ, Humör, Hud, Spotting}
# ============================================================

DIARY_COLUMNS = ["Datum", "Tid", "Typ", "Humör", "Hud", "Spotting"]


@dataclass(frozen=True)
class DiaryEntry:
    """
    One row of the diary spreadsheet.

    Everything is stored as text, the way the spreadsheet holds it:
    datum "YYYY-MM-DD", tid "HH:MM", typ "Aktiv"/"Placebo".
    """
    datum: str
    tid: str
    typ: str = ""
    humor: str = ""
    hud: str = ""
    spotting: str = ""

    @property
    def taken_at(self) -> Optional[datetime]:
        """Datum + Tid as a UTC datetime, or None if Datum is unreadable."""
        try:
            day = date.fromisoformat(self.datum.strip())
        except ValueError:
            return None
        try:
            clock = time.fromisoformat(self.tid.strip())
        except ValueError:
            clock = time(0, 0)
        return datetime.combine(day, clock, tzinfo=timezone.utc)


def diary_entry_to_row(entry: DiaryEntry) -> dict:
    return {
        "Datum": entry.datum,
        "Tid": entry.tid,
        "Typ": entry.typ,
        "Humör": entry.humor,
        "Hud": entry.hud,
        "Spotting": entry.spotting,
    }


def diary_entry_from_row(row: dict) -> DiaryEntry:
    """Build a diary entry from a spreadsheet row; empty cells become ''."""
    def cell(name):
        value = row.get(name)
        # pandas hands empty cells over as NaN, which is the only value != itself
        if value is None or value != value:
            return ""
        return str(value)

    return DiaryEntry(
        datum=cell("Datum"),
        tid=cell("Tid"),
        typ=cell("Typ"),
        humor=cell("Humör"),
        hud=cell("Hud"),
        spotting=cell("Spotting"),
    )


def diary_entry_to_event(entry: DiaryEntry, cycle_start: date) -> DoseEvent:
    """
    Map a diary row onto a DoseEvent.

    The diary has no cycle day column, so it is derived from the date with
    the date-based strategy.

    Raises:
        InvalidDoseEvent: if Datum can't be read as a date
    """
    taken_at = entry.taken_at
    if taken_at is None:
        raise InvalidDoseEvent(f"Unreadable Datum: {entry.datum!r}")

    state = compute_date_state(cycle_start, taken_at.date())
    return validate_event(DoseEvent(timestamp=taken_at, cycle_day=state.cycle_day_mod))
