"""
Dose tracking for Ketchup Tracker.

DoseTracker ties the pieces together the way the app uses them:

    log dose -> store.save() -> store pushes the new list -> state()

It keeps a local copy of the dose log that is replaced wholesale whenever
the store reports a change.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

from .config import RECENT_LOG_LIMIT, TREND_DAYS
from .cycle import CycleState, compute_state, describe_divergence
from .models import DoseEvent
from .session import SessionContext, SyncGate, gate_status
from .store import DoseLogStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogResult:
    ok: bool
    event: Optional[DoseEvent] = None
    message: str = ""


class DoseTracker:
    """
    Example:
        tracker = DoseTracker(store, SessionContext(True, "bella"))
        result = tracker.log_dose()
        if result.ok:
            print(tracker.state().cycle_day)
    """

    def __init__(self, store: DoseLogStore, session: SessionContext,
                 gate: SyncGate = None):
        self.store = store
        self.session = session
        self.gate = gate if gate is not None else SyncGate()
        self.logs: List[DoseEvent] = []
        self._unsubscribe = store.on_change(self._replace_logs)

    def _replace_logs(self, events: List[DoseEvent]):
        self.logs = events

    def close(self):
        """Stop listening for store updates."""
        self._unsubscribe()

    # ============================================================
    # STATE
    # ============================================================

    def state(self) -> CycleState:
        return compute_state(len(self.logs))

    def divergence(self, cycle_start: date, today: date = None) -> dict:
        """Compare the logged-dose count with the calendar since cycle_start."""
        return describe_divergence(len(self.logs), cycle_start, today)

    # ============================================================
    # ACTIONS
    # ============================================================

    def log_dose(self, now: datetime = None) -> LogResult:
        """
        Log one confirmed dose.

        The cycle day is taken from the number of doses logged before this
        one. A failing store is reported in the result, never raised.

        Returns:
            LogResult with ok=False and a message when nothing was saved
        """
        status = gate_status(self.session)
        if status == 'no_user':
            return LogResult(False, message="No user signed in yet.")
        if status == 'locked':
            return LogResult(False, message="Enter the password first.")

        if not self.gate.try_acquire():
            return LogResult(False, message="Already saving a dose, please wait.")

        try:
            event = DoseEvent.create(self.state().cycle_day, now=now)
            saved = self.store.save(event)
        finally:
            self.gate.release()

        if saved is None:
            logger.warning("Dose for %s was not saved", self.session.user)
            return LogResult(False, event, "Could not save the dose. Please try again.")

        return LogResult(True, saved, f"Dose logged (cycle day {saved.cycle_day}).")

    # ============================================================
    # QUERIES
    # ============================================================

    def recent_logs(self, limit: int = RECENT_LOG_LIMIT) -> List[Tuple[int, DoseEvent]]:
        """
        The newest doses with their running number.

        Returns:
            List of (number, event); the newest dose has number == total logs
        """
        total = len(self.logs)
        return [(total - idx, event) for idx, event in enumerate(self.logs[:limit])]

    def trend_data(self, today: date = None, days: int = TREND_DAYS) -> List[dict]:
        """
        Doses per day for the last `days` days, oldest first.

        Days are UTC calendar days. Events without a timestamp are left out.

        Returns:
            List of {'name': 'YYYY-MM-DD', 'val': count}
        """
        if today is None:
            today = datetime.now(timezone.utc).date()

        counts = {}
        for event in self.logs:
            if event.timestamp is None:
                continue
            day = event.timestamp.date()
            counts[day] = counts.get(day, 0) + 1

        trend = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            trend.append({'name': day.isoformat(), 'val': counts.get(day, 0)})
        return trend
