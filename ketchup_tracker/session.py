"""
Session state for Ketchup Tracker.

- SessionContext: who is using the app and whether the password was given.
  It is passed around explicitly; nothing here is global.
- SyncGate: the busy flag that keeps the "log dose" action from being
  triggered twice while a write is outstanding.
"""

import hmac
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

from .config import SYNC_COOLDOWN_SECONDS


@dataclass(frozen=True)
class SessionContext:
    is_authenticated: bool = False
    user: Optional[str] = None


def open_gate(context: SessionContext, attempt: str, password: str) -> SessionContext:
    """
    Try to unlock the app.

    Returns:
        A new authenticated context if attempt matches the password,
        otherwise the context unchanged
    """
    if attempt is not None and hmac.compare_digest(str(attempt).encode(), str(password).encode()):
        return replace(context, is_authenticated=True)
    return context


def close_gate(context: SessionContext) -> SessionContext:
    return replace(context, is_authenticated=False)


def gate_status(context: SessionContext) -> str:
    """
    Returns:
        'no_user' if nobody is signed in yet, 'locked' if the password
        hasn't been given, 'open' otherwise
    """
    if not context.user:
        return 'no_user'
    if not context.is_authenticated:
        return 'locked'
    return 'open'


class SyncGate:
    """
    At most one write in flight.

    try_acquire() marks the gate busy. release() starts a fixed cooldown
    after which the gate opens again, whether or not the write worked.

    Example:
        gate = SyncGate()
        if gate.try_acquire():
            try:
                store.append(event)
            finally:
                gate.release()
    """

    def __init__(self, cooldown: float = SYNC_COOLDOWN_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.cooldown = cooldown
        self._clock = clock
        self._in_flight = False
        self._busy_until = 0.0
        # Web requests share one gate across threads
        self._lock = threading.Lock()

    def _busy(self) -> bool:
        return self._in_flight or self._clock() < self._busy_until

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._busy()

    def try_acquire(self) -> bool:
        """Mark the gate busy. Returns False if it already was."""
        with self._lock:
            if self._busy():
                return False
            self._in_flight = True
            return True

    def release(self):
        """Re-enable the gate once the cooldown has passed."""
        with self._lock:
            self._in_flight = False
            self._busy_until = self._clock() + self.cooldown
