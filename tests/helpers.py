"""Test doubles shared by the test modules."""
from ketchup_tracker.store import MemoryDoseLogStore, StoreError


class FailingStore(MemoryDoseLogStore):
    """Memory store whose writes (and optionally reads) fail."""

    def __init__(self, events=None, fail_reads=False):
        super().__init__(events)
        self.fail_writes = True
        self.fail_reads = fail_reads

    def _insert(self, event):
        if self.fail_writes:
            raise StoreError("backend unavailable")
        return super()._insert(event)

    def _fetch_all(self):
        if self.fail_reads:
            raise StoreError("backend unavailable")
        return super()._fetch_all()


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
