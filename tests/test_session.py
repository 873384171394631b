import threading

from ketchup_tracker.session import (
    SessionContext,
    SyncGate,
    close_gate,
    gate_status,
    open_gate,
)


def test_correct_password_opens_gate():
    context = SessionContext(user="bella")
    opened = open_gate(context, "Bella2026", "Bella2026")
    assert opened.is_authenticated is True
    assert gate_status(opened) == 'open'
    # the original context is untouched
    assert context.is_authenticated is False


def test_wrong_password_keeps_gate_closed():
    context = SessionContext(user="bella")
    assert open_gate(context, "bella2026", "Bella2026") is context
    assert open_gate(context, None, "Bella2026") is context
    assert gate_status(context) == 'locked'


def test_no_user_yet():
    assert gate_status(SessionContext()) == 'no_user'
    assert gate_status(SessionContext(is_authenticated=True)) == 'no_user'


def test_close_gate():
    opened = SessionContext(is_authenticated=True, user="bella")
    assert gate_status(close_gate(opened)) == 'locked'


def test_gate_blocks_while_write_in_flight(clock):
    gate = SyncGate(cooldown=0.5, clock=clock)
    assert gate.try_acquire() is True
    assert gate.is_busy
    assert gate.try_acquire() is False

    # time alone doesn't free an outstanding write
    clock.advance(10)
    assert gate.try_acquire() is False


def test_gate_reopens_only_after_cooldown(clock):
    gate = SyncGate(cooldown=0.5, clock=clock)
    gate.try_acquire()
    gate.release()

    assert gate.is_busy
    clock.advance(0.49)
    assert gate.try_acquire() is False
    clock.advance(0.01)
    assert gate.try_acquire() is True


def test_only_one_thread_acquires_the_gate(clock):
    gate = SyncGate(cooldown=0.5, clock=clock)
    results = []
    start = threading.Barrier(16)

    def click():
        start.wait()
        results.append(gate.try_acquire())

    threads = [threading.Thread(target=click) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert gate.is_busy
