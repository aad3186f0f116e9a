import threading
import time

import pytest

from evaluator import evaluate
from history_store import HistoryStore
from session import CalculatorSession, InputEvent, Notification


def run(session, *events):
    for event in events:
        if isinstance(event, tuple):
            session.handle(*event)
        else:
            session.handle(event)


def test_new_session_starts_cleared():
    session = CalculatorSession()
    assert session.display == "0"
    assert session.snapshot()['history'] == []
    assert session.mode == "basic"
    assert not session.is_authenticated


def test_chain_records_two_history_entries():
    session = CalculatorSession()
    run(session,
        ("digit", 5), ("operator", "+"), ("digit", 3),
        ("operator", "*"), ("digit", 2), "equals")

    assert session.display == "16"
    history = session.snapshot()['history']
    assert [(h['expression'], h['result']) for h in history] == [("8 * 2", "16"), ("5 + 3", "8")]


def test_events_accept_enum_members():
    session = CalculatorSession()
    session.handle(InputEvent.DIGIT, 4)
    session.handle(InputEvent.SQUARE_ROOT)
    assert session.display == "2"


def test_evaluation_error_resets_and_notifies():
    session = CalculatorSession()
    run(session, ("digit", 1), ("operator", "/"), ("digit", 0), "equals")

    assert session.display == "0"
    assert session.calculator.state.pending_operator is None
    assert session.drain_notifications() == [Notification("error", "Invalid calculation")]
    assert session.snapshot()['history'] == []


def test_domain_error_leaves_display_and_notifies():
    session = CalculatorSession()
    run(session, ("digit", 4), "toggle_sign", "square_root")

    assert session.display == "-4"
    notes = session.drain_notifications()
    assert notes == [Notification("error", "Cannot calculate square root of negative number")]
    assert session.snapshot()['history'] == []


def test_drain_empties_queue():
    session = CalculatorSession()
    session.report_copy(True)
    assert len(session.drain_notifications()) == 1
    assert session.drain_notifications() == []


def test_on_notify_callback():
    seen = []
    session = CalculatorSession(on_notify=seen.append)
    session.report_copy(False)
    assert seen == [Notification("error", "Failed to copy to clipboard")]


def test_unknown_event_rejected():
    session = CalculatorSession()
    with pytest.raises(ValueError):
        session.handle("sine")


def test_value_event_requires_value():
    session = CalculatorSession()
    with pytest.raises(ValueError):
        session.handle("digit")


def test_history_respects_preference_limit():
    session = CalculatorSession(preferences={'history_limit': 3})
    for n in range(1, 6):
        run(session, "clear", ("digit", n), "square")
    history = session.snapshot()['history']
    assert [h['expression'] for h in history] == ["sqr(5)", "sqr(4)", "sqr(3)"]


def test_preferences_set_mode_and_limit():
    session = CalculatorSession(preferences={'default_mode': 'scientific', 'history_limit': 4})
    snapshot = session.snapshot()
    assert snapshot['mode'] == 'scientific'
    assert snapshot['history_limit'] == 4


def test_set_history_limit_truncates():
    session = CalculatorSession()
    for n in range(1, 5):
        run(session, "clear", ("digit", n), "square")
    session.set_history_limit(2)
    assert len(session.snapshot()['history']) == 2


def test_clear_history_notifies():
    session = CalculatorSession()
    run(session, ("digit", 9), "square_root")
    session.clear_history()
    assert session.snapshot()['history'] == []
    assert session.drain_notifications() == [Notification("info", "History cleared")]


def test_recall_uses_history_result():
    session = CalculatorSession()
    run(session, ("digit", 9), "square_root", "clear", ("digit", 2), "square")
    session.recall(1)
    assert session.display == "3"
    session.handle("digit", 1)
    assert session.display == "31"


def test_recall_out_of_range():
    session = CalculatorSession()
    with pytest.raises(IndexError):
        session.recall(0)


def test_constant_event():
    session = CalculatorSession()
    session.handle("constant", "pi")
    assert session.display == "3.141592653589793"
    assert session.snapshot()['history'] == []


def test_signed_in_session_persists_and_reloads(db, executor, flush):
    store = HistoryStore(db, "alice", executor)
    session = CalculatorSession(user_id="alice", store=store)
    run(session, ("digit", 2), ("operator", "+"), ("digit", 2), "equals")
    flush()

    assert [row[:2] for row in db.get_calculations(user_id="alice")] == [("2 + 2", "4")]

    reopened = CalculatorSession(user_id="alice", store=HistoryStore(db, "alice", executor))
    assert reopened.snapshot()['history'][0]['expression'] == "2 + 2"


def test_signed_in_clear_history_clears_store(db, executor, flush):
    session = CalculatorSession(user_id="bob", store=HistoryStore(db, "bob", executor))
    run(session, ("digit", 3), "square")
    session.clear_history()
    flush()
    assert db.get_calculations(user_id="bob") == []


def test_store_records_session_mode(db, executor, flush):
    session = CalculatorSession(user_id="carol", store=HistoryStore(db, "carol", executor))
    session.set_mode("scientific")
    run(session, ("digit", 3), "square")
    flush()
    assert db.get_calculations(user_id="carol")[0][4] == "scientific"


def test_failed_save_keeps_memory_and_notifies(db, executor, flush, monkeypatch):
    session = CalculatorSession(user_id="dave", store=HistoryStore(db, "dave", executor))

    def offline(*args, **kwargs):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(db, "add_calculation", offline)
    run(session, ("digit", 3), "square")
    flush()

    assert session.snapshot()['history'][0]['result'] == "9"
    assert Notification("error", "Failed to save calculation") in session.drain_notifications()


@pytest.mark.parametrize("digit", ["²", "٣"])
def test_non_ascii_digit_rejected_while_awaiting_operand(digit):
    session = CalculatorSession()
    run(session, ("digit", 5), ("operator", "+"))
    with pytest.raises(ValueError):
        session.handle("digit", digit)

    assert session.display == "5"
    run(session, ("digit", 1), "equals")
    assert session.display == "6"


def test_concurrent_input_is_serialised():
    active = []
    overlaps = []
    guard = threading.Lock()

    def slow_evaluate(expression):
        with guard:
            active.append(expression)
            if len(active) > 1:
                overlaps.append(expression)
        time.sleep(0.001)
        with guard:
            active.remove(expression)
        return evaluate(expression)

    session = CalculatorSession(evaluator=slow_evaluate)

    def worker():
        for _ in range(25):
            run(session, ("digit", 1), ("operator", "+"), ("digit", 1), "equals")

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert overlaps == []
    assert len(session.snapshot()['history']) == session.history.cache.limit
