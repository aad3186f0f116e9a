"""
Calculator sessions for CalcuSolve

A CalculatorSession is created for each open calculator and owns its
calculator state, history and pending notifications. Nothing here is
global; whoever creates a session passes it to the code that needs it.
"""
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum

from calculator import Calculator, DomainError
from evaluator import EvaluationError, evaluate
from history_manager import HistoryCache, HistoryManager
from preference_manager import default_preferences

logger = logging.getLogger(__name__)

MAX_PENDING_NOTIFICATIONS = 50


class InputEvent(Enum):
    DIGIT = "digit"
    DECIMAL_POINT = "decimal_point"
    OPERATOR = "operator"
    EQUALS = "equals"
    BACKSPACE = "backspace"
    CLEAR = "clear"
    TOGGLE_SIGN = "toggle_sign"
    PERCENT = "percent"
    SQUARE_ROOT = "square_root"
    SQUARE = "square"
    RECIPROCAL = "reciprocal"
    ABSOLUTE_VALUE = "absolute_value"
    LOG10 = "log10"
    NATURAL_LOG = "natural_log"
    CONSTANT = "constant"


# Events that carry a value (digit, operator symbol, constant name)
VALUE_EVENTS = {InputEvent.DIGIT, InputEvent.OPERATOR, InputEvent.CONSTANT}

_HANDLERS = {
    InputEvent.DIGIT: Calculator.input_digit,
    InputEvent.DECIMAL_POINT: Calculator.input_decimal_point,
    InputEvent.OPERATOR: Calculator.perform_operation,
    InputEvent.EQUALS: Calculator.equals,
    InputEvent.BACKSPACE: Calculator.backspace,
    InputEvent.CLEAR: Calculator.clear,
    InputEvent.TOGGLE_SIGN: Calculator.toggle_sign,
    InputEvent.PERCENT: Calculator.percent,
    InputEvent.SQUARE_ROOT: Calculator.square_root,
    InputEvent.SQUARE: Calculator.square,
    InputEvent.RECIPROCAL: Calculator.reciprocal,
    InputEvent.ABSOLUTE_VALUE: Calculator.absolute_value,
    InputEvent.LOG10: Calculator.log10,
    InputEvent.NATURAL_LOG: Calculator.natural_log,
    InputEvent.CONSTANT: Calculator.insert_constant,
}


@dataclass(frozen=True)
class Notification:
    kind: str  # success, error, warning, info
    message: str

    def to_dict(self):
        return {'kind': self.kind, 'message': self.message}


class CalculatorSession:
    """One user's calculator.

    ``store`` is a HistoryStore for signed-in users; when given, the history
    is loaded from it at start and every change is written back in the
    background. ``on_notify`` is called with each Notification as well as
    queueing it for drain_notifications().
    """

    def __init__(self, user_id=None, preferences=None, store=None,
                 evaluator=evaluate, on_notify=None):
        prefs = default_preferences()
        prefs.update(preferences or {})

        self.user_id = user_id
        self.mode = prefs['default_mode']
        self.dark_mode = prefs['dark_mode']
        self.calculator = Calculator(evaluator)
        self.history = HistoryManager(
            HistoryCache(prefs['history_limit']),
            store=store,
            on_error=lambda message: self.notify(message, kind="error"),
        )
        self.on_notify = on_notify
        self._notifications = deque(maxlen=MAX_PENDING_NOTIFICATIONS)
        self._lock = threading.Lock()
        self.last_active = time.monotonic()

        if store is not None:
            store.mode = self.mode
            self.history.load()

    @property
    def is_authenticated(self):
        return self.user_id is not None

    @property
    def display(self):
        return self.calculator.get_display()

    def handle(self, event, value=None):
        """Apply one input event.

        Returns the HistoryEntry recorded for it, or None. Calculation
        failures become notifications; bad event names or values raise
        ValueError.
        """
        event = InputEvent(event)
        handler = _HANDLERS[event]
        if event in VALUE_EVENTS:
            if value is None:
                raise ValueError(f"The {event.value} event needs a value")
            args = (value,)
        else:
            args = ()

        with self._lock:
            try:
                entry = handler(self.calculator, *args)
            except EvaluationError as e:
                logger.debug(f"Evaluation failed: {e}")
                self.notify("Invalid calculation", kind="error")
                return None
            except DomainError as e:
                self.notify(str(e), kind="error")
                return None

            if entry is not None:
                self.history.add_calculation(entry)
            return entry

    def recall(self, index):
        """Put the result of a history entry (0 = newest) on the display"""
        with self._lock:
            entries = self.history.get_calculation_history()
            if not 0 <= index < len(entries):
                raise IndexError(f"No history entry at position {index}")
            self.calculator.recall(entries[index].result)

    def clear_history(self):
        with self._lock:
            self.history.clear_calculation_history()
        self.notify("History cleared", kind="info")

    def set_history_limit(self, limit):
        with self._lock:
            self.history.set_limit(limit)

    def set_mode(self, mode):
        with self._lock:
            self.mode = mode
            if self.history.store is not None:
                self.history.store.mode = mode

    def touch(self):
        self.last_active = time.monotonic()

    def idle_for(self):
        """Seconds since the session was last used"""
        return time.monotonic() - self.last_active

    def report_copy(self, success):
        """Record the outcome of copying the display to the clipboard"""
        if success:
            self.notify("Copied to clipboard", kind="success")
        else:
            self.notify("Failed to copy to clipboard", kind="error")

    def notify(self, message, kind="info"):
        notification = Notification(kind, message)
        self._notifications.append(notification)
        if self.on_notify is not None:
            self.on_notify(notification)

    def drain_notifications(self):
        drained = []
        while self._notifications:
            drained.append(self._notifications.popleft())
        return drained

    def snapshot(self):
        with self._lock:
            state = self.calculator.state
            return {
                'display': state.display,
                'pending_operator': state.pending_operator,
                'mode': self.mode,
                'dark_mode': self.dark_mode,
                'authenticated': self.is_authenticated,
                'history_limit': self.history.cache.limit,
                'history': [entry.to_dict() for entry in self.history.get_calculation_history()],
            }
