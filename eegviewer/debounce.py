import logging
import re
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SETTLE_INTERVAL = 0.5  # seconds

_FLOAT_PREFIX = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')
_INT_PREFIX = re.compile(r'^\s*([+-]?\d+)')


def parse_float(text) -> Optional[float]:
    """Leading-number parse: '2.5x' -> 2.5, 'abc' -> None."""
    match = _FLOAT_PREFIX.match(str(text))
    if match is None:
        return None
    return float(match.group(1))


def parse_int(text) -> Optional[int]:
    """Leading-integer parse: '5.7' -> 5, '' -> None."""
    match = _INT_PREFIX.match(str(text))
    if match is None:
        return None
    return int(match.group(1))


class Debouncer:
    """
    Commit a free-text value once it has been left alone for ``settle`` seconds.

    States are ``idle`` and ``pending``. Every ``edit`` (re)arms the deadline;
    ``poll`` fires at most once per pending edit, after the deadline, and only
    when ``validate`` accepts the parsed value. Rejected text is dropped and
    the last committed value stays in effect.

    :param parse: text -> value (None when unparseable)
    :param on_commit: called with each accepted value
    :param validate: value -> bool, run after parsing
    :param initial: committed value before any edit
    """
    def __init__(self,
                 parse: Callable,
                 on_commit: Optional[Callable] = None,
                 validate: Optional[Callable] = None,
                 initial=None,
                 settle: float = SETTLE_INTERVAL,
                 clock: Callable[[], float] = time.monotonic):
        self.parse = parse
        self.on_commit = on_commit
        self.validate = validate
        self.value = initial
        self.text = '' if initial is None else str(initial)
        self.settle = settle
        self.clock = clock
        self.deadline = None

    @property
    def state(self) -> str:
        return 'idle' if self.deadline is None else 'pending'

    def edit(self, text):
        """Record a keystroke; cancels any countdown already running."""
        self.text = text
        self.deadline = self.clock() + self.settle

    def remaining(self) -> Optional[float]:
        """Seconds until the pending edit settles, or None when idle."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self.clock())

    def poll(self):
        """Settle the pending edit if its deadline has passed; returns the committed value or None."""
        if self.deadline is None or self.clock() < self.deadline:
            return None
        self.deadline = None

        value = self.parse(self.text)
        if value is None or (self.validate is not None and not self.validate(value)):
            logger.debug(f"Ignoring input {self.text!r}; keeping {self.value!r}")
            return None
        if value == self.value:
            return None

        self.value = value
        if self.on_commit is not None:
            self.on_commit(value)
        return value
