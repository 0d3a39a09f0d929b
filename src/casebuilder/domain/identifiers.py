"""
Identifier and name helpers.
"""

import re
import threading
import time
from collections.abc import Callable


class MonotonicIdGenerator:
    """
    Millisecond-clock identifiers that never repeat.

    Two calls within the same millisecond still get distinct ids: the second
    one is bumped past the last id handed out.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            candidate = int(self._clock() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate


_WHITESPACE = re.compile(r"\s+")


def slugify_label(label: str) -> str:
    """Derive a field's technical name: "Customer Name" -> "customer_name"."""
    return _WHITESPACE.sub("_", label.lower())
