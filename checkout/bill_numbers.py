"""
Bill number generation.

Format: PREFIX-YYYYMMDD-XXXX where XXXX is a per-day sequence number.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from utils.timezone import now_utc

DEFAULT_PREFIX = "POS"


def format_bill_number(prefix: str, day: str, sequence: int) -> str:
    return f"{prefix}-{day}-{sequence:04d}"


def parse_sequence(bill_number: str) -> int | None:
    """Trailing sequence of a bill number, or None if it has no numeric suffix."""
    try:
        return int(bill_number.rsplit("-", 1)[-1])
    except ValueError:
        return None


class BillNumberGenerator(ABC):
    """Issues unique bill numbers."""

    @abstractmethod
    def next(self) -> str:
        ...


class SequentialBillNumberGenerator(BillNumberGenerator):
    """In-process generator. The sequence restarts at 0001 each day."""

    def __init__(self, prefix: str = DEFAULT_PREFIX, clock: Callable[[], datetime] = now_utc):
        self.prefix = prefix
        self._clock = clock
        self._lock = threading.Lock()
        self._day: str | None = None
        self._sequence = 0

    def next(self) -> str:
        day = self._clock().strftime("%Y%m%d")
        with self._lock:
            if day != self._day:
                self._day = day
                self._sequence = 0
            self._sequence += 1
            return format_bill_number(self.prefix, day, self._sequence)
