"""
Core Module - System Clock.

============================================================
RESPONSIBILITY
============================================================
Provides a unified, testable clock abstraction.

- Alert generation/expiry stamps and lifecycle transition
  stamps all read time through this clock
- Enables deterministic testing of expiry and trend windows

============================================================
DESIGN PRINCIPLES
============================================================
- UTC only - no timezone conversions in business logic
- Mockable for testing
- Thread-safe

============================================================
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Generator, Optional
import threading


# ============================================================
# CLOCK PROTOCOL
# ============================================================

class ClockProtocol(ABC):
    """Abstract interface for system clock."""

    @abstractmethod
    def now(self) -> datetime:
        """Get current UTC datetime."""
        pass

    def today(self) -> date:
        """Get current UTC date."""
        return self.now().date()


# ============================================================
# SYSTEM CLOCK (PRODUCTION)
# ============================================================

class SystemClock(ClockProtocol):
    """Production clock using actual system time (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


# ============================================================
# MOCK CLOCK (TESTING)
# ============================================================

class MockClock(ClockProtocol):
    """
    Mock clock for testing.

    Allows time manipulation for deterministic tests.
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        """
        Initialize mock clock.

        Args:
            initial_time: Starting time (defaults to current UTC)
        """
        initial_time = initial_time or datetime.now(timezone.utc)
        if initial_time.tzinfo is None:
            initial_time = initial_time.replace(tzinfo=timezone.utc)
        self._time = initial_time
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._time

    def set_time(self, new_time: datetime) -> None:
        """Set the current time."""
        with self._lock:
            if new_time.tzinfo is None:
                new_time = new_time.replace(tzinfo=timezone.utc)
            self._time = new_time

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """
        Advance time by the specified amount.

        Args:
            seconds: Number of seconds to advance
            **kwargs: Passed to timedelta (hours, minutes, days, etc.)
        """
        with self._lock:
            self._time = self._time + timedelta(seconds=seconds, **kwargs)

    @contextmanager
    def freeze(self, at_time: datetime) -> Generator[None, None, None]:
        """Temporarily pin the clock to at_time."""
        with self._lock:
            original_time = self._time
            if at_time.tzinfo is None:
                at_time = at_time.replace(tzinfo=timezone.utc)
            self._time = at_time

        try:
            yield
        finally:
            with self._lock:
                self._time = original_time


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
]
