# services/clock.py
"""
Injectable clock.

Overdue derivation, month boundaries and status timestamps all read the
current time from a Clock so they stay deterministic under test. Times are
naive UTC, matching how DateTime columns are stored.
"""
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):

     @abstractmethod
     def now(self) -> datetime:
          """Current time as a naive UTC datetime."""

     def today(self) -> date:
          return self.now().date()


class SystemClock(Clock):

     def now(self) -> datetime:
          return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock(Clock):
     """Clock frozen at a given instant; tests move it explicitly."""

     def __init__(self, current: datetime):
          self._current = current

     def now(self) -> datetime:
          return self._current

     def set(self, current: datetime) -> None:
          self._current = current

     def advance(self, **kwargs) -> None:
          self._current = self._current + timedelta(**kwargs)
