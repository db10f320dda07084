from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from ..common.datetime_utils import minutes_between
from .model import TimeClockSession


class WorkedTimeCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked time)."""

    @abstractmethod
    def worked_minutes(self, session: TimeClockSession, until: datetime) -> int:
        raise NotImplementedError


class StandardWorkedTimeCalculator(WorkedTimeCalculator):
    """Standard rule: (until - clock in) - unpaid completed breaks, not below 0.

    Breaks only ever subtract, so the result never exceeds the elapsed time.
    """

    def worked_minutes(self, session: TimeClockSession, until: datetime) -> int:
        elapsed = minutes_between(session.clock_in.timestamp, until)
        unpaid = sum(
            b.duration_minutes or 0
            for b in session.breaks
            if b.is_complete and not b.is_paid
        )
        return max(min(elapsed - unpaid, elapsed), 0)
