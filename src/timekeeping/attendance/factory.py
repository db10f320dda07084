from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..schedules.model import Tolerance, WorkShift
from .strategies.base import PunctualityStrategy
from .strategies.early_leave_strategy import EarlyLeaveStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy
from .strategies.timing import minutes_after_start, shift_end


@dataclass
class PunctualityStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_clock_in(self, *, now: datetime, shift: Optional[WorkShift], tolerance: Tolerance) -> PunctualityStrategy:
        if not shift:
            return OnTimeStrategy()

        if minutes_after_start(now, shift) > tolerance.entry_minutes:
            return LateStrategy()
        return OnTimeStrategy()

    def for_clock_out(self, *, clock_in: datetime, now: datetime, shift: Optional[WorkShift], tolerance: Tolerance) -> PunctualityStrategy:
        if not shift:
            return OnTimeStrategy()

        if now < shift_end(clock_in, shift) - timedelta(minutes=tolerance.exit_minutes):
            return EarlyLeaveStrategy()
        return OnTimeStrategy()
