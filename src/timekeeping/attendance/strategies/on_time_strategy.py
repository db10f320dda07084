from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...schedules.model import Tolerance, WorkShift
from .base import PunctualityDecision, PunctualityStrategy


class OnTimeStrategy(PunctualityStrategy):
    """Clock event inside the grace window, or no shift to compare against."""

    def decide_clock_in(self, *, now: datetime, shift: Optional[WorkShift], tolerance: Tolerance) -> PunctualityDecision:
        return PunctualityDecision()

    def decide_clock_out(self, *, now: datetime, shift: Optional[WorkShift], tolerance: Tolerance) -> PunctualityDecision:
        return PunctualityDecision()
