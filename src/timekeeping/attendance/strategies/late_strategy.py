from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import ComplianceFlag
from ...schedules.model import Tolerance, WorkShift
from .base import PunctualityDecision, PunctualityStrategy
from .timing import minutes_after_start


class LateStrategy(PunctualityStrategy):
    """Late clock-in: minutes are counted from the shift start, not from the end of the grace window."""

    def decide_clock_in(self, *, now: datetime, shift: Optional[WorkShift], tolerance: Tolerance) -> PunctualityDecision:
        minutes = minutes_after_start(now, shift) if shift else 0
        return PunctualityDecision(
            is_late=True,
            minutes_late=minutes,
            flags=(ComplianceFlag.JUSTIFICATION_REQUIRED,),
            note=f"Late by {minutes} min",
        )

    def decide_clock_out(self, *, now: datetime, shift: Optional[WorkShift], tolerance: Tolerance) -> PunctualityDecision:
        return PunctualityDecision()
