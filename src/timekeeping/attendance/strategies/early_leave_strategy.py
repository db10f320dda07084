from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import ComplianceFlag
from ...schedules.model import Tolerance, WorkShift
from .base import PunctualityDecision, PunctualityStrategy


class EarlyLeaveStrategy(PunctualityStrategy):
    """Clock-out before the shift end minus the exit tolerance."""

    def decide_clock_in(self, *, now: datetime, shift: Optional[WorkShift], tolerance: Tolerance) -> PunctualityDecision:
        return PunctualityDecision()

    def decide_clock_out(self, *, now: datetime, shift: Optional[WorkShift], tolerance: Tolerance) -> PunctualityDecision:
        return PunctualityDecision(flags=(ComplianceFlag.EARLY_LEAVE,), note="Left before end of shift")
