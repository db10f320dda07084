from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import ComplianceFlag
from ...schedules.model import Tolerance, WorkShift


@dataclass(frozen=True)
class PunctualityDecision:
    is_late: bool = False
    minutes_late: int = 0
    flags: tuple[ComplianceFlag, ...] = ()
    note: Optional[str] = None


class PunctualityStrategy(ABC):
    """Strategy Pattern: encapsulate how a clock event is judged against the shift."""

    @abstractmethod
    def decide_clock_in(self, *, now: datetime, shift: Optional[WorkShift], tolerance: Tolerance) -> PunctualityDecision:
        raise NotImplementedError

    @abstractmethod
    def decide_clock_out(self, *, now: datetime, shift: Optional[WorkShift], tolerance: Tolerance) -> PunctualityDecision:
        raise NotImplementedError
