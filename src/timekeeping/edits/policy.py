from __future__ import annotations

from dataclasses import dataclass

from ..core.constants import DEFAULT_HIGH_IMPACT_MINUTES
from ..core.enums import EditRequestType, Role
from .model import TimeEditChanges


@dataclass(frozen=True)
class ApprovalPolicy:
    """Ordered approver roles for an edit request."""

    high_impact_minutes: int = DEFAULT_HIGH_IMPACT_MINUTES

    def roles_for(self, request_type: EditRequestType, changes: TimeEditChanges, impact_minutes: int) -> list[Role]:
        escalate = (
            abs(impact_minutes) >= self.high_impact_minutes
            or changes.breaks is not None
            or request_type == EditRequestType.REMOVAL
        )
        if escalate:
            return [Role.SUPERVISOR, Role.HR_MANAGER]
        return [Role.SUPERVISOR]
