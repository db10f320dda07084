from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import EditRequestStatus
from .model import TimeEditRequest


class EditRequestRepository(Protocol):
    """Requests are stored with their approval flow, history and comments embedded."""

    def add(self, request: TimeEditRequest) -> int:
        raise NotImplementedError

    def get(self, request_id: int) -> Optional[TimeEditRequest]:
        raise NotImplementedError

    def get_for_update(self, request_id: int) -> Optional[TimeEditRequest]:
        """Read a request and hold its row until the surrounding transaction ends."""

        raise NotImplementedError

    def save(self, request: TimeEditRequest) -> bool:
        raise NotImplementedError

    def list_requests(
        self,
        *,
        employee_id: Optional[int] = None,
        statuses: Optional[Iterable[EditRequestStatus]] = None,
    ) -> Sequence[TimeEditRequest]:
        """Newest first."""

        raise NotImplementedError
