from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional, Sequence

from ..core.enums import EditRequestStatus
from ..database.memory import MemoryStore
from .model import TimeEditRequest
from .repository import EditRequestRepository


class MemoryEditRequestRepository(EditRequestRepository):
    def __init__(self, store: MemoryStore):
        self._store = store

    def _rows(self) -> dict[int, TimeEditRequest]:
        return self._store.table("time_edit_requests")

    def add(self, request: TimeEditRequest) -> int:
        with self._store.lock:
            request_id = self._store.next_id("time_edit_requests")
            self._rows()[request_id] = replace(request, request_id=request_id)
            return request_id

    def get(self, request_id: int) -> Optional[TimeEditRequest]:
        return self._rows().get(int(request_id))

    def get_for_update(self, request_id: int) -> Optional[TimeEditRequest]:
        with self._store.lock:
            return self.get(request_id)

    def save(self, request: TimeEditRequest) -> bool:
        with self._store.lock:
            rows = self._rows()
            if request.request_id not in rows:
                return False
            rows[request.request_id] = request
            return True

    def list_requests(
        self,
        *,
        employee_id: Optional[int] = None,
        statuses: Optional[Iterable[EditRequestStatus]] = None,
    ) -> Sequence[TimeEditRequest]:
        wanted = set(statuses) if statuses is not None else None
        rows = [
            r for r in self._store.rows("time_edit_requests")
            if (employee_id is None or r.employee_id == int(employee_id))
            and (wanted is None or r.status in wanted)
        ]
        return sorted(rows, key=lambda r: (r.submitted_at, r.request_id), reverse=True)
