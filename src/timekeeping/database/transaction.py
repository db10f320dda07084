from __future__ import annotations

from typing import ContextManager, Protocol


class TransactionManager(Protocol):
    """Storage-level unit of work.

    Everything written inside `transaction()` is committed together or not at
    all. Nested calls join the outer transaction.
    """

    def transaction(self) -> ContextManager[None]:
        raise NotImplementedError
