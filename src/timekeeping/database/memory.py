from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from threading import RLock
from typing import Any, Iterator

logger = logging.getLogger(__name__)


class MemoryStore:
    """In-process row store shared by the in-memory repositories.

    Rows are frozen dataclasses, so a read never observes a half-written record.
    `transaction()` snapshots every table and restores the snapshot if the block
    raises, which gives the same all-or-nothing behaviour as the MySQL adapter.
    """

    def __init__(self) -> None:
        self.lock = RLock()
        self.tables: dict[str, dict[Any, Any]] = {}
        self._sequences: dict[str, int] = {}
        self._depth = 0

    def table(self, name: str) -> dict[Any, Any]:
        return self.tables.setdefault(name, {})

    def rows(self, name: str) -> list[Any]:
        """Snapshot of a table's rows, safe to iterate while other threads write."""
        with self.lock:
            return list(self.table(name).values())

    def next_id(self, name: str) -> int:
        with self.lock:
            value = self._sequences.get(name, 0) + 1
            self._sequences[name] = value
            return value

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self.lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            snapshot = copy.deepcopy(self.tables)
            sequences = dict(self._sequences)
            self._depth = 1
            try:
                yield
            except Exception:
                logger.warning("rolling back in-memory transaction")
                self.tables = snapshot
                self._sequences = sequences
                raise
            finally:
                self._depth = 0
