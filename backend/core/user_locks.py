"""
Per-user locks for ledger mutations.

Two messages from the same author can be classified at the same time. The
read-modify-write on ``users.total_points`` must not interleave, so every
ledger-mutating service call holds the lock for that user for the whole
transaction. PostgreSQL deployments additionally take a row lock
(``SELECT ... FOR UPDATE``); SQLite has no row locks, which is why this
in-process registry exists. Different users never share a lock.

A lock lives only while some thread holds or waits for it, so the registry
does not grow with the number of users ever warned.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class _UserLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.holders = 0


class UserLockRegistry:
    """Hands out one re-entrant lock per user id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, _UserLock] = {}

    def _checkout(self, user_id: str) -> _UserLock:
        with self._guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = _UserLock()
                self._locks[user_id] = entry
            entry.holders += 1
            return entry

    def _release(self, user_id: str, entry: _UserLock) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[user_id]

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        """Hold the user's lock for the duration of the block."""
        entry = self._checkout(user_id)
        try:
            with entry.lock:
                yield
        finally:
            self._release(user_id, entry)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


user_locks = UserLockRegistry()
