"""In-memory locks and key/value stores."""

from __future__ import annotations

import threading


class LockError(Exception):
    """Raised when a lock cannot be acquired or released."""


class LocalLocker:
    """Named locks held in memory; a lock is either held or free."""

    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._held: set[str] = set()

    def acquire(self, name: str) -> None:
        """Take the lock called name, failing if it is already held."""
        with self._mutex:
            if name in self._held:
                raise LockError("Lock already held")
            self._held.add(name)

    def release(self, name: str) -> None:
        """Give up the lock called name, failing if it is not held."""
        with self._mutex:
            if name not in self._held:
                raise LockError("Lock was not held")
            self._held.remove(name)


class InMemoryStore:
    """A key/value store backed by a dict; missing keys read as ""."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str:
        """Return the value stored for key, or "" if there is none."""
        return self._values.get(key, "")

    def set(self, key: str, value: str) -> None:
        """Store value under key."""
        self._values[key] = value