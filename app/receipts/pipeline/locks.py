"""
Per-file-name mutual exclusion, held from the dedup check until the
FileRecord reaches its final state for the request.

Process-local only: several workers or hosts still race each other.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class FileLocks:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}

    @contextmanager
    def hold(self, file_name: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(file_name, threading.Lock())
            self._holders[file_name] = self._holders.get(file_name, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._holders[file_name] -= 1
                if self._holders[file_name] == 0:
                    del self._holders[file_name]
                    del self._locks[file_name]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


file_locks = FileLocks()
