from __future__ import annotations

import copy
import time
from threading import RLock
from typing import Any


class MemoryRoomStore:
    """Process-local store for single-instance and dev use.

    Documents are deep-copied on the way in and out so callers never share a
    working copy with the store. Expired entries vanish on read.
    """

    def __init__(self, clock=time.time) -> None:
        self._clock = clock
        self._lock = RLock()
        self._rooms: dict[str, tuple[float, dict[str, Any]]] = {}

    def get(self, code: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._rooms.get(code)
            if entry is None:
                return None
            expires_at, doc = entry
            if expires_at <= self._clock():
                del self._rooms[code]
                return None
            return copy.deepcopy(doc)

    def set(self, code: str, doc: dict[str, Any], ttl_seconds: int) -> None:
        with self._lock:
            self._rooms[code] = (self._clock() + ttl_seconds, copy.deepcopy(doc))

    def codes(self) -> list[str]:
        self.purge_expired()
        with self._lock:
            return list(self._rooms)

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [code for code, (expires_at, _) in self._rooms.items() if expires_at <= now]
            for code in expired:
                del self._rooms[code]
            return len(expired)

    def close(self) -> None:
        with self._lock:
            self._rooms.clear()
