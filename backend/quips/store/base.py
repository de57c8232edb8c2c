from __future__ import annotations

from typing import Any, Iterable, Protocol


class RoomStore(Protocol):
    """Key-value room storage: whole documents, last write wins, no compare-and-swap."""

    def get(self, code: str) -> dict[str, Any] | None: ...
    def set(self, code: str, doc: dict[str, Any], ttl_seconds: int) -> None: ...
    def codes(self) -> Iterable[str]: ...
    def close(self) -> None: ...
