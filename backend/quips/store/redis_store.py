from __future__ import annotations

import json
import logging
from typing import Any

import redis

from ..game.errors import InternalError

logger = logging.getLogger(__name__)

KEY_PREFIX = "room:"


def room_key(code: str) -> str:
    return f"{KEY_PREFIX}{code}"


class RedisRoomStore:
    """Networked store: one JSON string per room under ``room:<CODE>``, TTL refreshed on every write."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisRoomStore:
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, code: str) -> dict[str, Any] | None:
        try:
            payload = self._client.get(room_key(code))
        except redis.RedisError as exc:
            logger.error("Redis read failed for room %s: %s", code, exc)
            raise InternalError("Room storage is unavailable") from exc
        if payload is None:
            return None
        try:
            doc = json.loads(payload)
        except ValueError as exc:
            logger.error("Room %s holds an unreadable document", code)
            raise InternalError("Room document is corrupted") from exc
        return doc if isinstance(doc, dict) else None

    def set(self, code: str, doc: dict[str, Any], ttl_seconds: int) -> None:
        payload = json.dumps(doc, ensure_ascii=False, separators=(",", ":"))
        try:
            self._client.set(room_key(code), payload, ex=ttl_seconds)
        except redis.RedisError as exc:
            logger.error("Redis write failed for room %s: %s", code, exc)
            raise InternalError("Room storage is unavailable") from exc

    def codes(self) -> list[str]:
        try:
            return [key[len(KEY_PREFIX):] for key in self._client.scan_iter(match=f"{KEY_PREFIX}*")]
        except redis.RedisError as exc:
            logger.error("Redis scan failed: %s", exc)
            raise InternalError("Room storage is unavailable") from exc

    def close(self) -> None:
        self._client.close()
