from __future__ import annotations

import logging
from typing import Any

from .base import RoomStore
from .memory import MemoryRoomStore
from .redis_store import RedisRoomStore

logger = logging.getLogger(__name__)


def build_store(config: Any) -> RoomStore:
    url = (config.get("REDIS_URL") or "").strip()
    if url:
        logger.info("Using Redis room store")
        return RedisRoomStore.from_url(url)
    logger.info("REDIS_URL not set, using in-memory room store")
    return MemoryRoomStore()
