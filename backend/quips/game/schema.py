"""Stored room document upgrades.

Documents written before ``schemaVersion`` existed are version 1: they carry
no avatars, streaks, achievements, theme, reactions, settings, custom prompts
or stage message. Each step upgrades a raw dict by exactly one version and
runs once, at load time, before the document reaches the state machine.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable

from .models import DEFAULT_AVATAR, DEFAULT_THEME, SCHEMA_VERSION, GameSettings, empty_reactions

logger = logging.getLogger(__name__)


def _upgrade_v1(doc: dict[str, Any]) -> dict[str, Any]:
    for player in doc.get("players") or []:
        player.setdefault("avatar", DEFAULT_AVATAR)
        player.setdefault("streak", 0)
        player.setdefault("achievements", [])
        player.setdefault("lastActionAt", player.get("joinedAt", 0))
    for rnd in doc.get("rounds") or []:
        rnd.setdefault("submissions", [])
        rnd.setdefault("votes", [])
        rnd.setdefault("deadline", None)
        rnd.setdefault("firstSubmitterId", None)
    doc.setdefault("theme", DEFAULT_THEME)
    doc.setdefault("reactions", empty_reactions())
    doc.setdefault("stageMessage", None)
    doc.setdefault("settings", GameSettings().to_dict())
    doc.setdefault("customPrompts", [])
    return doc


UPGRADES: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    1: _upgrade_v1,
}


def document_version(doc: dict[str, Any]) -> int:
    return int(doc.get("schemaVersion") or 1)


def upgrade_document(doc: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``doc`` upgraded to ``SCHEMA_VERSION``."""
    version = document_version(doc)
    if version > SCHEMA_VERSION:
        raise ValueError(f"room document version {version} is newer than supported {SCHEMA_VERSION}")
    if version == SCHEMA_VERSION:
        return doc

    upgraded = copy.deepcopy(doc)
    while version < SCHEMA_VERSION:
        upgraded = UPGRADES[version](upgraded)
        version += 1
        upgraded["schemaVersion"] = version
    logger.info("Upgraded room %s document to schema version %s", upgraded.get("code"), version)
    return upgraded
