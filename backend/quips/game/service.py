from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import Lock, RLock
from typing import Any, Callable, Iterator, TypeVar

from ..store.base import RoomStore
from . import codes, state
from .errors import InternalError, NotFoundError, UnprocessableError
from .models import Player, Room
from .prompts import get_random_safety_quip, pick_prompts_with_custom
from .schema import upgrade_document

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ROOM_TTL_SEC = 60 * 60 * 6


class _CodeLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = RLock()
        self.holders = 0


class RoomService:
    """Loads a room, applies one state-machine operation and persists the result.

    Operations on the same code are serialized by a per-code lock inside this
    process. Across processes the store stays last-write-wins.
    """

    def __init__(
        self,
        store: RoomStore,
        rules: state.GameRules = state.DEFAULT_RULES,
        ttl_seconds: int = DEFAULT_ROOM_TTL_SEC,
        prompt_picker: state.PromptPicker = pick_prompts_with_custom,
        quip_picker: state.QuipPicker = get_random_safety_quip,
    ) -> None:
        self.store = store
        self.rules = rules
        self.ttl_seconds = ttl_seconds
        self.prompt_picker = prompt_picker
        self.quip_picker = quip_picker
        self._locks_guard = Lock()
        self._locks: dict[str, _CodeLock] = {}

    # --- plumbing -----------------------------------------------------------

    @contextmanager
    def _room_lock(self, code: str) -> Iterator[None]:
        # Entries live only while someone holds or waits on them.
        with self._locks_guard:
            entry = self._locks.get(code)
            if entry is None:
                entry = self._locks[code] = _CodeLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[code]

    def _load(self, code: str) -> Room | None:
        raw = self.store.get(code)
        if raw is None:
            return None
        try:
            return Room.from_dict(upgrade_document(raw))
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Room %s document could not be loaded: %s", code, exc)
            raise InternalError("Room document is corrupted") from exc

    def _save(self, room: Room) -> None:
        self.store.set(room.code, room.to_dict(), self.ttl_seconds)

    def _mutate(self, code: str, op: Callable[[Room], T]) -> tuple[Room, T]:
        normalized = codes.normalize_code(code)
        with self._room_lock(normalized):
            room = self._load(normalized) if normalized else None
            if room is None:
                raise NotFoundError(f"Room {normalized} not found")
            result = op(room)
            room.updated_at_ms = state.now_ms()
            self._save(room)
            return room, result

    # --- operations ---------------------------------------------------------

    def get_room(self, code: str) -> Room | None:
        normalized = codes.normalize_code(code)
        if not normalized:
            return None
        return self._load(normalized)

    def require_room(self, code: str) -> Room:
        room = self.get_room(code)
        if room is None:
            raise NotFoundError(f"Room {codes.normalize_code(code)} not found")
        return room

    def create_room(self, host_name: str, rounds: Any = None, avatar: str | None = None) -> tuple[Room, Player]:
        # Validate before spending draws on a code.
        codes.normalize_name(host_name)
        # The claim is atomic within this process only; the store has no set-if-absent.
        for _ in range(codes.MAX_CODE_ATTEMPTS):
            code = codes.generate_room_code(lambda c: self.store.get(c) is not None)
            with self._room_lock(code):
                if self.store.get(code) is not None:
                    logger.warning("Room code %s was claimed concurrently, drawing again", code)
                    continue
                room = state.create_room(code, host_name, rounds, avatar, rules=self.rules)
                self._save(room)
            logger.info("Created room %s for host %s", code, room.host_id)
            return room, room.players[0]
        raise InternalError("Failed to generate a room code, try again")

    def join_room(self, code: str, name: str, avatar: str | None = None) -> tuple[Room, Player]:
        return self._mutate(code, lambda room: state.join_room(room, name, avatar))

    def start_game(self, code: str, host_id: str, rounds: Any = None) -> Room:
        room, _ = self._mutate(
            code,
            lambda room: state.start_game(
                room, host_id, rounds, rules=self.rules, prompt_picker=self.prompt_picker
            ),
        )
        return room

    def submit_response(self, code: str, player_id: str, text: str) -> Room:
        room, _ = self._mutate(code, lambda room: state.submit_response(room, player_id, text, rules=self.rules))
        return room

    def submit_vote(self, code: str, player_id: str, submission_id: str) -> Room:
        room, _ = self._mutate(code, lambda room: state.submit_vote(room, player_id, submission_id))
        return room

    def advance_phase(self, code: str, host_id: str) -> Room:
        room, _ = self._mutate(
            code,
            lambda room: state.advance_phase(room, host_id, rules=self.rules, quip_picker=self.quip_picker),
        )
        return room

    def update_settings(self, code: str, host_id: str, settings: dict[str, Any]) -> Room:
        room, _ = self._mutate(code, lambda room: state.update_settings(room, host_id, settings, rules=self.rules))
        return room

    def add_custom_prompt(self, code: str, host_id: str, text: str) -> Room:
        room, _ = self._mutate(code, lambda room: state.add_custom_prompt(room, host_id, text))
        return room

    def clear_custom_prompts(self, code: str, host_id: str) -> Room:
        room, _ = self._mutate(code, lambda room: state.clear_custom_prompts(room, host_id))
        return room

    def set_theme(self, code: str, host_id: str, theme: str) -> Room:
        room, _ = self._mutate(code, lambda room: state.set_theme(room, host_id, theme))
        return room

    def submit_reaction(self, code: str, emoji: str) -> dict[str, int]:
        _, reactions = self._mutate(code, lambda room: state.submit_reaction(room, emoji))
        return reactions

    def send_stage_message(
        self,
        code: str,
        host_id: str,
        text: str,
        kind: str = "teleprompter",
        duration_ms: Any = None,
    ) -> Room:
        room, _ = self._mutate(
            code,
            lambda room: state.send_stage_message(room, host_id, text, kind, duration_ms, rules=self.rules),
        )
        return room

    # --- deadline sweep -----------------------------------------------------

    def sweep_deadlines(self, now_ms: int | None = None) -> list[Room]:
        """Force-advance auto-advance rooms whose current deadline has passed.

        Goes through ``state.advance_phase`` as the host, exactly like a manual advance.
        """
        now = now_ms if now_ms is not None else state.now_ms()
        advanced: list[Room] = []
        for code in list(self.store.codes()):
            with self._room_lock(code):
                room = self._load(code)
                if room is None or not self._deadline_passed(room, now):
                    continue
                try:
                    state.advance_phase(room, room.host_id, rules=self.rules, quip_picker=self.quip_picker)
                except UnprocessableError as exc:
                    logger.info("Sweep left room %s in %s: %s", code, room.phase, exc.message)
                    continue
                room.updated_at_ms = state.now_ms()
                self._save(room)
                advanced.append(room)
        return advanced

    @staticmethod
    def _deadline_passed(room: Room, now: int) -> bool:
        if not room.settings.auto_advance or room.phase not in ("prompt", "vote"):
            return False
        rnd = room.current_round()
        return rnd is not None and rnd.deadline_ms is not None and rnd.deadline_ms <= now
