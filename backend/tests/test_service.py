import threading
import time

import pytest

from conftest import fixed_prompts
from quips.game import codes
from quips.game.errors import ConflictError, InternalError, NotFoundError, ValidationError
from quips.game.models import SCHEMA_VERSION
from quips.game.service import RoomService
from quips.store.memory import MemoryRoomStore


def new_game(service, rounds=3):
    room, host = service.create_room("Al", rounds)
    service.join_room(room.code, "Bo")
    room, _ = service.join_room(room.code, "Cy")
    return room, host


def test_create_join_start_round_trip(service):
    room, host = new_game(service)
    room = service.start_game(room.code, host.id)
    assert room.phase == "prompt"
    assert len(room.rounds) == 3
    assert room.current_round_index == 0

    stored = service.get_room(room.code)
    assert stored.to_dict() == room.to_dict()


def test_codes_are_case_insensitive(service):
    room, _ = service.create_room("Al")
    joined, player = service.join_room(f"  {room.code.lower()} ", "Bo")
    assert joined.code == room.code
    assert player.name == "Bo"


def test_unknown_room_is_not_found(service):
    with pytest.raises(NotFoundError):
        service.join_room("ZZZZ", "Bo")
    with pytest.raises(NotFoundError):
        service.submit_reaction("", "🔥")
    assert service.get_room("ZZZZ") is None


def test_create_room_validates_name_before_drawing_code(service, monkeypatch):
    def fail(_exists):
        raise AssertionError("code should not be generated")

    monkeypatch.setattr(codes, "generate_room_code", fail)
    with pytest.raises(ValidationError):
        service.create_room("A")


def test_rejected_operation_is_not_persisted(service):
    room, host = new_game(service)
    service.start_game(room.code, host.id)
    bo = room.players[1]

    service.submit_response(room.code, bo.id, "first try")
    before = service.get_room(room.code).to_dict()

    with pytest.raises(ConflictError):
        service.submit_response(room.code, bo.id, "second try")

    after = service.get_room(room.code)
    assert after.to_dict() == before
    assert len(after.current_round().submissions) == 1


def test_every_write_refreshes_ttl(store):
    writes = []
    original_set = store.set

    def recording_set(code, doc, ttl_seconds):
        writes.append(ttl_seconds)
        original_set(code, doc, ttl_seconds)

    store.set = recording_set
    service = RoomService(store, ttl_seconds=120)
    room, _ = service.create_room("Al")
    service.set_theme(room.code, room.host_id, "gold")
    assert writes == [120, 120]


def test_full_round_through_service(service):
    room, host = new_game(service, rounds=1)
    code = room.code
    al, bo, cy = room.players
    service.start_game(code, host.id)

    service.submit_response(code, bo.id, "foo")
    assert service.submit_response(code, cy.id, "bar").phase == "prompt"
    room = service.submit_response(code, al.id, "baz")
    assert room.phase == "vote"

    by_author = {s.player_id: s.id for s in room.current_round().submissions}
    service.submit_vote(code, bo.id, by_author[cy.id])
    room = service.submit_vote(code, cy.id, by_author[bo.id])

    assert room.phase == "results"
    scores = {p.name: p.score for p in room.players}
    assert scores == {"Al": 0, "Bo": 100, "Cy": 100}

    room = service.advance_phase(code, host.id)
    assert room.phase == "finished"
    room = service.advance_phase(code, host.id)
    assert room.phase == "lobby"
    assert room.rounds == []
    assert all((p.score, p.streak, p.achievements) == (0, 0, []) for p in room.players)


def test_force_advance_uses_safety_quips(service):
    room, host = new_game(service)
    service.start_game(room.code, host.id)
    room = service.advance_phase(room.code, host.id)
    assert room.phase == "vote"
    assert [s.text for s in room.current_round().submissions] == ["Safety quip"] * 3


def test_reaction_returns_counters_only(service):
    room, _ = service.create_room("Al")
    service.submit_reaction(room.code, "👏")
    reactions = service.submit_reaction(room.code, "👏")
    assert reactions == {"👏": 2, "😂": 0, "🔥": 0, "😮": 0}
    assert service.get_room(room.code).reactions["👏"] == 2


def test_stage_message_is_stored(service):
    room, host = service.create_room("Al")
    room = service.send_stage_message(room.code, host.id, "Welcome!", kind="teleprompter", duration_ms=3000)
    assert room.stage_message.text == "Welcome!"
    assert service.get_room(room.code).stage_message.id == room.stage_message.id


def test_legacy_document_is_upgraded_on_load(store, service):
    store.set(
        "OLDY",
        {
            "code": "OLDY",
            "hostId": "h1",
            "phase": "lobby",
            "roundsToPlay": 2,
            "currentRoundIndex": -1,
            "players": [
                {"id": "h1", "name": "Host", "score": 0, "joinedAt": 1, "lastActionAt": 2},
                {"id": "p2", "name": "Guest", "score": 0, "joinedAt": 3},
            ],
            "rounds": [],
            "createdAt": 1,
            "updatedAt": 3,
        },
        60,
    )

    room = service.get_room("oldy")
    assert room.schema_version == SCHEMA_VERSION
    assert room.players[1].avatar == "🎤"
    assert room.players[1].achievements == []
    assert room.players[1].last_action_at_ms == 3
    assert room.settings.prompt_duration == 60
    assert room.custom_prompts == []

    service.set_theme("OLDY", "h1", "retro")
    assert store.get("OLDY")["schemaVersion"] == SCHEMA_VERSION


def test_corrupted_document_is_internal_error(store, service):
    store.set("BADD", {"code": "BADD", "phase": "dancing", "schemaVersion": SCHEMA_VERSION}, 60)
    with pytest.raises(InternalError):
        service.get_room("BADD")


def test_phase_without_round_is_internal_error(store, service):
    room, _ = service.create_room("Al")
    doc = store.get(room.code)
    doc["phase"] = "vote"
    store.set(room.code, doc, 60)
    with pytest.raises(InternalError):
        service.get_room(room.code)


def test_sweep_advances_expired_auto_advance_rooms(service):
    room, host = new_game(service)
    service.update_settings(room.code, host.id, {"autoAdvance": True})
    room = service.start_game(room.code, host.id)
    deadline = room.current_round().deadline_ms

    assert service.sweep_deadlines(now_ms=deadline - 1) == []

    advanced = service.sweep_deadlines(now_ms=deadline)
    assert [r.code for r in advanced] == [room.code]
    assert advanced[0].phase == "vote"

    vote_deadline = advanced[0].current_round().deadline_ms
    advanced = service.sweep_deadlines(now_ms=vote_deadline)
    assert advanced[0].phase == "results"
    # Results wait for the host.
    assert service.sweep_deadlines(now_ms=vote_deadline + 10**9) == []


def test_sweep_ignores_rooms_without_auto_advance(service):
    room, host = new_game(service)
    room = service.start_game(room.code, host.id)
    assert service.sweep_deadlines(now_ms=room.current_round().deadline_ms + 1) == []
    assert service.get_room(room.code).phase == "prompt"


class SlowStore(MemoryRoomStore):
    """Widens the read-modify-write window so unserialized writers would overwrite each other."""

    def get(self, code):
        doc = super().get(code)
        time.sleep(0.01)
        return doc


class GatedStore(MemoryRoomStore):
    """Parks reads of ``gated`` codes until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.gated = set()
        self.entered = threading.Event()
        self.release = threading.Event()

    def get(self, code):
        if code in self.gated:
            self.entered.set()
            assert self.release.wait(5)
        return super().get(code)


def run_threads(targets):
    errors = []

    def wrap(fn):
        def runner():
            try:
                fn()
            except Exception as exc:
                errors.append(exc)

        return runner

    threads = [threading.Thread(target=wrap(fn)) for fn in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)
    assert not any(t.is_alive() for t in threads)
    return errors


def test_concurrent_submissions_on_one_room_are_all_kept():
    service = RoomService(SlowStore(), prompt_picker=fixed_prompts)
    room, host = service.create_room("Host")
    for i in range(5):
        room, _ = service.join_room(room.code, f"Player {i}")
    service.start_game(room.code, host.id)

    barrier = threading.Barrier(len(room.players))

    def submit(player_id, text):
        def go():
            barrier.wait(5)
            service.submit_response(room.code, player_id, text)

        return go

    errors = run_threads([submit(p.id, f"answer from {p.name}") for p in room.players])

    assert errors == []
    stored = service.get_room(room.code)
    assert len(stored.current_round().submissions) == 6
    assert stored.phase == "vote"


def test_busy_room_does_not_block_other_rooms():
    store = GatedStore()
    service = RoomService(store, prompt_picker=fixed_prompts)
    slow, _ = service.create_room("Al")
    fast, fast_host = service.create_room("Bo")
    store.gated.add(slow.code)

    parked = threading.Thread(target=lambda: service.join_room(slow.code, "Dee"))
    parked.start()
    assert store.entered.wait(5)

    room = service.set_theme(fast.code, fast_host.id, "gold")
    assert room.theme == "gold"
    assert parked.is_alive()

    store.release.set()
    parked.join(5)
    assert [p.name for p in service.get_room(slow.code).players] == ["Al", "Dee"]


def test_lock_table_only_holds_active_codes(service):
    room, _ = service.create_room("Al")
    for i in range(20):
        with pytest.raises(NotFoundError):
            service.join_room(f"X{i:03d}", "Bo")
    service.join_room(room.code, "Bo")
    service.sweep_deadlines()
    assert service._locks == {}


def test_create_room_redraws_code_claimed_before_lock(service, monkeypatch):
    taken, host = service.create_room("Al")
    fresh = "WXYZ" if taken.code != "WXYZ" else "ZYXW"
    draws = iter([taken.code, fresh])
    monkeypatch.setattr(codes, "generate_room_code", lambda exists: next(draws))

    room, _ = service.create_room("Bo")

    assert room.code == fresh
    assert service.get_room(taken.code).host_id == host.id
