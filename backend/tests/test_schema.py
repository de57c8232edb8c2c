import pytest

from quips.game.models import SCHEMA_VERSION, Room
from quips.game.schema import document_version, upgrade_document


def legacy_doc():
    return {
        "code": "ABCD",
        "hostId": "h",
        "phase": "results",
        "roundsToPlay": 1,
        "currentRoundIndex": 0,
        "players": [{"id": "h", "name": "Host", "score": 200, "joinedAt": 5, "lastActionAt": 9}],
        "rounds": [
            {
                "id": "r1",
                "prompt": "Something",
                "submissions": [{"id": "s1", "playerId": "h", "text": "hi", "voters": [], "createdAt": 7}],
                "votes": [],
                "status": "closed",
                "startedAt": 5,
            }
        ],
        "createdAt": 5,
        "updatedAt": 9,
    }


def test_legacy_document_upgrades_without_touching_input():
    raw = legacy_doc()
    upgraded = upgrade_document(raw)

    assert document_version(raw) == 1
    assert "schemaVersion" not in raw
    assert upgraded["schemaVersion"] == SCHEMA_VERSION
    assert upgraded["theme"] == "neon"
    assert upgraded["rounds"][0]["deadline"] is None
    assert upgraded["players"][0]["streak"] == 0

    room = Room.from_dict(upgraded)
    assert room.current_round().submissions[0].text == "hi"
    assert room.players[0].score == 200


def test_current_document_passes_through():
    doc = Room(code="ABCD", host_id="h").to_dict()
    assert upgrade_document(doc) is doc


def test_future_document_is_rejected():
    doc = Room(code="ABCD", host_id="h").to_dict()
    doc["schemaVersion"] = SCHEMA_VERSION + 1
    with pytest.raises(ValueError):
        upgrade_document(doc)


def test_room_round_trips_through_json_shape():
    room = Room.from_dict(upgrade_document(legacy_doc()))
    assert Room.from_dict(room.to_dict()) == room


def started_doc():
    doc = Room(code="ABCD", host_id="h").to_dict()
    doc.update(
        phase="prompt",
        currentRoundIndex=0,
        rounds=[{"id": "r1", "prompt": "Something", "status": "collecting", "startedAt": 1, "deadline": 2}],
    )
    return doc


def test_consistent_started_document_loads():
    room = Room.from_dict(started_doc())
    assert room.current_round().status == "collecting"


@pytest.mark.parametrize(
    "patch",
    [
        {"phase": "vote", "rounds": [], "currentRoundIndex": -1},
        {"currentRoundIndex": 3},
        {"phase": "results"},
        {"phase": "lobby"},
        {"phase": "finished"},
    ],
    ids=["vote-without-round", "index-out-of-bounds", "results-on-open-round", "lobby-with-round", "finished-on-open-round"],
)
def test_inconsistent_phase_is_rejected(patch):
    doc = started_doc()
    doc.update(patch)
    with pytest.raises(ValueError):
        Room.from_dict(doc)


def test_unknown_achievement_is_rejected():
    doc = started_doc()
    doc["players"] = [{"id": "h", "name": "Host", "achievements": ["first-answer", "time-traveller"]}]
    with pytest.raises(ValueError):
        Room.from_dict(doc)
