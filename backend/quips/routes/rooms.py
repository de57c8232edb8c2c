from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, jsonify, request

from ..game.errors import RoomError, ValidationError
from ..game.service import RoomService
from ..realtime.events import emit_reactions, emit_room_state

bp = Blueprint("rooms", __name__)


def _service() -> RoomService:
    return current_app.extensions["quips"]


def _payload() -> dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return value if isinstance(value, str) else None


def _required_str(data: dict[str, Any], key: str) -> str:
    value = _optional_str(data, key)
    if not value:
        raise ValidationError(f"{key} is required")
    return value


def _optional_number(data: dict[str, Any], key: str) -> int | float | None:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


@bp.errorhandler(RoomError)
def handle_room_error(exc: RoomError):
    if exc.status >= 500:
        current_app.logger.error("Room operation failed: %s", exc.message)
    return jsonify(exc.to_dict()), exc.status


@bp.post("/rooms")
def create_room():
    data = _payload()
    room, player = _service().create_room(
        _optional_str(data, "name") or "",
        rounds=_optional_number(data, "rounds"),
        avatar=_optional_str(data, "avatar"),
    )
    return jsonify({"room": room.to_dict(), "player": player.to_dict()})


@bp.get("/rooms/<code>")
def get_room(code: str):
    room = _service().get_room(code)
    if not room:
        return jsonify({"error": "Room not found", "kind": "NotFoundError"}), 404
    return jsonify({"room": room.to_dict()})


@bp.post("/rooms/<code>/join")
def join_room(code: str):
    data = _payload()
    room, player = _service().join_room(
        code,
        _optional_str(data, "name") or "",
        avatar=_optional_str(data, "avatar"),
    )
    emit_room_state(room)
    return jsonify({"room": room.to_dict(), "player": player.to_dict()})


@bp.post("/rooms/<code>/start")
def start_game(code: str):
    data = _payload()
    player_id = _required_str(data, "playerId")
    room = _service().start_game(code, player_id, rounds=_optional_number(data, "rounds"))
    emit_room_state(room)
    return jsonify({"room": room.to_dict()})


@bp.post("/rooms/<code>/submit")
def submit_response(code: str):
    data = _payload()
    player_id = _required_str(data, "playerId")
    room = _service().submit_response(code, player_id, _optional_str(data, "text") or "")
    emit_room_state(room)
    return jsonify({"room": room.to_dict()})


@bp.post("/rooms/<code>/vote")
def submit_vote(code: str):
    data = _payload()
    player_id = _required_str(data, "playerId")
    submission_id = _required_str(data, "submissionId")
    room = _service().submit_vote(code, player_id, submission_id)
    emit_room_state(room)
    return jsonify({"room": room.to_dict()})


@bp.post("/rooms/<code>/advance")
def advance_phase(code: str):
    data = _payload()
    player_id = _required_str(data, "playerId")
    room = _service().advance_phase(code, player_id)
    emit_room_state(room)
    return jsonify({"room": room.to_dict()})


@bp.post("/rooms/<code>/settings")
def update_settings(code: str):
    data = _payload()
    player_id = _required_str(data, "playerId")
    settings = data.get("settings")
    if not isinstance(settings, dict):
        raise ValidationError("settings is required")
    room = _service().update_settings(code, player_id, settings)
    emit_room_state(room)
    return jsonify({"room": room.to_dict()})


@bp.post("/rooms/<code>/prompts")
def custom_prompts(code: str):
    data = _payload()
    player_id = _required_str(data, "playerId")
    if data.get("action") == "clear":
        room = _service().clear_custom_prompts(code, player_id)
    else:
        room = _service().add_custom_prompt(code, player_id, _required_str(data, "prompt"))
    emit_room_state(room)
    return jsonify({"room": room.to_dict()})


@bp.post("/rooms/<code>/theme")
def set_theme(code: str):
    data = _payload()
    player_id = _required_str(data, "playerId")
    room = _service().set_theme(code, player_id, _required_str(data, "theme"))
    emit_room_state(room)
    return jsonify({"room": room.to_dict()})


@bp.post("/rooms/<code>/react")
def react(code: str):
    data = _payload()
    emoji = _required_str(data, "reaction")
    reactions = _service().submit_reaction(code, emoji)
    emit_reactions(code, reactions)
    return jsonify({"reactions": reactions})


@bp.post("/rooms/<code>/stage-message")
def stage_message(code: str):
    data = _payload()
    player_id = _required_str(data, "playerId")
    kind = "intermission" if data.get("kind") == "intermission" else "teleprompter"
    room = _service().send_stage_message(
        code,
        player_id,
        _optional_str(data, "text") or "",
        kind=kind,
        duration_ms=_optional_number(data, "durationMs"),
    )
    emit_room_state(room)
    message = room.stage_message.to_dict() if room.stage_message else None
    return jsonify({"stageMessage": message})
