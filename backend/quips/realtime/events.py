from __future__ import annotations

from flask import current_app

from ..game.codes import normalize_code
from ..game.models import Room


def emit_room_state(room: Room) -> None:
    socketio = current_app.extensions.get("socketio")
    if socketio is None:
        return
    socketio.emit("room:state", room.to_dict(), to=room.code)


def emit_reactions(code: str, reactions: dict[str, int]) -> None:
    socketio = current_app.extensions.get("socketio")
    if socketio is None:
        return
    room_code = normalize_code(code)
    socketio.emit("room:reactions", {"roomCode": room_code, "reactions": reactions}, to=room_code)
