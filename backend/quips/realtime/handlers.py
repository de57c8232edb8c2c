from __future__ import annotations

import logging

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.codes import normalize_code
from ..game.errors import RoomError
from ..game.service import RoomService

logger = logging.getLogger(__name__)


def register_socketio_handlers(socketio: SocketIO, service: RoomService, sweep_interval_sec: float = 0) -> None:
    sweeper = {"running": False}

    def _sweep_runner() -> None:
        while True:
            socketio.sleep(sweep_interval_sec)
            try:
                advanced = service.sweep_deadlines()
            except RoomError as exc:
                logger.error("Deadline sweep failed: %s", exc.message)
                continue
            for room in advanced:
                logger.info("Deadline passed in room %s, now in %s", room.code, room.phase)
                socketio.emit("room:state", room.to_dict(), to=room.code)

    def _ensure_sweeper() -> None:
        if sweep_interval_sec <= 0 or sweeper["running"]:
            return
        sweeper["running"] = True
        socketio.start_background_task(_sweep_runner)

    @socketio.on("room:subscribe")
    def room_subscribe(data):
        payload = data or {}
        room_code = normalize_code(str(payload.get("roomCode", "")))
        if not room_code:
            emit("room:error", {"error": "roomCode is required", "kind": "ValidationError"})
            return {"ok": False, "error": "roomCode is required", "kind": "ValidationError"}

        try:
            room = service.require_room(room_code)
        except RoomError as exc:
            emit("room:error", exc.to_dict())
            return {"ok": False, **exc.to_dict()}

        join_room(room_code)
        emit("room:state", room.to_dict(), to=request.sid)
        _ensure_sweeper()
        return {"ok": True}

    @socketio.on("room:unsubscribe")
    def room_unsubscribe(data):
        payload = data or {}
        room_code = normalize_code(str(payload.get("roomCode", "")))
        if not room_code:
            return {"ok": False, "error": "roomCode is required", "kind": "ValidationError"}
        leave_room(room_code)
        return {"ok": True}
