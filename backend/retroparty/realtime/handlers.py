from __future__ import annotations

from typing import Any

from flask import request
from flask_socketio import SocketIO, emit

from . import events
from .hub import GameHub


MAX_NAME_LENGTH = 16


def _clean_name(raw: Any, fallback: str) -> str:
    n = str(raw or "").strip()
    # No markup and no control characters.
    n = "".join(ch for ch in n if ch not in "<>" and ord(ch) >= 32)
    return n[:MAX_NAME_LENGTH].strip() or fallback


def _clean_avatar(raw: Any) -> int:
    try:
        avatar = int(raw)
    except (TypeError, ValueError):
        return 0
    return max(0, avatar)


def _clean_code(raw: Any) -> str:
    return str(raw or "").strip().upper()


def _clean_session(raw: Any) -> str | None:
    s = str(raw or "").strip()
    return s or None


def register_socketio_handlers(socketio: SocketIO, hub: GameHub) -> None:
    @socketio.on("connect")
    def on_connect(auth=None):
        emit(events.SERVER_HELLO, {"id": request.sid})

    @socketio.on("disconnect")
    def on_disconnect(*_args):
        hub.disconnect(request.sid)

    @socketio.on(events.CREATE_ROOM)
    def create_room(data):
        payload = data if isinstance(data, dict) else {}
        room = hub.create_room(
            request.sid,
            _clean_name(payload.get("name"), "Host"),
            _clean_avatar(payload.get("avatar")),
            _clean_session(payload.get("sessionId")),
        )
        return {"ok": True, "code": room.code}

    @socketio.on(events.JOIN_ROOM)
    def join_room(data):
        payload = data if isinstance(data, dict) else {}
        code = _clean_code(payload.get("code"))
        if not code:
            emit(events.ERROR_MSG, {"message": "Room not found"})
            return {"ok": False, "error": "room_not_found"}

        room = hub.join_room(
            request.sid,
            code,
            _clean_name(payload.get("name"), "Player"),
            _clean_avatar(payload.get("avatar")),
            _clean_session(payload.get("sessionId")),
        )
        if room is None:
            return {"ok": False}
        return {"ok": True, "code": room.code}

    @socketio.on(events.RECONNECT_ROOM)
    def reconnect_room(data):
        payload = data if isinstance(data, dict) else {}
        code = _clean_code(payload.get("code"))
        session_id = _clean_session(payload.get("sessionId"))
        if not code or not session_id:
            emit(events.ERROR_MSG, {"message": "Session not found"})
            return {"ok": False}

        room = hub.reconnect_room(request.sid, code, session_id)
        if room is None:
            return {"ok": False}
        return {"ok": True, "code": room.code}

    @socketio.on(events.LEAVE_ROOM)
    def leave_room(*_args):
        hub.leave_room(request.sid)

    @socketio.on(events.START_GAME)
    def start_game(*_args):
        hub.start_game(request.sid)

    @socketio.on(events.RESET_GAME)
    def reset_game(*_args):
        hub.reset_game(request.sid)

    @socketio.on(events.REGENERATE_BOARD)
    def regenerate_board(*_args):
        hub.regenerate_board(request.sid)

    @socketio.on(events.ROLL_DICE)
    def roll_dice(*_args):
        hub.roll_dice(request.sid)

    @socketio.on(events.MOVE_PLAYER)
    def move_player(data):
        payload = data if isinstance(data, dict) else {}
        hub.move_player(request.sid, payload.get("steps"))

    @socketio.on(events.OPEN_QUESTION)
    def open_question(*_args):
        hub.open_question(request.sid)

    @socketio.on(events.VOTE_QUESTION)
    def vote_question(data):
        payload = data if isinstance(data, dict) else {}
        hub.vote_question(request.sid, str(payload.get("vote", "")).strip())

    @socketio.on(events.VALIDATE_QUESTION)
    def validate_question(*_args):
        hub.validate_question(request.sid)

    @socketio.on(events.NEXT_TURN)
    def next_turn(*_args):
        hub.next_turn(request.sid)

    @socketio.on(events.SKILL_TIMER_PROGRESS)
    def skill_timer_progress(data):
        payload = data if isinstance(data, dict) else {}
        hub.skill_timer_progress(request.sid, payload.get("score"))

    @socketio.on(events.SKILL_TIMER_COMPLETE)
    def skill_timer_complete(data):
        payload = data if isinstance(data, dict) else {}
        hub.skill_timer_complete(request.sid, payload.get("score"))

    @socketio.on(events.DUEL_SUBMIT)
    def duel_submit(data):
        payload = data if isinstance(data, dict) else {}
        hub.duel_submit(request.sid, str(payload.get("category", "")).strip().upper())

    @socketio.on(events.QUIZ_SUBMIT)
    def quiz_submit(data):
        payload = data if isinstance(data, dict) else {}
        try:
            round_index = int(payload.get("roundIndex"))
        except (TypeError, ValueError):
            round_index = None

        result = hub.quiz_submit(request.sid, round_index, str(payload.get("role", "")).strip().upper())
        if not result.accepted:
            return {"ok": False, "error": result.reason}
        return {"ok": True}
