from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game import service

bp = Blueprint("rooms", __name__)


@bp.get("/rooms/<code>")
def get_room(code: str):
    registry: service.RoomRegistry = current_app.extensions["retroparty"].registry
    room = registry.get_room(code)
    if not room:
        return jsonify({"error": "room_not_found"}), 404
    with registry.lock:
        return jsonify(service.room_summary(room))
