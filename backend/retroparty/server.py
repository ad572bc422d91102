from __future__ import annotations

import os
import sys
from functools import partial
from pathlib import Path

from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.scheduler import Scheduler
from .game.service import RoomRegistry
from .game.turns import create_initial_state
from .realtime.handlers import register_socketio_handlers
from .realtime.hub import GameHub
from .routes.health import bp as health_bp
from .routes.rooms import bp as rooms_bp


def _async_mode(app: Flask) -> str:
    env_async_mode = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()
    if env_async_mode:
        return env_async_mode
    # Windows and Python >= 3.13 run threading; eventlet otherwise.
    if app.config.get("TESTING") or sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def create_app(config_class=Config, scheduler: Scheduler | None = None, rng=None) -> tuple[Flask, SocketIO]:
    dist_dir = Path(__file__).resolve().parents[2] / "frontend" / "dist"

    static_folder = str(dist_dir) if dist_dir.exists() else None
    static_url_path = "/" if dist_dir.exists() else None

    app = Flask(
        __name__,
        static_folder=static_folder,
        static_url_path=static_url_path,
    )
    app.config.from_object(config_class)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=_async_mode(app),
    )

    registry = RoomRegistry(
        max_players=app.config["MAX_PLAYERS"],
        state_factory=partial(
            create_initial_state,
            max_rounds=app.config["MAX_ROUNDS"],
            cols=app.config["BOARD_COLS"],
            rows=app.config["BOARD_ROWS"],
            length=app.config["BOARD_LENGTH"],
        ),
    )
    if scheduler is None:
        scheduler = Scheduler(spawn=socketio.start_background_task, sleep=socketio.sleep)

    def _emit(event: str, payload: dict, to: str) -> None:
        socketio.emit(event, payload, to=to)

    def _enter_group(sid: str, code: str) -> None:
        socketio.server.enter_room(sid, code, namespace="/")

    def _leave_group(sid: str, code: str) -> None:
        socketio.server.leave_room(sid, code, namespace="/")

    def _close_group(code: str) -> None:
        socketio.server.close_room(code, namespace="/")

    hub = GameHub(
        registry,
        scheduler,
        _emit,
        enter_group=_enter_group,
        leave_group=_leave_group,
        close_group=_close_group,
        reconnect_grace_ms=app.config["RECONNECT_GRACE_SEC"] * 1000,
        dice_settle_ms=app.config["DICE_SETTLE_MS"],
        quiz_rounds=app.config["QUIZ_ROUNDS"],
        rng=rng,
    )
    app.extensions["retroparty"] = hub

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")

    register_socketio_handlers(socketio, hub)

    if dist_dir.exists():
        @app.get("/")
        def index():
            return send_from_directory(dist_dir, "index.html")

        @app.get("/<path:path>")
        def static_proxy(path: str):
            file_path = dist_dir / path
            if file_path.exists() and file_path.is_file():
                return send_from_directory(dist_dir, path)
            return send_from_directory(dist_dir, "index.html")

    return app, socketio
