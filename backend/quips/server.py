from __future__ import annotations

import atexit
import logging
import sys

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.exceptions import InternalServerError
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.service import RoomService
from .game.state import GameRules
from .realtime.handlers import register_socketio_handlers
from .routes.health import bp as health_bp
from .routes.prompts import bp as prompts_bp
from .routes.rooms import bp as rooms_bp
from .store.base import RoomStore
from .store.factory import build_store


def create_app(config_class=Config, store: RoomStore | None = None) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    async_mode = app.config.get("SOCKETIO_ASYNC_MODE", "")
    if not async_mode:
        # eventlet is not installed on Windows or Python 3.13+.
        on_eventlet = not sys.platform.startswith("win") and sys.version_info < (3, 13)
        async_mode = "eventlet" if on_eventlet else "threading"

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=async_mode,
    )

    if store is None:
        # Owned by this process: close it on interpreter exit.
        store = build_store(app.config)
        atexit.register(store.close)

    service = RoomService(
        store,
        rules=GameRules.from_config(app.config),
        ttl_seconds=int(app.config.get("ROOM_TTL_SEC", 60 * 60 * 6)),
    )
    app.extensions["quips"] = service

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(rooms_bp, url_prefix="/api")
    app.register_blueprint(prompts_bp, url_prefix="/api")

    @app.errorhandler(InternalServerError)
    def internal_error(exc):
        original = getattr(exc, "original_exception", None) or exc
        app.logger.error("Unhandled error: %s", original, exc_info=original)
        return jsonify({"error": "Something went wrong. Please try again.", "kind": "InternalError"}), 500

    register_socketio_handlers(
        socketio,
        service,
        sweep_interval_sec=float(app.config.get("SWEEP_INTERVAL_SEC", 0)),
    )

    return app, socketio
