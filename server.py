import argparse
import logging

from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

import settings
from errors import InternalError, RoomStoreError
from kv_store import MemoryKVStore
from room_store import RoomStore

logger = logging.getLogger(__name__)

rooms_bp = Blueprint("rooms", __name__)

# Generic messages for unexpected failures, per endpoint
INTERNAL_MESSAGES = {
    "create_room": "Failed to create room",
    "join_room": "Failed to join room",
    "update_player": "Failed to update player",
    "get_players": "Failed to get players",
    "leave_room": "Failed to leave room",
}


def _store():
    return current_app.config["ROOM_STORE"]


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _bearer_from_req():
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip()
    return None


@rooms_bp.before_request
def note_missing_token():
    # The hosting environment wants a bearer token; the store itself does not check it
    if request.method != "OPTIONS" and not _bearer_from_req():
        logger.debug("Request to %s without bearer token", request.path)


@rooms_bp.post("/create-room")
def create_room():
    data = _json_body()
    room = _store().create_room(data.get("roomCode"), data.get("hostUsername"))
    return jsonify({"success": True, "roomCode": room["code"]})


@rooms_bp.post("/join-room")
def join_room():
    data = _json_body()
    _store().join_room(data.get("roomCode"), data.get("username"))
    return jsonify({"success": True})


@rooms_bp.post("/update-player")
def update_player():
    data = _json_body()
    _store().update_player(data.get("roomCode"), data.get("playerId"), data.get("playerData"))
    return jsonify({"success": True})


@rooms_bp.get("/get-players")
def get_players():
    players = _store().get_players(request.args.get("roomCode"))
    return jsonify({"players": players})


@rooms_bp.post("/leave-room")
def leave_room():
    data = _json_body()
    _store().leave_room(data.get("roomCode"), data.get("playerId"))
    return jsonify({"success": True})


@rooms_bp.get("/health")
def health():
    return jsonify({"status": "ok", "game": settings.GAME_NAME})


@rooms_bp.errorhandler(RoomStoreError)
def handle_store_error(error):
    return jsonify({"error": error.message}), error.status


@rooms_bp.errorhandler(Exception)
def handle_unexpected(error):
    if isinstance(error, HTTPException):
        return error
    endpoint = (request.endpoint or "").rsplit(".", 1)[-1]
    logger.exception("Error handling %s", request.path)
    return handle_store_error(InternalError(INTERNAL_MESSAGES.get(endpoint, "Internal server error")))


def create_app(store=None, prefix=None):
    app = Flask(__name__)
    app.config["ROOM_STORE"] = store or RoomStore(MemoryKVStore())

    prefix = settings.API_PREFIX if prefix is None else prefix
    app.register_blueprint(rooms_bp, url_prefix=prefix or None)

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        logger.info("%s %s %s", request.method, request.path, response.status_code)
        return response

    return app


def start_server(host=settings.SERVER_HOST, port=settings.SERVER_PORT):
    app = create_app()
    logger.info("[SERVER] Listening on %s:%s", host, port)
    app.run(host=host, port=port, threaded=True)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Room store for jarzd.io")
    parser.add_argument("--host", default=settings.SERVER_HOST)
    parser.add_argument("--port", type=int, default=settings.SERVER_PORT)
    parser.add_argument("--log-level", default=settings.LOG_LEVEL)
    args = parser.parse_args(argv)

    settings.configure_logging(args.log_level)
    start_server(args.host, args.port)


if __name__ == "__main__":
    main()
