import logging
import os
from flask import request
from flask_jwt_extended import decode_token
from flask_socketio import SocketIO, join_room, leave_room, emit
from jwt.exceptions import PyJWTError

log = logging.getLogger(__name__)

_raw = os.getenv("SOCKETIO_CORS_ORIGINS", "*").strip()
CORS_ORIGINS = "*" if _raw == "*" else [o.strip() for o in _raw.split(",") if o.strip()]
_debug = os.getenv("LOG_LEVEL", "INFO").upper() == "DEBUG"

socketio = SocketIO(
    cors_allowed_origins=CORS_ORIGINS,
    async_mode=os.getenv("SOCKETIO_ASYNC_MODE") or None,
    logger=_debug,
    engineio_logger=_debug,
)


def user_room(user_id) -> str:
    return f"user:{user_id}"


def campaign_room(campaign_id) -> str:
    return f"campaign:{campaign_id}"


def _identity_from_cookie():
    token = request.cookies.get("token")
    if not token:
        return None
    try:
        return decode_token(token).get("sub")
    except PyJWTError:
        return None


def init_socketio(app):
    socketio.init_app(app)

    @socketio.on("connect")
    def handle_connect():
        user_id = _identity_from_cookie()
        log.info("[socket] connect origin=%s user=%s", request.headers.get("Origin"), user_id)
        if user_id:
            join_room(user_room(user_id))
        emit("connected", {"ok": True, "user": bool(user_id)})

    @socketio.on("disconnect")
    def handle_disconnect(*_):
        log.info("[socket] disconnect")

    @socketio.on("join_user")
    def on_join_user(_data=None):
        # only ever the caller's own room
        user_id = _identity_from_cookie()
        if not user_id:
            emit("error", {"error": "not authenticated"})
            return
        room = user_room(user_id)
        join_room(room)
        emit("joined", {"room": room})

    @socketio.on("join_campaign")
    def on_join(data):
        cid = (data or {}).get("campaign_id")
        if not cid:
            emit("error", {"error": "campaign_id required"})
            return
        room = campaign_room(cid)
        join_room(room)
        emit("joined", {"room": room})

    @socketio.on("leave_campaign")
    def on_leave(data):
        cid = (data or {}).get("campaign_id")
        if not cid:
            return
        room = campaign_room(cid)
        leave_room(room)
        emit("left", {"room": room})
