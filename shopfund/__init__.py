# shopfund/__init__.py
import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from shopfund.routes import (
    auth_bp,
    core,
    shops,
    campaigns,
    rewards,
    donations_bp,
    admin_bp,
)
from shopfund.realtime import init_socketio
from shopfund.utils.metrics import register_metric_subscribers

load_dotenv(dotenv_path=".env")

log = logging.getLogger(__name__)


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _configure_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _register_error_handlers(app: Flask, jwt: JWTManager) -> None:
    @jwt.unauthorized_loader
    def _missing_token(reason):
        return jsonify({"error": "unauthorized", "detail": reason}), 401

    @jwt.invalid_token_loader
    def _invalid_token(reason):
        return jsonify({"error": "invalid token", "detail": reason}), 401

    @jwt.expired_token_loader
    def _expired_token(_header, _payload):
        return jsonify({"error": "token expired"}), 401

    @app.errorhandler(403)
    def _forbidden(_e):
        return jsonify({"error": "forbidden"}), 403

    @app.errorhandler(404)
    def _not_found(_e):
        return jsonify({"error": "not found"}), 404

    @app.errorhandler(405)
    def _not_allowed(_e):
        return jsonify({"error": "method not allowed"}), 405

    @app.errorhandler(422)
    def _unprocessable(_e):
        return jsonify({"error": "unprocessable request"}), 422


def create_app(overrides=None):
    _configure_logging()

    app = Flask(__name__)
    app.url_map.strict_slashes = False

    app.config["SECRET_KEY"] = os.getenv("SESSION_SECRET", "dev-session-secret")
    app.config["FRONTEND_URL"] = os.getenv("FRONTEND_URL", "http://localhost:3000")
    app.config["MAX_CONTENT_LENGTH"] = int(os.getenv("MAX_UPLOAD_MB", "50")) * 1024 * 1024

    # JWT: httpOnly `token` cookie for the browser, Bearer header for scripts
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET", "dev-secret")
    app.config["JWT_TOKEN_LOCATION"] = ["cookies", "headers"]
    app.config["JWT_ACCESS_COOKIE_NAME"] = "token"
    app.config["JWT_HEADER_NAME"] = "Authorization"
    app.config["JWT_HEADER_TYPE"] = "Bearer"
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(days=7)
    app.config["JWT_COOKIE_SECURE"] = _flag("JWT_COOKIE_SECURE")
    app.config["JWT_COOKIE_SAMESITE"] = os.getenv("JWT_COOKIE_SAMESITE", "Lax")
    app.config["JWT_COOKIE_CSRF_PROTECT"] = _flag("JWT_COOKIE_CSRF_PROTECT")
    app.config["JWT_SESSION_COOKIE"] = False

    if overrides:
        app.config.update(overrides)

    jwt = JWTManager(app)
    CORS(app, origins=[app.config["FRONTEND_URL"]], supports_credentials=True)
    _register_error_handlers(app, jwt)

    app.register_blueprint(core)
    app.register_blueprint(auth_bp)
    app.register_blueprint(shops)
    app.register_blueprint(campaigns)
    app.register_blueprint(rewards)
    app.register_blueprint(donations_bp)
    app.register_blueprint(admin_bp)

    log.debug("url map: %s", [str(r) for r in app.url_map.iter_rules()])

    register_metric_subscribers()
    init_socketio(app)
    return app
