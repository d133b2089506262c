import logging
import os
from datetime import timedelta
from flask import Flask
from dotenv import load_dotenv

from vidstream.db import init_db, DEFAULT_DB_PATH
from vidstream.blueprints import register_blueprints
from vidstream.cli import register_commands
from vidstream.errors import register_error_handlers
from vidstream.services.movie_service import parse_id_list
from vidstream.sessions import SqlSessionInterface


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def create_app(overrides: dict | None = None) -> Flask:
    load_dotenv()
    app = Flask(__name__)

    # Secrets / DB
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret-change-me")
    app.config["DATABASE_URL"] = os.getenv("DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}")

    # Session cookie: opaque id, payload stays server-side
    app.config.update(
        SESSION_COOKIE_NAME="vidstream_session",
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=_env_flag("SESSION_COOKIE_SECURE"),
        PERMANENT_SESSION_LIFETIME=timedelta(days=int(os.getenv("SESSION_LIFETIME_DAYS", "7"))),
        # fixed lifetime from login, no rolling refresh
        SESSION_REFRESH_EACH_REQUEST=False,
    )

    # Login throttle
    app.config["LOGIN_MAX_ATTEMPTS"] = int(os.getenv("LOGIN_MAX_ATTEMPTS", "5"))
    app.config["LOGIN_WINDOW_SECONDS"] = int(os.getenv("LOGIN_WINDOW_SECONDS", "600"))

    # OAuth providers
    app.config["GOOGLE_CLIENT_ID"] = os.getenv("GOOGLE_CLIENT_ID", "")
    app.config["GITHUB_CLIENT_ID"] = os.getenv("GITHUB_CLIENT_ID", "")
    app.config["GITHUB_CLIENT_SECRET"] = os.getenv("GITHUB_CLIENT_SECRET", "")
    app.config["GITHUB_CALLBACK_URL"] = os.getenv("GITHUB_CALLBACK_URL", "")
    app.config["APP_DEEP_LINK"] = os.getenv("APP_DEEP_LINK", "vidstream://auth")

    # Content
    app.config["FEATURED_MOVIE_IDS"] = parse_id_list(os.getenv("FEATURED_MOVIE_IDS", "1,2,3,4"))
    app.config["ENABLE_DEBUG_ROUTES"] = _env_flag("ENABLE_DEBUG_ROUTES")
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO").upper()

    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    init_db(app.config["DATABASE_URL"])

    app.session_interface = SqlSessionInterface()
    register_error_handlers(app)
    register_blueprints(app)
    register_commands(app)

    return app
