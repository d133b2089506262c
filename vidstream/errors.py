# vidstream/errors.py
from __future__ import annotations
import logging
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

log = logging.getLogger(__name__)


class OAuthError(Exception):
    """A provider rejected a token/code or could not be reached."""


def error_response(message: str, status: int):
    return jsonify({"ok": False, "message": message}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        # abort(401, description="...") keeps its text, plain abort(404) gets the status name
        message = e.description if e.description and e.description != type(e).description else e.name
        return error_response(message, e.code or 500)

    @app.errorhandler(Exception)
    def unexpected_error(e: Exception):
        log.exception("unhandled error: %s", e)
        return error_response("Internal server error", 500)
