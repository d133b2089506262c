from flask import Flask

from vidstream.blueprints.api.routes import api_bp
from vidstream.blueprints.auth.routes import auth_bp
from vidstream.blueprints.meta.routes import debug_bp, meta_bp


def register_blueprints(app: Flask) -> None:
    app.register_blueprint(meta_bp)    # /health
    app.register_blueprint(auth_bp)    # /auth/...
    app.register_blueprint(api_bp)     # /tags, /movies, /stream
    if app.config.get("ENABLE_DEBUG_ROUTES"):
        app.register_blueprint(debug_bp)
