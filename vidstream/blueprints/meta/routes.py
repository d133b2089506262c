from flask import Blueprint, jsonify
from vidstream.db import get_session
from vidstream.services.movie_service import list_movie_titles

meta_bp = Blueprint("meta", __name__, url_prefix="")

@meta_bp.get("/health")
def health():
    return jsonify({"status": "ok"}), 200

# registered only with ENABLE_DEBUG_ROUTES
debug_bp = Blueprint("debug", __name__, url_prefix="/debug")

@debug_bp.get("/movies")
def debug_movies():
    db = get_session()
    try:
        return jsonify({"ok": True, "movies": list_movie_titles(db)})
    finally:
        db.close()
