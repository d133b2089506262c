# vidstream/blueprints/api/routes.py
from __future__ import annotations
import logging
from flask import Blueprint, jsonify, request, current_app
from vidstream.db import get_session
from vidstream.errors import error_response

from vidstream.services.movie_service import (
    MATCH_ANY,
    MATCH_MODES,
    create_movie,
    get_movie,
    get_stream_info,
    list_featured_movies,
    list_movies,
    parse_id_list,
)
from vidstream.services.roles import admin_required, current_user, login_required
from vidstream.services.tag_service import list_all_tags_serialized

log = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)

# -----------------------
# Tags
# -----------------------
@api_bp.get("/tags")
@login_required
def api_list_tags():
    db = get_session()
    try:
        return jsonify({"ok": True, "tags": list_all_tags_serialized(db)})
    finally:
        db.close()

# -----------------------
# Movies (filter by tags and/or search)
# -----------------------
@api_bp.get("/movies")
@login_required
def api_list_movies():
    search = request.args.get("search") or None
    raw_tags = (request.args.get("tags") or "").strip()
    tag_ids = parse_id_list(raw_tags)
    # a given tags list disables the name filter, even when no id parses
    tag = None if raw_tags else (request.args.get("tag") or None)
    match = (request.args.get("match") or MATCH_ANY).strip().lower()
    if match not in MATCH_MODES:
        return error_response("match must be 'any' or 'all'", 400)

    log.info("movie filter: tag_ids=%s tag=%r search=%r match=%s", tag_ids, tag, search, match)
    db = get_session()
    try:
        movies = list_movies(db, search=search, tag=tag, tag_ids=tag_ids, match=match)
        log.info("found %d movies", len(movies))
        return jsonify({"ok": True, "movies": [m.to_dict() for m in movies]})
    finally:
        db.close()

@api_bp.get("/movies/featured")
@login_required
def api_featured_movies():
    db = get_session()
    try:
        movies = list_featured_movies(db, current_app.config["FEATURED_MOVIE_IDS"])
        return jsonify({"ok": True, "movies": [m.to_dict() for m in movies]})
    finally:
        db.close()

@api_bp.get("/movies/<int:movie_id>")
@login_required
def api_movie_details(movie_id: int):
    db = get_session()
    try:
        m = get_movie(db, movie_id)
        if not m:
            return error_response("Movie not found", 404)
        return jsonify({"ok": True, "movie": m.to_dict()})
    finally:
        db.close()

# -----------------------
# Admin insert
# -----------------------
def _optional_str(data: dict, key: str):
    v = data.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise ValueError(f"'{key}' must be a string")
    return v.strip() or None

@api_bp.post("/movies")
@admin_required
def api_create_movie():
    data = request.get_json(silent=True) or {}
    try:
        title = _optional_str(data, "title")
        video_url = _optional_str(data, "video_url")
        description = _optional_str(data, "description")
        thumbnail_url = _optional_str(data, "thumbnail_url")
        category = _optional_str(data, "category")
    except ValueError as e:
        return error_response(str(e), 400)
    if not title or not video_url:
        return error_response("title and video_url required", 400)
    tags = data.get("tags") or []
    if not isinstance(tags, list):
        return error_response("payload 'tags' must be a list", 400)

    db = get_session()
    try:
        m = create_movie(
            db, title, video_url,
            description=description, thumbnail_url=thumbnail_url, category=category, tags=tags,
        )
        return jsonify({"ok": True, "message": "Movie added", "movie": m.to_dict()}), 201
    finally:
        db.close()

# -----------------------
# Stream URL (session-gated)
# -----------------------
@api_bp.get("/stream/<int:movie_id>")
@login_required
def api_stream(movie_id: int):
    log.info("stream request for movie %s by user %s", movie_id, current_user()["id"])
    db = get_session()
    try:
        m, error = get_stream_info(db, movie_id)
        if error:
            log.info("stream lookup for movie %s: %s", movie_id, error)
            return error_response(error, 404)
        return jsonify({"ok": True, "video_url": m.video_url, "movie_id": m.id, "title": m.title})
    finally:
        db.close()
