import logging
import secrets
from time import time
from urllib.parse import urlencode

from flask import Blueprint, request, redirect, session, jsonify, current_app

from vidstream.db import get_session
from vidstream.errors import OAuthError, error_response
from vidstream.models.user import User
from vidstream.services.auth_service import (
    authenticate,
    find_or_link_oauth_user,
    register_user,
)
from vidstream.services.oauth_service import (
    exchange_github_code,
    fetch_github_identity,
    github_authorize_url,
    verify_google_id_token,
)
from vidstream.services.roles import current_user, login_required

log = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

# --- simple in-memory attempt counter (per process) ---
_ATTEMPTS: dict[tuple[str, str], list[float]] = {}
MAX_ATTEMPTS = 5          # max 5 failures ...
WINDOW_SECONDS = 10 * 60  # ... per 10 minutes

def _client_ip() -> str:
    # behind a proxy: honour X-Forwarded-For (simplest variant)
    fwd = request.headers.get("X-Forwarded-For")
    if fwd:
        return fwd.split(",")[0].strip()
    return request.remote_addr or "unknown"

def _limits() -> tuple[int, int]:
    cfg = current_app.config
    return cfg.get("LOGIN_MAX_ATTEMPTS", MAX_ATTEMPTS), cfg.get("LOGIN_WINDOW_SECONDS", WINDOW_SECONDS)

def _is_locked(ip: str, email: str) -> bool:
    max_attempts, window = _limits()
    key = (ip, email.lower())
    now = time()
    # drop old entries
    attempts = [t for t in _ATTEMPTS.get(key, []) if now - t <= window]
    if attempts:
        _ATTEMPTS[key] = attempts
    else:
        _ATTEMPTS.pop(key, None)
    return len(attempts) >= max_attempts

def _register_fail(ip: str, email: str) -> None:
    _ATTEMPTS.setdefault((ip, email.lower()), []).append(time())

def _clear_attempts(ip: str, email: str) -> None:
    _ATTEMPTS.pop((ip, email.lower()), None)

# === Helpers ===
def _start_session(user: User) -> str:
    """Binds the session to the user; returns the opaque session id."""
    session.clear()
    # new id on every login, a pre-login cookie never becomes authenticated
    session.regenerate()
    session.permanent = True  # uses PERMANENT_SESSION_LIFETIME
    session["user"] = {"id": user.id, "email": user.email, "role": user.role}
    return session.sid

def _auth_payload(message: str, user: User, sid: str):
    return jsonify({
        "ok": True,
        "message": message,
        "subscribed": user.subscribed,
        "session": sid,
    })

def _credentials():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")
    email = email.strip() if isinstance(email, str) else ""
    password = password if isinstance(password, str) else ""
    return data, email, password

def _deep_link(**params) -> str:
    base = current_app.config["APP_DEEP_LINK"]
    return f"{base}?{urlencode(params)}"

# === Register / Login / Logout ===
@auth_bp.post("/register")
def register():
    data, email, password = _credentials()
    if not email or not password:
        return error_response("Email and password required", 400)

    db = get_session()
    try:
        user = register_user(db, email, password, name=data.get("name") if isinstance(data.get("name"), str) else None)
        if user is None:
            return error_response("User already exists", 400)
        sid = _start_session(user)
        return _auth_payload("User registered", user, sid)
    finally:
        db.close()

@auth_bp.post("/login")
def login():
    _data, email, password = _credentials()
    ip = _client_ip()

    if _is_locked(ip, email):
        log.warning("login locked for %s", ip)
        return error_response("Too many failed attempts, try again later", 429)

    db = get_session()
    try:
        user = authenticate(db, email, password) if email and password else None
        if not user:
            _register_fail(ip, email)
            log.info("failed login from %s", ip)
            return error_response("Invalid credentials", 401)
        _clear_attempts(ip, email)
        sid = _start_session(user)
        log.info("user %s logged in", user.id)
        return _auth_payload("Login successful", user, sid)
    finally:
        db.close()

@auth_bp.post("/logout")
def logout():
    session.clear()
    return jsonify({"ok": True, "message": "Logged out"})

@auth_bp.get("/me")
@login_required
def me():
    db = get_session()
    try:
        user = db.get(User, current_user()["id"])
        if not user:
            # account deleted while the session lived on
            session.clear()
            return error_response("Unauthorized", 401)
        return jsonify({"ok": True, "user": user.summary()})
    finally:
        db.close()

# === Google sign-in (ID token from the device) ===
@auth_bp.post("/google")
def google_login():
    data = request.get_json(silent=True) or {}
    token = data.get("idToken")
    if not token or not isinstance(token, str):
        return error_response("ID Token missing", 400)

    try:
        identity = verify_google_id_token(token, current_app.config.get("GOOGLE_CLIENT_ID"))
    except OAuthError as e:
        log.warning("google login rejected: %s", e)
        return error_response("Invalid Google Token", 401)

    db = get_session()
    try:
        user = find_or_link_oauth_user(db, "google", identity.provider_id, identity.email)
        sid = _start_session(user)
        log.info("google login for user %s", user.id)
        return _auth_payload("Google login successful", user, sid)
    finally:
        db.close()

# === GitHub OAuth (browser flow, ends in the app deep link) ===
@auth_bp.get("/github")
def github_login():
    client_id = current_app.config.get("GITHUB_CLIENT_ID")
    if not client_id:
        return error_response("GitHub login not configured", 500)
    state = secrets.token_urlsafe(16)
    session["github_state"] = state
    return redirect(github_authorize_url(client_id, current_app.config.get("GITHUB_CALLBACK_URL"), state))

@auth_bp.get("/github/callback")
def github_callback():
    expected = session.pop("github_state", None)
    state = request.args.get("state")
    code = request.args.get("code")
    if not code or not expected or not state or not secrets.compare_digest(state, expected):
        log.warning("github callback with missing code or bad state")
        return redirect(_deep_link(success="false"))

    cfg = current_app.config
    try:
        token = exchange_github_code(
            cfg.get("GITHUB_CLIENT_ID") or "", cfg.get("GITHUB_CLIENT_SECRET") or "",
            code, cfg.get("GITHUB_CALLBACK_URL"),
        )
        identity = fetch_github_identity(token)
    except OAuthError as e:
        log.warning("github login failed: %s", e)
        return redirect(_deep_link(success="false"))

    db = get_session()
    try:
        user = find_or_link_oauth_user(db, "github", identity.provider_id, identity.email)
        sid = _start_session(user)
        log.info("github login for user %s", user.id)
        return redirect(_deep_link(success="true", session=sid))
    finally:
        db.close()
