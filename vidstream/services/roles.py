from functools import wraps
from typing import Callable, Optional
from flask import session, abort

from vidstream.db import get_session
from vidstream.models.user import User

# Order defines ">=" privileges
ROLE_ORDER = ["user", "admin"]
DEFAULT_ROLE = "user"

def _normalize_role(v: Optional[str]) -> str:
    if not v:
        return DEFAULT_ROLE
    v = str(v).strip().lower()
    if v not in ROLE_ORDER:
        return DEFAULT_ROLE
    return v

def current_user() -> Optional[dict]:
    """The user summary stored at login, or None."""
    return session.get("user") or None

def get_current_role() -> Optional[str]:
    """
    Role of the logged-in user as stored on the account right now, so a
    demotion takes effect without a new login. None if there is no user.
    """
    summary = current_user()
    if not summary:
        return None
    db = get_session()
    try:
        user = db.get(User, summary.get("id"))
        return _normalize_role(user.role) if user else None
    finally:
        db.close()

def has_role(required: str, role: Optional[str] = None) -> bool:
    """True if the role (default: the current one) is >= the required one."""
    role = _normalize_role(role if role is not None else get_current_role())
    return ROLE_ORDER.index(role) >= ROLE_ORDER.index(_normalize_role(required))

def login_required(fn: Callable) -> Callable:
    """Route needs a live session, otherwise 401."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_user():
            abort(401, description="Unauthorized")
        return fn(*args, **kwargs)
    return wrapper

def require_role(required: str) -> Callable:
    """Decorator: 401 without session or account, 403 if role < required."""
    def decorator(fn: Callable) -> Callable:
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not current_user():
                abort(401, description="Unauthorized")
            role = get_current_role()
            if role is None:
                abort(401, description="Unauthorized")
            if not has_role(required, role):
                abort(403, description="Forbidden")
            return fn(*args, **kwargs)
        return wrapper
    return decorator

admin_required = require_role("admin")
