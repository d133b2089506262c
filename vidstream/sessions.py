# vidstream/sessions.py
"""
Server-side sessions for Flask.

Flask's default session is a signed cookie that carries the whole payload.
Here the cookie only carries an opaque session id; the payload lives in the
``sessions`` table. That id is what the GitHub callback hands to the app via
the deep link, and deleting the row logs the client out everywhere.
"""
from __future__ import annotations
import json
import logging
import secrets
from datetime import datetime, timezone

from flask.sessions import SessionInterface, SessionMixin
from sqlalchemy import delete
from werkzeug.datastructures import CallbackDict

from vidstream.db import get_session
from vidstream.models.stored_session import StoredSession

log = logging.getLogger(__name__)

SID_BYTES = 32


def new_sid() -> str:
    return secrets.token_urlsafe(SID_BYTES)


class ServerSession(CallbackDict, SessionMixin):
    def __init__(self, initial=None, sid: str | None = None, new: bool = False):
        def on_update(self):
            self.modified = True
        super().__init__(initial, on_update)
        self.sid = sid or new_sid()
        self.new = new
        self.modified = False
        self.previous_sid: str | None = None

    def regenerate(self) -> None:
        """Moves the payload to a fresh id; the old row is dropped on save."""
        if self.previous_sid is None:
            self.previous_sid = self.sid
        self.sid = new_sid()
        self.modified = True


class SqlSessionInterface(SessionInterface):
    session_class = ServerSession

    def open_session(self, app, request):
        sid = request.cookies.get(self.get_cookie_name(app))
        if sid:
            data = load_session_data(sid)
            if data is not None:
                return self.session_class(data, sid=sid)
        return self.session_class(new=True)

    def save_session(self, app, session, response):
        name = self.get_cookie_name(app)
        domain = self.get_cookie_domain(app)
        path = self.get_cookie_path(app)

        if session.previous_sid:
            delete_session(session.previous_sid)
            session.previous_sid = None

        if not session:
            # cleared (logout) or never used: drop row and cookie
            if session.modified:
                delete_session(session.sid)
                response.delete_cookie(name, domain=domain, path=path)
            return

        if not self.should_set_cookie(app, session):
            return

        expires = self.get_expiration_time(app, session)
        if expires is not None:
            stored_until = _naive_utc(expires)
        else:
            stored_until = datetime.utcnow() + app.permanent_session_lifetime
        user = session.get("user") or {}
        store_session_data(session.sid, dict(session), user.get("id"), stored_until)

        response.set_cookie(
            name,
            session.sid,
            expires=expires,
            httponly=self.get_cookie_httponly(app),
            domain=domain,
            path=path,
            secure=self.get_cookie_secure(app),
            samesite=self.get_cookie_samesite(app),
        )


# -------------------------------------------------
# Store helpers
# -------------------------------------------------
def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def load_session_data(sid: str) -> dict | None:
    """Returns the payload of a live session, or None if unknown/expired."""
    db = get_session()
    try:
        row = db.get(StoredSession, sid)
        if not row:
            return None
        if row.expires_at <= datetime.utcnow():
            db.delete(row)
            db.commit()
            return None
        try:
            return json.loads(row.data or "{}")
        except ValueError:
            log.warning("discarding unreadable session payload")
            return None
    finally:
        db.close()


def store_session_data(sid: str, data: dict, user_id: int | None, expires_at: datetime) -> None:
    db = get_session()
    try:
        row = db.get(StoredSession, sid)
        if row is None:
            row = StoredSession(sid=sid)
            db.add(row)
        row.data = json.dumps(data, separators=(",", ":"))
        row.user_id = user_id
        row.expires_at = expires_at
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def delete_session(sid: str) -> None:
    db = get_session()
    try:
        db.execute(delete(StoredSession).where(StoredSession.sid == sid))
        db.commit()
    finally:
        db.close()


def purge_expired(now: datetime | None = None) -> int:
    """Deletes expired rows; returns how many were removed."""
    now = now or datetime.utcnow()
    db = get_session()
    try:
        result = db.execute(delete(StoredSession).where(StoredSession.expires_at <= now))
        db.commit()
        return result.rowcount or 0
    finally:
        db.close()
