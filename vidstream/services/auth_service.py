# vidstream/services/auth_service.py
from __future__ import annotations
import logging
from typing import Optional
from passlib.hash import bcrypt
from sqlalchemy import select
from sqlalchemy.orm import Session
from vidstream.models.user import User

log = logging.getLogger(__name__)

PROVIDER_COLUMNS = {"google": "google_id", "github": "github_id"}

def normalize_email(email: str) -> str:
    return (email or "").strip().lower()

def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(select(User).where(User.email == normalize_email(email))).scalar_one_or_none()

def register_user(db: Session, email: str, password: str, name: Optional[str] = None) -> Optional[User]:
    """
    Creates a password account. Returns None if the email is taken,
    nothing is written in that case.
    """
    if find_user_by_email(db, email):
        return None
    u = User(
        email=normalize_email(email),
        name=(name or "").strip() or None,
        password_hash=bcrypt.hash(password),
        subscribed=True,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    log.info("registered user %s", u.id)
    return u

def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    """User on matching credentials, else None (also for OAuth-only accounts)."""
    u = find_user_by_email(db, email)
    if not u or not u.password_hash:
        return None
    if not bcrypt.verify(password, u.password_hash):
        return None
    return u

def find_or_link_oauth_user(db: Session, provider: str, provider_id: str, email: str) -> User:
    """
    Finds the account by email and attaches the provider id on first use,
    or creates a new subscribed account without password.
    """
    column = PROVIDER_COLUMNS[provider]
    u = find_user_by_email(db, email)
    if u is None:
        u = User(email=normalize_email(email), subscribed=True, **{column: provider_id})
        db.add(u)
        db.commit()
        db.refresh(u)
        log.info("created %s user %s", provider, u.id)
        return u
    if not getattr(u, column):
        setattr(u, column, provider_id)
        db.commit()
        log.info("linked %s id to user %s", provider, u.id)
    return u

def create_admin(db: Session, email: str, password: str) -> User:
    """Creates the admin account, or promotes and re-keys an existing one."""
    u = find_user_by_email(db, email)
    if u is None:
        u = User(email=normalize_email(email), subscribed=True)
        db.add(u)
    u.password_hash = bcrypt.hash(password)
    u.role = "admin"
    db.commit()
    db.refresh(u)
    return u
