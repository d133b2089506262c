# vidstream/client/repositories.py
"""
Screen-facing data access. Lists degrade to ``[]`` and single lookups to
``None`` so a failed request renders as an empty screen; auth calls return an
``AuthResult`` whose message can be shown to the user as-is.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from vidstream.client.api import ApiClient, ApiError, parse_auth_redirect

log = logging.getLogger(__name__)


@dataclass
class AuthResult:
    ok: bool
    message: str
    subscribed: bool = False


def _user_message(exc: ApiError) -> str:
    if exc.status is None:
        return "Could not reach the server. Check your connection."
    return exc.message or "Unknown error"


class AuthRepository:
    def __init__(self, api: ApiClient):
        self.api = api

    def _run(self, call, *args) -> AuthResult:
        try:
            body = call(*args)
        except ApiError as exc:
            log.info("auth call failed: %r", exc)
            return AuthResult(False, _user_message(exc))
        return AuthResult(True, body.get("message") or "", bool(body.get("subscribed")))

    def login(self, email: str, password: str) -> AuthResult:
        return self._run(self.api.login, email, password)

    def signup(self, email: str, password: str, name: Optional[str] = None) -> AuthResult:
        return self._run(self.api.register, email, password, name)

    def google_login(self, id_token: str) -> AuthResult:
        return self._run(self.api.google_login, id_token)

    def verify_session(self) -> AuthResult:
        """Confirms the cookie works by calling a protected endpoint."""
        try:
            user = self.api.me()
        except ApiError as exc:
            return AuthResult(False, _user_message(exc))
        return AuthResult(True, "Session verified", bool(user.get("subscribed")))

    def complete_github_login(self, redirect_url: str) -> AuthResult:
        success, session_id = parse_auth_redirect(redirect_url)
        if not success or not session_id:
            return AuthResult(False, "GitHub login failed")
        self.api.adopt_session(session_id)
        return self.verify_session()

    def logout(self) -> None:
        try:
            self.api.logout()
        except ApiError as exc:
            log.info("logout failed: %r", exc)


class FeedRepository:
    def __init__(self, api: ApiClient):
        self.api = api

    def featured_movies(self) -> list[dict]:
        try:
            return self.api.featured_movies()
        except ApiError as exc:
            log.warning("featured movies unavailable: %r", exc)
            return []

    def tags(self) -> list[dict]:
        try:
            return self.api.list_tags()
        except ApiError as exc:
            log.warning("tags unavailable: %r", exc)
            return []

    def movies_by_tag(self, tag: str) -> list[dict]:
        try:
            return self.api.list_movies(tag=tag)
        except ApiError as exc:
            log.warning("movies for tag %r unavailable: %r", tag, exc)
            return []

    def movie_details(self, movie_id: int) -> Optional[dict]:
        try:
            return self.api.movie_details(movie_id)
        except ApiError as exc:
            log.warning("movie %s unavailable: %r", movie_id, exc)
            return None

    def stream_url(self, movie_id: int) -> Optional[str]:
        try:
            return self.api.stream_url(movie_id)["video_url"]
        except ApiError as exc:
            log.warning("no stream for movie %s: %r", movie_id, exc)
            return None


class SearchRepository:
    def __init__(self, api: ApiClient):
        self.api = api

    def tags(self) -> list[dict]:
        try:
            return self.api.list_tags()
        except ApiError as exc:
            log.warning("tags unavailable: %r", exc)
            return []

    def search(self, query: Optional[str] = None, tag_ids: Iterable[int] = (),
               match_all: bool = False) -> list[dict]:
        tag_ids = list(tag_ids)
        query = (query or "").strip() or None
        try:
            return self.api.list_movies(
                tag_ids=tag_ids or None,
                search=query,
                match="all" if match_all and tag_ids else None,
            )
        except ApiError as exc:
            log.warning("search failed: %r", exc)
            return []
