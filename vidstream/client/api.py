# vidstream/client/api.py
"""
HTTP client for the vidstream backend.

One ``requests.Session`` holds the session cookie, so after ``login`` (or
``adopt_session`` with the id from the GitHub deep link) every call is
authenticated. Non-2xx answers raise ``ApiError`` carrying the server's
message.
"""
from __future__ import annotations
from typing import Any, Iterable, Optional
from urllib.parse import parse_qs, urlparse

import requests

SESSION_COOKIE = "vidstream_session"
DEFAULT_TIMEOUT = 10


class ApiError(Exception):
    def __init__(self, status: Optional[int], message: str):
        super().__init__(message)
        self.status = status
        self.message = message

    @property
    def unauthorized(self) -> bool:
        return self.status == 401

    def __repr__(self) -> str:
        return f"ApiError({self.status!r}, {self.message!r})"


def parse_auth_redirect(url: str) -> tuple[bool, Optional[str]]:
    """``scheme://auth?success=true&session=abc`` -> (True, "abc")."""
    query = parse_qs(urlparse(url).query)
    success = (query.get("success") or ["false"])[0].lower() == "true"
    session_id = (query.get("session") or [None])[0]
    return success, session_id or None


class ApiClient:
    def __init__(self, base_url: str, timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    # ────────────────────────────────────────────────────────────────
    # Internal
    # ────────────────────────────────────────────────────────────────
    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            resp = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise ApiError(None, str(exc)) from exc

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.ok:
            message = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("error")
            raise ApiError(resp.status_code, message or resp.reason or f"HTTP {resp.status_code}")
        return body

    # ────────────────────────────────────────────────────────────────
    # Auth
    # ────────────────────────────────────────────────────────────────
    def register(self, email: str, password: str, name: Optional[str] = None) -> dict:
        payload = {"email": email, "password": password}
        if name:
            payload["name"] = name
        return self._request("POST", "/auth/register", json=payload)

    def login(self, email: str, password: str) -> dict:
        return self._request("POST", "/auth/login", json={"email": email, "password": password})

    def google_login(self, id_token: str) -> dict:
        return self._request("POST", "/auth/google", json={"idToken": id_token})

    def logout(self) -> dict:
        return self._request("POST", "/auth/logout")

    def me(self) -> dict:
        return self._request("GET", "/auth/me")["user"]

    def adopt_session(self, session_id: str) -> None:
        """Use a session established elsewhere (GitHub browser flow)."""
        self.http.cookies.set(SESSION_COOKIE, session_id, path="/")

    # ────────────────────────────────────────────────────────────────
    # Content
    # ────────────────────────────────────────────────────────────────
    def list_tags(self) -> list[dict]:
        return self._request("GET", "/tags")["tags"]

    def list_movies(self, tag: Optional[str] = None, tag_ids: Optional[Iterable[int]] = None,
                    search: Optional[str] = None, match: Optional[str] = None) -> list[dict]:
        params: dict[str, str] = {}
        if tag_ids:
            params["tags"] = ",".join(str(i) for i in tag_ids)
        if tag:
            params["tag"] = tag
        if search:
            params["search"] = search
        if match:
            params["match"] = match
        return self._request("GET", "/movies", params=params)["movies"]

    def featured_movies(self) -> list[dict]:
        return self._request("GET", "/movies/featured")["movies"]

    def movie_details(self, movie_id: int) -> dict:
        return self._request("GET", f"/movies/{int(movie_id)}")["movie"]

    def stream_url(self, movie_id: int) -> dict:
        return self._request("GET", f"/stream/{int(movie_id)}")

    def add_movie(self, title: str, video_url: str, tags: Iterable[str] = (), **fields) -> dict:
        payload = {"title": title, "video_url": video_url, "tags": list(tags), **fields}
        return self._request("POST", "/movies", json=payload)["movie"]
