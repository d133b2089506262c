from datetime import datetime, timedelta
from urllib.parse import parse_qs, urlparse

from sqlalchemy import func, select

from vidstream.blueprints.auth import routes as auth_routes
from vidstream.db import session_scope
from vidstream.errors import OAuthError
from vidstream.models.stored_session import StoredSession
from vidstream.models.user import User
from vidstream.services.oauth_service import ProviderIdentity

PASSWORD = "s3cret-pass"


def user_count() -> int:
    with session_scope() as db:
        return db.execute(select(func.count(User.id))).scalar_one()


class TestRegister:
    """POST /auth/register."""

    def test_register_starts_session(self, client):
        response = client.post(
            "/auth/register",
            json={"email": "New@Example.com", "password": "pw123456", "name": "New"},
        )
        assert response.status_code == 200
        data = response.get_json()
        assert data["subscribed"] is True
        assert data["session"]
        # cookie works right away
        assert client.get("/auth/me").get_json()["user"]["email"] == "new@example.com"

    def test_missing_fields(self, client):
        assert client.post("/auth/register", json={"email": "a@b.c"}).status_code == 400
        assert client.post("/auth/register", json={"password": "x"}).status_code == 400
        assert client.post("/auth/register", data="not json").status_code == 400

    def test_duplicate_email_rejected(self, client, user):
        response = client.post(
            "/auth/register",
            json={"email": "VIEWER@example.com", "password": "other-pass"},
        )
        assert response.status_code == 400
        assert response.get_json()["message"] == "User already exists"
        assert user_count() == 1


class TestLogin:
    """POST /auth/login and the session it creates."""

    def test_login_returns_session_and_subscription(self, client, user):
        response = client.post("/auth/login", json={"email": user["email"], "password": PASSWORD})
        assert response.status_code == 200
        data = response.get_json()
        assert data["ok"] is True
        assert data["subscribed"] is True
        assert data["session"]

    def test_session_cookie_carries_only_the_id(self, client, user):
        response = client.post("/auth/login", json={"email": user["email"], "password": PASSWORD})
        sid = response.get_json()["session"]
        cookie = client.get_cookie("vidstream_session")
        assert cookie is not None and cookie.value == sid
        with session_scope() as db:
            row = db.get(StoredSession, sid)
            assert row.user_id == user["id"]

    def test_login_rotates_pre_login_session_id(self, app, client, user):
        client.get("/auth/github")
        before = client.get_cookie("vidstream_session").value
        with session_scope() as db:
            assert db.get(StoredSession, before) is not None

        response = client.post("/auth/login", json={"email": user["email"], "password": PASSWORD})
        after = response.get_json()["session"]
        assert after != before
        assert client.get_cookie("vidstream_session").value == after
        with session_scope() as db:
            assert db.get(StoredSession, before) is None

        # whoever planted the old id gets nothing
        planted = app.test_client()
        planted.set_cookie("vidstream_session", before)
        assert planted.get("/tags").status_code == 401
        assert client.get("/tags").status_code == 200

    def test_relogin_issues_new_id(self, auth_client, user):
        first = auth_client.get_cookie("vidstream_session").value
        response = auth_client.post("/auth/login", json={"email": user["email"], "password": PASSWORD})
        assert response.get_json()["session"] != first

    def test_wrong_password(self, client, user):
        response = client.post("/auth/login", json={"email": user["email"], "password": "nope"})
        assert response.status_code == 401
        assert response.get_json()["message"] == "Invalid credentials"
        assert client.get("/movies").status_code == 401

    def test_unknown_email(self, client):
        response = client.post("/auth/login", json={"email": "ghost@example.com", "password": "x"})
        assert response.status_code == 401

    def test_oauth_only_account_cannot_password_login(self, client):
        with session_scope() as db:
            db.add(User(email="gh@example.com", github_id="77", subscribed=True))
        response = client.post("/auth/login", json={"email": "gh@example.com", "password": "x"})
        assert response.status_code == 401

    def test_lockout_after_repeated_failures(self, client, user):
        for _ in range(5):
            client.post("/auth/login", json={"email": user["email"], "password": "bad"})
        response = client.post("/auth/login", json={"email": user["email"], "password": PASSWORD})
        assert response.status_code == 429

    def test_success_clears_failures(self, client, user):
        for _ in range(4):
            client.post("/auth/login", json={"email": user["email"], "password": "bad"})
        assert client.post("/auth/login", json={"email": user["email"], "password": PASSWORD}).status_code == 200
        assert auth_routes._ATTEMPTS == {}

    def test_stale_attempts_are_dropped(self, app):
        key = ("10.0.0.1", "x@example.com")
        with app.test_request_context():
            assert not auth_routes._is_locked(*key)
            assert auth_routes._ATTEMPTS == {}

            auth_routes._register_fail(*key)
            auth_routes._ATTEMPTS[key][0] -= 3600
            assert not auth_routes._is_locked(*key)
            assert key not in auth_routes._ATTEMPTS


class TestLogoutAndExpiry:
    def test_logout_invalidates_server_side(self, app, auth_client):
        sid = auth_client.get_cookie("vidstream_session").value
        assert auth_client.post("/auth/logout").status_code == 200
        assert auth_client.get("/tags").status_code == 401

        # replaying the old cookie does not bring the session back
        other = app.test_client()
        other.set_cookie("vidstream_session", sid)
        assert other.get("/tags").status_code == 401
        with session_scope() as db:
            assert db.get(StoredSession, sid) is None

    def test_expired_session_is_rejected(self, auth_client):
        sid = auth_client.get_cookie("vidstream_session").value
        with session_scope() as db:
            db.get(StoredSession, sid).expires_at = datetime.utcnow() - timedelta(minutes=1)
        assert auth_client.get("/tags").status_code == 401

    def test_requests_do_not_extend_the_session(self, auth_client):
        sid = auth_client.get_cookie("vidstream_session").value
        with session_scope() as db:
            expires_at = db.get(StoredSession, sid).expires_at

        response = auth_client.get("/tags")
        assert response.status_code == 200
        assert "Set-Cookie" not in response.headers
        with session_scope() as db:
            assert db.get(StoredSession, sid).expires_at == expires_at

    def test_me_requires_session(self, client):
        assert client.get("/auth/me").status_code == 401


class TestGoogleLogin:
    """POST /auth/google with the verifier stubbed out."""

    def test_missing_token(self, client):
        response = client.post("/auth/google", json={})
        assert response.status_code == 400
        assert response.get_json()["message"] == "ID Token missing"

    def test_invalid_token(self, client, monkeypatch):
        def reject(token, client_id):
            raise OAuthError("bad signature")
        monkeypatch.setattr(auth_routes, "verify_google_id_token", reject)
        response = client.post("/auth/google", json={"idToken": "garbage"})
        assert response.status_code == 401
        assert response.get_json()["message"] == "Invalid Google Token"

    def test_links_existing_account(self, client, user, monkeypatch):
        seen = {}

        def accept(token, client_id):
            seen["client_id"] = client_id
            return ProviderIdentity("google", "g-123", "viewer@example.com")
        monkeypatch.setattr(auth_routes, "verify_google_id_token", accept)

        response = client.post("/auth/google", json={"idToken": "tok"})
        assert response.status_code == 200
        assert seen["client_id"] == "test-google-client"
        assert user_count() == 1
        with session_scope() as db:
            assert db.get(User, user["id"]).google_id == "g-123"
        assert client.get("/tags").status_code == 200

    def test_creates_new_subscribed_account(self, client, monkeypatch):
        monkeypatch.setattr(
            auth_routes, "verify_google_id_token",
            lambda token, client_id: ProviderIdentity("google", "g-9", "fresh@example.com"),
        )
        data = client.post("/auth/google", json={"idToken": "tok"}).get_json()
        assert data["subscribed"] is True
        with session_scope() as db:
            u = db.execute(select(User).where(User.email == "fresh@example.com")).scalar_one()
            assert u.password_hash is None
            assert u.google_id == "g-9"


class TestGithubLogin:
    """Browser flow ending in the app deep link."""

    def _start(self, client):
        response = client.get("/auth/github")
        assert response.status_code == 302
        location = urlparse(response.headers["Location"])
        assert location.netloc == "github.com"
        query = parse_qs(location.query)
        assert query["client_id"] == ["gh-client"]
        assert query["scope"] == ["user:email"]
        return query["state"][0]

    def test_bad_state_redirects_with_failure(self, client):
        self._start(client)
        response = client.get("/auth/github/callback?code=abc&state=forged")
        assert response.status_code == 302
        assert response.headers["Location"] == "vidstream://auth?success=false"

    def test_callback_without_prior_redirect(self, client):
        response = client.get("/auth/github/callback?code=abc&state=whatever")
        assert response.headers["Location"] == "vidstream://auth?success=false"

    def test_provider_failure(self, client, monkeypatch):
        state = self._start(client)

        def fail(*args, **kwargs):
            raise OAuthError("bad_verification_code")
        monkeypatch.setattr(auth_routes, "exchange_github_code", fail)
        response = client.get(f"/auth/github/callback?code=abc&state={state}")
        assert response.headers["Location"] == "vidstream://auth?success=false"

    def test_success_hands_session_to_app(self, app, client, user, monkeypatch):
        state = self._start(client)
        monkeypatch.setattr(auth_routes, "exchange_github_code", lambda *a, **k: "gh-token")
        monkeypatch.setattr(
            auth_routes, "fetch_github_identity",
            lambda token: ProviderIdentity("github", "4242", "viewer@example.com"),
        )

        response = client.get(f"/auth/github/callback?code=abc&state={state}")
        location = urlparse(response.headers["Location"])
        assert location.scheme == "vidstream"
        query = parse_qs(location.query)
        assert query["success"] == ["true"]
        sid = query["session"][0]

        # the app only has the id from the deep link
        device = app.test_client()
        device.set_cookie("vidstream_session", sid)
        assert device.get("/auth/me").get_json()["user"]["id"] == user["id"]
        with session_scope() as db:
            assert db.get(User, user["id"]).github_id == "4242"
