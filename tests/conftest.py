import pytest

from vidstream import create_app
from vidstream.blueprints.auth import routes as auth_routes
from vidstream.db import session_scope
from vidstream.services.auth_service import create_admin, register_user
from vidstream.services.movie_service import create_movie
from vidstream.services.tag_service import ensure_tags

PASSWORD = "s3cret-pass"


@pytest.fixture
def app(tmp_path):
    """App on a throwaway SQLite file."""
    app = create_app({
        "TESTING": True,
        "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
        "FEATURED_MOVIE_IDS": [1, 2, 3, 4],
        "GOOGLE_CLIENT_ID": "test-google-client",
        "GITHUB_CLIENT_ID": "gh-client",
        "GITHUB_CLIENT_SECRET": "gh-secret",
        "GITHUB_CALLBACK_URL": "http://localhost/auth/github/callback",
        "APP_DEEP_LINK": "vidstream://auth",
        "ENABLE_DEBUG_ROUTES": True,
    })
    auth_routes._ATTEMPTS.clear()
    yield app
    auth_routes._ATTEMPTS.clear()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user(app):
    """A subscribed password account."""
    with session_scope() as db:
        u = register_user(db, "viewer@example.com", PASSWORD, name="Viewer")
        return {"id": u.id, "email": u.email}


@pytest.fixture
def auth_client(client, user):
    """Test client holding a logged-in session cookie."""
    resp = client.post("/auth/login", json={"email": user["email"], "password": PASSWORD})
    assert resp.status_code == 200
    return client


@pytest.fixture
def admin_client(app):
    with session_scope() as db:
        create_admin(db, "admin@example.com", PASSWORD)
    c = app.test_client()
    resp = c.post("/auth/login", json={"email": "admin@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    return c


@pytest.fixture
def catalog(app):
    """
    Five movies over three tags:

    1 Night Chase   Action
    2 Quiet Hearts  Drama
    3 Laugh Track   Comedy
    4 Heat Wave     Action, Drama
    5 Untagged Doc  (none)
    """
    with session_scope() as db:
        tags = {t.name: t.id for t in ensure_tags(db, ["Action", "Drama", "Comedy"])}
        db.commit()
        movies = {}
        for title, description, names in [
            ("Night Chase", "A detective hunts a killer through the city", ["Action"]),
            ("Quiet Hearts", "A DRAMA about family and loss", ["Drama"]),
            ("Laugh Track", "Stand-up comedy special", ["Comedy"]),
            ("Heat Wave", "Action packed drama in the desert", ["Action", "Drama"]),
            ("Untagged Doc", "100% real footage", []),
        ]:
            m = create_movie(
                db, title, f"https://cdn.example.com/{title.replace(' ', '_').lower()}.m3u8",
                description=description, category="Movies", tags=names,
            )
            movies[title] = m.id
    return {"tags": tags, "movies": movies}

