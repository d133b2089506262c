# vidstream/db.py
from __future__ import annotations
import logging
import os
from pathlib import Path
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Shared declarative base of all models, do not redefine it here
from vidstream.models.base import Base

log = logging.getLogger(__name__)

# --------------------------------------------------------------------
# Path: data/vidstream.db
# --------------------------------------------------------------------
DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "data" / "vidstream.db"

DATABASE_URL = os.environ.get("DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}")

def _make_engine(url: str):
    eng = _create_engine(url)
    if eng.dialect.name == "sqlite":
        event.listen(eng, "connect", _sqlite_unicode_lower)
    return eng

def _create_engine(url: str):
    if url.startswith("sqlite:///"):
        # make sure the directory of a file database exists
        db_file = url[len("sqlite:///"):]
        if db_file and db_file != ":memory:":
            Path(db_file).parent.mkdir(parents=True, exist_ok=True)
    if url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty database
        return create_engine(
            url, echo=False, future=True,
            connect_args={"check_same_thread": False}, poolclass=StaticPool,
        )
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, future=True, connect_args=connect_args)

def _sqlite_unicode_lower(dbapi_conn, _record):
    # built-in lower() only folds ASCII; search uses lower() on both sides
    dbapi_conn.create_function("lower", 1, _lower, deterministic=True)

def _lower(value):
    return value.lower() if isinstance(value, str) else value

engine = _make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

# --------------------------------------------------------------------
# Sessions
# --------------------------------------------------------------------
def get_session():
    """
    Returns a *new* session instance.
    The caller is responsible for commit()/rollback()/close().
    """
    return SessionLocal()

@contextmanager
def session_scope():
    """
    Optional context manager:
      with session_scope() as db:
          ...
    """
    db = get_session()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

# --------------------------------------------------------------------
# SQLite: checks & mini migration
# --------------------------------------------------------------------
def _sqlite_table_exists(conn, name: str) -> bool:
    r = conn.execute(
        text("SELECT name FROM sqlite_master WHERE type='table' AND name=:n"),
        {"n": name},
    ).fetchone()
    return r is not None

def _sqlite_column_exists(conn, table: str, col: str) -> bool:
    rows = conn.exec_driver_sql(f"PRAGMA table_info({table})").fetchall()
    # PRAGMA table_info: (cid, name, type, notnull, dflt_value, pk)
    return any(row[1] == col for row in rows)

# columns added after the first schema; create_all() does not alter existing tables
_LATE_COLUMNS = (
    ("users", "github_id", "VARCHAR(255)"),
    ("users", "role", "VARCHAR(16) NOT NULL DEFAULT 'user'"),
)

def _sqlite_safe_migrate():
    """
    Small migration for existing SQLite databases:
    - append user columns that older databases lack.
    """
    if engine.dialect.name != "sqlite":
        return
    with engine.begin() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        for table, col, ddl in _LATE_COLUMNS:
            if _sqlite_table_exists(conn, table) and not _sqlite_column_exists(conn, table, col):
                log.info("migrating: adding %s.%s", table, col)
                conn.exec_driver_sql(f"ALTER TABLE {table} ADD COLUMN {col} {ddl}")

# --------------------------------------------------------------------
# Init DB (on app start)
# --------------------------------------------------------------------
def init_db(url: str | None = None):
    """
    Initialises the database.
    - Optional URL override (tests/config).
    - Registers the models and creates missing tables.
    - Runs the mini migrations.
    """
    global engine

    if url and url != str(engine.url):
        engine.dispose()
        engine = _make_engine(url)
        SessionLocal.configure(bind=engine)

    # import the models so their tables are registered on Base
    from vidstream.models import user, movie, tag, stored_session  # noqa: F401

    # create tables (only missing ones)
    Base.metadata.create_all(bind=engine)

    try:
        _sqlite_safe_migrate()
    except Exception:
        log.exception("[DB] mini migration failed")
