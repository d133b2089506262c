# vidstream/cli.py
import json

import click
from flask import Flask

from vidstream.db import init_db, session_scope
from vidstream.services.auth_service import create_admin
from vidstream.services.movie_service import create_movie
from vidstream.sessions import purge_expired


def register_commands(app: Flask) -> None:
    @app.cli.command("init-db")
    def init_db_command():
        """Create missing tables."""
        init_db(app.config["DATABASE_URL"])
        click.echo("database ready")

    @app.cli.command("create-admin")
    @click.argument("email")
    @click.argument("password")
    def create_admin_command(email: str, password: str):
        """Create or promote an admin account."""
        with session_scope() as db:
            user = create_admin(db, email, password)
            click.echo(f"admin {user.email} (id {user.id})")

    @app.cli.command("seed-movies")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    def seed_movies_command(path: str):
        """Insert movies from a JSON list of {title, video_url, ..., tags}."""
        with open(path, encoding="utf-8") as f:
            try:
                items = json.load(f)
            except ValueError as e:
                raise click.ClickException(f"invalid JSON: {e}") from e
        if not isinstance(items, list):
            raise click.ClickException("expected a JSON list of movies")
        # check everything first, a bad file inserts nothing
        for item in items:
            if not isinstance(item, dict):
                raise click.ClickException(f"movie entry is not an object: {item!r}")
            if not item.get("title") or not item.get("video_url"):
                raise click.ClickException(f"movie without title/video_url: {item!r}")
            if not isinstance(item.get("tags") or [], list):
                raise click.ClickException(f"tags must be a list: {item!r}")
        with session_scope() as db:
            for item in items:
                create_movie(
                    db,
                    item["title"],
                    item["video_url"],
                    description=item.get("description"),
                    thumbnail_url=item.get("thumbnail_url"),
                    category=item.get("category"),
                    tags=item.get("tags") or [],
                )
        click.echo(f"{len(items)} movie(s) added")

    @app.cli.command("purge-sessions")
    def purge_sessions_command():
        """Delete expired server-side sessions."""
        click.echo(f"{purge_expired()} expired session(s) removed")
