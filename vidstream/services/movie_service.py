# vidstream/services/movie_service.py
from __future__ import annotations
import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session, selectinload

from vidstream.models.movie import Movie
from vidstream.models.tag import Tag, movie_tags
from vidstream.services.tag_service import ensure_tags

log = logging.getLogger(__name__)

MATCH_ANY = "any"
MATCH_ALL = "all"
MATCH_MODES = (MATCH_ANY, MATCH_ALL)

# ===== Filter parsing =====

def parse_id_list(raw: Optional[str]) -> List[int]:
    """
    "1, 2,x,3" -> [1, 2, 3]. Non-integers are dropped, so a list of only
    junk comes back empty and the caller skips the tag-id filter.
    """
    if not raw:
        return []
    ids: List[int] = []
    for part in raw.split(","):
        part = part.strip()
        try:
            ids.append(int(part))
        except ValueError:
            continue
    return ids

# ===== Query building =====

def build_movie_query(
    search: Optional[str] = None,
    tag: Optional[str] = None,
    tag_ids: Sequence[int] = (),
    match: str = MATCH_ANY,
) -> Select:
    """
    Composes the list query. All given conditions are ANDed:

    - tag_ids: movie has a tag with an id in the list (any of them, or all
      of them with match="all"); takes precedence over ``tag``
    - tag: movie has a tag with exactly this name
    - search: case-insensitive substring of title or description
    """
    if match not in MATCH_MODES:
        raise ValueError(f"unknown match mode: {match!r}")

    stmt = select(Movie).options(selectinload(Movie.tags))

    if tag_ids:
        wanted = sorted(set(tag_ids))
        tagged = select(movie_tags.c.movie_id).where(movie_tags.c.tag_id.in_(wanted))
        if match == MATCH_ALL:
            tagged = (
                tagged.group_by(movie_tags.c.movie_id)
                .having(func.count(func.distinct(movie_tags.c.tag_id)) == len(wanted))
            )
        stmt = stmt.where(Movie.id.in_(tagged))
    elif tag:
        stmt = stmt.where(Movie.tags.any(Tag.name == tag))

    term = (search or "").strip()
    if term:
        stmt = stmt.where(
            or_(
                Movie.title.icontains(term, autoescape=True),
                Movie.description.icontains(term, autoescape=True),
            )
        )
    return stmt

# ===== Database operations =====

def list_movies(
    db: Session,
    search: Optional[str] = None,
    tag: Optional[str] = None,
    tag_ids: Sequence[int] = (),
    match: str = MATCH_ANY,
) -> List[Movie]:
    stmt = build_movie_query(search=search, tag=tag, tag_ids=tag_ids, match=match)
    return db.execute(stmt).scalars().all()

def list_featured_movies(db: Session, ids: Iterable[int]) -> List[Movie]:
    ids = list(ids)
    if not ids:
        return []
    stmt = (
        select(Movie)
        .options(selectinload(Movie.tags))
        .where(Movie.id.in_(ids))
        .order_by(Movie.id.asc())
    )
    return db.execute(stmt).scalars().all()

def get_movie(db: Session, movie_id: int) -> Optional[Movie]:
    return db.get(Movie, movie_id)

def list_movie_titles(db: Session) -> List[dict]:
    rows = db.execute(
        select(Movie.id, Movie.title, Movie.description).order_by(Movie.id.asc())
    ).all()
    return [{"id": r.id, "title": r.title, "description": r.description} for r in rows]

def create_movie(
    db: Session,
    title: str,
    video_url: str,
    description: Optional[str] = None,
    thumbnail_url: Optional[str] = None,
    category: Optional[str] = None,
    tags: Iterable[str] = (),
) -> Movie:
    m = Movie(
        title=title,
        video_url=video_url,
        description=description,
        thumbnail_url=thumbnail_url,
        category=category,
    )
    m.tags.extend(ensure_tags(db, tags))
    db.add(m)
    db.commit()
    db.refresh(m)
    log.info("movie %s created with %d tag(s)", m.id, len(m.tags))
    return m

def get_stream_info(db: Session, movie_id: int) -> tuple[Optional[Movie], Optional[str]]:
    """
    Returns (movie, error). ``error`` names what is missing:
    "Movie not found" or "Video not available".
    """
    m = db.get(Movie, movie_id)
    if not m:
        return None, "Movie not found"
    if not (m.video_url or "").strip():
        return m, "Video not available"
    return m, None
