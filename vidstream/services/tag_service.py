# vidstream/services/tag_service.py
from __future__ import annotations
from typing import Iterable, List
from sqlalchemy.orm import Session
from sqlalchemy import select
from vidstream.models.tag import Tag

def list_all_tags(db: Session) -> List[Tag]:
    return db.execute(select(Tag).order_by(Tag.name.asc())).scalars().all()

def list_all_tags_serialized(db: Session) -> List[dict]:
    return [t.to_dict() for t in list_all_tags(db)]

def normalize_tag_names(names: Iterable[str]) -> List[str]:
    """Trims, drops blanks and duplicates; keeps first-seen order."""
    seen: dict[str, None] = {}
    for raw in names:
        if not isinstance(raw, str):
            continue
        name = raw.strip()
        if name and name not in seen:
            seen[name] = None
    return list(seen)

def ensure_tags(db: Session, names: Iterable[str]) -> List[Tag]:
    """Find-or-create by name. Flushes new rows; the caller commits."""
    norm = normalize_tag_names(names)
    if not norm:
        return []
    existing = {t.name: t for t in db.execute(select(Tag).where(Tag.name.in_(norm))).scalars().all()}
    for name in norm:
        if name not in existing:
            t = Tag(name=name)
            db.add(t)
            db.flush()
            existing[name] = t
    return [existing[n] for n in norm]
