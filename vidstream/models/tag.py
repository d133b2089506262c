# vidstream/models/tag.py
from __future__ import annotations
from sqlalchemy import Table, Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from vidstream.models.base import Base

# Join table: many-to-many between Movie and Tag
movie_tags = Table(
    "movie_tags",
    Base.metadata,
    Column("movie_id", ForeignKey("movies.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id",   ForeignKey("tags.id",   ondelete="CASCADE"), primary_key=True),
    UniqueConstraint("movie_id", "tag_id", name="uq_movie_tag"),
)

class Tag(Base):
    __tablename__ = "tags"

    id:   Mapped[int]  = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str]  = mapped_column(String(64), unique=True, index=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    def __repr__(self) -> str:
        return f"<Tag {self.name}>"
