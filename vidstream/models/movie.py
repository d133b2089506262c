# vidstream/models/movie.py
from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, DateTime, Text
from vidstream.models.base import Base
from vidstream.models.tag import movie_tags, Tag

class Movie(Base):
    __tablename__ = "movies"

    id:            Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title:         Mapped[str] = mapped_column(String(255))
    description:   Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url:     Mapped[str] = mapped_column(String(1024))
    thumbnail_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    category:      Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at:    Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Tags (many-to-many)
    tags = relationship(
        Tag,
        secondary=movie_tags,
        lazy="selectin",
        order_by=Tag.name,
        backref="movies",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "video_url": self.video_url,
            "thumbnail_url": self.thumbnail_url,
            "category": self.category,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "tags": [t.to_dict() for t in self.tags],
        }

    def __repr__(self) -> str:
        return f"<Movie {self.id}:{self.title}>"
