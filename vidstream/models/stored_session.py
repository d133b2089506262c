# vidstream/models/stored_session.py
from __future__ import annotations
from datetime import datetime
from sqlalchemy import String, Text, DateTime, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from vidstream.models.base import Base

class StoredSession(Base):
    """Server-side session row; the cookie only carries ``sid``."""
    __tablename__ = "sessions"

    sid:        Mapped[str] = mapped_column(String(64), primary_key=True)
    data:       Mapped[str] = mapped_column(Text, default="{}")
    user_id:    Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True)

    def __repr__(self) -> str:
        return f"<StoredSession {self.sid[:8]}… user={self.user_id}>"
