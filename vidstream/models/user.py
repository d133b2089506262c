from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean
from vidstream.models.base import Base

VALID_ROLES = ("admin", "user")

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # None for accounts created through Google/GitHub
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    google_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    github_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    subscribed: Mapped[bool] = mapped_column(Boolean, default=False)
    role: Mapped[str] = mapped_column(String(16), default="user")

    def is_admin(self) -> bool:
        return self.role == "admin"

    def summary(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "subscribed": self.subscribed,
            "role": self.role,
        }

    def __repr__(self) -> str:
        return f"<User {self.id}:{self.email}>"
