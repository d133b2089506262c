from vidstream.models.base import Base

__all__ = ["Base"]
