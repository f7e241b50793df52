"""
User and session models for authentication.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agora.core.database import Base, utcnow

if TYPE_CHECKING:
    from agora.models.forum import Comment, Post


class User(Base):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(Text, unique=True, index=True)
    username: Mapped[str] = mapped_column(Text, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now()
    )

    # Relationships
    sessions: Mapped[list["Session"]] = relationship(
        back_populates="user", passive_deletes=True
    )
    posts: Mapped[list["Post"]] = relationship(
        back_populates="author", passive_deletes=True
    )
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="author", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<User {self.username}>"


class Session(Base):
    """Server-side login session, keyed by an opaque token."""

    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    token: Mapped[str] = mapped_column(Text, unique=True, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now()
    )

    user: Mapped["User"] = relationship(back_populates="sessions")

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) > self.expires_at

    def __repr__(self) -> str:
        return f"<Session user={self.user_id} expires={self.expires_at:%Y-%m-%d %H:%M}>"
