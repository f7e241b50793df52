"""
Forum models for community discussions.

Includes:
- Categories
- Posts and their category links
- Comments
- Likes/dislikes on posts and comments
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agora.core.database import Base, utcnow

if TYPE_CHECKING:
    from agora.models.user import User


class Category(Base):
    """Post category. Names are matched exactly and case-sensitively."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class Post(Base):
    """Forum post."""

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )

    title: Mapped[str] = mapped_column(Text)
    content: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now(), index=True
    )

    # Relationships
    author: Mapped["User"] = relationship(back_populates="posts")
    categories: Mapped[list["Category"]] = relationship(
        secondary="post_categories",
        order_by="Category.name",
        viewonly=True,
    )
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="post", passive_deletes=True
    )

    @property
    def category_names(self) -> list[str]:
        return [category.name for category in self.categories]

    def __repr__(self) -> str:
        return f"<Post {self.title[:30]}>"


class PostCategory(Base):
    """Many-to-many link between posts and categories."""

    __tablename__ = "post_categories"

    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True, index=True
    )


class Comment(Base):
    """Comment on a post."""

    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), index=True
    )
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )

    content: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now()
    )

    # Relationships
    post: Mapped["Post"] = relationship(back_populates="comments")
    author: Mapped["User"] = relationship(back_populates="comments")

    def __repr__(self) -> str:
        return f"<Comment {self.id} on post {self.post_id}>"


class PostLike(Base):
    """Like (+1) or dislike (-1) on a post. No row means neutral."""

    __tablename__ = "post_likes"
    __table_args__ = (
        CheckConstraint("reaction IN (-1, 1)", name="ck_post_likes_reaction"),
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    post_id: Mapped[int] = mapped_column(
        ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    reaction: Mapped[int] = mapped_column(Integer)


class CommentLike(Base):
    """Like (+1) or dislike (-1) on a comment. No row means neutral."""

    __tablename__ = "comment_likes"
    __table_args__ = (
        CheckConstraint("reaction IN (-1, 1)", name="ck_comment_likes_reaction"),
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    comment_id: Mapped[int] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    reaction: Mapped[int] = mapped_column(Integer)
