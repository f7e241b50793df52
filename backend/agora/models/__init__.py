"""
Database models.
"""

from agora.models.forum import (
    Category,
    Comment,
    CommentLike,
    Post,
    PostCategory,
    PostLike,
)
from agora.models.user import Session, User

__all__ = [
    "Category",
    "Comment",
    "CommentLike",
    "Post",
    "PostCategory",
    "PostLike",
    "Session",
    "User",
]
