"""
Forum Module - Community discussions.

Features:
- Posts tagged with categories
- Chronological comment threads
- Likes and dislikes on posts and comments
- Author-only cascading deletes
"""

from agora.modules.forum.reactions import (
    Reaction,
    ReactionCounts,
    ReactionService,
    TargetKind,
)
from agora.modules.forum.service import (
    CommentDetail,
    ForumService,
    PostDetail,
    PostFilter,
)

__all__ = [
    "CommentDetail",
    "ForumService",
    "PostDetail",
    "PostFilter",
    "Reaction",
    "ReactionCounts",
    "ReactionService",
    "TargetKind",
]
