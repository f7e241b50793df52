"""
Forum API Endpoints.

Community posts, comments and reactions.
"""

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from agora.api.deps import get_current_user_id, require_user_id
from agora.core.database import get_db
from agora.core.exceptions import InvalidSessionError
from agora.modules.forum import (
    CommentDetail,
    ForumService,
    PostDetail,
    PostFilter,
    ReactionService,
    TargetKind,
)

router = APIRouter()


# ==================== Schemas ====================


class CreatePostRequest(BaseModel):
    """Create new post."""

    title: str
    content: str
    categories: list[str] = Field(default_factory=list)


class CreateCommentRequest(BaseModel):
    """Create new comment."""

    content: str


class ReactionRequest(BaseModel):
    """Like (1), dislike (-1) or clear (0)."""

    value: int


def _post_payload(detail: PostDetail) -> dict[str, Any]:
    post = detail.post
    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "author": {"id": post.author_id, "username": detail.username},
        "categories": detail.categories,
        "likes": detail.likes,
        "dislikes": detail.dislikes,
        "comment_count": detail.comment_count,
        "user_liked": detail.user_liked,
        "user_disliked": detail.user_disliked,
        "created_at": post.created_at.isoformat(),
    }


def _comment_payload(detail: CommentDetail) -> dict[str, Any]:
    comment = detail.comment
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "content": comment.content,
        "author": {"id": comment.author_id, "username": detail.username},
        "likes": detail.likes,
        "dislikes": detail.dislikes,
        "user_liked": detail.user_liked,
        "user_disliked": detail.user_disliked,
        "created_at": comment.created_at.isoformat(),
    }


# ==================== Categories ====================


@router.get("/categories")
async def get_categories(
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Get all forum categories."""
    forum = ForumService(db)
    categories = await forum.list_categories()

    return [{"id": cat.id, "name": cat.name} for cat in categories]


# ==================== Posts ====================


@router.get("/posts")
async def get_posts(
    category: str | None = Query(None, description="Category name"),
    author_id: int | None = Query(None, description="Author user ID"),
    mine: bool = Query(False, description="Only the viewer's posts"),
    liked: bool = Query(False, description="Only posts the viewer liked"),
    search: str | None = Query(None, description="Search in title/content"),
    order: Literal["desc", "asc"] = Query("desc"),
    limit: int | None = Query(None, description="Page size, clamped to the maximum"),
    offset: int = Query(0),
    viewer_id: int | None = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get posts with filters and pagination."""
    if (mine or liked) and viewer_id is None:
        raise InvalidSessionError("Login required")

    filters = PostFilter(
        category_name=category,
        author_id=viewer_id if mine else author_id,
        liked_by_user=viewer_id if liked else None,
        search=search,
        order_descending=order == "desc",
        limit=limit,
        offset=offset,
    )
    forum = ForumService(db)
    details = await forum.list_post_details(filters, viewer_id=viewer_id)

    return {
        "items": [_post_payload(detail) for detail in details],
        "limit": filters.page_limit,
        "offset": filters.page_offset,
    }


@router.get("/posts/{post_id}")
async def get_post(
    post_id: int,
    viewer_id: int | None = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get post details with its comment thread."""
    forum = ForumService(db)
    detail = await forum.get_post_detail(post_id, viewer_id=viewer_id)
    comments = await forum.list_comment_details(post_id, viewer_id=viewer_id)

    return {
        **_post_payload(detail),
        "comments": [_comment_payload(comment) for comment in comments],
    }


@router.post("/posts", status_code=201)
async def create_post(
    request: CreatePostRequest,
    user_id: int = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create new post."""
    forum = ForumService(db)
    post_id = await forum.create_post(
        author_id=user_id,
        title=request.title,
        content=request.content,
        category_names=request.categories,
    )
    post = await forum.get_post(post_id)

    return {
        "id": post.id,
        "title": post.title,
        "categories": post.category_names,
        "created_at": post.created_at.isoformat(),
    }


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: int,
    user_id: int = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Delete own post with its comments and reactions."""
    await ForumService(db).delete_post(post_id, user_id)

    return {"deleted": True}


# ==================== Comments ====================


@router.post("/posts/{post_id}/comments", status_code=201)
async def create_comment(
    post_id: int,
    request: CreateCommentRequest,
    user_id: int = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Add a comment to a post."""
    forum = ForumService(db)
    comment_id = await forum.create_comment(post_id, user_id, request.content)
    comment = await forum.get_comment(comment_id)

    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "content": comment.content,
        "created_at": comment.created_at.isoformat(),
    }


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: int,
    user_id: int = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Delete own comment."""
    await ForumService(db).delete_comment(comment_id, user_id)

    return {"deleted": True}


# ==================== Reactions ====================


async def _react(
    db: AsyncSession,
    kind: TargetKind,
    user_id: int,
    target_id: int,
    value: int,
) -> dict[str, Any]:
    reactions = ReactionService(db, kind)
    await reactions.set_reaction(user_id, target_id, value)
    counts = await reactions.count_reactions(target_id)

    return {
        "reaction": int(await reactions.get_reaction(user_id, target_id)),
        "likes": counts.likes,
        "dislikes": counts.dislikes,
    }


@router.post("/posts/{post_id}/reaction")
async def react_to_post(
    post_id: int,
    request: ReactionRequest,
    user_id: int = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Like, dislike or clear reaction on a post."""
    return await _react(db, TargetKind.POST, user_id, post_id, request.value)


@router.post("/comments/{comment_id}/reaction")
async def react_to_comment(
    comment_id: int,
    request: ReactionRequest,
    user_id: int = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Like, dislike or clear reaction on a comment."""
    return await _react(db, TargetKind.COMMENT, user_id, comment_id, request.value)
