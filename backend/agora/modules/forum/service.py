"""
Forum Service - posts, comments and categories.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from loguru import logger
from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agora.core.config import settings
from agora.core.database import session_insert, transaction
from agora.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from agora.models.forum import (
    Category,
    Comment,
    CommentLike,
    Post,
    PostCategory,
    PostLike,
)
from agora.models.user import User
from agora.modules.forum.reactions import Reaction, ReactionService, TargetKind


@dataclass
class PostFilter:
    """
    Options for listing posts. All set options must match.

    Attributes:
        category_name: Only posts linked to this category (exact match)
        author_id: Only posts by this user
        liked_by_user: Only posts this user has liked (+1)
        search: Case-insensitive substring of title or content
        order_descending: Newest first
        limit: Page size, clamped to (0, max page size]
        offset: Rows to skip, never negative
    """

    category_name: str | None = None
    author_id: int | None = None
    liked_by_user: int | None = None
    search: str | None = None
    order_descending: bool = True
    limit: int | None = None
    offset: int = 0

    @property
    def page_limit(self) -> int:
        if self.limit is None or self.limit <= 0:
            return settings.forum_posts_per_page
        return min(self.limit, settings.forum_max_page_size)

    @property
    def page_offset(self) -> int:
        return max(self.offset or 0, 0)


@dataclass
class PostDetail:
    """Post with author name, reaction counts and the viewer's own reaction."""

    post: Post
    username: str
    likes: int = 0
    dislikes: int = 0
    comment_count: int = 0
    user_liked: bool = False
    user_disliked: bool = False
    categories: list[str] = field(default_factory=list)


@dataclass
class CommentDetail:
    """Comment with author name, reaction counts and the viewer's own reaction."""

    comment: Comment
    username: str
    likes: int = 0
    dislikes: int = 0
    user_liked: bool = False
    user_disliked: bool = False


UNKNOWN_AUTHOR = "Unknown"


def _clean_category_names(names: Iterable[str] | None) -> list[str]:
    """Trimmed, non-empty, de-duplicated names in input order."""
    cleaned = (name.strip() for name in names or [])
    return list(dict.fromkeys(name for name in cleaned if name))


class ForumService:
    """
    Service for managing forum categories, posts and comments.

    Usage:
        forum = ForumService(db_session)
        post_id = await forum.create_post(user_id, "Hello", "World", ["General"])
        posts = await forum.list_posts(PostFilter(category_name="General"))
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize forum service with database session."""
        self.db = db
        self.post_reactions = ReactionService(db, TargetKind.POST)
        self.comment_reactions = ReactionService(db, TargetKind.COMMENT)

    # ==================== Categories ====================

    async def list_categories(self) -> list[Category]:
        """Get all categories ordered by name."""
        result = await self.db.execute(select(Category).order_by(Category.name))
        return list(result.scalars().all())

    async def _category_id(self, name: str) -> int:
        """Get or create a category by exact name."""
        query = select(Category.id).where(Category.name == name)
        category_id = (await self.db.execute(query)).scalar_one_or_none()
        if category_id is not None:
            return category_id

        await self.db.execute(
            session_insert(self.db, Category)
            .values(name=name)
            .on_conflict_do_nothing(index_elements=["name"])
        )
        return (await self.db.execute(query)).scalar_one()

    # ==================== Posts ====================

    async def create_post(
        self,
        author_id: int,
        title: str,
        content: str,
        category_names: Iterable[str] | None = None,
    ) -> int:
        """
        Create a post and link it to its categories in one transaction.

        Unknown categories are created. If any step fails nothing is kept.

        Args:
            author_id: Author user ID
            title: Post title
            content: Post body
            category_names: Category names, matched case-sensitively

        Returns:
            ID of the created post
        """
        title = (title or "").strip()
        content = (content or "").strip()
        if author_id is None or author_id <= 0 or not title or not content:
            raise InvalidInputError("Invalid post data")
        names = _clean_category_names(category_names)

        if await self.db.get(User, author_id) is None:
            raise InvalidInputError("Unknown author")

        async with transaction(self.db):
            post = Post(author_id=author_id, title=title, content=content)
            self.db.add(post)
            await self.db.flush()

            for name in names:
                category_id = await self._category_id(name)
                await self.db.execute(
                    session_insert(self.db, PostCategory)
                    .values(post_id=post.id, category_id=category_id)
                    .on_conflict_do_nothing()
                )

        logger.info(f"Post {post.id} created by user {author_id}")
        return post.id

    async def get_post(self, post_id: int) -> Post:
        """Get post by ID with its categories."""
        query = (
            select(Post)
            .options(selectinload(Post.categories))
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        post = (await self.db.execute(query)).scalar_one_or_none()
        if post is None:
            raise NotFoundError("Post not found")
        return post

    async def list_posts(self, filters: PostFilter | None = None) -> list[Post]:
        """
        Get posts matching the filter, with their categories.

        Args:
            filters: Listing options (default: newest first, first page)

        Returns:
            Distinct list of posts
        """
        f = filters or PostFilter()

        query = select(Post).options(selectinload(Post.categories))

        if f.category_name:
            query = (
                query.join(PostCategory, PostCategory.post_id == Post.id)
                .join(Category, Category.id == PostCategory.category_id)
                .where(Category.name == f.category_name)
            )

        if f.liked_by_user:
            query = query.join(
                PostLike,
                and_(
                    PostLike.post_id == Post.id,
                    PostLike.user_id == f.liked_by_user,
                    PostLike.reaction == Reaction.LIKE,
                ),
            )

        if f.author_id:
            query = query.where(Post.author_id == f.author_id)

        search = (f.search or "").strip()
        if search:
            query = query.where(
                Post.title.icontains(search, autoescape=True)
                | Post.content.icontains(search, autoescape=True)
            )

        if f.order_descending:
            query = query.order_by(Post.created_at.desc(), Post.id.desc())
        else:
            query = query.order_by(Post.created_at, Post.id)

        query = (
            query.distinct()
            .limit(f.page_limit)
            .offset(f.page_offset)
            .execution_options(populate_existing=True)
        )

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_posts_by_category(
        self, category_name: str, limit: int | None = None, offset: int = 0
    ) -> list[Post]:
        return await self.list_posts(
            PostFilter(category_name=category_name, limit=limit, offset=offset)
        )

    async def list_posts_by_author(
        self, author_id: int, limit: int | None = None, offset: int = 0
    ) -> list[Post]:
        return await self.list_posts(
            PostFilter(author_id=author_id, limit=limit, offset=offset)
        )

    async def list_posts_liked_by_user(
        self, user_id: int, limit: int | None = None, offset: int = 0
    ) -> list[Post]:
        return await self.list_posts(
            PostFilter(liked_by_user=user_id, limit=limit, offset=offset)
        )

    async def _load_author_id(self, model: type[Post] | type[Comment], entity_id: int) -> int:
        result = await self.db.execute(select(model.author_id).where(model.id == entity_id))
        author_id = result.scalar_one_or_none()
        if author_id is None:
            raise NotFoundError(f"{model.__name__} not found")
        return author_id

    async def delete_post(self, post_id: int, user_id: int) -> None:
        """
        Delete a post and everything hanging off it (author only).

        Removes, in one transaction: the post's likes, the likes on its
        comments, its comments, its category links and the post itself.

        Raises:
            InvalidInputError: Non-positive ids
            NotFoundError: Post does not exist
            ForbiddenError: User is not the author
        """
        if post_id <= 0 or user_id <= 0:
            raise InvalidInputError("Invalid post ID or user ID")

        async with transaction(self.db):
            author_id = await self._load_author_id(Post, post_id)
            if author_id != user_id:
                logger.warning(
                    f"User {user_id} tried to delete post {post_id} owned by {author_id}"
                )
                raise ForbiddenError("You can only delete your own posts")

            comment_ids = select(Comment.id).where(Comment.post_id == post_id)

            await self.db.execute(delete(PostLike).where(PostLike.post_id == post_id))
            await self.db.execute(
                delete(CommentLike)
                .where(CommentLike.comment_id.in_(comment_ids))
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(delete(Comment).where(Comment.post_id == post_id))
            await self.db.execute(
                delete(PostCategory).where(PostCategory.post_id == post_id)
            )
            await self.db.execute(delete(Post).where(Post.id == post_id))

        logger.info(f"Post {post_id} deleted by user {user_id}")

    # ==================== Comments ====================

    async def create_comment(self, post_id: int, author_id: int, content: str) -> int:
        """
        Add a comment to a post.

        Returns:
            ID of the created comment

        Raises:
            InvalidInputError: Empty content, or unknown post/author
        """
        content = (content or "").strip()
        if post_id is None or author_id is None or post_id <= 0 or author_id <= 0 or not content:
            raise InvalidInputError("Invalid comment data")

        if await self.db.get(Post, post_id) is None:
            raise InvalidInputError("Unknown post")
        if await self.db.get(User, author_id) is None:
            raise InvalidInputError("Unknown author")

        async with transaction(self.db):
            comment = Comment(post_id=post_id, author_id=author_id, content=content)
            self.db.add(comment)
            await self.db.flush()

        logger.info(f"Comment {comment.id} added to post {post_id} by user {author_id}")
        return comment.id

    async def get_comment(self, comment_id: int) -> Comment:
        comment = await self.db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        return comment

    async def list_comments(
        self,
        post_id: int,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Comment]:
        """
        Get a post's comments, oldest first.

        Args:
            post_id: Post ID
            limit: Max results (capped at the comments limit)
            offset: Pagination offset
        """
        cap = settings.forum_comments_limit
        limit = cap if limit is None or limit <= 0 else min(limit, cap)

        query = (
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at, Comment.id)
            .limit(limit)
            .offset(max(offset, 0))
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def delete_comment(self, comment_id: int, user_id: int) -> None:
        """
        Delete a comment and its likes (author only).

        Raises:
            InvalidInputError: Non-positive ids
            NotFoundError: Comment does not exist
            ForbiddenError: User is not the author
        """
        if comment_id <= 0 or user_id <= 0:
            raise InvalidInputError("Invalid comment ID or user ID")

        async with transaction(self.db):
            author_id = await self._load_author_id(Comment, comment_id)
            if author_id != user_id:
                logger.warning(
                    f"User {user_id} tried to delete comment {comment_id} owned by {author_id}"
                )
                raise ForbiddenError("You can only delete your own comments")

            await self.db.execute(
                delete(CommentLike).where(CommentLike.comment_id == comment_id)
            )
            await self.db.execute(delete(Comment).where(Comment.id == comment_id))

        logger.info(f"Comment {comment_id} deleted by user {user_id}")

    # ==================== Detail views ====================

    async def _usernames(self, user_ids: Iterable[int]) -> dict[int, str]:
        ids = set(user_ids)
        if not ids:
            return {}
        result = await self.db.execute(
            select(User.id, User.username).where(User.id.in_(ids))
        )
        return dict(result.all())

    async def _comment_counts(self, post_ids: list[int]) -> dict[int, int]:
        if not post_ids:
            return {}
        result = await self.db.execute(
            select(Comment.post_id, func.count(Comment.id))
            .where(Comment.post_id.in_(post_ids))
            .group_by(Comment.post_id)
        )
        return dict(result.all())

    async def _post_details(
        self,
        posts: list[Post],
        viewer_id: int | None,
    ) -> list[PostDetail]:
        post_ids = [post.id for post in posts]
        usernames = await self._usernames(post.author_id for post in posts)
        counts = await self.post_reactions.count_many(post_ids)
        comment_counts = await self._comment_counts(post_ids)
        mine = (
            await self.post_reactions.reactions_of(viewer_id, post_ids)
            if viewer_id
            else {}
        )

        return [
            PostDetail(
                post=post,
                username=usernames.get(post.author_id, UNKNOWN_AUTHOR),
                likes=counts[post.id].likes,
                dislikes=counts[post.id].dislikes,
                comment_count=comment_counts.get(post.id, 0),
                user_liked=mine.get(post.id) is Reaction.LIKE,
                user_disliked=mine.get(post.id) is Reaction.DISLIKE,
                categories=post.category_names,
            )
            for post in posts
        ]

    async def list_post_details(
        self,
        filters: PostFilter | None = None,
        viewer_id: int | None = None,
    ) -> list[PostDetail]:
        """List posts annotated for display to a (possibly anonymous) viewer."""
        posts = await self.list_posts(filters)
        return await self._post_details(posts, viewer_id)

    async def get_post_detail(
        self,
        post_id: int,
        viewer_id: int | None = None,
    ) -> PostDetail:
        """Single post annotated for display. Raises NotFoundError if absent."""
        post = await self.get_post(post_id)
        details = await self._post_details([post], viewer_id)
        return details[0]

    async def list_comment_details(
        self,
        post_id: int,
        viewer_id: int | None = None,
    ) -> list[CommentDetail]:
        """A post's comments annotated for display, oldest first."""
        comments = await self.list_comments(post_id)
        comment_ids = [comment.id for comment in comments]
        usernames = await self._usernames(comment.author_id for comment in comments)
        counts = await self.comment_reactions.count_many(comment_ids)
        mine = (
            await self.comment_reactions.reactions_of(viewer_id, comment_ids)
            if viewer_id
            else {}
        )

        return [
            CommentDetail(
                comment=comment,
                username=usernames.get(comment.author_id, UNKNOWN_AUTHOR),
                likes=counts[comment.id].likes,
                dislikes=counts[comment.id].dislikes,
                user_liked=mine.get(comment.id) is Reaction.LIKE,
                user_disliked=mine.get(comment.id) is Reaction.DISLIKE,
            )
            for comment in comments
        ]
