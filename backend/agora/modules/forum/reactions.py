"""
Reaction Service - likes and dislikes on posts and comments.

A single implementation serves both target kinds; the kind selects
which like table and which parent entity the operations run against.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any

from loguru import logger
from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agora.core.database import session_insert, transaction
from agora.core.exceptions import InvalidInputError, NotFoundError
from agora.models.forum import Comment, CommentLike, Post, PostLike


class Reaction(IntEnum):
    """Stored reaction values. NEUTRAL is never stored."""

    DISLIKE = -1
    NEUTRAL = 0
    LIKE = 1


class TargetKind(str, Enum):
    """What a reaction is attached to."""

    POST = "post"
    COMMENT = "comment"


@dataclass(frozen=True)
class ReactionTable:
    """Where reactions for one target kind live."""

    model: Any
    target: Any  # mapped column holding the target id
    parent: Any


REACTION_TABLES: dict[TargetKind, ReactionTable] = {
    TargetKind.POST: ReactionTable(PostLike, PostLike.post_id, Post),
    TargetKind.COMMENT: ReactionTable(CommentLike, CommentLike.comment_id, Comment),
}


@dataclass
class ReactionCounts:
    """Aggregate like/dislike counts for one target."""

    likes: int = 0
    dislikes: int = 0


class ReactionService:
    """
    Toggles and counts reactions for one target kind.

    Usage:
        reactions = ReactionService(db_session, TargetKind.POST)
        await reactions.set_reaction(user_id, post_id, Reaction.LIKE)
        counts = await reactions.count_reactions(post_id)
    """

    def __init__(self, db: AsyncSession, kind: TargetKind) -> None:
        """Initialize reaction service for posts or comments."""
        self.db = db
        self.kind = TargetKind(kind)
        self.table = REACTION_TABLES[self.kind]

    async def set_reaction(self, user_id: int, target_id: int, value: int) -> None:
        """
        Set a user's reaction on a target.

        A value of 0 removes any stored reaction; +1/-1 inserts or
        overwrites it. Repeating the same call leaves the same state.

        Args:
            user_id: Reacting user
            target_id: Post or comment ID
            value: -1 (dislike), 0 (neutral) or +1 (like)

        Raises:
            InvalidInputError: Non-positive ids or value outside {-1, 0, 1}
            NotFoundError: Liking/disliking a target that does not exist
        """
        if user_id <= 0 or target_id <= 0:
            raise InvalidInputError("Invalid ids")
        try:
            reaction = Reaction(value)
        except ValueError:
            raise InvalidInputError("Invalid reaction") from None

        model = self.table.model
        target_key = self.table.target.key

        if reaction is Reaction.NEUTRAL:
            async with transaction(self.db):
                await self.db.execute(
                    delete(model).where(
                        model.user_id == user_id,
                        self.table.target == target_id,
                    )
                )
            return

        if await self.db.get(self.table.parent, target_id) is None:
            raise NotFoundError(f"{self.kind.value.capitalize()} not found")

        stmt = session_insert(self.db, model).values(
            user_id=user_id,
            reaction=int(reaction),
            **{target_key: target_id},
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", target_key],
            set_={"reaction": stmt.excluded.reaction},
        )
        async with transaction(self.db):
            await self.db.execute(stmt)

        logger.debug(
            f"User {user_id} set {reaction.name} on {self.kind.value} {target_id}"
        )

    async def get_reaction(self, user_id: int, target_id: int) -> Reaction:
        """The user's current reaction on a target (NEUTRAL if none)."""
        model = self.table.model
        result = await self.db.execute(
            select(model.reaction).where(
                model.user_id == user_id,
                self.table.target == target_id,
            )
        )
        value = result.scalar_one_or_none()
        return Reaction(value) if value is not None else Reaction.NEUTRAL

    async def count_reactions(self, target_id: int) -> ReactionCounts:
        """Likes and dislikes for one target; {0, 0} when it has none."""
        counts = await self.count_many([target_id])
        return counts.get(target_id, ReactionCounts())

    async def count_many(self, target_ids: Iterable[int]) -> dict[int, ReactionCounts]:
        """Likes and dislikes for several targets in one query."""
        ids = list(target_ids)
        if not ids:
            return {}

        model = self.table.model
        query = (
            select(
                self.table.target,
                func.coalesce(func.sum(case((model.reaction == 1, 1), else_=0)), 0),
                func.coalesce(func.sum(case((model.reaction == -1, 1), else_=0)), 0),
            )
            .where(self.table.target.in_(ids))
            .group_by(self.table.target)
        )
        result = await self.db.execute(query)
        counts = {target_id: ReactionCounts() for target_id in ids}
        for target_id, likes, dislikes in result.all():
            counts[target_id] = ReactionCounts(likes=int(likes), dislikes=int(dislikes))
        return counts

    async def reactions_of(
        self,
        user_id: int,
        target_ids: Iterable[int],
    ) -> dict[int, Reaction]:
        """A user's stored reactions on several targets. Neutral targets are omitted."""
        ids = list(target_ids)
        if not ids:
            return {}

        model = self.table.model
        result = await self.db.execute(
            select(self.table.target, model.reaction).where(
                model.user_id == user_id,
                self.table.target.in_(ids),
            )
        )
        return {target_id: Reaction(value) for target_id, value in result.all()}
