"""
Session Store - server-side login sessions.

One live session per user. Expired sessions are removed lazily when
presented, and periodically by the SessionSweeper.
"""

import asyncio
from datetime import timedelta

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agora.core.config import settings
from agora.core.database import transaction, utcnow
from agora.core.exceptions import InvalidSessionError, SessionExpiredError
from agora.models.user import Session
from agora.modules.auth.security import generate_session_token


class SessionStore:
    """
    Creates, validates and revokes session tokens.

    Usage:
        sessions = SessionStore(db_session)
        token = await sessions.create(user_id)
        user_id = await sessions.validate(token)
    """

    def __init__(
        self,
        db: AsyncSession,
        lifetime: timedelta | None = None,
    ) -> None:
        """
        Initialize session store.

        Args:
            db: Database session
            lifetime: Session lifetime (default from settings)
        """
        self.db = db
        self.lifetime = lifetime or timedelta(hours=settings.session_lifetime_hours)

    async def create(self, user_id: int) -> str:
        """
        Start a new session for a user, ending any previous one.

        Returns:
            Opaque session token
        """
        token = generate_session_token()
        now = utcnow()

        async with transaction(self.db):
            await self.db.execute(delete(Session).where(Session.user_id == user_id))
            self.db.add(
                Session(
                    user_id=user_id,
                    token=token,
                    expires_at=now + self.lifetime,
                    created_at=now,
                )
            )

        logger.info(f"Session created for user {user_id}")
        return token

    async def validate(self, token: str) -> int:
        """
        Resolve a token to its user ID.

        Raises:
            InvalidSessionError: Token unknown
            SessionExpiredError: Token past its expiry (the row is deleted)
        """
        if not token:
            raise InvalidSessionError()

        result = await self.db.execute(
            select(Session)
            .where(Session.token == token)
            .execution_options(populate_existing=True)
        )
        session = result.scalar_one_or_none()
        if session is None:
            raise InvalidSessionError()

        if session.is_expired():
            user_id = session.user_id
            async with transaction(self.db):
                await self.db.execute(delete(Session).where(Session.token == token))
            logger.debug(f"Expired session removed for user {user_id}")
            raise SessionExpiredError()

        return session.user_id

    async def revoke(self, token: str) -> None:
        """Delete a session. Unknown tokens are ignored."""
        async with transaction(self.db):
            await self.db.execute(delete(Session).where(Session.token == token))

    async def purge_expired(self) -> int:
        """Delete every expired session, returning how many were removed."""
        async with transaction(self.db):
            result = await self.db.execute(
                delete(Session).where(Session.expires_at < utcnow())
            )

        removed = result.rowcount or 0
        if removed:
            logger.info(f"Cleaned {removed} expired sessions")
        return removed


class SessionSweeper:
    """
    Background task purging expired sessions at a fixed interval.

    Lazy expiry in SessionStore.validate already guarantees correctness;
    this only keeps the table small.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        interval: float | None = None,
    ) -> None:
        """
        Initialize sweeper.

        Args:
            session_factory: Factory producing database sessions
            interval: Seconds between sweeps (default from settings)
        """
        self.session_factory = session_factory
        self.interval = (
            interval
            if interval is not None
            else settings.session_cleanup_interval_minutes * 60
        )
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start sweeping. A non-positive interval disables the sweeper."""
        if self.interval <= 0:
            logger.info("Session sweeper disabled")
            return
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info("Session sweeper started")

    async def stop(self) -> None:
        """Stop sweeping."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Session sweeper stopped")

    async def sweep(self) -> int:
        """Run one purge in a fresh database session."""
        async with self.session_factory() as db:
            return await SessionStore(db).purge_expired()

    async def _sweep_loop(self) -> None:
        while True:
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Session sweep failed: {e!r}")

            await asyncio.sleep(self.interval)
