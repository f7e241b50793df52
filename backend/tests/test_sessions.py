"""Test the session store and its background sweeper."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select, update

from agora.core.database import utcnow
from agora.core.exceptions import InvalidSessionError, SessionExpiredError
from agora.models import Session
from agora.modules.auth import SessionStore, SessionSweeper


async def _session_count(db, user_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(Session).where(Session.user_id == user_id)
    )
    return result.scalar_one()


async def test_create_and_validate(db, make_user):
    user_id = await make_user("alice")
    sessions = SessionStore(db)

    token = await sessions.create(user_id)

    assert isinstance(token, str) and len(token) >= 32
    assert await sessions.validate(token) == user_id


async def test_expiry_is_creation_plus_lifetime(db, make_user):
    user_id = await make_user("alice")

    token = await SessionStore(db, lifetime=timedelta(hours=24)).create(user_id)
    stored = (await db.execute(select(Session).where(Session.token == token))).scalar_one()
    assert stored.expires_at - stored.created_at == timedelta(hours=24)


async def test_single_session_per_user(db, make_user):
    user_id = await make_user("alice")
    sessions = SessionStore(db)

    first = await sessions.create(user_id)
    second = await sessions.create(user_id)

    assert first != second
    assert await _session_count(db, user_id) == 1
    with pytest.raises(InvalidSessionError):
        await sessions.validate(first)
    assert await sessions.validate(second) == user_id


async def test_unknown_token(db):
    with pytest.raises(InvalidSessionError):
        await SessionStore(db).validate("no-such-token")
    with pytest.raises(InvalidSessionError):
        await SessionStore(db).validate("")


async def test_expired_session_is_deleted_on_validate(db, make_user):
    user_id = await make_user("alice")
    sessions = SessionStore(db, lifetime=timedelta(seconds=-1))
    token = await sessions.create(user_id)

    with pytest.raises(SessionExpiredError):
        await sessions.validate(token)

    # Second attempt sees no row at all
    with pytest.raises(InvalidSessionError):
        await sessions.validate(token)
    assert await _session_count(db, user_id) == 0


async def test_session_expiring_after_creation(db, make_user):
    user_id = await make_user("alice")
    sessions = SessionStore(db)
    token = await sessions.create(user_id)
    stored = (await db.execute(select(Session).where(Session.token == token))).scalar_one()
    assert not stored.is_expired()
    assert stored.is_expired(now=stored.expires_at + timedelta(seconds=1))

    await db.execute(
        update(Session)
        .where(Session.token == token)
        .values(expires_at=utcnow() - timedelta(minutes=1))
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    with pytest.raises(SessionExpiredError):
        await sessions.validate(token)
    assert await _session_count(db, user_id) == 0


async def test_revoke_is_idempotent(db, make_user):
    user_id = await make_user("alice")
    sessions = SessionStore(db)
    token = await sessions.create(user_id)

    await sessions.revoke(token)
    await sessions.revoke(token)
    await sessions.revoke("never-existed")

    with pytest.raises(InvalidSessionError):
        await sessions.validate(token)


async def test_purge_expired(db, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    sessions = SessionStore(db)
    await sessions.create(alice)
    live = await sessions.create(bob)

    await db.execute(
        update(Session)
        .where(Session.user_id == alice)
        .values(expires_at=utcnow() - timedelta(days=1))
    )
    await db.commit()

    assert await sessions.purge_expired() == 1
    assert await _session_count(db, alice) == 0
    assert await sessions.validate(live) == bob


async def test_sweeper_runs_purge(db, session_factory, make_user):
    user_id = await make_user("alice")
    await SessionStore(db, lifetime=timedelta(seconds=-1)).create(user_id)

    sweeper = SessionSweeper(session_factory, interval=3600)
    assert await sweeper.sweep() == 1

    await sweeper.start()
    assert sweeper.running
    await sweeper.stop()
    assert not sweeper.running


async def test_sweeper_disabled_with_zero_interval(session_factory):
    sweeper = SessionSweeper(session_factory, interval=0)
    await sweeper.start()
    assert not sweeper.running
    await sweeper.stop()
