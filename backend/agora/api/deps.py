"""
Shared API dependencies.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from agora.core.config import settings
from agora.core.database import get_db
from agora.core.exceptions import AuthenticationError, InvalidSessionError
from agora.modules.auth.sessions import SessionStore


def get_session_token(request: Request) -> str | None:
    """Session token from the request cookie, if any."""
    return request.cookies.get(settings.session_cookie_name)


async def get_current_user_id(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> int | None:
    """Resolve the viewer's user ID. Anonymous or stale sessions give None."""
    token = get_session_token(request)
    if not token:
        return None

    try:
        return await SessionStore(db).validate(token)
    except AuthenticationError:
        return None


async def require_user_id(
    user_id: int | None = Depends(get_current_user_id),
) -> int:
    """Resolve the viewer's user ID or reject the request with 401."""
    if user_id is None:
        raise InvalidSessionError("Login required")
    return user_id
