"""
Auth API Endpoints.

Registration, login and logout with a cookie-held session token.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from agora.api.deps import get_session_token, require_user_id
from agora.core.config import settings
from agora.core.database import get_db
from agora.modules.auth import CredentialService, SessionStore

router = APIRouter()


# ==================== Schemas ====================


class RegisterRequest(BaseModel):
    """Create a new account."""

    email: str
    username: str
    password: str


class LoginRequest(BaseModel):
    """Log in with email and password."""

    email: str
    password: str


# ==================== Cookies ====================


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
    )


# ==================== Endpoints ====================


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create a new user account."""
    credentials = CredentialService(db)
    user_id = await credentials.register(
        email=request.email,
        username=request.username,
        password=request.password,
    )

    return {"id": user_id, "username": request.username}


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Check credentials and start a session."""
    credentials = CredentialService(db)
    user_id = await credentials.authenticate(request.email, request.password)

    token = await SessionStore(db).create(user_id)
    set_session_cookie(response, token)

    user = await credentials.get_user(user_id)
    return {"id": user.id, "username": user.username}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """End the current session, if any."""
    token = get_session_token(request)
    if token:
        await SessionStore(db).revoke(token)
    clear_session_cookie(response)

    return {"logged_out": True}


@router.get("/me")
async def me(
    user_id: int = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get the logged-in user's profile."""
    user = await CredentialService(db).get_user(user_id)

    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "created_at": user.created_at.isoformat(),
    }
