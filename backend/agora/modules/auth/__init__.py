"""
Auth Module - accounts and login sessions.

Features:
- Registration with bcrypt password hashing
- Uniform credential checks
- Single-session-per-user token store with lazy expiry
"""

from agora.modules.auth.credentials import CredentialService
from agora.modules.auth.sessions import SessionStore, SessionSweeper

__all__ = [
    "CredentialService",
    "SessionStore",
    "SessionSweeper",
]
