"""
Forum error taxonomy.

Every error carries the HTTP status it maps to and a client-safe
detail message. Operator-facing context goes to the log, not here.
"""


class ForumError(Exception):
    """Base class for all forum errors."""

    status_code: int = 400
    detail: str = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.detail
        super().__init__(self.detail)


class InvalidInputError(ForumError):
    """Malformed or missing fields."""

    status_code = 400
    detail = "Invalid input"


class NotFoundError(ForumError):
    """Referenced entity does not exist."""

    status_code = 404
    detail = "Not found"


class ForbiddenError(ForumError):
    """Authenticated but not allowed to act on the target."""

    status_code = 403
    detail = "You are not allowed to do that"


class ConflictError(ForumError):
    """Uniqueness conflict on registration."""

    status_code = 409
    detail = "Already exists"


class DuplicateEmailError(ConflictError):
    detail = "Email already registered"


class DuplicateUsernameError(ConflictError):
    detail = "Username already taken"


class AuthenticationError(ForumError):
    """Credential or session failure."""

    status_code = 401
    detail = "Authentication required"


class InvalidCredentialsError(AuthenticationError):
    detail = "Invalid email or password"


class InvalidSessionError(AuthenticationError):
    detail = "Invalid session"


class SessionExpiredError(AuthenticationError):
    detail = "Session expired"


class StorageError(ForumError):
    """Unexpected failure in the underlying store."""

    status_code = 500
    detail = "Something went wrong on our end. Please try again later."
