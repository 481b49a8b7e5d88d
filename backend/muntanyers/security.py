"""
muntanyers Backend: Credentials and Session Identity
====================================================

What:  bcrypt password hashing and the cookie-session helpers that bind a
       request to an account id.
Who:   AccountService hashes and verifies; routes depend on require_user.

The session itself is Starlette's SessionMiddleware (signed cookie). Routes
never read it directly: they receive the caller's id from require_user and
pass it explicitly into every service call.
"""

from typing import Optional

import bcrypt
from fastapi import Request

from muntanyers.config import settings
from muntanyers.exceptions import AuthenticationError, ValidationError

SESSION_USER_ID = "user_id"
SESSION_USERNAME = "username"

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def _encode_password(password: str) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            message=f"Password must be at most {MAX_PASSWORD_BYTES} bytes long",
            field="password",
        )
    return encoded


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode_password(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison; False for malformed hashes or oversized input."""
    encoded = password.encode("utf-8")
    if not password_hash or len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        return False


# ── Session helpers ───────────────────────────────────────────────────────


def login_session(request: Request, user_id: int, username: str) -> None:
    request.session[SESSION_USER_ID] = user_id
    request.session[SESSION_USERNAME] = username


def logout_session(request: Request) -> None:
    request.session.clear()


def current_user_id(request: Request) -> Optional[int]:
    return request.session.get(SESSION_USER_ID)


def require_user(request: Request) -> int:
    """
    FastAPI dependency returning the authenticated account id.

    Raises:
        AuthenticationError: the request carries no session identity
    """
    user_id = current_user_id(request)
    if user_id is None:
        raise AuthenticationError(message="Not authenticated. Please log in.")
    return int(user_id)
