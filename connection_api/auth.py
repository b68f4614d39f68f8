"""
Session-cookie authentication.

SessionMiddleware (installed in main.py) signs the cookie; this module only
reads and writes the ``user_id`` key and hashes passwords.
"""
from fastapi import HTTPException, Request, status
from werkzeug.security import check_password_hash, generate_password_hash

from connection_api.storage.base import UserRecord

SESSION_USER_KEY = "user_id"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(user: UserRecord, password: str) -> bool:
    return check_password_hash(user.password_hash, password)


def login_session(request: Request, user: UserRecord) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id
    request.session["username"] = user.username


def logout_session(request: Request) -> None:
    request.session.clear()


async def get_current_user_id(request: Request) -> str:
    """FastAPI dependency: the logged-in user's id, or 401."""
    user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user_id
