import logging
from typing import Optional

from databases import Database
from fastapi import HTTPException, Request, status
from sqlalchemy import insert, select

from db_sqlalchemy import users
from errors import (InvalidCredentials, PasswordMismatch, PasswordTooShort,
                    PersistenceFailed, UsernameTaken, UsernameTooShort)
from expiration import utc_now
from models_sql import User
from passwords import hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6

# key inside the signed session cookie
SESSION_USER_KEY = "user_id"

USER_COLUMNS = ("id", "username", "password_hash", "created_at")


def row_to_user(row) -> User:
    return User(**{name: row[name] for name in USER_COLUMNS})


class UserStore:
    """Registration, login and session lookup over the ``users`` table."""

    def __init__(self, database: Database, clock=utc_now):
        self.database = database
        self.clock = clock

    async def get_user(self, user_id: int) -> Optional[User]:
        row = await self.database.fetch_one(select(users).where(users.c.id == user_id))
        return row_to_user(row) if row else None

    async def get_by_username(self, username: str) -> Optional[User]:
        row = await self.database.fetch_one(select(users).where(users.c.username == username))
        return row_to_user(row) if row else None

    async def register(self, username: str, password: str, confirm_password: str) -> int:
        """Create an account and return its id.

        Checks run in a fixed order so the first failing rule decides the
        message: username length, password length, confirmation, then
        uniqueness.
        """
        if len(username) < MIN_USERNAME_LENGTH:
            raise UsernameTooShort()
        if len(password) < MIN_PASSWORD_LENGTH:
            raise PasswordTooShort()
        if password != confirm_password:
            raise PasswordMismatch()
        if await self.get_by_username(username) is not None:
            raise UsernameTaken()

        password_hash = hash_password(password)

        q = insert(users).values(username=username, password_hash=password_hash,
                                 created_at=self.clock())
        try:
            await self.database.execute(q)
        except Exception as e:
            logger.error(f"Failed to create user {username!r}: {e}")
            raise PersistenceFailed("Failed to create account") from e
        user = await self.get_by_username(username)
        if user is None:
            raise PersistenceFailed("Failed to create account")
        user_id = user.id
        logger.info(f"User registered: {username} ({user_id})")
        return user_id

    async def login(self, username: str, password: str) -> int:
        user = await self.get_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentials()
        return user.id

    async def resolve_session(self, token) -> Optional[User]:
        """Map a session token to a user. Never raises; any failure is anonymous."""
        if token is None:
            return None
        try:
            user_id = int(token)
        except (TypeError, ValueError):
            return None
        try:
            return await self.get_user(user_id)
        except Exception as e:
            logger.warning(f"Session lookup failed for user {user_id}: {e}")
            return None


def login_session(request: Request, user_id: int) -> None:
    request.session[SESSION_USER_KEY] = user_id


def logout_session(request: Request) -> None:
    request.session.clear()


async def optional_user(request: Request) -> Optional[User]:
    """Current user from the session cookie, or ``None`` (treat as anonymous)."""
    session = getattr(request, "session", None)
    token = session.get(SESSION_USER_KEY) if session else None
    return await request.app.state.users.resolve_session(token)


async def require_session(request: Request) -> User:
    """Require a logged-in user; browsers are sent to the login page otherwise."""
    user = await optional_user(request)
    if user is None:
        raise HTTPException(status_code=status.HTTP_303_SEE_OTHER, headers={"Location": "/login"})
    return user
