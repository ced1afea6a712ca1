"""
FastAPI Users configuration - user manager, session cookie and session store.
Password hashing and credential checks stay inside the fastapi-users library.
"""

from datetime import datetime, timedelta
from typing import Optional
import logging

from fastapi import Depends, Request, Response
from fastapi_users import BaseUserManager, IntegerIDMixin, exceptions, schemas
from fastapi_users.authentication import AuthenticationBackend, CookieTransport
from fastapi_users.authentication.strategy.db import AccessTokenDatabase, DatabaseStrategy
from fastapi_users_db_sqlalchemy import SQLAlchemyUserDatabase
from fastapi_users_db_sqlalchemy.access_token import SQLAlchemyAccessTokenDatabase
from fastapi_users_db_sqlalchemy.generics import now_utc
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Config
from ..database import Role, User, UserSession, get_async_session

logger = logging.getLogger(__name__)

# ============== Pydantic Schemas ==============

class UserRead(BaseModel):
    """Public projection of a user returned to clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    username: str
    email: str
    role: Role
    active: bool
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class UserCreate(schemas.BaseUserCreate):
    """User registration data. ``password`` is plain text until the manager hashes it."""

    username: str
    role: Role = Role.STAFF
    department_id: Optional[int] = None


# ============== Database Adapters ==============

async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    """Get user database adapter."""
    yield SQLAlchemyUserDatabase(session, User)


async def get_access_token_db(session: AsyncSession = Depends(get_async_session)):
    """Get session store adapter."""
    yield SQLAlchemyAccessTokenDatabase(session, UserSession)


# ============== User Manager ==============

class UserManager(IntegerIDMixin, BaseUserManager[User, int]):
    """User manager that authenticates by username instead of email."""

    def __init__(self, user_db: SQLAlchemyUserDatabase, config: Config, password_helper=None):
        super().__init__(user_db, password_helper)
        self.config = config
        self.reset_password_token_secret = config.secret_key
        self.verification_token_secret = config.secret_key

    async def get_by_username(self, username: str) -> User:
        statement = select(User).where(User.username == username)
        results = await self.user_db.session.execute(statement)
        user = results.unique().scalar_one_or_none()
        if user is None:
            raise exceptions.UserNotExists()
        return user

    async def authenticate(self, credentials) -> Optional[User]:
        """Check a username/password pair.

        Returns:
            The user if the password matches, None otherwise.
        """
        try:
            user = await self.get_by_username(credentials.username)
        except exceptions.UserNotExists:
            # Run the hasher to mitigate timing attack
            self.password_helper.hash(credentials.password)
            return None

        verified, updated_password_hash = self.password_helper.verify_and_update(
            credentials.password, user.hashed_password
        )
        if not verified:
            return None
        if updated_password_hash is not None:
            await self.user_db.update(user, {"hashed_password": updated_password_hash})

        return user

    async def validate_password(self, password: str, user) -> None:
        min_length = self.config.password_min_length
        if len(password) < min_length:
            raise exceptions.InvalidPasswordException(
                reason=f"Password should be at least {min_length} characters"
            )
        username = getattr(user, "username", None)
        if username and username.lower() in password.lower():
            raise exceptions.InvalidPasswordException(
                reason="Password should not contain the username"
            )

    async def on_after_register(self, user: User, request: Optional[Request] = None):
        """Called after successful registration."""
        logger.info(f"User {user.username} registered ({user.role.value})")

    async def on_after_login(
        self,
        user: User,
        request: Optional[Request] = None,
        response: Optional[Response] = None,
    ):
        """Called after successful login."""
        await self.user_db.update(user, {"last_login_at": now_utc()})


async def get_user_manager(
    request: Request, user_db: SQLAlchemyUserDatabase = Depends(get_user_db)
):
    """Get user manager instance bound to the application config."""
    yield UserManager(user_db, request.app.state.config)


# ============== Session Store ==============

class SessionStrategy(DatabaseStrategy):
    """Database-backed sessions that expire after a period of inactivity.

    Each successful read slides ``last_accessed_at`` forward; a session idle
    for longer than ``max_inactive_interval`` seconds is deleted on read.
    """

    def __init__(
        self,
        database: AccessTokenDatabase[UserSession],
        max_inactive_interval: int,
    ):
        super().__init__(database)
        self.max_inactive_interval = max_inactive_interval

    async def get_session(self, token: Optional[str]) -> Optional[UserSession]:
        if token is None:
            return None

        session = await self.database.get_by_token(token)
        if session is None:
            return None

        now = now_utc()
        if now - session.last_accessed_at > timedelta(seconds=self.max_inactive_interval):
            logger.info(f"Session for user {session.user_id} expired after inactivity")
            await self.database.delete(session)
            return None

        return await self.database.update(session, {"last_accessed_at": now})

def get_session_strategy(
    request: Request,
    access_token_db: AccessTokenDatabase[UserSession] = Depends(get_access_token_db),
) -> SessionStrategy:
    """Session strategy with the application's idle timeout."""
    return SessionStrategy(
        access_token_db, request.app.state.config.session_max_inactive_interval
    )


# ============== Authentication Backend ==============

def build_auth_backend(config: Config) -> AuthenticationBackend:
    """Cookie transport plus session store for one application."""
    # Session id travels in an HttpOnly cookie; no max-age so it lives for the browser session
    transport = CookieTransport(
        cookie_name=config.session_cookie_name,
        cookie_max_age=None,
        cookie_secure=config.session_cookie_secure,
        cookie_httponly=True,
        cookie_samesite=config.session_cookie_samesite,
    )
    return AuthenticationBackend(
        name="session",
        transport=transport,
        get_strategy=get_session_strategy,
    )


def get_cookie_transport(request: Request) -> CookieTransport:
    return request.app.state.auth_backend.transport


def set_session_cookie(response: Response, transport: CookieTransport, token: str) -> None:
    response.set_cookie(
        transport.cookie_name,
        token,
        max_age=transport.cookie_max_age,
        path=transport.cookie_path,
        domain=transport.cookie_domain,
        secure=transport.cookie_secure,
        httponly=transport.cookie_httponly,
        samesite=transport.cookie_samesite,
    )


def clear_session_cookie(response: Response, transport: CookieTransport) -> None:
    response.set_cookie(
        transport.cookie_name,
        "",
        max_age=0,
        path=transport.cookie_path,
        domain=transport.cookie_domain,
        secure=transport.cookie_secure,
        httponly=transport.cookie_httponly,
        samesite=transport.cookie_samesite,
    )
