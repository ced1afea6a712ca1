"""Database models and setup for users, departments and login sessions."""

import enum
from datetime import datetime
import logging
from typing import AsyncGenerator, Iterable, Tuple

from fastapi import Request
from fastapi_users_db_sqlalchemy import SQLAlchemyBaseUserTable
from fastapi_users_db_sqlalchemy.access_token import SQLAlchemyBaseAccessTokenTable
from fastapi_users_db_sqlalchemy.generics import TIMESTAMPAware, now_utc
from sqlalchemy import Column, Enum, ForeignKey, Integer, String, func, select
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.pool import StaticPool

from .config import DATA_DIR

logger = logging.getLogger(__name__)

DEFAULT_DEPARTMENTS = (
    "Administration",
    "Front Desk",
    "Housekeeping",
    "Maintenance",
)


# ============== Database Models ==============

class Base(DeclarativeBase):
    pass


class Role(str, enum.Enum):
    """Roles a user can hold. Granted authorities are ``ROLE_<name>``."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"

    @property
    def authority(self) -> str:
        return f"ROLE_{self.value}"


class Department(Base):
    """Department a user belongs to."""

    __tablename__ = "departments"

    department_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)


class User(SQLAlchemyBaseUserTable[int], Base):
    """User account. Email, password hash and status flags come from fastapi-users."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)  # type: ignore

    username = Column(String(50), unique=True, index=True, nullable=False)
    role = Column(Enum(Role, name="user_role"), nullable=False, default=Role.STAFF)
    department_id = Column(
        Integer, ForeignKey("departments.department_id"), index=True, nullable=True
    )
    created_at = Column(TIMESTAMPAware(timezone=True), default=now_utc, nullable=False)
    last_login_at = Column(TIMESTAMPAware(timezone=True), nullable=True)


class UserSession(SQLAlchemyBaseAccessTokenTable[int], Base):
    """Server-side login session. ``token`` is the session id sent in the cookie."""

    __tablename__ = "user_sessions"

    @declared_attr
    def user_id(cls) -> Mapped[int]:
        return mapped_column(
            Integer, ForeignKey("users.id", ondelete="cascade"), index=True, nullable=False
        )

    last_accessed_at: Mapped[datetime] = mapped_column(
        TIMESTAMPAware(timezone=True), nullable=False, default=now_utc
    )


# ============== Engine & Session ==============

def create_engine_and_sessionmaker(
    database_url: str,
) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create the async engine and session factory for a database URL."""
    url = make_url(database_url)
    kwargs = {}
    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        else:
            DATA_DIR.mkdir(exist_ok=True)
    engine = create_async_engine(database_url, echo=False, **kwargs)
    return engine, async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables(engine: AsyncEngine):
    """Create database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_departments(
    session: AsyncSession, names: Iterable[str] = DEFAULT_DEPARTMENTS
) -> int:
    """Insert the default departments when the table is empty.

    Returns:
        Number of departments created.
    """
    count = await session.scalar(select(func.count()).select_from(Department))
    if count:
        return 0

    departments = [Department(name=name) for name in names]
    session.add_all(departments)
    await session.commit()
    logger.info(f"Seeded {len(departments)} departments")
    return len(departments)


async def init_db(engine: AsyncEngine, session_maker: async_sessionmaker[AsyncSession]):
    """Create tables and reference data."""
    await create_db_and_tables(engine)
    async with session_maker() as session:
        await seed_departments(session)


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session for the application handling the request."""
    async with request.app.state.session_maker() as session:
        yield session
