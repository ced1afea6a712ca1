"""User management service used by the auth routes."""

import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi_users import exceptions

from ..auth.users import UserCreate, UserManager, UserRead, get_user_manager
from ..database import Department, User

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Base class for user service failures."""


class UserNotFound(UserServiceError):
    def __init__(self, username: str):
        super().__init__(f"User not found with username: {username}")
        self.username = username


class DepartmentNotFound(UserServiceError):
    def __init__(self, department_id: int):
        super().__init__(f"Department not found with id: {department_id}")
        self.department_id = department_id


class UserService:
    """Existence checks, creation and lookup of users.

    Hashing and the duplicate-email guard are left to the fastapi-users
    user manager.
    """

    def __init__(self, user_manager: UserManager):
        self.user_manager = user_manager

    @property
    def session(self) -> AsyncSession:
        return self.user_manager.user_db.session

    async def exists_by_username(self, username: str) -> bool:
        result = await self.session.execute(select(User.id).where(User.username == username))
        return result.first() is not None

    async def exists_by_email(self, email: str) -> bool:
        result = await self.session.execute(
            select(User.id).where(func.lower(User.email) == func.lower(email))
        )
        return result.first() is not None

    async def create_user(self, user_create: UserCreate) -> UserRead:
        """Persist a new user.

        Raises:
            DepartmentNotFound: The referenced department does not exist.
            fastapi_users.exceptions.UserAlreadyExists: The email is taken.
            fastapi_users.exceptions.InvalidPasswordException: Password rejected.
        """
        if user_create.department_id is not None:
            department = await self.session.get(Department, user_create.department_id)
            if department is None:
                raise DepartmentNotFound(user_create.department_id)

        user = await self.user_manager.create(user_create, safe=False)
        return await self.to_read(user)

    async def get_user_by_username(self, username: str) -> UserRead:
        try:
            user = await self.user_manager.get_by_username(username)
        except exceptions.UserNotExists:
            raise UserNotFound(username)
        return await self.to_read(user)

    async def to_read(self, user: User) -> UserRead:
        """Build the public projection of a user."""
        department: Optional[Department] = None
        if user.department_id is not None:
            department = await self.session.get(Department, user.department_id)

        return UserRead(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            active=user.is_active,
            department_id=user.department_id,
            department_name=department.name if department is not None else None,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
        )


async def get_user_service(user_manager: UserManager = Depends(get_user_manager)):
    """Get user service instance."""
    yield UserService(user_manager)
