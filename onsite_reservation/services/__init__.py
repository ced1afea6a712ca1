"""Application services."""

from .user_service import (
    UserService,
    UserServiceError,
    UserNotFound,
    DepartmentNotFound,
    get_user_service,
)

__all__ = [
    "UserService",
    "UserServiceError",
    "UserNotFound",
    "DepartmentNotFound",
    "get_user_service",
]
