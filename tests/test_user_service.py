"""Tests for the user service and session strategy."""

import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from fastapi_users import exceptions

from onsite_reservation.auth.users import SessionStrategy, UserCreate, UserManager
from onsite_reservation.config import Config
from onsite_reservation.database import Department, Role
from onsite_reservation.services.user_service import (
    DepartmentNotFound,
    UserNotFound,
    UserService,
)


def make_user(**overrides):
    values = {
        "id": 7,
        "username": "alice",
        "email": "alice@example.com",
        "role": Role.MANAGER,
        "is_active": True,
        "department_id": 2,
        "created_at": datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc),
        "last_login_at": None,
    }
    values.update(overrides)
    return MagicMock(**values)


class TestUserService(unittest.IsolatedAsyncioTestCase):
    """Test cases for UserService."""

    def setUp(self):
        """Set up test fixtures."""
        self.session = MagicMock()
        self.session.get = AsyncMock(return_value=Department(department_id=2, name="Front Desk"))
        self.session.execute = AsyncMock(return_value=MagicMock())
        self.manager = MagicMock()
        self.manager.user_db.session = self.session
        self.service = UserService(self.manager)

    async def test_exists_by_username(self):
        """Test the username existence check."""
        self.session.execute.return_value.first.return_value = (7,)
        self.assertTrue(await self.service.exists_by_username("alice"))

        self.session.execute.return_value.first.return_value = None
        self.assertFalse(await self.service.exists_by_username("nobody"))

    async def test_exists_by_email(self):
        """Test the email existence check."""
        self.session.execute.return_value.first.return_value = None
        self.assertFalse(await self.service.exists_by_email("new@example.com"))
        self.session.execute.assert_awaited_once()

    async def test_create_user(self):
        """Test creating a user delegates hashing to the manager."""
        self.manager.create = AsyncMock(return_value=make_user())
        user_create = UserCreate(
            username="alice",
            email="alice@example.com",
            password="s3cret-pass",
            role=Role.MANAGER,
            is_active=True,
            department_id=2,
        )

        created = await self.service.create_user(user_create)

        self.manager.create.assert_awaited_once_with(user_create, safe=False)
        self.assertEqual(created.username, "alice")
        self.assertEqual(created.role, Role.MANAGER)
        self.assertEqual(created.department_name, "Front Desk")
        self.assertTrue(created.active)

    async def test_create_user_unknown_department(self):
        """Test that a missing department aborts creation."""
        self.session.get.return_value = None
        self.manager.create = AsyncMock()
        user_create = UserCreate(
            username="alice",
            email="alice@example.com",
            password="s3cret-pass",
            department_id=99,
        )

        with self.assertRaises(DepartmentNotFound) as ctx:
            await self.service.create_user(user_create)

        self.assertIn("99", str(ctx.exception))
        self.manager.create.assert_not_awaited()

    async def test_get_user_by_username(self):
        """Test looking up the public projection of a user."""
        self.manager.get_by_username = AsyncMock(return_value=make_user(department_id=None))

        user_read = await self.service.get_user_by_username("alice")

        self.assertEqual(user_read.id, 7)
        self.assertIsNone(user_read.department_name)
        self.session.get.assert_not_awaited()
        dumped = user_read.model_dump(by_alias=True, mode="json")
        self.assertIn("departmentId", dumped)
        self.assertIn("createdAt", dumped)
        self.assertNotIn("hashed_password", dumped)

    async def test_get_user_by_username_missing(self):
        """Test lookup of an unknown username."""
        self.manager.get_by_username = AsyncMock(side_effect=exceptions.UserNotExists())

        with self.assertRaises(UserNotFound) as ctx:
            await self.service.get_user_by_username("ghost")

        self.assertEqual(ctx.exception.username, "ghost")


class TestSessionStrategy(unittest.IsolatedAsyncioTestCase):
    """Test cases for idle expiry of sessions."""

    def setUp(self):
        """Set up test fixtures."""
        self.database = MagicMock()
        self.database.get_by_token = AsyncMock()
        self.database.update = AsyncMock(side_effect=lambda session, values: session)
        self.database.delete = AsyncMock()
        self.strategy = SessionStrategy(self.database, max_inactive_interval=600)

    async def test_no_token(self):
        """Test that a missing cookie yields no session."""
        self.assertIsNone(await self.strategy.get_session(None))
        self.database.get_by_token.assert_not_awaited()

    async def test_unknown_token(self):
        """Test that an unknown session id yields no session."""
        self.database.get_by_token.return_value = None
        self.assertIsNone(await self.strategy.get_session("unknown"))

    async def test_active_session_is_touched(self):
        """Test that reading a session slides its last access time."""
        session = MagicMock(
            token="abc",
            user_id=7,
            last_accessed_at=datetime.now(timezone.utc) - timedelta(seconds=30),
        )
        self.database.get_by_token.return_value = session

        result = await self.strategy.get_session("abc")

        self.assertIs(result, session)
        args = self.database.update.await_args.args
        self.assertIs(args[0], session)
        self.assertIn("last_accessed_at", args[1])
        self.database.delete.assert_not_awaited()

    async def test_idle_session_expires(self):
        """Test that an idle session is deleted on read."""
        session = MagicMock(
            token="abc",
            user_id=7,
            last_accessed_at=datetime.now(timezone.utc) - timedelta(seconds=601),
        )
        self.database.get_by_token.return_value = session

        self.assertIsNone(await self.strategy.get_session("abc"))
        self.database.delete.assert_awaited_once_with(session)


class TestUserManager(unittest.IsolatedAsyncioTestCase):
    """Test cases for the password policy."""

    def setUp(self):
        """Set up test fixtures."""
        self.config = Config()
        self.config.password_min_length = 12
        self.manager = UserManager(MagicMock(), self.config)

    async def test_password_min_length_from_config(self):
        """Test that the minimum length comes from the injected config."""
        user = MagicMock(username="alice")
        with self.assertRaises(exceptions.InvalidPasswordException) as ctx:
            await self.manager.validate_password("short-pw", user)
        self.assertIn("12", ctx.exception.reason)

        await self.manager.validate_password("long-enough-pw", user)

    async def test_password_must_not_contain_username(self):
        """Test the username check is case-insensitive."""
        with self.assertRaises(exceptions.InvalidPasswordException):
            await self.manager.validate_password("my-ALICE-password", MagicMock(username="alice"))

    def test_token_secrets_from_config(self):
        """Test the manager signs tokens with the configured secret."""
        self.assertEqual(self.manager.reset_password_token_secret, self.config.secret_key)
        self.assertEqual(self.manager.verification_token_secret, self.config.secret_key)


if __name__ == "__main__":
    unittest.main()
