"""Tests for database bootstrap and the init script."""

import logging
import unittest
from unittest.mock import patch

from sqlalchemy import func, select

from init_db import create_demo_user
from onsite_reservation.config import Config
from onsite_reservation.database import (
    DEFAULT_DEPARTMENTS,
    Department,
    Role,
    User,
    create_engine_and_sessionmaker,
    init_db,
    seed_departments,
)
from onsite_reservation.run_api import LOG_FORMAT, setup_logging


class TestDatabaseBootstrap(unittest.IsolatedAsyncioTestCase):
    """Test cases for table creation and seeding."""

    async def asyncSetUp(self):
        """Set up test fixtures."""
        self.engine, self.session_maker = create_engine_and_sessionmaker("sqlite+aiosqlite://")
        await init_db(self.engine, self.session_maker)

    async def asyncTearDown(self):
        await self.engine.dispose()

    async def test_default_departments_seeded(self):
        """Test that init_db creates the default departments once."""
        async with self.session_maker() as session:
            names = (await session.scalars(select(Department.name))).all()
            self.assertEqual(sorted(names), sorted(DEFAULT_DEPARTMENTS))

            self.assertEqual(await seed_departments(session), 0)
            count = await session.scalar(select(func.count()).select_from(Department))
            self.assertEqual(count, len(DEFAULT_DEPARTMENTS))

    async def test_create_demo_user(self):
        """Test the demo administrator is created only once."""
        async with self.session_maker() as session:
            self.assertTrue(await create_demo_user(session))
            self.assertFalse(await create_demo_user(session))

            user = (await session.scalars(select(User).where(User.username == "demo"))).one()
            self.assertEqual(user.role, Role.ADMIN)
            self.assertEqual(user.department_id, 1)
            self.assertNotEqual(user.hashed_password, "changeme123")


class TestSetupLogging(unittest.TestCase):
    """Test cases for logging setup."""

    @patch("onsite_reservation.run_api.logging.basicConfig")
    def test_setup_logging(self, mock_basic_config):
        """Test that logging uses the configured level and format."""
        config = Config()
        config.log_level = "WARNING"
        config.log_file = None

        setup_logging(config)

        kwargs = mock_basic_config.call_args.kwargs
        self.assertEqual(kwargs["level"], "WARNING")
        self.assertEqual(kwargs["format"], LOG_FORMAT)
        self.assertEqual(len(kwargs["handlers"]), 1)
        self.assertIsInstance(kwargs["handlers"][0], logging.StreamHandler)


if __name__ == "__main__":
    unittest.main()
