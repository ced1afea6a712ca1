#!/usr/bin/env python3
"""
Onsite Reservation Database Initialization Script

This script creates the tables, seeds the default departments and can
optionally create a demo administrator.
"""

import asyncio
import sys
from typing import Optional

from fastapi_users import exceptions
from fastapi_users_db_sqlalchemy import SQLAlchemyUserDatabase

from onsite_reservation.auth.users import UserCreate, UserManager
from onsite_reservation.config import Config, get_config
from onsite_reservation.database import (
    Department,
    Role,
    User,
    create_engine_and_sessionmaker,
    init_db,
)

DEMO_USERNAME = "demo"
DEMO_EMAIL = "demo@example.com"
DEMO_PASSWORD = "changeme123"


async def create_demo_user(session, config: Optional[Config] = None) -> bool:
    """Create the demo administrator in the first department.

    Returns:
        True if the user was created, False if it already existed.
    """
    department = await session.get(Department, 1)
    manager = UserManager(SQLAlchemyUserDatabase(session, User), config or get_config())
    try:
        await manager.get_by_username(DEMO_USERNAME)
        return False
    except exceptions.UserNotExists:
        pass

    await manager.create(
        UserCreate(
            username=DEMO_USERNAME,
            email=DEMO_EMAIL,
            password=DEMO_PASSWORD,
            role=Role.ADMIN,
            is_active=True,
            department_id=department.department_id if department else None,
        ),
        safe=False,
    )
    return True


async def init_database(create_demo: bool = False):
    """Initialize the database and optionally create demo user."""
    config = get_config()

    print("🗄️  Initializing Onsite Reservation Database")
    print("=" * 50)
    print(f"   Database: {config.database_url}")

    engine, session_maker = create_engine_and_sessionmaker(config.database_url)

    try:
        print("\n📋 Creating database tables and departments...")
        await init_db(engine, session_maker)
        print("✓ Database tables created")

        if create_demo:
            print("\n👤 Creating demo user...")
            async with session_maker() as session:
                if await create_demo_user(session, config):
                    print("✓ Demo user created")
                    print(f"  Username: {DEMO_USERNAME}")
                    print(f"  Password: {DEMO_PASSWORD}")
                else:
                    print("⚠️  Demo user already exists")

        print("\n" + "=" * 50)
        print("✅ Database initialization complete!")
        print("")

    except Exception as e:
        print(f"\n❌ Error during initialization: {e}")
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(
        description="Initialize Onsite Reservation database"
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help=f"Create a demo administrator (username: {DEMO_USERNAME})"
    )

    args = parser.parse_args()

    asyncio.run(init_database(create_demo=args.demo))
