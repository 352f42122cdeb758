"""Seed the database with the default roles and permissions."""

import asyncio
import sys

from db import AsyncSessionLocal, close_db, init_db
from logging_config import setup_logging
from services.seed_service import seed_roles_and_permissions

import config


async def seed_db():
    await init_db()
    async with AsyncSessionLocal() as db:
        roles = await seed_roles_and_permissions(db)

    print("=" * 50)
    print("SEEDED ROLES")
    print("=" * 50)
    for name, role in roles.items():
        print(f"  - {name} (id={role.id})")

    await close_db()


if __name__ == "__main__":
    setup_logging(config.settings.LOG_LEVEL, config.settings.SQL_LOG_LEVEL)
    # Fix for Windows asyncio
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(seed_db())
