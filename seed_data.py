#!/usr/bin/env python3
"""
Data seeding utility.

Commands:
- roles  - Ensure the USER and ADMIN roles exist
- demo   - Ensure roles, demo accounts and sample books exist
- stats  - Show collection counts
"""

import asyncio
import sys

from catalog.database import MongoDBManager
from catalog.seed import demo_login_info
from catalog.services import build_services
from utilities.config import config
from utilities.logger import setup_logging


async def seed(demo_data: bool) -> None:
    """Run the data initializer against the configured database."""
    db_manager = MongoDBManager(config.mongodb_url, config.mongodb_database)
    try:
        database = await db_manager.connect()
        summary = await build_services(database).initializer.run(demo_data=demo_data)

        print(f"✅ Roles ensured: {summary['roles']}")
        if demo_data:
            print(f"👤 Demo members present: {summary['members']}")
            print(f"📚 Sample books created: {summary['books_created']}")
            print()
            print("=" * 40)
            print("Demo accounts")
            print("=" * 40)
            for line in demo_login_info():
                print(f"  {line}")
            print("=" * 40)
    finally:
        await db_manager.disconnect()


async def show_statistics() -> None:
    """Print document counts for each collection."""
    db_manager = MongoDBManager(config.mongodb_url, config.mongodb_database)
    try:
        await db_manager.connect()
        health = await db_manager.health_check()
        if health["status"] != "healthy":
            print(f"❌ Database unhealthy: {health.get('error')}")
            sys.exit(1)
        print(f"🏷️  Roles: {health['roles_count']}")
        print(f"👤 Members: {health['members_count']}")
        print(f"📚 Books: {health['books_count']}")
    finally:
        await db_manager.disconnect()


async def main():
    """Main function."""
    if len(sys.argv) < 2:
        print("Usage: python seed_data.py [roles|demo|stats]")
        print()
        print("Commands:")
        print("  roles  - Ensure the USER and ADMIN roles exist")
        print("  demo   - Ensure roles, demo accounts and sample books exist")
        print("  stats  - Show collection counts")
        sys.exit(1)

    command = sys.argv[1].lower()

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    if command == "roles":
        await seed(demo_data=False)
    elif command == "demo":
        await seed(demo_data=True)
    elif command == "stats":
        await show_statistics()
    else:
        print(f"❌ Unknown command: {command}")
        print("Available commands: roles, demo, stats")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
