"""
Pytest configuration and shared fixtures.
"""

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from catalog.database import MongoDBManager
from catalog.models import BookCreate, Member, MemberCreate, RoleName
from catalog.passwords import PasswordHasher
from catalog.services import build_services


@pytest.fixture
def fast_hasher():
    """Argon2 hasher with minimal cost so tests stay quick."""
    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest_asyncio.fixture
async def database():
    """In-memory MongoDB database with the catalog indexes created."""
    manager = MongoDBManager(
        connection_url="mongodb://localhost:27017",
        database_name="catalog_test",
        client=AsyncMongoMockClient()
    )
    yield await manager.connect()
    await manager.disconnect()


@pytest_asyncio.fixture
async def services(database, fast_hasher):
    """Catalog services over the in-memory database, with roles seeded."""
    svc = build_services(database, hasher=fast_hasher)
    await svc.initializer.ensure_roles()
    return svc


@pytest_asyncio.fixture
async def alice(services):
    return await services.member_service.register(
        MemberCreate(username="alice", password="alice-pw", display_name="Alice", age=30, email="alice@example.com")
    )


@pytest_asyncio.fixture
async def bob(services):
    return await services.member_service.register(
        MemberCreate(username="bob", password="bob-pw", display_name="Bob")
    )


@pytest_asyncio.fixture
async def admin(services, fast_hasher):
    """A member holding both USER and ADMIN roles."""
    user_role = await services.roles.find_by_name(RoleName.USER.value)
    admin_role = await services.roles.find_by_name(RoleName.ADMIN.value)
    return await services.members.insert(Member(
        username="admin",
        password_hash=fast_hasher.hash("admin-pw"),
        display_name="Administrator",
        roles={user_role, admin_role},
    ))


@pytest.fixture
def sample_book():
    """Candidate book for registration."""
    return BookCreate(title="A", author="Some Author", price=1000, page_count=10)
