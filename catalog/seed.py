"""
Startup data seeding.

Roles are always ensured. Demo members and sample books are created only when
missing, so running the initializer repeatedly is safe.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

import structlog

from .database import BookStore, MemberStore, RoleStore
from .models import BookCreate, Member, Role, RoleName
from .passwords import PasswordHasher

logger = structlog.get_logger(__name__)

DEMO_ACCOUNTS = [
    {
        "username": "user",
        "password": "user123",
        "display_name": "Demo User",
        "age": 25,
        "email": "user@test.com",
        "roles": [RoleName.USER],
    },
    {
        "username": "admin",
        "password": "admin123",
        "display_name": "Administrator",
        "age": 30,
        "email": "admin@test.com",
        "roles": [RoleName.USER, RoleName.ADMIN],
    },
]

SAMPLE_BOOKS = [
    ("user", BookCreate(
        title="Java Basics",
        author="Seong Namgung",
        price=30000,
        page_count=1022,
        description="Java programming from the fundamentals to real-world practice",
    )),
    ("user", BookCreate(
        title="Web Services with Spring Boot and AWS",
        author="Dongwook Lee",
        price=22000,
        page_count=416,
        description="Building a web service on Spring Boot and AWS",
    )),
    ("admin", BookCreate(
        title="Clean Code",
        author="Robert C. Martin",
        price=33000,
        page_count=464,
        description="How to write clean code",
    )),
]


class DataInitializer:
    """Creates roles, demo accounts and sample books."""

    def __init__(
        self,
        roles: RoleStore,
        members: MemberStore,
        books: BookStore,
        hasher: Optional[PasswordHasher] = None
    ):
        self.roles = roles
        self.members = members
        self.books = books
        self.hasher = hasher or PasswordHasher()

    async def ensure_roles(self) -> Dict[str, Role]:
        """Make sure every role in the vocabulary exists."""
        return {name.value: await self.roles.ensure(name.value) for name in RoleName}

    async def _ensure_member(self, account: dict, roles: Dict[str, Role]) -> Member:
        existing = await self.members.find_by_username(account["username"])
        if existing:
            return existing
        member = await self.members.insert(Member(
            username=account["username"],
            password_hash=self.hasher.hash(account["password"]),
            display_name=account["display_name"],
            age=account["age"],
            email=account["email"],
            roles={roles[name.value] for name in account["roles"]},
        ))
        logger.info("Demo member created", username=member.username)
        return member

    async def _create_sample_books(self, owners: Dict[str, Member]) -> int:
        created = 0
        for username, book in SAMPLE_BOOKS:
            await self.books.insert(book.model_dump(), owners[username].id, datetime.utcnow())
            created += 1
        logger.info("Sample books created", count=created)
        return created

    async def run(self, demo_data: bool = True) -> Dict[str, int]:
        """
        Seed the catalog.

        Args:
            demo_data: Also create demo accounts and, if no book exists yet,
                sample books

        Returns:
            Counts of roles ensured, members present and books created
        """
        logger.info("Initial data seeding started", demo_data=demo_data)
        roles = await self.ensure_roles()
        summary = {"roles": len(roles), "members": 0, "books_created": 0}

        if demo_data:
            owners = {}
            for account in DEMO_ACCOUNTS:
                owners[account["username"]] = await self._ensure_member(account, roles)
            summary["members"] = len(owners)
            if await self.books.count() == 0:
                summary["books_created"] = await self._create_sample_books(owners)

        logger.info("Initial data seeding completed", **summary)
        return summary


def demo_login_info(accounts: Iterable[dict] = DEMO_ACCOUNTS) -> List[str]:
    """Human-readable lines describing the demo accounts."""
    lines = []
    for account in accounts:
        roles = ", ".join(name.value for name in account["roles"])
        lines.append(f"{account['username']} / {account['password']} ({roles})")
    return lines
