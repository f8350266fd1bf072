"""
Wiring of stores and services over one database handle.
"""

from dataclasses import dataclass
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from utilities.logger import AuditLogger

from .books import BookOwnershipService
from .database import BookStore, MemberStore, RoleStore
from .identity import IdentityResolver, MemberService
from .passwords import PasswordHasher
from .seed import DataInitializer


@dataclass
class CatalogServices:
    """Everything the web layer needs, built once per process."""
    roles: RoleStore
    members: MemberStore
    books: BookStore
    member_service: MemberService
    book_service: BookOwnershipService
    initializer: DataInitializer


def build_services(
    database: AsyncIOMotorDatabase,
    hasher: Optional[PasswordHasher] = None
) -> CatalogServices:
    hasher = hasher or PasswordHasher()
    audit = AuditLogger("catalog.audit")

    roles = RoleStore(database)
    members = MemberStore(database, roles)
    books = BookStore(database, members)

    return CatalogServices(
        roles=roles,
        members=members,
        books=books,
        member_service=MemberService(members, roles, hasher=hasher, audit=audit),
        book_service=BookOwnershipService(books, IdentityResolver(members), audit=audit),
        initializer=DataInitializer(roles, members, books, hasher=hasher),
    )
