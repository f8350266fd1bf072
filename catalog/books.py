"""
Book service with ownership-based authorization.

The acting identity (and, for deletes, its permission labels) is always
passed in by the caller from the authenticated session. Request payloads
never decide who owns a book.
"""

from datetime import datetime
from typing import Iterable, List, Optional

import structlog

from utilities.logger import AuditLogger

from .database import BookStore
from .errors import Forbidden, NotFound, Unauthenticated
from .identity import IdentityResolver
from .models import ADMIN_PERMISSION, Book, BookCreate, BookPatch

logger = structlog.get_logger(__name__)

LOGIN_REQUIRED = "Login is required"


def _require_identity(identity: Optional[str]) -> str:
    if not identity or not identity.strip():
        raise Unauthenticated(LOGIN_REQUIRED)
    return identity


class BookOwnershipService:
    """CRUD on books where only owners modify and owners or admins delete."""

    def __init__(
        self,
        books: BookStore,
        resolver: IdentityResolver,
        audit: Optional[AuditLogger] = None
    ):
        self.books = books
        self.resolver = resolver
        self.audit = audit or AuditLogger("catalog.audit")

    async def register(self, candidate: BookCreate, acting_identity: Optional[str]) -> Book:
        """Store a new book owned by the acting member."""
        identity = _require_identity(acting_identity)
        owner = await self.resolver.resolve(identity)

        book_id = await self.books.insert(candidate.model_dump(), owner.id, datetime.utcnow())
        self.audit.log_book_mutation("register", book_id, identity)
        return await self.find_by_id(book_id)

    async def update(self, book_id: str, patch: BookPatch, acting_identity: Optional[str]) -> Book:
        """
        Overwrite the mutable fields of a book. Admins get no override here.

        Raises:
            Unauthenticated: no acting identity
            NotFound: the book does not exist
            Forbidden: the acting identity does not own the book
        """
        identity = _require_identity(acting_identity)
        book = await self.find_by_id(book_id)

        if book.owner_username != identity:
            self.audit.log_access_denied("update", book.id, identity, book.owner_username)
            raise Forbidden("Only the owner may modify this book")

        updated = await self.books.update_if_owned(
            book.id, book.registered_by.id, patch.model_dump(), datetime.utcnow()
        )
        if updated is None:
            # deleted or re-owned between the check and the write
            raise NotFound(f"Book not found: {book_id}")
        self.audit.log_book_mutation("update", book.id, identity)
        return updated

    async def delete(
        self,
        book_id: str,
        acting_identity: Optional[str],
        acting_permissions: Iterable[str] = ()
    ) -> None:
        """
        Remove a book owned by the acting identity, or any book for an admin.

        Raises:
            Unauthenticated: no acting identity
            NotFound: the book does not exist
            Forbidden: neither owner nor admin
        """
        identity = _require_identity(acting_identity)
        book = await self.find_by_id(book_id)

        is_owner = book.owner_username == identity
        is_admin = ADMIN_PERMISSION in set(acting_permissions)
        if not is_owner and not is_admin:
            self.audit.log_access_denied("delete", book.id, identity, book.owner_username)
            raise Forbidden("No permission to delete this book")

        if book.registered_by is not None:
            deleted = await self.books.delete_if_owned(book.id, book.registered_by.id)
        else:
            # owner record is gone, so only an admin gets here
            deleted = await self.books.delete_by_id(book.id)
        if not deleted:
            raise NotFound(f"Book not found: {book_id}")
        self.audit.log_book_mutation("delete", book.id, identity)

    async def find_all(self) -> List[Book]:
        """All books, newest first, owners attached."""
        return await self.books.find_all_newest_first()

    async def find_by_id(self, book_id: str) -> Book:
        book = await self.books.find_by_id(book_id)
        if book is None:
            raise NotFound(f"Book not found: {book_id}")
        return book

    async def search_by_title(self, fragment: str) -> List[Book]:
        return await self.books.search_title(fragment)

    async def search_by_author(self, fragment: str) -> List[Book]:
        return await self.books.search_author(fragment)

    async def find_by_price_range(self, min_price: int, max_price: int) -> List[Book]:
        if min_price > max_price:
            min_price, max_price = max_price, min_price
        return await self.books.find_by_price_range(min_price, max_price)

    async def find_owned_by(self, acting_identity: Optional[str]) -> List[Book]:
        identity = _require_identity(acting_identity)
        owner = await self.resolver.resolve(identity)
        return await self.books.find_by_owner(owner.id)

    async def count_owned_by(self, acting_identity: Optional[str]) -> int:
        identity = _require_identity(acting_identity)
        owner = await self.resolver.resolve(identity)
        return await self.books.count_by_owner(owner.id)
