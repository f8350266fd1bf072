"""
MongoDB database utilities for async operations.
Handles connection, indexing, and CRUD operations for roles, members and books.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from .errors import Conflict
from .models import Book, Member, Role

logger = structlog.get_logger(__name__)

ROLES = "roles"
MEMBERS = "members"
BOOKS = "books"


def to_object_id(value: str) -> Optional[ObjectId]:
    """Parse an identifier, returning None when it is malformed."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _contains(fragment: str) -> Dict[str, str]:
    """Case-insensitive substring filter with the fragment taken literally."""
    return {"$regex": re.escape(fragment), "$options": "i"}


class MongoDBManager:
    """
    Async MongoDB manager.
    Owns the client and database handles and creates indexes.
    """

    def __init__(
        self,
        connection_url: str,
        database_name: str,
        client: Optional[AsyncIOMotorClient] = None
    ):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            client: Pre-built client; when given no ping is sent on connect
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.client = client
        self._owns_client = client is None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> AsyncIOMotorDatabase:
        """Establish connection to MongoDB and ensure indexes."""
        try:
            if self.client is None:
                self.client = AsyncIOMotorClient(self.connection_url)
                await self.client.admin.command('ping')
            self.database = self.client[self.database_name]
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()
            return self.database

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client and self._owns_client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create uniqueness constraints and indexes for common queries."""
        try:
            await self.database[ROLES].create_index("name", unique=True)
            await self.database[MEMBERS].create_index("username", unique=True)

            await self.database[BOOKS].create_index("registered_by")
            await self.database[BOOKS].create_index([("created_at", DESCENDING)])
            await self.database[BOOKS].create_index("title")
            await self.database[BOOKS].create_index("price")

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            return {
                "status": "healthy",
                "roles_count": await self.database[ROLES].count_documents({}),
                "members_count": await self.database[MEMBERS].count_documents({}),
                "books_count": await self.database[BOOKS].count_documents({}),
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}


class RoleStore:
    """Persistence for the role vocabulary."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.collection = database[ROLES]

    @staticmethod
    def _to_role(doc: Dict[str, Any]) -> Role:
        return Role(id=str(doc["_id"]), name=doc["name"])

    async def find_by_name(self, name: str) -> Optional[Role]:
        doc = await self.collection.find_one({"name": name})
        return self._to_role(doc) if doc else None

    async def find_by_ids(self, role_ids: Iterable[ObjectId]) -> List[Role]:
        ids = list(role_ids)
        if not ids:
            return []
        cursor = self.collection.find({"_id": {"$in": ids}})
        return [self._to_role(doc) for doc in await cursor.to_list(length=None)]

    async def ensure(self, name: str) -> Role:
        """Return the named role, creating it if it does not exist yet."""
        existing = await self.find_by_name(name)
        if existing:
            return existing
        try:
            result = await self.collection.insert_one({"name": name})
        except DuplicateKeyError:
            # created concurrently
            return await self.find_by_name(name)
        logger.info("Role created", name=name)
        return Role(id=str(result.inserted_id), name=name)


class MemberStore:
    """Persistence for member credentials and profiles."""

    def __init__(self, database: AsyncIOMotorDatabase, roles: RoleStore):
        self.collection = database[MEMBERS]
        self.roles = roles

    async def _to_member(self, doc: Dict[str, Any]) -> Member:
        roles = await self.roles.find_by_ids(doc.get("role_ids", []))
        return Member(
            id=str(doc["_id"]),
            username=doc["username"],
            password_hash=doc["password_hash"],
            display_name=doc.get("display_name", ""),
            age=doc.get("age"),
            email=doc.get("email"),
            roles=set(roles),
        )

    async def insert(self, member: Member) -> Member:
        """
        Insert a member.

        Raises:
            Conflict: if the username is already taken
        """
        doc = {
            "username": member.username,
            "password_hash": member.password_hash,
            "display_name": member.display_name,
            "age": member.age,
            "email": member.email,
            "role_ids": [ObjectId(role.id) for role in member.roles],
        }
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            logger.warning("Username already exists", username=member.username)
            raise Conflict(f"Username '{member.username}' is already taken")
        except Exception as e:
            logger.error("Failed to insert member", username=member.username, error=str(e))
            raise
        return member.model_copy(update={"id": str(result.inserted_id)})

    async def find_by_username(self, username: str) -> Optional[Member]:
        doc = await self.collection.find_one({"username": username})
        return await self._to_member(doc) if doc else None

    async def find_by_ids(self, member_ids: Iterable[ObjectId]) -> Dict[ObjectId, Member]:
        """Load several members in one query, keyed by their ObjectId."""
        ids = list(set(member_ids))
        if not ids:
            return {}
        cursor = self.collection.find({"_id": {"$in": ids}})
        docs = await cursor.to_list(length=None)
        return {doc["_id"]: await self._to_member(doc) for doc in docs}

    async def update_password_hash(self, username: str, password_hash: str) -> bool:
        result = await self.collection.update_one(
            {"username": username},
            {"$set": {"password_hash": password_hash}}
        )
        return result.modified_count > 0


class BookStore:
    """
    Persistence for books.
    Every read attaches the owning member with one batched member lookup.
    """

    def __init__(self, database: AsyncIOMotorDatabase, members: MemberStore):
        self.collection = database[BOOKS]
        self.members = members

    async def _attach_owners(self, docs: List[Dict[str, Any]]) -> List[Book]:
        owners = await self.members.find_by_ids(
            doc["registered_by"] for doc in docs if doc.get("registered_by")
        )
        return [
            Book(
                id=str(doc["_id"]),
                title=doc["title"],
                author=doc["author"],
                price=doc["price"],
                page_count=doc["page_count"],
                description=doc.get("description"),
                registered_by=owners.get(doc.get("registered_by")),
                created_at=doc["created_at"],
                updated_at=doc["updated_at"],
            )
            for doc in docs
        ]

    async def _find(self, query: Dict[str, Any], sort: Optional[list] = None) -> List[Book]:
        cursor = self.collection.find(query)
        if sort:
            cursor = cursor.sort(sort)
        return await self._attach_owners(await cursor.to_list(length=None))

    async def insert(self, fields: Dict[str, Any], owner_id: str, now: datetime) -> str:
        doc = dict(fields)
        doc.update({
            "registered_by": ObjectId(owner_id),
            "created_at": now,
            "updated_at": now,
        })
        result = await self.collection.insert_one(doc)
        return str(result.inserted_id)

    async def find_by_id(self, book_id: str) -> Optional[Book]:
        object_id = to_object_id(book_id)
        if object_id is None:
            return None
        doc = await self.collection.find_one({"_id": object_id})
        if not doc:
            return None
        return (await self._attach_owners([doc]))[0]

    async def find_all_newest_first(self) -> List[Book]:
        return await self._find({}, sort=[("created_at", DESCENDING), ("_id", DESCENDING)])

    async def search_title(self, fragment: str) -> List[Book]:
        return await self._find({"title": _contains(fragment)})

    async def search_author(self, fragment: str) -> List[Book]:
        return await self._find({"author": _contains(fragment)})

    async def find_by_price_range(self, min_price: int, max_price: int) -> List[Book]:
        return await self._find(
            {"price": {"$gte": min_price, "$lte": max_price}},
            sort=[("price", ASCENDING)]
        )

    async def find_by_owner(self, owner_id: str) -> List[Book]:
        return await self._find(
            {"registered_by": ObjectId(owner_id)},
            sort=[("created_at", DESCENDING), ("_id", DESCENDING)]
        )

    async def count_by_owner(self, owner_id: str) -> int:
        return await self.collection.count_documents({"registered_by": ObjectId(owner_id)})

    async def count(self) -> int:
        return await self.collection.count_documents({})

    async def update_if_owned(
        self,
        book_id: str,
        owner_id: str,
        fields: Dict[str, Any],
        now: datetime
    ) -> Optional[Book]:
        """
        Overwrite mutable fields, but only while the book is still owned by
        ``owner_id``. Returns None when nothing matched.
        """
        update = dict(fields)
        update["updated_at"] = now
        doc = await self.collection.find_one_and_update(
            {"_id": ObjectId(book_id), "registered_by": ObjectId(owner_id)},
            {"$set": update},
            return_document=ReturnDocument.AFTER
        )
        if not doc:
            return None
        return (await self._attach_owners([doc]))[0]

    async def delete_if_owned(self, book_id: str, owner_id: str) -> bool:
        """Delete the book only while it is still owned by ``owner_id``."""
        result = await self.collection.delete_one(
            {"_id": ObjectId(book_id), "registered_by": ObjectId(owner_id)}
        )
        return result.deleted_count > 0

    async def delete_by_id(self, book_id: str) -> bool:
        result = await self.collection.delete_one({"_id": ObjectId(book_id)})
        return result.deleted_count > 0
