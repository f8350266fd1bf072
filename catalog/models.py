"""
Pydantic models for roles, members, books and authenticated principals.
"""

from datetime import datetime
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Set
from pydantic import BaseModel, Field, field_serializer, validator


ROLE_PREFIX = "ROLE_"

# Upper bound for stored integer fields (32-bit signed)
MAX_INT = 2 ** 31 - 1


class RoleName(str, Enum):
    """Fixed role vocabulary."""
    USER = "USER"
    ADMIN = "ADMIN"


def permission_label(role_name: str) -> str:
    """Turn a role name into the permission label carried by a principal."""
    return f"{ROLE_PREFIX}{role_name}"


ADMIN_PERMISSION = permission_label(RoleName.ADMIN.value)


class Role(BaseModel):
    """A named role. Immutable once created."""
    id: Optional[str] = Field(None, description="Role identifier")
    name: str = Field(..., min_length=1, description="Unique role name")

    model_config = {"frozen": True}


class Member(BaseModel):
    """
    A registered member as stored in the credential store.
    The clear-text password never reaches this model.
    """
    id: Optional[str] = Field(None, description="Member identifier")
    username: str = Field(..., min_length=1, max_length=100, description="Unique login name")
    password_hash: str = Field(..., repr=False, description="One-way password digest")
    display_name: str = Field("", description="Name shown in the UI")
    age: Optional[int] = Field(None, ge=0, description="Age in years")
    email: Optional[str] = Field(None, description="Contact email")
    roles: Set[Role] = Field(default_factory=set, description="Assigned roles")

    @field_serializer('roles')
    def serialize_roles(self, roles: Set[Role]):
        return [role.model_dump() for role in sorted(roles, key=lambda role: role.name)]

    def role_names(self) -> Set[str]:
        return {role.name for role in self.roles}


class MemberCreate(BaseModel):
    """Registration input, including the clear-text password."""
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, repr=False)
    display_name: str = Field("", max_length=100)
    age: Optional[int] = Field(None, ge=0, le=150)
    email: Optional[str] = Field(None, max_length=254)

    @validator('username')
    def validate_username(cls, v):
        """Usernames are trimmed and may not be blank."""
        v = v.strip()
        if not v:
            raise ValueError('username must not be blank')
        return v

    @validator('email')
    def validate_email(cls, v):
        """Accept an empty email as absent; otherwise require an @."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if "@" not in v:
            raise ValueError('email must contain @')
        return v


class BookFields(BaseModel):
    """The mutable fields of a book, validated."""
    title: str = Field(..., min_length=1, max_length=200, description="Book title")
    author: str = Field(..., min_length=1, max_length=100, description="Author name")
    price: int = Field(..., ge=0, le=MAX_INT, description="Price in whole currency units")
    page_count: int = Field(..., gt=0, le=MAX_INT, description="Number of pages")
    description: Optional[str] = Field(None, max_length=500, description="Optional description")

    @validator('title', 'author')
    def validate_not_blank(cls, v):
        """Titles and authors are trimmed and may not be blank."""
        v = v.strip()
        if not v:
            raise ValueError('must not be blank')
        return v

    @validator('description')
    def validate_description(cls, v):
        """An empty description is stored as absent."""
        if v is None or not v.strip():
            return None
        return v.strip()


class BookCreate(BookFields):
    """Candidate book submitted for registration."""


class BookPatch(BookFields):
    """Replacement values for a book's mutable fields."""


class Book(BookFields):
    """A stored book with its owner attached."""
    id: str = Field(..., description="Book identifier")
    registered_by: Optional[Member] = Field(None, description="Owning member")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last modification timestamp")

    @property
    def owner_username(self) -> Optional[str]:
        return self.registered_by.username if self.registered_by else None


class AuthenticatedPrincipal(BaseModel):
    """
    The authenticated identity of a session and its permission labels.

    Composed, not inherited: ``profile`` points back at the member for
    presentation only and is never consulted for authorization.
    """
    identity: str = Field(..., min_length=1, description="Authenticated username")
    permissions: FrozenSet[str] = Field(default_factory=frozenset, description="Permission labels")
    credential_hash: Optional[str] = Field(None, repr=False, exclude=True)
    profile: Optional[Member] = Field(None, repr=False, exclude=True)

    model_config = {"frozen": True}

    def has_permission(self, label: str) -> bool:
        return label in self.permissions

    @property
    def is_admin(self) -> bool:
        return self.has_permission(ADMIN_PERMISSION)

    @property
    def display_name(self) -> str:
        if self.profile and self.profile.display_name:
            return self.profile.display_name
        return self.identity

    @classmethod
    def from_session(cls, identity: str, permissions: Iterable[str]) -> "AuthenticatedPrincipal":
        """Rebuild a principal from the values kept in the session cookie."""
        return cls(identity=identity, permissions=frozenset(permissions))
