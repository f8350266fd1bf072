"""
Identity resolution, principal adaptation, registration and login.
"""

from typing import Optional

import structlog

from utilities.logger import AuditLogger

from .database import MemberStore, RoleStore
from .errors import DefaultRoleMissing, NotFound, Unauthenticated
from .models import AuthenticatedPrincipal, Member, MemberCreate, RoleName, permission_label
from .passwords import PasswordHasher

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"


class IdentityResolver:
    """Loads a member and its roles by username."""

    def __init__(self, members: MemberStore):
        self.members = members

    async def resolve(self, username: str) -> Member:
        """
        Load the member with this username.

        Raises:
            NotFound: if no member has that username
        """
        member = await self.members.find_by_username(username) if username else None
        if member is None:
            raise NotFound(f"User not found with username: {username}")
        return member


class PrincipalAdapter:
    """Maps a stored member onto an authenticated principal."""

    @staticmethod
    def adapt(member: Member) -> AuthenticatedPrincipal:
        return AuthenticatedPrincipal(
            identity=member.username,
            permissions=frozenset(permission_label(role.name) for role in member.roles),
            credential_hash=member.password_hash,
            profile=member,
        )


class MemberService:
    """Member registration and credential checks."""

    def __init__(
        self,
        members: MemberStore,
        roles: RoleStore,
        hasher: Optional[PasswordHasher] = None,
        audit: Optional[AuditLogger] = None
    ):
        self.members = members
        self.roles = roles
        self.hasher = hasher or PasswordHasher()
        self.resolver = IdentityResolver(members)
        self.adapter = PrincipalAdapter()
        self.audit = audit or AuditLogger("catalog.audit")

    async def register(self, raw: MemberCreate) -> Member:
        """
        Register a member with the default USER role.

        Raises:
            DefaultRoleMissing: if the USER role was never seeded
            Conflict: if the username is already taken
        """
        user_role = await self.roles.find_by_name(RoleName.USER.value)
        if user_role is None:
            logger.critical("Default role missing", role=RoleName.USER.value)
            raise DefaultRoleMissing(f"Role '{RoleName.USER.value}' is not present in the role store")

        member = Member(
            username=raw.username,
            password_hash=self.hasher.hash(raw.password),
            display_name=raw.display_name,
            age=raw.age,
            email=raw.email,
            roles={user_role},
        )
        stored = await self.members.insert(member)
        self.audit.log_member_registered(stored.username, stored.role_names())
        return stored

    async def authenticate(self, username: str, password: str) -> AuthenticatedPrincipal:
        """
        Check credentials and build the session principal.

        Raises:
            Unauthenticated: for an unknown username or a wrong password
        """
        try:
            member = await self.resolver.resolve(username)
        except NotFound:
            self.audit.log_login(username, success=False, reason="unknown_user")
            raise Unauthenticated(INVALID_CREDENTIALS)

        if not self.hasher.verify(member.password_hash, password):
            self.audit.log_login(username, success=False, reason="bad_password")
            raise Unauthenticated(INVALID_CREDENTIALS)

        if self.hasher.needs_rehash(member.password_hash):
            new_hash = self.hasher.hash(password)
            await self.members.update_password_hash(member.username, new_hash)
            member = member.model_copy(update={"password_hash": new_hash})
            logger.info("Password hash upgraded", username=member.username)

        self.audit.log_login(username, success=True)
        return self.adapter.adapt(member)
