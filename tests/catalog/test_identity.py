"""
Tests for identity resolution, registration and login.
"""

import pytest

from catalog.database import MEMBERS
from catalog.errors import Conflict, DefaultRoleMissing, NotFound, Unauthenticated
from catalog.models import MemberCreate
from catalog.passwords import PasswordHasher
from catalog.services import build_services


class TestPasswordHasher:
    """Test cases for the argon2 wrapper."""

    def test_hash_is_not_clear_text(self, fast_hasher):
        digest = fast_hasher.hash("secret")
        assert digest != "secret"
        assert digest.startswith("$argon2id$")

    def test_verify(self, fast_hasher):
        digest = fast_hasher.hash("secret")
        assert fast_hasher.verify(digest, "secret")
        assert not fast_hasher.verify(digest, "wrong")

    def test_hash_is_salted(self, fast_hasher):
        assert fast_hasher.hash("secret") != fast_hasher.hash("secret")

    def test_garbage_digest_does_not_verify(self, fast_hasher):
        assert not fast_hasher.verify("not-a-hash", "secret")

    def test_needs_rehash_on_parameter_change(self, fast_hasher):
        stronger = PasswordHasher(time_cost=2, memory_cost=16, parallelism=1)
        assert stronger.needs_rehash(fast_hasher.hash("secret"))
        assert not fast_hasher.needs_rehash(fast_hasher.hash("secret"))


class TestIdentityResolver:
    """Test cases for loading members by username."""

    @pytest.mark.asyncio
    async def test_resolve_existing_member(self, services, alice):
        member = await services.member_service.resolver.resolve("alice")
        assert member.id == alice.id
        assert member.display_name == "Alice"
        assert member.role_names() == {"USER"}

    @pytest.mark.asyncio
    async def test_resolve_unknown_member(self, services):
        with pytest.raises(NotFound) as exc_info:
            await services.member_service.resolver.resolve("ghost")
        assert "ghost" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_resolve_empty_username(self, services):
        with pytest.raises(NotFound):
            await services.member_service.resolver.resolve("")


class TestRegistration:
    """Test cases for member registration."""

    @pytest.mark.asyncio
    async def test_register_assigns_only_user_role(self, services, alice):
        assert alice.id is not None
        assert alice.role_names() == {"USER"}

    @pytest.mark.asyncio
    async def test_password_never_stored_in_clear(self, services, database, fast_hasher):
        await services.member_service.register(MemberCreate(username="carol", password="secret"))

        doc = await database[MEMBERS].find_one({"username": "carol"})
        assert "password" not in doc
        assert doc["password_hash"] != "secret"
        assert fast_hasher.verify(doc["password_hash"], "secret")
        assert not fast_hasher.verify(doc["password_hash"], "wrong")

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, services, alice):
        with pytest.raises(Conflict):
            await services.member_service.register(MemberCreate(username="alice", password="other"))

    @pytest.mark.asyncio
    async def test_missing_default_role_is_fatal(self, database, fast_hasher):
        unseeded = build_services(database, hasher=fast_hasher)
        with pytest.raises(DefaultRoleMissing):
            await unseeded.member_service.register(MemberCreate(username="dave", password="pw"))
        assert await unseeded.members.find_by_username("dave") is None


class TestAuthentication:
    """Test cases for login."""

    @pytest.mark.asyncio
    async def test_authenticate_returns_principal(self, services, alice):
        principal = await services.member_service.authenticate("alice", "alice-pw")
        assert principal.identity == "alice"
        assert principal.permissions == frozenset({"ROLE_USER"})
        assert principal.profile.email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_admin_principal(self, services, admin):
        principal = await services.member_service.authenticate("admin", "admin-pw")
        assert principal.is_admin
        assert principal.permissions == frozenset({"ROLE_USER", "ROLE_ADMIN"})

    @pytest.mark.asyncio
    async def test_wrong_password(self, services, alice):
        with pytest.raises(Unauthenticated) as exc_info:
            await services.member_service.authenticate("alice", "nope")
        assert exc_info.value.message == "Invalid username or password"

    @pytest.mark.asyncio
    async def test_unknown_user_gets_same_message(self, services):
        with pytest.raises(Unauthenticated) as exc_info:
            await services.member_service.authenticate("ghost", "nope")
        assert exc_info.value.message == "Invalid username or password"

    @pytest.mark.asyncio
    async def test_outdated_hash_is_upgraded(self, database, fast_hasher, alice):
        stronger = PasswordHasher(time_cost=2, memory_cost=16, parallelism=1)
        upgraded = build_services(database, hasher=stronger)

        principal = await upgraded.member_service.authenticate("alice", "alice-pw")

        stored = await upgraded.members.find_by_username("alice")
        assert stored.password_hash == principal.credential_hash
        assert not stronger.needs_rehash(stored.password_hash)
        assert stronger.verify(stored.password_hash, "alice-pw")
