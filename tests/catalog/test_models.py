"""
Unit tests for catalog models and the principal adapter.
"""

from datetime import datetime

import pytest
from pydantic import ValidationError

from catalog.identity import PrincipalAdapter
from catalog.models import (
    ADMIN_PERMISSION,
    MAX_INT,
    AuthenticatedPrincipal,
    Book,
    BookCreate,
    Member,
    MemberCreate,
    Role,
    permission_label,
)


def make_member(*role_names):
    return Member(
        id="64b7f0c2a1b2c3d4e5f60718",
        username="alice",
        password_hash="$argon2id$fake",
        display_name="Alice",
        roles={Role(id=str(i), name=name) for i, name in enumerate(role_names)},
    )


class TestPrincipalAdapter:
    """Test cases for mapping members onto principals."""

    def test_identity_is_username(self):
        principal = PrincipalAdapter.adapt(make_member("USER"))
        assert principal.identity == "alice"

    def test_permissions_are_prefixed_role_names(self):
        principal = PrincipalAdapter.adapt(make_member("USER", "ADMIN"))
        assert principal.permissions == frozenset({"ROLE_USER", "ROLE_ADMIN"})
        assert principal.is_admin

    def test_member_without_roles_has_no_permissions(self):
        principal = PrincipalAdapter.adapt(make_member())
        assert principal.permissions == frozenset()
        assert not principal.is_admin

    def test_carries_credential_hash_and_profile(self):
        member = make_member("USER")
        principal = PrincipalAdapter.adapt(member)
        assert principal.credential_hash == member.password_hash
        assert principal.profile is member
        assert principal.display_name == "Alice"

    def test_does_not_mutate_member(self):
        member = make_member("USER")
        before = member.model_dump()
        PrincipalAdapter.adapt(member)
        assert member.model_dump() == before

    def test_adapt_is_deterministic(self):
        member = make_member("USER", "ADMIN")
        first = PrincipalAdapter.adapt(member)
        second = PrincipalAdapter.adapt(member)
        assert first.identity == second.identity
        assert first.permissions == second.permissions

    def test_serialization_excludes_secrets(self):
        principal = PrincipalAdapter.adapt(make_member("USER"))
        dumped = principal.model_dump()
        assert "credential_hash" not in dumped
        assert "profile" not in dumped


class TestAuthenticatedPrincipal:
    """Test cases for principals rebuilt from a session."""

    def test_from_session(self):
        principal = AuthenticatedPrincipal.from_session("bob", ["ROLE_USER"])
        assert principal.identity == "bob"
        assert principal.has_permission("ROLE_USER")
        assert not principal.is_admin
        assert principal.profile is None
        assert principal.display_name == "bob"

    def test_empty_identity_rejected(self):
        with pytest.raises(ValidationError):
            AuthenticatedPrincipal(identity="")

    def test_admin_permission_label(self):
        assert permission_label("ADMIN") == ADMIN_PERMISSION == "ROLE_ADMIN"


class TestBookCreate:
    """Test cases for book field validation."""

    def test_valid_book(self):
        book = BookCreate(title=" Java Basics ", author="Kim", price=0, page_count=1)
        assert book.title == "Java Basics"
        assert book.description is None

    def test_string_numbers_are_coerced(self):
        book = BookCreate(title="A", author="B", price="1000", page_count="10")
        assert book.price == 1000
        assert book.page_count == 10

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            BookCreate(title="A", author="B", price=-1, page_count=10)

    def test_zero_pages_rejected(self):
        with pytest.raises(ValidationError):
            BookCreate(title="A", author="B", price=1, page_count=0)

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            BookCreate(title="   ", author="B", price=1, page_count=1)
        assert "must not be blank" in str(exc_info.value)

    def test_blank_description_is_absent(self):
        book = BookCreate(title="A", author="B", price=1, page_count=1, description="  ")
        assert book.description is None

    def test_description_length_limit(self):
        with pytest.raises(ValidationError):
            BookCreate(title="A", author="B", price=1, page_count=1, description="x" * 501)

    @pytest.mark.parametrize("field", ["price", "page_count"])
    def test_numbers_bounded_to_32_bit(self, field):
        values = {"title": "A", "author": "B", "price": 1, "page_count": 1}
        values[field] = MAX_INT
        assert getattr(BookCreate(**values), field) == MAX_INT

        values[field] = 10 ** 20
        with pytest.raises(ValidationError):
            BookCreate(**values)


class TestMemberSerialization:
    """Test cases for dumping members and books with nested roles."""

    def test_roles_dump_as_sorted_list(self):
        dumped = make_member("USER", "ADMIN").model_dump()
        assert [role["name"] for role in dumped["roles"]] == ["ADMIN", "USER"]
        assert "password_hash" in dumped

    def test_book_with_owner_dumps(self):
        book = Book(
            id="64b7f0c2a1b2c3d4e5f60719",
            title="A", author="B", price=1, page_count=1,
            registered_by=make_member("USER"),
            created_at=datetime(2024, 1, 1),
            updated_at=datetime(2024, 1, 1),
        )
        dumped = book.model_dump()
        assert dumped["registered_by"]["username"] == "alice"
        assert dumped["registered_by"]["roles"] == [{"id": "0", "name": "USER"}]

    def test_json_dump(self):
        assert '"roles":[{"id":"0","name":"USER"}]' in make_member("USER").model_dump_json()


class TestMemberCreate:
    """Test cases for registration input."""

    def test_username_trimmed(self):
        raw = MemberCreate(username="  alice ", password="pw")
        assert raw.username == "alice"

    def test_blank_username_rejected(self):
        with pytest.raises(ValidationError):
            MemberCreate(username="   ", password="pw")

    def test_empty_email_is_absent(self):
        raw = MemberCreate(username="alice", password="pw", email="")
        assert raw.email is None

    def test_malformed_email_rejected(self):
        with pytest.raises(ValidationError):
            MemberCreate(username="alice", password="pw", email="not-an-email")

    def test_password_not_in_repr(self):
        raw = MemberCreate(username="alice", password="secret")
        assert "secret" not in repr(raw)
