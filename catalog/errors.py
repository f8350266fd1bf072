"""
Error taxonomy for catalog operations.

Every ``CatalogError`` carries a message that is safe to show to the end
user. The web layer converts them into a redirect with a flash message.
"""


class CatalogError(Exception):
    """Base class for recoverable, user-visible catalog failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(CatalogError):
    """A member, book or role does not exist."""


class Unauthenticated(CatalogError):
    """No authenticated identity is present, or credentials were rejected."""


class Forbidden(CatalogError):
    """The acting identity is not allowed to perform the operation."""


class Conflict(CatalogError):
    """A uniqueness constraint was violated."""


class DefaultRoleMissing(RuntimeError):
    """The default role row is absent; the deployment was not seeded."""
