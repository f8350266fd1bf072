"""
Session authentication and flash messages.

At login the principal's identity and permission labels are written into the
signed session cookie. Each request rebuilds the principal from those values
without touching the database.
"""

from typing import List, Optional

import structlog
from fastapi import Request

from catalog.errors import Unauthenticated
from catalog.models import AuthenticatedPrincipal

from api.models import FlashCategory, FlashMessage

logger = structlog.get_logger(__name__)

SESSION_IDENTITY = "identity"
SESSION_PERMISSIONS = "permissions"
SESSION_DISPLAY_NAME = "display_name"
SESSION_FLASHES = "flashes"


def login_session(request: Request, principal: AuthenticatedPrincipal) -> None:
    """Bind the principal to the session, dropping anything left from before."""
    flashes = request.session.get(SESSION_FLASHES, [])
    request.session.clear()
    request.session[SESSION_IDENTITY] = principal.identity
    request.session[SESSION_PERMISSIONS] = sorted(principal.permissions)
    request.session[SESSION_DISPLAY_NAME] = principal.display_name
    if flashes:
        request.session[SESSION_FLASHES] = flashes


def logout_session(request: Request) -> Optional[str]:
    """Clear the session. Returns the identity that was logged in, if any."""
    identity = request.session.get(SESSION_IDENTITY)
    request.session.clear()
    return identity


def get_optional_principal(request: Request) -> Optional[AuthenticatedPrincipal]:
    """FastAPI dependency: the session principal, or None for anonymous requests."""
    identity = request.session.get(SESSION_IDENTITY)
    if not identity:
        return None
    return AuthenticatedPrincipal.from_session(
        identity, request.session.get(SESSION_PERMISSIONS, [])
    )


def get_current_principal(request: Request) -> AuthenticatedPrincipal:
    """
    FastAPI dependency for routes that need a logged-in member.

    Raises:
        Unauthenticated: if the session carries no identity
    """
    principal = get_optional_principal(request)
    if principal is None:
        logger.debug("Anonymous access to protected route", path=request.url.path)
        raise Unauthenticated("Please log in to continue")
    return principal


def session_display_name(request: Request) -> Optional[str]:
    return request.session.get(SESSION_DISPLAY_NAME)


def flash(request: Request, message: str, category: FlashCategory = FlashCategory.SUCCESS) -> None:
    """Queue a message for the next rendered page."""
    flashes = request.session.get(SESSION_FLASHES, [])
    flashes.append(FlashMessage(category=category, message=message).model_dump(mode="json"))
    request.session[SESSION_FLASHES] = flashes


def pop_flashes(request: Request) -> List[FlashMessage]:
    """Take every queued message out of the session."""
    return [FlashMessage(**item) for item in request.session.pop(SESSION_FLASHES, [])]
