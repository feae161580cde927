"""
Caller identity supplied by the upstream authentication gateway.

Tokens are verified before requests reach this service; the gateway forwards
the verified subject as headers, which are trusted as-is.
"""

import logging
from dataclasses import dataclass

from fastapi import Header

from .exceptions import AuthenticationError

logger = logging.getLogger(__name__)


@dataclass
class AppUser:
    """Application user, constructed from gateway identity headers."""

    id: str  # external subject id (sub claim)
    email: str | None = None
    name: str | None = None
    picture: str | None = None

    @property
    def display_name(self) -> str:
        """Get the best display name for the user."""
        return self.name or self.email or self.id


# ============ FastAPI Dependencies ============


async def get_current_user(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    x_user_email: str | None = Header(None, alias="X-User-Email"),
    x_user_name: str | None = Header(None, alias="X-User-Name"),
    x_user_picture: str | None = Header(None, alias="X-User-Picture"),
) -> AppUser | None:
    """
    Get current user from gateway headers.

    Returns None if no subject id was forwarded.
    """
    if not x_user_id or not x_user_id.strip():
        return None

    return AppUser(
        id=x_user_id.strip(),
        email=x_user_email.strip().lower() if x_user_email else None,
        name=x_user_name,
        picture=x_user_picture,
    )


async def require_current_user(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    x_user_email: str | None = Header(None, alias="X-User-Email"),
    x_user_name: str | None = Header(None, alias="X-User-Name"),
    x_user_picture: str | None = Header(None, alias="X-User-Picture"),
) -> AppUser:
    """
    Require an identified caller.

    Raises 401 if the gateway did not forward a subject id.
    """
    user = await get_current_user(x_user_id, x_user_email, x_user_name, x_user_picture)
    if not user:
        logger.debug("Request without X-User-Id header rejected")
        raise AuthenticationError()
    return user
