"""
Identity Dependencies Module
============================

FastAPI dependencies for the calling user.

Authentication happens upstream: the gateway forwards the verified user
id in ``X-User-ID`` and the user's roles, comma separated, in
``X-User-Roles``. The case service trusts both.

Usage:
    @router.put("/{case_id}/close")
    def close(case_id: str, actor: Actor = Depends(get_current_actor)):
        ...
"""

from dataclasses import dataclass, field
from typing import Optional

from fastapi import Header

from app.core.exceptions import AuthenticationError
from app.core.logging import actor_id_context, get_logger

# Initialize logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class Actor:
    """Caller identity as supplied by the gateway."""

    user_id: str
    roles: frozenset = field(default_factory=frozenset)

    def has_role(self, role: str) -> bool:
        return role.upper() in self.roles


async def get_current_actor(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-ID"),
    x_user_roles: Optional[str] = Header(default=None, alias="X-User-Roles"),
) -> Actor:
    """
    Resolve the calling user from gateway headers.

    Declared async so the actor id lands in the request's logging context.

    Raises:
        AuthenticationError: if ``X-User-ID`` is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        logger.warning("actor_missing")
        raise AuthenticationError("X-User-ID header is required")

    roles = frozenset(
        role.strip().upper() for role in (x_user_roles or "").split(",") if role.strip()
    )
    actor = Actor(user_id=x_user_id.strip(), roles=roles)
    actor_id_context.set(actor.user_id)
    return actor
