"""Acting-user resolution.

Authentication happens upstream; the gateway forwards the authenticated user
in ``X-User-Id`` and their role in ``X-User-Role``.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException

from marketplace.order.state_machine import Actor
from marketplace.utils.logging import add_context


@dataclass(frozen=True)
class ActingUser:
    user_id: str
    role: Actor

    @property
    def is_admin(self) -> bool:
        return self.role == Actor.ADMIN


async def current_user(
    x_user_id: str | None = Header(default=None),
    x_user_role: str = Header(default=Actor.BUYER.value),
) -> ActingUser:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        role = Actor(x_user_role.lower())
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown role: {x_user_role}") from None

    add_context(user_id=x_user_id, role=role.value)
    return ActingUser(user_id=x_user_id, role=role)


async def require_seller(user: ActingUser = Depends(current_user)) -> ActingUser:
    """Store routes act on the caller's own items; admins use the admin routes."""
    if user.role != Actor.SELLER:
        raise HTTPException(status_code=403, detail="Seller access required")
    return user


async def require_admin(user: ActingUser = Depends(current_user)) -> ActingUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
