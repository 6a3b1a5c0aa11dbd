"""Common API dependencies."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.db.session import get_session

ADMIN_ROLE = "admin"


@dataclass(slots=True, frozen=True)
class Actor:
    """Caller identity asserted by the upstream identity layer."""

    id: str
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


async def get_current_actor(
    x_actor_id: Annotated[str | None, Header(max_length=64)] = None,
    x_actor_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Resolve the acting user from the trusted identity headers."""
    if not x_actor_id or not x_actor_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing actor identity",
        )
    role = x_actor_role.strip().lower() if x_actor_role else None
    return Actor(id=x_actor_id.strip(), role=role)


async def require_admin(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
        )
    return actor
