"""Helper utilities for recording audit events."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.models.audit_event import AuditEvent


def add_event(
    session: AsyncSession,
    *,
    event_type: str,
    actor_id: str | None = None,
    reservation_id: uuid.UUID | None = None,
    description: str | None = None,
    payload: dict[str, Any] | None = None,
) -> AuditEvent:
    """Stage an audit event in the caller's transaction."""
    event = AuditEvent(
        actor_id=actor_id,
        reservation_id=reservation_id,
        event_type=event_type,
        description=description,
        payload=payload,
    )
    session.add(event)
    return event
