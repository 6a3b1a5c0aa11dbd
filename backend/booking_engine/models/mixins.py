"""Common ORM mixins."""
from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from booking_engine.core.clock import utcnow


class TimestampMixin:
    """Creation and last-change timestamps, stored in UTC.

    Services that run against an injected clock pass both values
    explicitly; the defaults only cover rows written without one.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )
