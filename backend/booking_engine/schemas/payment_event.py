"""Payment gateway event payloads."""
from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, Field

PaymentEventType = Literal["payment_succeeded", "payment_failed", "refund_succeeded"]


class PaymentEvent(BaseModel):
    """Normalized event forwarded by the payment gateway integration."""

    type: PaymentEventType
    reservation_id: uuid.UUID
    payment_reference: str | None = Field(default=None, max_length=255)
    reason: str | None = Field(default=None, max_length=512)


class PaymentEventAck(BaseModel):
    status: Literal["processed", "ignored"]
    reservation_id: uuid.UUID
    detail: str | None = None
