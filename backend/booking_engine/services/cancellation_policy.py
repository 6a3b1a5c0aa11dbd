"""Time-tiered refund policy applied when a reservation is cancelled."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from booking_engine.core.config import BookingPolicy
from booking_engine.services.pricing_service import duration_hours

MONEY_PLACES = Decimal("0.01")
FULL_REFUND = Decimal("1.00")
NO_REFUND = Decimal("0.00")


@dataclass(slots=True, frozen=True)
class RefundDecision:
    hours_until_start: Decimal
    rate: Decimal
    amount: Decimal


def hours_until(start_at: datetime, moment: datetime) -> Decimal:
    return duration_hours(moment, start_at)


def refund_rate(hours_until_start: Decimal, policy: BookingPolicy) -> Decimal:
    """Return the refund tier for the given notice period.

    The rate is a non-increasing step function: strictly more than
    ``full_refund_hours`` refunds everything, strictly more than
    ``partial_refund_hours`` refunds the partial rate, anything else nothing.
    """
    if hours_until_start > policy.full_refund_hours:
        return FULL_REFUND
    if hours_until_start > policy.partial_refund_hours:
        return Decimal(policy.partial_refund_rate)
    return NO_REFUND


def refund_for(
    *,
    start_at: datetime,
    cancelled_at: datetime,
    total: Decimal,
    policy: BookingPolicy,
) -> RefundDecision:
    hours = hours_until(start_at, cancelled_at)
    rate = refund_rate(hours, policy)
    amount = (Decimal(total) * rate).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)
    return RefundDecision(hours_until_start=hours, rate=rate, amount=amount)
