"""Pricing calculator for hourly facility reservations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from booking_engine.core.errors import ValidationError

MONEY_PLACES = Decimal("0.01")
_SECONDS_PER_HOUR = Decimal(3600)


@dataclass(slots=True, frozen=True)
class PriceQuote:
    """Frozen commercial snapshot of a reservation."""

    hourly_rate: Decimal
    duration_hours: Decimal
    commission_rate: Decimal
    subtotal: Decimal
    commission: Decimal
    total: Decimal

    def to_dict(self) -> dict[str, Any]:
        """Serialize the quote to plain types for responses."""
        return {
            "hourly_rate": _to_str(self.hourly_rate),
            "duration_hours": str(self.duration_hours),
            "commission_rate": str(self.commission_rate),
            "subtotal": _to_str(self.subtotal),
            "commission": _to_str(self.commission),
            "total": _to_str(self.total),
        }


def _to_money(value: Decimal | int | str) -> Decimal:
    return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _to_str(value: Decimal) -> str:
    return f"{value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP):.2f}"


def duration_hours(start_at: datetime, end_at: datetime) -> Decimal:
    """Return the exact length of ``[start_at, end_at)`` in hours."""
    delta = end_at - start_at
    micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    return Decimal(micros) / Decimal(1_000_000) / _SECONDS_PER_HOUR


def price(
    hourly_rate: Decimal | str | int,
    hours: Decimal | str | int,
    commission_rate: Decimal | str | int,
) -> PriceQuote:
    """Compute subtotal, commission and total with exact decimal arithmetic.

    Each figure is rounded once, to cents. The commission is taken from the
    rounded subtotal so that ``commission == round(subtotal * rate, 2)`` and
    ``total == subtotal + commission`` hold without further rounding.
    """
    rate = Decimal(hourly_rate)
    hours = Decimal(hours)
    commission_rate = Decimal(commission_rate)
    if rate < 0:
        raise ValidationError("Hourly rate cannot be negative")
    if hours <= 0:
        raise ValidationError("Duration must be positive")
    if commission_rate < 0:
        raise ValidationError("Commission rate cannot be negative")

    subtotal = _to_money(rate * hours)
    commission = _to_money(subtotal * commission_rate)
    return PriceQuote(
        hourly_rate=rate,
        duration_hours=hours,
        commission_rate=commission_rate,
        subtotal=subtotal,
        commission=commission,
        total=subtotal + commission,
    )


def check_bounds(quote: PriceQuote, *, min_price: Decimal, max_price: Decimal) -> None:
    """Reject quotes whose total falls outside ``[min_price, max_price]``."""
    if quote.total < min_price:
        raise ValidationError(
            f"Minimum booking amount is {_to_str(Decimal(min_price))}"
        )
    if quote.total > max_price:
        raise ValidationError(
            f"Maximum booking amount is {_to_str(Decimal(max_price))}"
        )
