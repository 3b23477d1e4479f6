"""Price calculation for a requested rental window."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from app.models import ResourceUnit

HOUR = timedelta(hours=1)
DAY = timedelta(days=1)
CENTS = Decimal("0.01")


def billable_units(unit: ResourceUnit | str, start: datetime, end: datetime) -> int:
    """
    Number of units charged for [start, end).

    per_hour: whole hours, fractional hours truncated (2h59m -> 2).
    per_day:  started 24h periods with a floor of one day (3h -> 1, 25h -> 2).
    Returns 0 for an empty or inverted window.
    """
    if end <= start:
        return 0
    elapsed = end - start
    if unit == ResourceUnit.PER_HOUR:
        return elapsed // HOUR
    days, remainder = divmod(elapsed, DAY)
    return max(1, days + (1 if remainder else 0))


def calculate_price(
    unit: ResourceUnit | str,
    start: datetime,
    end: datetime,
    rate: Decimal,
) -> Decimal:
    """Total price for the window, quantized to cents. Never raises."""
    return (Decimal(billable_units(unit, start, end)) * rate).quantize(CENTS)
