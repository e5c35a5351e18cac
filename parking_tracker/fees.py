"""
Parking fee calculation.

Pure functions over (entry time, exit time, hourly rate); nothing here touches
storage, so the same rules serve the API and the in-memory demo.
"""

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Tuple, Union

ONE_HOUR = timedelta(hours=1)
CENTS = Decimal("0.01")


def billable_hours(entry_time: datetime, exit_time: datetime) -> int:
    """Whole hours to bill; any started hour counts as a full one."""
    if exit_time < entry_time:
        raise ValueError("exit_time is earlier than entry_time")
    return -(-(exit_time - entry_time) // ONE_HOUR)


def calculate_fee(
    entry_time: datetime,
    exit_time: datetime,
    rate_per_hour: Union[Decimal, float, int, str],
) -> Tuple[int, Decimal]:
    """Return ``(billed hours, fee)`` with the fee rounded to cents."""
    try:
        rate = Decimal(str(rate_per_hour))
    except InvalidOperation:
        raise ValueError(f"rate_per_hour is not a number: {rate_per_hour!r}")
    if not rate.is_finite():
        raise ValueError("rate_per_hour must be finite")
    if rate < 0:
        raise ValueError("rate_per_hour must not be negative")

    hours = billable_hours(entry_time, exit_time)
    try:
        fee = (rate * hours).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"fee for {hours} hour(s) at {rate}/hour is out of range")
    return hours, fee
