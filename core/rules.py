"""
Business rules: commission, loyalty tier, check-in alert window, inactivity.

All functions are pure and total over valid inputs; only parse_date raises.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from config import INFO_WINDOW_DAYS, LOYALTY_THRESHOLDS, URGENT_WINDOW_DAYS
from core.errors import InvalidDateError
from core.models import Booking, LoyaltyTier, Severity

DateLike = Union[date, datetime, str]

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%Y-%m-%d %H:%M:%S")


@dataclass(frozen=True)
class CheckinAlert:
    label: str
    days_remaining: int
    severity: Severity


def round_half_up(value: float, digits: int = 2) -> float:
    """Round like `Math.round(x * 100) / 100`: halves go up, not to even."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def round_percent(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_date(value: Optional[DateLike]) -> date:
    """
    Converts a stored date (ISO date, ISO timestamp, dd/mm/yyyy) to `date`.
    Never falls back to today: anything unreadable raises InvalidDateError.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateError(value)

    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        # "2024-06-10T09:30:00.000Z" as written by JavaScript toISOString()
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise InvalidDateError(value) from None


def days_between(start: DateLike, end: DateLike) -> int:
    """Whole calendar days from `start` to `end` (negative if end is earlier)."""
    return (parse_date(end) - parse_date(start)).days


def commission(sale_value: float, percent: float) -> float:
    """Commission on a sale; out-of-range percentages are computed as given."""
    return round_half_up(sale_value * percent / 100, 2)


def effective_commission(booking: Booking) -> float:
    """Manual override when present and non-zero, else the calculated commission."""
    # An override of exactly 0 counts as "not entered"
    if booking.manual_commission:
        return booking.manual_commission
    return commission(booking.sale_value, booking.commission_pct)


def loyalty_tier(booking_count: int) -> LoyaltyTier:
    for tier, minimum in LOYALTY_THRESHOLDS:
        if booking_count >= minimum:
            return LoyaltyTier(tier)
    return LoyaltyTier.BRONZE


def checkin_alert(checkin_date: DateLike, today: DateLike) -> CheckinAlert:
    """Label and severity of a check-in, derived only from the days remaining."""
    d = days_between(today, checkin_date)

    if d == 0:
        return CheckinAlert("Today", d, Severity.TODAY)
    if d == 1:
        return CheckinAlert("Tomorrow", d, Severity.TOMORROW)
    if 2 <= d <= URGENT_WINDOW_DAYS:
        return CheckinAlert(f"{d} days", d, Severity.URGENT)
    if URGENT_WINDOW_DAYS < d <= INFO_WINDOW_DAYS:
        return CheckinAlert(f"{d} days", d, Severity.INFO)
    if d < 0:
        return CheckinAlert("Overdue", d, Severity.PAST)
    return CheckinAlert(f"{d} days", d, Severity.NONE)


def is_inactive(last_purchase_date: Optional[DateLike], threshold_days: int, today: DateLike) -> bool:
    if not last_purchase_date:
        return True
    return days_between(last_purchase_date, today) >= threshold_days


def average_ticket(total_value: float, distinct_clients: int) -> float:
    return round_half_up(total_value / distinct_clients, 2) if distinct_clients > 0 else 0.0
