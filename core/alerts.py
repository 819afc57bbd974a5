"""
Alert builders: check-in reminders, inactive clients, monthly goals.

Builders only produce candidate alerts; merge_alerts appends the ones that
are not duplicates (see core.deduplicator) and keeps existing alerts as-is.
"""

import logging
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Optional

from core.deduplicator import is_alert_duplicate, load_existing_keys
from core.errors import InvalidDateError
from core.models import (
    Alert, AlertPriority, AlertType, Booking, BookingStatus, Client, Configuration, Severity,
)
from core.rules import CheckinAlert, effective_commission, parse_date

logger = logging.getLogger(__name__)

# Severity → (alert type, priority) for check-ins that deserve a notification
CHECKIN_ALERTS = {
    Severity.TODAY:    (AlertType.CHECKIN_TODAY, AlertPriority.HIGH),
    Severity.TOMORROW: (AlertType.CHECKIN_TOMORROW, AlertPriority.MEDIUM),
    Severity.URGENT:   (AlertType.CHECKIN_SOON, AlertPriority.LOW),
}


def build_checkin_alert(
    booking: Booking,
    client: Optional[Client],
    check: CheckinAlert,
    today: date,
    now: str,
) -> Optional[Alert]:
    """Candidate alert for a booking, or None when the check-in is not close enough."""
    if check.severity not in CHECKIN_ALERTS:
        return None
    alert_type, priority = CHECKIN_ALERTS[check.severity]

    if check.severity == Severity.URGENT:
        title = f"Check-in in {check.label}"
    else:
        title = f"Check-in {check.label.lower()}"
    client_name = client.name if client else "Unknown client"

    return Alert(
        id=f"{alert_type.value}-{booking.id}-{today:%Y%m%d}",
        type=alert_type,
        title=title,
        description=f"{client_name} - {booking.destination}",
        priority=priority,
        read=False,
        created_at=now,
        expires_at=parse_date(booking.checkin_date).isoformat(),
        booking_id=booking.id,
        client_id=booking.client_id,
    )


def merge_alerts(existing: List[Alert], candidates: Iterable[Alert]) -> List[Alert]:
    """Existing alerts unchanged, followed by the candidates that are not duplicates."""
    unread_keys, alert_ids = load_existing_keys(existing)

    merged = list(existing)
    for alert in candidates:
        if is_alert_duplicate(alert, unread_keys, alert_ids):
            continue
        merged.append(alert)
        # Also dedupes candidates against each other
        unread_keys |= load_existing_keys([alert])[0]
        alert_ids.add(alert.id)
    return merged


def inactivity_alerts(before: Iterable[Client], after: Iterable[Client], now: str) -> List[Alert]:
    """One alert per client that went from active to inactive in the last pass."""
    was_active = {c.id: c.active for c in before}
    alerts = []
    for c in after:
        if c.active or not was_active.get(c.id, False):
            continue
        alerts.append(Alert(
            id=f"{AlertType.CLIENT_INACTIVE.value}-{c.id}-{now[:10]}",
            type=AlertType.CLIENT_INACTIVE,
            title="Inactive client",
            description=f"{c.name} has no recent purchases",
            priority=AlertPriority.LOW,
            created_at=now,
            client_id=c.id,
        ))
    return alerts


def _month_totals(bookings: Iterable[Booking], today: date) -> Dict[str, float]:
    value = commission = 0.0
    for b in bookings:
        if b.status == BookingStatus.CANCELLED:
            continue
        try:
            purchased = parse_date(b.purchase_date)
        except InvalidDateError:
            continue
        if (purchased.year, purchased.month) != (today.year, today.month):
            continue
        value += b.sale_value
        commission += effective_commission(b)
    return {"value": value, "commission": commission}


def goal_alerts(
    bookings: Iterable[Booking],
    config: Configuration,
    today: date,
    now: str,
) -> List[Alert]:
    """Goal-reached alerts for the monthly targets met in the current month."""
    totals = _month_totals(bookings, today)
    targets = {
        "value": config.monthly_value_target,
        "commission": config.monthly_commission_target,
    }

    alerts = []
    for kind, target in targets.items():
        if not target or totals[kind] < target:
            continue
        alerts.append(Alert(
            id=f"{AlertType.GOAL_REACHED.value}-{kind}-{today:%Y-%m}",
            type=AlertType.GOAL_REACHED,
            title=f"Monthly {kind} goal reached",
            description=f"{totals[kind]:.2f} of {target:.2f} in {today:%m/%Y}",
            priority=AlertPriority.MEDIUM,
            created_at=now,
        ))
    if alerts:
        logger.info("Monthly goals reached: %s", ", ".join(a.title for a in alerts))
    return alerts


def unread(alerts: Iterable[Alert]) -> List[Alert]:
    return [a for a in alerts if not a.read]


def mark_read(alerts: Iterable[Alert], alert_id: str) -> List[Alert]:
    return [replace(a, read=True) if a.id == alert_id else a for a in alerts]


def mark_all_read(alerts: Iterable[Alert]) -> List[Alert]:
    return [a if a.read else replace(a, read=True) for a in alerts]
