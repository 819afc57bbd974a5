"""
Daily automation pass: recomputes every derived field from the collections.

Given clients, bookings, configuration, current alerts and today's date:
  1. refreshes each booking's check-in label (and calculated commission)
  2. refreshes each client's active flag, last purchase date,
     loyalty tier and purchase history
  3. appends de-duplicated check-in alerts

The pass is a pure transform: inputs are never modified and a second run
with the same inputs and the same day returns exactly the same state.
Records with unreadable dates are passed through unchanged and reported
in ReconcileResult.errors.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from core.alerts import build_checkin_alert, merge_alerts
from core.errors import InvalidDateError, RecordError
from core.models import (
    Alert, Booking, BookingStatus, Client, Configuration, PurchaseHistory,
)
from core.rules import (
    checkin_alert, commission, is_inactive, loyalty_tier, parse_date, round_half_up,
)

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    bookings: List[Booking]
    clients: List[Client]
    alerts: List[Alert]
    errors: List[RecordError] = field(default_factory=list)
    # Inputs, kept to tell the caller whether anything needs saving
    previous_bookings: Sequence[Booking] = field(default_factory=list, repr=False)
    previous_clients: Sequence[Client] = field(default_factory=list, repr=False)
    previous_alerts: Sequence[Alert] = field(default_factory=list, repr=False)

    @property
    def bookings_changed(self) -> bool:
        return self.bookings != list(self.previous_bookings)

    @property
    def clients_changed(self) -> bool:
        return self.clients != list(self.previous_clients)

    @property
    def alerts_changed(self) -> bool:
        return self.alerts != list(self.previous_alerts)

    @property
    def changed(self) -> bool:
        return self.bookings_changed or self.clients_changed or self.alerts_changed

    @property
    def new_alerts(self) -> List[Alert]:
        return self.alerts[len(self.previous_alerts):]


def _record_error(errors: List[RecordError], kind: str, record_id: str, field_name: str, value) -> None:
    err = RecordError(kind, record_id, field_name, value, "is not a valid date")
    logger.warning("Skipping %s", err)
    errors.append(err)


def _refresh_booking(booking: Booking, today: date, errors: List[RecordError]):
    """Returns (updated booking, CheckinAlert or None when the check-in date is unreadable)."""
    updated = booking
    calculated = commission(booking.sale_value, booking.commission_pct)
    if booking.commission_amount != calculated:
        updated = replace(updated, commission_amount=calculated)

    try:
        check = checkin_alert(booking.checkin_date, today)
    except InvalidDateError:
        _record_error(errors, "booking", booking.id, "checkin_date", booking.checkin_date)
        return booking, None

    if updated.checkin_alert != check.label:
        updated = replace(updated, checkin_alert=check.label)
    return updated, check


def _latest_purchases(bookings: Sequence[Booking], errors: List[RecordError]) -> Dict[str, Booking]:
    """Most recent booking per client by purchase date; the first one wins a tie."""
    latest: Dict[str, Booking] = {}
    latest_date: Dict[str, date] = {}
    for b in bookings:
        try:
            purchased = parse_date(b.purchase_date)
        except InvalidDateError:
            _record_error(errors, "booking", b.id, "purchase_date", b.purchase_date)
            continue
        if b.client_id not in latest_date or purchased > latest_date[b.client_id]:
            latest[b.client_id] = b
            latest_date[b.client_id] = purchased
    return latest


def _purchase_history(bookings: Sequence[Booking]) -> Dict[str, PurchaseHistory]:
    counts: Dict[str, int] = {}
    totals: Dict[str, float] = {}
    for b in bookings:
        if b.status == BookingStatus.CANCELLED:
            continue
        counts[b.client_id] = counts.get(b.client_id, 0) + 1
        totals[b.client_id] = totals.get(b.client_id, 0.0) + b.sale_value
    return {
        cid: PurchaseHistory(count=counts[cid], total_value=round_half_up(totals[cid], 2))
        for cid in counts
    }


def _refresh_client(
    client: Client,
    latest: Optional[Booking],
    history: PurchaseHistory,
    config: Configuration,
    today: date,
) -> Client:
    last_purchase = latest.purchase_date if latest else None
    active = not is_inactive(last_purchase, config.inactivity_days, today)

    changes = {}
    if client.active != active:
        changes["active"] = active
    if client.last_purchase_date != last_purchase:
        changes["last_purchase_date"] = last_purchase
    tier = loyalty_tier(history.count)
    if client.loyalty_tier != tier:
        changes["loyalty_tier"] = tier
    if client.purchase_history != history:
        changes["purchase_history"] = history
    return replace(client, **changes) if changes else client


def reconcile(
    clients: Sequence[Client],
    bookings: Sequence[Booking],
    config: Configuration,
    alerts: Sequence[Alert],
    today: date,
    now: Optional[str] = None,
) -> ReconcileResult:
    """Runs one reconciliation pass; `now` stamps the alerts it creates."""
    today = parse_date(today)
    if now is None:
        now = datetime.now().isoformat(timespec="seconds")
    errors: List[RecordError] = []

    # ── Bookings: check-in labels ─────────────────────────────────────────
    new_bookings = []
    checks = {}
    for b in bookings:
        updated, check = _refresh_booking(b, today, errors)
        new_bookings.append(updated)
        if check is not None:
            checks[b.id] = check

    # ── Clients: activity, tier, history ──────────────────────────────────
    latest = _latest_purchases(bookings, errors)
    history = _purchase_history(bookings)
    new_clients = [
        _refresh_client(c, latest.get(c.id), history.get(c.id, PurchaseHistory()), config, today)
        for c in clients
    ]

    # ── Alerts ────────────────────────────────────────────────────────────
    by_id = {c.id: c for c in new_clients}
    candidates = []
    for b in new_bookings:
        check = checks.get(b.id)
        if check is None:
            continue
        alert = build_checkin_alert(b, by_id.get(b.client_id), check, today, now)
        if alert is not None:
            candidates.append(alert)
    new_alerts = merge_alerts(list(alerts), candidates)

    result = ReconcileResult(
        bookings=new_bookings,
        clients=new_clients,
        alerts=new_alerts,
        errors=errors,
        previous_bookings=list(bookings),
        previous_clients=list(clients),
        previous_alerts=list(alerts),
    )
    logger.info(
        "Reconciliation %s: %d bookings, %d clients, %d new alerts, %d errors",
        today.isoformat(), len(new_bookings), len(new_clients),
        len(result.new_alerts), len(errors),
    )
    return result
