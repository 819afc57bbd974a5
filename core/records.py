"""
Edits of client and booking records coming from the forms.

Only base fields can be edited. Derived fields (activity, loyalty,
purchase history, check-in label, calculated commission) belong to the
reconciler and are refreshed by the next pass.
"""

from dataclasses import fields, replace
from typing import Any, Dict, List

from core.errors import DataError
from core.models import Booking, Client

_FIXED = {"id", "created_at", "updated_at"}

CLIENT_DERIVED = {"loyalty_tier", "purchase_history", "active", "last_purchase_date"}
BOOKING_DERIVED = {"commission_amount", "checkin_alert"}

CLIENT_EDITABLE = {f.name for f in fields(Client)} - _FIXED - CLIENT_DERIVED
BOOKING_EDITABLE = {f.name for f in fields(Booking)} - _FIXED - BOOKING_DERIVED


def _edit(record, changes: Dict[str, Any], editable, now: str):
    rejected = set(changes) - editable
    if rejected:
        raise DataError(f"Fields not editable: {', '.join(sorted(rejected))}")
    return replace(record, **changes, updated_at=now)


def update_client(clients: List[Client], client_id: str, changes: Dict[str, Any], now: str) -> List[Client]:
    """New client list with `changes` applied to one client; id and created_at are kept."""
    if not any(c.id == client_id for c in clients):
        raise DataError(f"Unknown client: {client_id!r}")
    return [_edit(c, changes, CLIENT_EDITABLE, now) if c.id == client_id else c for c in clients]


def update_booking(bookings: List[Booking], booking_id: str, changes: Dict[str, Any], now: str) -> List[Booking]:
    """New booking list with `changes` applied to one booking; id and created_at are kept."""
    if not any(b.id == booking_id for b in bookings):
        raise DataError(f"Unknown booking: {booking_id!r}")
    return [_edit(b, changes, BOOKING_EDITABLE, now) if b.id == booking_id else b for b in bookings]
