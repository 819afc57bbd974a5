"""
Search and filters over the in-memory booking list.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional

from config import TRAVELLING_WINDOW_DAYS
from core.errors import InvalidDateError
from core.models import Booking, Client
from core.rules import checkin_alert, parse_date


@dataclass(frozen=True)
class TravellingClient:
    """A client with a check-in in the coming days."""
    booking_id: str
    client_id: str
    client_name: str
    companions: int
    destination: str
    service_type: str
    supplier: str
    checkin_date: str
    alert: str
    has_documents: bool


def _date_or_none(value) -> Optional[date]:
    try:
        return parse_date(value)
    except InvalidDateError:
        return None


def search_bookings(bookings: Iterable[Booking], clients: Iterable[Client], term: str) -> List[Booking]:
    """
    Case-insensitive match on client name, client tax id, reservation
    code, flight code and destination.
    """
    term = term.strip()
    if not term:
        return list(bookings)
    needle = term.lower()
    by_id = {c.id: c for c in clients}

    found = []
    for b in bookings:
        client = by_id.get(b.client_id)
        haystack = [b.reservation_code, b.flight_code or "", b.destination]
        if client is not None:
            haystack += [client.name, client.tax_id]
        if any(needle in str(value).lower() for value in haystack):
            found.append(b)
    return found


def filter_by_period(bookings: Iterable[Booking], start: date, end: date) -> List[Booking]:
    """Bookings purchased between start and end, inclusive."""
    start, end = parse_date(start), parse_date(end)
    result = []
    for b in bookings:
        purchased = _date_or_none(b.purchase_date)
        if purchased is not None and start <= purchased <= end:
            result.append(b)
    return result


def upcoming_checkins(bookings: Iterable[Booking], today: date, days: int) -> List[Booking]:
    """Bookings with a check-in between today and today + days, soonest first."""
    today = parse_date(today)
    limit = today + timedelta(days=days)
    dated = []
    for b in bookings:
        checkin = _date_or_none(b.checkin_date)
        if checkin is not None and today <= checkin <= limit:
            dated.append((checkin, b))
    dated.sort(key=lambda item: item[0])
    return [b for _, b in dated]


def travelling_clients(
    bookings: Iterable[Booking],
    clients: Iterable[Client],
    today: date,
    days: int = TRAVELLING_WINDOW_DAYS,
) -> List[TravellingClient]:
    by_id = {c.id: c for c in clients}
    rows = []
    for b in upcoming_checkins(bookings, today, days):
        client = by_id.get(b.client_id)
        rows.append(TravellingClient(
            booking_id=b.id,
            client_id=b.client_id,
            client_name=client.name if client else "Client not found",
            companions=len(b.companions),
            destination=b.destination,
            service_type=b.service_type,
            supplier=b.supplier,
            checkin_date=b.checkin_date,
            alert=checkin_alert(b.checkin_date, today).label,
            has_documents=bool(b.attachments),
        ))
    return rows
