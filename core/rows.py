"""
Conversion between model objects and flat rows (one dict per sheet row).

Both stores (Google Sheets and the local workbook) use these columns, one
worksheet per collection. Lists and dicts are written as JSON text; dates
are written as ISO text and read back as text.
"""

import json
from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from core.errors import DataError
from core.models import (
    Alert, AlertPriority, AlertType, Booking, BookingStatus, Client, Configuration,
    LoyaltyTier, PurchaseHistory,
)

Row = Dict[str, Any]

CLIENT_COLUMNS = [
    "id", "name", "tax_id", "birth_date", "phone", "email", "origin",
    "loyalty_tier", "num_bookings", "total_value", "active",
    "last_purchase_date", "created_at", "updated_at",
]

BOOKING_COLUMNS = [
    "id", "client_id", "companions", "purchase_date", "supplier",
    "reservation_code", "service_type", "checkin_date", "checkout_date",
    "airline", "flight_code", "destination", "hotel", "payment_method",
    "sale_value", "commission_pct", "commission_amount", "manual_commission",
    "notes", "status", "checkin_alert", "attachments", "external_ref",
    "created_at", "updated_at",
]

ALERT_COLUMNS = [
    "id", "type", "title", "description", "priority", "read",
    "created_at", "expires_at", "booking_id", "client_id",
]

# The configuration is stored as key/value rows
CONFIG_COLUMNS = ["key", "value"]

COLUMNS = {
    "clients": CLIENT_COLUMNS,
    "bookings": BOOKING_COLUMNS,
    "alerts": ALERT_COLUMNS,
    "config": CONFIG_COLUMNS,
}


# ── Cell helpers ─────────────────────────────────────────────────────────────
def _is_blank(val) -> bool:
    return val is None or str(val).strip() in ("", "None", "nan")


def _text(val) -> str:
    if _is_blank(val):
        return ""
    if isinstance(val, datetime):
        return val.isoformat()
    if isinstance(val, date):
        return val.isoformat()
    return str(val).strip()


def _opt_text(val) -> Optional[str]:
    return _text(val) or None


def _to_float(val) -> float:
    """Numeric cell to float; blanks become 0.0, decimal commas are accepted."""
    if _is_blank(val):
        return 0.0
    if isinstance(val, (int, float)):
        return float(val)
    try:
        return float(str(val).strip().replace(",", "."))
    except ValueError:
        raise DataError(f"Invalid number: {val!r}") from None


def _to_int(val) -> int:
    number = _to_float(val)
    try:
        return int(number)
    except (ValueError, OverflowError):
        raise DataError(f"Invalid integer: {val!r}") from None


def _opt_float(val) -> Optional[float]:
    return None if _is_blank(val) else _to_float(val)


def _to_bool(val) -> bool:
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in ("true", "1", "yes", "si", "sim")


def _to_list(val) -> List[str]:
    if _is_blank(val):
        return []
    if isinstance(val, list):
        return [str(v) for v in val]
    try:
        loaded = json.loads(str(val))
    except ValueError:
        raise DataError(f"Invalid list: {val!r}") from None
    if not isinstance(loaded, list):
        raise DataError(f"Invalid list: {val!r}")
    return [str(v) for v in loaded]


def _enum(enum_cls, val, default=None):
    if _is_blank(val) and default is not None:
        return default
    try:
        return enum_cls(_text(val))
    except ValueError:
        raise DataError(f"Invalid {enum_cls.__name__}: {val!r}") from None


def _blank_none(val):
    return "" if val is None else val


# ── Clients ──────────────────────────────────────────────────────────────────
def client_to_row(c: Client) -> Row:
    return {
        "id": c.id,
        "name": c.name,
        "tax_id": c.tax_id,
        "birth_date": c.birth_date,
        "phone": c.phone,
        "email": c.email,
        "origin": c.origin,
        "loyalty_tier": c.loyalty_tier.value,
        "num_bookings": c.purchase_history.count,
        "total_value": c.purchase_history.total_value,
        "active": c.active,
        "last_purchase_date": _blank_none(c.last_purchase_date),
        "created_at": c.created_at,
        "updated_at": c.updated_at,
    }


def row_to_client(row: Row) -> Client:
    return Client(
        id=_text(row.get("id")),
        name=_text(row.get("name")),
        tax_id=_text(row.get("tax_id")),
        birth_date=_text(row.get("birth_date")),
        phone=_text(row.get("phone")),
        email=_text(row.get("email")),
        origin=_text(row.get("origin")),
        loyalty_tier=_enum(LoyaltyTier, row.get("loyalty_tier"), LoyaltyTier.BRONZE),
        purchase_history=PurchaseHistory(
            count=_to_int(row.get("num_bookings")),
            total_value=_to_float(row.get("total_value")),
        ),
        active=_to_bool(row.get("active")),
        last_purchase_date=_opt_text(row.get("last_purchase_date")),
        created_at=_text(row.get("created_at")),
        updated_at=_text(row.get("updated_at")),
    )


# ── Bookings ─────────────────────────────────────────────────────────────────
def booking_to_row(b: Booking) -> Row:
    return {
        "id": b.id,
        "client_id": b.client_id,
        "companions": json.dumps(b.companions, ensure_ascii=False),
        "purchase_date": b.purchase_date,
        "supplier": b.supplier,
        "reservation_code": b.reservation_code,
        "service_type": b.service_type,
        "checkin_date": b.checkin_date,
        "checkout_date": _blank_none(b.checkout_date),
        "airline": _blank_none(b.airline),
        "flight_code": _blank_none(b.flight_code),
        "destination": b.destination,
        "hotel": _blank_none(b.hotel),
        "payment_method": b.payment_method,
        "sale_value": b.sale_value,
        "commission_pct": b.commission_pct,
        "commission_amount": b.commission_amount,
        "manual_commission": _blank_none(b.manual_commission),
        "notes": b.notes,
        "status": b.status.value,
        "checkin_alert": b.checkin_alert,
        "attachments": json.dumps(b.attachments, ensure_ascii=False),
        "external_ref": _blank_none(b.external_ref),
        "created_at": b.created_at,
        "updated_at": b.updated_at,
    }


def row_to_booking(row: Row) -> Booking:
    return Booking(
        id=_text(row.get("id")),
        client_id=_text(row.get("client_id")),
        companions=_to_list(row.get("companions")),
        purchase_date=_text(row.get("purchase_date")),
        supplier=_text(row.get("supplier")),
        reservation_code=_text(row.get("reservation_code")),
        service_type=_text(row.get("service_type")),
        checkin_date=_text(row.get("checkin_date")),
        checkout_date=_opt_text(row.get("checkout_date")),
        airline=_opt_text(row.get("airline")),
        flight_code=_opt_text(row.get("flight_code")),
        destination=_text(row.get("destination")),
        hotel=_opt_text(row.get("hotel")),
        payment_method=_text(row.get("payment_method")),
        sale_value=_to_float(row.get("sale_value")),
        commission_pct=_to_float(row.get("commission_pct")),
        commission_amount=_to_float(row.get("commission_amount")),
        manual_commission=_opt_float(row.get("manual_commission")),
        notes=_text(row.get("notes")),
        status=_enum(BookingStatus, row.get("status"), BookingStatus.CONFIRMED),
        checkin_alert=_text(row.get("checkin_alert")),
        attachments=_to_list(row.get("attachments")),
        external_ref=_opt_text(row.get("external_ref")),
        created_at=_text(row.get("created_at")),
        updated_at=_text(row.get("updated_at")),
    )


# ── Alerts ───────────────────────────────────────────────────────────────────
def alert_to_row(a: Alert) -> Row:
    return {
        "id": a.id,
        "type": a.type.value,
        "title": a.title,
        "description": a.description,
        "priority": a.priority.value,
        "read": a.read,
        "created_at": a.created_at,
        "expires_at": _blank_none(a.expires_at),
        "booking_id": _blank_none(a.booking_id),
        "client_id": _blank_none(a.client_id),
    }


def row_to_alert(row: Row) -> Alert:
    return Alert(
        id=_text(row.get("id")),
        type=_enum(AlertType, row.get("type")),
        title=_text(row.get("title")),
        description=_text(row.get("description")),
        priority=_enum(AlertPriority, row.get("priority"), AlertPriority.LOW),
        read=_to_bool(row.get("read")),
        created_at=_text(row.get("created_at")),
        expires_at=_opt_text(row.get("expires_at")),
        booking_id=_opt_text(row.get("booking_id")),
        client_id=_opt_text(row.get("client_id")),
    )


# ── Configuration ────────────────────────────────────────────────────────────
def config_to_rows(config: Configuration) -> List[Row]:
    return [
        {"key": key, "value": json.dumps(value, ensure_ascii=False)}
        for key, value in asdict(config).items()
    ]


def rows_to_config(rows: List[Row]) -> Configuration:
    """Unknown keys are ignored, missing keys keep their defaults."""
    known = set(Configuration.__dataclass_fields__)
    values = {}
    for row in rows:
        key = _text(row.get("key"))
        if key not in known:
            continue
        raw = row.get("value")
        try:
            values[key] = json.loads(raw) if isinstance(raw, str) else raw
        except ValueError:
            raise DataError(f"Invalid config value for {key!r}: {row.get('value')!r}") from None
    return Configuration(**values)


TO_ROW = {
    "clients": client_to_row,
    "bookings": booking_to_row,
    "alerts": alert_to_row,
}

FROM_ROW = {
    "clients": row_to_client,
    "bookings": row_to_booking,
    "alerts": row_to_alert,
}
