import pytest

from core.errors import DataError
from core.models import LoyaltyTier
from core.reconciler import reconcile
from core.records import update_booking, update_client

from conftest import days_from_today

NOW = "2024-06-10T08:00:00"


def test_update_client_keeps_identity(make_client):
    clients = [make_client("C1", created_at="2024-01-01T10:00:00"), make_client("C2")]
    updated = update_client(clients, "C1", {"name": "Ana Souza", "phone": "+5511987654321"}, NOW)
    c1 = updated[0]
    assert (c1.id, c1.name, c1.phone) == ("C1", "Ana Souza", "+5511987654321")
    assert c1.created_at == "2024-01-01T10:00:00"
    assert c1.updated_at == NOW
    assert updated[1] is clients[1]
    assert clients[0].name == "Client C1"


def test_derived_fields_are_not_editable(make_client, make_booking):
    with pytest.raises(DataError):
        update_client([make_client("C1")], "C1", {"loyalty_tier": LoyaltyTier.DIAMOND}, NOW)
    with pytest.raises(DataError):
        update_booking([make_booking("B1")], "B1", {"commission_amount": 999.0}, NOW)
    with pytest.raises(DataError):
        update_booking([make_booking("B1")], "B1", {"id": "B9"}, NOW)


def test_unknown_record_is_rejected(make_client, make_booking):
    with pytest.raises(DataError):
        update_client([make_client("C1")], "C9", {"name": "x"}, NOW)
    with pytest.raises(DataError):
        update_booking([make_booking("B1")], "B9", {"notes": "x"}, NOW)


def test_edited_booking_is_picked_up_by_the_next_pass(make_client, make_booking, config, today):
    clients = [make_client("C1")]
    bookings = [make_booking("B1", "C1", sale_value=1000, commission_pct=10, checkin_date=days_from_today(20))]
    first = reconcile(clients, bookings, config, [], today, NOW)

    edited = update_booking(first.bookings, "B1", {
        "sale_value": 2000.0,
        "manual_commission": 150.0,
        "checkin_date": days_from_today(1),
        "flight_code": "LA8084",
        "hotel": "Hotel Avenida",
        "attachments": ["voucher.pdf"],
    }, NOW)
    second = reconcile(first.clients, edited, config, first.alerts, today, NOW)

    b1 = second.bookings[0]
    assert b1.commission_amount == 200
    assert b1.manual_commission == 150
    assert b1.checkin_alert == "Tomorrow"
    assert b1.flight_code == "LA8084"
    assert second.clients[0].purchase_history.total_value == 2000
    assert [a.booking_id for a in second.new_alerts] == ["B1"]
