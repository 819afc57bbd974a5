from dataclasses import replace

from core.models import AlertPriority, AlertType, BookingStatus, LoyaltyTier, PurchaseHistory
from core.reconciler import reconcile
from core.rules import commission

from conftest import days_from_today

NOW = "2024-06-10T08:00:00"


def run(clients, bookings, config, today, alerts=()):
    return reconcile(clients, bookings, config, list(alerts), today, NOW)


def test_client_without_bookings_is_inactive(make_client, config, today):
    result = run([make_client("C1", active=True)], [], config, today)
    c1 = result.clients[0]
    assert c1.active is False
    assert c1.last_purchase_date is None
    assert c1.loyalty_tier == LoyaltyTier.BRONZE


def test_first_booking_activates_client(make_client, make_booking, config, today):
    booking = make_booking("B1", "C1", sale_value=1000, commission_pct=10)
    assert commission(booking.sale_value, booking.commission_pct) == 100

    result = run([make_client("C1")], [booking], config, today)
    c1 = result.clients[0]
    assert c1.active is True
    assert c1.last_purchase_date == today.isoformat()
    assert c1.loyalty_tier == LoyaltyTier.BRONZE
    assert c1.purchase_history == PurchaseHistory(count=1, total_value=1000)
    assert result.bookings[0].commission_amount == 100


def test_activity_uses_most_recent_purchase(make_client, make_booking, config, today):
    bookings = [
        make_booking("B1", "C1", purchase_date=days_from_today(-400)),
        make_booking("B2", "C1", purchase_date=days_from_today(-10)),
        make_booking("B3", "C2", purchase_date=days_from_today(-120)),
    ]
    result = run([make_client("C1"), make_client("C2", active=True)], bookings, config, today)
    c1, c2 = result.clients
    assert c1.active and c1.last_purchase_date == days_from_today(-10)
    assert not c2.active and c2.last_purchase_date == days_from_today(-120)


def test_loyalty_counts_non_cancelled_bookings(make_client, make_booking, config, today):
    bookings = [make_booking(f"B{i}", "C1") for i in range(4)]
    bookings.append(make_booking("B9", "C1", status=BookingStatus.CANCELLED))
    result = run([make_client("C1")], bookings, config, today)
    assert result.clients[0].loyalty_tier == LoyaltyTier.GOLD
    assert result.clients[0].purchase_history.count == 4


def test_checkin_labels_are_refreshed(make_client, make_booking, config, today):
    bookings = [
        make_booking("B1", checkin_date=days_from_today(0), checkin_alert="3 days"),
        make_booking("B2", checkin_date=days_from_today(15)),
        make_booking("B3", checkin_date=days_from_today(-9)),
    ]
    result = run([make_client("C1")], bookings, config, today)
    assert [b.checkin_alert for b in result.bookings] == ["Today", "15 days", "Overdue"]


def test_tomorrow_checkin_creates_one_alert_and_is_idempotent(make_client, make_booking, config, today):
    clients = [make_client("C1", name="Ana Souza")]
    bookings = [make_booking("B1", "C1", checkin_date=days_from_today(1), destination="Rome")]

    first = run(clients, bookings, config, today)
    assert len(first.new_alerts) == 1
    alert = first.new_alerts[0]
    assert alert.type == AlertType.CHECKIN_TOMORROW
    assert alert.priority == AlertPriority.MEDIUM
    assert alert.read is False
    assert alert.booking_id == "B1"
    assert alert.description == "Ana Souza - Rome"

    second = run(first.clients, first.bookings, config, today, first.alerts)
    assert second.new_alerts == []
    assert second.alerts == first.alerts
    assert second.bookings == first.bookings
    assert second.clients == first.clients
    assert not second.changed


def test_alert_priorities_follow_severity(make_client, make_booking, config, today):
    bookings = [
        make_booking("B0", checkin_date=days_from_today(0)),
        make_booking("B1", checkin_date=days_from_today(1)),
        make_booking("B5", checkin_date=days_from_today(5)),
        make_booking("B8", checkin_date=days_from_today(8)),
        make_booking("BX", checkin_date=days_from_today(-1)),
    ]
    result = run([make_client("C1")], bookings, config, today)
    got = {(a.booking_id, a.type, a.priority) for a in result.alerts}
    assert got == {
        ("B0", AlertType.CHECKIN_TODAY, AlertPriority.HIGH),
        ("B1", AlertType.CHECKIN_TOMORROW, AlertPriority.MEDIUM),
        ("B5", AlertType.CHECKIN_SOON, AlertPriority.LOW),
    }


def test_existing_alerts_are_preserved(make_client, make_booking, config, today):
    clients = [make_client("C1")]
    earlier = run(clients, [make_booking("B1", checkin_date=days_from_today(3))], config, today).alerts
    assert earlier[0].type == AlertType.CHECKIN_SOON

    # Two days later the same booking is due tomorrow: the older unread alert stays
    later = today.replace(day=today.day + 2)
    result = reconcile(clients, [make_booking("B1", checkin_date=days_from_today(3))],
                       config, earlier, later, NOW)
    assert result.alerts[0] == earlier[0]
    assert [a.type for a in result.alerts] == [AlertType.CHECKIN_SOON, AlertType.CHECKIN_TOMORROW]


def test_read_alert_is_kept_and_silences_the_day(make_client, make_booking, config, today):
    clients = [make_client("C1")]
    bookings = [make_booking("B1", checkin_date=days_from_today(1))]
    first = run(clients, bookings, config, today)
    read = [replace(a, read=True) for a in first.alerts]

    again = run(first.clients, first.bookings, config, today, read)
    assert again.alerts == read


def test_unread_alert_of_another_type_does_not_block(make_client, make_booking, config, today):
    clients = [make_client("C1")]
    soon = run(clients, [make_booking("B1", checkin_date=days_from_today(4))], config, today).alerts
    result = run(clients, [make_booking("B1", checkin_date=days_from_today(0))], config, today, soon)
    assert [a.type for a in result.alerts] == [AlertType.CHECKIN_SOON, AlertType.CHECKIN_TODAY]


def test_bad_checkin_date_is_reported_and_passed_through(make_client, make_booking, config, today):
    bad = make_booking("B1", checkin_date="31/31/2024", checkin_alert="old label", commission_amount=0)
    good = make_booking("B2", checkin_date=days_from_today(0))
    result = run([make_client("C1")], [bad, good], config, today)

    assert result.bookings[0] is bad
    assert result.bookings[1].checkin_alert == "Today"
    assert [a.booking_id for a in result.alerts] == ["B2"]
    assert len(result.errors) == 1
    err = result.errors[0]
    assert (err.kind, err.record_id, err.field) == ("booking", "B1", "checkin_date")


def test_bad_purchase_date_is_excluded_from_activity(make_client, make_booking, config, today):
    bookings = [
        make_booking("B1", "C1", purchase_date="not a date"),
        make_booking("B2", "C1", purchase_date=days_from_today(-200)),
    ]
    result = run([make_client("C1", active=True)], bookings, config, today)
    assert result.clients[0].active is False
    assert result.clients[0].last_purchase_date == days_from_today(-200)
    assert [e.field for e in result.errors] == ["purchase_date"]


def test_booking_for_unknown_client(make_client, make_booking, config, today):
    result = run([make_client("C1")], [make_booking("B1", "C404", checkin_date=days_from_today(0))],
                 config, today)
    assert result.alerts[0].description.startswith("Unknown client")
    assert result.clients[0].active is False


def test_inputs_are_not_modified(make_client, make_booking, config, today):
    clients = [make_client("C1")]
    bookings = [make_booking("B1", checkin_date=days_from_today(1))]
    alerts = []
    result = run(clients, bookings, config, today, alerts)
    assert clients[0].active is False
    assert bookings[0].checkin_alert == ""
    assert alerts == []
    assert result.changed
