"""Shared fixtures: a fixed "today" and factories for clients and bookings."""

from datetime import date, timedelta

import pytest

from core.models import Booking, Client, Configuration

TODAY = date(2024, 6, 10)


def days_from_today(n: int) -> str:
    return (TODAY + timedelta(days=n)).isoformat()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def config() -> Configuration:
    return Configuration(inactivity_days=90)


@pytest.fixture
def make_client():
    def _make(client_id="C1", **kwargs):
        kwargs.setdefault("name", f"Client {client_id}")
        kwargs.setdefault("origin", "Instagram")
        return Client(id=client_id, **kwargs)
    return _make


@pytest.fixture
def make_booking():
    def _make(booking_id="B1", client_id="C1", **kwargs):
        kwargs.setdefault("purchase_date", TODAY.isoformat())
        kwargs.setdefault("supplier", "CVC")
        kwargs.setdefault("checkin_date", days_from_today(60))
        kwargs.setdefault("sale_value", 1000.0)
        kwargs.setdefault("commission_pct", 10.0)
        kwargs.setdefault("destination", "Lisbon")
        return Booking(id=booking_id, client_id=client_id, **kwargs)
    return _make
