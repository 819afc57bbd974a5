"""
Reports on the booking list.

Builds a pandas DataFrame from the bookings and produces fixed-shape rows:
  - period summary (month or year)
  - sales by client origin, ROI by supplier, most profitable clients
  - payment methods, monthly evolution, goals, financial overview,
    inactive clients

Every report returns zero values or an empty list on empty input.
Bookings whose client is unknown only count where no client is needed.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional

import pandas as pd

from config import EVOLUTION_MONTHS
from core.errors import InvalidDateError
from core.models import Booking, Client, Configuration
from core.rules import (
    average_ticket, days_between, effective_commission, is_inactive, parse_date, round_half_up,
    round_percent,
)


@dataclass(frozen=True)
class PeriodSummary:
    month: Optional[int]        # None for a yearly summary
    year: int
    num_sales: int
    value_sold: float
    total_commission: float
    average_ticket: float


@dataclass(frozen=True)
class OriginRow:
    origin: str
    count: int
    total_value: float
    percent: int


@dataclass(frozen=True)
class SupplierROI:
    supplier: str
    revenue: float
    commission: float
    roi_pct: int


@dataclass(frozen=True)
class ClientProfit:
    client_id: str
    name: str
    num_bookings: int
    revenue: float
    commission: float


@dataclass(frozen=True)
class PaymentRow:
    payment_method: str
    count: int
    value: float
    percent: int


@dataclass(frozen=True)
class MonthPoint:
    month: str                  # "YYYY-MM"
    revenue: float
    commission: float


@dataclass(frozen=True)
class GoalProgress:
    month: int
    year: int
    value_current: float
    commission_current: float
    value_pct: float            # capped at 100
    commission_pct: float


@dataclass(frozen=True)
class FinancialOverview:
    period_days: int
    revenue: float
    commission: float
    net_profit: float           # the agency keeps the commission only
    num_sales: int
    average_ticket: float


@dataclass(frozen=True)
class InactiveClientRow:
    client_id: str
    name: str
    email: str
    phone: str
    origin: str
    last_purchase: Optional[str]
    days_inactive: Optional[int]    # None when the client never bought
    total_value: float
    num_bookings: int


BOOKING_FRAME_COLUMNS = [
    "id", "client_id", "supplier", "payment_method", "status",
    "sale_value", "commission", "year", "month",
]


def _date_or_none(value) -> Optional[date]:
    try:
        return parse_date(value)
    except InvalidDateError:
        return None


def bookings_frame(bookings: Iterable[Booking]) -> pd.DataFrame:
    """
    One row per booking with the effective commission and the purchase
    year/month (0 when the purchase date is unreadable).
    """
    rows = []
    for b in bookings:
        purchased = _date_or_none(b.purchase_date)
        rows.append({
            "id": b.id,
            "client_id": b.client_id,
            "supplier": b.supplier,
            "payment_method": b.payment_method,
            "status": b.status.value,
            "sale_value": float(b.sale_value),
            "commission": float(effective_commission(b)),
            "year": purchased.year if purchased else 0,
            "month": purchased.month if purchased else 0,
        })
    return pd.DataFrame(rows, columns=BOOKING_FRAME_COLUMNS)


def clients_frame(clients: Iterable[Client]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"client_id": c.id, "name": c.name, "origin": c.origin} for c in clients],
        columns=["client_id", "name", "origin"],
    )


def _money(value) -> float:
    return round_half_up(float(value), 2)


def _summarize(df: pd.DataFrame, month: Optional[int], year: int) -> PeriodSummary:
    if df.empty:
        return PeriodSummary(month, year, 0, 0.0, 0.0, 0.0)
    value = _money(df["sale_value"].sum())
    return PeriodSummary(
        month=month,
        year=year,
        num_sales=len(df),
        value_sold=value,
        total_commission=_money(df["commission"].sum()),
        average_ticket=average_ticket(value, df["client_id"].nunique()),
    )


def monthly_summary(bookings: Iterable[Booking], month: int, year: int) -> PeriodSummary:
    """Totals of the bookings purchased in the given month."""
    df = bookings_frame(bookings)
    df = df[(df["year"] == year) & (df["month"] == month)]
    return _summarize(df, month, year)


def annual_summary(bookings: Iterable[Booking], year: int) -> PeriodSummary:
    df = bookings_frame(bookings)
    return _summarize(df[df["year"] == year], None, year)


def origin_breakdown(bookings: Iterable[Booking], clients: Iterable[Client]) -> List[OriginRow]:
    """Sales by client acquisition channel, in order of first appearance."""
    df = bookings_frame(bookings).merge(clients_frame(clients), on="client_id", how="inner")
    if df.empty:
        return []

    by_origin = df.groupby("origin", sort=False).agg(
        n=("id", "count"),
        total_value=("sale_value", "sum"),
    ).reset_index()
    grand_total = by_origin["total_value"].sum()

    return [
        OriginRow(
            origin=r.origin,
            count=int(r.n),
            total_value=_money(r.total_value),
            percent=round_percent(r.total_value / grand_total * 100) if grand_total > 0 else 0,
        )
        for r in by_origin.itertuples(index=False)
    ]


def supplier_roi(bookings: Iterable[Booking]) -> List[SupplierROI]:
    """Revenue, commission and commission/revenue ratio per supplier."""
    df = bookings_frame(bookings)
    if df.empty:
        return []

    by_supplier = df.groupby("supplier", sort=False).agg(
        revenue=("sale_value", "sum"),
        commission=("commission", "sum"),
    ).reset_index()

    return [
        SupplierROI(
            supplier=r.supplier,
            revenue=_money(r.revenue),
            commission=_money(r.commission),
            roi_pct=round_percent(r.commission / r.revenue * 100) if r.revenue > 0 else 0,
        )
        for r in by_supplier.itertuples(index=False)
    ]


def top_clients(bookings: Iterable[Booking], clients: Iterable[Client], n: int = 10) -> List[ClientProfit]:
    """Clients ranked by total effective commission; ties broken by client id."""
    df = bookings_frame(bookings).merge(clients_frame(clients), on="client_id", how="inner")
    if df.empty or n <= 0:
        return []

    by_client = df.groupby(["client_id", "name"]).agg(
        num_bookings=("id", "count"),
        revenue=("sale_value", "sum"),
        commission=("commission", "sum"),
    ).reset_index()
    by_client["commission"] = by_client["commission"].map(_money)
    by_client = by_client.sort_values(
        ["commission", "client_id"], ascending=[False, True], kind="mergesort"
    ).head(n)

    return [
        ClientProfit(
            client_id=r.client_id,
            name=r.name,
            num_bookings=int(r.num_bookings),
            revenue=_money(r.revenue),
            commission=_money(r.commission),
        )
        for r in by_client.itertuples(index=False)
    ]


def payment_distribution(bookings: Iterable[Booking]) -> List[PaymentRow]:
    """Bookings per payment method; percent is of the number of bookings."""
    df = bookings_frame(bookings)
    if df.empty:
        return []

    by_method = df.groupby("payment_method", sort=False).agg(
        n=("id", "count"),
        value=("sale_value", "sum"),
    ).reset_index()
    total = len(df)

    return [
        PaymentRow(
            payment_method=r.payment_method,
            count=int(r.n),
            value=_money(r.value),
            percent=round_percent(r.n / total * 100),
        )
        for r in by_method.itertuples(index=False)
    ]


def monthly_evolution(bookings: Iterable[Booking], months: int = EVOLUTION_MONTHS) -> List[MonthPoint]:
    """Revenue and commission of the last `months` months that have sales."""
    df = bookings_frame(bookings)
    df = df[df["year"] > 0]
    if df.empty:
        return []

    df = df.assign(period=df["year"].astype(str) + "-" + df["month"].map("{:02d}".format))
    by_month = df.groupby("period").agg(
        revenue=("sale_value", "sum"),
        commission=("commission", "sum"),
    ).reset_index().sort_values("period").tail(months)

    return [
        MonthPoint(month=r.period, revenue=_money(r.revenue), commission=_money(r.commission))
        for r in by_month.itertuples(index=False)
    ]


def goal_progress(bookings: Iterable[Booking], config: Configuration, month: int, year: int) -> GoalProgress:
    summary = monthly_summary(bookings, month, year)

    def pct(current: float, target: Optional[float]) -> float:
        if not target:
            return 0.0
        return round_half_up(min(current / target * 100, 100.0), 1)

    return GoalProgress(
        month=month,
        year=year,
        value_current=summary.value_sold,
        commission_current=summary.total_commission,
        value_pct=pct(summary.value_sold, config.monthly_value_target),
        commission_pct=pct(summary.total_commission, config.monthly_commission_target),
    )


def financial_overview(bookings: Iterable[Booking], today: date, period_days: int = 30) -> FinancialOverview:
    """Totals of the bookings purchased in the last `period_days` days."""
    since = parse_date(today) - timedelta(days=period_days)
    recent = [b for b in bookings if (_date_or_none(b.purchase_date) or date.min) >= since]
    summary = _summarize(bookings_frame(recent), None, parse_date(today).year)

    return FinancialOverview(
        period_days=period_days,
        revenue=summary.value_sold,
        commission=summary.total_commission,
        net_profit=summary.total_commission,
        num_sales=summary.num_sales,
        average_ticket=summary.average_ticket,
    )


def inactive_clients(
    clients: Iterable[Client],
    bookings: Iterable[Booking],
    config: Configuration,
    today: date,
) -> List[InactiveClientRow]:
    """Clients whose last purchase is older than the inactivity threshold."""
    last_purchase = {}
    for b in bookings:
        purchased = _date_or_none(b.purchase_date)
        if purchased is None:
            continue
        if b.client_id not in last_purchase or purchased > last_purchase[b.client_id]:
            last_purchase[b.client_id] = purchased

    rows = []
    for c in clients:
        last = last_purchase.get(c.id)
        if not is_inactive(last, config.inactivity_days, today):
            continue
        rows.append(InactiveClientRow(
            client_id=c.id,
            name=c.name,
            email=c.email,
            phone=c.phone,
            origin=c.origin,
            last_purchase=last.isoformat() if last else None,
            days_inactive=days_between(last, today) if last else None,
            total_value=c.purchase_history.total_value,
            num_bookings=c.purchase_history.count,
        ))
    return rows
