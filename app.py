"""
Travel Agency Desk - clients, bookings, commissions and reports.
Streamlit web app; storage on Google Sheets or on a local Excel workbook.
"""

import logging
import os
import sys
import uuid
from datetime import date, datetime

import pandas as pd
import streamlit as st

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import LOG_LEVEL, TRAVELLING_WINDOW_DAYS, WORKBOOK_PATH
from core.alerts import goal_alerts, inactivity_alerts, mark_all_read, mark_read, merge_alerts, unread
from core.errors import InvalidDateError, StoreError
from core.models import Booking, BookingStatus, Client, Configuration
from core.reconciler import reconcile
from core.records import update_booking, update_client
from core.rules import commission, effective_commission, parse_date
from core.search import search_bookings, travelling_clients
from core.sheets import SheetsStore, sheets_configured
from core.store import AgencyState, load_state, save_collection, save_config
from core.validation import format_cpf, format_currency, format_phone, is_valid_cpf, is_valid_email
from core.workbook import WorkbookStore
from reports.export import to_csv, to_excel_bytes, to_frame
from reports import summary

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title="Travel Agency Desk",
    page_icon="✈️",
    layout="wide",
)


# ── Storage ──────────────────────────────────────────────────────────────────
@st.cache_resource
def get_store():
    if sheets_configured():
        logger.info("Using Google Sheets storage")
        return SheetsStore()
    logger.info("Using local workbook %s", WORKBOOK_PATH)
    return WorkbookStore(WORKBOOK_PATH, backup=True)


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def run_daily_pass(state: AgencyState, store) -> None:
    """
    Recomputes derived state, then swaps and saves only the collections
    that changed.
    """
    today = date.today()
    now = _now()
    result = reconcile(state.clients, state.bookings, state.config, state.alerts, today, now)

    extra = inactivity_alerts(state.clients, result.clients, now)
    extra += goal_alerts(result.bookings, state.config, today, now)
    alerts = merge_alerts(result.alerts, extra)

    if result.bookings_changed:
        state.bookings = result.bookings
        save_collection(store, "bookings", state.bookings)
    if result.clients_changed:
        state.clients = result.clients
        save_collection(store, "clients", state.clients)
    if alerts != state.alerts:
        state.alerts = alerts
        save_collection(store, "alerts", state.alerts)
    state.errors = result.errors


def get_state() -> AgencyState:
    """Canonical collections of this session; loaded and reconciled once."""
    if "agency" not in st.session_state:
        store = get_store()
        state = load_state(store)
        run_daily_pass(state, store)
        st.session_state["agency"] = state
    return st.session_state["agency"]


def save_and_reconcile(state: AgencyState, name: str) -> bool:
    """Writes one collection and re-runs the pass; errors are shown, not raised."""
    store = get_store()
    try:
        if name == "config":
            save_config(store, state.config)
        else:
            save_collection(store, name, getattr(state, name))
        run_daily_pass(state, store)
    except StoreError as e:
        logger.error("Save of %s failed: %s", name, e)
        st.error(f"Save failed: {e}")
        return False
    return True


def save_alerts(state: AgencyState) -> None:
    try:
        save_collection(get_store(), "alerts", state.alerts)
    except StoreError as e:
        logger.error("Save of alerts failed: %s", e)
        st.error(f"Save failed: {e}")


# ── Page ─────────────────────────────────────────────────────────────────────
try:
    state = get_state()
except StoreError as e:
    st.error(f"Storage error: {e}")
    st.stop()

st.title(f"✈️ {state.config.agency_name}")

with st.sidebar:
    st.header("Storage")
    if sheets_configured():
        st.success("✓ Google Sheets connected")
    else:
        st.info(f"Local workbook: `{WORKBOOK_PATH}`")
        st.caption("Configure `.streamlit/secrets.toml` to use Google Sheets")

    st.divider()
    st.metric("Unread alerts", len(unread(state.alerts)))
    st.metric("Inactive clients", sum(1 for c in state.clients if not c.active))

    if state.errors:
        with st.expander(f"⚠️ {len(state.errors)} records with invalid data"):
            for err in state.errors:
                st.write(str(err))

clients_by_id = {c.id: c for c in state.clients}

(tab_dash, tab_clients, tab_bookings, tab_travel,
 tab_alerts, tab_reports, tab_settings) = st.tabs(
    ["📊 Dashboard", "👤 Clients", "🧳 Bookings", "🛫 Travelling",
     "🔔 Alerts", "📈 Reports", "⚙️ Settings"]
)


def download_buttons(records, name: str, key: str):
    col_csv, col_xlsx = st.columns(2)
    with col_csv:
        st.download_button(
            "⬇️ Download CSV",
            to_csv(records).encode("utf-8"),
            file_name=f"{name}.csv",
            mime="text/csv",
            key=f"{key}_csv",
        )
    with col_xlsx:
        st.download_button(
            "⬇️ Download Excel",
            to_excel_bytes(records),
            file_name=f"{name}.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            key=f"{key}_xlsx",
        )


# ============================================================
# TAB 1: DASHBOARD
# ============================================================
with tab_dash:
    period = st.selectbox("Period", [7, 30, 90, 365], index=1, format_func=lambda d: f"Last {d} days")
    overview = summary.financial_overview(state.bookings, date.today(), period)

    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Sales", overview.num_sales)
    k2.metric("Revenue", format_currency(overview.revenue))
    k3.metric("Commission", format_currency(overview.commission))
    k4.metric("Average ticket", format_currency(overview.average_ticket))

    st.divider()
    today = date.today()
    goals = summary.goal_progress(state.bookings, state.config, today.month, today.year)
    g1, g2 = st.columns(2)
    with g1:
        st.caption(f"Monthly sales goal: {format_currency(state.config.monthly_value_target or 0)}")
        st.progress(int(goals.value_pct))
    with g2:
        st.caption(f"Monthly commission goal: {format_currency(state.config.monthly_commission_target or 0)}")
        st.progress(int(goals.commission_pct))

    evolution = summary.monthly_evolution(state.bookings)
    if evolution:
        st.subheader("Monthly evolution")
        st.bar_chart(to_frame(evolution).set_index("month"))


# ── Forms ────────────────────────────────────────────────────────────────────
def _date_value(text):
    try:
        return parse_date(text)
    except InvalidDateError:
        return None


def _choices(options, current):
    """Options of a selectbox plus the record's current value when it is not listed."""
    options = list(options)
    if current and current not in options:
        options.insert(0, current)
    return options, (options.index(current) if current in options else 0)


def _split(text):
    return [s.strip() for s in text.split(",") if s.strip()]


def client_form(key: str, client: Client = None):
    """Client base fields from a submitted form, or None."""
    with st.form(key, clear_on_submit=client is None):
        name = st.text_input("Payer name", client.name if client else "")
        col1, col2 = st.columns(2)
        with col1:
            tax_id = st.text_input("CPF", client.tax_id if client else "")
            email = st.text_input("E-mail", client.email if client else "")
            birth_date = st.date_input(
                "Birth date", value=_date_value(client.birth_date) if client else None,
                min_value=date(1900, 1, 1), max_value=date.today(),
            )
        with col2:
            phone = st.text_input("Phone", client.phone if client else "")
            origins, index = _choices(state.config.origins, client.origin if client else "")
            origin = st.selectbox("Origin", origins, index=index)
        if not st.form_submit_button("Save", type="primary"):
            return None

    problems = []
    if not name.strip():
        problems.append("Name is required")
    if tax_id and not is_valid_cpf(tax_id):
        problems.append("Invalid CPF")
    if email and not is_valid_email(email):
        problems.append("Invalid e-mail")
    for p in problems:
        st.error(p)
    if problems:
        return None

    return {
        "name": name.strip(),
        "tax_id": tax_id.strip(),
        "email": email.strip(),
        "phone": phone.strip(),
        "birth_date": birth_date.isoformat() if birth_date else "",
        "origin": origin,
    }


def booking_form(key: str, booking: Booking = None):
    """Booking base fields from a submitted form, or None."""
    b = booking
    names = {c.id: c.name for c in state.clients}
    with st.form(key, clear_on_submit=b is None):
        client_ids = [c.id for c in state.clients]
        client_id = st.selectbox(
            "Client", client_ids,
            index=client_ids.index(b.client_id) if b and b.client_id in client_ids else 0,
            format_func=lambda cid: names[cid],
        )
        col1, col2, col3 = st.columns(3)
        with col1:
            suppliers, i_sup = _choices(state.config.suppliers, b.supplier if b else "")
            supplier = st.selectbox("Supplier", suppliers, index=i_sup)
            services, i_srv = _choices(state.config.service_types, b.service_type if b else "")
            service_type = st.selectbox("Service", services, index=i_srv)
            destination = st.text_input("Destination", b.destination if b else "")
            hotel = st.text_input("Hotel", (b.hotel or "") if b else "")
        with col2:
            purchase_date = st.date_input(
                "Purchase date", value=(_date_value(b.purchase_date) if b else None) or date.today())
            checkin = st.date_input(
                "Check-in", value=(_date_value(b.checkin_date) if b else None) or date.today())
            checkout = st.date_input(
                "Check-out", value=_date_value(b.checkout_date) if b and b.checkout_date else None)
            reservation_code = st.text_input("Reservation code", b.reservation_code if b else "")
        with col3:
            airline = st.text_input("Airline", (b.airline or "") if b else "")
            flight_code = st.text_input("Flight code", (b.flight_code or "") if b else "")
            external_ref = st.text_input("External reference", (b.external_ref or "") if b else "")
            statuses = [s.value for s in BookingStatus]
            status = st.selectbox(
                "Status", statuses, index=statuses.index(b.status.value) if b else 0)

        col4, col5, col6, col7 = st.columns(4)
        with col4:
            sale_value = st.number_input(
                "Sale value", min_value=0.0, step=100.0, value=float(b.sale_value) if b else 0.0)
        with col5:
            pct = st.number_input(
                "Commission %",
                value=float(b.commission_pct if b else state.config.default_commission_pct))
        with col6:
            manual = st.number_input(
                "Manual commission (0 = none)", min_value=0.0,
                value=float(b.manual_commission or 0) if b else 0.0)
        with col7:
            methods, i_pay = _choices(state.config.payment_methods, b.payment_method if b else "")
            payment_method = st.selectbox("Payment", methods, index=i_pay)

        companions = st.text_input(
            "Companions (comma separated)", ", ".join(b.companions) if b else "")
        attachments = st.text_input(
            "Documents (comma separated file names or links)", ", ".join(b.attachments) if b else "")
        notes = st.text_area("Notes", b.notes if b else "")
        if not st.form_submit_button("Save", type="primary"):
            return None

    if checkout and checkout < checkin:
        st.error("Check-out is before check-in")
        return None

    return {
        "client_id": client_id,
        "purchase_date": purchase_date.isoformat(),
        "supplier": supplier,
        "service_type": service_type,
        "destination": destination.strip(),
        "hotel": hotel.strip() or None,
        "checkin_date": checkin.isoformat(),
        "checkout_date": checkout.isoformat() if checkout else None,
        "reservation_code": reservation_code.strip(),
        "airline": airline.strip() or None,
        "flight_code": flight_code.strip() or None,
        "external_ref": external_ref.strip() or None,
        "status": BookingStatus(status),
        "sale_value": sale_value,
        "commission_pct": pct,
        "manual_commission": manual or None,
        "payment_method": payment_method,
        "companions": _split(companions),
        "attachments": _split(attachments),
        "notes": notes,
    }


# ============================================================
# TAB 2: CLIENTS
# ============================================================
with tab_clients:
    st.header("Clients")

    with st.expander("➕ New client"):
        fields = client_form("new_client")
        if fields:
            now = _now()
            state.clients.append(Client(id=_new_id(), created_at=now, updated_at=now, **fields))
            if save_and_reconcile(state, "clients"):
                st.success(f"✓ Client {fields['name']} saved")

    if state.clients:
        with st.expander("✏️ Edit client"):
            current = {c.id: c for c in state.clients}
            edit_id = st.selectbox(
                "Client to edit", list(current),
                format_func=lambda cid: current[cid].name, key="edit_client_id",
            )
            fields = client_form(f"edit_client_{edit_id}", current[edit_id])
            if fields:
                state.clients = update_client(state.clients, edit_id, fields, _now())
                if save_and_reconcile(state, "clients"):
                    st.success(f"✓ Client {fields['name']} updated")

    term = st.text_input("Search by name or CPF", key="client_search").lower()
    rows = []
    for c in state.clients:
        if term and term not in c.name.lower() and term not in c.tax_id:
            continue
        rows.append({
            "Name": c.name,
            "CPF": format_cpf(c.tax_id),
            "Phone": format_phone(c.phone),
            "Origin": c.origin,
            "Loyalty": c.loyalty_tier.value,
            "Bookings": c.purchase_history.count,
            "Total": format_currency(c.purchase_history.total_value),
            "Last purchase": c.last_purchase_date or "-",
            "Active": "✓" if c.active else "✗",
        })
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


# ============================================================
# TAB 3: BOOKINGS
# ============================================================
with tab_bookings:
    st.header("Bookings")

    with st.expander("➕ New booking"):
        if not state.clients:
            st.info("Add a client first.")
        else:
            fields = booking_form("new_booking")
            if fields:
                now = _now()
                state.bookings.append(Booking(
                    id=_new_id(),
                    commission_amount=commission(fields["sale_value"], fields["commission_pct"]),
                    created_at=now,
                    updated_at=now,
                    **fields,
                ))
                if save_and_reconcile(state, "bookings"):
                    calculated = commission(fields["sale_value"], fields["commission_pct"])
                    st.success(f"✓ Booking saved, commission {format_currency(calculated)}")

    col1, col2 = st.columns([3, 1])
    with col1:
        term = st.text_input("Search (client, CPF, code, flight, destination)", key="booking_search")
    with col2:
        statuses = ["All"] + [s.value for s in BookingStatus]
        sel_status = st.selectbox("Status", statuses)

    found = search_bookings(state.bookings, state.clients, term)
    if sel_status != "All":
        found = [b for b in found if b.status.value == sel_status]

    st.dataframe(pd.DataFrame([{
        "Client": clients_by_id[b.client_id].name if b.client_id in clients_by_id else "❓",
        "Destination": b.destination,
        "Supplier": b.supplier,
        "Service": b.service_type,
        "Check-in": b.checkin_date,
        "Alert": b.checkin_alert,
        "Flight": b.flight_code or "",
        "Sale": format_currency(b.sale_value),
        "Commission": format_currency(effective_commission(b)),
        "Status": b.status.value,
        "Code": b.reservation_code,
    } for b in found]), use_container_width=True, hide_index=True)

    if found and state.clients:
        with st.expander("✏️ Edit booking"):
            bookings_by_id = {b.id: b for b in found}
            edit_id = st.selectbox(
                "Booking to edit", list(bookings_by_id),
                format_func=lambda bid: f"{bookings_by_id[bid].reservation_code or bid} - "
                                        f"{bookings_by_id[bid].destination}",
                key="edit_booking_id",
            )
            fields = booking_form(f"edit_booking_{edit_id}", bookings_by_id[edit_id])
            if fields:
                state.bookings = update_booking(state.bookings, edit_id, fields, _now())
                if save_and_reconcile(state, "bookings"):
                    st.success("✓ Booking updated")


# ============================================================
# TAB 4: TRAVELLING
# ============================================================
with tab_travel:
    st.header(f"Clients travelling in the next {TRAVELLING_WINDOW_DAYS} days")
    travelling = travelling_clients(state.bookings, state.clients, date.today())

    k1, k2, k3 = st.columns(3)
    k1.metric("Today", sum(1 for t in travelling if t.alert == "Today"))
    k2.metric("Tomorrow", sum(1 for t in travelling if t.alert == "Tomorrow"))
    k3.metric("With documents", sum(1 for t in travelling if t.has_documents))

    st.dataframe(to_frame(travelling), use_container_width=True, hide_index=True)
    if travelling:
        download_buttons(travelling, "clients-travelling", "travel")


# ============================================================
# TAB 5: ALERTS
# ============================================================
with tab_alerts:
    st.header("Alerts")
    pending = unread(state.alerts)

    if pending and st.button("Mark all as read"):
        state.alerts = mark_all_read(state.alerts)
        save_alerts(state)
        st.rerun()

    if not pending:
        st.info("No unread alerts.")
    for a in pending:
        col1, col2 = st.columns([5, 1])
        with col1:
            st.markdown(f"**[{a.priority.value.upper()}] {a.title}** - {a.description}")
        with col2:
            if st.button("Read", key=f"read_{a.id}"):
                state.alerts = mark_read(state.alerts, a.id)
                save_alerts(state)
                st.rerun()


# ============================================================
# TAB 6: REPORTS
# ============================================================
with tab_reports:
    st.header("Reports")

    years = sorted({b.purchase_date[:4] for b in state.bookings if b.purchase_date[:4].isdigit()},
                   reverse=True) or [str(date.today().year)]
    col1, col2, col3 = st.columns(3)
    with col1:
        kind = st.radio("Period", ["Monthly", "Annual"], horizontal=True)
    with col2:
        sel_year = int(st.selectbox("Year", years))
    with col3:
        sel_month = st.selectbox("Month", list(range(1, 13)), index=date.today().month - 1,
                                 disabled=kind == "Annual")

    if kind == "Monthly":
        period_summary = summary.monthly_summary(state.bookings, sel_month, sel_year)
        period_name = f"{sel_year}-{sel_month:02d}"
    else:
        period_summary = summary.annual_summary(state.bookings, sel_year)
        period_name = str(sel_year)

    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Sales", period_summary.num_sales)
    k2.metric("Value sold", format_currency(period_summary.value_sold))
    k3.metric("Commission", format_currency(period_summary.total_commission))
    k4.metric("Average ticket", format_currency(period_summary.average_ticket))
    download_buttons([period_summary], f"summary-{period_name}", "summary")

    st.divider()
    st.subheader("Sales by origin")
    origins = summary.origin_breakdown(state.bookings, state.clients)
    if origins:
        st.dataframe(to_frame(origins), use_container_width=True, hide_index=True)
        st.bar_chart(to_frame(origins).set_index("origin")["total_value"])
        download_buttons(origins, "sales-by-origin", "origins")

    st.divider()
    st.subheader("ROI by supplier")
    roi = summary.supplier_roi(state.bookings)
    if roi:
        st.dataframe(to_frame(roi), use_container_width=True, hide_index=True)
        download_buttons(roi, "supplier-roi", "roi")

    st.divider()
    st.subheader("Most profitable clients")
    top = summary.top_clients(state.bookings, state.clients, n=10)
    if top:
        st.dataframe(to_frame(top), use_container_width=True, hide_index=True)
        download_buttons(top, "top-clients", "top")

    st.divider()
    st.subheader("Payment methods")
    payments = summary.payment_distribution(state.bookings)
    if payments:
        st.dataframe(to_frame(payments), use_container_width=True, hide_index=True)

    st.divider()
    st.subheader("Inactive clients")
    inactive = summary.inactive_clients(state.clients, state.bookings, state.config, date.today())
    if inactive:
        st.dataframe(to_frame(inactive), use_container_width=True, hide_index=True)
        download_buttons(inactive, "inactive-clients", "inactive")
    else:
        st.info("No inactive clients.")


# ============================================================
# TAB 7: SETTINGS
# ============================================================
with tab_settings:
    st.header("Settings")
    cfg = state.config
    with st.form("settings"):
        agency_name = st.text_input("Agency name", cfg.agency_name)
        col1, col2 = st.columns(2)
        with col1:
            default_pct = st.number_input("Default commission %", value=float(cfg.default_commission_pct))
            inactivity_days = st.number_input("Days before a client is inactive",
                                              min_value=1, value=int(cfg.inactivity_days))
        with col2:
            value_target = st.number_input("Monthly sales goal", min_value=0.0,
                                           value=float(cfg.monthly_value_target or 0))
            commission_target = st.number_input("Monthly commission goal", min_value=0.0,
                                                value=float(cfg.monthly_commission_target or 0))
        origins_txt = st.text_input("Client origins (comma separated)", ", ".join(cfg.origins))
        suppliers_txt = st.text_input("Suppliers (comma separated)", ", ".join(cfg.suppliers))
        services_txt = st.text_input("Service types (comma separated)", ", ".join(cfg.service_types))

        if st.form_submit_button("Save settings", type="primary"):
            state.config = Configuration(
                agency_name=agency_name,
                default_commission_pct=default_pct,
                inactivity_days=int(inactivity_days),
                brand_colors=cfg.brand_colors,
                origins=_split(origins_txt),
                suppliers=_split(suppliers_txt),
                service_types=_split(services_txt),
                payment_methods=cfg.payment_methods,
                monthly_value_target=value_target or None,
                monthly_commission_target=commission_target or None,
            )
            # The inactivity threshold changes the active flags
            if save_and_reconcile(state, "config"):
                st.success("✓ Settings saved")
