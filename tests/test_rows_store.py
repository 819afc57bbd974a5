import gspread
import pytest

from core.errors import DataError, StoreError
from core.models import Alert, AlertPriority, AlertType, BookingStatus, Configuration, PurchaseHistory
from core.rows import booking_to_row, client_to_row, config_to_rows, row_to_booking, row_to_client, rows_to_config
from core.sheets import SheetsStore
from core.store import AgencyState, load_state, save_state
from core.workbook import WorkbookStore


class MemoryStore:
    def __init__(self, data=None):
        self.data = dict(data or {})

    def load(self, name):
        return self.data.get(name)

    def save(self, name, rows):
        self.data[name] = list(rows)


def test_booking_row_keeps_lists_and_optionals(make_booking):
    booking = make_booking(
        companions=["João", "Lu"], attachments=["v.pdf"], manual_commission=120.0,
        status=BookingStatus.PENDING, hotel=None,
    )
    row = booking_to_row(booking)
    assert row["companions"] == '["João", "Lu"]'
    assert row["hotel"] == ""
    assert row_to_booking(row) == booking


def test_rows_read_as_sheet_text(make_client):
    client = make_client(active=True, purchase_history=PurchaseHistory(3, 4500.5),
                         last_purchase_date="2024-06-01")
    text_row = {k: ("" if v is None else str(v)) for k, v in client_to_row(client).items()}
    text_row["active"] = "TRUE"
    assert row_to_client(text_row) == client


def test_bad_number_raises():
    with pytest.raises(DataError):
        row_to_booking({"id": "B1", "sale_value": "abc"})


def test_config_rows_round_trip_and_ignore_unknown_keys():
    config = Configuration(agency_name="Sol Viagens", monthly_value_target=50000.0)
    rows = config_to_rows(config) + [{"key": "legacy", "value": "1"}]
    assert rows_to_config(rows) == config
    assert rows_to_config([]) == Configuration()


def test_load_state_skips_bad_rows(make_booking):
    good = booking_to_row(make_booking("B1"))
    bad = dict(booking_to_row(make_booking("B2")), status="Lost")
    state = load_state(MemoryStore({"bookings": [good, bad]}))
    assert [b.id for b in state.bookings] == ["B1"]
    assert state.clients == [] and state.alerts == []
    assert state.config == Configuration()
    assert [(e.kind, e.record_id) for e in state.errors] == [("booking", "B2")]


@pytest.mark.parametrize("cell", ["2", "null", "true", '"Ana"', '{"name": "Ana"}', 2])
def test_list_cell_that_is_not_a_json_list_is_rejected(make_booking, cell):
    row = dict(booking_to_row(make_booking("B1")), companions=cell)
    with pytest.raises(DataError):
        row_to_booking(row)


@pytest.mark.parametrize("cell", ["1e400", "inf", "abc"])
def test_unreadable_booking_count_is_rejected(make_client, cell):
    with pytest.raises(DataError):
        row_to_client(dict(client_to_row(make_client("C1")), num_bookings=cell))


def test_one_bad_cell_does_not_abort_the_load(make_client, make_booking):
    state = load_state(MemoryStore({
        "clients": [
            client_to_row(make_client("C1")),
            dict(client_to_row(make_client("C2")), num_bookings="1e400"),
        ],
        "bookings": [
            booking_to_row(make_booking("B1")),
            dict(booking_to_row(make_booking("B2")), companions="2"),
            dict(booking_to_row(make_booking("B3")), attachments="null"),
        ],
    }))
    assert [c.id for c in state.clients] == ["C1"]
    assert [b.id for b in state.bookings] == ["B1"]
    assert [(e.kind, e.record_id) for e in state.errors] == [
        ("client", "C2"), ("booking", "B2"), ("booking", "B3"),
    ]


def test_workbook_store_round_trip(tmp_path, make_client, make_booking):
    alert = Alert(id="checkin-today-B1-20240610", type=AlertType.CHECKIN_TODAY, title="Check-in today",
                  description="Client C1 - Lisbon", priority=AlertPriority.HIGH, booking_id="B1",
                  created_at="2024-06-10T08:00:00", expires_at="2024-06-10")
    state = AgencyState(
        clients=[make_client("C1", active=True, last_purchase_date="2024-06-10")],
        bookings=[make_booking("B1", companions=["Ana"], notes="window seat")],
        alerts=[alert],
        config=Configuration(inactivity_days=90),
    )
    store = WorkbookStore(str(tmp_path / "agency.xlsx"))
    assert store.load("clients") is None

    save_state(store, state)
    loaded = load_state(WorkbookStore(str(tmp_path / "agency.xlsx")))
    assert loaded.clients == state.clients
    assert loaded.bookings == state.bookings
    assert loaded.alerts == state.alerts
    assert loaded.config == state.config
    assert loaded.errors == []


def test_workbook_save_replaces_only_one_sheet(tmp_path):
    store = WorkbookStore(str(tmp_path / "agency.xlsx"))
    store.save("config", [{"key": "agency_name", "value": '"A"'}])
    store.save("alerts", [])
    store.save("config", [{"key": "agency_name", "value": '"B"'}])
    assert store.load("config") == [{"key": "agency_name", "value": '"B"'}]
    assert store.load("alerts") == []


# ── Google Sheets with a fake gspread client ─────────────────────────────────
class FakeWorksheet:
    row_count = 1000

    def __init__(self):
        self.values = []
        self.fail_updates = False

    def update(self, range_name, values, value_input_option):
        assert (range_name, value_input_option) == ("A1", "RAW")
        if self.fail_updates:
            raise gspread.exceptions.GSpreadException("quota exceeded")
        written = [["" if v is None else str(v) for v in row] for row in values]
        self.values = written + self.values[len(written):]

    def batch_clear(self, ranges):
        (cleared,) = ranges
        first_row = int(cleared.split(":")[0][1:])
        self.values = self.values[:first_row - 1]

    def get_all_records(self, numericise_ignore):
        if not self.values:
            return []
        headers, *rows = self.values
        return [dict(zip(headers, row)) for row in rows]


class FakeSpreadsheet:
    def __init__(self):
        self.sheets = {}

    def worksheet(self, name):
        if name not in self.sheets:
            raise gspread.WorksheetNotFound(name)
        return self.sheets[name]

    def add_worksheet(self, title, rows, cols):
        self.sheets[title] = FakeWorksheet()
        return self.sheets[title]


class FakeClient:
    def __init__(self):
        self.spreadsheet = FakeSpreadsheet()

    def open_by_key(self, key):
        return self.spreadsheet


def test_sheets_store_creates_worksheets_and_reads_text(make_booking):
    store = SheetsStore(spreadsheet_id="sheet-id", client=FakeClient())
    assert store.load("bookings") is None

    booking = make_booking("B1", companions=["Ana"], manual_commission=80.0)
    store.save("bookings", [booking_to_row(booking)])
    rows = store.load("bookings")
    assert rows[0]["sale_value"] == "1000.0"
    assert row_to_booking(rows[0]) == booking


def test_sheets_store_shrinking_collection_drops_leftover_rows(make_booking):
    store = SheetsStore(spreadsheet_id="sheet-id", client=FakeClient())
    store.save("bookings", [booking_to_row(make_booking("B1")), booking_to_row(make_booking("B2"))])
    store.save("bookings", [booking_to_row(make_booking("B3"))])
    assert [r["id"] for r in store.load("bookings")] == ["B3"]


def test_sheets_store_failed_write_keeps_previous_rows(make_booking):
    client = FakeClient()
    store = SheetsStore(spreadsheet_id="sheet-id", client=client)
    store.save("bookings", [booking_to_row(make_booking("B1"))])

    client.spreadsheet.sheets["bookings"].fail_updates = True
    with pytest.raises(StoreError):
        store.save("bookings", [])
    assert [r["id"] for r in store.load("bookings")] == ["B1"]
