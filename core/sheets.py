"""
Google Sheets storage: one worksheet per collection.

The Google Sheet has these worksheets (created on first save):
  - clients   → client records
  - bookings  → booking records
  - alerts    → alerts, read and unread
  - config    → agency configuration as key/value rows

Authentication via Service Account (credentials in Streamlit secrets).

One-time setup:
  1. Create a Service Account on Google Cloud
  2. Share the Google Sheet with the service account e-mail
  3. Put the credentials in .streamlit/secrets.toml
     ([gcp_service_account] and [google_sheets] spreadsheet_id)
"""

import logging
from typing import List, Optional

import gspread
import streamlit as st

from core.errors import StoreError
from core.rows import COLUMNS, Row

logger = logging.getLogger(__name__)


def sheets_configured() -> bool:
    try:
        _ = st.secrets["gcp_service_account"]
        _ = st.secrets["google_sheets"]["spreadsheet_id"]
        return True
    except Exception:
        return False


@st.cache_resource
def get_gspread_client():
    """
    Authenticated gspread client via Service Account.
    Credentials come from st.secrets (Streamlit Cloud) or from
    .streamlit/secrets.toml locally.
    """
    creds_dict = dict(st.secrets["gcp_service_account"])
    return gspread.service_account_from_dict(creds_dict)


class SheetsStore:
    def __init__(self, spreadsheet_id: str = None, client=None):
        self.spreadsheet_id = spreadsheet_id or st.secrets["google_sheets"]["spreadsheet_id"]
        self.client = client or get_gspread_client()

    def _spreadsheet(self):
        try:
            return self.client.open_by_key(self.spreadsheet_id)
        except gspread.exceptions.GSpreadException as e:
            raise StoreError(f"Cannot open spreadsheet {self.spreadsheet_id}: {e}") from e

    def _worksheet(self, name: str, create: bool = False):
        sh = self._spreadsheet()
        try:
            return sh.worksheet(name)
        except gspread.WorksheetNotFound:
            if not create:
                return None
            headers = COLUMNS.get(name, [])
            return sh.add_worksheet(title=name, rows=1000, cols=max(len(headers), 2))

    def load(self, name: str) -> Optional[List[Row]]:
        ws = self._worksheet(name)
        if ws is None:
            return None
        try:
            # Keep every cell as text: JSON and ISO dates must not be numericised
            records = ws.get_all_records(numericise_ignore=["all"])
        except gspread.exceptions.GSpreadException as e:
            raise StoreError(f"Cannot read worksheet {name}: {e}") from e
        logger.debug("Loaded %d rows from sheet %s", len(records), name)
        return records

    def save(self, name: str, rows: List[Row]) -> None:
        ws = self._worksheet(name, create=True)
        headers = COLUMNS.get(name) or (list(rows[0].keys()) if rows else [])
        values = [headers] + [[_cell(row.get(h)) for h in headers] for row in rows]
        try:
            # Overwrite first, then clear the rows left over from a longer
            # collection; a failed update leaves the previous rows readable
            ws.update(range_name="A1", values=values, value_input_option="RAW")
            if ws.row_count > len(values):
                ws.batch_clear([f"A{len(values) + 1}:ZZ"])
        except gspread.exceptions.GSpreadException as e:
            raise StoreError(f"Cannot write worksheet {name}: {e}") from e
        logger.info("Saved %d rows to sheet %s", len(rows), name)


def _cell(value):
    return "" if value is None else value
