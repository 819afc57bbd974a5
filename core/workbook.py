"""
Local Excel workbook as storage: one sheet per collection.

Strategy:
  1. Optional backup of the file before each write
  2. The sheet of the collection is replaced as a whole (header + rows)
  3. Other sheets of the workbook are left untouched
"""

import logging
import os
import shutil
from datetime import datetime
from typing import List, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from config import WORKBOOK_PATH
from core.errors import StoreError
from core.rows import COLUMNS, Row

logger = logging.getLogger(__name__)


def _backup(path: str) -> str:
    """Copies the workbook next to itself before it is modified."""
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    base = path[:-5] if path.endswith(".xlsx") else path
    backup_path = f"{base}_backup_{ts}.xlsx"
    shutil.copy2(path, backup_path)
    return backup_path


class WorkbookStore:
    def __init__(self, path: str = None, backup: bool = False):
        self.path = path or WORKBOOK_PATH
        self.backup = backup

    def _open(self):
        try:
            return load_workbook(self.path)
        except (InvalidFileException, KeyError, OSError) as e:
            raise StoreError(f"Cannot open workbook {self.path}: {e}") from e

    def load(self, name: str) -> Optional[List[Row]]:
        if not os.path.exists(self.path):
            return None
        wb = self._open()
        if name not in wb.sheetnames:
            return None
        ws = wb[name]

        rows = []
        headers = None
        for i, values in enumerate(ws.iter_rows(values_only=True)):
            if i == 0:
                headers = [str(c).strip() if c is not None else f"col_{j}" for j, c in enumerate(values)]
                continue
            if any(v is not None for v in values):
                rows.append(dict(zip(headers, values)))
        logger.debug("Loaded %d rows from %s!%s", len(rows), self.path, name)
        return rows

    def save(self, name: str, rows: List[Row]) -> None:
        if os.path.exists(self.path):
            if self.backup:
                _backup(self.path)
            wb = self._open()
        else:
            wb = Workbook()
            wb.remove(wb.active)

        # Replace the sheet in place to keep the sheet order stable
        index = None
        if name in wb.sheetnames:
            index = wb.sheetnames.index(name)
            wb.remove(wb[name])
        ws = wb.create_sheet(title=name, index=index)

        headers = COLUMNS.get(name) or (list(rows[0].keys()) if rows else [])
        ws.append(headers)
        for row in rows:
            ws.append([row.get(h) for h in headers])

        try:
            wb.save(self.path)
        except OSError as e:
            raise StoreError(f"Cannot write workbook {self.path}: {e}") from e
        logger.info("Saved %d rows to %s!%s", len(rows), self.path, name)
