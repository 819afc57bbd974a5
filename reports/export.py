"""
Export of report rows (lists of uniform dataclass records) to CSV and Excel.
"""

import csv
import io
from dataclasses import asdict, fields, is_dataclass
from typing import Any, Iterable, List, Optional, Sequence

import pandas as pd


def to_frame(records: Iterable[Any], columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    DataFrame with one column per record field, in declaration order.
    Plain dicts are accepted too (keys of the first record are the columns).
    """
    records = list(records)
    rows: List[dict] = [asdict(r) if is_dataclass(r) else dict(r) for r in records]
    if columns is None:
        if records and is_dataclass(records[0]):
            columns = [f.name for f in fields(records[0])]
        elif rows:
            columns = list(rows[0].keys())
        else:
            columns = []
    return pd.DataFrame(rows, columns=list(columns))


def to_csv(records: Iterable[Any], columns: Optional[Sequence[str]] = None) -> str:
    """Header row with the field names, then one row per record with every field quoted."""
    df = to_frame(records, columns)
    if df.empty and not len(df.columns):
        return ""
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def to_excel_bytes(records: Iterable[Any], sheet_name: str = "Data") -> bytes:
    """XLSX bytes for a download button."""
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        to_frame(records).to_excel(writer, index=False, sheet_name=sheet_name)
    return buf.getvalue()
