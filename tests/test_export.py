import io

import pandas as pd

from reports.export import to_csv, to_excel_bytes, to_frame
from reports.summary import OriginRow


ROWS = [OriginRow("Instagram", 2, 5000.0, 83), OriginRow('Say "hi"', 1, 1000.0, 17)]


def test_csv_quotes_every_field():
    assert to_csv(ROWS) == (
        '"origin","count","total_value","percent"\n'
        '"Instagram","2","5000.0","83"\n'
        '"Say ""hi""","1","1000.0","17"\n'
    )


def test_csv_of_nothing_is_empty():
    assert to_csv([]) == ""
    assert to_csv([], columns=["a", "b"]) == '"a","b"\n'


def test_frame_from_dicts():
    df = to_frame([{"x": 1, "y": "a"}, {"x": 2, "y": "b"}])
    assert list(df.columns) == ["x", "y"]
    assert df["x"].tolist() == [1, 2]


def test_excel_bytes_read_back():
    data = to_excel_bytes(ROWS, sheet_name="Origins")
    assert data[:2] == b"PK"
    df = pd.read_excel(io.BytesIO(data), sheet_name="Origins", engine="openpyxl")
    assert df["origin"].tolist() == ["Instagram", 'Say "hi"']
