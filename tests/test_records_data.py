from io import BytesIO
from pathlib import Path

import pandas as pd
import pytest

from prison_browser.records_data import load_excel_rows, read_spreadsheet_rows, records_to_polars
from prison_common.errors import CapabilityError
from prison_common.normalize import import_rows
from prison_common.schema import Status
from tests.helpers import make_data


def test_load_excel_rows_uses_first_nonempty_sheet(tmp_path):
    """Ensure we fall back to the first non-empty sheet when the default is empty."""

    data = pd.DataFrame({"convictNo": ["A-1", "A-2"], "name": ["x", "y"]})
    excel_path = Path(tmp_path) / "multi_sheet.xlsx"

    with pd.ExcelWriter(excel_path, engine="xlsxwriter") as writer:
        pd.DataFrame().to_excel(writer, sheet_name="Empty", index=False)
        data.to_excel(writer, sheet_name="Data", index=False)

    rows = load_excel_rows(excel_path)

    assert rows == [{"convictNo": "A-1", "name": "x"}, {"convictNo": "A-2", "name": "y"}]


def test_read_spreadsheet_rows_rewinds_bytesio():
    """BytesIO inputs may arrive with the cursor at EOF; ensure we read the whole payload."""

    buffer = BytesIO()
    pd.DataFrame({"convictNo": ["B-7"], "name": ["Naveed"], "admissionDate": [45000]}).to_excel(buffer, index=False)
    buffer.read()

    rows = read_spreadsheet_rows(buffer, "upload.xlsx")

    assert len(rows) == 1
    assert rows[0]["convictNo"] == "B-7"


def test_excel_serial_dates_import(store):
    buffer = BytesIO()
    pd.DataFrame({"convictNo": ["B-7"], "name": ["Naveed"], "admissionDate": [45000]}).to_excel(buffer, index=False)

    import_rows(store, read_spreadsheet_rows(buffer.getvalue(), "upload.xlsx"))

    assert store.records[0].admission_date == "2023-03-15"


def test_csv_keeps_text_and_skips_blank_rows(tmp_path):
    path = tmp_path / "rows.csv"
    path.write_text("convictNo,name,admissionDate\n007,Ali,2024-01-01\n,,\n", encoding="utf-8")

    rows = read_spreadsheet_rows(path)

    assert rows == [{"convictNo": "007", "name": "Ali", "admissionDate": "2024-01-01"}]


def test_unreadable_file_raises_capability_error():
    with pytest.raises(CapabilityError, match="Failed to read the file"):
        read_spreadsheet_rows(b"definitely not a workbook", "broken.xlsx")


def test_records_to_polars_uses_external_columns(store):
    store.add(make_data(status=Status.RELEASED, amount=10.0))

    frame = records_to_polars(store.records, ["s_no", "name", "status", "amount"])

    assert frame.columns == ["sNo", "name", "status", "amount"]
    assert frame.to_dicts() == [{"sNo": 1, "name": "Ali Khan", "status": "Released", "amount": 10.0}]
