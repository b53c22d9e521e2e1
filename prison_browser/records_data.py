"""
Spreadsheet loading helpers for the prison records Streamlit app.

Uploaded files are read into Polars DataFrames (CSV or Excel, first row is the
header) and handed to the import normalizers as a list of row dicts keyed by
column name. Excel goes through polars.read_excel with a pandas fallback that
picks the first non-empty sheet.
"""

from __future__ import annotations

import logging
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Sequence

import polars as pl

from prison_common.errors import CapabilityError
from prison_common.normalize import is_missing
from prison_common.schema import PRISONER_COLS, Prisoner

LOGGER = logging.getLogger(__name__)

CSV_SUFFIXES = (".csv", ".txt")
_COLUMN_DTYPES = {"s_no": pl.Int64, "amount": pl.Float64}


def _source(path_or_bytes: Any) -> Any:
    """
    Return a rewindable source for pandas/polars.

    Bytes/BytesIO inputs are rewound to position 0 so multiple readers can consume them.
    """

    if isinstance(path_or_bytes, BytesIO):
        path_or_bytes.seek(0)
        return path_or_bytes
    if isinstance(path_or_bytes, (bytes, bytearray)):
        return BytesIO(path_or_bytes)
    return path_or_bytes


def _read_first_nonempty_sheet_with_pandas(path_or_bytes: Any):
    """Read all sheets with pandas and return the first non-empty frame and its sheet name."""

    import pandas as pd

    with pd.ExcelFile(_source(path_or_bytes)) as workbook:
        sheet_shapes = []
        for sheet in workbook.sheet_names:
            sheet_df = workbook.parse(sheet_name=sheet)
            sheet_shapes.append((sheet, sheet_df.shape))
            if not sheet_df.empty:
                return sheet_df, sheet

    raise ValueError(f"Excel workbook contains no data rows; sheets inspected: {sheet_shapes or '[]'}")


def _pandas_rows(pandas_df) -> List[Dict[str, Any]]:
    """Row dicts from a pandas frame with NaN/NaT replaced by None."""

    cleaned = pandas_df.astype(object).where(pandas_df.notna(), None)
    return cleaned.to_dict(orient="records")


def load_excel_rows(path_or_bytes: Any, source_label: str = "in-memory bytes") -> List[Dict[str, Any]]:
    """
    Load the first sheet of a workbook as row dicts.

    Uses polars.read_excel when it succeeds with data, otherwise pandas.read_excel
    (falling back to the first non-empty sheet).
    """

    try:
        df = pl.read_excel(_source(path_or_bytes))
        if not df.is_empty():
            return df.to_dicts()
        LOGGER.warning("polars.read_excel returned 0 rows for %s; retrying with pandas.", source_label)
    except Exception as exc:  # pragma: no cover - delegated to fallback
        LOGGER.warning("polars.read_excel failed for %s; falling back to pandas. %s", source_label, exc)

    import pandas as pd

    pandas_df = pd.read_excel(_source(path_or_bytes))
    if pandas_df.empty:
        pandas_df, chosen_sheet = _read_first_nonempty_sheet_with_pandas(path_or_bytes)
        LOGGER.info("Default sheet was empty for %s; loaded sheet '%s' instead.", source_label, chosen_sheet)
    return _pandas_rows(pandas_df)


def load_csv_to_polars(path_or_bytes: Any) -> pl.DataFrame:
    """Read CSV text with every column kept as a string (leading zeros survive)."""

    return pl.read_csv(_source(path_or_bytes), infer_schema_length=0)


def _drop_blank_rows(rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [row for row in rows if not all(is_missing(v) for v in row.values())]


def read_spreadsheet_rows(path_or_bytes: Any, file_name: str | None = None) -> List[Dict[str, Any]]:
    """
    Read an uploaded CSV/Excel file into row dicts keyed by header name.

    Streamlit's UploadedFile (anything with getvalue()) is accepted as well as
    paths and bytes. Rows with every cell empty are skipped. Read failures are
    raised as CapabilityError.
    """

    if isinstance(path_or_bytes, (str, Path)):
        file_name = file_name or str(path_or_bytes)
        path_or_bytes = Path(path_or_bytes)
    elif hasattr(path_or_bytes, "getvalue"):
        file_name = file_name or getattr(path_or_bytes, "name", None)
        path_or_bytes = path_or_bytes.getvalue()

    label = file_name or "in-memory bytes"
    suffix = Path(file_name).suffix.lower() if file_name else ""

    try:
        if suffix in CSV_SUFFIXES:
            rows = load_csv_to_polars(path_or_bytes).to_dicts()
        else:
            rows = load_excel_rows(path_or_bytes, label)
    except Exception as exc:
        LOGGER.error("Failed to read %s: %s", label, exc)
        raise CapabilityError(f"Failed to read the file: {exc}") from exc

    rows = _drop_blank_rows(rows)
    LOGGER.info("Read %d row(s) from %s", len(rows), label)
    return rows


def records_to_polars(records: Sequence[Prisoner], columns: Sequence[str] | None = None) -> pl.DataFrame:
    """Frame of records keyed by external column names, for display."""

    attrs = list(columns or PRISONER_COLS.keys())
    data: Dict[str, List[Any]] = {PRISONER_COLS[attr]: [] for attr in attrs}
    for prisoner in records:
        for attr in attrs:
            value = getattr(prisoner, attr)
            data[PRISONER_COLS[attr]].append(value.value if isinstance(value, Enum) else value)

    schema = {PRISONER_COLS[attr]: _COLUMN_DTYPES.get(attr, pl.Utf8) for attr in attrs}
    return pl.DataFrame(data, schema=schema)
