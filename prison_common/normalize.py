from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar

import pandas as pd

from .errors import ValidationError
from .schema import (
    DEFAULT_NATIONALITY,
    PRISONER_COLS,
    REQUIRED_COLUMNS,
    Category,
    FineType,
    PrisonerData,
    Status,
)
from .store import RecordStore

LOGGER = logging.getLogger(__name__)

# Day 0 of the spreadsheet serial calendar; serial 25569 is 1970-01-01.
SERIAL_EPOCH = datetime(1899, 12, 30)
DEFAULT_CRIME_TYPE = "N/A"

E = TypeVar("E", bound=Enum)


def is_missing(value: Any) -> bool:
    """None, NaN/NaT or a blank string."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def coerce_date(value: Any) -> str:
    """
    Coerce a spreadsheet cell to YYYY-MM-DD, or "" when it cannot be read.

    - native datetime/date: calendar date in local time (aware values are
      converted to the local zone first so a UTC midnight does not slip a day)
    - number: spreadsheet serial day count from 1899-12-30
    - string: any format pandas can parse, except bare words like "today"
    """

    if is_missing(value):
        return ""

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    if _is_number(value):
        try:
            return (SERIAL_EPOCH + timedelta(days=float(value))).date().isoformat()
        except (OverflowError, ValueError):
            return ""

    if isinstance(value, str):
        text = value.strip()
        # Relative words such as "today" or "now" are not dates.
        if text.replace(" ", "").isalpha():
            return ""
        parsed = pd.to_datetime(text, errors="coerce")
        if pd.isna(parsed):
            return ""
        return parsed.date().isoformat()

    return ""


def coerce_text(value: Any, default: str = "") -> str:
    if is_missing(value):
        return default
    if _is_number(value) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def coerce_amount(value: Any) -> float:
    """Numeric value or 0 for anything non-numeric, non-finite or negative."""

    if is_missing(value):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


def coerce_enum(enum_cls: Type[E], value: Any, default: E) -> E:
    """Exact, case-sensitive match on the enum value; anything else is the default."""

    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if member.value == value:
            return member
    return default


@dataclass(frozen=True)
class NormalizedRow:
    data: PrisonerData
    status_update_date: str


@dataclass
class ImportReport:
    mode: str
    raw_row_count: int
    imported: int
    dropped: int
    s_no_range: Optional[Tuple[int, int]]
    message: str


def missing_required(row: Mapping[str, Any]) -> List[str]:
    return [col for col in REQUIRED_COLUMNS if is_missing(row.get(col))]


def build_prisoner_data(row: Mapping[str, Any]) -> PrisonerData:
    """Apply the shared coercion and defaulting rules to a row keyed by external column names."""

    def text(attr: str, default: str = "") -> str:
        return coerce_text(row.get(PRISONER_COLS[attr]), default)

    return PrisonerData(
        convict_no=text("convict_no"),
        admission_date=coerce_date(row.get("admissionDate")),
        sentence_date=coerce_date(row.get("sentenceDate")),
        name=text("name"),
        father_name=text("father_name"),
        district=text("district"),
        under_section=text("under_section"),
        crime_no=text("crime_no"),
        ps=text("ps"),
        sentencing_court=text("sentencing_court"),
        sentence=text("sentence"),
        running_in=coerce_enum(FineType, row.get("runningIn"), FineType.NA),
        amount=coerce_amount(row.get("amount")),
        default_of_payment=text("default_of_payment"),
        special_remarks=text("special_remarks"),
        medical_report=text("medical_report"),
        high_court_case_no=text("high_court_case_no"),
        high_court_status=text("high_court_status"),
        crime_type=text("crime_type", DEFAULT_CRIME_TYPE),
        nationality=text("nationality", DEFAULT_NATIONALITY),
        status=coerce_enum(Status, row.get("status"), Status.CONFINED),
        category=coerce_enum(Category, row.get("category"), Category.GENERAL_CONVICT),
    )


def normalize_row(
    raw: Mapping[str, Any], row_index: int, *, today: Callable[[], str] | None = None
) -> NormalizedRow:
    """
    Convert one raw spreadsheet row into record data.

    Raises ValidationError when convictNo, name or admissionDate is absent.
    Only presence is checked: an admissionDate that cannot be parsed still
    passes and is stored as an empty string.
    """

    missing = missing_required(raw)
    if missing:
        raise ValidationError(row_index, missing)

    status_update = coerce_date(raw.get("statusUpdateDate"))
    if not status_update:
        status_update = today() if today is not None else date.today().isoformat()
    return NormalizedRow(data=build_prisoner_data(raw), status_update_date=status_update)


def normalize_rows(
    rows: Sequence[Mapping[str, Any]], *, today: Callable[[], str] | None = None
) -> List[NormalizedRow]:
    """Normalize every row, stopping at the first invalid one."""

    return [normalize_row(row, index, today=today) for index, row in enumerate(rows)]


def commit_rows(store: RecordStore, normalized: Sequence[NormalizedRow]) -> Optional[Tuple[int, int]]:
    """Append normalized rows as one batch; returns the assigned sNo range."""

    if not normalized:
        return None
    start = store.next_s_no()
    store.extend(
        [row.data for row in normalized],
        status_update_dates=[row.status_update_date for row in normalized],
    )
    return start, start + len(normalized) - 1


def import_rows(store: RecordStore, rows: Sequence[Mapping[str, Any]]) -> ImportReport:
    """
    Deterministic import: all rows or nothing.

    The whole batch is normalized before the store is touched, so a
    ValidationError leaves the store unchanged.
    """

    normalized = normalize_rows(rows, today=store.today)
    s_no_range = commit_rows(store, normalized)
    LOGGER.info("Imported %d of %d row(s)", len(normalized), len(rows))
    return ImportReport(
        mode="normal",
        raw_row_count=len(rows),
        imported=len(normalized),
        dropped=0,
        s_no_range=s_no_range,
        message=f"{len(normalized)} records imported successfully!",
    )
