import time
from datetime import date, datetime, timezone

import pytest

from prison_common.errors import ValidationError
from prison_common.normalize import (
    coerce_amount,
    coerce_date,
    coerce_enum,
    coerce_text,
    import_rows,
    is_missing,
    normalize_row,
)
from prison_common.schema import Category, FineType, Status


def test_coerce_date_handles_serials_strings_and_dates():
    assert coerce_date(45000) == "2023-03-15"
    assert coerce_date(45000.0) == "2023-03-15"
    assert coerce_date(25569) == "1970-01-01"
    assert coerce_date("2021-07-04") == "2021-07-04"
    assert coerce_date(date(2020, 2, 29)) == "2020-02-29"
    assert coerce_date(datetime(2019, 12, 31, 23, 0)) == "2019-12-31"
    assert coerce_date("not a date") == ""
    assert coerce_date(None) == ""
    assert coerce_date("   ") == ""


def test_coerce_text_drops_integral_decimal():
    assert coerce_text(1234.0) == "1234"
    assert coerce_text(12.5) == "12.5"
    assert coerce_text(None, "N/A") == "N/A"
    assert coerce_text(Status.ON_BAIL) == "On Bail"


def test_coerce_amount_defaults_to_zero():
    assert coerce_amount("1500") == 1500.0
    assert coerce_amount("abc") == 0.0
    assert coerce_amount(None) == 0.0
    assert coerce_amount(-10) == 0.0
    assert coerce_amount(float("nan")) == 0.0


def test_coerce_enum_is_exact():
    assert coerce_enum(Status, "On Bail", Status.CONFINED) is Status.ON_BAIL
    assert coerce_enum(Status, "on bail", Status.CONFINED) is Status.CONFINED
    assert coerce_enum(FineType, None, FineType.NA) is FineType.NA


def test_is_missing():
    assert is_missing(None)
    assert is_missing(" ")
    assert is_missing(float("nan"))
    assert not is_missing(0)
    assert not is_missing("x")


def test_normalize_row_applies_defaults():
    row = normalize_row(
        {"convictNo": 501.0, "name": "Sajid", "admissionDate": 45000, "amount": "x", "status": "Unknown"},
        0,
        today=lambda: "2024-05-01",
    )

    assert row.status_update_date == "2024-05-01"
    assert row.data.convict_no == "501"
    assert row.data.admission_date == "2023-03-15"
    assert row.data.amount == 0.0
    assert row.data.crime_type == "N/A"
    assert row.data.nationality == "Pakistani"
    assert row.data.status is Status.CONFINED
    assert row.data.category is Category.GENERAL_CONVICT
    assert row.data.running_in is FineType.NA


def test_normalize_row_keeps_source_status_update_date():
    row = normalize_row(
        {"convictNo": "A", "name": "B", "admissionDate": "2020-01-01", "statusUpdateDate": "2022-06-30"},
        0,
        today=lambda: "2024-05-01",
    )
    assert row.status_update_date == "2022-06-30"


def test_unparseable_admission_date_is_kept_as_empty():
    row = normalize_row({"convictNo": "A", "name": "B", "admissionDate": "sometime"}, 0)
    assert row.data.admission_date == ""


def test_validation_error_reports_spreadsheet_row():
    with pytest.raises(ValidationError) as excinfo:
        normalize_row({"convictNo": "", "name": "B", "admissionDate": "2020-01-01"}, 1)

    assert str(excinfo.value) == "Row 3 is missing required data (convictNo is required)."
    assert excinfo.value.missing == ["convictNo"]
    assert isinstance(excinfo.value, ValueError)


def test_import_rows_commits_batch(store):
    store.add(normalize_row({"convictNo": "A", "name": "B", "admissionDate": "2020-01-01"}, 0).data)
    report = import_rows(
        store,
        [
            {"convictNo": "C-1", "name": "One", "admissionDate": "2021-01-01"},
            {"convictNo": "C-2", "name": "Two", "admissionDate": "2021-01-02", "category": "Civil"},
        ],
    )

    assert report.imported == 2
    assert report.s_no_range == (2, 3)
    assert report.message == "2 records imported successfully!"
    assert [p.s_no for p in store] == [1, 2, 3]
    assert store.records[2].category is Category.CIVIL


def test_import_rows_aborts_without_touching_store(store):
    rows = [
        {"convictNo": "C-1", "name": "One", "admissionDate": "2021-01-01"},
        {"convictNo": "C-2", "name": "", "admissionDate": "2021-01-02"},
    ]

    with pytest.raises(ValidationError, match="Row 3"):
        import_rows(store, rows)
    assert len(store) == 0


def test_import_rows_empty_input(store):
    report = import_rows(store, [])

    assert report.imported == 0
    assert report.s_no_range is None
    assert len(store) == 0


def test_validation_error_lists_every_missing_column():
    with pytest.raises(ValidationError) as excinfo:
        normalize_row({"convictNo": "", "name": None, "admissionDate": "2020-01-01"}, 0)

    assert str(excinfo.value) == "Row 2 is missing required data (convictNo, name are required)."


def test_coerce_date_converts_aware_datetimes_to_local_date(monkeypatch):
    monkeypatch.setenv("TZ", "Asia/Karachi")
    time.tzset()
    try:
        assert coerce_date(datetime(2023, 3, 14, 22, 30, tzinfo=timezone.utc)) == "2023-03-15"
    finally:
        monkeypatch.undo()
        time.tzset()


def test_coerce_date_rejects_relative_words():
    assert coerce_date("today") == ""
    assert coerce_date("now") == ""
    assert coerce_date("next week") == ""
    assert coerce_date("March 15, 2023") == "2023-03-15"
