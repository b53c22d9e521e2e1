import polars as pl

from prison_browser.records_data import read_spreadsheet_rows
from prison_common.export import export_csv, export_csv_bytes
from prison_common.normalize import import_rows
from prison_common.schema import PRISONER_COLS, FineType, Status
from prison_common.store import RecordStore
from tests.helpers import make_data


def test_export_header_only_when_empty():
    assert export_csv([]) == ",".join(PRISONER_COLS.values())


def test_export_quotes_every_value(store):
    store.add(make_data(name='Ali "Shah" Khan', running_in=FineType.FINE, amount=2500.0, status=Status.ON_BAIL))
    header, line = export_csv(store.records).split("\n")

    assert header.startswith("id,sNo,convictNo,admissionDate,sentenceDate,name,")
    assert header.endswith(",status,category,statusUpdateDate")
    assert line.startswith('"id-1","1","C-1","2023-01-10","","Ali ""Shah"" Khan",')
    assert '"Fine","2500"' in line
    assert line.endswith('"On Bail","General Convict","2024-05-01"')


def test_export_reimports_through_csv_reader(store, tmp_path):
    """An export read back as CSV imports to the same caller-editable data."""

    store.extend(
        [
            make_data(convict_no="007", name="Leading Zero", crime_type="Theft", special_remarks="line, with comma"),
            make_data(convict_no="C-2", name="Second", crime_type="Murder", amount=125.5, running_in=FineType.DIYAT),
        ]
    )
    path = tmp_path / "prisoners_export.csv"
    path.write_bytes(export_csv_bytes(store.records))

    rows = read_spreadsheet_rows(path)
    fresh = RecordStore(today=lambda: "2024-05-01")
    import_rows(fresh, rows)

    assert [p.to_data() for p in fresh.records] == [p.to_data() for p in store.records]
    assert [p.status_update_date for p in fresh.records] == ["2024-05-01", "2024-05-01"]
    assert pl.read_csv(path).height == 2
