import json

import pytest

from prison_ai.reports import (
    DATE_RANGE_ERROR,
    SUMMARY_ERROR,
    build_date_range_prompt,
    build_summary_prompt,
    frequency_map,
    generate_date_range_report,
    generate_report,
    validate_report_request,
)
from prison_common.schema import Category, FineType, Status
from prison_common.store import RecordStore
from prison_common.views import Filters
from tests.helpers import StubGenerator, make_data


@pytest.fixture
def records():
    dates = iter(["2024-01-05", "2024-02-10", "2024-03-01", "2023-12-01"])
    store = RecordStore(today=lambda: next(dates))
    store.add(make_data(convict_no="A", name="Admitted In Range", admission_date="2024-01-03", district="Malir"))
    store.add(
        make_data(
            convict_no="B",
            name="Released In Range",
            admission_date="2022-05-05",
            status=Status.RELEASED,
        )
    )
    store.add(
        make_data(
            convict_no="C",
            name="Fine Holder",
            admission_date="2024-01-20",
            running_in=FineType.FINE,
            amount=3000.0,
            category=Category.CIVIL,
        )
    )
    store.add(
        make_data(
            convict_no="D",
            name="Released Earlier",
            admission_date="2021-01-01",
            status=Status.EXPIRED_SENTENCE,
        )
    )
    return store.records


def test_generate_report_uses_filtered_records(records):
    generator = StubGenerator("## Summary")
    filters = Filters(category="Civil", crime_type="Theft")

    assert generate_report(records[:1], filters, generator, "Test Prison") == "## Summary"
    prompt = generator.prompts[0]
    assert "prisoners from Test Prison" in prompt
    assert "- Category: Civil" in prompt
    assert "- Nationality: All" in prompt
    assert '"admissionDate": "2024-01-03"' in prompt
    assert "Fine Holder" not in prompt


def test_generate_report_returns_error_text_on_failure(records):
    assert generate_report(records, Filters(), StubGenerator(fail=True)) == SUMMARY_ERROR


@pytest.mark.parametrize(
    ("start", "end", "sections", "message"),
    [
        ("", "2024-01-31", ["admissions"], "Please select both a start and end date."),
        ("2024-02-01", "2024-01-31", ["admissions"], "Start date cannot be after the end date."),
        ("2024-01-01", "2024-01-31", [], "Please select at least one report section to include."),
        ("2024-01-01", "2024-01-31", ["bogus"], "Unknown report section(s): bogus"),
    ],
)
def test_validate_report_request(start, end, sections, message):
    with pytest.raises(ValueError) as excinfo:
        validate_report_request(start, end, sections)
    assert str(excinfo.value) == message


def test_date_range_prompt_selects_admissions_and_releases(records):
    prompt = build_date_range_prompt(records, "2024-01-01", "2024-01-31", ["admissions", "releases"], "Test Prison")
    data, instructions = prompt.split("\nGenerate a detailed report", 1)

    assert "Admitted In Range" in data
    assert "Fine Holder" in data
    assert "Released In Range" not in data.split("Data for Released Prisoners")[0]
    assert "Total New Admissions: 2" in instructions
    assert "Total Released Prisoners: 0" in instructions
    assert "# Report for Test Prison" in instructions


def test_date_range_prompt_releases_use_status_update_date(records):
    prompt = build_date_range_prompt(records, "2024-02-01", "2024-02-28", ["releases"])

    assert '"releaseDate": "2024-02-10"' in prompt
    assert "Released Earlier" not in prompt
    assert "Total Released Prisoners: 1" in prompt


def test_date_range_prompt_fine_and_breakdowns(records):
    prompt = build_date_range_prompt(
        records, "2024-01-01", "2024-01-31", ["fineRelated", "breakdownByDistrict", "breakdownByCourt"]
    )

    assert "Total prisoners currently confined due to non-payment: 1" in prompt
    assert '"amount": 3000.0' in prompt
    assert json.dumps({"Malir": 1, "N/A": 1}, indent=2) in prompt
    assert json.dumps({"N/A": 2}, indent=2) in prompt


def test_breakdown_without_admissions_says_so(records):
    prompt = build_date_range_prompt(records, "2030-01-01", "2030-12-31", ["breakdownByCategory"])

    assert "No new admissions data to analyze for this breakdown." in prompt


def test_generate_date_range_report(records):
    assert generate_date_range_report(records, "2024-01-01", "2024-12-31", ["admissions"], StubGenerator("ok")) == "ok"
    assert (
        generate_date_range_report(records, "2024-01-01", "2024-12-31", ["admissions"], StubGenerator(fail=True))
        == DATE_RANGE_ERROR
    )
    with pytest.raises(ValueError):
        generate_date_range_report(records, "", "", ["admissions"], StubGenerator("ok"))


def test_frequency_map_counts_blank_as_na(records):
    assert frequency_map(records, "category") == {"General Convict": 3, "Civil": 1}
    assert frequency_map(records, "district") == {"Malir": 1, "N/A": 3}
