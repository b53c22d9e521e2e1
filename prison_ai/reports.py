from __future__ import annotations

import json
import logging
from collections import Counter
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from prison_common.errors import CapabilityError
from prison_common.normalize import coerce_text
from prison_common.schema import FineType, Prisoner, Status
from prison_common.views import ALL, Filters

from .generator_base import TextGenerator

LOGGER = logging.getLogger(__name__)

DEFAULT_FACILITY = "District Prison Malir"
SUMMARY_ERROR = "Error: Could not generate the report. Please check the API key and network connection."
DATE_RANGE_ERROR = "Error: Could not generate the detailed report."

# section key -> label shown on the report form
REPORT_SECTIONS: Dict[str, str] = {
    "admissions": "New Admissions",
    "releases": "Releases",
    "sentenceCompletion": "Sentence Completion",
    "fineRelated": "Fine & Diyat Related",
    "breakdownByCategory": "By Category",
    "breakdownByCrimeType": "By Crime Type",
    "breakdownByDistrict": "By District",
    "breakdownByNationality": "By Nationality",
    "breakdownByPS": "By Police Station",
    "breakdownByCourt": "By Sentencing Court",
    "breakdownBySection": "By Under Section",
}

DEFAULT_SECTIONS: List[str] = ["admissions", "releases", "sentenceCompletion", "fineRelated"]

# breakdown section -> (record attribute, heading)
BREAKDOWNS: Dict[str, Tuple[str, str]] = {
    "breakdownByCategory": ("category", "Admissions by Category"),
    "breakdownByCrimeType": ("crime_type", "Admissions by Crime Type"),
    "breakdownByDistrict": ("district", "Admissions by District"),
    "breakdownByNationality": ("nationality", "Admissions by Nationality"),
    "breakdownByPS": ("ps", "Admissions by Police Station"),
    "breakdownByCourt": ("sentencing_court", "Admissions by Sentencing Court"),
    "breakdownBySection": ("under_section", "Admissions by Under Section"),
}


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2)


def _project(records: Sequence[Prisoner], columns: Mapping[str, str]) -> List[Dict[str, Any]]:
    """Reduce records to {output key: value} using attribute names in `columns`."""

    projected = []
    for prisoner in records:
        row: Dict[str, Any] = {}
        for out_key, attr in columns.items():
            value = getattr(prisoner, attr)
            row[out_key] = value if isinstance(value, (int, float)) else coerce_text(value)
        projected.append(row)
    return projected


def simplify_for_summary(records: Sequence[Prisoner]) -> List[Dict[str, Any]]:
    return _project(
        records,
        {
            "category": "category",
            "status": "status",
            "crimeType": "crime_type",
            "nationality": "nationality",
            "sentence": "sentence",
            "admissionDate": "admission_date",
        },
    )


def build_summary_prompt(records: Sequence[Prisoner], filters: Filters, facility: str = DEFAULT_FACILITY) -> str:
    return f"""
Analyze the following dataset of prisoners from {facility}.
The data is provided in JSON format.

Dataset:
{_dump(simplify_for_summary(records))}

Current Filters Applied:
- Nationality: {filters.nationality or ALL}
- Category: {coerce_text(filters.category) or ALL}
- Crime Type: {filters.crime_type or ALL}
- Status: {coerce_text(filters.status) or ALL}
- Under Section: {filters.under_section or ALL}

Based on the provided data and filters, generate a concise and insightful report. The report should summarize key statistics and trends.
Structure the report with the following sections in Markdown format:
1.  **Overall Summary:** A brief overview of the filtered prisoner population.
2.  **Key Statistics:** Use bullet points for key numbers (e.g., total prisoners, breakdown by status, most common crime type).
3.  **Trends & Insights:** Identify any notable patterns or insights (e.g., a high number of prisoners for a specific crime, trends in admission dates).

The tone should be formal and analytical. Do not just list the data; provide interpretation. If the dataset is empty, state that no data matches the filters.
"""


def _generate(generator: TextGenerator, prompt: str, error_text: str) -> str:
    try:
        return generator.generate_text(prompt)
    except CapabilityError as exc:
        LOGGER.error("Report generation failed: %s", exc)
        return error_text


def generate_report(
    records: Sequence[Prisoner],
    filters: Filters,
    generator: TextGenerator,
    facility: str = DEFAULT_FACILITY,
) -> str:
    """Narrative summary of the currently filtered records, or SUMMARY_ERROR."""

    return _generate(generator, build_summary_prompt(records, filters, facility), SUMMARY_ERROR)


def validate_report_request(start_date: str, end_date: str, sections: Sequence[str]) -> None:
    if not start_date or not end_date:
        raise ValueError("Please select both a start and end date.")
    if start_date > end_date:
        raise ValueError("Start date cannot be after the end date.")
    if not sections:
        raise ValueError("Please select at least one report section to include.")
    unknown = [s for s in sections if s not in REPORT_SECTIONS]
    if unknown:
        raise ValueError(f"Unknown report section(s): {', '.join(unknown)}")


def frequency_map(records: Sequence[Prisoner], attr: str) -> Dict[str, int]:
    """Count records per value of `attr`; blank values count as "N/A"."""

    counts: Counter = Counter()
    for prisoner in records:
        counts[coerce_text(getattr(prisoner, attr)) or "N/A"] += 1
    return dict(counts)


def _in_range(value: str, start_date: str, end_date: str) -> bool:
    return bool(value) and start_date <= value <= end_date


def _released_in_range(records: Sequence[Prisoner], start_date: str, end_date: str) -> List[Prisoner]:
    return [
        p
        for p in records
        if p.status in (Status.RELEASED, Status.EXPIRED_SENTENCE)
        and _in_range(p.status_update_date, start_date, end_date)
    ]


def _releases_block(released: Sequence[Prisoner]) -> str:
    rows = _project(
        released, {"name": "name", "convictNo": "convict_no", "status": "status", "releaseDate": "status_update_date"}
    )
    return f"Data for Released Prisoners in this period:\n{_dump(rows)}\n\n"


def build_date_range_prompt(
    records: Sequence[Prisoner],
    start_date: str,
    end_date: str,
    sections: Sequence[str],
    facility: str = DEFAULT_FACILITY,
) -> str:
    """
    Assemble the data blocks and instructions for the requested report sections.

    Admissions and breakdowns use records admitted within the range; releases
    use the status update date of released / expired-sentence records.
    """

    data_blocks: List[str] = []
    instructions = (
        f"Generate a detailed report for {facility} for the period from {start_date} to {end_date}.\n\n"
        "Based on the data provided, generate a report with the following structure in Markdown format. "
        "Only include the sections that have been requested.\n\n"
        f"# Report for {facility}\n**Period:** {start_date} to {end_date}.\n\n"
    )

    needs_admissions = "admissions" in sections or any(s.startswith("breakdownBy") for s in sections)
    admissions = (
        [p for p in records if _in_range(p.admission_date, start_date, end_date)] if needs_admissions else []
    )

    if "admissions" in sections:
        rows = _project(
            admissions,
            {"name": "name", "convictNo": "convict_no", "admissionDate": "admission_date", "sentence": "sentence"},
        )
        data_blocks.append(f"Data for New Admissions in this period:\n{_dump(rows)}\n\n")
        instructions += (
            "## Admissions Summary\n"
            f"*   Total New Admissions: {len(admissions)}\n"
            "*   **Sentence Breakdown for New Admissions:** Analyze the provided sentences and categorize them "
            '(e.g., "Short-term (under 5 years)", "Medium-term (5-15 years)", "Long-term (over 15 years)", '
            '"Life Imprisonment", "Under Investigation/Other"). Provide a count for each category you define.\n\n'
        )

    needs_releases = "releases" in sections or "sentenceCompletion" in sections
    released = _released_in_range(records, start_date, end_date) if needs_releases else []

    if "releases" in sections:
        data_blocks.append(_releases_block(released))
        instructions += (
            "## Releases Summary\n"
            f"*   Total Released Prisoners: {len(released)}\n"
            "*   List the names and convict numbers of the prisoners released during this period.\n\n"
        )

    if "sentenceCompletion" in sections:
        confined = [p for p in records if p.status == Status.CONFINED]
        if "releases" not in sections:
            data_blocks.append(_releases_block(released))
        rows = _project(
            confined,
            {"name": "name", "convictNo": "convict_no", "sentence": "sentence", "sentenceDate": "sentence_date"},
        )
        data_blocks.append(
            f"Data for All Currently Confined Prisoners (for sentence analysis):\n{_dump(rows)}\n\n"
        )
        instructions += (
            "## Sentence Completion Analysis\n"
            "*   **Nearing Completion:** Based on the 'All Currently Confined Prisoners' data (using their sentence "
            "and sentenceDate), identify any prisoners whose sentences are likely to end in the near future "
            f"(e.g., within the next 6 months from {end_date}). List their name, convict number, sentence, and "
            "sentence date. If none, state that.\n"
            "*   **Completed During Period:** From the 'Released Prisoners' data, list those whose status is "
            "'Expired Sentence'. If none, state that.\n\n"
        )

    if "fineRelated" in sections:
        non_payment = [
            p for p in records if p.status == Status.CONFINED and p.running_in != FineType.NA and p.amount > 0
        ]
        rows = _project(
            non_payment, {"name": "name", "convictNo": "convict_no", "runningIn": "running_in", "amount": "amount"}
        )
        data_blocks.append(
            f"Data for Prisoners Confined due to Non-Payment of Fines/Diyat/etc.:\n{_dump(rows)}\n\n"
        )
        instructions += (
            "## Fine & Diyat Related Confinements\n"
            f"*   Total prisoners currently confined due to non-payment: {len(non_payment)}\n"
            "*   List the names, convict numbers, the type of penalty (e.g., Fine, Diyat), and the amount for "
            "each prisoner confined for this reason. If none, state that.\n\n"
        )

    for section in sections:
        if section not in BREAKDOWNS:
            continue
        attr, title = BREAKDOWNS[section]
        counts = frequency_map(admissions, attr)
        if counts:
            data_blocks.append(f"Data for {title}:\n{_dump(counts)}\n\n")
            instructions += (
                f"## {title}\n*   Analyze the provided frequency map for '{title}'. List the top entries with "
                "their counts and provide a brief summary of the distribution.\n\n"
            )
        else:
            instructions += f"## {title}\n*   No new admissions data to analyze for this breakdown.\n\n"

    instructions += "Provide a concise, formal summary for each requested section. If a section has no data, state it clearly."
    return "".join(data_blocks) + "\n" + instructions


def generate_date_range_report(
    records: Sequence[Prisoner],
    start_date: str,
    end_date: str,
    sections: Sequence[str],
    generator: TextGenerator,
    facility: str = DEFAULT_FACILITY,
) -> str:
    validate_report_request(start_date, end_date, sections)
    prompt = build_date_range_prompt(records, start_date, end_date, sections, facility)
    return _generate(generator, prompt, DATE_RANGE_ERROR)
