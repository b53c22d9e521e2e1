"""
AI-assisted spreadsheet import.

Raw rows with arbitrary headers go to the text-generation service together
with a JSON schema describing the prisoner record. The service maps columns,
standardizes dates/enums and may skip rows on its own; whatever comes back is
re-validated locally before anything reaches the store.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Sequence

from prison_common.errors import CapabilityError
from prison_common.normalize import (
    ImportReport,
    NormalizedRow,
    build_prisoner_data,
    coerce_date,
    commit_rows,
    missing_required,
)
from prison_common.schema import Category, FineType, Status
from prison_common.store import RecordStore

from .generator_base import TextGenerator

LOGGER = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 100
AI_FAILURE_MESSAGE = "The AI failed to process the import file. Please check the file format or try again."


def _values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


def _string(description: str | None = None) -> Dict[str, Any]:
    prop: Dict[str, Any] = {"type": "string"}
    if description:
        prop["description"] = description
    return prop


PRISONER_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "convictNo": _string("Convict number/ID. This is a required field."),
        "admissionDate": _string("Date of admission in YYYY-MM-DD format. This is a required field."),
        "sentenceDate": _string("Date of sentencing in YYYY-MM-DD format. Can be empty string."),
        "name": _string("Prisoner's full name. This is a required field."),
        "fatherName": _string("Prisoner's father's name. Can be empty string."),
        "district": _string(),
        "underSection": _string("Legal section under which convicted"),
        "crimeNo": _string(),
        "ps": _string("Police Station"),
        "sentencingCourt": _string(),
        "sentence": _string("Length and type of sentence"),
        "runningIn": _string(f"Type of fine. Must be one of: {', '.join(_values(FineType))}"),
        "amount": {"type": "number", "description": "Fine amount. Must be a number."},
        "defaultOfPayment": _string("Consequence for not paying the fine"),
        "specialRemarks": _string(),
        "medicalReport": _string(),
        "highCourtCaseNo": _string(),
        "highCourtStatus": _string(),
        "crimeType": _string(),
        "nationality": _string(),
        "status": _string(
            f"Current status. Must be one of: {', '.join(_values(Status))}. This is a required field."
        ),
        "category": _string(
            f"Prisoner category. Must be one of: {', '.join(_values(Category))}. This is a required field."
        ),
        "statusUpdateDate": _string("Date of last status update in YYYY-MM-DD format. Can be empty string."),
    },
}

IMPORT_SCHEMA: Dict[str, Any] = {"type": "array", "items": PRISONER_SCHEMA}


def _quoted(enum_cls) -> str:
    return "', '".join(_values(enum_cls))


def build_import_prompt(raw_rows: Sequence[Mapping[str, Any]], facility: str, limit: int = DEFAULT_ROW_LIMIT) -> str:
    sample = json.dumps(list(raw_rows[:limit]), indent=2, default=str)
    return f"""
You are an intelligent data processing assistant for the {facility} Management System.
Your task is to analyze the raw JSON data extracted from an uploaded spreadsheet, and then clean, standardize, and map it to the required prisoner data structure.

**Instructions:**
1.  **Map Columns:** The source data may have different column names. Intelligently map them to the target schema. For example, "Convict ID" or "Number" should map to "convictNo". "Inmate Name" should map to "name". "F/Name" to "fatherName".
2.  **Standardize Data:**
    *   **Dates:** All dates (admissionDate, sentenceDate, statusUpdateDate) MUST be in 'YYYY-MM-DD' format. The source data might have different formats (e.g., 'DD/MM/YYYY', 'MM-DD-YY', Excel date numbers). Correctly interpret and convert them.
    *   **Status:** The 'status' field must be one of these exact values: '{_quoted(Status)}'. Map common terms (e.g., "In Jail" -> "Confined", "Bailed Out" -> "On Bail", "Freed" -> "Released"). Default to "Confined" if unclear.
    *   **Category:** The 'category' field must be one of: '{_quoted(Category)}'. Default to "General Convict" if unclear.
    *   **FineType (runningIn):** The 'runningIn' field must be one of: '{_quoted(FineType)}'. Default to "N/A" if not specified.
    *   **Numbers:** Ensure 'amount' is a valid number. If it's not a number or missing, default to 0.
3.  **Handle Missing Data:** If a row is missing essential data for 'convictNo', 'name', or 'admissionDate', SKIP that entire row and do not include it in the output. For other non-required fields, use empty strings "" if data is not available.
4.  **Output:** Return ONLY a valid JSON array containing the processed prisoner objects, strictly adhering to the provided schema. Do not include any explanations, introductory text, or markdown formatting.

**Raw Data from Spreadsheet (first {limit} rows):**
{sample}
"""


def parse_ai_response(text: str) -> List[Dict[str, Any]]:
    """Parse the service reply; anything but a JSON array of objects is a failure."""

    try:
        parsed = json.loads(text.strip())
    except json.JSONDecodeError as exc:
        raise CapabilityError(AI_FAILURE_MESSAGE) from exc
    if not isinstance(parsed, list) or not all(isinstance(item, dict) for item in parsed):
        raise CapabilityError(AI_FAILURE_MESSAGE)
    return parsed


def normalize_rows_with_ai(
    raw_rows: Sequence[Mapping[str, Any]],
    generator: TextGenerator,
    *,
    facility: str = "District Prison Malir",
    limit: int = DEFAULT_ROW_LIMIT,
) -> List[Dict[str, Any]]:
    """Return the partial records produced by the service (not yet validated)."""

    if not raw_rows:
        return []

    prompt = build_import_prompt(raw_rows, facility, limit)
    try:
        text = generator.generate_text(prompt, schema=IMPORT_SCHEMA)
    except CapabilityError as exc:
        LOGGER.error("AI import request failed: %s", exc)
        raise CapabilityError(AI_FAILURE_MESSAGE) from exc
    return parse_ai_response(text)


def coerce_ai_entry(entry: Mapping[str, Any], today: str) -> NormalizedRow:
    """Apply the local defaulting rules to one service-produced entry."""

    status_update = coerce_date(entry.get("statusUpdateDate")) or today
    return NormalizedRow(data=build_prisoner_data(entry), status_update_date=status_update)


def import_rows_with_ai(
    store: RecordStore,
    raw_rows: Sequence[Mapping[str, Any]],
    generator: TextGenerator,
    *,
    facility: str = "District Prison Malir",
    limit: int = DEFAULT_ROW_LIMIT,
) -> ImportReport:
    """
    Run the AI mapping and commit every entry that still has the required fields.

    Invalid entries are dropped one by one. A failed service call raises
    CapabilityError before the store is touched.
    """

    entries = normalize_rows_with_ai(raw_rows, generator, facility=facility, limit=limit)
    if not entries:
        return ImportReport(
            mode="ai",
            raw_row_count=len(raw_rows),
            imported=0,
            dropped=0,
            s_no_range=None,
            message="AI processing complete, but no valid records were found. Please check the file content.",
        )

    today = store.today()
    accepted: List[NormalizedRow] = []
    for position, entry in enumerate(entries):
        missing = missing_required(entry)
        if missing:
            LOGGER.warning("Dropping AI entry %d: missing %s", position, ", ".join(missing))
            continue
        accepted.append(coerce_ai_entry(entry, today))

    dropped = len(entries) - len(accepted)
    if not accepted:
        return ImportReport(
            mode="ai",
            raw_row_count=len(raw_rows),
            imported=0,
            dropped=dropped,
            s_no_range=None,
            message=(
                "AI processed the file, but no records passed validation. "
                "Ensure convict number, name, and admission date are present."
            ),
        )

    s_no_range = commit_rows(store, accepted)
    LOGGER.info("AI import committed %d record(s), dropped %d", len(accepted), dropped)
    return ImportReport(
        mode="ai",
        raw_row_count=len(raw_rows),
        imported=len(accepted),
        dropped=dropped,
        s_no_range=s_no_range,
        message=f"{len(accepted)} records imported successfully with AI!",
    )
