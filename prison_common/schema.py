from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date
from enum import Enum
from typing import Dict, List, Mapping, Sequence


class Status(str, Enum):
    CONFINED = "Confined"
    ON_BAIL = "On Bail"
    RELEASED = "Released"
    EXPIRED_SENTENCE = "Expired Sentence"
    DETAINEE = "Detainee"


class Category(str, Enum):
    GENERAL_CONVICT = "General Convict"
    CIVIL = "Civil"
    DETAINEE = "Detainee"
    FOREIGNER = "Foreigner"


class FineType(str, Enum):
    FINE = "Fine"
    DAMAN = "Daman"
    DIYAT = "Diyat"
    ARSH = "Arsh"
    NA = "N/A"


class ForeignerNationality(str, Enum):
    INDIAN = "Indian"
    BANGLADESHI = "Bangladeshi"
    AFGHANI = "Afghani"


class Page(str, Enum):
    HOME = "Home"
    GENERAL = "General"
    CIVIL = "Civil"
    FOREIGNER = "Foreigner"
    DETAINEES = "Detainees"
    RELEASED = "Released"
    FINE_RELATED = "FineRelated"


DEFAULT_NATIONALITY = "Pakistani"
OTHER_NATIONALITY = "Other"
FOREIGNER_NATIONALITY_OPTIONS: List[str] = [n.value for n in ForeignerNationality] + [OTHER_NATIONALITY]

# Columns a spreadsheet row must carry for either import path.
REQUIRED_COLUMNS: Sequence[str] = ("convictNo", "name", "admissionDate")


@dataclass(frozen=True)
class PrisonerData:
    """Caller-editable part of a record (everything except id, sNo, statusUpdateDate)."""

    convict_no: str
    admission_date: str
    name: str
    sentence_date: str = ""
    father_name: str = ""
    district: str = ""
    under_section: str = ""
    crime_no: str = ""
    ps: str = ""
    sentencing_court: str = ""
    sentence: str = ""
    running_in: FineType = FineType.NA
    amount: float = 0.0
    default_of_payment: str = ""
    special_remarks: str = ""
    medical_report: str = ""
    high_court_case_no: str = ""
    high_court_status: str = ""
    crime_type: str = ""
    nationality: str = DEFAULT_NATIONALITY
    status: Status = Status.CONFINED
    category: Category = Category.GENERAL_CONVICT

    @classmethod
    def blank(cls) -> "PrisonerData":
        """Defaults shown by an empty add form."""

        return cls(convict_no="", admission_date="", name="")


@dataclass(frozen=True)
class Prisoner:
    """One prisoner entry; field order is the export column order."""

    id: str
    s_no: int
    convict_no: str
    admission_date: str
    sentence_date: str
    name: str
    father_name: str
    district: str
    under_section: str
    crime_no: str
    ps: str
    sentencing_court: str
    sentence: str
    running_in: FineType
    amount: float
    default_of_payment: str
    special_remarks: str
    medical_report: str
    high_court_case_no: str
    high_court_status: str
    crime_type: str
    nationality: str
    status: Status
    category: Category
    status_update_date: str

    @classmethod
    def from_data(cls, data: PrisonerData, *, id: str, s_no: int, status_update_date: str) -> "Prisoner":
        values = {f.name: getattr(data, f.name) for f in fields(PrisonerData)}
        return cls(id=id, s_no=s_no, status_update_date=status_update_date, **values)

    def to_data(self) -> PrisonerData:
        return PrisonerData(**{f.name: getattr(self, f.name) for f in fields(PrisonerData)})


# attribute -> external column name (spreadsheet header / export header)
PRISONER_COLS: Mapping[str, str] = {
    "id": "id",
    "s_no": "sNo",
    "convict_no": "convictNo",
    "admission_date": "admissionDate",
    "sentence_date": "sentenceDate",
    "name": "name",
    "father_name": "fatherName",
    "district": "district",
    "under_section": "underSection",
    "crime_no": "crimeNo",
    "ps": "ps",
    "sentencing_court": "sentencingCourt",
    "sentence": "sentence",
    "running_in": "runningIn",
    "amount": "amount",
    "default_of_payment": "defaultOfPayment",
    "special_remarks": "specialRemarks",
    "medical_report": "medicalReport",
    "high_court_case_no": "highCourtCaseNo",
    "high_court_status": "highCourtStatus",
    "crime_type": "crimeType",
    "nationality": "nationality",
    "status": "status",
    "category": "category",
    "status_update_date": "statusUpdateDate",
}

# Human labels used by the table, sort selector and details view.
FIELD_LABELS: Dict[str, str] = {
    "s_no": "S.No",
    "convict_no": "Convict No",
    "admission_date": "Admission Date",
    "sentence_date": "Sentence Date",
    "name": "Name",
    "father_name": "Father Name",
    "district": "District",
    "under_section": "Under Section",
    "crime_no": "Crime No",
    "ps": "Police Station",
    "sentencing_court": "Sentencing Court",
    "sentence": "Sentence",
    "running_in": "Running In",
    "amount": "Amount",
    "default_of_payment": "Default of Payment",
    "special_remarks": "Special Remarks",
    "medical_report": "Medical Report",
    "high_court_case_no": "High Court Case No",
    "high_court_status": "High Court Status",
    "crime_type": "Crime Type",
    "nationality": "Nationality",
    "status": "Status",
    "category": "Category",
    "status_update_date": "Status Updated",
}

TABLE_COLUMNS: Sequence[str] = (
    "s_no",
    "convict_no",
    "name",
    "father_name",
    "admission_date",
    "under_section",
    "crime_type",
    "category",
    "status",
    "nationality",
)

REQUIRED_FORM_FIELDS: Sequence[str] = ("convict_no", "name", "admission_date")
FORM_DATE_FIELDS: Sequence[str] = ("admission_date", "sentence_date")


def _is_iso_date(value: str) -> bool:
    if len(value) != 10:
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def form_problems(data: PrisonerData) -> List[str]:
    """Messages that block saving the add/edit form; empty when the data can be stored."""

    problems: List[str] = []
    missing = [FIELD_LABELS[attr] for attr in REQUIRED_FORM_FIELDS if not getattr(data, attr).strip()]
    if missing:
        problems.append(f"Required: {', '.join(missing)}")
    for attr in FORM_DATE_FIELDS:
        value = getattr(data, attr)
        if value and not _is_iso_date(value):
            problems.append(f"{FIELD_LABELS[attr]} must be a date in YYYY-MM-DD format.")
    return problems


def on_category_change(data: PrisonerData, new_category: Category) -> PrisonerData:
    """
    Apply the nationality rule that follows a category change on the form.

    Moving to Foreigner replaces the domestic default with the first foreign
    option; moving anywhere else resets nationality to the domestic default.
    """

    new_category = Category(new_category)
    if new_category == Category.FOREIGNER:
        nationality = data.nationality
        if nationality == DEFAULT_NATIONALITY:
            nationality = ForeignerNationality.INDIAN.value
        return replace(data, category=new_category, nationality=nationality)
    return replace(data, category=new_category, nationality=DEFAULT_NATIONALITY)


def on_nationality_select(data: PrisonerData, choice: str) -> PrisonerData:
    """Picking "Other" clears nationality so a custom value can be typed."""

    if choice == OTHER_NATIONALITY:
        return replace(data, nationality="")
    return replace(data, nationality=choice)


def is_custom_nationality(data: PrisonerData) -> bool:
    """True when a Foreigner record uses a nationality outside the fixed list."""

    known = {n.value for n in ForeignerNationality}
    return data.category == Category.FOREIGNER and data.nationality not in known


STATUS_COLORS: Mapping[str, str] = {
    Status.CONFINED.value: "red",
    Status.ON_BAIL.value: "orange",
    Status.RELEASED.value: "green",
    Status.EXPIRED_SENTENCE.value: "blue",
    Status.DETAINEE.value: "violet",
}


def status_badge(status: str) -> str:
    return STATUS_COLORS.get(str(getattr(status, "value", status)), "gray")
