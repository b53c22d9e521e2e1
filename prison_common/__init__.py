"""
Shared prisoner-record schema, store, view pipeline and import/export helpers
used by the Streamlit browser and the AI helpers.
"""

from .errors import CapabilityError, PrisonRecordsError, ValidationError  # noqa: F401
from .schema import (  # noqa: F401
    PRISONER_COLS,
    Category,
    FineType,
    ForeignerNationality,
    Page,
    Prisoner,
    PrisonerData,
    Status,
    on_category_change,
)
from .store import RecordStore  # noqa: F401
from .views import (  # noqa: F401
    PAGE_SIZE,
    Filters,
    SortConfig,
    ViewState,
    filter_records,
    next_sort,
    paginate,
    sort_records,
)
from .normalize import ImportReport, coerce_date, import_rows, normalize_row  # noqa: F401
from .export import EXPORT_FILE_NAME, export_csv  # noqa: F401

__all__ = [
    "CapabilityError",
    "PrisonRecordsError",
    "ValidationError",
    "PRISONER_COLS",
    "Category",
    "FineType",
    "ForeignerNationality",
    "Page",
    "Prisoner",
    "PrisonerData",
    "Status",
    "on_category_change",
    "RecordStore",
    "PAGE_SIZE",
    "Filters",
    "SortConfig",
    "ViewState",
    "filter_records",
    "next_sort",
    "paginate",
    "sort_records",
    "ImportReport",
    "coerce_date",
    "import_rows",
    "normalize_row",
    "EXPORT_FILE_NAME",
    "export_csv",
]
