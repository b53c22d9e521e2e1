from __future__ import annotations

import logging
from dataclasses import fields, replace
from datetime import date
from typing import Any, Dict, List, Sequence

import streamlit as st

from prison_ai.ai_import import import_rows_with_ai
from prison_ai.chat import ChatSession
from prison_ai.config import Settings, load_settings
from prison_ai.ollama_client import OllamaClient
from prison_ai.reports import (
    DEFAULT_SECTIONS,
    REPORT_SECTIONS,
    generate_date_range_report,
    generate_report,
    validate_report_request,
)
from prison_browser.records_data import read_spreadsheet_rows, records_to_polars
from prison_common.errors import CapabilityError, ValidationError
from prison_common.export import EXPORT_FILE_NAME, export_csv_bytes
from prison_common.normalize import import_rows
from prison_common.schema import (
    FIELD_LABELS,
    FORM_DATE_FIELDS,
    FOREIGNER_NATIONALITY_OPTIONS,
    REQUIRED_FORM_FIELDS,
    OTHER_NATIONALITY,
    PRISONER_COLS,
    TABLE_COLUMNS,
    Category,
    FineType,
    Page,
    Prisoner,
    PrisonerData,
    Status,
    form_problems,
    is_custom_nationality,
    on_category_change,
    on_nationality_select,
    status_badge,
)
from prison_common.store import RecordStore
from prison_common.views import (
    ALL,
    DESCENDING,
    PAGE_TITLES,
    DerivedView,
    Filters,
    ViewState,
    status_line,
    unique_values,
)

LOGGER = logging.getLogger(__name__)

FILTER_KEYS = [
    "filter_nationality",
    "filter_category",
    "filter_crime_type",
    "filter_status",
    "filter_search",
    "filter_under_section",
]
# Form fields rendered as free text; the rest get dedicated widgets.
TEXT_FORM_FIELDS = [
    f.name
    for f in fields(PrisonerData)
    if f.name not in {"running_in", "amount", "status", "category", "nationality", *FORM_DATE_FIELDS}
]

FORM_MIN_DATE = date(1900, 1, 1)
FORM_MAX_DATE = date(2100, 12, 31)


def init_state(settings: Settings) -> None:
    if "store" not in st.session_state:
        st.session_state.store = RecordStore()
    if "view" not in st.session_state:
        st.session_state.view = ViewState()
    if "chat" not in st.session_state:
        st.session_state.chat = ChatSession(facility=settings.facility_name)
    st.session_state.setdefault("busy", False)
    st.session_state.setdefault("report", "")
    st.session_state.setdefault("form_mode", None)


def get_client(settings: Settings) -> OllamaClient:
    if "client" not in st.session_state:
        st.session_state.client = OllamaClient.from_settings(settings)
    return st.session_state.client


def render_navigation() -> None:
    st.sidebar.header("Navigation")
    view: ViewState = st.session_state.view
    pages = list(Page)
    selected = st.sidebar.radio(
        "Page",
        options=pages,
        index=pages.index(view.page),
        format_func=lambda p: PAGE_TITLES[p] if p != Page.HOME else "Home",
        key="nav_page",
    )
    if selected != view.page:
        for key in FILTER_KEYS:
            st.session_state.pop(key, None)
        st.session_state.view = view.with_page(selected)


def _options_with_blank(values: Sequence[Any]) -> List[str]:
    return [""] + sorted({str(v) for v in values if v not in (None, "")})


def _all_if_blank(value: str) -> str:
    return "All" if value == "" else value


def render_filters(records: Sequence[Prisoner]) -> None:
    """Render sidebar filters and store the selection on the view state."""

    st.sidebar.header("Filters")
    if st.sidebar.button("Clear filters", use_container_width=True):
        for key in FILTER_KEYS:
            st.session_state.pop(key, None)

    nationality = st.sidebar.selectbox(
        "Nationality",
        _options_with_blank(unique_values(records, "nationality")),
        format_func=_all_if_blank,
        key="filter_nationality",
    )
    category = st.sidebar.selectbox(
        "Category", [ALL] + [c.value for c in Category], key="filter_category"
    )
    crime_type = st.sidebar.selectbox(
        "Crime Type",
        _options_with_blank(unique_values(records, "crime_type")),
        format_func=_all_if_blank,
        key="filter_crime_type",
    )
    status = st.sidebar.selectbox("Status", [ALL] + [s.value for s in Status], key="filter_status")
    under_section = st.sidebar.selectbox(
        "Under Section",
        _options_with_blank(unique_values(records, "under_section")),
        format_func=_all_if_blank,
        key="filter_under_section",
    )
    search = st.sidebar.text_input("Search (name or convict no)", key="filter_search").strip()

    filters = Filters(
        nationality=nationality,
        category=category,
        crime_type=crime_type,
        status=status,
        search_term=search,
        under_section=under_section,
    )
    view: ViewState = st.session_state.view
    if filters != view.filters:
        st.session_state.view = view.with_filters(filters)


def render_sort_controls() -> None:
    view: ViewState = st.session_state.view
    sort_fields = list(FIELD_LABELS)
    current_key = view.sort.key if view.sort else sort_fields[0]
    col_field, col_button, col_state = st.columns([3, 1, 2])
    with col_field:
        key = st.selectbox(
            "Sort by",
            sort_fields,
            index=sort_fields.index(current_key),
            format_func=lambda attr: FIELD_LABELS[attr],
            key="sort_field",
        )
    with col_button:
        st.write("")
        if st.button("Sort", use_container_width=True, help="Click again to reverse the order."):
            st.session_state.view = view.with_sort(key)
    with col_state:
        current = st.session_state.view.sort
        if current is not None:
            arrow = "▼" if current.direction == DESCENDING else "▲"
            st.caption(f"Sorted by {FIELD_LABELS[current.key]} {arrow}")


def render_table(derived: DerivedView) -> None:
    if not derived.rows:
        st.info("No records match the current page and filters.")
        return

    frame = records_to_polars(derived.rows, TABLE_COLUMNS).rename(
        {PRISONER_COLS[attr]: FIELD_LABELS[attr] for attr in TABLE_COLUMNS}
    )
    st.dataframe(frame.to_pandas(), use_container_width=True, hide_index=True)


def render_pagination(derived: DerivedView) -> None:
    view: ViewState = st.session_state.view
    prev_col, info_col, next_col = st.columns([1, 3, 1])
    with prev_col:
        if st.button("Previous", disabled=view.page_index <= 0, use_container_width=True):
            st.session_state.view = view.with_page_index(view.page_index - 1)
            st.rerun()
    with info_col:
        st.caption(status_line(derived))
    with next_col:
        if st.button(
            "Next", disabled=view.page_index + 1 >= derived.total_pages, use_container_width=True
        ):
            st.session_state.view = view.with_page_index(view.page_index + 1)
            st.rerun()


def render_details(prisoner: Prisoner) -> None:
    color = status_badge(prisoner.status)
    st.markdown(f"**{prisoner.name}** ({prisoner.convict_no}) :{color}[{prisoner.status.value}]")
    left, right = st.columns(2)
    labels = list(FIELD_LABELS.items())
    half = len(labels) // 2
    for column, chunk in ((left, labels[:half]), (right, labels[half:])):
        with column:
            for attr, label in chunk:
                value = getattr(prisoner, attr)
                st.markdown(f"**{label}:** {getattr(value, 'value', value) or '-'}")


def _as_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value) if value else None
    except ValueError:
        return None


def open_form(prisoner: Prisoner | None) -> None:
    """Seed the form widgets from a record (edit) or the blank defaults (add)."""

    data = prisoner.to_data() if prisoner is not None else PrisonerData.blank()
    st.session_state.form_mode = prisoner.id if prisoner is not None else "new"
    st.session_state.form_draft = data
    for attr in TEXT_FORM_FIELDS:
        st.session_state[f"form_{attr}"] = getattr(data, attr)
    for attr in FORM_DATE_FIELDS:
        st.session_state[f"form_{attr}"] = _as_date(getattr(data, attr))
    st.session_state.form_running_in = data.running_in.value
    st.session_state.form_amount = float(data.amount)
    st.session_state.form_status = data.status.value
    st.session_state.form_category = data.category.value
    st.session_state.form_nationality = data.nationality
    st.session_state.form_nationality_choice = (
        OTHER_NATIONALITY if is_custom_nationality(data) else data.nationality
    )


def _close_form() -> None:
    st.session_state.form_mode = None
    st.session_state.pop("form_draft", None)


def render_nationality(draft: PrisonerData) -> PrisonerData:
    if draft.category != Category.FOREIGNER:
        st.session_state.setdefault("form_nationality", draft.nationality)
        return replace(draft, nationality=st.text_input("Nationality", key="form_nationality"))

    if st.session_state.get("form_nationality_choice") not in FOREIGNER_NATIONALITY_OPTIONS:
        st.session_state.form_nationality_choice = (
            OTHER_NATIONALITY if is_custom_nationality(draft) else draft.nationality
        )
    previous_choice = st.session_state.form_nationality_choice
    choice = st.selectbox("Nationality", FOREIGNER_NATIONALITY_OPTIONS, key="form_nationality_choice")
    if choice != OTHER_NATIONALITY:
        return on_nationality_select(draft, choice)

    if previous_choice != OTHER_NATIONALITY or "form_nationality" not in st.session_state:
        st.session_state.form_nationality = on_nationality_select(draft, choice).nationality
    custom = st.text_input("Enter nationality", key="form_nationality")
    return replace(draft, nationality=custom)


def render_form(store: RecordStore) -> None:
    mode = st.session_state.form_mode
    if mode is None:
        return

    st.subheader("Add New Prisoner" if mode == "new" else "Edit Prisoner")
    draft: PrisonerData = st.session_state.form_draft

    category = Category(
        st.selectbox("Category", [c.value for c in Category], key="form_category")
    )
    if category != draft.category:
        draft = on_category_change(draft, category)
        st.session_state.form_nationality = draft.nationality
        st.session_state.pop("form_nationality_choice", None)

    left, right = st.columns(2)
    values: Dict[str, Any] = {}
    for attr, column in zip(FORM_DATE_FIELDS, (left, right)):
        label = FIELD_LABELS[attr] + (" *" if attr in REQUIRED_FORM_FIELDS else "")
        with column:
            picked = st.date_input(
                label, min_value=FORM_MIN_DATE, max_value=FORM_MAX_DATE, key=f"form_{attr}", format="YYYY-MM-DD"
            )
        values[attr] = picked.isoformat() if picked else ""

    for index, attr in enumerate(TEXT_FORM_FIELDS):
        column = left if index % 2 == 0 else right
        label = FIELD_LABELS[attr] + (" *" if attr in REQUIRED_FORM_FIELDS else "")
        with column:
            if attr in {"special_remarks", "medical_report"}:
                values[attr] = st.text_area(label, key=f"form_{attr}")
            else:
                values[attr] = st.text_input(label, key=f"form_{attr}")

    with left:
        status = Status(st.selectbox("Status", [s.value for s in Status], key="form_status"))
        running_in = FineType(st.selectbox("Running In", [f.value for f in FineType], key="form_running_in"))
    with right:
        amount = st.number_input("Amount", min_value=0.0, step=100.0, key="form_amount")
        draft = render_nationality(draft)

    draft = replace(draft, status=status, running_in=running_in, amount=float(amount), **values)
    st.session_state.form_draft = draft

    save_col, cancel_col = st.columns(2)
    with save_col:
        if st.button("Save", type="primary", use_container_width=True):
            problems = form_problems(draft)
            if problems:
                for problem in problems:
                    st.error(problem)
                return
            if mode == "new":
                store.add(draft)
                st.success(f"Added {draft.name}.")
            else:
                store.update(mode, draft)
                st.success(f"Updated {draft.name}.")
            _close_form()
            st.rerun()
    with cancel_col:
        if st.button("Cancel", use_container_width=True):
            _close_form()
            st.rerun()


def render_record_actions(store: RecordStore, derived: DerivedView) -> None:
    if st.button("Add New Prisoner"):
        open_form(None)

    if not derived.rows:
        return
    by_id = {p.id: p for p in derived.rows}
    selected_id = st.selectbox(
        "Record on this page",
        list(by_id),
        format_func=lambda rid: f"{by_id[rid].s_no}. {by_id[rid].name} ({by_id[rid].convict_no})",
        key="selected_record",
    )
    selected = by_id[selected_id]
    with st.expander("Details", expanded=False):
        render_details(selected)
    if st.button("Edit selected record"):
        open_form(selected)


def render_import(store: RecordStore, settings: Settings) -> None:
    st.subheader("Import")
    mode = st.radio("Mode", ["Standard", "AI-assisted"], horizontal=True, key="import_mode")
    uploaded = st.file_uploader("Spreadsheet (CSV or Excel)", type=["csv", "xls", "xlsx"], key="import_file")
    if not st.button("Import", disabled=uploaded is None or st.session_state.busy):
        return

    st.session_state.busy = True
    try:
        rows = read_spreadsheet_rows(uploaded, uploaded.name)
        if not rows:
            raise CapabilityError("File is empty or could not be read.")
        if mode == "Standard":
            report = import_rows(store, rows)
        else:
            with st.spinner("Processing the file with AI..."):
                report = import_rows_with_ai(
                    store,
                    rows,
                    get_client(settings),
                    facility=settings.facility_name,
                    limit=settings.ai_import_row_limit,
                )
        if report.imported:
            st.success(report.message)
        else:
            st.warning(report.message)
    except ValidationError as exc:
        LOGGER.warning("Import of %s rejected: %s", uploaded.name, exc)
        st.error(f"Import failed: {exc}")
    except CapabilityError as exc:
        LOGGER.warning("Import of %s failed: %s", uploaded.name, exc)
        st.error(f"{'AI ' if mode != 'Standard' else ''}Import failed: {exc}")
    finally:
        st.session_state.busy = False


def render_records_tab(store: RecordStore, settings: Settings) -> DerivedView:
    view: ViewState = st.session_state.view
    st.header(PAGE_TITLES[view.page])
    render_sort_controls()
    derived = st.session_state.view.derive(store.records)
    render_table(derived)
    render_pagination(derived)

    st.download_button(
        label="Export CSV",
        data=export_csv_bytes(derived.filtered),
        file_name=EXPORT_FILE_NAME,
        mime="text/csv",
        disabled=not derived.filtered,
    )
    render_record_actions(store, derived)
    render_form(store)
    st.divider()
    render_import(store, settings)
    return derived


def render_reports_tab(store: RecordStore, derived: DerivedView, settings: Settings) -> None:
    client = get_client(settings)
    st.subheader("Summary of current view")
    if st.button("Generate Report", disabled=st.session_state.busy):
        st.session_state.busy = True
        try:
            with st.spinner("Generating report..."):
                st.session_state.report = generate_report(
                    derived.filtered, st.session_state.view.filters, client, settings.facility_name
                )
        finally:
            st.session_state.busy = False

    st.subheader("Detailed date-range report")
    with st.form("date_range_report"):
        start_col, end_col = st.columns(2)
        start = start_col.date_input("Start date", value=None)
        end = end_col.date_input("End date", value=None)
        sections = st.multiselect(
            "Sections",
            list(REPORT_SECTIONS),
            default=DEFAULT_SECTIONS,
            format_func=lambda key: REPORT_SECTIONS[key],
        )
        submitted = st.form_submit_button("Generate Detailed Report", disabled=st.session_state.busy)

    if submitted:
        start_text = start.isoformat() if start else ""
        end_text = end.isoformat() if end else ""
        try:
            validate_report_request(start_text, end_text, sections)
        except ValueError as exc:
            st.error(str(exc))
        else:
            st.session_state.busy = True
            try:
                with st.spinner("Generating detailed report..."):
                    st.session_state.report = generate_date_range_report(
                        store.records, start_text, end_text, sections, client, settings.facility_name
                    )
            finally:
                st.session_state.busy = False

    if st.session_state.report:
        st.divider()
        st.markdown(st.session_state.report)


def render_chat_tab(settings: Settings) -> None:
    chat: ChatSession = st.session_state.chat
    client = get_client(settings)
    for index, message in enumerate(chat.messages):
        role = "user" if message.role == "user" else "assistant"
        with st.chat_message(role):
            if message.role == "error":
                st.error(message.text)
                if st.button("Retry", key=f"chat_retry_{index}"):
                    with st.spinner("Thinking..."):
                        chat.retry(message, client)
                    st.rerun()
            else:
                st.markdown(message.text)

    question = st.chat_input("Ask about the prisoner data")
    if question:
        with st.spinner("Thinking..."):
            chat.submit(question, client)
        st.rerun()


def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO), format="%(levelname)s: %(message)s")
    st.set_page_config(page_title="Prison Records", layout="wide")
    st.title(settings.facility_name)
    init_state(settings)

    store: RecordStore = st.session_state.store
    render_navigation()
    render_filters(store.records)

    records_tab, reports_tab, chat_tab = st.tabs(["Records", "Reports", "Assistant"])
    with records_tab:
        derived = render_records_tab(store, settings)
    with reports_tab:
        render_reports_tab(store, derived, settings)
    with chat_tab:
        render_chat_tab(settings)


if __name__ == "__main__":
    main()
