"""
Derived-view pipeline for the records table.

Record collection -> page scope + user filters -> optional sort -> one page of
rows. Every step is a pure function over a sequence of `Prisoner`; `ViewState`
bundles the selections and owns the "back to page 0" rule when they change.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .schema import Category, FineType, Page, Prisoner, Status

PAGE_SIZE = 10
ALL = "All"
ASCENDING = "ascending"
DESCENDING = "descending"

PAGE_TITLES: Dict[Page, str] = {
    Page.HOME: "Malir Prison & C.F Karachi",
    Page.GENERAL: "Confined General Convicts",
    Page.CIVIL: "Confined Civil Prisoners",
    Page.FOREIGNER: "Confined Foreigner Prisoners",
    Page.DETAINEES: "Detainees",
    Page.FINE_RELATED: "Fine / Daman / Diyat / Arsh Cases",
    Page.RELEASED: "Released / Expired Sentence",
}

PagePredicate = Callable[[Prisoner], bool]

_PAGE_SCOPES: Dict[Page, PagePredicate] = {
    Page.GENERAL: lambda p: p.category == Category.GENERAL_CONVICT and p.status == Status.CONFINED,
    Page.CIVIL: lambda p: p.category == Category.CIVIL and p.status == Status.CONFINED,
    Page.FOREIGNER: lambda p: p.category == Category.FOREIGNER and p.status == Status.CONFINED,
    Page.DETAINEES: lambda p: p.category == Category.DETAINEE,
    Page.FINE_RELATED: lambda p: p.running_in != FineType.NA,
    Page.RELEASED: lambda p: p.status in (Status.RELEASED, Status.EXPIRED_SENTENCE),
}


@dataclass(frozen=True)
class Filters:
    """User filter selections; empty string / "All" means the criterion is off."""

    nationality: str = ""
    category: str = ALL
    crime_type: str = ""
    status: str = ALL
    search_term: str = ""
    under_section: str = ""

    def is_empty(self) -> bool:
        return self == Filters()


@dataclass(frozen=True)
class SortConfig:
    key: str
    direction: str = ASCENDING


def page_scope(page: Page) -> Optional[PagePredicate]:
    """Predicate for a navigation page, or None for Home."""

    return _PAGE_SCOPES.get(Page(page))


def _value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _matches(prisoner: Prisoner, filters: Filters) -> bool:
    if filters.nationality and prisoner.nationality != filters.nationality:
        return False
    if filters.category != ALL and _value(prisoner.category) != _value(filters.category):
        return False
    if filters.crime_type and prisoner.crime_type != filters.crime_type:
        return False
    if filters.under_section and prisoner.under_section != filters.under_section:
        return False
    if filters.status != ALL and _value(prisoner.status) != _value(filters.status):
        return False
    if filters.search_term:
        term = filters.search_term.lower()
        if term not in prisoner.name.lower() and term not in prisoner.convict_no.lower():
            return False
    return True


def filter_records(
    records: Sequence[Prisoner], page: Page = Page.HOME, filters: Filters | None = None
) -> List[Prisoner]:
    """Apply the page scope and then every active user criterion (AND), keeping input order."""

    scope = page_scope(page)
    data = [p for p in records if scope(p)] if scope is not None else list(records)
    if filters is None or filters.is_empty():
        return data
    return [p for p in data if _matches(p, filters)]


def next_sort(current: SortConfig | None, key: str) -> SortConfig:
    """Clicking the same column while ascending flips it; anything else starts ascending."""

    if current is not None and current.key == key and current.direction == ASCENDING:
        return SortConfig(key=key, direction=DESCENDING)
    return SortConfig(key=key, direction=ASCENDING)


def sort_records(records: Sequence[Prisoner], sort: SortConfig | None = None) -> List[Prisoner]:
    """
    Order records by one field using its natural ordering.

    No secondary key is applied; Python's sort is stable, so records with equal
    keys keep their input order in either direction.
    """

    if sort is None:
        return list(records)
    return sorted(
        records,
        key=lambda p: _value(getattr(p, sort.key)),
        reverse=sort.direction == DESCENDING,
    )


def paginate(
    records: Sequence[Prisoner], page_index: int, page_size: int = PAGE_SIZE
) -> Tuple[List[Prisoner], int]:
    """Return (rows on page `page_index`, total page count)."""

    if page_size <= 0:
        raise ValueError("page_size must be positive")
    total_pages = math.ceil(len(records) / page_size)
    if page_index < 0:
        return [], total_pages
    start = page_index * page_size
    return list(records[start : start + page_size]), total_pages


def unique_values(records: Sequence[Prisoner], field_name: str) -> List[Any]:
    """Distinct values of a field in first-seen order (filter drop-down options)."""

    seen: Dict[Any, None] = {}
    for prisoner in records:
        seen.setdefault(getattr(prisoner, field_name), None)
    return list(seen)


@dataclass(frozen=True)
class DerivedView:
    filtered: List[Prisoner]
    rows: List[Prisoner]
    total_pages: int
    page_index: int

    @property
    def total_records(self) -> int:
        return len(self.filtered)


@dataclass(frozen=True)
class ViewState:
    page: Page = Page.HOME
    filters: Filters = field(default_factory=Filters)
    sort: Optional[SortConfig] = None
    page_index: int = 0

    def with_page(self, page: Page) -> "ViewState":
        # New navigation page starts from a clean slate.
        return ViewState(page=Page(page))

    def with_filters(self, filters: Filters) -> "ViewState":
        return replace(self, filters=filters, page_index=0)

    def with_sort(self, key: str) -> "ViewState":
        return replace(self, sort=next_sort(self.sort, key), page_index=0)

    def with_page_index(self, page_index: int) -> "ViewState":
        return replace(self, page_index=max(page_index, 0))

    def derive(self, records: Sequence[Prisoner], page_size: int = PAGE_SIZE) -> DerivedView:
        filtered = filter_records(records, self.page, self.filters)
        ordered = sort_records(filtered, self.sort)
        rows, total_pages = paginate(ordered, self.page_index, page_size)
        return DerivedView(filtered=ordered, rows=rows, total_pages=total_pages, page_index=self.page_index)


def status_line(view: DerivedView) -> str:
    text = f"Total Records: {view.total_records}"
    if view.total_pages > 0:
        text += f" | Page {view.page_index + 1} of {view.total_pages}"
    return text
