from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Iterable, Iterator, Optional, Sequence, Tuple
from uuid import uuid4

from .schema import Prisoner, PrisonerData

LOGGER = logging.getLogger(__name__)


def _today_iso() -> str:
    return date.today().isoformat()


def _new_id() -> str:
    return uuid4().hex


class RecordStore:
    """
    Authoritative in-memory collection of prisoner records.

    The collection is an immutable tuple; every mutation builds a new tuple,
    stores it and returns it, so readers holding an older snapshot never see a
    half-applied change. `sNo` and `id` are always assigned here.
    """

    def __init__(
        self,
        records: Iterable[Prisoner] = (),
        *,
        today: Callable[[], str] = _today_iso,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._records: Tuple[Prisoner, ...] = tuple(records)
        self._today = today
        self._id_factory = id_factory

    @property
    def records(self) -> Tuple[Prisoner, ...]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Prisoner]:
        return iter(self._records)

    def today(self) -> str:
        return self._today()

    def next_s_no(self) -> int:
        if not self._records:
            return 1
        return max(p.s_no for p in self._records) + 1

    def get(self, record_id: str) -> Optional[Prisoner]:
        for prisoner in self._records:
            if prisoner.id == record_id:
                return prisoner
        return None

    def add(self, data: PrisonerData) -> Tuple[Prisoner, ...]:
        prisoner = Prisoner.from_data(
            data,
            id=self._id_factory(),
            s_no=self.next_s_no(),
            status_update_date=self._today(),
        )
        self._records = self._records + (prisoner,)
        LOGGER.info("Added record sNo=%d (%s)", prisoner.s_no, prisoner.convict_no)
        return self._records

    def update(self, record_id: str, data: PrisonerData) -> Tuple[Prisoner, ...]:
        existing = self.get(record_id)
        if existing is None:
            raise KeyError(f"No record with id '{record_id}'")

        updated = Prisoner.from_data(
            data,
            id=existing.id,
            s_no=existing.s_no,
            status_update_date=self._today(),
        )
        self._records = tuple(updated if p.id == record_id else p for p in self._records)
        LOGGER.info("Updated record sNo=%d", existing.s_no)
        return self._records

    def extend(
        self,
        batch: Sequence[PrisonerData],
        status_update_dates: Sequence[str] | None = None,
    ) -> Tuple[Prisoner, ...]:
        """
        Append a batch in one step, numbering it from the current maximum sNo.

        `status_update_dates` carries dates already coerced from the source
        rows; blank entries fall back to today.
        """

        if not batch:
            return self._records
        if status_update_dates is not None and len(status_update_dates) != len(batch):
            raise ValueError("status_update_dates must match the batch length.")

        start = self.next_s_no()
        today = self._today()
        new_records = []
        for offset, data in enumerate(batch):
            updated_on = status_update_dates[offset] if status_update_dates else ""
            new_records.append(
                Prisoner.from_data(
                    data,
                    id=self._id_factory(),
                    s_no=start + offset,
                    status_update_date=updated_on or today,
                )
            )
        self._records = self._records + tuple(new_records)
        LOGGER.info("Appended %d record(s), sNo %d-%d", len(new_records), start, start + len(new_records) - 1)
        return self._records
