from __future__ import annotations

from typing import Sequence


class PrisonRecordsError(Exception):
    """Base class for errors surfaced to the records UI."""


class ValidationError(PrisonRecordsError, ValueError):
    """
    A spreadsheet row is missing required data.

    `row_index` is the 0-based position among data rows; the message reports the
    spreadsheet row number (header is row 1, so data starts at row 2).
    """

    def __init__(self, row_index: int, missing: Sequence[str]) -> None:
        self.row_index = row_index
        self.missing = list(missing)
        super().__init__(
            f"Row {row_index + 2} is missing required data "
            f"({', '.join(self.missing)} {'is' if len(self.missing) == 1 else 'are'} required)."
        )


class CapabilityError(PrisonRecordsError, RuntimeError):
    """The text-generation service or the file reader failed."""
