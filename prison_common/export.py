from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from .normalize import coerce_text
from .schema import PRISONER_COLS, Prisoner

EXPORT_FILE_NAME = "prisoners_export.csv"


def _quote(value: Any) -> str:
    if isinstance(value, Enum):
        text = str(value.value)
    elif isinstance(value, str):
        text = value
    else:
        text = coerce_text(value)
    return '"' + text.replace('"', '""') + '"'


def export_csv(records: Iterable[Prisoner]) -> str:
    """
    Serialize records as CSV text.

    Header is the external column names in declaration order (unquoted); every
    value is quoted with inner quotes doubled. Lines are joined with "\\n".
    """

    lines = [",".join(PRISONER_COLS.values())]
    for prisoner in records:
        lines.append(",".join(_quote(getattr(prisoner, attr)) for attr in PRISONER_COLS))
    return "\n".join(lines)


def export_csv_bytes(records: Iterable[Prisoner]) -> bytes:
    return export_csv(records).encode("utf-8")
